"""Shared fixtures: a small board modelled on the tracked Trello lists."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backend.trello_dashboard.configuration import DashboardSettings
from backend.trello_dashboard.models import (
    TrelloCard,
    TrelloCheckItem,
    TrelloChecklist,
    TrelloLabel,
    TrelloList,
    TrelloMember,
)
from backend.trello_dashboard.transform import transform_card

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

LISTS = [
    TrelloList(id="list-queue", name="Change Request Queue", pos=1),
    TrelloList(id="list-new", name="New Project Queue", pos=2),
    TrelloList(id="list-planning", name="Reviewing and Planning", pos=3),
    TrelloList(id="list-progress", name="In Progress", pos=4),
    TrelloList(id="list-review", name="Pending Review", pos=5),
    TrelloList(id="list-completed", name="Completed", pos=6),
    TrelloList(id="list-hold", name="On Hold", pos=7),
]

MEMBERS = [
    TrelloMember(id="member-daniel", full_name="Daniel", username="daniel"),
    TrelloMember(id="member-nathan", full_name="Nathan", username="nathan"),
    TrelloMember(id="member-randall", full_name="Randall", username="randall"),
]

LABELS = [
    TrelloLabel(id="label-urgent", name="Urgent", color="red"),
    TrelloLabel(id="label-data", name="Data Request", color="blue"),
]


def make_checklist(*states: str, name: str = "Tasks", checklist_id: str = "cl-1") -> TrelloChecklist:
    return TrelloChecklist(
        id=checklist_id,
        name=name,
        check_items=tuple(
            TrelloCheckItem(id=f"{checklist_id}-ci-{index}", name=f"Item {index}", state=state)
            for index, state in enumerate(states)
        ),
    )


def make_raw_card(**overrides) -> TrelloCard:
    values = dict(
        id="card-1",
        name="Test Card",
        desc="A test card description",
        id_list="list-progress",
        id_members=("member-daniel",),
        id_labels=("label-urgent",),
        due=None,
        due_complete=False,
        date_last_activity=NOW - timedelta(hours=1),
        checklists=(),
        short_url="https://trello.com/c/abc123",
    )
    values.update(overrides)
    return TrelloCard(**values)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def lookups():
    return (
        {board_list.id: board_list for board_list in LISTS},
        {member.id: member for member in MEMBERS},
        {label.id: label for label in LABELS},
    )


@pytest.fixture
def make_card(lookups):
    """Build a normalized card from raw-card overrides, evaluated at ``NOW``."""

    lists_by_id, members_by_id, labels_by_id = lookups

    def _make(**overrides):
        return transform_card(make_raw_card(**overrides), lists_by_id, members_by_id, labels_by_id, now=NOW)

    return _make


@pytest.fixture
def settings():
    return DashboardSettings(
        trello_api_key="test-key",
        trello_token="test-token",
        trello_board_id="test-board",
        team_member_ids=["member-daniel", "member-nathan", "member-randall"],
        exclude_member_ids=["member-randall"],
    )
