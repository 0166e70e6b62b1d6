"""
Card transformer: raw Trello card + lookup tables -> ``DashboardCard``.

The transformer is total. Members, labels and lists can be deleted on the
board between fetches, so a dangling reference resolves to a documented
fallback instead of an error:

- unknown member id: dropped from ``assignees``, kept in ``assignee_ids``
- unknown label id: dropped from ``labels``
- unknown list id: status ``"Unknown"``, status order ``0``, bucket ``progress``
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Mapping, Optional, Tuple

from .buckets import LIST_COMPLETED, UNKNOWN_STATUS, resolve_bucket
from .models import (
    ChecklistItem,
    DashboardCard,
    DashboardChecklist,
    DashboardLabel,
    TrelloCard,
    TrelloChecklist,
    TrelloLabel,
    TrelloList,
    TrelloMember,
)


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, with .5 going up (12.5 -> 13)."""

    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def checklist_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * completed, total)


def _rollup_checklist(checklist: TrelloChecklist) -> DashboardChecklist:
    items = tuple(ChecklistItem(name=item.name, complete=item.is_complete) for item in checklist.check_items)
    completed = sum(1 for item in items if item.complete)
    return DashboardChecklist(name=checklist.name, items=items, completed=completed, total=len(items))


def _resolve_labels(label_ids: Tuple[str, ...], labels_by_id: Mapping[str, TrelloLabel]) -> Tuple[DashboardLabel, ...]:
    resolved: List[DashboardLabel] = []
    for label_id in label_ids:
        label = labels_by_id.get(label_id)
        if label is not None:
            resolved.append(DashboardLabel(name=label.name, color=label.color))
    return tuple(resolved)


def is_card_overdue(card: TrelloCard, now: datetime) -> bool:
    return card.due is not None and not card.due_complete and card.due < now


def transform_card(
    card: TrelloCard,
    lists_by_id: Mapping[str, TrelloList],
    members_by_id: Mapping[str, TrelloMember],
    labels_by_id: Mapping[str, TrelloLabel],
    now: Optional[datetime] = None,
) -> DashboardCard:
    now = now or datetime.now(timezone.utc)

    board_list = lists_by_id.get(card.id_list)
    status = board_list.name if board_list is not None else UNKNOWN_STATUS
    status_order = board_list.pos if board_list is not None else 0

    assignees = tuple(
        members_by_id[member_id].full_name for member_id in card.id_members if member_id in members_by_id
    )

    checklists = tuple(_rollup_checklist(checklist) for checklist in card.checklists)
    checklist_total = sum(checklist.total for checklist in checklists)
    checklist_completed = sum(checklist.completed for checklist in checklists)

    return DashboardCard(
        id=card.id,
        title=card.name,
        description=card.desc,
        status=status,
        bucket=resolve_bucket(status),
        status_order=status_order,
        assignees=assignees,
        assignee_ids=tuple(card.id_members),
        labels=_resolve_labels(card.id_labels, labels_by_id),
        due_date=card.due,
        is_overdue=is_card_overdue(card, now),
        is_complete=status == LIST_COMPLETED,
        last_activity=card.date_last_activity,
        checklist_progress=checklist_percentage(checklist_completed, checklist_total),
        checklist_total=checklist_total,
        checklist_completed=checklist_completed,
        checklists=checklists,
        url=card.short_url,
    )
