"""Tests for the summary and workload aggregators."""

from datetime import timedelta

import pytest

from conftest import LISTS, MEMBERS, NOW, make_checklist

from backend.trello_dashboard.service import build_summary, build_workloads

MEMBERS_BY_ID = {member.id: member for member in MEMBERS}


@pytest.fixture
def board_cards(make_card):
    return [
        make_card(id="q1", id_list="list-queue", id_members=("member-daniel",)),
        make_card(id="q2", id_list="list-new", id_members=("member-nathan",)),
        make_card(
            id="ip1",
            id_list="list-progress",
            id_members=("member-daniel",),
            due=NOW - timedelta(days=3),
        ),
        make_card(id="r1", id_list="list-review", id_members=("member-nathan",)),
        make_card(id="c1", id_list="list-completed", date_last_activity=NOW - timedelta(days=10)),
        make_card(id="c2", id_list="list-completed", date_last_activity=NOW - timedelta(days=60)),
        make_card(id="h1", id_list="list-hold", id_members=()),
    ]


class TestBuildSummary:
    def test_bucket_counts(self, board_cards):
        summary = build_summary(board_cards, LISTS, now=NOW)
        assert summary.queue_depth == 2
        assert summary.in_progress == 2
        assert summary.on_hold == 1
        assert summary.total_cards == 7

    def test_buckets_partition_all_cards(self, board_cards):
        summary = build_summary(board_cards, LISTS, now=NOW)
        completed = sum(1 for card in board_cards if card.bucket == "completed")
        assert summary.queue_depth + summary.in_progress + summary.on_hold + completed == summary.total_cards

    def test_recently_completed_uses_lookback_window(self, board_cards):
        summary = build_summary(board_cards, LISTS, now=NOW)
        assert summary.recently_completed == 1

    def test_lookback_is_configurable(self, board_cards):
        assert build_summary(board_cards, LISTS, now=NOW, lookback_days=90).recently_completed == 2
        assert build_summary(board_cards, LISTS, now=NOW, lookback_days=5).recently_completed == 0

    def test_overdue_count(self, board_cards):
        assert build_summary(board_cards, LISTS, now=NOW).overdue_count == 1

    def test_overdue_counted_regardless_of_bucket(self, make_card):
        cards = [
            make_card(id="a", id_list="list-queue", due=NOW - timedelta(days=1)),
            make_card(id="b", id_list="list-hold", due=NOW - timedelta(days=1)),
        ]
        assert build_summary(cards, LISTS, now=NOW).overdue_count == 2

    def test_by_status(self, board_cards):
        summary = build_summary(board_cards, LISTS, now=NOW)
        assert summary.by_status == {
            "Change Request Queue": 1,
            "New Project Queue": 1,
            "In Progress": 1,
            "Pending Review": 1,
            "Completed": 2,
            "On Hold": 1,
        }

    def test_by_member_fans_out_multi_assignee_cards(self, make_card):
        cards = [
            make_card(id="a", id_members=("member-daniel", "member-nathan")),
            make_card(id="b", id_members=("member-daniel",)),
        ]
        summary = build_summary(cards, LISTS, now=NOW)
        assert summary.by_member == {"Daniel": 2, "Nathan": 1}
        assert summary.total_cards == 2

    def test_last_updated_is_aggregation_time(self, board_cards):
        later = NOW + timedelta(minutes=5)
        assert build_summary(board_cards, LISTS, now=later).last_updated == later

    def test_empty_board(self):
        summary = build_summary([], LISTS, now=NOW)
        assert summary.total_cards == 0
        assert summary.by_status == {}
        assert summary.queue_depth == summary.in_progress == summary.on_hold == 0

    def test_deterministic(self, board_cards):
        assert build_summary(board_cards, LISTS, now=NOW) == build_summary(board_cards, LISTS, now=NOW)


@pytest.fixture
def workload_cards(make_card):
    return [
        make_card(
            id="d1",
            id_list="list-progress",
            id_members=("member-daniel",),
            checklists=(make_checklist("complete", "incomplete"),),
        ),
        make_card(
            id="d2",
            id_list="list-progress",
            id_members=("member-daniel",),
            due=NOW - timedelta(days=2),
            checklists=(make_checklist("complete", "complete"),),
        ),
        make_card(id="n1", id_list="list-review", id_members=("member-nathan",)),
        make_card(id="r1", id_list="list-progress", id_members=("member-randall",)),
        make_card(id="d3", id_list="list-completed", id_members=("member-daniel",)),
    ]


class TestBuildWorkloads:
    def test_only_tracked_members_in_roster_order(self, workload_cards):
        workloads = build_workloads(
            workload_cards, ["member-nathan", "member-daniel"], MEMBERS_BY_ID, ["member-randall"]
        )
        assert [workload.member_name for workload in workloads] == ["Nathan", "Daniel"]

    def test_excluded_members_never_appear(self, workload_cards):
        workloads = build_workloads(
            workload_cards,
            ["member-daniel", "member-randall", "member-nathan"],
            MEMBERS_BY_ID,
            ["member-randall"],
        )
        assert "member-randall" not in [workload.member_id for workload in workloads]
        assert len(workloads) == 2

    def test_member_stats(self, workload_cards):
        daniel, nathan = build_workloads(workload_cards, ["member-daniel", "member-nathan"], MEMBERS_BY_ID, [])

        assert daniel.cards_in_progress == 2
        assert daniel.cards_in_review == 0
        assert daniel.cards_total == 2
        assert daniel.average_progress == 75
        assert daniel.overdue_cards == 1
        assert [card.id for card in daniel.cards] == ["d1", "d2"]

        assert nathan.cards_in_progress == 0
        assert nathan.cards_in_review == 1
        assert nathan.cards_total == 1
        assert nathan.average_progress == 0

    def test_completed_cards_never_count(self, workload_cards):
        (daniel,) = build_workloads(workload_cards, ["member-daniel"], MEMBERS_BY_ID, [])
        assert all(not card.is_complete for card in daniel.cards)
        assert "d3" not in [card.id for card in daniel.cards]

    def test_planning_counts_as_in_progress(self, make_card):
        cards = [make_card(id="p1", id_list="list-planning"), make_card(id="p2", id_list="list-progress")]
        (daniel,) = build_workloads(cards, ["member-daniel"], MEMBERS_BY_ID, [])
        assert daniel.cards_in_progress == 2

    def test_queue_and_hold_count_only_towards_total(self, make_card):
        cards = [make_card(id="q", id_list="list-queue"), make_card(id="h", id_list="list-hold")]
        (daniel,) = build_workloads(cards, ["member-daniel"], MEMBERS_BY_ID, [])
        assert daniel.cards_total == 2
        assert daniel.cards_in_progress == 0
        assert daniel.cards_in_review == 0

    def test_average_skips_cards_without_checklists(self, make_card):
        cards = [
            make_card(id="a", checklists=(make_checklist("complete", "incomplete"),)),
            make_card(id="b", checklists=()),
        ]
        (daniel,) = build_workloads(cards, ["member-daniel"], MEMBERS_BY_ID, [])
        assert daniel.average_progress == 50

    def test_member_without_cards_gets_zero_entry(self):
        (nathan,) = build_workloads([], ["member-nathan"], MEMBERS_BY_ID, [])
        assert nathan.member_name == "Nathan"
        assert nathan.cards_total == 0
        assert nathan.cards_in_progress == 0
        assert nathan.average_progress == 0
        assert nathan.overdue_cards == 0
        assert nathan.cards == ()

    def test_unknown_member_name(self):
        (ghost,) = build_workloads([], ["member-ghost"], MEMBERS_BY_ID, [])
        assert ghost.member_name == "Unknown"

    def test_shared_card_counts_for_each_member(self, make_card):
        shared = make_card(id="s1", id_list="list-progress", id_members=("member-daniel", "member-nathan"))
        daniel, nathan = build_workloads([shared], ["member-daniel", "member-nathan"], MEMBERS_BY_ID, [])
        assert daniel.cards == (shared,)
        assert nathan.cards == (shared,)
        assert daniel.cards_in_progress == nathan.cards_in_progress == 1
