"""Tests for the list-name vocabulary and bucket classifier."""

import pytest

from backend.trello_dashboard.buckets import (
    ALLOWED_LISTS,
    BUCKET_ORDER,
    BUCKETS,
    LIST_COMPLETED,
    LIST_IN_PROGRESS,
    LIST_NAMES,
    LIST_NEW_PROJECT_QUEUE,
    LIST_ON_HOLD,
    LIST_PLANNING,
    LIST_QUEUE,
    LIST_REVIEW,
    Bucket,
    build_bucket_index,
    get_bucket_for_status,
    resolve_bucket,
    status_rank,
)
from backend.trello_dashboard.exceptions import ConfigurationError


class TestGetBucketForStatus:
    @pytest.mark.parametrize(
        "status, bucket",
        [
            ("Change Request Queue", "queue"),
            ("New Project Queue", "queue"),
            ("Reviewing and Planning", "progress"),
            ("In Progress", "progress"),
            ("Pending Review", "progress"),
            ("On Hold", "onHold"),
            ("Completed", "completed"),
        ],
    )
    def test_tracked_lists(self, status, bucket):
        assert get_bucket_for_status(status) == bucket

    def test_unknown_list_is_not_found(self):
        assert get_bucket_for_status("Backlog") is None

    def test_match_is_exact(self):
        assert get_bucket_for_status("in progress") is None

    def test_resolve_bucket_defaults_to_progress(self):
        assert resolve_bucket("Backlog") == "progress"
        assert resolve_bucket("Completed") == "completed"

    def test_custom_table(self):
        table = {"todo": Bucket("To do", ("Backlog",)), "done": Bucket("Done", ("Shipped",))}
        assert get_bucket_for_status("Shipped", table) == "done"
        assert get_bucket_for_status("In Progress", table) is None


class TestBucketTable:
    def test_seven_lists_in_four_buckets(self):
        assert set(BUCKETS) == {"queue", "progress", "onHold", "completed"}
        assert ALLOWED_LISTS == frozenset(LIST_NAMES)
        assert len(ALLOWED_LISTS) == 7

    def test_bucket_labels(self):
        assert {key: bucket.label for key, bucket in BUCKETS.items()} == {
            "progress": "In Progress",
            "queue": "Queue",
            "onHold": "On Hold",
            "completed": "Completed",
        }
        assert BUCKETS["progress"].lists == (LIST_PLANNING, LIST_IN_PROGRESS, LIST_REVIEW)

    def test_display_order(self):
        assert BUCKET_ORDER == ("queue", "progress", "onHold", "completed")

    def test_duplicate_list_name_is_flagged(self):
        with pytest.raises(ConfigurationError, match="both"):
            build_bucket_index({"queue": Bucket("Queue", ("On Hold",)), "onHold": Bucket("On Hold", ("On Hold",))})

    def test_repeated_name_in_same_bucket_is_allowed(self):
        assert build_bucket_index({"queue": Bucket("Queue", ("A", "A"))}) == {"A": "queue"}


class TestStatusRank:
    def test_rank_follows_display_priority(self):
        ordered = [
            LIST_IN_PROGRESS,
            LIST_PLANNING,
            LIST_REVIEW,
            LIST_ON_HOLD,
            LIST_COMPLETED,
            LIST_QUEUE,
            LIST_NEW_PROJECT_QUEUE,
        ]
        assert [status_rank(status) for status in ordered] == list(range(7))

    def test_unknown_status_ranks_last(self):
        assert status_rank("Unknown") == 99
