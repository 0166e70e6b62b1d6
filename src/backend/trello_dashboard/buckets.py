"""
Trello list vocabulary and the bucket classifier.

Two independent tables live here: ``BUCKETS`` groups list names into the four
pipeline stages used for aggregation, while ``STATUS_SORT_ORDER`` ranks list
names for display. Their membership differs on purpose and they must not be
derived from one another.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .exceptions import ConfigurationError

# List names on the tracked board. Renaming one on Trello zeroes its metrics.
LIST_QUEUE = "Change Request Queue"
LIST_NEW_PROJECT_QUEUE = "New Project Queue"
LIST_PLANNING = "Reviewing and Planning"
LIST_IN_PROGRESS = "In Progress"
LIST_REVIEW = "Pending Review"
LIST_COMPLETED = "Completed"
LIST_ON_HOLD = "On Hold"

LIST_NAMES: Tuple[str, ...] = (
    LIST_QUEUE,
    LIST_NEW_PROJECT_QUEUE,
    LIST_PLANNING,
    LIST_IN_PROGRESS,
    LIST_REVIEW,
    LIST_COMPLETED,
    LIST_ON_HOLD,
)

UNKNOWN_STATUS = "Unknown"
DEFAULT_BUCKET = "progress"


@dataclass(frozen=True)
class Bucket:
    label: str
    lists: Tuple[str, ...]


BUCKETS: Mapping[str, Bucket] = MappingProxyType(
    {
        "progress": Bucket("In Progress", (LIST_PLANNING, LIST_IN_PROGRESS, LIST_REVIEW)),
        "queue": Bucket("Queue", (LIST_QUEUE, LIST_NEW_PROJECT_QUEUE)),
        "onHold": Bucket("On Hold", (LIST_ON_HOLD,)),
        "completed": Bucket("Completed", (LIST_COMPLETED,)),
    }
)

# Pipeline flow, left to right.
BUCKET_ORDER: Tuple[str, ...] = ("queue", "progress", "onHold", "completed")

# Lower rank is shown first inside a member's card list.
STATUS_SORT_ORDER: Mapping[str, int] = MappingProxyType(
    {
        LIST_IN_PROGRESS: 0,
        LIST_PLANNING: 1,
        LIST_REVIEW: 2,
        LIST_ON_HOLD: 3,
        LIST_COMPLETED: 4,
        LIST_QUEUE: 5,
        LIST_NEW_PROJECT_QUEUE: 6,
    }
)
UNRANKED_STATUS = 99


def build_bucket_index(buckets: Mapping[str, Bucket]) -> Dict[str, str]:
    """
    Invert a bucket table into a ``list name -> bucket key`` index.

    A list name claimed by two buckets is a configuration defect and raises
    ``ConfigurationError`` instead of letting iteration order pick a winner.
    """

    index: Dict[str, str] = {}
    for bucket_key, bucket in buckets.items():
        for list_name in bucket.lists:
            owner = index.get(list_name)
            if owner is not None and owner != bucket_key:
                raise ConfigurationError(
                    f'List "{list_name}" is assigned to both "{owner}" and "{bucket_key}" buckets.'
                )
            index[list_name] = bucket_key
    return index


_BUCKET_INDEX = build_bucket_index(BUCKETS)

# Cards sitting in any other list are invisible to the dashboard.
ALLOWED_LISTS = frozenset(_BUCKET_INDEX)


def get_bucket_for_status(
    status: str,
    buckets: Optional[Mapping[str, Bucket]] = None,
) -> Optional[str]:
    """Return the bucket key owning ``status`` or ``None`` when no bucket does."""

    index = _BUCKET_INDEX if buckets is None else build_bucket_index(buckets)
    return index.get(status)


def resolve_bucket(status: str) -> str:
    return get_bucket_for_status(status) or DEFAULT_BUCKET


def status_rank(status: str) -> int:
    return STATUS_SORT_ORDER.get(status, UNRANKED_STATUS)
