from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a Trello timestamp into an aware UTC ``datetime``.

    Trello emits ISO-8601 strings with a trailing ``Z``; naive datetimes are
    assumed to already be UTC.
    """

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    utc_value = value.astimezone(timezone.utc)
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _optional_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return parse_timestamp(value)


# ===== Raw Trello entities =====


@dataclass(frozen=True)
class TrelloList:
    id: str
    name: str
    pos: float = 0

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloList":
        return cls(id=str(payload["id"]), name=str(payload["name"]), pos=payload.get("pos") or 0)


@dataclass(frozen=True)
class TrelloMember:
    id: str
    full_name: str
    username: str = ""
    avatar_url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloMember":
        return cls(
            id=str(payload["id"]),
            full_name=str(payload.get("fullName") or ""),
            username=str(payload.get("username") or ""),
            avatar_url=payload.get("avatarUrl"),
        )


@dataclass(frozen=True)
class TrelloLabel:
    """``color`` is a Trello palette token such as ``red`` or ``sky_dark``."""

    id: str
    name: str
    color: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloLabel":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            color=str(payload.get("color") or ""),
        )


@dataclass(frozen=True)
class TrelloCheckItem:
    id: str
    name: str
    state: str = "incomplete"

    @property
    def is_complete(self) -> bool:
        return self.state == "complete"

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloCheckItem":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            state=str(payload.get("state") or "incomplete"),
        )


@dataclass(frozen=True)
class TrelloChecklist:
    id: str
    name: str
    check_items: Tuple[TrelloCheckItem, ...] = ()

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloChecklist":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            check_items=tuple(TrelloCheckItem.from_api(item) for item in payload.get("checkItems") or ()),
        )


@dataclass(frozen=True)
class TrelloCard:
    id: str
    name: str
    id_list: str
    date_last_activity: datetime
    desc: str = ""
    id_members: Tuple[str, ...] = ()
    id_labels: Tuple[str, ...] = ()
    due: Optional[datetime] = None
    due_complete: bool = False
    checklists: Tuple[TrelloChecklist, ...] = ()
    short_url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "TrelloCard":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            id_list=str(payload.get("idList") or ""),
            date_last_activity=parse_timestamp(payload["dateLastActivity"]),
            desc=str(payload.get("desc") or ""),
            id_members=tuple(str(member_id) for member_id in payload.get("idMembers") or ()),
            id_labels=tuple(str(label_id) for label_id in payload.get("idLabels") or ()),
            due=_optional_timestamp(payload.get("due")),
            due_complete=bool(payload.get("dueComplete")),
            checklists=tuple(TrelloChecklist.from_api(checklist) for checklist in payload.get("checklists") or ()),
            short_url=payload.get("shortUrl"),
        )


# ===== Normalized dashboard entities =====


@dataclass(frozen=True)
class DashboardLabel:
    name: str
    color: str


@dataclass(frozen=True)
class ChecklistItem:
    name: str
    complete: bool


@dataclass(frozen=True)
class DashboardChecklist:
    name: str
    items: Tuple[ChecklistItem, ...]
    completed: int
    total: int


@dataclass(frozen=True)
class DashboardCard:
    """
    A card as the dashboard sees it.

    ``status`` is the Trello list name, ``bucket`` the pipeline stage it
    rolls up into. ``is_overdue`` is a point-in-time value computed when the
    card was transformed.
    """

    id: str
    title: str
    description: str
    status: str
    bucket: str
    status_order: float
    assignees: Tuple[str, ...]
    assignee_ids: Tuple[str, ...]
    labels: Tuple[DashboardLabel, ...]
    due_date: Optional[datetime]
    is_overdue: bool
    is_complete: bool
    last_activity: datetime
    checklist_progress: int
    checklist_total: int
    checklist_completed: int
    checklists: Tuple[DashboardChecklist, ...] = ()
    url: Optional[str] = None


@dataclass(frozen=True)
class BoardSummary:
    total_cards: int
    by_status: Dict[str, int]
    by_member: Dict[str, int]
    queue_depth: int
    in_progress: int
    recently_completed: int
    on_hold: int
    overdue_count: int
    last_updated: datetime


@dataclass(frozen=True)
class TeamMemberWorkload:
    """
    Load statistics for one tracked member.

    ``cards_total`` never counts completed cards. ``cards_on_hold``,
    ``cards_completed`` and ``all_cards_total`` are only filled by the
    display-side recomputation.
    """

    member_id: str
    member_name: str
    cards_in_progress: int
    cards_in_review: int
    cards_total: int
    average_progress: int
    overdue_cards: int
    cards: Tuple[DashboardCard, ...]
    cards_on_hold: Optional[int] = None
    cards_completed: Optional[int] = None
    all_cards_total: Optional[int] = None


@dataclass(frozen=True)
class DashboardData:
    summary: BoardSummary
    cards: Tuple[DashboardCard, ...]
    members: Tuple[TrelloMember, ...]
    lists: Tuple[TrelloList, ...]
    workloads: Tuple[TeamMemberWorkload, ...]

    def as_dict(self) -> Dict[str, Any]:
        """Convert the payload into the JSON structure served to the UI."""

        return _serialize(self)


@dataclass(frozen=True)
class DashboardFilters:
    """
    Display-side filter selection owned by the consumer.

    Empty ``search`` and ``None`` member/bucket match every card.
    """

    search: str = ""
    member: Optional[str] = None
    bucket: Optional[str] = None


@dataclass(frozen=True)
class BucketSection:
    """
    One pipeline stage of the project list.

    ``summary`` is a short caption such as ``"2 overdue"``, or ``None`` when
    the stage has nothing to call out.
    """

    label: str
    cards: Tuple[DashboardCard, ...]
    summary: Optional[str] = None


@dataclass(frozen=True)
class DashboardView:
    """Filtered projection of a cached ``DashboardData`` for display."""

    filters: DashboardFilters
    summary: BoardSummary
    cards: Tuple[DashboardCard, ...]
    workloads: Tuple[TeamMemberWorkload, ...]
    cards_by_bucket: Dict[str, BucketSection] = field(default_factory=dict)
    health: Dict[str, str] = field(default_factory=dict)
    capacity: Dict[str, str] = field(default_factory=dict)
    staleness: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return _serialize(self)


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        return {_camel_case(item.name): _serialize(getattr(obj, item.name)) for item in fields(obj)}
    if isinstance(obj, Mapping):
        return {key: _serialize(value) for key, value in obj.items()}
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        return [_serialize(item) for item in obj]
    return obj
