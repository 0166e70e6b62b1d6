from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .buckets import LIST_IN_PROGRESS, LIST_PLANNING, LIST_REVIEW
from .cache import TaggedTTLCache
from .configuration import DashboardSettings
from .dataset import COMPLETED_LOOKBACK_DAYS, BoardSnapshot, lookback_cutoff
from .exceptions import BoardServiceError, DashboardAssemblyError, DashboardError
from .models import BoardSummary, DashboardCard, DashboardData, TeamMemberWorkload, TrelloList, TrelloMember
from .repository import BoardRepository
from .transform import round_half_up

logger = logging.getLogger(__name__)

CACHE_TAG = "trello"
UNKNOWN_MEMBER_NAME = "Unknown"

# Workload counting collapses planning into in-progress, unlike the bucket table.
WORKLOAD_IN_PROGRESS_STATUSES = frozenset({LIST_IN_PROGRESS, LIST_PLANNING})
WORKLOAD_REVIEW_STATUSES = frozenset({LIST_REVIEW})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def average_checklist_progress(cards: Iterable[DashboardCard]) -> int:
    """Mean checklist progress over cards that have at least one checklist item."""

    values = [card.checklist_progress for card in cards if card.checklist_total > 0]
    if not values:
        return 0
    return round_half_up(sum(values), len(values))


def build_summary(
    cards: Sequence[DashboardCard],
    lists: Sequence[TrelloList],
    now: Optional[datetime] = None,
    lookback_days: int = COMPLETED_LOOKBACK_DAYS,
) -> BoardSummary:
    """
    Reduce normalized cards into board-wide counts.

    A card with several assignees increments each assignee's ``by_member``
    counter. ``recently_completed`` is measured from ``now``, never from due
    dates.
    """

    now = now or _utcnow()
    cutoff = lookback_cutoff(now, lookback_days)

    by_status: Dict[str, int] = {}
    by_member: Dict[str, int] = {}
    bucket_counts = {"queue": 0, "progress": 0, "onHold": 0, "completed": 0}
    recently_completed = 0
    overdue_count = 0

    for card in cards:
        by_status[card.status] = by_status.get(card.status, 0) + 1
        for name in card.assignees:
            by_member[name] = by_member.get(name, 0) + 1
        bucket_counts[card.bucket] = bucket_counts.get(card.bucket, 0) + 1
        if card.bucket == "completed" and card.last_activity >= cutoff:
            recently_completed += 1
        if card.is_overdue:
            overdue_count += 1

    return BoardSummary(
        total_cards=len(cards),
        by_status=by_status,
        by_member=by_member,
        queue_depth=bucket_counts["queue"],
        in_progress=bucket_counts["progress"],
        recently_completed=recently_completed,
        on_hold=bucket_counts["onHold"],
        overdue_count=overdue_count,
        last_updated=now,
    )


def build_workloads(
    cards: Sequence[DashboardCard],
    member_ids: Sequence[str],
    members_by_id: Mapping[str, TrelloMember],
    exclude_ids: Sequence[str] = (),
) -> List[TeamMemberWorkload]:
    """
    One workload per tracked member, in roster order.

    Completed cards never count. Members without active cards still get an
    all-zero entry.
    """

    excluded = set(exclude_ids)
    workloads: List[TeamMemberWorkload] = []
    for member_id in member_ids:
        if member_id in excluded:
            continue
        member = members_by_id.get(member_id)
        active_cards = tuple(card for card in cards if member_id in card.assignee_ids and not card.is_complete)
        workloads.append(
            TeamMemberWorkload(
                member_id=member_id,
                member_name=member.full_name if member is not None else UNKNOWN_MEMBER_NAME,
                cards_in_progress=sum(1 for card in active_cards if card.status in WORKLOAD_IN_PROGRESS_STATUSES),
                cards_in_review=sum(1 for card in active_cards if card.status in WORKLOAD_REVIEW_STATUSES),
                cards_total=len(active_cards),
                average_progress=average_checklist_progress(active_cards),
                overdue_cards=sum(1 for card in active_cards if card.is_overdue),
                cards=active_cards,
            )
        )
    return workloads


class AssemblyState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    VALIDATING = "validating"
    TRANSFORMING = "transforming"
    AGGREGATING = "aggregating"
    READY = "ready"
    FAILED = "failed"


class TrelloDashboardService:
    """
    Assembles the dashboard payload for one board and caches it.

    ``assemble`` always talks to the board service; ``get_dashboard_data``
    serves the cached payload until it expires or ``revalidate`` is called.
    """

    def __init__(
        self,
        repository: BoardRepository,
        settings: DashboardSettings,
        cache: Optional[TaggedTTLCache[DashboardData]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repository = repository
        self.settings = settings
        self.cache = cache if cache is not None else TaggedTTLCache(ttl_seconds=settings.cache_ttl_seconds)
        self._clock = clock or _utcnow
        self._refresh_lock = asyncio.Lock()
        self.state = AssemblyState.IDLE
        self.last_error: Optional[DashboardError] = None

    @property
    def cache_key(self) -> str:
        return f"trello-dashboard:{self.settings.trello_board_id}"

    def _transition(self, state: AssemblyState) -> None:
        logger.debug("Dashboard assembly %s -> %s", self.state.value, state.value)
        self.state = state

    async def fetch_snapshot(self) -> BoardSnapshot:
        lists, cards, members, labels = await asyncio.gather(
            self.repository.get_lists(),
            self.repository.get_cards(),
            self.repository.get_members(),
            self.repository.get_labels(),
        )
        return BoardSnapshot(lists=lists, cards=cards, members=members, labels=labels)

    async def assemble(self) -> DashboardData:
        try:
            self._transition(AssemblyState.FETCHING)
            snapshot = await self.fetch_snapshot()

            self._transition(AssemblyState.VALIDATING)
            snapshot.validate_list_names()

            self._transition(AssemblyState.TRANSFORMING)
            now = self._clock()
            lookback_days = self.settings.completed_lookback_days
            cards = tuple(snapshot.iter_dashboard_cards(now, lookback_days))

            self._transition(AssemblyState.AGGREGATING)
            summary = build_summary(cards, snapshot.lists, now=now, lookback_days=lookback_days)
            workloads = build_workloads(
                cards,
                self.settings.team_member_ids,
                snapshot.members_by_id,
                self.settings.exclude_member_ids,
            )
        except BoardServiceError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            error = DashboardAssemblyError(f"Failed to assemble dashboard data: {exc}")
            self._fail(error)
            raise error from exc

        data = DashboardData(
            summary=summary,
            cards=cards,
            members=tuple(snapshot.members),
            lists=tuple(snapshot.lists),
            workloads=tuple(workloads),
        )
        self.last_error = None
        self._transition(AssemblyState.READY)
        logger.info(
            "Assembled dashboard for board %s: %d cards, %d workloads",
            self.settings.trello_board_id,
            len(cards),
            len(workloads),
        )
        return data

    def _fail(self, error: DashboardError) -> None:
        self.last_error = error
        self._transition(AssemblyState.FAILED)

    async def get_dashboard_data(self) -> DashboardData:
        cached = self.cache.get(self.cache_key)
        if cached is not None:
            return cached

        async with self._refresh_lock:
            # Another request may have refreshed while this one waited.
            cached = self.cache.get(self.cache_key)
            if cached is not None:
                return cached

            generation = self.cache.generation_for((CACHE_TAG,))
            try:
                data = await self.assemble()
            except DashboardError:
                stale = self.cache.peek(self.cache_key)
                if self.settings.serve_stale_on_error and stale is not None:
                    logger.warning(
                        "Serving stale dashboard for board %s after refresh failure",
                        self.settings.trello_board_id,
                    )
                    return stale.payload
                raise

            self.cache.set(self.cache_key, data, tags=(CACHE_TAG,), generation=generation)
            return data

    def revalidate(self) -> int:
        """Invalidate the cached payload; the next read re-runs the full cycle."""

        return self.cache.invalidate_tag(CACHE_TAG)
