"""
Display-side filtering and workload recomputation.

The cached ``DashboardData`` is never modified here. Filters narrow the card
collection and the workload view is rebuilt from the narrowed set, so search,
member and bucket selections affect workloads without a re-fetch. The board
summary stays unfiltered.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .buckets import BUCKET_ORDER, BUCKETS, LIST_ON_HOLD, LIST_REVIEW, status_rank
from .health import capacity_level, staleness_level, summary_health
from .models import (
    BucketSection,
    DashboardCard,
    DashboardData,
    DashboardFilters,
    DashboardView,
    TeamMemberWorkload,
)
from .service import WORKLOAD_IN_PROGRESS_STATUSES, WORKLOAD_REVIEW_STATUSES, average_checklist_progress

UNASSIGNED_MEMBER_ID = "__unassigned__"
UNASSIGNED_MEMBER_NAME = "In Queue / Unassigned"


def card_matches_filters(
    card: DashboardCard,
    search: str,
    member: Optional[str],
    bucket: Optional[str],
) -> bool:
    if search and search.lower() not in card.title.lower():
        return False
    if member and member not in card.assignee_ids:
        return False
    if bucket and card.bucket != bucket:
        return False
    return True


def filter_cards(cards: Iterable[DashboardCard], filters: DashboardFilters) -> Tuple[DashboardCard, ...]:
    return tuple(
        card for card in cards if card_matches_filters(card, filters.search, filters.member, filters.bucket)
    )


def sort_by_status(cards: Iterable[DashboardCard]) -> Tuple[DashboardCard, ...]:
    """Stable sort by display rank; unknown statuses go last."""

    return tuple(sorted(cards, key=lambda card: status_rank(card.status)))


def bucket_summary(bucket_key: str, cards: Sequence[DashboardCard]) -> Optional[str]:
    if bucket_key == "queue":
        overdue = sum(1 for card in cards if card.is_overdue)
        if overdue:
            return f"{overdue} overdue"
    elif bucket_key == "progress":
        in_review = sum(1 for card in cards if card.status == LIST_REVIEW)
        if in_review:
            return f"{in_review} in review"
    return None


def group_by_bucket(cards: Iterable[DashboardCard]) -> Dict[str, BucketSection]:
    """
    Group cards into pipeline sections keyed in ``BUCKET_ORDER``.

    Every bucket gets a section, empty or not. Cards inside a section are
    ordered by last activity, most recent first.
    """

    grouped: Dict[str, List[DashboardCard]] = {bucket_key: [] for bucket_key in BUCKET_ORDER}
    for card in cards:
        if card.bucket in grouped:
            grouped[card.bucket].append(card)

    sections: Dict[str, BucketSection] = {}
    for bucket_key, bucket_cards in grouped.items():
        ordered = tuple(sorted(bucket_cards, key=lambda card: card.last_activity, reverse=True))
        sections[bucket_key] = BucketSection(
            label=BUCKETS[bucket_key].label,
            cards=ordered,
            summary=bucket_summary(bucket_key, ordered),
        )
    return sections


def _recompute_workload(
    member_id: str,
    member_name: str,
    member_cards: Sequence[DashboardCard],
    all_cards_total: Optional[int] = None,
) -> TeamMemberWorkload:
    active_cards = [card for card in member_cards if not card.is_complete]
    return TeamMemberWorkload(
        member_id=member_id,
        member_name=member_name,
        cards_in_progress=sum(1 for card in active_cards if card.status in WORKLOAD_IN_PROGRESS_STATUSES),
        cards_in_review=sum(1 for card in active_cards if card.status in WORKLOAD_REVIEW_STATUSES),
        cards_total=len(active_cards),
        average_progress=average_checklist_progress(active_cards),
        overdue_cards=sum(1 for card in active_cards if card.is_overdue),
        cards=sort_by_status(member_cards),
        cards_on_hold=sum(1 for card in active_cards if card.status == LIST_ON_HOLD),
        cards_completed=sum(1 for card in member_cards if card.is_complete),
        all_cards_total=all_cards_total,
    )


def build_filtered_workloads(
    cards: Sequence[DashboardCard],
    workloads: Sequence[TeamMemberWorkload],
) -> List[TeamMemberWorkload]:
    """
    Rebuild ``workloads`` against an already filtered card set.

    Roster order follows ``workloads``. Cards with no roster assignee are
    collected into a synthetic unassigned entry appended last, which is left
    out when there are no such cards.
    """

    recomputed = [
        _recompute_workload(
            workload.member_id,
            workload.member_name,
            [card for card in cards if workload.member_id in card.assignee_ids],
            all_cards_total=workload.cards_total,
        )
        for workload in workloads
    ]

    roster = {workload.member_id for workload in workloads}
    unassigned = [card for card in cards if not any(member_id in roster for member_id in card.assignee_ids)]
    if unassigned:
        recomputed.append(_recompute_workload(UNASSIGNED_MEMBER_ID, UNASSIGNED_MEMBER_NAME, unassigned))
    return recomputed


def build_dashboard_view(
    data: DashboardData,
    filters: DashboardFilters,
    now: Optional[datetime] = None,
) -> DashboardView:
    now = now or datetime.now(timezone.utc)
    cards = filter_cards(data.cards, filters)
    workloads = build_filtered_workloads(cards, data.workloads)
    return DashboardView(
        filters=filters,
        summary=data.summary,
        cards=cards,
        workloads=tuple(workloads),
        cards_by_bucket=group_by_bucket(cards),
        health=summary_health(data.summary),
        capacity={workload.member_id: capacity_level(workload.cards_total) for workload in workloads},
        staleness={card.id: staleness_level(card.last_activity, now) for card in cards if not card.is_complete},
    )
