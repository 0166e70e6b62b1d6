from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Sequence

from .buckets import ALLOWED_LISTS, LIST_COMPLETED, LIST_NAMES
from .models import DashboardCard, TrelloCard, TrelloLabel, TrelloList, TrelloMember
from .transform import transform_card

logger = logging.getLogger(__name__)

COMPLETED_LOOKBACK_DAYS = 30


def lookback_cutoff(now: datetime, lookback_days: int = COMPLETED_LOOKBACK_DAYS) -> datetime:
    return now - timedelta(days=lookback_days)


@dataclass
class BoardSnapshot:
    """
    The four board entity collections fetched in one assembly cycle.

    Collections are frozen into tuples on construction so the snapshot can be
    shared between the transformer and both aggregators without copying.
    """

    lists: Sequence[TrelloList]
    cards: Sequence[TrelloCard]
    members: Sequence[TrelloMember]
    labels: Sequence[TrelloLabel]

    def __post_init__(self) -> None:
        self.lists = tuple(self.lists)
        self.cards = tuple(self.cards)
        self.members = tuple(self.members)
        self.labels = tuple(self.labels)
        self.lists_by_id: Dict[str, TrelloList] = {board_list.id: board_list for board_list in self.lists}
        self.members_by_id: Dict[str, TrelloMember] = {member.id: member for member in self.members}
        self.labels_by_id: Dict[str, TrelloLabel] = {label.id: label for label in self.labels}

    def missing_list_names(self, expected: Sequence[str] = LIST_NAMES) -> List[str]:
        fetched = {board_list.name for board_list in self.lists}
        return [name for name in expected if name not in fetched]

    def validate_list_names(self) -> List[str]:
        """
        Warn about every expected list that is absent from the board.

        Missing lists are data drift, not an error: metrics depending on them
        simply read as zero.
        """

        missing = self.missing_list_names()
        if missing:
            fetched = ", ".join(board_list.name for board_list in self.lists)
            for name in missing:
                logger.warning(
                    'Expected list "%s" not found on board. Metrics depending on this list will return 0. '
                    "Fetched lists: %s",
                    name,
                    fetched,
                )
        return missing

    def iter_dashboard_cards(
        self,
        now: datetime,
        lookback_days: int = COMPLETED_LOOKBACK_DAYS,
    ) -> Iterator[DashboardCard]:
        """
        Yield normalized cards in fetch order.

        Cards outside the allow-listed lists are skipped, and completed cards
        are skipped once their last activity falls before the lookback cutoff.
        """

        cutoff = lookback_cutoff(now, lookback_days)
        for raw_card in self.cards:
            card = transform_card(raw_card, self.lists_by_id, self.members_by_id, self.labels_by_id, now=now)
            if card.status not in ALLOWED_LISTS:
                continue
            if card.status == LIST_COMPLETED and card.last_activity < cutoff:
                continue
            yield card
