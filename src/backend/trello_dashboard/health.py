from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from .models import BoardSummary

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class Thresholds:
    """Values above ``green`` turn yellow, values above ``yellow`` turn red."""

    green: int
    yellow: int


STALE_AFTER_DAYS = 5
STUCK_AFTER_DAYS = 10

HEALTH_THRESHOLDS: Dict[str, Thresholds] = {
    "queueDepth": Thresholds(green=5, yellow=10),
    "onHold": Thresholds(green=1, yellow=3),
}

# Active card counts: 0-2 available, 3-4 near capacity, 5+ over capacity.
CAPACITY_AVAILABLE_MAX = 2
CAPACITY_NEAR_MAX = 4


def days_since(moment: datetime, now: datetime) -> int:
    return max(0, int((now - moment).total_seconds() // SECONDS_PER_DAY))


def staleness_level(last_activity: datetime, now: datetime) -> str:
    days = days_since(last_activity, now)
    if days >= STUCK_AFTER_DAYS:
        return "stuck"
    if days >= STALE_AFTER_DAYS:
        return "stale"
    return "fresh"


def threshold_color(value: int, thresholds: Thresholds) -> str:
    if value > thresholds.yellow:
        return "red"
    if value > thresholds.green:
        return "yellow"
    return "green"


def summary_health(summary: BoardSummary) -> Dict[str, str]:
    return {
        "queueDepth": threshold_color(summary.queue_depth, HEALTH_THRESHOLDS["queueDepth"]),
        "onHold": threshold_color(summary.on_hold, HEALTH_THRESHOLDS["onHold"]),
    }


def capacity_level(active_cards: int) -> str:
    if active_cards <= CAPACITY_AVAILABLE_MAX:
        return "available"
    if active_cards <= CAPACITY_NEAR_MAX:
        return "near_capacity"
    return "over_capacity"
