"""Wait-time estimation for a party.

Pure functions over a snapshot of restaurant state. The coarse restaurant
status only seeds the base wait; the table-aware path and the historical
adjustment refine it.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

from tablequeue.models.restaurant import Restaurant
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.waitlist import ACTIVE_STATUSES
from tablequeue.services.table_allocator import occupied_counts


BASE_WAIT_MINUTES = {
    "available": 0,
    "short": 15,
    "long": 30,
    "very_long": 60,
    "closed": 0,
}

LARGE_PARTY_SIZE = 4
LARGE_PARTY_MULTIPLIER = 1.5
SIMILAR_PARTY_RANGE = 2
DEFAULT_TURNOVER_MINUTES = 45
NO_CAPACITY_WAIT_MINUTES = 120

PEAK_HOUR_WINDOW = 1
PEAK_HOUR_MULTIPLIER = 1.25
BUSY_DAY_MULTIPLIER = 1.25

ROUNDING_STEP_MINUTES = 5


@dataclass(frozen=True)
class HistoricalSignals:
    """Read-only demand signals aggregated from past service."""

    peak_hour: Optional[int] = None  # 0-23
    busiest_days: Tuple[int, ...] = field(default_factory=tuple)  # weekday(), 0=Monday
    average_party_size: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.peak_hour is None
            and not self.busiest_days
            and not self.average_party_size
        )

    def day_of_week_multiplier(self, weekday: int) -> float:
        return BUSY_DAY_MULTIPLIER if weekday in self.busiest_days else 1.0


def base_wait_minutes(restaurant: Restaurant) -> float:
    """Wait implied by the coarse status, unless staff set a custom wait."""
    if restaurant.custom_wait_time and restaurant.custom_wait_time > 0:
        return float(restaurant.custom_wait_time)
    return float(BASE_WAIT_MINUTES.get(restaurant.current_wait_status, 0))


def average_turnover(table_types: Sequence[TableType]) -> float:
    if not table_types:
        return float(DEFAULT_TURNOVER_MINUTES)
    return sum(t.estimated_turnover_time for t in table_types) / len(table_types)


def round_up_minutes(minutes: float) -> int:
    """Round up to the next multiple of five, never below zero."""
    if minutes <= 0:
        return 0
    # Trim float noise so 15.0000000001 does not become 20
    steps = math.ceil(round(minutes / ROUNDING_STEP_MINUTES, 6))
    return int(steps * ROUNDING_STEP_MINUTES)


def _hour_distance(a: int, b: int) -> int:
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


def apply_historical_adjustment(
    minutes: float,
    party_size: int,
    signals: HistoricalSignals,
    now: datetime,
) -> float:
    """Scale a wait by peak-hour, busy-day and party-size signals."""
    if signals.peak_hour is not None and _hour_distance(now.hour, signals.peak_hour) <= PEAK_HOUR_WINDOW:
        minutes *= PEAK_HOUR_MULTIPLIER

    minutes *= signals.day_of_week_multiplier(now.weekday())

    if signals.average_party_size and signals.average_party_size > 0:
        minutes *= math.sqrt(party_size / signals.average_party_size)

    return minutes


def estimate(
    restaurant: Restaurant,
    active_entries: Sequence[WaitlistEntry],
    table_types: Sequence[TableType],
    party_size: int,
    historical: Optional[HistoricalSignals] = None,
    now: Optional[datetime] = None,
    seated_entries: Optional[Iterable[WaitlistEntry]] = None,
) -> int:
    """
    Estimate minutes until a party of ``party_size`` is seated.

    Args:
        restaurant: Restaurant snapshot (status, custom wait, advanced flag)
        active_entries: Parties currently holding a queue position
        table_types: The restaurant's table types
        party_size: Size of the party being estimated
        historical: Optional aggregated demand signals
        now: Reference time (defaults to utcnow)
        seated_entries: Recently seated parties, used to discount occupied tables

    Returns:
        Non-negative wait in minutes, a multiple of five
    """
    if party_size < 1:
        raise ValueError(f"party_size must be positive, got {party_size}")

    now = now or datetime.utcnow()
    minutes = base_wait_minutes(restaurant)
    if party_size > LARGE_PARTY_SIZE:
        minutes *= LARGE_PARTY_MULTIPLIER

    if restaurant.use_advanced_queue:
        eligible = [t for t in table_types if t.is_active and t.capacity >= party_size]
        if not eligible:
            return NO_CAPACITY_WAIT_MINUTES

        similar = [
            e for e in active_entries
            if e.status in ACTIVE_STATUSES
            and abs(e.party_size - party_size) <= SIMILAR_PARTY_RANGE
        ]

        occupied = occupied_counts(eligible, seated_entries or [], now)
        free_seats = sum(
            t.capacity * max(0, t.count - occupied.get(t.id, 0)) for t in eligible
        )
        minutes += len(similar) * average_turnover(eligible) / max(1, free_seats)

    if historical is not None and not historical.is_empty:
        minutes = apply_historical_adjustment(minutes, party_size, historical, now)

    return round_up_minutes(minutes)


def confidence_label(restaurant: Restaurant) -> str:
    """Describe how much live signal went into an estimate."""
    if restaurant.use_advanced_queue:
        return "high"
    if restaurant.custom_wait_time and restaurant.custom_wait_time > 0:
        return "medium"
    return "low"
