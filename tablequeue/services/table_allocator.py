"""Advisory table-type selection for a waiting party.

Nothing here reserves a table. A table type is only "taken" once an entry
is seated against it, and availability is always re-derived from the
entries currently seated, so there is no separate reservation ledger to
drift out of sync.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.table_type import AllocationStrategy
from tablequeue.schemas.waitlist import WaitlistStatus


# Efficiency drops by this much for every unused seat
WASTAGE_PENALTY_PER_SEAT = 20
MAX_EFFICIENCY = 100


@dataclass(frozen=True)
class AvailableTable:
    """A table type with at least one free table right now."""

    table_type_id: UUID
    name: str
    capacity: int
    available_count: int
    turnover_minutes: Optional[float] = None  # effective turnover, None if unknown


@dataclass(frozen=True)
class TableAssignment:
    """The suggested table type for a party."""

    table_type_id: UUID
    table_name: str
    capacity: int
    seat_wastage: int
    efficiency: int


def seat_efficiency(seat_wastage: int) -> int:
    """Score 0-100 for how well a party fills a table."""
    return max(0, MAX_EFFICIENCY - WASTAGE_PENALTY_PER_SEAT * seat_wastage)


def occupied_counts(
    table_types: Iterable[TableType],
    seated_entries: Iterable[WaitlistEntry],
    now: datetime,
) -> Dict[UUID, int]:
    """
    Count tables of each type still occupied by a seated party.

    A seated party holds its table for the table type's estimated turnover
    time after ``seated_at``.
    """
    turnover_by_type = {t.id: t.estimated_turnover_time for t in table_types}
    counts: Dict[UUID, int] = {type_id: 0 for type_id in turnover_by_type}

    for entry in seated_entries:
        if entry.status != WaitlistStatus.SEATED.value:
            continue
        if entry.table_type_id not in turnover_by_type or entry.seated_at is None:
            continue
        held_until = entry.seated_at + timedelta(minutes=turnover_by_type[entry.table_type_id])
        if held_until > now:
            counts[entry.table_type_id] += 1

    return counts


def build_available_tables(
    table_types: Sequence[TableType],
    seated_entries: Iterable[WaitlistEntry],
    now: datetime,
    observed_turnover: Optional[Mapping[UUID, float]] = None,
) -> List[AvailableTable]:
    """
    Snapshot of active table types that have a free table.

    Input order is preserved so ``first_fit`` follows the restaurant's own
    ordering. ``observed_turnover`` overrides the configured turnover time
    when analytics has a measured value.
    """
    occupied = occupied_counts(table_types, seated_entries, now)
    observed_turnover = observed_turnover or {}

    available = []
    for table_type in table_types:
        if not table_type.is_active:
            continue
        free = table_type.count - occupied.get(table_type.id, 0)
        if free <= 0:
            continue
        turnover = observed_turnover.get(table_type.id, table_type.estimated_turnover_time)
        available.append(AvailableTable(
            table_type_id=table_type.id,
            name=table_type.name,
            capacity=table_type.capacity,
            available_count=free,
            turnover_minutes=turnover,
        ))
    return available


def _assignment(table: AvailableTable, party_size: int) -> TableAssignment:
    wastage = table.capacity - party_size
    return TableAssignment(
        table_type_id=table.table_type_id,
        table_name=table.name,
        capacity=table.capacity,
        seat_wastage=wastage,
        efficiency=seat_efficiency(wastage),
    )


def allocate(
    party_size: int,
    available_tables: Sequence[AvailableTable],
    strategy: AllocationStrategy = AllocationStrategy.BEST_FIT,
) -> Optional[TableAssignment]:
    """
    Pick a table type for a party.

    Args:
        party_size: Number of guests (must be positive)
        available_tables: Candidate table types, in restaurant order
        strategy: first_fit, best_fit (default) or optimize_turnover

    Returns:
        TableAssignment, or None when no free table type seats the party
    """
    if party_size < 1:
        raise ValueError(f"party_size must be positive, got {party_size}")

    eligible = [
        (index, table)
        for index, table in enumerate(available_tables)
        if table.available_count > 0 and table.capacity >= party_size
    ]
    if not eligible:
        return None

    strategy = AllocationStrategy(strategy)

    if strategy == AllocationStrategy.FIRST_FIT:
        _, chosen = eligible[0]
    elif strategy == AllocationStrategy.OPTIMIZE_TURNOVER:
        # Unknown turnover sorts last; ties fall back to best-fit ordering
        _, chosen = min(
            eligible,
            key=lambda item: (
                item[1].turnover_minutes is None,
                item[1].turnover_minutes or 0,
                item[1].capacity - party_size,
                item[0],
            ),
        )
    else:
        _, chosen = min(
            eligible,
            key=lambda item: (item[1].capacity - party_size, item[0]),
        )

    return _assignment(chosen, party_size)


def match_preferred(
    party_size: int,
    available_tables: Sequence[AvailableTable],
    preferred_name: Optional[str],
) -> Optional[TableAssignment]:
    """Honor a named table-type preference when it is free and fits."""
    if not preferred_name:
        return None
    wanted = preferred_name.strip().lower()
    for table in available_tables:
        if (
            table.name.lower() == wanted
            and table.capacity >= party_size
            and table.available_count > 0
        ):
            return _assignment(table, party_size)
    return None
