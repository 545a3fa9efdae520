"""Table utilization, seat wastage and turnover analysis over seated history."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import Settings, get_settings
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.table_type import (
    TableEfficiencyRead,
    TableEfficiencyReport,
    TurnoverRecommendation,
)
from tablequeue.services.errors import NotFoundError
from tablequeue.services.table_allocator import occupied_counts, seat_efficiency
from tablequeue.services.turnover_recorder import (
    MAX_TURNOVER_GAP_MINUTES,
    MIN_TURNOVER_GAP_MINUTES,
)
from tablequeue.services.waitlist_store import WaitlistStore


HIGH_CONFIDENCE_SAMPLES = 50
MEDIUM_CONFIDENCE_SAMPLES = 15
RECOMMENDATION_THRESHOLD_PCT = 15

LOW_UTILIZATION_PCT = 70
HIGH_WASTAGE_SEATS = 2


@dataclass(frozen=True)
class TurnoverAnalysis:
    """Observed turnover for one table type."""

    table_type_id: UUID
    table_name: str
    observed_minutes: int
    sample_size: int
    confidence: str
    recommendation: Optional[TurnoverRecommendation] = None


def turnover_confidence(sample_size: int) -> str:
    if sample_size >= HIGH_CONFIDENCE_SAMPLES:
        return "high"
    if sample_size >= MEDIUM_CONFIDENCE_SAMPLES:
        return "medium"
    return "low"


def turnover_gaps(seated_at: Iterable[datetime]) -> List[float]:
    """Minutes between consecutive seatings, dropping breaks in service."""
    times = sorted(seated_at)
    gaps = []
    for previous, current in zip(times, times[1:]):
        minutes = (current - previous).total_seconds() / 60
        if MIN_TURNOVER_GAP_MINUTES < minutes < MAX_TURNOVER_GAP_MINUTES:
            gaps.append(minutes)
    return gaps


def analyze_turnover(
    table_type: TableType,
    seated_entries: Iterable[WaitlistEntry],
) -> Optional[TurnoverAnalysis]:
    """
    Compare a table type's configured turnover with what seatings show.

    A correction is suggested only when the observed mean is more than 15%
    off and there are enough samples to trust it.

    Returns:
        TurnoverAnalysis, or None when no usable gaps exist
    """
    gaps = turnover_gaps(
        e.seated_at for e in seated_entries
        if e.table_type_id == table_type.id and e.seated_at is not None
    )
    if not gaps:
        return None

    observed = sum(gaps) / len(gaps)
    confidence = turnover_confidence(len(gaps))

    recommendation = None
    configured = table_type.estimated_turnover_time
    if configured > 0:
        percent = (observed - configured) / configured * 100
        if abs(percent) > RECOMMENDATION_THRESHOLD_PCT and confidence != "low":
            recommendation = TurnoverRecommendation(
                suggested_time=round(observed),
                percent_difference=round(percent),
            )

    return TurnoverAnalysis(
        table_type_id=table_type.id,
        table_name=table_type.name,
        observed_minutes=round(observed),
        sample_size=len(gaps),
        confidence=confidence,
        recommendation=recommendation,
    )


def efficiency_advice(capacity: int, seatings: int, utilization: float, average_wastage: float) -> str:
    if seatings == 0:
        return "Not enough data to make a recommendation"
    if utilization < LOW_UTILIZATION_PCT:
        return "Consider using smaller tables or combining parties"
    if average_wastage > HIGH_WASTAGE_SEATS and capacity > 2:
        return f"Add more tables with capacity for {capacity - 2} people"
    return "Current allocation is optimal"


def summarize_table_type(
    table_type: TableType,
    seated_history: Sequence[WaitlistEntry],
    occupied_now: int,
) -> TableEfficiencyRead:
    """Efficiency row for one table type from its seated history."""
    seatings = [e for e in seated_history if e.table_type_id == table_type.id]
    wastages = [max(0, table_type.capacity - e.party_size) for e in seatings]

    average_wastage = None
    average_efficiency = None
    utilization = 0.0
    if seatings:
        average_wastage = round(sum(wastages) / len(wastages), 1)
        average_efficiency = round(sum(seat_efficiency(w) for w in wastages) / len(wastages), 1)
        seats_used = sum(min(e.party_size, table_type.capacity) for e in seatings)
        utilization = round(seats_used / (len(seatings) * table_type.capacity) * 100, 1)

    analysis = analyze_turnover(table_type, seatings)

    return TableEfficiencyRead(
        table_type_id=table_type.id,
        table_name=table_type.name,
        capacity=table_type.capacity,
        count=table_type.count,
        is_active=table_type.is_active,
        occupied_now=occupied_now,
        available_now=max(0, table_type.count - occupied_now) if table_type.is_active else 0,
        utilization_pct=utilization,
        total_seatings=len(seatings),
        average_seat_wastage=average_wastage,
        average_efficiency=average_efficiency,
        configured_turnover_time=table_type.estimated_turnover_time,
        observed_turnover_time=analysis.observed_minutes if analysis else None,
        turnover_sample_size=analysis.sample_size if analysis else 0,
        turnover_confidence=analysis.confidence if analysis else "low",
        recommendation=analysis.recommendation if analysis else None,
        advice=efficiency_advice(
            table_type.capacity, len(seatings), utilization, average_wastage or 0.0
        ),
    )


class TableMetricsService:
    """Read-only efficiency summary of a restaurant's table types."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.store = WaitlistStore(session)
        self.clock = clock or datetime.utcnow
        self.settings = settings or get_settings()

    async def get_table_efficiency_metrics(
        self,
        restaurant_id: UUID,
        lookback_days: Optional[int] = None,
    ) -> TableEfficiencyReport:
        restaurant = await self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")

        lookback_days = lookback_days or self.settings.historical_lookback_days
        now = self.clock()
        table_types = await self.store.get_table_types(restaurant_id)
        history = list(await self.store.get_seated_entries(
            restaurant_id, since=now - timedelta(days=lookback_days)
        ))
        occupied: Dict[UUID, int] = occupied_counts(table_types, history, now)

        rows = [summarize_table_type(t, history, occupied.get(t.id, 0)) for t in table_types]

        total_seatings = sum(r.total_seatings for r in rows)
        average_wastage = None
        average_efficiency = None
        if total_seatings:
            average_wastage = round(
                sum((r.average_seat_wastage or 0) * r.total_seatings for r in rows) / total_seatings, 1
            )
            average_efficiency = round(
                sum((r.average_efficiency or 0) * r.total_seatings for r in rows) / total_seatings, 1
            )

        return TableEfficiencyReport(
            restaurant_id=restaurant_id,
            lookback_days=lookback_days,
            total_seatings=total_seatings,
            average_seat_wastage=average_wastage,
            average_efficiency=average_efficiency,
            tables_needing_adjustment=sum(1 for r in rows if r.recommendation is not None),
            table_types=rows,
        )
