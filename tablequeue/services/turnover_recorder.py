"""Seating hand-off to the turnover analytics store."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tablequeue.models.analytics import TableAnalytics

logger = logging.getLogger(__name__)

# Gaps outside this window are breaks in service, not turnovers
MIN_TURNOVER_GAP_MINUTES = 10
MAX_TURNOVER_GAP_MINUTES = 300


@dataclass(frozen=True)
class SeatingEvent:
    """What the engine tells analytics when a party is seated."""

    restaurant_id: UUID
    table_type_id: Optional[UUID]
    seated_at: datetime
    arrived_at: Optional[datetime] = None


class SeatingSink(Protocol):
    async def record_seating(self, event: SeatingEvent) -> None:
        ...


def _running_mean(current: Optional[int], samples: int, value: float) -> int:
    if current is None or samples <= 0:
        return round(value)
    return round((current * samples + value) / (samples + 1))


class SqlTurnoverRecorder:
    """
    Folds seating events into per-day ``table_analytics`` rows.

    Uses its own session so a failure here can never roll back the queue
    transition that produced the event.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record_seating(self, event: SeatingEvent) -> None:
        if event.table_type_id is None:
            logger.debug("Seating without table type for restaurant %s; skipping", event.restaurant_id)
            return

        async with self.session_factory() as session:
            result = await session.execute(
                select(TableAnalytics).where(
                    TableAnalytics.restaurant_id == event.restaurant_id,
                    TableAnalytics.table_type_id == event.table_type_id,
                    TableAnalytics.service_date == event.seated_at.date(),
                )
            )
            row = result.scalar_one_or_none()

            if row is None:
                row = TableAnalytics(
                    restaurant_id=event.restaurant_id,
                    table_type_id=event.table_type_id,
                    service_date=event.seated_at.date(),
                    total_usage=0,
                    turnover_samples=0,
                    wait_samples=0,
                )
                session.add(row)

            if row.last_seated_at is not None:
                gap = (event.seated_at - row.last_seated_at).total_seconds() / 60
                if MIN_TURNOVER_GAP_MINUTES < gap < MAX_TURNOVER_GAP_MINUTES:
                    row.average_turnover_time = _running_mean(
                        row.average_turnover_time, row.turnover_samples, gap
                    )
                    row.turnover_samples = (row.turnover_samples or 0) + 1

            if event.arrived_at is not None:
                waited = max(0.0, (event.seated_at - event.arrived_at).total_seconds() / 60)
                row.average_wait_before_seating = _running_mean(
                    row.average_wait_before_seating, row.wait_samples or 0, waited
                )
                row.wait_samples = (row.wait_samples or 0) + 1

            row.total_usage = (row.total_usage or 0) + 1
            if row.last_seated_at is None or event.seated_at > row.last_seated_at:
                row.last_seated_at = event.seated_at

            await session.commit()

        logger.info(
            "Recorded seating for table type %s at restaurant %s",
            event.table_type_id,
            event.restaurant_id,
        )
