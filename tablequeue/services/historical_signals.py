"""Read-only demand signals from aggregated analytics."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.models.analytics import DailyAnalytics, HourlyAnalytics, TableAnalytics
from tablequeue.services.wait_estimator import HistoricalSignals

logger = logging.getLogger(__name__)

BUSIEST_DAY_COUNT = 2


class HistoricalSignalsProvider(Protocol):
    async def get_historical_signals(self, restaurant_id: UUID) -> Optional[HistoricalSignals]:
        ...


class SqlHistoricalSignals:
    """
    Derives peak hour, busiest weekdays and average party size from the
    daily and hourly rollups of the last ``lookback_days``.

    Returns None when there is no history, which callers treat as
    "no adjustment".
    """

    def __init__(self, session: AsyncSession, lookback_days: int = 28):
        self.session = session
        self.lookback_days = lookback_days

    async def get_historical_signals(
        self,
        restaurant_id: UUID,
        today: Optional[date] = None,
    ) -> Optional[HistoricalSignals]:
        today = today or datetime.utcnow().date()
        since = today - timedelta(days=self.lookback_days)

        signals = HistoricalSignals(
            peak_hour=await self._peak_hour(restaurant_id, since),
            busiest_days=await self._busiest_days(restaurant_id, since),
            average_party_size=await self._average_party_size(restaurant_id, since),
        )
        if signals.is_empty:
            return None

        logger.debug("Historical signals for restaurant %s: %s", restaurant_id, signals)
        return signals

    async def _peak_hour(self, restaurant_id: UUID, since: date) -> Optional[int]:
        total = func.sum(HourlyAnalytics.customers)
        result = await self.session.execute(
            select(HourlyAnalytics.hour, total)
            .where(HourlyAnalytics.restaurant_id == restaurant_id)
            .where(HourlyAnalytics.service_date >= since)
            .group_by(HourlyAnalytics.hour)
            .order_by(total.desc(), HourlyAnalytics.hour)
            .limit(1)
        )
        row = result.first()
        if row is None or not row[1]:
            return None
        return int(row[0])

    async def _busiest_days(self, restaurant_id: UUID, since: date) -> tuple:
        result = await self.session.execute(
            select(DailyAnalytics.service_date, DailyAnalytics.total_customers)
            .where(DailyAnalytics.restaurant_id == restaurant_id)
            .where(DailyAnalytics.service_date >= since)
        )

        # Average per weekday so a weekday with more samples in the window does not win
        totals: Dict[int, int] = defaultdict(int)
        samples: Dict[int, int] = defaultdict(int)
        for service_date, customers in result.all():
            weekday = service_date.weekday()
            totals[weekday] += customers or 0
            samples[weekday] += 1

        averages = {
            weekday: totals[weekday] / samples[weekday]
            for weekday in totals
            if totals[weekday] > 0
        }
        ranked = sorted(averages, key=lambda weekday: (-averages[weekday], weekday))
        return tuple(ranked[:BUSIEST_DAY_COUNT])

    async def _average_party_size(self, restaurant_id: UUID, since: date) -> Optional[float]:
        result = await self.session.execute(
            select(DailyAnalytics.average_party_size, DailyAnalytics.total_parties)
            .where(DailyAnalytics.restaurant_id == restaurant_id)
            .where(DailyAnalytics.service_date >= since)
        )
        rows = [
            (float(size), parties or 0)
            for size, parties in result.all()
            if size is not None and float(size) > 0
        ]
        if not rows:
            return None

        weight = sum(parties for _, parties in rows)
        if weight > 0:
            return sum(size * parties for size, parties in rows) / weight
        return sum(size for size, _ in rows) / len(rows)


async def observed_turnover_minutes(
    session: AsyncSession,
    restaurant_id: UUID,
    since: date,
) -> Dict[UUID, float]:
    """Sample-weighted observed turnover per table type, where measured."""
    result = await session.execute(
        select(
            TableAnalytics.table_type_id,
            TableAnalytics.average_turnover_time,
            TableAnalytics.turnover_samples,
        )
        .where(TableAnalytics.restaurant_id == restaurant_id)
        .where(TableAnalytics.service_date >= since)
        .where(TableAnalytics.average_turnover_time.is_not(None))
    )

    weighted: Dict[UUID, float] = defaultdict(float)
    counts: Dict[UUID, int] = defaultdict(int)
    for table_type_id, minutes, samples in result.all():
        samples = samples or 0
        if samples <= 0:
            continue
        weighted[table_type_id] += minutes * samples
        counts[table_type_id] += samples

    return {type_id: weighted[type_id] / counts[type_id] for type_id in counts}
