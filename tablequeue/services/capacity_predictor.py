"""Read-only wait forecast for prospective customers."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import Settings, get_settings
from tablequeue.schemas.capacity import CapacityForecastRead
from tablequeue.services.errors import NotFoundError
from tablequeue.services.historical_signals import HistoricalSignalsProvider
from tablequeue.services.table_allocator import occupied_counts
from tablequeue.services.wait_estimator import confidence_label, estimate
from tablequeue.services.waitlist_store import WaitlistStore

logger = logging.getLogger(__name__)

MAX_BUSY_LEVEL = 100


class CapacityPredictor:
    """Forecasts when a party of a given size could be seated. Never writes."""

    def __init__(
        self,
        session: AsyncSession,
        signals: Optional[HistoricalSignalsProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.store = WaitlistStore(session)
        self.signals = signals
        self.clock = clock or datetime.utcnow
        self.settings = settings or get_settings()

    async def predict(self, restaurant_id: UUID, party_size: int) -> CapacityForecastRead:
        """
        Forecast the wait for a party of ``party_size``.

        Blends the live queue with historical demand signals when the
        analytics provider has any.

        Raises:
            NotFoundError: Unknown restaurant
            ValueError: party_size is not positive
        """
        if party_size < 1:
            raise ValueError(f"party_size must be positive, got {party_size}")

        restaurant = await self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")

        now = self.clock()
        active = await self.store.get_active_entries(restaurant_id)
        table_types = await self.store.get_table_types(restaurant_id)
        seated = []
        if table_types:
            longest = max(t.estimated_turnover_time for t in table_types)
            seated = list(await self.store.get_seated_entries(
                restaurant_id, since=now - timedelta(minutes=longest)
            ))

        historical = None
        if self.signals is not None:
            try:
                historical = await self.signals.get_historical_signals(restaurant_id)
            except Exception:
                logger.exception("Historical signals unavailable for restaurant %s", restaurant_id)

        wait = estimate(
            restaurant,
            active,
            table_types,
            party_size,
            historical=historical,
            now=now,
            seated_entries=seated,
        )

        fitting = [t for t in table_types if t.is_active and t.capacity >= party_size]
        occupied = occupied_counts(fitting, seated, now)
        available_tables = sum(max(0, t.count - occupied.get(t.id, 0)) for t in fitting)
        total_tables = sum(t.count for t in fitting)
        if total_tables:
            busy_level = min(MAX_BUSY_LEVEL, round(len(active) / total_tables * 100))
        else:
            busy_level = MAX_BUSY_LEVEL

        next_available = now + timedelta(minutes=wait)
        lead = timedelta(minutes=self.settings.recommended_arrival_lead_minutes)

        return CapacityForecastRead(
            restaurant_id=restaurant_id,
            party_size=party_size,
            estimated_wait_time=wait,
            next_available_time=next_available,
            recommended_arrival_time=next_available - lead,
            confidence=confidence_label(restaurant),
            available_tables=available_tables,
            busy_level=busy_level,
            uses_historical_data=historical is not None and not historical.is_empty,
        )
