from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CapacityForecastRead(BaseModel):
    """Wait forecast for a prospective party."""

    restaurant_id: UUID
    party_size: int = Field(..., ge=1)
    estimated_wait_time: int  # minutes
    next_available_time: datetime
    recommended_arrival_time: datetime
    confidence: str  # high, medium, low
    available_tables: int
    busy_level: int  # 0-100
    uses_historical_data: bool
