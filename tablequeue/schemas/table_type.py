from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AllocationStrategy(str, Enum):
    FIRST_FIT = "first_fit"
    BEST_FIT = "best_fit"
    OPTIMIZE_TURNOVER = "optimize_turnover"


class TableTypeRead(BaseModel):
    """Schema for reading a table type."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    restaurant_id: UUID
    name: str
    capacity: int
    count: int
    estimated_turnover_time: int
    is_active: bool
    created_at: datetime


class TurnoverRecommendation(BaseModel):
    """Suggested correction to a table type's configured turnover time."""

    suggested_time: int
    percent_difference: int


class TableEfficiencyRead(BaseModel):
    """Utilization and wastage summary for one table type."""

    table_type_id: UUID
    table_name: str
    capacity: int
    count: int
    is_active: bool
    occupied_now: int
    available_now: int
    utilization_pct: float
    total_seatings: int
    average_seat_wastage: Optional[float] = None
    average_efficiency: Optional[float] = None
    configured_turnover_time: int
    observed_turnover_time: Optional[int] = None
    turnover_sample_size: int = 0
    turnover_confidence: str = "low"
    recommendation: Optional[TurnoverRecommendation] = None
    advice: str = ""


class TableEfficiencyReport(BaseModel):
    """Table efficiency metrics for a restaurant."""

    restaurant_id: UUID
    lookback_days: int
    total_seatings: int
    average_seat_wastage: Optional[float] = None
    average_efficiency: Optional[float] = None
    tables_needing_adjustment: int = 0
    table_types: List[TableEfficiencyRead]
