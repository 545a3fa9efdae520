"""
REST API endpoints for capacity forecasts and table efficiency.
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.api.deps import get_signals_provider, http_error
from tablequeue.database import get_session
from tablequeue.schemas.capacity import CapacityForecastRead
from tablequeue.schemas.table_type import TableEfficiencyReport
from tablequeue.services.capacity_predictor import CapacityPredictor
from tablequeue.services.errors import WaitlistError
from tablequeue.services.historical_signals import HistoricalSignalsProvider
from tablequeue.services.table_metrics import TableMetricsService

router = APIRouter(prefix="/api/v1", tags=["capacity"])


@router.get("/restaurants/{restaurant_id}/capacity/forecast", response_model=CapacityForecastRead)
async def capacity_forecast(
    restaurant_id: UUID,
    party_size: int = Query(..., ge=1, le=50, description="Number of guests"),
    session: AsyncSession = Depends(get_session),
    signals: Optional[HistoricalSignalsProvider] = Depends(get_signals_provider),
) -> CapacityForecastRead:
    """
    Forecast the wait for a prospective party.

    Read-only; calling it never changes the queue.
    """
    predictor = CapacityPredictor(session, signals=signals)
    try:
        return await predictor.predict(restaurant_id, party_size)
    except WaitlistError as exc:
        raise http_error(exc)


@router.get("/restaurants/{restaurant_id}/table-types/efficiency", response_model=TableEfficiencyReport)
async def table_efficiency(
    restaurant_id: UUID,
    lookback_days: Optional[int] = Query(None, ge=1, le=365),
    session: AsyncSession = Depends(get_session),
) -> TableEfficiencyReport:
    """Utilization, seat wastage and turnover per table type."""
    service = TableMetricsService(session)
    try:
        return await service.get_table_efficiency_metrics(restaurant_id, lookback_days)
    except WaitlistError as exc:
        raise http_error(exc)
