"""
Shared FastAPI dependencies and error mapping for the queue routers.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import get_settings
from tablequeue.database import get_session, get_session_factory
from tablequeue.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleWriteConflictError,
    WaitlistError,
)
from tablequeue.services.historical_signals import (
    HistoricalSignalsProvider,
    SqlHistoricalSignals,
)
from tablequeue.services.notification_service import NotificationSender, get_notifier
from tablequeue.services.queue_manager import QueueManager
from tablequeue.services.remote_checkin import RemoteCheckinHandler
from tablequeue.services.turnover_recorder import SeatingSink, SqlTurnoverRecorder


def http_error(exc: WaitlistError) -> HTTPException:
    """Translate an engine error into an HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StaleWriteConflictError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def get_notification_sender() -> NotificationSender:
    return get_notifier(get_settings())


def get_seating_sink() -> Optional[SeatingSink]:
    return SqlTurnoverRecorder(get_session_factory())


def get_signals_provider(
    session: AsyncSession = Depends(get_session),
) -> Optional[HistoricalSignalsProvider]:
    return SqlHistoricalSignals(session, get_settings().historical_lookback_days)


def get_queue_manager(
    session: AsyncSession = Depends(get_session),
    notifier: NotificationSender = Depends(get_notification_sender),
    seating_sink: Optional[SeatingSink] = Depends(get_seating_sink),
    signals: Optional[HistoricalSignalsProvider] = Depends(get_signals_provider),
) -> QueueManager:
    return QueueManager(
        session,
        notifier=notifier,
        seating_sink=seating_sink,
        signals=signals,
    )


def get_checkin_handler(
    queue: QueueManager = Depends(get_queue_manager),
) -> RemoteCheckinHandler:
    return RemoteCheckinHandler(queue)
