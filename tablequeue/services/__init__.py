# Queue engine services
from tablequeue.services.errors import (
    DuplicateConfirmationCodeError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteConflictError,
    WaitlistError,
)
from tablequeue.services.queue_manager import QueueManager
from tablequeue.services.remote_checkin import CheckInResult, RemoteCheckinHandler
from tablequeue.services.capacity_predictor import CapacityPredictor
from tablequeue.services.table_metrics import TableMetricsService
from tablequeue.services.table_allocator import allocate
from tablequeue.services.wait_estimator import HistoricalSignals, estimate

__all__ = [
    "DuplicateConfirmationCodeError",
    "InvalidTransitionError",
    "NotFoundError",
    "StaleWriteConflictError",
    "WaitlistError",
    "QueueManager",
    "CheckInResult",
    "RemoteCheckinHandler",
    "CapacityPredictor",
    "TableMetricsService",
    "allocate",
    "HistoricalSignals",
    "estimate",
]
