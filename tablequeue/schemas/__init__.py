from tablequeue.schemas.waitlist import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    CheckInRead,
    CheckInRequest,
    ExpireOverdueRead,
    QueueEntryRead,
    QueueRead,
    RemoteConfirm,
    RemoteWaitlistCreate,
    StatusUpdate,
    WaitlistCreate,
    WaitlistRead,
    WaitlistStatus,
    WaitStatus,
)
from tablequeue.schemas.table_type import (
    AllocationStrategy,
    TableEfficiencyRead,
    TableEfficiencyReport,
    TableTypeRead,
    TurnoverRecommendation,
)
from tablequeue.schemas.capacity import CapacityForecastRead

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "CheckInRead",
    "CheckInRequest",
    "ExpireOverdueRead",
    "QueueEntryRead",
    "QueueRead",
    "RemoteConfirm",
    "RemoteWaitlistCreate",
    "StatusUpdate",
    "WaitlistCreate",
    "WaitlistRead",
    "WaitlistStatus",
    "WaitStatus",
    "AllocationStrategy",
    "TableEfficiencyRead",
    "TableEfficiencyReport",
    "TableTypeRead",
    "TurnoverRecommendation",
    "CapacityForecastRead",
]
