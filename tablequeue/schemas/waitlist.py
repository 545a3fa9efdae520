from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


class WaitlistStatus(str, Enum):
    WAITING = "waiting"
    NOTIFIED = "notified"
    REMOTE_PENDING = "remote_pending"
    REMOTE_CONFIRMED = "remote_confirmed"
    READY_TO_SEAT = "ready_to_seat"
    SEATED = "seated"
    CANCELLED = "cancelled"


# Statuses that hold a queue position
ACTIVE_STATUSES = frozenset({
    WaitlistStatus.WAITING.value,
    WaitlistStatus.NOTIFIED.value,
    WaitlistStatus.REMOTE_PENDING.value,
    WaitlistStatus.REMOTE_CONFIRMED.value,
    WaitlistStatus.READY_TO_SEAT.value,
})

TERMINAL_STATUSES = frozenset({
    WaitlistStatus.SEATED.value,
    WaitlistStatus.CANCELLED.value,
})


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert offset-aware input to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class WaitStatus(str, Enum):
    """Coarse restaurant-level wait summary."""

    AVAILABLE = "available"
    SHORT = "short"
    LONG = "long"
    VERY_LONG = "very_long"
    CLOSED = "closed"


class WaitlistBase(BaseModel):
    """Base schema for a party joining the queue."""

    customer_name: str = Field(..., min_length=1, max_length=100)
    party_size: int = Field(..., ge=1, le=50)
    phone_number: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None
    notes: Optional[str] = None
    dietary_requirements: Optional[str] = None
    preferred_table_type: Optional[str] = Field(None, max_length=100)


class WaitlistCreate(WaitlistBase):
    """Schema for a walk-in (local) join."""

    pass


class RemoteWaitlistCreate(WaitlistBase):
    """Schema for joining the queue before arriving at the restaurant."""

    expected_arrival_time: Optional[datetime] = None

    @field_validator("expected_arrival_time")
    @classmethod
    def arrival_in_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def require_contact(self) -> "RemoteWaitlistCreate":
        if not self.phone_number and not self.email:
            raise ValueError("phone_number or email is required for remote entries")
        return self


class RemoteConfirm(BaseModel):
    """Schema for confirming a remote entry is on its way."""

    expected_arrival_time: Optional[datetime] = None

    @field_validator("expected_arrival_time")
    @classmethod
    def arrival_in_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class CheckInRequest(BaseModel):
    """Schema for checking in on arrival with a confirmation code."""

    confirmation_code: str = Field(..., min_length=4, max_length=12)
    restaurant_id: Optional[UUID] = None


class StatusUpdate(BaseModel):
    """Schema for a staff-driven status transition."""

    status: WaitlistStatus
    table_type_id: Optional[UUID] = None
    message: Optional[str] = Field(None, max_length=480)


class WaitlistRead(BaseModel):
    """Schema for reading a waitlist entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    restaurant_id: UUID
    customer_name: str
    party_size: int
    phone_number: Optional[str]
    email: Optional[str]
    notes: Optional[str]
    dietary_requirements: Optional[str]
    status: str
    queue_position: int
    estimated_wait_time: int
    table_type_id: Optional[UUID]
    is_remote: bool
    confirmation_code: Optional[str]
    expected_arrival_time: Optional[datetime]
    arrived_at: Optional[datetime]
    created_at: datetime
    notified_at: Optional[datetime]
    seated_at: Optional[datetime]
    cancelled_at: Optional[datetime]


class CheckInRead(BaseModel):
    """Result of a remote check-in."""

    entry: WaitlistRead
    is_late: bool


class QueueEntryRead(WaitlistRead):
    """An active entry as shown on the host stand."""

    minutes_waiting: int = 0


class QueueRead(BaseModel):
    """Active queue for a restaurant, in position order."""

    restaurant_id: UUID
    total_active: int
    current_wait_status: str
    entries: List[QueueEntryRead]


class ExpireOverdueRead(BaseModel):
    """Result of an overdue-expiry sweep."""

    restaurant_id: UUID
    cancelled_count: int
