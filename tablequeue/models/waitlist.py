from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tablequeue.database import Base

if TYPE_CHECKING:
    from tablequeue.models.restaurant import Restaurant
    from tablequeue.models.table_type import TableType


class WaitlistEntry(Base):
    """One party's place in a restaurant's seating queue."""

    __tablename__ = "waitlist_entries"
    __table_args__ = (
        Index("ix_waitlist_restaurant_status", "restaurant_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False
    )

    # Party
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dietary_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Queue
    status: Mapped[str] = mapped_column(String(20), default="waiting")
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False)
    estimated_wait_time: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    table_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("table_types.id"), nullable=True
    )

    # Remote check-in
    is_remote: Mapped[bool] = mapped_column(Boolean, default=False)
    confirmation_code: Mapped[Optional[str]] = mapped_column(String(12), nullable=True, index=True)
    expected_arrival_time: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    arrived_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    notified_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    seated_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Relationships
    restaurant: Mapped["Restaurant"] = relationship(
        "Restaurant", back_populates="waitlist_entries"
    )
    table_type: Mapped[Optional["TableType"]] = relationship("TableType")

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry(id={self.id}, name={self.customer_name}, "
            f"size={self.party_size}, status={self.status}, position={self.queue_position})>"
        )
