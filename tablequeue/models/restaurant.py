from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
import uuid

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tablequeue.database import Base

if TYPE_CHECKING:
    from tablequeue.models.table_type import TableType
    from tablequeue.models.waitlist import WaitlistEntry


class Restaurant(Base):
    """Restaurant whose seating queue is managed by the engine."""

    __tablename__ = "restaurants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Coarse, cached summary of the queue (available, short, long, very_long, closed)
    current_wait_status: Mapped[str] = mapped_column(String(20), default="available")
    custom_wait_time: Mapped[int] = mapped_column(Integer, default=0)  # minutes, overrides status when > 0

    use_advanced_queue: Mapped[bool] = mapped_column(Boolean, default=False)
    table_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # fallback seat count

    # Optimistic lock for the per-restaurant active set
    queue_version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    table_types: Mapped[List["TableType"]] = relationship(
        "TableType", back_populates="restaurant", cascade="all, delete-orphan"
    )
    waitlist_entries: Mapped[List["WaitlistEntry"]] = relationship(
        "WaitlistEntry", back_populates="restaurant", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": queue_version}

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name={self.name}, status={self.current_wait_status})>"
