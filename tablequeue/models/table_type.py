from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tablequeue.database import Base

if TYPE_CHECKING:
    from tablequeue.models.restaurant import Restaurant


class TableType(Base):
    """A restaurant's seating category (e.g. two-top, booth, bar)."""

    __tablename__ = "table_types"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)  # seats per table
    count: Mapped[int] = mapped_column(Integer, nullable=False)  # physical tables of this type
    estimated_turnover_time: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    # Relationships
    restaurant: Mapped["Restaurant"] = relationship(
        "Restaurant", back_populates="table_types"
    )

    def __repr__(self) -> str:
        return f"<TableType(id={self.id}, name={self.name}, capacity={self.capacity}x{self.count})>"
