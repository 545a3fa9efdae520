"""Aggregated historical analytics.

Written by the downstream aggregation pipeline (and, for table usage, by the
seating hand-off). The queue engine only reads these rows.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
import uuid

from sqlalchemy import Date, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tablequeue.database import Base


class DailyAnalytics(Base):
    """Per-day restaurant rollup."""

    __tablename__ = "daily_analytics"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "service_date", name="uq_daily_analytics_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False
    )
    service_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_customers: Mapped[int] = mapped_column(Integer, default=0)
    total_parties: Mapped[int] = mapped_column(Integer, default=0)
    average_party_size: Mapped[float] = mapped_column(Numeric(4, 2), default=0)
    average_wait_time: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    peak_wait_time: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    cancelled_waitlist: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class HourlyAnalytics(Base):
    """Per-hour restaurant rollup."""

    __tablename__ = "hourly_analytics"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "service_date", "hour", name="uq_hourly_analytics_slot"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False
    )
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-23

    customers: Mapped[int] = mapped_column(Integer, default=0)
    average_wait_time: Mapped[int] = mapped_column(Integer, default=0)
    parties_seated: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class TableAnalytics(Base):
    """Per-day usage of one table type, fed by seating hand-offs."""

    __tablename__ = "table_analytics"
    __table_args__ = (
        UniqueConstraint(
            "restaurant_id", "table_type_id", "service_date",
            name="uq_table_analytics_day"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("restaurants.id"), nullable=False
    )
    table_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("table_types.id"), nullable=False
    )
    service_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_usage: Mapped[int] = mapped_column(Integer, default=0)
    average_turnover_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    turnover_samples: Mapped[int] = mapped_column(Integer, default=0)
    last_seated_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    average_wait_before_seating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    wait_samples: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )
