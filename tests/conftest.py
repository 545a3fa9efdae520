"""
Pytest configuration and fixtures.

This module provides fixtures that simulate a restaurant's evening service:
- A simple restaurant that quotes waits from its coarse status
- An advanced-queue restaurant with two-tops, four-tops and a booth
- A controllable clock so arrival windows can be tested exactly
- Recording fakes for the notification and analytics collaborators
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import AsyncGenerator, List, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tablequeue.database import Base
from tablequeue.models import (  # noqa: F401
    DailyAnalytics,
    HourlyAnalytics,
    Restaurant,
    TableAnalytics,
    TableType,
    WaitlistEntry,
)
from tablequeue.schemas.waitlist import WaitlistCreate
from tablequeue.services.notification_service import Notification, NotificationError
from tablequeue.services.queue_locks import RestaurantLocks
from tablequeue.services.queue_manager import QueueManager
from tablequeue.services.remote_checkin import RemoteCheckinHandler
from tablequeue.services.turnover_recorder import SeatingEvent
from tablequeue.services.wait_estimator import HistoricalSignals


# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# A Saturday evening
SERVICE_START = datetime(2026, 3, 14, 18, 0)


class FakeClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime = SERVICE_START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now += timedelta(minutes=minutes, seconds=seconds)
        return self.now


class RecordingNotifier:
    """Notification sender that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Notification] = []

    async def send(self, notification: Notification) -> None:
        if self.fail:
            raise NotificationError("gateway unavailable")
        self.sent.append(notification)


class RecordingSeatingSink:
    """Seating sink that remembers every hand-off."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[SeatingEvent] = []

    async def record_seating(self, event: SeatingEvent) -> None:
        if self.fail:
            raise RuntimeError("analytics store unavailable")
        self.events.append(event)


class StaticSignals:
    """Historical signals provider returning a fixed answer."""

    def __init__(self, signals: Optional[HistoricalSignals] = None):
        self.signals = signals
        self.calls: List[UUID] = []

    async def get_historical_signals(self, restaurant_id: UUID) -> Optional[HistoricalSignals]:
        self.calls.append(restaurant_id)
        return self.signals


def party(name: str = "Rivera", size: int = 2, **kwargs) -> WaitlistCreate:
    """Build a walk-in join request."""
    return WaitlistCreate(
        customer_name=name,
        party_size=size,
        phone_number=kwargs.pop("phone_number", "+15555550100"),
        **kwargs,
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def locks() -> RestaurantLocks:
    return RestaurantLocks(timeout=5)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def seating_sink() -> RecordingSeatingSink:
    return RecordingSeatingSink()


@pytest_asyncio.fixture
async def sample_restaurant(db_session: AsyncSession) -> Restaurant:
    """
    "The Golden Fork": quotes waits from its coarse status only.
    """
    restaurant = Restaurant(
        id=uuid4(),
        name="The Golden Fork",
        current_wait_status="available",
        custom_wait_time=0,
        use_advanced_queue=False,
    )
    db_session.add(restaurant)
    await db_session.commit()
    return restaurant


@pytest_asyncio.fixture
async def advanced_restaurant(db_session: AsyncSession) -> Restaurant:
    """
    "Harbor House": advanced queue with live table allocation.
    """
    restaurant = Restaurant(
        id=uuid4(),
        name="Harbor House",
        current_wait_status="available",
        custom_wait_time=0,
        use_advanced_queue=True,
    )
    db_session.add(restaurant)
    await db_session.commit()
    return restaurant


@pytest_asyncio.fixture
async def sample_table_types(
    db_session: AsyncSession,
    advanced_restaurant: Restaurant,
) -> list[TableType]:
    """
    Harbor House floor plan:
    - Two-top: 3 tables, fast turnover
    - Four-top: 2 tables
    - Booth: 1 six-seat booth, slow turnover
    """
    table_types = [
        TableType(
            id=uuid4(),
            restaurant_id=advanced_restaurant.id,
            name="Two-top",
            capacity=2,
            count=3,
            estimated_turnover_time=45,
            is_active=True,
            created_at=SERVICE_START - timedelta(days=30, minutes=3),
        ),
        TableType(
            id=uuid4(),
            restaurant_id=advanced_restaurant.id,
            name="Four-top",
            capacity=4,
            count=2,
            estimated_turnover_time=60,
            is_active=True,
            created_at=SERVICE_START - timedelta(days=30, minutes=2),
        ),
        TableType(
            id=uuid4(),
            restaurant_id=advanced_restaurant.id,
            name="Booth",
            capacity=6,
            count=1,
            estimated_turnover_time=75,
            is_active=True,
            created_at=SERVICE_START - timedelta(days=30, minutes=1),
        ),
    ]
    for table_type in table_types:
        db_session.add(table_type)
    await db_session.commit()
    return table_types


@pytest_asyncio.fixture
async def single_four_top(
    db_session: AsyncSession,
    advanced_restaurant: Restaurant,
) -> TableType:
    """One table type: two four-seat tables."""
    table_type = TableType(
        id=uuid4(),
        restaurant_id=advanced_restaurant.id,
        name="Four-top",
        capacity=4,
        count=2,
        estimated_turnover_time=60,
        is_active=True,
    )
    db_session.add(table_type)
    await db_session.commit()
    return table_type


@pytest.fixture
def queue_manager(
    db_session: AsyncSession,
    locks: RestaurantLocks,
    notifier: RecordingNotifier,
    seating_sink: RecordingSeatingSink,
    clock: FakeClock,
) -> QueueManager:
    return QueueManager(
        db_session,
        locks=locks,
        notifier=notifier,
        seating_sink=seating_sink,
        clock=clock,
    )


@pytest.fixture
def checkin_handler(queue_manager: QueueManager) -> RemoteCheckinHandler:
    return RemoteCheckinHandler(queue_manager)
