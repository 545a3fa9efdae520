"""Service that owns a restaurant's waitlist queue."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tablequeue.config import Settings, get_settings
from tablequeue.models.restaurant import Restaurant
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.table_type import AllocationStrategy
from tablequeue.schemas.waitlist import (
    TERMINAL_STATUSES,
    WaitlistBase,
    WaitlistStatus,
    WaitStatus,
)
from tablequeue.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleWriteConflictError,
    WaitlistError,
)
from tablequeue.services.historical_signals import (
    HistoricalSignalsProvider,
    observed_turnover_minutes,
)
from tablequeue.services.notification_service import (
    LoggingNotifier,
    Notification,
    NotificationSender,
    table_ready_message,
)
from tablequeue.services.queue_locks import RestaurantLocks, get_restaurant_locks
from tablequeue.services.table_allocator import (
    AvailableTable,
    TableAssignment,
    allocate,
    build_available_tables,
    match_preferred,
)
from tablequeue.services.turnover_recorder import SeatingEvent, SeatingSink
from tablequeue.services.wait_estimator import HistoricalSignals, estimate
from tablequeue.services.waitlist_store import WaitlistStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

S = WaitlistStatus

ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    S.WAITING.value: frozenset({S.NOTIFIED.value, S.READY_TO_SEAT.value, S.CANCELLED.value}),
    S.NOTIFIED.value: frozenset({S.SEATED.value, S.CANCELLED.value}),
    S.REMOTE_PENDING.value: frozenset({S.REMOTE_CONFIRMED.value, S.WAITING.value, S.CANCELLED.value}),
    S.REMOTE_CONFIRMED.value: frozenset({S.WAITING.value, S.CANCELLED.value}),
    S.READY_TO_SEAT.value: frozenset({S.SEATED.value, S.CANCELLED.value}),
    S.SEATED.value: frozenset(),
    S.CANCELLED.value: frozenset(),
}

REMOTE_STATUSES = frozenset({S.REMOTE_PENDING.value, S.REMOTE_CONFIRMED.value})

# Already called to a table; they no longer compete for the next one
CALLED_STATUSES = frozenset({S.NOTIFIED.value, S.READY_TO_SEAT.value})

# Coarse status thresholds on the active count
LONG_WAIT_THRESHOLD = 10


def coarse_wait_status(active_count: int) -> str:
    """Map an active-entry count to the cached restaurant summary."""
    if active_count <= 0:
        return WaitStatus.AVAILABLE.value
    if active_count >= LONG_WAIT_THRESHOLD:
        return WaitStatus.LONG.value
    return WaitStatus.SHORT.value


def validate_transition(current: str, requested: str) -> None:
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if requested not in allowed:
        reason = "status is terminal" if current in TERMINAL_STATUSES else "not an allowed transition"
        raise InvalidTransitionError(current, requested, reason)


@dataclass
class QueueSnapshot:
    """Consistent view of one restaurant's queue, read inside its lock."""

    restaurant: Restaurant
    active: List[WaitlistEntry]
    table_types: List[TableType]
    seated: List[WaitlistEntry]
    observed_turnover: Dict[UUID, float] = field(default_factory=dict)


@dataclass
class QueueView:
    """Active queue with how long each party has been waiting."""

    restaurant: Restaurant
    entries: List[WaitlistEntry]
    minutes_waiting: Dict[UUID, int]


class QueueManager:
    """
    Service for joining, advancing and leaving a restaurant's queue.

    Every read-modify-write of a restaurant's active set runs inside that
    restaurant's lock and commits before the lock is released. Outbound
    hand-offs (notifications, seating analytics) happen after release.
    """

    def __init__(
        self,
        session: AsyncSession,
        locks: Optional[RestaurantLocks] = None,
        notifier: Optional[NotificationSender] = None,
        seating_sink: Optional[SeatingSink] = None,
        signals: Optional[HistoricalSignalsProvider] = None,
        strategy: Optional[AllocationStrategy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.store = WaitlistStore(session)
        self.settings = settings or get_settings()
        self.locks = locks or get_restaurant_locks()
        self.notifier = notifier or LoggingNotifier()
        self.seating_sink = seating_sink
        self.signals = signals
        self.strategy = AllocationStrategy(strategy or self.settings.default_allocation_strategy)
        self.clock = clock or datetime.utcnow

    # ------------------------------------------------------------------
    # Critical section
    # ------------------------------------------------------------------

    async def serialized(
        self,
        restaurant_id: UUID,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run ``operation`` under the restaurant's lock and commit it.

        A concurrent writer that bumped the restaurant's queue version first
        causes a rollback and one retry; a second loss is surfaced.
        """
        for attempt in (1, 2):
            async with self.locks.hold(restaurant_id):
                try:
                    result = await operation()
                    await self.session.commit()
                    return result
                except StaleDataError:
                    await self.session.rollback()
                    logger.warning(
                        "Stale queue write for restaurant %s (attempt %d)",
                        restaurant_id,
                        attempt,
                    )
                except WaitlistError:
                    raise
                except Exception:
                    await self.session.rollback()
                    raise

        raise StaleWriteConflictError(
            f"Queue for restaurant {restaurant_id} changed concurrently; try again"
        )

    async def require_restaurant(self, restaurant_id: UUID) -> Restaurant:
        restaurant = await self.store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")
        return restaurant

    async def require_entry(self, entry_id: UUID) -> WaitlistEntry:
        entry = await self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Waitlist entry {entry_id} not found")
        return entry

    async def snapshot(self, restaurant: Restaurant, now: datetime) -> QueueSnapshot:
        active = await self.store.get_active_entries(restaurant.id)
        table_types = await self.store.get_table_types(restaurant.id)

        seated: List[WaitlistEntry] = []
        if table_types:
            longest = max(t.estimated_turnover_time for t in table_types)
            seated = list(await self.store.get_seated_entries(
                restaurant.id, since=now - timedelta(minutes=longest)
            ))

        observed: Dict[UUID, float] = {}
        if restaurant.use_advanced_queue and self.strategy == AllocationStrategy.OPTIMIZE_TURNOVER:
            since = (now - timedelta(days=self.settings.historical_lookback_days)).date()
            observed = await observed_turnover_minutes(self.session, restaurant.id, since)

        return QueueSnapshot(
            restaurant=restaurant,
            active=active,
            table_types=table_types,
            seated=seated,
            observed_turnover=observed,
        )

    async def refresh_wait_status(self, restaurant: Restaurant, active_count: int) -> None:
        """Re-derive the coarse wait summary. Always bumps the queue version."""
        if restaurant.current_wait_status == WaitStatus.CLOSED.value:
            await self.store.update_restaurant(restaurant, restaurant.current_wait_status)
        elif active_count <= 0:
            await self.store.update_restaurant(
                restaurant, WaitStatus.AVAILABLE.value, custom_wait_time=0
            )
        else:
            await self.store.update_restaurant(restaurant, coarse_wait_status(active_count))

    async def renumber(self, restaurant: Restaurant) -> List[WaitlistEntry]:
        """Reassign positions 1..N to the active set in arrival order."""
        active = await self.store.get_active_entries(restaurant.id)
        for position, entry in enumerate(active, start=1):
            if entry.queue_position != position:
                entry.queue_position = position
        await self.session.flush()
        await self.refresh_wait_status(restaurant, len(active))
        return active

    # ------------------------------------------------------------------
    # Table suggestions
    # ------------------------------------------------------------------

    def suggest_table(
        self,
        snapshot: QueueSnapshot,
        party_size: int,
        now: datetime,
        preferred_name: Optional[str] = None,
    ) -> Optional[TableAssignment]:
        if not snapshot.restaurant.use_advanced_queue:
            return None
        available = build_available_tables(
            snapshot.table_types, snapshot.seated, now, snapshot.observed_turnover
        )
        return (
            match_preferred(party_size, available, preferred_name)
            or allocate(party_size, available, self.strategy)
        )

    def unclaimed_tables(
        self,
        snapshot: QueueSnapshot,
        now: datetime,
        for_entry_id: Optional[UUID] = None,
    ) -> List[AvailableTable]:
        """
        Free tables minus those promised to parties marked ready to seat.

        The promise held by ``for_entry_id`` itself is not subtracted.
        """
        claims = Counter(
            other.table_type_id
            for other in snapshot.active
            if other.id != for_entry_id
            and other.status == S.READY_TO_SEAT.value
            and other.table_type_id is not None
        )
        return [
            replace(table, available_count=table.available_count - claims[table.table_type_id])
            for table in build_available_tables(
                snapshot.table_types, snapshot.seated, now, snapshot.observed_turnover
            )
            if table.available_count > claims[table.table_type_id]
        ]

    def ready_assignment(
        self,
        entry: WaitlistEntry,
        snapshot: QueueSnapshot,
        now: datetime,
    ) -> Optional[TableAssignment]:
        """
        Table this entry may be seated at right now, if any.

        An entry is ready to seat when a free table type fits it and no
        earlier entry still waiting for a table would also fit that table.
        """
        if not snapshot.restaurant.use_advanced_queue:
            return None

        available = self.unclaimed_tables(snapshot, now, for_entry_id=entry.id)

        assignment = None
        if entry.table_type_id is not None:
            for table in available:
                if table.table_type_id == entry.table_type_id and table.capacity >= entry.party_size:
                    assignment = allocate(entry.party_size, [table], self.strategy)
                    break
        if assignment is None:
            assignment = allocate(entry.party_size, available, self.strategy)
        if assignment is None:
            return None

        for other in snapshot.active:
            if other.id == entry.id or other.status in CALLED_STATUSES:
                continue
            if other.queue_position < entry.queue_position and other.party_size <= assignment.capacity:
                return None
        return assignment

    # ------------------------------------------------------------------
    # Join
    # ------------------------------------------------------------------

    async def join(self, restaurant_id: UUID, party: WaitlistBase) -> WaitlistEntry:
        """Add a walk-in party to the back of the queue."""
        return await self.enroll(restaurant_id, party)

    async def enroll(
        self,
        restaurant_id: UUID,
        party: WaitlistBase,
        status: str = S.WAITING.value,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> WaitlistEntry:
        """
        Create an active entry at the back of the queue.

        Position, wait estimate and table suggestion are computed from the
        same locked snapshot the entry is inserted into.
        """
        historical = await self._historical_signals(restaurant_id)

        async def operation() -> WaitlistEntry:
            restaurant = await self.require_restaurant(restaurant_id)
            now = self.clock()
            snapshot = await self.snapshot(restaurant, now)

            wait = estimate(
                restaurant,
                snapshot.active,
                snapshot.table_types,
                party.party_size,
                historical=historical,
                now=now,
                seated_entries=snapshot.seated,
            )
            suggestion = self.suggest_table(
                snapshot, party.party_size, now, party.preferred_table_type
            )

            entry = WaitlistEntry(
                restaurant_id=restaurant.id,
                customer_name=party.customer_name,
                party_size=party.party_size,
                phone_number=party.phone_number,
                email=party.email,
                notes=party.notes,
                dietary_requirements=party.dietary_requirements,
                status=status,
                queue_position=len(snapshot.active) + 1,
                estimated_wait_time=wait,
                table_type_id=suggestion.table_type_id if suggestion else None,
                created_at=now,
                **dict(extra or {}),
            )
            await self.store.insert_entry(entry)
            await self.refresh_wait_status(restaurant, len(snapshot.active) + 1)
            return entry

        entry = await self.serialized(restaurant_id, operation)
        logger.info(
            "Party of %d joined restaurant %s at position %d (%s, ~%d min)",
            entry.party_size,
            restaurant_id,
            entry.queue_position,
            entry.status,
            entry.estimated_wait_time,
        )
        return entry

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        entry_id: UUID,
        new_status: str,
        table_type_id: Optional[UUID] = None,
        message: Optional[str] = None,
    ) -> WaitlistEntry:
        """
        Move an entry to a new status.

        Args:
            entry_id: Entry to move
            new_status: Target status
            table_type_id: Table type the party is seated at (``seated`` only)
            message: Custom notification text (``notified`` only)

        Raises:
            NotFoundError: Unknown entry or table type
            InvalidTransitionError: The move is not allowed from the current status
        """
        new_status = WaitlistStatus(new_status).value
        restaurant_id = (await self.require_entry(entry_id)).restaurant_id
        restaurant_name: List[str] = []

        async def operation() -> WaitlistEntry:
            entry = await self.require_entry(entry_id)
            restaurant = await self.require_restaurant(entry.restaurant_id)
            validate_transition(entry.status, new_status)

            now = self.clock()
            patch: Dict[str, Any] = {"status": new_status}

            if new_status == S.NOTIFIED.value:
                patch["notified_at"] = now
            elif new_status == S.WAITING.value:
                patch["arrived_at"] = entry.arrived_at or now
            elif new_status == S.READY_TO_SEAT.value:
                snapshot = await self.snapshot(restaurant, now)
                assignment = self.ready_assignment(entry, snapshot, now)
                if assignment is None:
                    reason = (
                        "advanced queue is disabled"
                        if not restaurant.use_advanced_queue
                        else "no free table fits this party ahead of earlier entries"
                    )
                    raise InvalidTransitionError(entry.status, new_status, reason)
                patch["table_type_id"] = assignment.table_type_id
            elif new_status == S.SEATED.value:
                snapshot = await self.snapshot(restaurant, now)
                patch["table_type_id"] = await self._seating_table_type(
                    entry, snapshot, now, table_type_id
                )
                patch["seated_at"] = now
            elif new_status == S.CANCELLED.value:
                patch["cancelled_at"] = now

            await self.store.update_entry(entry, patch)

            if new_status in TERMINAL_STATUSES:
                await self.renumber(restaurant)
            else:
                active = await self.store.get_active_entries(restaurant.id)
                await self.refresh_wait_status(restaurant, len(active))

            restaurant_name.append(restaurant.name)
            return entry

        entry = await self.serialized(restaurant_id, operation)
        logger.info("Entry %s moved to %s", entry.id, entry.status)

        if new_status == S.NOTIFIED.value:
            await self._notify(entry, restaurant_name[-1], message)
        elif new_status == S.SEATED.value:
            await self._hand_off_seating(entry)
        return entry

    async def _seating_table_type(
        self,
        entry: WaitlistEntry,
        snapshot: QueueSnapshot,
        now: datetime,
        requested_id: Optional[UUID],
    ) -> Optional[UUID]:
        """
        Resolve and check the table type a party is being seated at.

        Without an explicit table type the entry's suggestion is used while
        it is still free, otherwise a table is allocated afresh. Tables
        promised to other ready parties are never handed out.
        """
        available = {
            t.table_type_id: t
            for t in self.unclaimed_tables(snapshot, now, for_entry_id=entry.id)
        }

        if requested_id is not None:
            table_type = await self.store.get_table_type(requested_id)
            if table_type is None or table_type.restaurant_id != entry.restaurant_id:
                raise NotFoundError(
                    f"Table type {requested_id} not found for restaurant {entry.restaurant_id}"
                )
            if table_type.capacity < entry.party_size:
                raise InvalidTransitionError(
                    entry.status, S.SEATED.value,
                    f"{table_type.name} seats {table_type.capacity}, party is {entry.party_size}",
                )
            if requested_id not in available:
                raise InvalidTransitionError(
                    entry.status, S.SEATED.value, f"no free {table_type.name} table"
                )
            return requested_id

        suggested = entry.table_type_id
        if suggested is not None and suggested in available and available[suggested].capacity >= entry.party_size:
            return suggested

        fallback = allocate(entry.party_size, list(available.values()), self.strategy)
        if fallback is not None:
            return fallback.table_type_id

        if snapshot.table_types:
            logger.warning(
                "Seating entry %s without a table type: no free table fits party of %d",
                entry.id,
                entry.party_size,
            )
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_entry(self, entry_id: UUID) -> WaitlistEntry:
        return await self.require_entry(entry_id)

    async def get_queue(self, restaurant_id: UUID) -> QueueView:
        restaurant = await self.require_restaurant(restaurant_id)
        entries = sorted(
            await self.store.get_active_entries(restaurant_id),
            key=lambda e: e.queue_position,
        )
        now = self.clock()
        waiting = {
            e.id: max(0, int((now - e.created_at).total_seconds() // 60))
            for e in entries
        }
        return QueueView(restaurant=restaurant, entries=entries, minutes_waiting=waiting)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    async def _historical_signals(self, restaurant_id: UUID) -> Optional[HistoricalSignals]:
        if self.signals is None:
            return None
        try:
            return await self.signals.get_historical_signals(restaurant_id)
        except Exception:
            logger.exception("Historical signals unavailable for restaurant %s", restaurant_id)
            return None

    async def _notify(
        self,
        entry: WaitlistEntry,
        restaurant_name: str,
        message: Optional[str],
    ) -> None:
        if not entry.phone_number:
            logger.info("Entry %s has no phone number; skipping notification", entry.id)
            return

        notification = Notification(
            phone_number=entry.phone_number,
            message=message or table_ready_message(entry.customer_name, restaurant_name),
            entry_id=entry.id,
            restaurant_id=entry.restaurant_id,
        )
        try:
            await self.notifier.send(notification)
        except Exception:
            logger.exception("Notification for entry %s failed", entry.id)

    async def _hand_off_seating(self, entry: WaitlistEntry) -> None:
        if self.seating_sink is None:
            return

        event = SeatingEvent(
            restaurant_id=entry.restaurant_id,
            table_type_id=entry.table_type_id,
            seated_at=entry.seated_at,
            arrived_at=entry.arrived_at,
        )
        try:
            await self.seating_sink.record_seating(event)
        except Exception:
            logger.exception("Seating hand-off for entry %s failed", entry.id)

