"""Remote queue joins, arrival check-in and no-show expiry."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from tablequeue.config import Settings
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.waitlist import RemoteWaitlistCreate, WaitlistStatus, to_naive_utc
from tablequeue.services.errors import (
    DuplicateConfirmationCodeError,
    InvalidTransitionError,
    NotFoundError,
)
from tablequeue.services.queue_manager import REMOTE_STATUSES, QueueManager

logger = logging.getLogger(__name__)

# No 0/O, 1/I/L: codes are read aloud and typed on phones
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

# Collisions at one length lengthen the next attempts
ATTEMPTS_PER_LENGTH = 3


def generate_confirmation_code(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


@dataclass
class CheckInResult:
    """Outcome of checking in on arrival."""

    entry: WaitlistEntry
    is_late: bool


class RemoteCheckinHandler:
    """
    Service for parties that join before they arrive.

    Shares the queue manager's session, locks and clock so remote entries
    live in the same queue as walk-ins.
    """

    def __init__(
        self,
        queue: QueueManager,
        code_factory: Optional[Callable[[int], str]] = None,
    ):
        self.queue = queue
        self.store = queue.store
        self.code_factory = code_factory or generate_confirmation_code

    @property
    def settings(self) -> Settings:
        return self.queue.settings

    @property
    def grace(self) -> timedelta:
        return timedelta(minutes=self.settings.remote_grace_minutes)

    def effective_arrival(self, entry: WaitlistEntry) -> datetime:
        """Expected arrival, or the default arrival window after joining."""
        if entry.expected_arrival_time is not None:
            return entry.expected_arrival_time
        return entry.created_at + timedelta(minutes=self.settings.default_arrival_minutes)

    async def _claim_code(self, code: str) -> str:
        if await self.store.confirmation_code_in_use(code):
            raise DuplicateConfirmationCodeError(f"Confirmation code {code} is already in use")
        return code

    async def new_confirmation_code(self) -> str:
        """Generate a code no live entry holds, retrying on collision."""
        length = self.settings.confirmation_code_length
        attempts = self.settings.confirmation_code_attempts

        for attempt in range(attempts):
            code = self.code_factory(length + attempt // ATTEMPTS_PER_LENGTH)
            try:
                return await self._claim_code(code)
            except DuplicateConfirmationCodeError:
                logger.debug("Confirmation code collision on attempt %d", attempt + 1)

        raise DuplicateConfirmationCodeError(
            f"Could not generate a unique confirmation code in {attempts} attempts"
        )

    async def request_remote_join(
        self,
        restaurant_id: UUID,
        party: RemoteWaitlistCreate,
    ) -> WaitlistEntry:
        """Join the queue ahead of arrival; the entry starts ``remote_pending``."""
        code = await self.new_confirmation_code()
        entry = await self.queue.enroll(
            restaurant_id,
            party,
            status=WaitlistStatus.REMOTE_PENDING.value,
            extra={
                "is_remote": True,
                "confirmation_code": code,
                "expected_arrival_time": to_naive_utc(party.expected_arrival_time),
            },
        )
        logger.info("Remote entry %s issued confirmation code %s", entry.id, code)
        return entry

    async def confirm_remote(
        self,
        entry_id: UUID,
        expected_arrival_time: Optional[datetime] = None,
    ) -> WaitlistEntry:
        """Confirm a pending remote entry is on its way."""
        restaurant_id = (await self.queue.require_entry(entry_id)).restaurant_id

        async def operation() -> WaitlistEntry:
            entry = await self.queue.require_entry(entry_id)
            requested = WaitlistStatus.REMOTE_CONFIRMED.value
            if entry.status != WaitlistStatus.REMOTE_PENDING.value:
                raise InvalidTransitionError(entry.status, requested, "entry is not awaiting confirmation")

            now = self.queue.clock()
            arrival = to_naive_utc(expected_arrival_time) or now + timedelta(
                minutes=self.settings.default_arrival_minutes
            )
            await self.store.update_entry(entry, {
                "status": requested,
                "expected_arrival_time": arrival,
            })
            return entry

        entry = await self.queue.serialized(restaurant_id, operation)
        logger.info("Remote entry %s confirmed, expected at %s", entry.id, entry.expected_arrival_time)
        return entry

    async def check_in(
        self,
        confirmation_code: str,
        restaurant_id: Optional[UUID] = None,
    ) -> CheckInResult:
        """
        Mark a remote party as arrived.

        The entry keeps the queue position it was given when it joined. Late
        arrivals still check in; ``is_late`` flags them for staff.

        Raises:
            NotFoundError: No entry holds this code
            InvalidTransitionError: The entry is not awaiting arrival
        """
        found = await self.store.get_entry_by_confirmation_code(confirmation_code, restaurant_id)
        if found is None:
            raise NotFoundError(f"No waitlist entry with confirmation code {confirmation_code}")

        async def operation() -> CheckInResult:
            entry = await self.queue.require_entry(found.id)
            if entry.status not in REMOTE_STATUSES:
                raise InvalidTransitionError(
                    entry.status, WaitlistStatus.WAITING.value, "entry is not awaiting arrival"
                )

            restaurant = await self.queue.require_restaurant(entry.restaurant_id)
            now = self.queue.clock()
            is_late = now > self.effective_arrival(entry) + self.grace

            snapshot = await self.queue.snapshot(restaurant, now)
            assignment = self.queue.ready_assignment(entry, snapshot, now)

            patch = {"arrived_at": now, "status": WaitlistStatus.WAITING.value}
            if assignment is not None:
                patch["status"] = WaitlistStatus.READY_TO_SEAT.value
                patch["table_type_id"] = assignment.table_type_id

            await self.store.update_entry(entry, patch)
            await self.queue.refresh_wait_status(restaurant, len(snapshot.active))
            return CheckInResult(entry=entry, is_late=is_late)

        result = await self.queue.serialized(found.restaurant_id, operation)
        if result.is_late:
            logger.warning("Entry %s checked in late", result.entry.id)
        logger.info("Entry %s checked in as %s", result.entry.id, result.entry.status)
        return result

    async def expire_overdue(self, restaurant_id: UUID) -> int:
        """
        Cancel remote entries that are past their arrival grace window.

        Safe to run repeatedly; a second run finds nothing to cancel.

        Returns:
            Number of entries cancelled
        """
        async def operation() -> int:
            restaurant = await self.queue.require_restaurant(restaurant_id)
            now = self.queue.clock()

            candidates = await self.store.get_entries_by_status(restaurant_id, REMOTE_STATUSES)
            overdue = [e for e in candidates if self.effective_arrival(e) + self.grace < now]
            if not overdue:
                return 0

            for entry in overdue:
                await self.store.update_entry(entry, {
                    "status": WaitlistStatus.CANCELLED.value,
                    "cancelled_at": now,
                })
            await self.queue.renumber(restaurant)
            return len(overdue)

        cancelled = await self.queue.serialized(restaurant_id, operation)
        if cancelled:
            logger.info("Expired %d overdue remote entries for restaurant %s", cancelled, restaurant_id)
        return cancelled
