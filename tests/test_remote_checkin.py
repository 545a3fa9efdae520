"""Tests for remote joins, check-in and overdue expiry."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from conftest import SERVICE_START, FakeClock, party
from tablequeue.schemas.waitlist import RemoteWaitlistCreate
from tablequeue.services.errors import (
    DuplicateConfirmationCodeError,
    InvalidTransitionError,
    NotFoundError,
)
from tablequeue.services.queue_manager import QueueManager
from tablequeue.services.remote_checkin import (
    CODE_ALPHABET,
    RemoteCheckinHandler,
    generate_confirmation_code,
)


def remote_party(name: str = "Nakamura", size: int = 2, expected=None) -> RemoteWaitlistCreate:
    return RemoteWaitlistCreate(
        customer_name=name,
        party_size=size,
        phone_number="+15555550199",
        expected_arrival_time=expected,
    )


class ScriptedCodes:
    """Code factory that hands out a fixed sequence and records requested lengths."""

    def __init__(self, *codes: str):
        self.codes = list(codes)
        self.lengths = []

    def __call__(self, length: int) -> str:
        self.lengths.append(length)
        if len(self.codes) > 1:
            return self.codes.pop(0)
        return self.codes[0]


class TestConfirmationCodes:
    """Tests for confirmation code generation."""

    def test_default_length_and_alphabet(self):
        code = generate_confirmation_code()

        assert len(code) == 6
        assert set(code) <= set(CODE_ALPHABET)

    def test_alphabet_has_no_ambiguous_characters(self):
        for ch in "01ILO":
            assert ch not in CODE_ALPHABET

    def test_custom_length(self):
        assert len(generate_confirmation_code(9)) == 9

    async def test_collision_is_retried(
        self,
        queue_manager: QueueManager,
        sample_restaurant,
    ):
        codes = ScriptedCodes("HXK4P2", "HXK4P2", "M7QRT3")
        handler = RemoteCheckinHandler(queue_manager, code_factory=codes)

        first = await handler.request_remote_join(sample_restaurant.id, remote_party("First"))
        second = await handler.request_remote_join(sample_restaurant.id, remote_party("Second"))

        assert first.confirmation_code == "HXK4P2"
        assert second.confirmation_code == "M7QRT3"

    async def test_repeated_collisions_lengthen_code(
        self,
        queue_manager: QueueManager,
        sample_restaurant,
    ):
        await RemoteCheckinHandler(
            queue_manager, code_factory=ScriptedCodes("HXK4P2")
        ).request_remote_join(sample_restaurant.id, remote_party("First"))

        codes = ScriptedCodes("HXK4P2", "HXK4P2", "HXK4P2", "HXK4P2W")
        handler = RemoteCheckinHandler(queue_manager, code_factory=codes)

        entry = await handler.request_remote_join(sample_restaurant.id, remote_party("Second"))

        assert entry.confirmation_code == "HXK4P2W"
        assert codes.lengths == [6, 6, 6, 7]

    async def test_gives_up_after_configured_attempts(
        self,
        queue_manager: QueueManager,
        sample_restaurant,
    ):
        await RemoteCheckinHandler(
            queue_manager, code_factory=ScriptedCodes("HXK4P2")
        ).request_remote_join(sample_restaurant.id, remote_party("First"))

        codes = ScriptedCodes("HXK4P2")
        handler = RemoteCheckinHandler(queue_manager, code_factory=codes)

        with pytest.raises(DuplicateConfirmationCodeError):
            await handler.request_remote_join(sample_restaurant.id, remote_party("Second"))
        assert len(codes.lengths) == queue_manager.settings.confirmation_code_attempts

    async def test_code_of_finished_entry_can_be_reused(
        self,
        queue_manager: QueueManager,
        sample_restaurant,
    ):
        handler = RemoteCheckinHandler(queue_manager, code_factory=ScriptedCodes("HXK4P2"))
        first = await handler.request_remote_join(sample_restaurant.id, remote_party("First"))
        await queue_manager.transition(first.id, "cancelled")

        second = await handler.request_remote_join(sample_restaurant.id, remote_party("Second"))

        assert second.confirmation_code == "HXK4P2"


class TestRemoteJoin:
    """Tests for joining ahead of arrival."""

    async def test_entry_starts_pending_with_code(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        expected = clock() + timedelta(minutes=25)

        entry = await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=expected)
        )

        assert entry.status == "remote_pending"
        assert entry.is_remote is True
        assert len(entry.confirmation_code) == 6
        assert entry.expected_arrival_time == expected
        assert entry.arrived_at is None
        assert entry.queue_position == 1

    async def test_remote_entries_share_the_walk_in_queue(
        self,
        queue_manager: QueueManager,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await queue_manager.join(sample_restaurant.id, party("Walk-in"))
        clock.advance(minutes=1)

        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())

        assert entry.queue_position == 2
        assert sample_restaurant.current_wait_status == "short"

    async def test_unknown_restaurant(self, checkin_handler: RemoteCheckinHandler):
        with pytest.raises(NotFoundError):
            await checkin_handler.request_remote_join(uuid4(), remote_party())

    def test_contact_is_required(self):
        with pytest.raises(ValueError):
            RemoteWaitlistCreate(customer_name="Nakamura", party_size=2)


class TestConfirmRemote:
    """Tests for confirming a pending remote entry."""

    async def test_default_expected_arrival(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        clock.advance(minutes=5)

        confirmed = await checkin_handler.confirm_remote(entry.id)

        assert confirmed.status == "remote_confirmed"
        assert confirmed.expected_arrival_time == clock() + timedelta(minutes=30)

    async def test_explicit_expected_arrival(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        eta = clock() + timedelta(minutes=12)

        confirmed = await checkin_handler.confirm_remote(entry.id, eta)

        assert confirmed.expected_arrival_time == eta

    async def test_offset_expected_arrival_is_stored_as_utc(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        eastern = timezone(timedelta(hours=-5))

        confirmed = await checkin_handler.confirm_remote(
            entry.id, datetime(2026, 3, 14, 13, 20, tzinfo=eastern)
        )

        assert confirmed.expected_arrival_time == datetime(2026, 3, 14, 18, 20)
        assert confirmed.expected_arrival_time.tzinfo is None

        # Arriving at 18:10 UTC is on time, not five hours late
        clock.advance(minutes=10)
        result = await checkin_handler.check_in(entry.confirmation_code)
        assert result.is_late is False

    async def test_only_pending_entries_can_confirm(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        await checkin_handler.confirm_remote(entry.id)

        with pytest.raises(InvalidTransitionError):
            await checkin_handler.confirm_remote(entry.id)

    async def test_unknown_entry(self, checkin_handler: RemoteCheckinHandler):
        with pytest.raises(NotFoundError):
            await checkin_handler.confirm_remote(uuid4())


class TestCheckIn:
    """Tests for arrival check-in."""

    async def test_on_time_arrival(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=SERVICE_START + timedelta(minutes=30))
        )
        clock.advance(minutes=40)

        result = await checkin_handler.check_in(entry.confirmation_code)

        assert result.is_late is False
        assert result.entry.status == "waiting"
        assert result.entry.arrived_at == clock()
        assert result.entry.queue_position == 1

    async def test_late_arrival_is_flagged(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=SERVICE_START + timedelta(minutes=30))
        )
        clock.advance(minutes=50)

        result = await checkin_handler.check_in(entry.confirmation_code)

        assert result.is_late is True
        assert result.entry.status == "waiting"

    async def test_lateness_uses_default_window_without_expected_time(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        clock.advance(minutes=46)

        result = await checkin_handler.check_in(entry.confirmation_code)

        assert result.is_late is True

    async def test_code_lookup_ignores_case_and_whitespace(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())

        result = await checkin_handler.check_in(f" {entry.confirmation_code.lower()} ")

        assert result.entry.id == entry.id

    async def test_confirmed_entry_checks_in(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        await checkin_handler.confirm_remote(entry.id)

        result = await checkin_handler.check_in(entry.confirmation_code)

        assert result.entry.status == "waiting"

    async def test_keeps_queue_position(
        self,
        queue_manager: QueueManager,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await queue_manager.join(sample_restaurant.id, party("Early walk-in"))
        clock.advance(minutes=1)
        remote = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        clock.advance(minutes=1)
        await queue_manager.join(sample_restaurant.id, party("Late walk-in"))
        clock.advance(minutes=20)

        result = await checkin_handler.check_in(remote.confirmation_code)

        assert result.entry.queue_position == 2

    async def test_advanced_arrival_with_free_table_is_ready(
        self,
        queue_manager: QueueManager,
        advanced_restaurant,
        sample_table_types,
    ):
        handler = RemoteCheckinHandler(queue_manager)
        entry = await handler.request_remote_join(advanced_restaurant.id, remote_party(size=3))

        result = await handler.check_in(entry.confirmation_code)

        assert result.entry.status == "ready_to_seat"
        assert result.entry.table_type_id == sample_table_types[1].id

    async def test_advanced_arrival_behind_fitting_party_waits(
        self,
        queue_manager: QueueManager,
        advanced_restaurant,
        sample_table_types,
        clock: FakeClock,
    ):
        handler = RemoteCheckinHandler(queue_manager)
        await queue_manager.join(advanced_restaurant.id, party("Walk-in", 2))
        clock.advance(minutes=1)
        entry = await handler.request_remote_join(advanced_restaurant.id, remote_party(size=2))

        result = await handler.check_in(entry.confirmation_code)

        assert result.entry.status == "waiting"

    async def test_unknown_code(self, checkin_handler: RemoteCheckinHandler):
        with pytest.raises(NotFoundError):
            await checkin_handler.check_in("ZZZZZZ")

    async def test_code_scoped_to_other_restaurant(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        advanced_restaurant,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())

        with pytest.raises(NotFoundError):
            await checkin_handler.check_in(entry.confirmation_code, advanced_restaurant.id)

    async def test_second_check_in_is_rejected(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
    ):
        entry = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        await checkin_handler.check_in(entry.confirmation_code)

        with pytest.raises(InvalidTransitionError):
            await checkin_handler.check_in(entry.confirmation_code)


class TestExpireOverdue:
    """Tests for cancelling no-show remote entries."""

    async def test_overdue_entry_is_cancelled(
        self,
        queue_manager: QueueManager,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        remote = await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=SERVICE_START + timedelta(minutes=30))
        )
        clock.advance(minutes=1)
        walk_in = await queue_manager.join(sample_restaurant.id, party("Walk-in"))
        clock.advance(minutes=45)

        cancelled = await checkin_handler.expire_overdue(sample_restaurant.id)

        assert cancelled == 1
        assert (await queue_manager.get_entry(remote.id)).status == "cancelled"
        assert (await queue_manager.get_entry(remote.id)).cancelled_at == clock()
        assert (await queue_manager.get_entry(walk_in.id)).queue_position == 1

    async def test_second_run_is_a_no_op(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=SERVICE_START + timedelta(minutes=30))
        )
        clock.advance(minutes=46)

        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 1
        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 0

    async def test_grace_boundary_is_exclusive(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await checkin_handler.request_remote_join(
            sample_restaurant.id, remote_party(expected=SERVICE_START + timedelta(minutes=30))
        )
        clock.advance(minutes=45)

        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 0

    async def test_offset_arrival_time_is_compared_in_utc(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        # 18:30 at UTC+2 is 16:30 UTC, an hour and a half before the clock
        cest = timezone(timedelta(hours=2))
        remote = await checkin_handler.request_remote_join(
            sample_restaurant.id,
            remote_party(expected=datetime(2026, 3, 14, 18, 30, tzinfo=cest)),
        )

        assert remote.expected_arrival_time == datetime(2026, 3, 14, 16, 30)
        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 1

    async def test_missing_expected_time_uses_default_window(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        clock.advance(minutes=44)
        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 0

        clock.advance(minutes=2)
        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 1

    async def test_arrived_and_walk_in_entries_are_kept(
        self,
        queue_manager: QueueManager,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await queue_manager.join(sample_restaurant.id, party("Walk-in"))
        remote = await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        await checkin_handler.check_in(remote.confirmation_code)
        clock.advance(minutes=120)

        assert await checkin_handler.expire_overdue(sample_restaurant.id) == 0
        view = await queue_manager.get_queue(sample_restaurant.id)
        assert len(view.entries) == 2

    async def test_last_entry_expiring_resets_status(
        self,
        checkin_handler: RemoteCheckinHandler,
        sample_restaurant,
        clock: FakeClock,
    ):
        await checkin_handler.request_remote_join(sample_restaurant.id, remote_party())
        clock.advance(minutes=60)

        await checkin_handler.expire_overdue(sample_restaurant.id)

        assert sample_restaurant.current_wait_status == "available"

    async def test_unknown_restaurant(self, checkin_handler: RemoteCheckinHandler):
        with pytest.raises(NotFoundError):
            await checkin_handler.expire_overdue(uuid4())
