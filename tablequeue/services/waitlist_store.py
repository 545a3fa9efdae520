"""Persistence access for the queue engine."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.models.restaurant import Restaurant
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.schemas.waitlist import ACTIVE_STATUSES, WaitlistStatus


class WaitlistStore:
    """
    CRUD operations over restaurants, table types and waitlist entries.

    Reads that feed a queue decision use ``populate_existing`` so a
    long-lived session never decides on stale identity-map state. Writes
    flush immediately for the same reason.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_restaurant(self, restaurant_id: UUID) -> Optional[Restaurant]:
        stmt = (
            select(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all_restaurant_ids(self) -> list[UUID]:
        result = await self.session.execute(select(Restaurant.id))
        return list(result.scalars().all())

    async def update_restaurant(
        self,
        restaurant: Restaurant,
        current_wait_status: str,
        custom_wait_time: Optional[int] = None,
    ) -> Restaurant:
        """Store the coarse wait summary; always bumps the queue version."""
        restaurant.current_wait_status = current_wait_status
        if custom_wait_time is not None:
            restaurant.custom_wait_time = custom_wait_time
        restaurant.updated_at = datetime.utcnow()
        await self.session.flush()
        return restaurant

    async def get_active_entries(self, restaurant_id: UUID) -> list[WaitlistEntry]:
        """Active entries in queue order."""
        stmt = (
            select(WaitlistEntry)
            .where(WaitlistEntry.restaurant_id == restaurant_id)
            .where(WaitlistEntry.status.in_(ACTIVE_STATUSES))
            .order_by(WaitlistEntry.created_at, WaitlistEntry.queue_position)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_entries_by_status(
        self,
        restaurant_id: UUID,
        statuses: Iterable[str],
    ) -> list[WaitlistEntry]:
        stmt = (
            select(WaitlistEntry)
            .where(WaitlistEntry.restaurant_id == restaurant_id)
            .where(WaitlistEntry.status.in_(list(statuses)))
            .order_by(WaitlistEntry.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_entry(self, entry_id: UUID) -> Optional[WaitlistEntry]:
        stmt = (
            select(WaitlistEntry)
            .where(WaitlistEntry.id == entry_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_entry_by_confirmation_code(
        self,
        confirmation_code: str,
        restaurant_id: Optional[UUID] = None,
    ) -> Optional[WaitlistEntry]:
        """
        Look up an entry by its confirmation code.

        Codes are only unique among live entries, so a live match wins over
        older terminal entries that happened to reuse the code.
        """
        live_first = case(
            (WaitlistEntry.status.in_(ACTIVE_STATUSES), 0),
            else_=1,
        )
        stmt = (
            select(WaitlistEntry)
            .where(WaitlistEntry.confirmation_code == confirmation_code.strip().upper())
            .order_by(live_first, WaitlistEntry.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        if restaurant_id is not None:
            stmt = stmt.where(WaitlistEntry.restaurant_id == restaurant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def confirmation_code_in_use(self, confirmation_code: str) -> bool:
        stmt = (
            select(WaitlistEntry.id)
            .where(WaitlistEntry.confirmation_code == confirmation_code)
            .where(WaitlistEntry.status.in_(ACTIVE_STATUSES))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def insert_entry(self, entry: WaitlistEntry) -> WaitlistEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def update_entry(
        self,
        entry: WaitlistEntry,
        patch: Mapping[str, Any],
    ) -> WaitlistEntry:
        for field, value in patch.items():
            setattr(entry, field, value)
        await self.session.flush()
        return entry

    async def get_table_types(self, restaurant_id: UUID) -> list[TableType]:
        """Table types in the order staff configured them, inactive ones included."""
        stmt = (
            select(TableType)
            .where(TableType.restaurant_id == restaurant_id)
            .order_by(TableType.created_at, TableType.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_table_type(self, table_type_id: UUID) -> Optional[TableType]:
        result = await self.session.execute(
            select(TableType).where(TableType.id == table_type_id)
        )
        return result.scalar_one_or_none()

    async def get_seated_entries(
        self,
        restaurant_id: UUID,
        since: Optional[datetime] = None,
    ) -> Sequence[WaitlistEntry]:
        """Seated entries, oldest seating first."""
        stmt = (
            select(WaitlistEntry)
            .where(WaitlistEntry.restaurant_id == restaurant_id)
            .where(WaitlistEntry.status == WaitlistStatus.SEATED.value)
            .order_by(WaitlistEntry.seated_at)
        )
        if since is not None:
            stmt = stmt.where(WaitlistEntry.seated_at >= since)
        result = await self.session.execute(stmt)
        return result.scalars().all()
