"""Per-restaurant mutual exclusion for queue read-modify-write cycles."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple
from uuid import UUID

from tablequeue.services.errors import StaleWriteConflictError


class RestaurantLocks:
    """
    One ``asyncio.Lock`` per restaurant id.

    Restaurants never share a lock, so queues at different restaurants
    proceed independently. Locks are bound to the event loop that created
    them and are recreated if a different loop asks for the same restaurant.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: Dict[UUID, Tuple[asyncio.AbstractEventLoop, asyncio.Lock]] = {}

    def get(self, restaurant_id: UUID) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        held = self._locks.get(restaurant_id)
        if held is None or held[0] is not loop:
            held = (loop, asyncio.Lock())
            self._locks[restaurant_id] = held
        return held[1]

    @asynccontextmanager
    async def hold(self, restaurant_id: UUID) -> AsyncIterator[None]:
        """Hold the restaurant's lock, giving up after ``timeout`` seconds."""
        lock = self.get(restaurant_id)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StaleWriteConflictError(
                f"Timed out waiting for the queue of restaurant {restaurant_id}"
            ) from e
        try:
            yield
        finally:
            lock.release()


_default_locks: Optional[RestaurantLocks] = None


def get_restaurant_locks() -> RestaurantLocks:
    """Process-wide lock registry shared by all request sessions."""
    global _default_locks
    if _default_locks is None:
        from tablequeue.config import get_settings
        _default_locks = RestaurantLocks(timeout=get_settings().queue_lock_timeout_seconds)
    return _default_locks
