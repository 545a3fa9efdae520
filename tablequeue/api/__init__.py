# API routes
from tablequeue.api.waitlist import router as waitlist_router
from tablequeue.api.capacity import router as capacity_router


__all__ = [
    "waitlist_router",
    "capacity_router",
]
