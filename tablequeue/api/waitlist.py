"""
REST API endpoints for the waitlist queue.
"""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from tablequeue.api.deps import get_checkin_handler, get_queue_manager, http_error
from tablequeue.schemas.waitlist import (
    CheckInRead,
    CheckInRequest,
    ExpireOverdueRead,
    QueueEntryRead,
    QueueRead,
    RemoteConfirm,
    RemoteWaitlistCreate,
    StatusUpdate,
    WaitlistCreate,
    WaitlistRead,
)
from tablequeue.services.errors import WaitlistError
from tablequeue.services.queue_manager import QueueManager
from tablequeue.services.remote_checkin import RemoteCheckinHandler

router = APIRouter(prefix="/api/v1", tags=["waitlist"])


@router.get("/restaurants/{restaurant_id}/waitlist", response_model=QueueRead)
async def get_queue(
    restaurant_id: UUID,
    queue: QueueManager = Depends(get_queue_manager),
) -> QueueRead:
    """
    Get the active queue for a restaurant.

    Entries are in position order with how long each party has waited.
    """
    try:
        view = await queue.get_queue(restaurant_id)
    except WaitlistError as exc:
        raise http_error(exc)

    entries = [
        QueueEntryRead.model_validate({
            **WaitlistRead.model_validate(e).model_dump(),
            "minutes_waiting": view.minutes_waiting.get(e.id, 0),
        })
        for e in view.entries
    ]
    return QueueRead(
        restaurant_id=restaurant_id,
        total_active=len(entries),
        current_wait_status=view.restaurant.current_wait_status,
        entries=entries,
    )


@router.post("/restaurants/{restaurant_id}/waitlist", response_model=WaitlistRead, status_code=201)
async def join_waitlist(
    restaurant_id: UUID,
    data: WaitlistCreate,
    queue: QueueManager = Depends(get_queue_manager),
) -> WaitlistRead:
    """Add a walk-in party to the back of the queue."""
    try:
        entry = await queue.join(restaurant_id, data)
    except WaitlistError as exc:
        raise http_error(exc)
    return WaitlistRead.model_validate(entry)


@router.post("/restaurants/{restaurant_id}/waitlist/remote", response_model=WaitlistRead, status_code=201)
async def join_waitlist_remote(
    restaurant_id: UUID,
    data: RemoteWaitlistCreate,
    handler: RemoteCheckinHandler = Depends(get_checkin_handler),
) -> WaitlistRead:
    """
    Join the queue before arriving.

    The response carries the confirmation code to show at check-in.
    """
    try:
        entry = await handler.request_remote_join(restaurant_id, data)
    except WaitlistError as exc:
        raise http_error(exc)
    return WaitlistRead.model_validate(entry)


@router.post("/restaurants/{restaurant_id}/waitlist/expire-overdue", response_model=ExpireOverdueRead)
async def expire_overdue(
    restaurant_id: UUID,
    handler: RemoteCheckinHandler = Depends(get_checkin_handler),
) -> ExpireOverdueRead:
    """Cancel remote entries past their arrival grace window."""
    try:
        cancelled = await handler.expire_overdue(restaurant_id)
    except WaitlistError as exc:
        raise http_error(exc)
    return ExpireOverdueRead(restaurant_id=restaurant_id, cancelled_count=cancelled)


@router.post("/waitlist/check-in", response_model=CheckInRead)
async def check_in(
    data: CheckInRequest,
    handler: RemoteCheckinHandler = Depends(get_checkin_handler),
) -> CheckInRead:
    """Check in a remote party on arrival using its confirmation code."""
    try:
        result = await handler.check_in(data.confirmation_code, data.restaurant_id)
    except WaitlistError as exc:
        raise http_error(exc)
    return CheckInRead(entry=WaitlistRead.model_validate(result.entry), is_late=result.is_late)


@router.get("/waitlist/{entry_id}", response_model=WaitlistRead)
async def get_entry(
    entry_id: UUID,
    queue: QueueManager = Depends(get_queue_manager),
) -> WaitlistRead:
    """Get a waitlist entry by ID."""
    try:
        entry = await queue.get_entry(entry_id)
    except WaitlistError as exc:
        raise http_error(exc)
    return WaitlistRead.model_validate(entry)


@router.post("/waitlist/{entry_id}/confirm", response_model=WaitlistRead)
async def confirm_remote(
    entry_id: UUID,
    data: RemoteConfirm,
    handler: RemoteCheckinHandler = Depends(get_checkin_handler),
) -> WaitlistRead:
    """Confirm a remote party is on the way."""
    try:
        entry = await handler.confirm_remote(entry_id, data.expected_arrival_time)
    except WaitlistError as exc:
        raise http_error(exc)
    return WaitlistRead.model_validate(entry)


@router.patch("/waitlist/{entry_id}/status", response_model=WaitlistRead)
async def update_status(
    entry_id: UUID,
    data: StatusUpdate,
    queue: QueueManager = Depends(get_queue_manager),
) -> WaitlistRead:
    """
    Move an entry to a new status.

    Returns 409 if the move is not allowed from the entry's current status.
    """
    try:
        entry = await queue.transition(
            entry_id,
            data.status,
            table_type_id=data.table_type_id,
            message=data.message,
        )
    except WaitlistError as exc:
        raise http_error(exc)
    return WaitlistRead.model_validate(entry)
