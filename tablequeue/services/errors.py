"""Exceptions raised by the waitlist engine."""
from __future__ import annotations


class WaitlistError(Exception):
    """Base exception for waitlist engine errors."""
    pass


class NotFoundError(WaitlistError):
    """Raised when an entry, restaurant or table type does not exist."""
    pass


class InvalidTransitionError(WaitlistError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str, reason: str = ""):
        self.current = current
        self.requested = requested
        message = f"Cannot move entry from '{current}' to '{requested}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DuplicateConfirmationCodeError(WaitlistError):
    """Raised when a generated confirmation code is already held by a live entry."""
    pass


class StaleWriteConflictError(WaitlistError):
    """Raised when a queue update lost a concurrent write race twice in a row."""
    pass
