"""
Outbound "table ready" notifications.

Delivery itself (SMS, WhatsApp, email) belongs to an external gateway; the
engine only hands off ``{phone_number, message}``. Senders may raise; the
queue manager logs the failure and keeps the transition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

import httpx

from tablequeue.config import Settings, get_settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when the delivery gateway rejects or drops a notification."""
    pass


@dataclass(frozen=True)
class Notification:
    """A message for one waiting party."""

    phone_number: str
    message: str
    entry_id: Optional[UUID] = None
    restaurant_id: Optional[UUID] = None


class NotificationSender(Protocol):
    async def send(self, notification: Notification) -> None:
        ...


def table_ready_message(customer_name: str, restaurant_name: str) -> str:
    return (
        f"Hi {customer_name}, your table at {restaurant_name} is ready! "
        "Please head to the host stand."
    )


class LoggingNotifier:
    """Sender used when no delivery gateway is configured."""

    async def send(self, notification: Notification) -> None:
        logger.info(
            "Notification for entry %s to %s: %s",
            notification.entry_id,
            notification.phone_number,
            notification.message,
        )


class WebhookNotifier:
    """Posts notifications as JSON to a delivery gateway."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def send(self, notification: Notification) -> None:
        payload = {
            "phone_number": notification.phone_number,
            "message": notification.message,
            "entry_id": str(notification.entry_id) if notification.entry_id else None,
            "restaurant_id": str(notification.restaurant_id) if notification.restaurant_id else None,
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NotificationError(f"Notification gateway timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Notification gateway error: {e}") from e

        logger.info("Notification for entry %s delivered to gateway", notification.entry_id)


def get_notifier(settings: Optional[Settings] = None) -> NotificationSender:
    """Build the configured sender (webhook if a URL is set, else log-only)."""
    settings = settings or get_settings()
    if settings.notification_webhook_url:
        return WebhookNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LoggingNotifier()
