"""Notification dispatcher.

Best-effort fan-out of lifecycle events to the in-app inbox and to push
tokens. Business transactions commit before notify() is called and never
observe its failures: every error is logged and swallowed here.
"""

from enum import Enum
from typing import Any, Iterable, Optional
from uuid import UUID

from kapkurtar.errors import NotFound
from kapkurtar.logging import get_logger
from kapkurtar.models.notification import Notification
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_merchant_repo import PostgresMerchantRepository
from kapkurtar.storage.postgres_notification_repo import PostgresNotificationRepository
from kapkurtar.storage.postgres_profile_repo import PostgresProfileRepository

from .push_client import ExpoPushClient

logger = get_logger(__name__)

INBOX_LIMIT = 50


class NotificationEvent(str, Enum):
    """Lifecycle events a principal can be notified about."""

    NEW_RESERVATION = "new_reservation"
    RESERVATION_ACCEPTED = "reservation_accepted"
    RESERVATION_REJECTED = "reservation_rejected"
    RESERVATION_COMPLETED = "reservation_completed"
    FAVORITE_OFFER_AVAILABLE = "favorite_offer_available"
    OFFER_EXPIRING = "offer_expiring"


def render_notification(
    event: NotificationEvent, payload: dict[str, Any]
) -> tuple[str, str]:
    """Fixed title/body template for an event, filled from payload fields."""
    offer_title = payload.get("offer_title", "")
    if event == NotificationEvent.NEW_RESERVATION:
        client_name = payload.get("client_name") or "A customer"
        return (
            "New reservation!",
            f'{client_name} reserved {payload.get("quantity", 1)} of "{offer_title}".',
        )
    if event == NotificationEvent.RESERVATION_ACCEPTED:
        return (
            "Your reservation is confirmed!",
            f'Your reservation for "{offer_title}" was accepted. '
            "Please pick it up during the pickup window.",
        )
    if event == NotificationEvent.RESERVATION_REJECTED:
        return (
            "Reservation cancelled",
            f'Unfortunately your reservation for "{offer_title}" was cancelled.',
        )
    if event == NotificationEvent.RESERVATION_COMPLETED:
        return (
            "Thank you!",
            f'You picked up "{offer_title}". You helped reduce food waste!',
        )
    if event == NotificationEvent.FAVORITE_OFFER_AVAILABLE:
        return (
            "New offer from a favorite store!",
            f'{payload.get("store_name", "A store")} added a new offer: "{offer_title}"',
        )
    if event == NotificationEvent.OFFER_EXPIRING:
        return (
            "Offer ending soon!",
            f'"{offer_title}" ends within the hour. Don\'t miss it!',
        )
    return "KapKurtar", "You have a new notification."


class NotificationDispatcher:
    """Records rendered events in the inbox and delivers them to push tokens."""

    def __init__(self, db: Database, push_client: Optional[ExpoPushClient] = None):
        self.db = db
        self.push_client = push_client

    async def _lookup_push_token(self, principal_id: UUID) -> Optional[str]:
        async with self.db.session() as session:
            token = await PostgresProfileRepository(session).get_push_token(principal_id)
            if token:
                return token
            return await PostgresMerchantRepository(session).get_push_token(principal_id)

    async def _record(
        self, principal_id: UUID, event: NotificationEvent, title: str, body: str
    ) -> Notification:
        async with self.db.session() as session:
            return await PostgresNotificationRepository(session).create(
                Notification(principal_id=principal_id, type=event.value, title=title, message=body)
            )

    async def notify(
        self,
        principal_id: UUID,
        event: NotificationEvent,
        payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Deliver one event to a principal.

        The rendered message is stored in the principal's inbox whether or
        not a push token exists. Returns True if a message was handed to the
        push service. Never raises.
        """
        payload = payload or {}
        title, body = render_notification(event, payload)

        try:
            await self._record(principal_id, event, title, body)
        except Exception as e:
            logger.warning(
                "notification_record_failed",
                principal_id=str(principal_id),
                event_type=event.value,
                error=str(e),
            )

        try:
            push_token = await self._lookup_push_token(principal_id)
            if not push_token:
                logger.debug(
                    "notification_skipped_no_token",
                    principal_id=str(principal_id),
                    event_type=event.value,
                )
                return False

            if self.push_client is None:
                logger.info(
                    "notification_push_disabled",
                    principal_id=str(principal_id),
                    event_type=event.value,
                )
                return False

            data = {"type": event.value, **{k: _jsonable(v) for k, v in payload.items()}}
            await self.push_client.send(push_token, title, body, data)

            logger.info(
                "notification_sent",
                principal_id=str(principal_id),
                event_type=event.value,
            )
            return True

        except Exception as e:
            logger.warning(
                "notification_failed",
                principal_id=str(principal_id),
                event_type=event.value,
                error=str(e),
            )
            return False

    async def notify_many(
        self,
        principal_ids: Iterable[UUID],
        event: NotificationEvent,
        payload: Optional[dict[str, Any]] = None,
    ) -> int:
        """Deliver the same event to several principals; returns how many were sent."""
        sent = 0
        for principal_id in principal_ids:
            if await self.notify(principal_id, event, payload):
                sent += 1
        return sent

    async def inbox(self, principal_id: UUID, limit: int = INBOX_LIMIT) -> list[Notification]:
        """The principal's stored notifications, newest first."""
        async with self.db.session() as session:
            return await PostgresNotificationRepository(session).list_for_principal(
                principal_id, limit=limit
            )

    async def mark_read(self, principal_id: UUID, notification_id: UUID) -> None:
        """Mark one of the principal's notifications as read."""
        async with self.db.session() as session:
            updated = await PostgresNotificationRepository(session).mark_read(
                notification_id, principal_id
            )

        if not updated:
            raise NotFound("Notification not found", code="notification_not_found")


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
