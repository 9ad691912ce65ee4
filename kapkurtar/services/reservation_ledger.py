"""Reservation ledger with atomic inventory management.

Creating a reservation and decrementing the offer's availability happen in
one transaction whose first statement is a conditional UPDATE, so the
database serializes concurrent claims on the last units. Status changes are
compare-and-set writes; cancellation returns units in the same transaction.
Notifications are sent only after commit.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from kapkurtar.errors import (
    AlreadyFinalized,
    Conflict,
    Forbidden,
    InsufficientQuantity,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from kapkurtar.logging import get_logger
from kapkurtar.logging.audit import AuditLogger
from kapkurtar.models.profile import Role
from kapkurtar.models.reservation import (
    Actor,
    Reservation,
    ReservationStatus,
    ReservationView,
)
from kapkurtar.security.permissions import PermissionChecker, is_valid_transition
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_merchant_repo import PostgresMerchantRepository
from kapkurtar.storage.postgres_offer_repo import PostgresOfferRepository
from kapkurtar.storage.postgres_profile_repo import PostgresProfileRepository
from kapkurtar.storage.postgres_reservation_repo import PostgresReservationRepository

from .notifications import NotificationDispatcher, NotificationEvent

logger = get_logger(__name__)

# Client-facing event sent when a reservation enters a status
STATUS_EVENTS = {
    ReservationStatus.CONFIRMED: NotificationEvent.RESERVATION_ACCEPTED,
    ReservationStatus.CANCELLED: NotificationEvent.RESERVATION_REJECTED,
    ReservationStatus.COMPLETED: NotificationEvent.RESERVATION_COMPLETED,
}


class ReservationLedger:
    """Creates reservations and drives their status transitions."""

    def __init__(
        self,
        db: Database,
        notifier: NotificationDispatcher,
        permissions: Optional[PermissionChecker] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.permissions = permissions or PermissionChecker()

    async def create(self, client_id: UUID, offer_id: UUID, quantity: int) -> Reservation:
        """
        Reserve `quantity` units of an offer for a client.

        Args:
            client_id: Reserving client's profile ID
            offer_id: Offer to reserve from
            quantity: Units to reserve (at least 1)

        Returns:
            The new pending reservation

        Raises:
            ValidationError: quantity below 1
            NotFound: offer or client profile does not exist
            InsufficientQuantity: not enough units, or offer inactive/expired
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        now = datetime.utcnow()
        async with self.db.session() as session:
            offer_repo = PostgresOfferRepository(session)

            # Must stay the first statement of the transaction
            reserved = await offer_repo.reserve_units(offer_id, quantity, now)
            offer = await offer_repo.get_by_id(offer_id)

            if not reserved:
                if offer is None:
                    raise NotFound("Offer not found", code="offer_not_found")
                self._reject(client_id, offer_id, quantity, offer, now)

            client = await PostgresProfileRepository(session).get_by_id(client_id)
            if client is None:
                raise NotFound("Client profile not found", code="profile_not_found")

            reservation = await PostgresReservationRepository(session).create(
                Reservation(
                    client_id=client_id,
                    merchant_id=offer.merchant_id,
                    offer_id=offer_id,
                    quantity=quantity,
                    status=ReservationStatus.PENDING,
                )
            )
            merchant = await PostgresMerchantRepository(session).get_by_id(offer.merchant_id)

        AuditLogger.log_reservation_created(
            actor_id=client_id,
            reservation_id=reservation.id,
            offer_id=offer_id,
            quantity=quantity,
        )
        logger.info(
            "reservation_created",
            reservation_id=str(reservation.id),
            offer_id=str(offer_id),
            quantity=quantity,
            remaining=offer.quantity_available,
        )

        if merchant:
            await self.notifier.notify(
                merchant.auth_id,
                NotificationEvent.NEW_RESERVATION,
                {
                    "reservation_id": reservation.id,
                    "offer_title": offer.title,
                    "quantity": quantity,
                    "client_name": client.display_name,
                },
            )

        return reservation

    def _reject(self, client_id, offer_id, quantity, offer, now) -> None:
        if not offer.is_active or offer.expires_at <= now:
            reason = "offer_unavailable"
            message = "This offer is no longer available"
        else:
            reason = "insufficient_quantity"
            message = f"Only {offer.quantity_available} units available"

        AuditLogger.log_reservation_rejected(
            actor_id=client_id, offer_id=offer_id, quantity=quantity, reason=reason
        )
        raise InsufficientQuantity(
            message,
            details={"reason": reason, "available": offer.quantity_available},
        )

    async def transition(
        self,
        reservation_id: UUID,
        actor: Actor,
        new_status: ReservationStatus,
    ) -> Reservation:
        """
        Move a reservation to `new_status`.

        Checks run in order: existence, terminal state (AlreadyFinalized,
        no side effects), party to the reservation, state-machine edge,
        role permission for the edge. Cancelling returns the reserved
        units to the offer in the same transaction.
        """
        async with self.db.session() as session:
            reservation_repo = PostgresReservationRepository(session)
            reservation = await reservation_repo.get_by_id(reservation_id)

            if reservation is None:
                raise NotFound("Reservation not found", code="reservation_not_found")

            current = reservation.status
            if current.is_terminal:
                raise AlreadyFinalized(
                    f"Reservation is already {current.value}",
                    details={"status": current.value},
                )

            if not self.permissions.is_party_to(actor, reservation):
                self._deny(actor, reservation_id, new_status)

            if not is_valid_transition(current, new_status):
                raise InvalidTransition(
                    f"Cannot change a {current.value} reservation to {new_status.value}",
                    details={"from": current.value, "to": new_status.value},
                )

            if not self.permissions.can_drive_edge(actor, current, new_status):
                self._deny(actor, reservation_id, new_status)

            if not await reservation_repo.compare_and_set_status(
                reservation_id, current, new_status
            ):
                latest = await reservation_repo.get_by_id(reservation_id)
                if latest is not None and latest.status.is_terminal:
                    raise AlreadyFinalized(
                        f"Reservation is already {latest.status.value}",
                        details={"status": latest.status.value},
                    )
                raise Conflict("Reservation changed concurrently; refresh and retry")

            offer_repo = PostgresOfferRepository(session)
            if new_status == ReservationStatus.CANCELLED:
                await offer_repo.release_units(reservation.offer_id, reservation.quantity)

            updated = await reservation_repo.get_by_id(reservation_id)
            offer = await offer_repo.get_by_id(reservation.offer_id)
            client = await PostgresProfileRepository(session).get_by_id(reservation.client_id)

        AuditLogger.log_reservation_transitioned(
            actor_id=actor.subject_id,
            reservation_id=reservation_id,
            from_status=current.value,
            to_status=new_status.value,
        )

        # A client cancelling their own reservation has no client-facing event
        if actor.role == Role.MERCHANT and client is not None:
            await self.notifier.notify(
                client.auth_id,
                STATUS_EVENTS[new_status],
                {
                    "reservation_id": reservation_id,
                    "offer_title": offer.title if offer else "",
                    "quantity": reservation.quantity,
                },
            )

        return updated

    def _deny(self, actor: Actor, reservation_id: UUID, new_status: ReservationStatus) -> None:
        AuditLogger.log_permission_denied(
            actor_id=actor.subject_id,
            resource_type="reservation",
            resource_id=reservation_id,
            attempted_action=f"transition_to_{new_status.value}",
        )
        raise Forbidden("You are not allowed to make this change to the reservation")

    async def list_for_client(self, client_id: UUID) -> list[ReservationView]:
        """A client's reservations, newest first."""
        async with self.db.session() as session:
            return await PostgresReservationRepository(session).list_for_client(client_id)

    async def list_for_merchant(self, merchant_id: UUID) -> list[ReservationView]:
        """A merchant's incoming reservations, newest first."""
        async with self.db.session() as session:
            return await PostgresReservationRepository(session).list_for_merchant(merchant_id)
