"""Offer catalog service.

Merchant-side offer lifecycle: create, edit, activate/deactivate, delete.
Every write is ownership-checked against the acting merchant.
"""

from datetime import datetime, time, timezone
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from kapkurtar.errors import Conflict, Forbidden, NotFound
from kapkurtar.logging import get_logger
from kapkurtar.logging.audit import AuditLogger
from kapkurtar.models.offer import Offer, OfferDraft, OfferPatch
from kapkurtar.security.permissions import PermissionChecker
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_favorite_repo import PostgresFavoriteRepository
from kapkurtar.storage.postgres_merchant_repo import PostgresMerchantRepository
from kapkurtar.storage.postgres_offer_repo import PostgresOfferRepository
from kapkurtar.storage.postgres_reservation_repo import PostgresReservationRepository

from .notifications import NotificationDispatcher, NotificationEvent
from .offer_validation import OfferValidator

logger = get_logger(__name__)


def end_of_day_utc(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """
    Last second of the current local day in `tz_name`, as naive UTC.

    Unknown zone names fall back to UTC.
    """
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone", timezone=tz_name)
        tz = ZoneInfo("UTC")

    now_utc = (now or datetime.utcnow()).replace(tzinfo=timezone.utc)
    local_day = now_utc.astimezone(tz).date()
    local_end = datetime.combine(local_day, time(23, 59, 59), tzinfo=tz)
    return local_end.astimezone(timezone.utc).replace(tzinfo=None)


class OfferCatalog:
    """Creates and maintains a merchant's offers."""

    def __init__(
        self,
        db: Database,
        notifier: NotificationDispatcher,
        validator: Optional[OfferValidator] = None,
        permissions: Optional[PermissionChecker] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.validator = validator or OfferValidator()
        self.permissions = permissions or PermissionChecker()

    async def create(self, merchant_id: UUID, draft: OfferDraft) -> Offer:
        """
        Publish a new offer with every unit available.

        Without an explicit expiry the offer expires at the end of the
        merchant's local day. Followers of the merchant are notified after
        the offer is committed.
        """
        self.validator.validate_draft(draft).raise_for_errors()

        async with self.db.session() as session:
            merchant = await PostgresMerchantRepository(session).get_by_id(merchant_id)
            if merchant is None:
                raise NotFound("Merchant not found", code="merchant_not_found")

            expires_at = draft.expires_at or end_of_day_utc(merchant.timezone)
            offer = await PostgresOfferRepository(session).create(
                draft, merchant_id=merchant_id, expires_at=expires_at
            )
            followers = await PostgresFavoriteRepository(session).get_follower_auth_ids(
                merchant_id
            )

        AuditLogger.log_offer_created(
            actor_id=merchant_id,
            offer_id=offer.id,
            offer_title=offer.title,
            quantity_total=offer.quantity_total,
        )

        if followers:
            await self.notifier.notify_many(
                followers,
                NotificationEvent.FAVORITE_OFFER_AVAILABLE,
                {
                    "offer_id": offer.id,
                    "offer_title": offer.title,
                    "store_name": merchant.company_name,
                },
            )

        return offer

    async def update(self, offer_id: UUID, merchant_id: UUID, patch: OfferPatch) -> Offer:
        """
        Edit an offer the merchant owns.

        A new quantity_total shifts quantity_available by the same delta;
        it cannot drop below the units already reserved.
        """
        async with self.db.session() as session:
            repo = PostgresOfferRepository(session)
            offer = await self._get_owned(repo, offer_id, merchant_id, "update")

            self.validator.validate_patch(offer, patch).raise_for_errors()

            values = patch.model_dump(exclude_unset=True, exclude_none=True)
            new_total = values.pop("quantity_total", None)
            if not values and new_total is None:
                return offer

            if not await repo.apply_patch(offer_id, values, new_quantity_total=new_total):
                reserved = offer.quantity_total - offer.quantity_available
                raise Conflict(
                    f"Quantity cannot be lower than the {reserved} units already reserved",
                    code="quantity_below_reserved",
                    details={"reserved": reserved},
                )

            updated = await repo.get_by_id(offer_id)

        changes = dict(values)
        if new_total is not None:
            changes["quantity_total"] = new_total
        AuditLogger.log_offer_edited(
            actor_id=merchant_id,
            offer_id=offer_id,
            changes={k: str(v) for k, v in changes.items()},
        )

        return updated

    async def set_active(self, offer_id: UUID, merchant_id: UUID, active: bool) -> Offer:
        """Activate or deactivate an owned offer."""
        async with self.db.session() as session:
            repo = PostgresOfferRepository(session)
            await self._get_owned(repo, offer_id, merchant_id, "set_active")
            await repo.set_active(offer_id, active)
            updated = await repo.get_by_id(offer_id)

        AuditLogger.log_offer_active_changed(actor_id=merchant_id, offer_id=offer_id, active=active)

        return updated

    async def delete(self, offer_id: UUID, merchant_id: UUID) -> None:
        """Delete an owned offer that no reservation has ever referenced."""
        async with self.db.session() as session:
            repo = PostgresOfferRepository(session)
            await self._get_owned(repo, offer_id, merchant_id, "delete")

            reservations = await PostgresReservationRepository(session).count_for_offer(offer_id)
            if reservations:
                raise Conflict(
                    "Offers with reservations cannot be deleted; deactivate it instead",
                    code="offer_has_reservations",
                    details={"reservations": reservations},
                )

            await repo.delete(offer_id)

        AuditLogger.log_offer_deleted(actor_id=merchant_id, offer_id=offer_id)

    async def _get_owned(
        self,
        repo: PostgresOfferRepository,
        offer_id: UUID,
        merchant_id: UUID,
        action: str,
    ) -> Offer:
        offer = await repo.get_by_id(offer_id)
        if offer is None:
            raise NotFound("Offer not found", code="offer_not_found")

        if not self.permissions.owns_offer(merchant_id, offer):
            AuditLogger.log_permission_denied(
                actor_id=merchant_id,
                resource_type="offer",
                resource_id=offer_id,
                attempted_action=action,
            )
            raise Forbidden("You can only manage your own offers")

        return offer
