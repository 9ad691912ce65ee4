"""Repository for Offer entities."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import case, delete, select, update

from kapkurtar.logging import get_logger
from kapkurtar.models.offer import EnrichedOffer, Offer, OfferDraft, discount_percent
from kapkurtar.storage.db_models import MerchantTable, OfferTable
from kapkurtar.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresOfferRepository(RepositoryBase[Offer]):
    """Offer repository using SQLAlchemy."""

    async def get_by_id(self, id: UUID) -> Optional[Offer]:
        """Retrieve offer by ID, bypassing any stale identity-map copy."""
        stmt = (
            select(OfferTable)
            .where(OfferTable.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_offer = result.scalar_one_or_none()

        if not db_offer:
            return None

        return self._to_domain_model(db_offer)

    async def create(
        self, entity: OfferDraft, merchant_id: UUID, expires_at: datetime
    ) -> Offer:
        """Create new offer with every unit available."""
        db_offer = OfferTable(
            merchant_id=merchant_id,
            title=entity.title,
            description=entity.description,
            original_price=entity.original_price,
            discounted_price=entity.discounted_price,
            quantity_total=entity.quantity,
            quantity_available=entity.quantity,
            pickup_start=entity.pickup_start,
            pickup_end=entity.pickup_end,
            image_url=entity.image_url,
            is_active=True,
            expires_at=expires_at,
        )

        self.session.add(db_offer)
        await self.session.flush()

        logger.info("offer_created", offer_id=str(db_offer.id), merchant_id=str(merchant_id))

        return self._to_domain_model(db_offer)

    async def apply_patch(
        self,
        id: UUID,
        values: dict[str, Any],
        new_quantity_total: Optional[int] = None,
    ) -> bool:
        """
        Write edited fields in one statement.

        A new quantity_total is applied as a delta to quantity_available so
        units reserved concurrently are never handed out twice. The update is
        refused (returns False) when the new total is below the units already
        reserved.
        """
        stmt = update(OfferTable).where(OfferTable.id == id)
        values = dict(values)
        if new_quantity_total is not None:
            stmt = stmt.where(
                OfferTable.quantity_total - OfferTable.quantity_available
                <= new_quantity_total
            )
            values["quantity_total"] = new_quantity_total
            values["quantity_available"] = (
                OfferTable.quantity_available + (new_quantity_total - OfferTable.quantity_total)
            )
        values["updated_at"] = datetime.utcnow()

        result = await self.session.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        updated = result.rowcount == 1

        if updated:
            logger.info("offer_updated", offer_id=str(id), fields=sorted(values))

        return updated

    async def set_active(self, id: UUID, active: bool) -> bool:
        """Toggle the is_active flag."""
        stmt = (
            update(OfferTable)
            .where(OfferTable.id == id)
            .values(is_active=active, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount:
            logger.info("offer_active_updated", offer_id=str(id), is_active=active)

        return result.rowcount == 1

    async def delete(self, id: UUID) -> bool:
        """Delete offer by ID."""
        stmt = delete(OfferTable).where(OfferTable.id == id).execution_options(
            synchronize_session=False
        )
        result = await self.session.execute(stmt)

        if result.rowcount:
            logger.info("offer_deleted", offer_id=str(id))

        return result.rowcount == 1

    async def reserve_units(self, id: UUID, quantity: int, now: datetime) -> bool:
        """
        Atomically decrement quantity_available with a floor check.

        One conditional UPDATE: it only matches an active, unexpired offer
        with at least `quantity` units left, so two concurrent callers can
        never both take the last unit.
        """
        stmt = (
            update(OfferTable)
            .where(OfferTable.id == id)
            .where(OfferTable.is_active.is_(True))
            .where(OfferTable.expires_at > now)
            .where(OfferTable.quantity_available >= quantity)
            .values(
                quantity_available=OfferTable.quantity_available - quantity,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        reserved = result.rowcount == 1

        if reserved:
            logger.info("quantity_decremented", offer_id=str(id), quantity_removed=quantity)

        return reserved

    async def release_units(self, id: UUID, quantity: int) -> bool:
        """Return units to an offer, never exceeding quantity_total."""
        restored = OfferTable.quantity_available + quantity
        stmt = (
            update(OfferTable)
            .where(OfferTable.id == id)
            .values(
                quantity_available=case(
                    (restored > OfferTable.quantity_total, OfferTable.quantity_total),
                    else_=restored,
                ),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount:
            logger.info("quantity_incremented", offer_id=str(id), quantity_added=quantity)

        return result.rowcount == 1

    async def get_offers_by_merchant(self, merchant_id: UUID) -> list[Offer]:
        """Get all offers for a merchant, including inactive and expired ones."""
        stmt = (
            select(OfferTable)
            .where(OfferTable.merchant_id == merchant_id)
            .order_by(OfferTable.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_offers = result.scalars().all()

        return [self._to_domain_model(db_offer) for db_offer in db_offers]

    async def get_active_enriched(self, now: datetime, limit: int = 100) -> list[EnrichedOffer]:
        """Reservable offers with merchant fields, newest first."""
        stmt = (
            self._enriched_select(now)
            .order_by(OfferTable.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)

        return [self._to_enriched(db_offer, db_merchant) for db_offer, db_merchant in result.all()]

    async def get_active_enriched_in_box(
        self,
        now: datetime,
        min_lat: float,
        max_lat: float,
        min_lon: Optional[float] = None,
        max_lon: Optional[float] = None,
    ) -> list[EnrichedOffer]:
        """Reservable offers whose merchant lies inside a lat/lon box."""
        stmt = (
            self._enriched_select(now)
            .where(MerchantTable.latitude.is_not(None))
            .where(MerchantTable.longitude.is_not(None))
            .where(MerchantTable.latitude.between(min_lat, max_lat))
        )
        if min_lon is not None and max_lon is not None:
            stmt = stmt.where(MerchantTable.longitude.between(min_lon, max_lon))

        result = await self.session.execute(stmt)

        return [self._to_enriched(db_offer, db_merchant) for db_offer, db_merchant in result.all()]

    async def get_expiring_offers(self, now: datetime, until: datetime) -> list[Offer]:
        """Reservable offers whose expiry falls within (now, until]."""
        stmt = (
            select(OfferTable)
            .where(OfferTable.is_active.is_(True))
            .where(OfferTable.quantity_available > 0)
            .where(OfferTable.expires_at > now)
            .where(OfferTable.expires_at <= until)
            .order_by(OfferTable.expires_at.asc())
        )
        result = await self.session.execute(stmt)
        db_offers = result.scalars().all()

        return [self._to_domain_model(db_offer) for db_offer in db_offers]

    def _enriched_select(self, now: datetime):
        return (
            select(OfferTable, MerchantTable)
            .join(MerchantTable, OfferTable.merchant_id == MerchantTable.id)
            .where(OfferTable.is_active.is_(True))
            .where(OfferTable.quantity_available > 0)
            .where(OfferTable.expires_at > now)
            .execution_options(populate_existing=True)
        )

    def _to_enriched(
        self, db_offer: OfferTable, db_merchant: MerchantTable
    ) -> EnrichedOffer:
        address = ", ".join(
            p for p in (db_merchant.street, db_merchant.city, db_merchant.postal_code) if p
        )
        original = Decimal(db_offer.original_price)
        discounted = Decimal(db_offer.discounted_price)
        return EnrichedOffer(
            id=db_offer.id,
            title=db_offer.title,
            description=db_offer.description or "",
            original_price=original,
            discounted_price=discounted,
            discount_percent=discount_percent(original, discounted),
            image_url=db_offer.image_url,
            pickup_start=db_offer.pickup_start,
            pickup_end=db_offer.pickup_end,
            quantity_available=db_offer.quantity_available,
            expires_at=db_offer.expires_at,
            merchant_id=db_merchant.id,
            merchant_name=db_merchant.company_name,
            merchant_logo=db_merchant.logo_url,
            merchant_address=address,
            latitude=db_merchant.latitude,
            longitude=db_merchant.longitude,
            created_at=db_offer.created_at,
        )

    def _to_domain_model(self, db_offer: OfferTable) -> Offer:
        """Convert database model to domain model."""
        return Offer(
            id=db_offer.id,
            merchant_id=db_offer.merchant_id,
            title=db_offer.title,
            description=db_offer.description or "",
            original_price=db_offer.original_price,
            discounted_price=db_offer.discounted_price,
            quantity_total=db_offer.quantity_total,
            quantity_available=db_offer.quantity_available,
            pickup_start=db_offer.pickup_start,
            pickup_end=db_offer.pickup_end,
            image_url=db_offer.image_url,
            is_active=db_offer.is_active,
            expires_at=db_offer.expires_at,
            created_at=db_offer.created_at,
            updated_at=db_offer.updated_at,
        )
