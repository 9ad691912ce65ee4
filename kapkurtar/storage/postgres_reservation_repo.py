"""Repository for Reservation entities."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update

from kapkurtar.logging import get_logger
from kapkurtar.models.reservation import (
    Reservation,
    ReservationClientSummary,
    ReservationMerchantSummary,
    ReservationOfferSummary,
    ReservationStatus,
    ReservationView,
)
from kapkurtar.storage.db_models import (
    MerchantTable,
    OfferTable,
    ProfileTable,
    ReservationTable,
)
from kapkurtar.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresReservationRepository(RepositoryBase[Reservation]):
    """Reservation repository using SQLAlchemy."""

    async def get_by_id(self, id: UUID) -> Optional[Reservation]:
        """Retrieve reservation by ID."""
        stmt = (
            select(ReservationTable)
            .where(ReservationTable.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_reservation = result.scalar_one_or_none()

        if not db_reservation:
            return None

        return self._to_domain_model(db_reservation)

    async def create(self, entity: Reservation) -> Reservation:
        """Insert a new reservation row."""
        db_reservation = ReservationTable(
            id=entity.id,
            client_id=entity.client_id,
            merchant_id=entity.merchant_id,
            offer_id=entity.offer_id,
            quantity=entity.quantity,
            status=entity.status,
        )

        self.session.add(db_reservation)
        await self.session.flush()

        logger.info(
            "reservation_inserted",
            reservation_id=str(db_reservation.id),
            offer_id=str(entity.offer_id),
            client_id=str(entity.client_id),
            quantity=entity.quantity,
        )

        return self._to_domain_model(db_reservation)

    async def compare_and_set_status(
        self,
        id: UUID,
        expected: ReservationStatus,
        new_status: ReservationStatus,
    ) -> bool:
        """Write new_status only if the row still holds `expected`."""
        stmt = (
            update(ReservationTable)
            .where(ReservationTable.id == id)
            .where(ReservationTable.status == expected)
            .values(status=new_status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_for_offer(self, offer_id: UUID) -> int:
        """Number of reservation rows referencing an offer, cancelled ones included."""
        stmt = select(func.count(ReservationTable.id)).where(
            ReservationTable.offer_id == offer_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def reserved_quantity_for_offer(self, offer_id: UUID) -> int:
        """Sum of quantities over non-cancelled reservations of an offer."""
        stmt = select(func.coalesce(func.sum(ReservationTable.quantity), 0)).where(
            ReservationTable.offer_id == offer_id,
            ReservationTable.status != ReservationStatus.CANCELLED,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_for_client(self, client_id: UUID, limit: int = 100) -> list[ReservationView]:
        """Client's reservations, newest first, with offer and merchant fields."""
        stmt = (
            select(ReservationTable, OfferTable, MerchantTable)
            .join(OfferTable, ReservationTable.offer_id == OfferTable.id)
            .join(MerchantTable, ReservationTable.merchant_id == MerchantTable.id)
            .where(ReservationTable.client_id == client_id)
            .order_by(ReservationTable.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)

        return [
            self._to_view(
                db_res,
                db_offer,
                merchant=ReservationMerchantSummary(
                    company_name=db_merchant.company_name,
                    city=db_merchant.city,
                    logo_url=db_merchant.logo_url,
                ),
            )
            for db_res, db_offer, db_merchant in result.all()
        ]

    async def list_for_merchant(self, merchant_id: UUID, limit: int = 100) -> list[ReservationView]:
        """Merchant's reservations, newest first, with offer and client fields."""
        stmt = (
            select(ReservationTable, OfferTable, ProfileTable)
            .join(OfferTable, ReservationTable.offer_id == OfferTable.id)
            .join(ProfileTable, ReservationTable.client_id == ProfileTable.id)
            .where(ReservationTable.merchant_id == merchant_id)
            .order_by(ReservationTable.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)

        return [
            self._to_view(
                db_res,
                db_offer,
                client=ReservationClientSummary(
                    first_name=db_profile.first_name,
                    last_name=db_profile.last_name,
                ),
            )
            for db_res, db_offer, db_profile in result.all()
        ]

    def _to_view(
        self,
        db_reservation: ReservationTable,
        db_offer: OfferTable,
        merchant: Optional[ReservationMerchantSummary] = None,
        client: Optional[ReservationClientSummary] = None,
    ) -> ReservationView:
        return ReservationView(
            **self._to_domain_model(db_reservation).model_dump(),
            offer=ReservationOfferSummary(
                title=db_offer.title,
                description=db_offer.description or "",
                discounted_price=Decimal(db_offer.discounted_price),
                image_url=db_offer.image_url,
            ),
            merchant=merchant,
            client=client,
        )

    def _to_domain_model(self, db_reservation: ReservationTable) -> Reservation:
        """Convert database model to domain model."""
        return Reservation(
            id=db_reservation.id,
            client_id=db_reservation.client_id,
            merchant_id=db_reservation.merchant_id,
            offer_id=db_reservation.offer_id,
            quantity=db_reservation.quantity,
            status=db_reservation.status,
            created_at=db_reservation.created_at,
            updated_at=db_reservation.updated_at,
        )
