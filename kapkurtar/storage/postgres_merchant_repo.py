"""Repository for Merchant entities."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from kapkurtar.logging import get_logger
from kapkurtar.models.merchant import Merchant, MerchantInput
from kapkurtar.storage.db_models import MerchantTable
from kapkurtar.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresMerchantRepository(RepositoryBase[Merchant]):
    """Merchant repository using SQLAlchemy."""

    async def get_by_id(self, id: UUID) -> Optional[Merchant]:
        """Retrieve merchant by ID."""
        stmt = select(MerchantTable).where(MerchantTable.id == id)
        result = await self.session.execute(stmt)
        db_merchant = result.scalar_one_or_none()

        if not db_merchant:
            return None

        return self._to_domain_model(db_merchant)

    async def get_by_auth_id(self, auth_id: UUID) -> Optional[Merchant]:
        """Retrieve the merchant owned by a principal."""
        stmt = select(MerchantTable).where(MerchantTable.auth_id == auth_id)
        result = await self.session.execute(stmt)
        db_merchant = result.scalar_one_or_none()

        if not db_merchant:
            return None

        return self._to_domain_model(db_merchant)

    async def exists_for_auth_id(self, auth_id: UUID) -> bool:
        """Whether the principal owns a merchant account."""
        stmt = select(MerchantTable.id).where(MerchantTable.auth_id == auth_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def create(
        self, entity: MerchantInput, auth_id: UUID, default_timezone: str = "Europe/Istanbul"
    ) -> Merchant:
        """Create new merchant for a principal."""
        db_merchant = MerchantTable(
            auth_id=auth_id,
            company_name=entity.company_name,
            description=entity.description,
            street=entity.street,
            city=entity.city,
            postal_code=entity.postal_code,
            country=entity.country,
            phone=entity.phone,
            logo_url=entity.logo_url,
            latitude=entity.latitude,
            longitude=entity.longitude,
            timezone=entity.timezone or default_timezone,
        )

        self.session.add(db_merchant)
        await self.session.flush()

        logger.info(
            "merchant_created",
            merchant_id=str(db_merchant.id),
            company_name=entity.company_name,
        )

        return self._to_domain_model(db_merchant)

    async def set_push_token(self, auth_id: UUID, push_token: Optional[str]) -> bool:
        """Replace the stored push token. Returns False if no merchant exists."""
        stmt = (
            update(MerchantTable)
            .where(MerchantTable.auth_id == auth_id)
            .values(push_token=push_token, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_push_token(self, auth_id: UUID) -> Optional[str]:
        """Push token for a principal, if it owns a merchant with one."""
        stmt = select(MerchantTable.push_token).where(MerchantTable.auth_id == auth_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_domain_model(self, db_merchant: MerchantTable) -> Merchant:
        """Convert database model to domain model."""
        return Merchant(
            id=db_merchant.id,
            auth_id=db_merchant.auth_id,
            company_name=db_merchant.company_name,
            description=db_merchant.description,
            street=db_merchant.street,
            city=db_merchant.city,
            postal_code=db_merchant.postal_code,
            country=db_merchant.country,
            phone=db_merchant.phone,
            logo_url=db_merchant.logo_url,
            latitude=db_merchant.latitude,
            longitude=db_merchant.longitude,
            timezone=db_merchant.timezone,
            is_verified=db_merchant.is_verified,
            rating=db_merchant.rating,
            review_count=db_merchant.review_count,
            push_token=db_merchant.push_token,
            created_at=db_merchant.created_at,
            updated_at=db_merchant.updated_at,
        )
