"""Repository for client favorite merchants."""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite

from kapkurtar.logging import get_logger
from kapkurtar.storage.db_models import FavoriteTable, ProfileTable

logger = get_logger(__name__)


class PostgresFavoriteRepository:
    """Favorite (profile, merchant) pairs."""

    def __init__(self, session):
        self.session = session

    async def add(self, profile_id: UUID, merchant_id: UUID) -> bool:
        """Add a favorite; returns False if it already existed."""
        dialect = self.session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = (
            insert(FavoriteTable)
            .values(profile_id=profile_id, merchant_id=merchant_id)
            .on_conflict_do_nothing(index_elements=["profile_id", "merchant_id"])
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def remove(self, profile_id: UUID, merchant_id: UUID) -> bool:
        stmt = delete(FavoriteTable).where(
            FavoriteTable.profile_id == profile_id,
            FavoriteTable.merchant_id == merchant_id,
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def list_merchant_ids(self, profile_id: UUID) -> list[UUID]:
        stmt = (
            select(FavoriteTable.merchant_id)
            .where(FavoriteTable.profile_id == profile_id)
            .order_by(FavoriteTable.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_follower_auth_ids(self, merchant_id: UUID) -> list[UUID]:
        """Principal IDs of every client that favorited a merchant."""
        stmt = (
            select(ProfileTable.auth_id)
            .join(FavoriteTable, FavoriteTable.profile_id == ProfileTable.id)
            .where(FavoriteTable.merchant_id == merchant_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
