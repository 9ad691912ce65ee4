"""Repository for client Profile entities."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite

from kapkurtar.logging import get_logger
from kapkurtar.models.profile import Preferences, Profile
from kapkurtar.storage.db_models import ProfileTable
from kapkurtar.storage.repository_base import RepositoryBase

logger = get_logger(__name__)


class PostgresProfileRepository(RepositoryBase[Profile]):
    """Profile repository using SQLAlchemy."""

    async def get_by_id(self, id: UUID) -> Optional[Profile]:
        """Retrieve profile by ID."""
        stmt = select(ProfileTable).where(ProfileTable.id == id)
        result = await self.session.execute(stmt)
        db_profile = result.scalar_one_or_none()

        if not db_profile:
            return None

        return self._to_domain_model(db_profile)

    async def get_by_auth_id(self, auth_id: UUID) -> Optional[Profile]:
        """Retrieve profile by authenticated principal ID."""
        stmt = (
            select(ProfileTable)
            .where(ProfileTable.auth_id == auth_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        db_profile = result.scalar_one_or_none()

        if not db_profile:
            return None

        return self._to_domain_model(db_profile)

    async def ensure(
        self,
        auth_id: UUID,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> tuple[Profile, bool]:
        """
        Insert a default profile unless one exists for the principal.

        Uses INSERT ... ON CONFLICT DO NOTHING so concurrent first logins
        never race on a read-then-write.

        Returns:
            (profile, created)
        """
        insert = postgresql.insert if self.dialect_name == "postgresql" else sqlite.insert
        now = datetime.utcnow()
        stmt = (
            insert(ProfileTable)
            .values(
                id=uuid4(),
                auth_id=auth_id,
                first_name=first_name,
                last_name=last_name,
                halal=False,
                vegan=False,
                eco_friendly=False,
                has_location=False,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["auth_id"])
        )
        result = await self.session.execute(stmt)
        created = result.rowcount == 1

        profile = await self.get_by_auth_id(auth_id)
        if profile is None:
            raise RuntimeError(f"Profile missing after upsert: {auth_id}")

        if created:
            logger.info("profile_created", profile_id=str(profile.id))

        return profile, created

    async def update_location(
        self, auth_id: UUID, latitude: float, longitude: float
    ) -> Optional[Profile]:
        """Store the principal's coordinates and mark the location as known."""
        stmt = (
            update(ProfileTable)
            .where(ProfileTable.auth_id == auth_id)
            .values(
                latitude=latitude,
                longitude=longitude,
                has_location=True,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None

        logger.info("profile_location_updated", auth_id=str(auth_id))

        return await self.get_by_auth_id(auth_id)

    async def update_preferences(
        self, auth_id: UUID, preferences: Preferences
    ) -> Optional[Profile]:
        """Apply the dietary flags that are set on the preferences object."""
        values = preferences.model_dump(exclude_none=True)
        if not values:
            return await self.get_by_auth_id(auth_id)

        values["updated_at"] = datetime.utcnow()
        stmt = (
            update(ProfileTable)
            .where(ProfileTable.auth_id == auth_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None

        return await self.get_by_auth_id(auth_id)

    async def set_push_token(self, auth_id: UUID, push_token: Optional[str]) -> bool:
        """Replace the stored push token. Returns False if no profile exists."""
        stmt = (
            update(ProfileTable)
            .where(ProfileTable.auth_id == auth_id)
            .values(push_token=push_token, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_push_token(self, auth_id: UUID) -> Optional[str]:
        """Push token for a principal, if it has a profile with one."""
        stmt = select(ProfileTable.push_token).where(ProfileTable.auth_id == auth_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_domain_model(self, db_profile: ProfileTable) -> Profile:
        """Convert database model to domain model."""
        return Profile(
            id=db_profile.id,
            auth_id=db_profile.auth_id,
            first_name=db_profile.first_name,
            last_name=db_profile.last_name,
            avatar_url=db_profile.avatar_url,
            halal=db_profile.halal,
            vegan=db_profile.vegan,
            eco_friendly=db_profile.eco_friendly,
            has_location=db_profile.has_location,
            latitude=db_profile.latitude,
            longitude=db_profile.longitude,
            push_token=db_profile.push_token,
            created_at=db_profile.created_at,
            updated_at=db_profile.updated_at,
        )
