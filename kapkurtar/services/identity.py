"""Identity resolution service.

Maps an authenticated principal to a role and to the profile or merchant
records it owns. Role resolution reads storage on every call, so it may
be stale for the duration of one request but never longer.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from kapkurtar.config.settings import Settings
from kapkurtar.errors import Conflict, Forbidden, NotFound, ValidationError
from kapkurtar.logging import get_logger
from kapkurtar.logging.audit import AuditLogger
from kapkurtar.models.merchant import Merchant, MerchantInput
from kapkurtar.models.profile import Preferences, Profile, Role
from kapkurtar.models.reservation import Actor
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_favorite_repo import PostgresFavoriteRepository
from kapkurtar.storage.postgres_merchant_repo import PostgresMerchantRepository
from kapkurtar.storage.postgres_profile_repo import PostgresProfileRepository

logger = get_logger(__name__)

MERCHANT_EXISTS_MESSAGE = "A merchant account already exists for this user"


class IdentityResolver:
    """Resolves principals to roles, profiles and merchants."""

    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    async def resolve_role(self, principal_id: UUID) -> Role:
        """
        Role of a principal: merchant, then client, else none.

        Never raises. Storage failures are logged and degrade to Role.NONE,
        which downstream authorization treats as unprivileged.
        """
        try:
            async with self.db.session() as session:
                if await PostgresMerchantRepository(session).exists_for_auth_id(principal_id):
                    return Role.MERCHANT
                if await PostgresProfileRepository(session).get_by_auth_id(principal_id):
                    return Role.CLIENT
                return Role.NONE
        except Exception as e:
            logger.warning(
                "role_resolution_failed",
                principal_id=str(principal_id),
                error=str(e),
            )
            return Role.NONE

    async def require_role(self, principal_id: UUID, role: Role) -> None:
        """Raise Forbidden unless the principal currently holds `role`."""
        actual = await self.resolve_role(principal_id)
        if actual != role:
            AuditLogger.log_permission_denied(
                actor_id=principal_id,
                resource_type="role",
                resource_id=role.value,
                attempted_action=f"act_as_{role.value}",
            )
            raise Forbidden(f"This action requires the {role.value} role")

    async def actor_for(self, principal_id: UUID) -> Actor:
        """
        Build the transition actor for a principal.

        Merchants act through their merchant ID, clients through their
        profile ID.
        """
        async with self.db.session() as session:
            merchant = await PostgresMerchantRepository(session).get_by_auth_id(principal_id)
            if merchant:
                return Actor(role=Role.MERCHANT, subject_id=merchant.id)
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
            if profile:
                return Actor(role=Role.CLIENT, subject_id=profile.id)

        raise Forbidden("No client profile or merchant account for this principal")

    async def ensure_profile(
        self,
        principal_id: UUID,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Profile:
        """Create a default profile if none exists. Idempotent."""
        async with self.db.session() as session:
            profile, created = await PostgresProfileRepository(session).ensure(
                principal_id, first_name=first_name, last_name=last_name
            )

        if created:
            AuditLogger.log_profile_created(actor_id=principal_id, profile_id=profile.id)

        return profile

    async def get_profile(self, principal_id: UUID) -> Profile:
        """The principal's profile; raises NotFound if it has none."""
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
        if profile is None:
            raise NotFound("Profile not found", code="profile_not_found")
        return profile

    async def update_location(
        self, principal_id: UUID, longitude: float, latitude: float
    ) -> Profile:
        """Store client coordinates and mark the location as known."""
        if not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180")
        if not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90")

        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).update_location(
                principal_id, latitude=latitude, longitude=longitude
            )

        if profile is None:
            raise NotFound("Profile not found", code="profile_not_found")

        return profile

    async def update_preferences(self, principal_id: UUID, preferences: Preferences) -> Profile:
        """Update dietary flags on the principal's profile."""
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).update_preferences(
                principal_id, preferences
            )

        if profile is None:
            raise NotFound("Profile not found", code="profile_not_found")

        return profile

    async def register_merchant(self, principal_id: UUID, data: MerchantInput) -> Merchant:
        """Create the principal's merchant account. One per principal."""
        try:
            async with self.db.session() as session:
                repo = PostgresMerchantRepository(session)
                if await repo.exists_for_auth_id(principal_id):
                    raise Conflict(MERCHANT_EXISTS_MESSAGE, code="merchant_exists")
                merchant = await repo.create(
                    data, auth_id=principal_id, default_timezone=self.settings.default_timezone
                )
        except IntegrityError as e:
            # A concurrent sign-up won the unique auth_id insert
            logger.info("merchant_signup_raced", principal_id=str(principal_id))
            raise Conflict(MERCHANT_EXISTS_MESSAGE, code="merchant_exists") from e

        AuditLogger.log_merchant_registered(
            actor_id=principal_id,
            merchant_id=merchant.id,
            company_name=merchant.company_name,
        )

        return merchant

    async def get_merchant_for_principal(self, principal_id: UUID) -> Merchant:
        """The merchant owned by the principal; Forbidden if it owns none."""
        async with self.db.session() as session:
            merchant = await PostgresMerchantRepository(session).get_by_auth_id(principal_id)

        if merchant is None:
            AuditLogger.log_permission_denied(
                actor_id=principal_id,
                resource_type="merchant",
                resource_id=principal_id,
                attempted_action="act_as_merchant",
            )
            raise Forbidden("This action requires a merchant account")

        return merchant

    async def register_push_token(self, principal_id: UUID, push_token: Optional[str]) -> None:
        """Store (or clear) the device token on the principal's profile or merchant."""
        async with self.db.session() as session:
            stored_profile = await PostgresProfileRepository(session).set_push_token(
                principal_id, push_token
            )
            stored_merchant = await PostgresMerchantRepository(session).set_push_token(
                principal_id, push_token
            )

        if not (stored_profile or stored_merchant):
            raise NotFound("No profile or merchant for this user", code="principal_unknown")

        logger.info(
            "push_token_registered",
            principal_id=str(principal_id),
            cleared=push_token is None,
        )

    async def add_favorite(self, principal_id: UUID, merchant_id: UUID) -> bool:
        """Follow a merchant. Returns False when it was already a favorite."""
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
            if profile is None:
                raise NotFound("Profile not found", code="profile_not_found")
            if await PostgresMerchantRepository(session).get_by_id(merchant_id) is None:
                raise NotFound("Merchant not found", code="merchant_not_found")
            return await PostgresFavoriteRepository(session).add(profile.id, merchant_id)

    async def remove_favorite(self, principal_id: UUID, merchant_id: UUID) -> bool:
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
            if profile is None:
                raise NotFound("Profile not found", code="profile_not_found")
            return await PostgresFavoriteRepository(session).remove(profile.id, merchant_id)

    async def list_favorites(self, principal_id: UUID) -> list[Merchant]:
        """Merchants the principal follows, most recently added first."""
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
            if profile is None:
                raise NotFound("Profile not found", code="profile_not_found")

            merchant_repo = PostgresMerchantRepository(session)
            merchants = []
            for merchant_id in await PostgresFavoriteRepository(session).list_merchant_ids(
                profile.id
            ):
                merchant = await merchant_repo.get_by_id(merchant_id)
                if merchant:
                    merchants.append(merchant)
            return merchants
