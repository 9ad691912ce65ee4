"""Offer discovery service with geolocation filtering."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from kapkurtar.config.settings import Settings
from kapkurtar.errors import Conflict, NotFound, ValidationError
from kapkurtar.logging import get_logger
from kapkurtar.models.offer import EnrichedOffer, Offer
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_offer_repo import PostgresOfferRepository
from kapkurtar.storage.postgres_profile_repo import PostgresProfileRepository

from .geo import DistanceCalculator

logger = get_logger(__name__)


class OfferIndex:
    """Read-only queries over reservable offers."""

    def __init__(
        self,
        db: Database,
        settings: Settings,
        calculator: Optional[DistanceCalculator] = None,
    ):
        self.db = db
        self.settings = settings
        self.calculator = calculator or DistanceCalculator(
            planar_threshold_meters=settings.planar_distance_threshold_meters
        )

    async def nearby(
        self, principal_id: UUID, radius_meters: Optional[float] = None
    ) -> list[EnrichedOffer]:
        """
        Reservable offers within `radius_meters` of the client's stored location.

        Ordered by ascending distance. Raises Conflict (location_unknown) when
        the client has not shared a location, so an empty list always means
        nothing is in range.
        """
        radius = radius_meters if radius_meters is not None else self.settings.default_radius_meters
        if radius <= 0 or radius > self.settings.max_radius_meters:
            raise ValidationError(
                f"Radius must be between 0 and {self.settings.max_radius_meters} meters"
            )

        now = datetime.utcnow()
        async with self.db.session() as session:
            profile = await PostgresProfileRepository(session).get_by_auth_id(principal_id)
            if profile is None:
                raise NotFound("Profile not found", code="profile_not_found")
            if not profile.has_location or profile.latitude is None or profile.longitude is None:
                raise Conflict(
                    "Share your location to see nearby offers",
                    code="location_unknown",
                )

            min_lat, max_lat, min_lon, max_lon = self.calculator.bounding_box(
                profile.latitude, profile.longitude, radius
            )
            candidates = await PostgresOfferRepository(session).get_active_enriched_in_box(
                now, min_lat, max_lat, min_lon, max_lon
            )

        results = []
        for offer in candidates:
            distance = self.calculator.distance(
                profile.latitude, profile.longitude, offer.latitude, offer.longitude, radius
            )
            if distance <= radius:
                results.append(offer.model_copy(update={"distance_meters": round(distance)}))

        results.sort(key=lambda o: o.distance_meters)

        logger.info(
            "nearby_offers_queried",
            principal_id=str(principal_id),
            radius_meters=radius,
            candidates=len(candidates),
            results=len(results),
        )

        return results

    async def active(self, limit: Optional[int] = None) -> list[EnrichedOffer]:
        """All reservable offers regardless of location, newest first."""
        async with self.db.session() as session:
            return await PostgresOfferRepository(session).get_active_enriched(
                datetime.utcnow(), limit=limit or self.settings.active_offers_limit
            )

    async def by_merchant(self, merchant_id: UUID) -> list[Offer]:
        """Every offer of a merchant, including inactive and expired ones."""
        async with self.db.session() as session:
            return await PostgresOfferRepository(session).get_offers_by_merchant(merchant_id)
