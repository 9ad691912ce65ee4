"""Models package - Pydantic domain models."""

from .merchant import Merchant, MerchantInput
from .offer import EnrichedOffer, Offer, OfferDraft, OfferPatch, discount_percent
from .profile import Preferences, Profile, Role
from .reservation import (
    Actor,
    Reservation,
    ReservationClientSummary,
    ReservationMerchantSummary,
    ReservationOfferSummary,
    ReservationStatus,
    ReservationView,
)

__all__ = [
    "Actor",
    "EnrichedOffer",
    "Merchant",
    "MerchantInput",
    "Offer",
    "OfferDraft",
    "OfferPatch",
    "Preferences",
    "Profile",
    "Reservation",
    "ReservationClientSummary",
    "ReservationMerchantSummary",
    "ReservationOfferSummary",
    "ReservationStatus",
    "ReservationView",
    "Role",
    "discount_percent",
]
