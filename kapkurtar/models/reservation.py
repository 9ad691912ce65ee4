"""Reservation domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .profile import Role


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.CANCELLED, ReservationStatus.COMPLETED)


class Reservation(BaseModel):
    """A client's claim on units of an offer."""

    id: UUID = Field(default_factory=uuid4)
    client_id: UUID = Field(description="Reserving client's profile ID")
    merchant_id: UUID = Field(description="Offer owner, denormalized")
    offer_id: UUID
    quantity: int = Field(gt=0, description="Number of units reserved")
    status: ReservationStatus = Field(default=ReservationStatus.PENDING)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ReservationOfferSummary(BaseModel):
    """Offer fields shown alongside a reservation."""

    title: str
    description: str
    discounted_price: Decimal
    image_url: Optional[str] = None


class ReservationMerchantSummary(BaseModel):
    """Merchant fields shown to the reserving client."""

    company_name: str
    city: Optional[str] = None
    logo_url: Optional[str] = None


class ReservationClientSummary(BaseModel):
    """Client fields shown to the merchant."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ReservationView(Reservation):
    """Reservation joined with minimal offer and counterparty display fields."""

    offer: Optional[ReservationOfferSummary] = None
    merchant: Optional[ReservationMerchantSummary] = None
    client: Optional[ReservationClientSummary] = None


class Actor(BaseModel):
    """Who is attempting a reservation transition.

    subject_id is the profile ID for clients and the merchant ID for merchants.
    """

    role: Role
    subject_id: UUID
