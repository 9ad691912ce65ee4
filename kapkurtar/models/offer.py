"""Offer domain models."""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field, field_validator


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware timestamps are converted to UTC; stored times are naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def discount_percent(original_price: Decimal, discounted_price: Decimal) -> int:
    """Whole-number discount, rounded half up (80 -> 30 gives 63)."""
    if original_price <= 0:
        return 0
    ratio = (original_price - discounted_price) / original_price * Decimal("100")
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Offer(BaseModel):
    """Offer entity."""

    id: UUID = Field(default_factory=uuid4)
    merchant_id: UUID
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    original_price: Decimal = Field(gt=0, decimal_places=2)
    discounted_price: Decimal = Field(ge=0, decimal_places=2)
    quantity_total: int = Field(gt=0, description="Units offered")
    quantity_available: int = Field(ge=0, description="Units not yet reserved")
    pickup_start: datetime
    pickup_end: datetime
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def discount_percent(self) -> int:
        return discount_percent(self.original_price, self.discounted_price)


class OfferDraft(BaseModel):
    """Input model for offer creation.

    Cross-field rules (price ordering, pickup window, quantity bounds) are
    enforced by OfferValidator so they surface as service validation errors.
    """

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    original_price: Decimal = Field(decimal_places=2)
    discounted_price: Decimal = Field(decimal_places=2)
    quantity: int
    pickup_start: datetime
    pickup_end: datetime
    image_url: Optional[str] = Field(default=None, max_length=500)
    expires_at: Optional[datetime] = None

    @field_validator("pickup_start", "pickup_end", "expires_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class OfferPatch(BaseModel):
    """Partial update for an offer; unset fields are left unchanged."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    original_price: Optional[Decimal] = Field(default=None, decimal_places=2)
    discounted_price: Optional[Decimal] = Field(default=None, decimal_places=2)
    quantity_total: Optional[int] = None
    pickup_start: Optional[datetime] = None
    pickup_end: Optional[datetime] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    expires_at: Optional[datetime] = None

    @field_validator("pickup_start", "pickup_end", "expires_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class EnrichedOffer(BaseModel):
    """Offer joined with its merchant's display fields and optional distance."""

    id: UUID
    title: str
    description: str
    original_price: Decimal
    discounted_price: Decimal
    discount_percent: int
    image_url: Optional[str] = None
    pickup_start: datetime
    pickup_end: datetime
    quantity_available: int
    expires_at: datetime
    merchant_id: UUID
    merchant_name: str
    merchant_logo: Optional[str] = None
    merchant_address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_meters: Optional[int] = None
    created_at: datetime
