"""Factories shared by the integration suites."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from kapkurtar.models.merchant import MerchantInput
from kapkurtar.models.offer import OfferDraft
from kapkurtar.services.identity import IdentityResolver

# Istanbul, Sultanahmet
CLIENT_LAT = 41.0082
CLIENT_LON = 28.9784


def make_draft(
    quantity: int = 3,
    original_price: str = "80.00",
    discounted_price: str = "30.00",
    expires_in: Optional[timedelta] = timedelta(hours=6),
    title: str = "Surprise Bag",
) -> OfferDraft:
    """Valid offer draft with a pickup window later today."""
    now = datetime.utcnow()
    return OfferDraft(
        title=title,
        description="Assorted pastries",
        original_price=Decimal(original_price),
        discounted_price=Decimal(discounted_price),
        quantity=quantity,
        pickup_start=now + timedelta(hours=1),
        pickup_end=now + timedelta(hours=3),
        expires_at=now + expires_in if expires_in is not None else None,
    )


async def make_merchant(
    identity: IdentityResolver,
    latitude: float = CLIENT_LAT,
    longitude: float = CLIENT_LON,
    company_name: str = "Galata Bakery",
    principal_id: Optional[UUID] = None,
):
    """Register a merchant for a fresh principal."""
    return await identity.register_merchant(
        principal_id or uuid4(),
        MerchantInput(
            company_name=company_name,
            street="Divan Yolu Cd. 1",
            city="Istanbul",
            postal_code="34122",
            country="TR",
            latitude=latitude,
            longitude=longitude,
        ),
    )


async def make_client(
    identity: IdentityResolver,
    first_name: str = "Ayse",
    last_name: str = "Yilmaz",
    principal_id: Optional[UUID] = None,
):
    """Create a client profile for a fresh principal."""
    return await identity.ensure_profile(
        principal_id or uuid4(), first_name=first_name, last_name=last_name
    )
