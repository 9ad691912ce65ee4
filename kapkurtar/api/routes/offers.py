"""
Offer discovery and catalog routes
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from kapkurtar.models.merchant import Merchant
from kapkurtar.models.offer import EnrichedOffer, Offer, OfferDraft, OfferPatch

from ..deps import ServiceContainer, get_current_merchant, get_principal_id, get_services
from ..schemas import ActiveUpdate

router = APIRouter(tags=["offers"])


@router.get("/offers/nearby", response_model=list[EnrichedOffer])
async def offers_nearby(
    radius_meters: Optional[float] = Query(default=None),
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Reservable offers around the caller's stored location, nearest first"""
    return await services.offer_index.nearby(principal_id, radius_meters)


@router.get("/offers/active", response_model=list[EnrichedOffer])
async def offers_active(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    services: ServiceContainer = Depends(get_services),
):
    """All reservable offers, newest first"""
    return await services.offer_index.active(limit)


@router.get("/merchants/{merchant_id}/offers", response_model=list[Offer])
async def offers_by_merchant(
    merchant_id: UUID,
    services: ServiceContainer = Depends(get_services),
):
    return await services.offer_index.by_merchant(merchant_id)


@router.post("/offers", response_model=Offer, status_code=status.HTTP_201_CREATED)
async def create_offer(
    draft: OfferDraft,
    merchant: Merchant = Depends(get_current_merchant),
    services: ServiceContainer = Depends(get_services),
):
    return await services.catalog.create(merchant.id, draft)


@router.patch("/offers/{offer_id}", response_model=Offer)
async def update_offer(
    offer_id: UUID,
    patch: OfferPatch,
    merchant: Merchant = Depends(get_current_merchant),
    services: ServiceContainer = Depends(get_services),
):
    return await services.catalog.update(offer_id, merchant.id, patch)


@router.put("/offers/{offer_id}/active", response_model=Offer)
async def set_offer_active(
    offer_id: UUID,
    body: ActiveUpdate,
    merchant: Merchant = Depends(get_current_merchant),
    services: ServiceContainer = Depends(get_services),
):
    return await services.catalog.set_active(offer_id, merchant.id, body.active)


@router.delete("/offers/{offer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_offer(
    offer_id: UUID,
    merchant: Merchant = Depends(get_current_merchant),
    services: ServiceContainer = Depends(get_services),
):
    await services.catalog.delete(offer_id, merchant.id)
