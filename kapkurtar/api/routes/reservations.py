"""
Reservation routes
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status

from kapkurtar.models.merchant import Merchant
from kapkurtar.models.profile import Profile
from kapkurtar.models.reservation import Reservation, ReservationView

from ..deps import (
    ServiceContainer,
    get_current_merchant,
    get_current_profile,
    get_principal_id,
    get_services,
    rate_limited,
)
from ..schemas import ReservationCreate, TransitionRequest

router = APIRouter(tags=["reservations"])


@router.post(
    "/reservations",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("reservation_create"))],
)
async def create_reservation(
    body: ReservationCreate,
    profile: Profile = Depends(get_current_profile),
    services: ServiceContainer = Depends(get_services),
):
    """Reserve units of an offer for the calling client"""
    return await services.ledger.create(profile.id, body.offer_id, body.quantity)


@router.post("/reservations/{reservation_id}/transition", response_model=Reservation)
async def transition_reservation(
    reservation_id: UUID,
    body: TransitionRequest,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Confirm, reject, complete or cancel; the actor is derived from storage"""
    actor = await services.identity.actor_for(principal_id)
    return await services.ledger.transition(reservation_id, actor, body.status)


@router.get("/reservations/mine", response_model=list[ReservationView])
async def reservations_for_client(
    profile: Profile = Depends(get_current_profile),
    services: ServiceContainer = Depends(get_services),
):
    return await services.ledger.list_for_client(profile.id)


@router.get("/merchants/me/reservations", response_model=list[ReservationView])
async def reservations_for_merchant(
    merchant: Merchant = Depends(get_current_merchant),
    services: ServiceContainer = Depends(get_services),
):
    return await services.ledger.list_for_merchant(merchant.id)
