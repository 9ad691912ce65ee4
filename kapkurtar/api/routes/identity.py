"""
Identity, profile, merchant sign-up and favorites routes
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status

from kapkurtar.models.merchant import Merchant, MerchantInput
from kapkurtar.models.profile import Preferences, Profile

from ..deps import ServiceContainer, get_principal_id, get_services
from ..schemas import (
    FavoriteChange,
    LocationUpdate,
    ProfileCreate,
    PushTokenUpdate,
    RoleResponse,
)

router = APIRouter(tags=["identity"])


@router.get("/identity/role", response_model=RoleResponse)
async def resolve_role(
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Role for UI routing; degrades to none on storage errors"""
    return RoleResponse(role=await services.identity.resolve_role(principal_id))


@router.post("/identity/profile", response_model=Profile)
async def ensure_profile(
    body: ProfileCreate | None = None,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Create the caller's profile if missing"""
    body = body or ProfileCreate()
    return await services.identity.ensure_profile(
        principal_id, first_name=body.first_name, last_name=body.last_name
    )


@router.put("/identity/location", response_model=Profile)
async def update_location(
    body: LocationUpdate,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.identity.update_location(
        principal_id, longitude=body.longitude, latitude=body.latitude
    )


@router.put("/identity/preferences", response_model=Profile)
async def update_preferences(
    body: Preferences,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.identity.update_preferences(principal_id, body)


@router.put("/identity/push-token", status_code=status.HTTP_204_NO_CONTENT)
async def register_push_token(
    body: PushTokenUpdate,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    await services.identity.register_push_token(principal_id, body.push_token)


@router.post("/merchants", response_model=Merchant, status_code=status.HTTP_201_CREATED)
async def register_merchant(
    body: MerchantInput,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Merchant sign-up"""
    return await services.identity.register_merchant(principal_id, body)


@router.get("/favorites", response_model=list[Merchant])
async def list_favorites(
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.identity.list_favorites(principal_id)


@router.post("/favorites/{merchant_id}", response_model=FavoriteChange)
async def add_favorite(
    merchant_id: UUID,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    changed = await services.identity.add_favorite(principal_id, merchant_id)
    return FavoriteChange(merchant_id=merchant_id, changed=changed)


@router.delete("/favorites/{merchant_id}", response_model=FavoriteChange)
async def remove_favorite(
    merchant_id: UUID,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    changed = await services.identity.remove_favorite(principal_id, merchant_id)
    return FavoriteChange(merchant_id=merchant_id, changed=changed)
