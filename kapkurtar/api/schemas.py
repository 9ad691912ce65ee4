"""
Request and response bodies for the HTTP API
"""
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from kapkurtar.models.profile import Role
from kapkurtar.models.reservation import ReservationStatus
from kapkurtar.services.notifications import NotificationEvent


class RoleResponse(BaseModel):
    role: Role


class ProfileCreate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class LocationUpdate(BaseModel):
    longitude: float
    latitude: float


class PushTokenUpdate(BaseModel):
    push_token: Optional[str] = Field(default=None, max_length=255)


class ActiveUpdate(BaseModel):
    active: bool


class ReservationCreate(BaseModel):
    offer_id: UUID
    quantity: int = 1


class TransitionRequest(BaseModel):
    status: ReservationStatus


class NotificationRequest(BaseModel):
    principal_id: UUID
    event_type: NotificationEvent
    payload: dict[str, Any] = Field(default_factory=dict)


class FavoriteChange(BaseModel):
    merchant_id: UUID
    changed: bool
