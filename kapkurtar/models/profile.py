"""Profile and role domain models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Role a principal resolves to."""

    CLIENT = "client"
    MERCHANT = "merchant"
    NONE = "none"


class Profile(BaseModel):
    """Client profile, one per authenticated principal."""

    id: UUID = Field(default_factory=uuid4)
    auth_id: UUID = Field(description="Authenticated principal ID")
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    halal: bool = False
    vegan: bool = False
    eco_friendly: bool = False
    has_location: bool = False
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    push_token: Optional[str] = Field(default=None, exclude=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self) -> str:
        """Name shown to merchants; falls back to a generic label."""
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else "Customer"


class Preferences(BaseModel):
    """Dietary preference flags."""

    halal: Optional[bool] = None
    vegan: Optional[bool] = None
    eco_friendly: Optional[bool] = None
