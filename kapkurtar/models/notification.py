"""Notification history domain model."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """A rendered notification kept for the principal's in-app inbox."""

    id: UUID = Field(default_factory=uuid4)
    principal_id: UUID
    type: str = Field(max_length=50)
    title: str = Field(max_length=200)
    message: str
    is_read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
