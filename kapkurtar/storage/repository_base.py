"""Repository base interface."""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class RepositoryBase(ABC, Generic[T]):
    """Base repository interface bound to one session."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    @abstractmethod
    async def get_by_id(self, id: UUID) -> Optional[T]:
        """Retrieve entity by ID."""
        pass

    @property
    def dialect_name(self) -> str:
        """Name of the SQL dialect the session is bound to."""
        return self.session.get_bind().dialect.name
