"""Database connection and session management."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from kapkurtar.config.settings import Settings
from kapkurtar.errors import Unavailable
from kapkurtar.logging import get_logger, redact
from kapkurtar.storage.db_models import Base

logger = get_logger(__name__)


class Database:
    """Database connection manager."""

    def __init__(self, settings: Settings):
        """
        Initialize database connection.

        Args:
            settings: Application settings with database URL
        """
        self.settings = settings
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self) -> None:
        """Create database engine and session factory."""
        if self._engine is not None:
            return

        engine_kwargs: dict[str, Any] = {
            "echo": self.settings.log_level == "DEBUG",
            "pool_pre_ping": True,
        }
        if not self.settings.is_sqlite:
            engine_kwargs["pool_size"] = self.settings.database_pool_size
            engine_kwargs["max_overflow"] = self.settings.database_max_overflow

        self._engine = create_async_engine(self.settings.database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("database_connected", url=redact(self.settings.database_url))

    async def disconnect(self) -> None:
        """Close database connections."""
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._session_factory = None

        logger.info("database_disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Get a transactional session.

        Commits on normal exit and rolls back on any exception. Connection
        level failures surface as Unavailable so callers can retry.

        Example:
            async with db.session() as session:
                result = await session.execute(query)
        """
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except (OperationalError, InterfaceError) as e:
            await session.rollback()
            logger.error("database_unavailable", error=str(e.orig) if e.orig else str(e))
            raise Unavailable("Storage is temporarily unavailable") from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> None:
        """Create all database tables. Use migrations in production."""
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("database_tables_created")
