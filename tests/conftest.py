"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio

from kapkurtar.config.settings import Settings
from kapkurtar.services.identity import IdentityResolver
from kapkurtar.services.notifications import NotificationDispatcher
from kapkurtar.services.offer_catalog import OfferCatalog
from kapkurtar.services.offer_index import OfferIndex
from kapkurtar.services.reservation_ledger import ReservationLedger
from kapkurtar.storage.database import Database


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file; Redis and push disabled."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        redis_url="",
        expo_push_url="",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(settings):
    """Connected database with all tables created."""
    db = Database(settings)
    await db.connect()
    await db.create_tables()
    try:
        yield db
    finally:
        await db.disconnect()


@pytest.fixture
def mock_notifier():
    """Notification dispatcher that records calls instead of sending."""
    notifier = AsyncMock(spec=NotificationDispatcher)
    notifier.notify.return_value = True
    notifier.notify_many.return_value = 0
    return notifier


@pytest.fixture
def identity(database, settings):
    return IdentityResolver(database, settings)


@pytest.fixture
def catalog(database, mock_notifier):
    return OfferCatalog(database, mock_notifier)


@pytest.fixture
def ledger(database, mock_notifier):
    return ReservationLedger(database, mock_notifier)


@pytest.fixture
def offer_index(database, settings):
    return OfferIndex(database, settings)
