"""Integration tests for the offer expiry sweep."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from kapkurtar.services.expiry_sweep import OfferExpirySweep
from kapkurtar.services.notifications import NotificationEvent
from kapkurtar.storage.postgres_favorite_repo import PostgresFavoriteRepository
from tests.helpers import make_client, make_draft, make_merchant


def lock_helper(acquired: bool = True, already_marked: bool = False):
    helper = MagicMock()

    @asynccontextmanager
    async def acquire_lock(name):
        yield acquired

    helper.acquire_lock = acquire_lock
    helper.is_marked = AsyncMock(return_value=already_marked)
    helper.mark_once = AsyncMock(return_value=True)
    return helper


@pytest_asyncio.fixture
async def followed_offers(identity, catalog):
    merchant = await make_merchant(identity)
    client = await make_client(identity)
    await identity.add_favorite(client.auth_id, merchant.id)
    soon = await catalog.create(
        merchant.id, make_draft(title="Closing Soon", expires_in=timedelta(minutes=30))
    )
    later = await catalog.create(
        merchant.id, make_draft(title="Tomorrow", expires_in=timedelta(hours=5))
    )
    return client, soon, later


@pytest.mark.asyncio
async def test_announces_offers_inside_window(database, mock_notifier, followed_offers):
    client, soon, _ = followed_offers
    mock_notifier.notify_many.reset_mock()
    mock_notifier.notify_many.return_value = 1
    sweep = OfferExpirySweep(database, mock_notifier)

    result = await sweep.run()

    assert result == {"offers": 1, "notified": 1, "failed": 0}
    followers, event, payload = mock_notifier.notify_many.await_args.args
    assert list(followers) == [client.auth_id]
    assert event == NotificationEvent.OFFER_EXPIRING
    assert payload == {"offer_id": soon.id, "offer_title": "Closing Soon"}


@pytest.mark.asyncio
async def test_marker_prevents_repeat_announcements(database, mock_notifier, followed_offers):
    mock_notifier.notify_many.reset_mock()
    helper = lock_helper(already_marked=True)
    sweep = OfferExpirySweep(database, mock_notifier, redis_locks=helper)

    result = await sweep.run()

    assert result["offers"] == 0
    mock_notifier.notify_many.assert_not_awaited()
    helper.mark_once.assert_not_awaited()
    _, soon, _ = followed_offers
    helper.is_marked.assert_awaited_once_with(f"offer_expiring:{soon.id}")


@pytest.mark.asyncio
async def test_marker_set_after_delivery(database, mock_notifier, followed_offers):
    mock_notifier.notify_many.reset_mock()
    mock_notifier.notify_many.return_value = 1
    helper = lock_helper()
    sweep = OfferExpirySweep(database, mock_notifier, redis_locks=helper)

    result = await sweep.run()

    assert result == {"offers": 1, "notified": 1, "failed": 0}
    _, soon, _ = followed_offers
    helper.mark_once.assert_awaited_once_with(f"offer_expiring:{soon.id}", ttl_seconds=3600)


@pytest.mark.asyncio
async def test_failed_announcement_is_retried(database, mock_notifier, followed_offers):
    mock_notifier.notify_many.reset_mock()
    helper = lock_helper()
    sweep = OfferExpirySweep(database, mock_notifier, redis_locks=helper)

    with patch.object(
        PostgresFavoriteRepository,
        "get_follower_auth_ids",
        AsyncMock(side_effect=RuntimeError("connection reset")),
    ):
        failed = await sweep.run()
    retried = await sweep.run()

    assert failed == {"offers": 0, "notified": 0, "failed": 1}
    assert retried["offers"] == 1
    helper.mark_once.assert_awaited_once()


@pytest.mark.asyncio
async def test_skipped_while_another_replica_holds_lock(database, mock_notifier, followed_offers):
    mock_notifier.notify_many.reset_mock()
    sweep = OfferExpirySweep(database, mock_notifier, redis_locks=lock_helper(acquired=False))

    result = await sweep.run()

    assert result == {"offers": 0, "notified": 0, "failed": 0}
    mock_notifier.notify_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_window_is_configurable(database, mock_notifier, followed_offers):
    mock_notifier.notify_many.reset_mock()
    sweep = OfferExpirySweep(database, mock_notifier, window_minutes=6 * 60)

    result = await sweep.run(now=datetime.utcnow())

    assert result["offers"] == 2
