"""Unit tests for the Redis lock and marker helper."""

from unittest.mock import AsyncMock

import pytest

from kapkurtar.storage.redis_locks import RedisLockHelper


@pytest.fixture
def helper():
    helper = RedisLockHelper("redis://localhost:6379/0")
    helper._client = AsyncMock()
    return helper


@pytest.mark.asyncio
async def test_mark_once_uses_set_nx(helper):
    helper._client.set.return_value = True

    assert await helper.mark_once("offer_expiring:abc", ttl_seconds=3600) is True
    helper._client.set.assert_awaited_once_with(
        "kapkurtar:once:offer_expiring:abc", "1", ex=3600, nx=True
    )


@pytest.mark.asyncio
async def test_is_marked(helper):
    helper._client.exists.return_value = 1

    assert await helper.is_marked("offer_expiring:abc") is True
    helper._client.exists.assert_awaited_once_with("kapkurtar:once:offer_expiring:abc")


@pytest.mark.asyncio
async def test_lock_released_after_use(helper):
    helper._client.set.return_value = True

    async with helper.acquire_lock("expiry_sweep") as acquired:
        assert acquired is True

    helper._client.delete.assert_awaited_once_with("kapkurtar:lock:expiry_sweep")


@pytest.mark.asyncio
async def test_requires_connection():
    with pytest.raises(RuntimeError):
        await RedisLockHelper("redis://localhost:6379/0").is_marked("x")
