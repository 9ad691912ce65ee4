"""Redis-based distributed locks and once-only markers."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis

KEY_PREFIX = "kapkurtar"


class RedisLockHelper:
    """Helper for Redis-based distributed locking."""

    def __init__(self, redis_url: str, ttl_seconds: int = 30):
        """Initialize Redis lock helper."""
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def acquire_lock(self, name: str) -> AsyncGenerator[bool, None]:
        """Try to take an exclusive named lock; yields whether it was acquired."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        lock_key = f"{KEY_PREFIX}:lock:{name}"
        acquired = False

        try:
            acquired = await self._client.set(
                lock_key, "1", ex=self.ttl_seconds, nx=True
            )
            yield bool(acquired)
        finally:
            if acquired:
                await self._client.delete(lock_key)

    async def mark_once(self, name: str, ttl_seconds: int) -> bool:
        """Set a marker if absent. True means this caller set it first."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        key = f"{KEY_PREFIX}:once:{name}"
        return bool(await self._client.set(key, "1", ex=ttl_seconds, nx=True))

    async def is_marked(self, name: str) -> bool:
        """Whether a marker set by mark_once is still live."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        return bool(await self._client.exists(f"{KEY_PREFIX}:once:{name}"))
