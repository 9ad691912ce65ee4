"""Rate limiting for write operations."""

from datetime import datetime, timedelta
from typing import Optional

import redis.asyncio as redis

from kapkurtar.storage.redis_locks import KEY_PREFIX


class RateLimiter:
    """Redis-based sliding-window rate limiter."""

    def __init__(
        self,
        redis_url: str,
        max_requests: int = 10,
        window_seconds: int = 60,
    ):
        """Initialize rate limiter."""
        self.redis_url = redis_url
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check_rate_limit(self, principal_id: str, action: str) -> tuple[bool, Optional[int]]:
        """Check if a principal has exceeded the rate limit for an action.

        Returns:
            (is_allowed, retry_after_seconds)
        """
        if not self._client:
            raise RuntimeError("Redis client not connected")

        key = f"{KEY_PREFIX}:ratelimit:{action}:{principal_id}"
        now = datetime.utcnow()
        window_start = now - timedelta(seconds=self.window_seconds)

        # Drop entries outside the window
        await self._client.zremrangebyscore(key, 0, window_start.timestamp())

        count = await self._client.zcard(key)

        if count >= self.max_requests:
            oldest = await self._client.zrange(key, 0, 0, withscores=True)
            if oldest:
                oldest_time = datetime.fromtimestamp(oldest[0][1])
                retry_after = int(
                    (oldest_time + timedelta(seconds=self.window_seconds) - now).total_seconds()
                )
                return False, max(retry_after, 1)
            return False, self.window_seconds

        await self._client.zadd(key, {str(now.timestamp()): now.timestamp()})
        await self._client.expire(key, self.window_seconds)

        return True, None

    async def reset_limit(self, principal_id: str, action: str) -> None:
        """Reset rate limit for a principal action."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        await self._client.delete(f"{KEY_PREFIX}:ratelimit:{action}:{principal_id}")
