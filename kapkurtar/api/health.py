"""Health endpoint for container probes and uptime monitors.

The database is the only hard dependency. Redis backs rate limiting and
the expiry sweep markers, so losing it degrades the service instead of
taking it down.
"""

import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from kapkurtar import __version__
from kapkurtar.logging import get_logger

from .deps import ServiceContainer, get_services

logger = get_logger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"
DISABLED = "disabled"

_start_time: float = time.time()

APP_VERSION: str = os.environ.get("APP_VERSION", __version__)

router = APIRouter(tags=["health"])


@dataclass
class DependencyHealth:
    """Probe outcome for one backing service."""

    status: str
    response_time_ms: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.response_time_ms is not None:
            data["response_time_ms"] = self.response_time_ms
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class HealthCheckResult:
    """Aggregate status reported by GET /health."""

    status: str
    version: str
    uptime_seconds: int
    timestamp: str
    dependencies: dict[str, DependencyHealth] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "version": self.version,
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
            "dependencies": {name: dep.to_dict() for name, dep in self.dependencies.items()},
        }
        if self.warnings:
            data["warnings"] = self.warnings
        if self.errors:
            data["errors"] = self.errors
        return data


async def _timed_probe(name: str, probe: Callable[[], Awaitable[Any]]) -> DependencyHealth:
    started = time.perf_counter()
    try:
        await probe()
    except Exception as e:
        logger.error(f"{name}_health_check_failed", error=str(e))
        return DependencyHealth(status=UNHEALTHY, error=f"Connection failed: {str(e)[:100]}")
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    return DependencyHealth(status=HEALTHY, response_time_ms=elapsed_ms)


async def check_database_health(session: AsyncSession) -> DependencyHealth:
    """Round-trip a trivial query through the given session."""
    return await _timed_probe("database", lambda: session.execute(text("SELECT 1")))


async def check_redis_health(redis_url: str) -> DependencyHealth:
    """PING a short-lived Redis connection."""
    client = None

    async def ping() -> None:
        nonlocal client
        client = redis.from_url(redis_url, socket_timeout=5.0)
        await client.ping()

    try:
        return await _timed_probe("redis", ping)
    finally:
        if client is not None:
            await client.aclose()


async def perform_health_check(services: ServiceContainer) -> HealthCheckResult:
    """Probe every configured dependency and derive the overall status."""
    result = HealthCheckResult(
        status=HEALTHY,
        version=APP_VERSION,
        uptime_seconds=int(time.time() - _start_time),
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )

    try:
        async with services.db.session() as session:
            database = await check_database_health(session)
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        database = DependencyHealth(status=UNHEALTHY, error=f"Session unavailable: {str(e)[:100]}")
    result.dependencies["database"] = database

    if services.settings.redis_enabled:
        cache = await check_redis_health(services.settings.redis_url)
    else:
        cache = DependencyHealth(status=DISABLED)
        result.warnings.append("Redis not configured; rate limiting disabled")
    result.dependencies["redis"] = cache

    if database.status == UNHEALTHY:
        result.status = UNHEALTHY
        result.errors.append("Critical: database connection failed")
    elif cache.status == UNHEALTHY:
        result.status = DEGRADED
        result.warnings.append("Redis unavailable")

    return result


def get_http_status_code(health_status: str) -> int:
    """Degraded still serves traffic; only unhealthy fails the probe."""
    return 503 if health_status == UNHEALTHY else 200


@router.get("/health")
async def health(services: ServiceContainer = Depends(get_services)) -> JSONResponse:
    result = await perform_health_check(services)
    return JSONResponse(
        status_code=get_http_status_code(result.status),
        content=result.to_dict(),
        headers={"Cache-Control": "no-cache"},
    )


def reset_start_time() -> None:
    """Restart the uptime clock (tests)."""
    global _start_time
    _start_time = time.time()
