"""
KapKurtar offer and reservation service
FastAPI application entry point
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from kapkurtar import __version__
from kapkurtar.config.settings import Settings, load_settings
from kapkurtar.logging import get_logger, setup_logging
from kapkurtar.security.rate_limit import RateLimiter
from kapkurtar.services.push_client import ExpoPushClient
from kapkurtar.services.scheduler import SchedulerService
from kapkurtar.storage.database import Database
from kapkurtar.storage.redis_locks import RedisLockHelper

from . import health
from .deps import ServiceContainer, build_services
from .errors import register_error_handlers
from .routes import identity, notifications, offers, reservations

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect shared resources on startup and release them on shutdown."""
    services: ServiceContainer = app.state.services
    settings = services.settings

    await services.db.connect()
    if services.rate_limiter is not None:
        await services.rate_limiter.connect()
    if services.redis_locks is not None:
        await services.redis_locks.connect()

    scheduler: Optional[SchedulerService] = None
    if settings.expiry_sweep_enabled and services.expiry_sweep is not None:
        scheduler = SchedulerService(
            services.expiry_sweep, interval_seconds=settings.expiry_sweep_interval_seconds
        )
        scheduler.start_background()

    logger.info(
        "application_started",
        app_name=settings.app_name,
        environment=settings.environment,
        redis_enabled=settings.redis_enabled,
        expiry_sweep_enabled=scheduler is not None,
    )

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()
        if services.push_client is not None:
            await services.push_client.close()
        if services.redis_locks is not None:
            await services.redis_locks.disconnect()
        if services.rate_limiter is not None:
            await services.rate_limiter.disconnect()
        await services.db.disconnect()

        logger.info("application_stopped")


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    push_client: Optional[ExpoPushClient] = None,
) -> FastAPI:
    """
    Build the application.

    Services are wired eagerly so the app can serve requests against an
    already connected database without running the lifespan.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    db = db or Database(settings)
    if push_client is None and settings.expo_push_url:
        push_client = ExpoPushClient(
            settings.expo_push_url,
            access_token=settings.expo_access_token,
            timeout_seconds=settings.push_timeout_seconds,
        )

    rate_limiter = None
    redis_locks = None
    if settings.redis_enabled:
        rate_limiter = RateLimiter(
            settings.redis_url,
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        redis_locks = RedisLockHelper(settings.redis_url, ttl_seconds=settings.redis_lock_ttl_seconds)

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.services = build_services(
        settings,
        db,
        push_client=push_client,
        rate_limiter=rate_limiter,
        redis_locks=redis_locks,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(identity.router)
    app.include_router(offers.router)
    app.include_router(reservations.router)
    app.include_router(notifications.router)

    return app
