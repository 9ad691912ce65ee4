"""
API dependencies
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from redis.exceptions import RedisError

from kapkurtar.config.settings import Settings
from kapkurtar.errors import RateLimited, Unauthenticated
from kapkurtar.logging import get_logger
from kapkurtar.logging.audit import AuditLogger
from kapkurtar.models.merchant import Merchant
from kapkurtar.models.profile import Profile
from kapkurtar.security.rate_limit import RateLimiter
from kapkurtar.services.expiry_sweep import OfferExpirySweep
from kapkurtar.services.identity import IdentityResolver
from kapkurtar.services.notifications import NotificationDispatcher
from kapkurtar.services.offer_catalog import OfferCatalog
from kapkurtar.services.offer_index import OfferIndex
from kapkurtar.services.push_client import ExpoPushClient
from kapkurtar.services.reservation_ledger import ReservationLedger
from kapkurtar.storage.database import Database
from kapkurtar.storage.redis_locks import RedisLockHelper

logger = get_logger(__name__)

PRINCIPAL_HEADER = "X-Principal-Id"


@dataclass
class ServiceContainer:
    """Everything a request handler may need, built once per application."""

    settings: Settings
    db: Database
    identity: IdentityResolver
    offer_index: OfferIndex
    catalog: OfferCatalog
    ledger: ReservationLedger
    notifier: NotificationDispatcher
    push_client: Optional[ExpoPushClient] = None
    rate_limiter: Optional[RateLimiter] = None
    redis_locks: Optional[RedisLockHelper] = None
    expiry_sweep: Optional[OfferExpirySweep] = None


def build_services(
    settings: Settings,
    db: Database,
    push_client: Optional[ExpoPushClient] = None,
    rate_limiter: Optional[RateLimiter] = None,
    redis_locks: Optional[RedisLockHelper] = None,
) -> ServiceContainer:
    """Wire services together around shared resources."""
    notifier = NotificationDispatcher(db, push_client)
    return ServiceContainer(
        settings=settings,
        db=db,
        identity=IdentityResolver(db, settings),
        offer_index=OfferIndex(db, settings),
        catalog=OfferCatalog(db, notifier),
        ledger=ReservationLedger(db, notifier),
        notifier=notifier,
        push_client=push_client,
        rate_limiter=rate_limiter,
        redis_locks=redis_locks,
        expiry_sweep=OfferExpirySweep(
            db,
            notifier,
            redis_locks=redis_locks,
            window_minutes=settings.offer_expiring_window_minutes,
        ),
    )


def get_services(request: Request) -> ServiceContainer:
    """Service container stored on the application"""
    return request.app.state.services


async def get_principal_id(
    x_principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
) -> UUID:
    """Authenticated principal, as forwarded by the auth gateway"""
    if not x_principal_id:
        raise Unauthenticated("Missing principal identity")
    try:
        return UUID(x_principal_id)
    except ValueError:
        raise Unauthenticated("Malformed principal identity")


async def get_current_profile(
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
) -> Profile:
    """Require a client profile"""
    return await services.identity.get_profile(principal_id)


async def get_current_merchant(
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
) -> Merchant:
    """Require a merchant account; role is re-read from storage"""
    return await services.identity.get_merchant_for_principal(principal_id)


def rate_limited(action: str):
    """Dependency factory enforcing the per-principal budget for an action."""

    async def check(
        principal_id: UUID = Depends(get_principal_id),
        services: ServiceContainer = Depends(get_services),
    ) -> None:
        limiter = services.rate_limiter
        if limiter is None:
            return

        try:
            allowed, retry_after = await limiter.check_rate_limit(str(principal_id), action)
        except RedisError as e:
            logger.warning("rate_limit_check_failed", action=action, error=str(e))
            return

        if not allowed:
            AuditLogger.log_rate_limit_exceeded(
                actor_id=principal_id,
                action=action,
                limit=limiter.max_requests,
                window_seconds=limiter.window_seconds,
            )
            raise RateLimited(retry_after or limiter.window_seconds)

    return check
