"""Offer expiry sweep.

Background job that announces offers about to expire to the clients who
follow their merchant. Replicas share a sweep lock, and a Redis marker set
after delivery keeps each offer from being announced twice.
"""

from datetime import datetime, timedelta
from typing import Optional

from kapkurtar.logging import get_logger
from kapkurtar.storage.database import Database
from kapkurtar.storage.postgres_favorite_repo import PostgresFavoriteRepository
from kapkurtar.storage.postgres_offer_repo import PostgresOfferRepository
from kapkurtar.storage.redis_locks import RedisLockHelper

from .notifications import NotificationDispatcher, NotificationEvent

logger = get_logger(__name__)

SWEEP_LOCK_NAME = "expiry_sweep"


class OfferExpirySweep:
    """Background job that sends offer_expiring notifications."""

    def __init__(
        self,
        db: Database,
        notifier: NotificationDispatcher,
        redis_locks: Optional[RedisLockHelper] = None,
        window_minutes: int = 60,
    ):
        """
        Initialize expiry sweep.

        Args:
            db: Database for offer and follower lookups
            notifier: Dispatcher used for the offer_expiring event
            redis_locks: Deduplication across runs; without it every run
                re-announces offers still inside the window
            window_minutes: How far ahead of expiry an offer is announced
        """
        self.db = db
        self.notifier = notifier
        self.redis_locks = redis_locks
        self.window_minutes = window_minutes

    async def run(self, now: Optional[datetime] = None) -> dict[str, int]:
        """
        Execute the sweep once.

        Returns:
            Dictionary with counts: {"offers": announced offers, "notified": sent, "failed": count}
        """
        logger.info("expiry_sweep_started")

        if self.redis_locks is None:
            return await self._sweep(now)

        try:
            async with self.redis_locks.acquire_lock(SWEEP_LOCK_NAME) as acquired:
                if not acquired:
                    logger.info("expiry_sweep_skipped_locked")
                    return {"offers": 0, "notified": 0, "failed": 0}
                return await self._sweep(now)
        except Exception as e:
            logger.error("expiry_sweep_error", error=str(e), exc_info=True)
            return {"offers": 0, "notified": 0, "failed": 0}

    async def _sweep(self, now: Optional[datetime]) -> dict[str, int]:
        now = now or datetime.utcnow()
        until = now + timedelta(minutes=self.window_minutes)

        try:
            async with self.db.session() as session:
                expiring = await PostgresOfferRepository(session).get_expiring_offers(now, until)
        except Exception as e:
            logger.error("expiry_sweep_error", error=str(e), exc_info=True)
            return {"offers": 0, "notified": 0, "failed": 0}

        announced = 0
        notified = 0
        failed = 0

        for offer in expiring:
            marker = f"offer_expiring:{offer.id}"
            try:
                if self.redis_locks is not None and await self.redis_locks.is_marked(marker):
                    continue

                async with self.db.session() as session:
                    followers = await PostgresFavoriteRepository(session).get_follower_auth_ids(
                        offer.merchant_id
                    )

                notified += await self.notifier.notify_many(
                    followers,
                    NotificationEvent.OFFER_EXPIRING,
                    {"offer_id": offer.id, "offer_title": offer.title},
                )

                # Marked only after delivery so a failed run is retried
                if self.redis_locks is not None:
                    await self.redis_locks.mark_once(marker, ttl_seconds=self.window_minutes * 60)
                announced += 1

                logger.info(
                    "offer_expiring_announced",
                    offer_id=str(offer.id),
                    merchant_id=str(offer.merchant_id),
                    expires_at=offer.expires_at.isoformat(),
                    followers=len(followers),
                )

            except Exception as e:
                failed += 1
                logger.error(
                    "offer_expiring_announce_failed",
                    offer_id=str(offer.id),
                    error=str(e),
                    exc_info=True,
                )

        result = {"offers": announced, "notified": notified, "failed": failed}

        logger.info("expiry_sweep_completed", **result)

        return result
