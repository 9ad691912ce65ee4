"""Scheduler for background tasks (offer expiry announcements)."""

import asyncio
from typing import Optional

from kapkurtar.logging import get_logger

from .expiry_sweep import OfferExpirySweep

logger = get_logger(__name__)


class SchedulerService:
    """Background task scheduler for offer lifecycle."""

    def __init__(self, sweep: OfferExpirySweep, interval_seconds: int = 300):
        """Initialize scheduler service."""
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start scheduler loop."""
        self._running = True
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)

        while self._running:
            try:
                await self.sweep.run()
            except Exception as e:
                logger.error("scheduler_error", error=str(e))
            await asyncio.sleep(self.interval_seconds)

    def start_background(self) -> asyncio.Task:
        """Run the loop as a task on the current event loop."""
        self._task = asyncio.create_task(self.start())
        return self._task

    async def stop(self) -> None:
        """Stop scheduler loop."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")
