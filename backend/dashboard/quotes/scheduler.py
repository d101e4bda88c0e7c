"""Periodic quote refresh loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .refresh_settings import MIN_REFRESH_MINUTES

logger = logging.getLogger(__name__)


class QuoteScheduler:
    """Runs ``refresh`` every ``interval_minutes()`` minutes on a background task.

    Lifecycle:
        scheduler = QuoteScheduler(service.refresh_default, repo.refresh_interval_minutes)
        await scheduler.start()     # refreshes immediately, then on the timer
        await scheduler.restart()   # settings changed: reschedule from now
        await scheduler.stop()

    The interval is re-read before every sleep, with ``min_interval_minutes``
    as a floor. A failing refresh is logged and the loop carries on.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        interval_minutes: Callable[[], float],
        min_interval_minutes: float = MIN_REFRESH_MINUTES,
    ) -> None:
        self._refresh = refresh
        self._interval_minutes = interval_minutes
        self._min_interval_minutes = min_interval_minutes
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def interval_seconds(self) -> float:
        return max(self._min_interval_minutes, self._interval_minutes()) * 60

    async def start(self) -> None:
        """Start the loop with an immediate first refresh. Restarts if already running."""
        await self._cancel()
        self._task = asyncio.create_task(self._run_loop(immediate=True), name="quote-scheduler")
        logger.info("Quote scheduler started (%.1f min)", self.interval_seconds() / 60)

    async def restart(self) -> None:
        """Cancel the pending tick and reschedule from now, without an immediate refresh."""
        await self._cancel()
        self._task = asyncio.create_task(self._run_loop(immediate=False), name="quote-scheduler")
        logger.info("Quote scheduler restarted (%.1f min)", self.interval_seconds() / 60)

    async def stop(self) -> None:
        await self._cancel()
        logger.info("Quote scheduler stopped")

    # --- Internal ---

    async def _cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run_loop(self, immediate: bool) -> None:
        if immediate:
            await self._run_once()
        while True:
            await asyncio.sleep(self.interval_seconds())
            await self._run_once()

    async def _run_once(self) -> None:
        try:
            await self._refresh()
        except Exception:
            logger.exception("Scheduled quote refresh failed")
