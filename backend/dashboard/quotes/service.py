"""Quote service: the engine plus settings, scheduling and broadcast."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from .broadcast import QUOTES_UPDATE_EVENT, Broadcaster
from .engine import QuoteEngine
from .models import Quote
from .refresh_settings import RefreshSettings, RefreshSettingsRepository
from .scheduler import QuoteScheduler
from .symbols import normalize_symbols

logger = logging.getLogger(__name__)


class QuoteService:
    """Entry point for HTTP handlers, real-time handlers and the scheduler.

    Constructed once at startup and shared by reference.
    """

    def __init__(
        self,
        engine: QuoteEngine,
        settings: RefreshSettingsRepository,
        broadcaster: Broadcaster,
        scheduler: QuoteScheduler | None = None,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.broadcaster = broadcaster
        self.scheduler = scheduler or QuoteScheduler(self.refresh_default, settings.refresh_interval_minutes)

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.engine.aclose()

    # --- Reads ---

    async def quotes_for(self, symbols: Iterable[str]) -> list[Quote]:
        """Quotes for an explicit symbol list. Not broadcast."""
        return await self.engine.refresh_all(symbols)

    def cached_quotes(self) -> list[Quote]:
        return self.engine.cached_quotes()

    async def cached_or_refresh(self) -> list[Quote]:
        """The current snapshot, or a live refresh of the watchlist when there is none yet."""
        quotes = self.engine.cached_quotes()
        if quotes:
            return quotes
        return await self.refresh_default()

    async def refresh(self, symbols: Iterable[str] | None = None) -> list[Quote]:
        """Refresh ``symbols`` (default: the watchlist) and broadcast the result."""
        # Settings live in SQLite; keep the read off the event loop
        snapshot = await asyncio.to_thread(self.settings.snapshot)
        self.engine.apply_settings(snapshot)
        targets = normalize_symbols(symbols) if symbols is not None else snapshot.symbols
        quotes = await self.engine.refresh_all(targets)
        self.broadcaster.emit(QUOTES_UPDATE_EVENT, [quote.to_dict() for quote in quotes])
        return quotes

    async def refresh_default(self) -> list[Quote]:
        return await self.refresh()

    # --- Settings ---

    def get_settings(self) -> RefreshSettings:
        return self.settings.snapshot()

    async def update_settings(
        self,
        symbols: Iterable[str] | None = None,
        refresh_interval_minutes: float | None = None,
        api_key: str | None = None,
    ) -> RefreshSettings:
        """Persist the provided fields, reschedule, and refresh immediately.

        A field left as None is not touched. Pass ``api_key=""`` to clear the key.
        """
        saved_symbols, snapshot = await asyncio.to_thread(
            self._save_settings, symbols, refresh_interval_minutes, api_key
        )
        self.engine.apply_settings(snapshot)
        await self.scheduler.restart()
        await self.refresh(saved_symbols if saved_symbols else None)
        return snapshot

    def _save_settings(
        self,
        symbols: Iterable[str] | None,
        refresh_interval_minutes: float | None,
        api_key: str | None,
    ) -> tuple[list[str] | None, RefreshSettings]:
        saved_symbols: list[str] | None = None
        if symbols is not None:
            saved_symbols = self.settings.save_symbols(symbols)
        if refresh_interval_minutes is not None:
            self.settings.save_refresh_interval_minutes(refresh_interval_minutes)
        if api_key is not None:
            self.settings.save_api_key(api_key)
        return saved_symbols, self.settings.snapshot()
