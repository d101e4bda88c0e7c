"""Quote cache and refresh engine."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from .interface import PairQuoteProvider, QuoteProvider
from .models import Quote, now_ms
from .refresh_settings import SNAPSHOT_KEY, RefreshSettings, RefreshSettingsRepository
from .symbols import is_crypto, normalize_symbol, normalize_symbols

logger = logging.getLogger(__name__)

# Relative move versus the cached price that triggers a verification fetch
LARGE_MOVE_THRESHOLD = 0.5


@dataclass(frozen=True, slots=True)
class ProviderStep:
    """One attempt in the fallback chain."""

    name: str
    fetch: Callable[[str], Awaitable[Quote | None]]
    applies: Callable[[str, bool], bool]  # (symbol, secondary_enabled) -> bool


def _always(symbol: str, keyed: bool) -> bool:
    return True


def build_provider_chain(
    primary: QuoteProvider,
    secondary: PairQuoteProvider | None,
    crypto_fallback: QuoteProvider | None,
) -> list[ProviderStep]:
    """Ordered attempts for one symbol; the first non-None result wins."""
    steps: list[ProviderStep] = []
    if secondary is not None:
        steps.append(ProviderStep("secondary", secondary.fetch, lambda s, keyed: keyed and not is_crypto(s)))
        steps.append(ProviderStep("secondary-crypto", secondary.fetch_crypto, lambda s, keyed: keyed and is_crypto(s)))
    steps.append(ProviderStep("primary", primary.fetch, _always))
    steps.append(ProviderStep("primary-retry", primary.fetch, _always))
    if crypto_fallback is not None:
        steps.append(ProviderStep("crypto-fallback", crypto_fallback.fetch, lambda s, keyed: is_crypto(s)))
    return steps


class QuoteEngine:
    """Per-symbol quote cache with in-flight deduplication.

    State is owned by the instance: the latest quote per symbol (never
    evicted), the fetch currently running per symbol, and the last non-empty
    batch returned by ``refresh_all``, which is also persisted so a restart
    has something to serve before the first live fetch.

    All mutation happens on the event loop thread. The only suspension point
    in ``get_quote`` is the provider fetch; the cache-hit path never awaits.
    """

    def __init__(
        self,
        primary: QuoteProvider,
        settings: RefreshSettingsRepository,
        secondary: PairQuoteProvider | None = None,
        crypto_fallback: QuoteProvider | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._crypto_fallback = crypto_fallback
        self._settings_repo = settings
        self._clock = clock
        self._chain = build_provider_chain(primary, secondary, crypto_fallback)

        self._settings: RefreshSettings = settings.snapshot()
        self._cache: dict[str, Quote] = {}
        self._inflight: dict[str, asyncio.Task[Quote | None]] = {}
        self._snapshot: list[Quote] = self._load_snapshot()

    # --- Settings ---

    @property
    def settings(self) -> RefreshSettings:
        return self._settings

    def apply_settings(self, settings: RefreshSettings) -> None:
        """Swap in a new settings snapshot; takes effect for the next lookup."""
        self._settings = settings

    @property
    def provider_chain(self) -> list[ProviderStep]:
        return list(self._chain)

    async def aclose(self) -> None:
        """Close every provider's network resources."""
        for provider in (self._primary, self._secondary, self._crypto_fallback):
            if provider is not None:
                await provider.aclose()

    # --- Reads ---

    async def get_quote(self, symbol: str) -> Quote | None:
        """Resolve one symbol from cache or upstream. Returns None if nothing is known.

        Concurrent callers for the same symbol share a single upstream fetch.
        Raises ValueError for an empty symbol.
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise ValueError("symbol must not be empty")

        now = self._clock()
        cached = self._cache.get(symbol)
        if cached is not None and now - cached.last_updated < self._settings.refresh_interval_ms:
            logger.debug("Cache hit for %s", symbol)
            return cached.with_staleness(now)

        task = self._inflight.get(symbol)
        if task is None:
            # Registered before the task first runs, so later callers always join it
            task = asyncio.get_running_loop().create_task(
                self._resolve(symbol, cached), name=f"quote-fetch-{symbol}"
            )
            self._inflight[symbol] = task
        else:
            logger.debug("Joining in-flight fetch for %s", symbol)

        # Shield: a caller that goes away must not cancel the shared fetch
        return await asyncio.shield(task)

    def get_cached(self, symbol: str) -> Quote | None:
        """Cached quote with current staleness, without any fetch."""
        cached = self._cache.get(normalize_symbol(symbol))
        return cached.with_staleness(self._clock()) if cached is not None else None

    def cached_quotes(self) -> list[Quote]:
        """The last broadcast snapshot, staleness re-derived for now."""
        now = self._clock()
        return [quote.with_staleness(now) for quote in self._snapshot]

    def is_fetching(self, symbol: str) -> bool:
        return normalize_symbol(symbol) in self._inflight

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, symbol: str) -> bool:
        return normalize_symbol(symbol) in self._cache

    # --- Batch refresh ---

    async def refresh_all(self, symbols: Iterable[str]) -> list[Quote]:
        """Resolve every symbol in order, one at a time.

        The upstreams share rate limits, so symbols never overlap. If nothing
        resolves, the previous snapshot is returned instead of an empty list.
        """
        normalized = normalize_symbols(symbols)
        start = time.monotonic()
        results: list[Quote] = []
        errors = 0

        for symbol in normalized:
            quote = await self.get_quote(symbol)
            if quote is None:
                errors += 1
            else:
                results.append(quote)

        logger.info(
            "Refresh %d symbols -> %d ok, %d errors (%.0fms)",
            len(normalized),
            len(results),
            errors,
            (time.monotonic() - start) * 1000,
        )

        if results:
            self._snapshot = results
            await asyncio.to_thread(self._persist_snapshot, results)
            return list(results)

        if self._snapshot:
            logger.warning("Refresh returned nothing, serving last snapshot (%d quotes)", len(self._snapshot))
            return self.cached_quotes()
        return []

    # --- Internals ---

    async def _resolve(self, symbol: str, cached: Quote | None) -> Quote | None:
        try:
            quote = await self._fetch_from_chain(symbol)
            now = self._clock()

            if quote is None:
                if cached is None:
                    logger.warning("No provider returned data for %s", symbol)
                    return None
                logger.warning("All providers failed for %s, reusing cached quote", symbol)
                fallback = dataclasses.replace(cached, is_stale=True)
                self._cache[symbol] = fallback
                return fallback

            if cached is not None and not is_crypto(symbol):
                quote = await self._verify_large_move(symbol, cached, quote)

            resolved = dataclasses.replace(quote, symbol=symbol, last_updated=now).with_staleness(now)
            self._cache[symbol] = resolved
            return resolved
        finally:
            if self._inflight.get(symbol) is asyncio.current_task():
                del self._inflight[symbol]

    async def _fetch_from_chain(self, symbol: str) -> Quote | None:
        keyed = self._secondary is not None and bool(self._settings.api_key)
        for step in self._chain:
            if not step.applies(symbol, keyed):
                continue
            quote = await step.fetch(symbol)
            if quote is not None and quote.price > 0:
                logger.debug("%s resolved by %s at %s", symbol, step.name, quote.price)
                return quote
        return None

    async def _verify_large_move(self, symbol: str, cached: Quote, quote: Quote) -> Quote:
        """Re-check a >50% move once against the primary provider.

        The move is never refused outright: if the retry has nothing, or
        confirms the move, the new price is accepted with a warning.
        """
        delta = abs(quote.price - cached.price) / cached.price
        if delta <= LARGE_MOVE_THRESHOLD:
            return quote

        logger.warning("Large move detected for %s (%.1f%%), retrying once", symbol, delta * 100)
        retry = await self._primary.fetch(symbol)
        if retry is None or retry.price <= 0:
            logger.warning("Accepting large move for %s after empty retry", symbol)
            return quote

        retry_delta = abs(retry.price - cached.price) / cached.price
        if retry_delta > LARGE_MOVE_THRESHOLD:
            logger.warning("Accepting large move for %s, confirmed by retry (%.1f%%)", symbol, retry_delta * 100)
        return retry

    def _load_snapshot(self) -> list[Quote]:
        raw = self._settings_repo.store.get(SNAPSHOT_KEY, [])
        if not isinstance(raw, list):
            return []
        quotes = [quote for quote in (Quote.from_dict(item) for item in raw if isinstance(item, dict)) if quote]
        for quote in quotes:
            self._cache.setdefault(quote.symbol, quote)
        if quotes:
            logger.info("Restored %d quotes from the persisted snapshot", len(quotes))
        return quotes

    def _persist_snapshot(self, quotes: list[Quote]) -> None:
        try:
            self._settings_repo.store.set(SNAPSHOT_KEY, [quote.to_dict() for quote in quotes])
        except Exception:
            # The in-memory snapshot is still current; durability is best effort
            logger.exception("Failed to persist quote snapshot")
