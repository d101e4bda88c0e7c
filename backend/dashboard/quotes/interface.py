"""Abstract interface for quote providers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from .errors import ProviderError, RateLimitedError
from .models import Quote
from .symbols import normalize_symbol

logger = logging.getLogger(__name__)


class QuoteProvider(ABC):
    """Contract for upstream quote sources.

    Each adapter owns the shape of its provider's responses and turns them
    into a canonical Quote. Callers only ever see a Quote or None:

        quote = await provider.fetch("AAPL")
        if quote is None:
            ...  # try the next provider

    Subclasses implement ``_fetch`` and are free to raise; ``fetch`` logs the
    cause and converts any failure into None.
    """

    #: Value written to ``Quote.source``
    source: str = ""

    async def fetch(self, symbol: str) -> Quote | None:
        """Fetch a quote for ``symbol``. Never raises for upstream failures."""
        return await self._guarded(self._fetch, symbol)

    async def _guarded(
        self,
        lookup: Callable[[str], Awaitable[Quote | None]],
        symbol: str,
    ) -> Quote | None:
        """Run ``lookup`` and turn every failure into a logged None."""
        symbol = normalize_symbol(symbol)
        if not symbol:
            return None
        try:
            quote = await lookup(symbol)
        except asyncio.TimeoutError:
            logger.warning("%s timed out for %s", self.source, symbol)
            return None
        except RateLimitedError as e:
            logger.warning("%s rate limited for %s: %s", self.source, symbol, e)
            return None
        except ProviderError as e:
            logger.warning("%s returned no data for %s: %s", self.source, symbol, e)
            return None
        except Exception:
            logger.exception("%s fetch failed for %s", self.source, symbol)
            return None

        if quote is not None and quote.price <= 0:
            logger.warning("%s returned non-positive price for %s", self.source, symbol)
            return None
        return quote

    @abstractmethod
    async def _fetch(self, symbol: str) -> Quote | None:
        """Provider-specific lookup. ``symbol`` is already normalised."""

    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""


class PairQuoteProvider(QuoteProvider):
    """A provider that also serves ``FROM-TO`` currency pairs on a separate lookup.

    The engine only relies on ``fetch`` and ``fetch_crypto``; both follow the
    same None-on-failure contract.
    """

    async def fetch_crypto(self, symbol: str) -> Quote | None:
        """Fetch a quote for a currency pair such as ``BTC-USD``."""
        return await self._guarded(self._fetch_crypto, symbol)

    @abstractmethod
    async def _fetch_crypto(self, symbol: str) -> Quote | None:
        """Provider-specific pair lookup. ``symbol`` is already normalised."""
