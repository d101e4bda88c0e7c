"""Yahoo Finance quote provider (primary source, no API key)."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .errors import InvalidQuoteError, MalformedResponseError
from .interface import QuoteProvider
from .models import SOURCE_PRIMARY, Quote, now_ms

logger = logging.getLogger(__name__)

# Session price fields in preference order: (price key, time key, session)
PRICE_CANDIDATES: tuple[tuple[str, str, str], ...] = (
    ("regularMarketPrice", "regularMarketTime", "regular"),
    ("postMarketPrice", "postMarketTime", "post"),
    ("preMarketPrice", "preMarketTime", "pre"),
)

# Epoch values below this are seconds, at or above it milliseconds
_MS_THRESHOLD = 1_000_000_000_000


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def normalize_market_time(raw: Any) -> int | None:
    """Coerce a provider timestamp (seconds, millis, ISO string, datetime) to epoch ms."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return int(raw.timestamp() * 1000)
    if isinstance(raw, str):
        try:
            return int(datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return None
    value = _finite(raw)
    if value is None or value <= 0:
        return None
    return int(value * 1000) if value < _MS_THRESHOLD else int(value)


def parse_yahoo_quote(symbol: str, raw: Mapping[str, Any], now: int) -> Quote:
    """Build a Quote from a Yahoo quote mapping.

    Prefers the regular-session price, then post-market, then pre-market.
    Raises InvalidQuoteError when no positive price or no currency is present.
    """
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"expected a mapping, got {type(raw).__name__}")

    price: float | None = None
    market_time: int | None = None
    for price_key, time_key, session in PRICE_CANDIDATES:
        candidate = _finite(raw.get(price_key))
        if candidate is not None and candidate > 0:
            price = candidate
            market_time = normalize_market_time(raw.get(time_key))
            if session != "regular":
                logger.debug("Using %s-market price for %s", session, symbol)
            break

    if price is None:
        raise InvalidQuoteError("no positive price")

    currency = raw.get("currency")
    if not isinstance(currency, str) or not currency.strip():
        raise InvalidQuoteError("missing currency")

    market_state = raw.get("marketState")
    return Quote(
        symbol=symbol,
        display_name=raw.get("shortName") or raw.get("longName") or None,
        price=price,
        currency=currency.strip().upper(),
        change_abs=_finite(raw.get("regularMarketChange")),
        change_pct=_finite(raw.get("regularMarketChangePercent")),
        market_time=market_time or now,
        market_state=market_state if isinstance(market_state, str) else None,
        source=SOURCE_PRIMARY,
        last_updated=now,
    )


class YahooQuoteProvider(QuoteProvider):
    """QuoteProvider backed by the ``yfinance`` package.

    yfinance is synchronous, so each lookup runs in a worker thread and is
    bounded by ``timeout`` seconds.
    """

    source = SOURCE_PRIMARY

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    async def _fetch(self, symbol: str) -> Quote | None:
        info = await asyncio.wait_for(asyncio.to_thread(self._fetch_info, symbol), self._timeout)
        if not info:
            return None
        return parse_yahoo_quote(symbol, info, now_ms())

    def _fetch_info(self, symbol: str) -> Mapping[str, Any]:
        """Synchronous call into yfinance. Runs in a thread."""
        # Lazy import: yfinance pulls in pandas, keep it off the import path
        import yfinance as yf

        return yf.Ticker(symbol).info
