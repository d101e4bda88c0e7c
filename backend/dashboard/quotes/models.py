"""Data models for quote data."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# A quote older than this (by fetch time or by market time) is stale
STALE_AFTER_MS = 20 * 60 * 1000

SOURCE_PRIMARY = "primary"
SOURCE_SECONDARY = "secondary"
SOURCE_CRYPTO_FALLBACK = "crypto-fallback"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class Quote:
    """Immutable point-in-time price observation for one symbol."""

    symbol: str
    price: float
    currency: str
    market_time: int  # Epoch ms, as reported by the provider
    source: str
    last_updated: int  # Epoch ms, when the quote entered the cache
    display_name: str | None = None
    change_abs: float | None = None
    change_pct: float | None = None
    market_state: str | None = None
    is_stale: bool = False

    def with_staleness(self, now: int) -> Quote:
        """Copy of this quote with ``is_stale`` derived for ``now``."""
        return dataclasses.replace(self, is_stale=is_stale(self, now))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used on the wire and in the store."""
        data: dict[str, Any] = {
            "symbol": self.symbol,
            "price": self.price,
            "currency": self.currency,
            "marketTime": self.market_time,
            "source": self.source,
            "lastUpdated": self.last_updated,
            "isStale": self.is_stale,
        }
        optional = {
            "displayName": self.display_name,
            "changeAbs": self.change_abs,
            "changePct": self.change_pct,
            "marketState": self.market_state,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Quote | None:
        """Rebuild a quote from ``to_dict`` output.

        Returns None for entries that are malformed or carry a non-positive
        price, so a corrupt persisted snapshot is skipped rather than loaded.
        """
        try:
            price = float(data["price"])
            quote = cls(
                symbol=str(data["symbol"]).strip().upper(),
                price=price,
                currency=str(data["currency"]),
                market_time=int(data["marketTime"]),
                source=str(data["source"]),
                last_updated=int(data["lastUpdated"]),
                display_name=_optional_str(data.get("displayName")),
                change_abs=_optional_float(data.get("changeAbs")),
                change_pct=_optional_float(data.get("changePct")),
                market_state=_optional_str(data.get("marketState")),
                is_stale=bool(data.get("isStale", False)),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding malformed quote entry: %s", e)
            return None
        if not quote.symbol or quote.price <= 0:
            return None
        return quote


def is_stale(quote: Quote, now: int) -> bool:
    """True when the quote was already flagged, or its cache entry or market data is old.

    The flag is set when a failed refresh reissues the last good quote and
    stays set until a successful fetch replaces the entry.
    """
    if quote.is_stale:
        return True
    return (now - quote.last_updated) > STALE_AFTER_MS or (now - quote.market_time) > STALE_AFTER_MS


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
