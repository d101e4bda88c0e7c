"""Symbol normalisation and static per-symbol lookup tables."""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_SYMBOLS: list[str] = ["AAPL", "MSFT", "BTC-USD", "ETH-USD"]

# Recognised crypto pairs and their CoinGecko asset ids.
# Membership here is what makes a symbol "crypto" for provider routing.
CRYPTO_ASSET_IDS: dict[str, str] = {
    "BTC-USD": "bitcoin",
    "ETH-USD": "ethereum",
}

# Exchange suffix -> trading currency, for providers that omit currency
SUFFIX_CURRENCIES: dict[str, str] = {
    ".DE": "EUR",
    ".PA": "EUR",
    ".L": "GBP",
}

DEFAULT_CURRENCY = "USD"

PAIR_SEPARATOR = "-"


def normalize_symbol(symbol: str) -> str:
    """Trim and uppercase. May return an empty string."""
    return symbol.strip().upper()


def normalize_symbols(symbols: Iterable[str]) -> list[str]:
    """Normalise, drop empties and collapse duplicates (first occurrence wins)."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in symbols:
        symbol = normalize_symbol(str(raw))
        if not symbol or symbol in seen:
            continue
        seen.add(symbol)
        result.append(symbol)
    return result


def is_crypto(symbol: str) -> bool:
    return normalize_symbol(symbol) in CRYPTO_ASSET_IDS


def infer_currency(symbol: str) -> str:
    upper = normalize_symbol(symbol)
    for suffix, currency in SUFFIX_CURRENCIES.items():
        if upper.endswith(suffix):
            return currency
    return DEFAULT_CURRENCY


def split_pair(symbol: str) -> tuple[str, str] | None:
    """Split ``FROM-TO`` into its two legs, or None if it is not a pair."""
    parts = normalize_symbol(symbol).split(PAIR_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]
