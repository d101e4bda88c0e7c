"""Alpha Vantage quote provider (secondary source, API key required)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from .errors import InvalidQuoteError, MalformedResponseError, ProviderUnavailableError, RateLimitedError
from .interface import PairQuoteProvider
from .models import SOURCE_SECONDARY, Quote, now_ms
from .symbols import infer_currency, split_pair

logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"

# Top-level keys Alpha Vantage uses instead of data when throttling or refusing
RATE_LIMIT_MARKERS = ("Note", "Information", "Error Message")

# Daily quotes carry a date only; stamp them at the US close
_CLOSE_TIME = "T16:00:00+00:00"


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(str(value).strip().rstrip("%"))
    except ValueError:
        return None


def _parse_time(raw: Any, fallback: int) -> int:
    if not isinstance(raw, str) or not raw.strip():
        return fallback
    text = raw.strip()
    if len(text) == 10:
        text += _CLOSE_TIME
    try:
        parsed = datetime.fromisoformat(text.replace(" ", "T"))
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def check_rate_limited(payload: Mapping[str, Any]) -> None:
    for marker in RATE_LIMIT_MARKERS:
        if payload.get(marker):
            raise RateLimitedError(str(payload[marker])[:200])


def parse_global_quote(symbol: str, payload: Mapping[str, Any], now: int) -> Quote:
    """Map a ``GLOBAL_QUOTE`` response to a Quote."""
    check_rate_limited(payload)
    entry = payload.get("Global Quote")
    if not isinstance(entry, Mapping) or not entry.get("05. price"):
        raise MalformedResponseError("missing 'Global Quote' price")

    price = _to_float(entry.get("05. price"))
    if price is None or price <= 0:
        raise InvalidQuoteError(f"invalid price {entry.get('05. price')!r}")

    return Quote(
        symbol=symbol,
        display_name=entry.get("01. symbol") or symbol,
        price=price,
        currency=infer_currency(symbol),
        change_abs=_to_float(entry.get("09. change")),
        change_pct=_to_float(entry.get("10. change percent")),
        market_time=_parse_time(entry.get("07. latest trading day"), now),
        market_state="REGULAR",
        source=SOURCE_SECONDARY,
        last_updated=now,
    )


def parse_exchange_rate(symbol: str, payload: Mapping[str, Any], now: int) -> Quote:
    """Map a ``CURRENCY_EXCHANGE_RATE`` response to a Quote."""
    check_rate_limited(payload)
    pair = split_pair(symbol)
    if pair is None:
        raise MalformedResponseError(f"{symbol} is not a FROM-TO pair")
    from_symbol, to_symbol = pair

    rate = payload.get("Realtime Currency Exchange Rate")
    if not isinstance(rate, Mapping):
        raise MalformedResponseError("missing 'Realtime Currency Exchange Rate'")
    price = _to_float(rate.get("5. Exchange Rate"))
    if price is None or price <= 0:
        raise InvalidQuoteError(f"invalid exchange rate {rate.get('5. Exchange Rate')!r}")

    return Quote(
        symbol=symbol,
        display_name=f"{from_symbol}/{to_symbol}",
        price=price,
        currency=to_symbol,
        market_time=_parse_time(rate.get("6. Last Refreshed"), now),
        market_state="REGULAR",
        source=SOURCE_SECONDARY,
        last_updated=now,
    )


class AlphaVantageProvider(PairQuoteProvider):
    """PairQuoteProvider backed by the Alpha Vantage REST API.

    The free tier allows a handful of requests per minute; when exhausted the
    API still answers 200 with a ``Note``/``Information`` body, which is
    treated as "no data".

    ``api_key`` is called on every request. The factory points it at the
    settings the engine last applied, so a saved key takes effect on the next
    refresh without rebuilding the provider or reading the store.
    """

    source = SOURCE_SECONDARY

    def __init__(
        self,
        api_key: Callable[[], str | None],
        session: httpx.AsyncClient | None = None,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._client = session
        self._owns_client = session is None
        self._base_url = base_url
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._current_key())

    def _current_key(self) -> str | None:
        key = self._api_key()
        return key.strip() if key and key.strip() else None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, connect=5.0))
        return self._client

    async def _query(self, params: dict[str, str]) -> Mapping[str, Any]:
        key = self._current_key()
        if key is None:
            raise ProviderUnavailableError("no API key configured")
        client = await self._get_client()
        try:
            response = await client.get(self._base_url, params={**params, "apikey": key})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitedError("HTTP 429") from e
            raise ProviderUnavailableError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise MalformedResponseError("response is not JSON") from e
        if not isinstance(payload, Mapping):
            raise MalformedResponseError(f"unexpected payload type {type(payload).__name__}")
        return payload

    async def _fetch(self, symbol: str) -> Quote | None:
        payload = await self._query({"function": "GLOBAL_QUOTE", "symbol": symbol})
        return parse_global_quote(symbol, payload, now_ms())

    async def _fetch_crypto(self, symbol: str) -> Quote | None:
        pair = split_pair(symbol)
        if pair is None:
            return None
        payload = await self._query(
            {"function": "CURRENCY_EXCHANGE_RATE", "from_currency": pair[0], "to_currency": pair[1]}
        )
        return parse_exchange_rate(symbol, payload, now_ms())

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
