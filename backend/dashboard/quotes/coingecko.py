"""CoinGecko price provider (last-resort fallback for known crypto pairs)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .errors import InvalidQuoteError, MalformedResponseError, ProviderUnavailableError, RateLimitedError
from .interface import QuoteProvider
from .models import SOURCE_CRYPTO_FALLBACK, Quote, now_ms
from .symbols import CRYPTO_ASSET_IDS, split_pair

logger = logging.getLogger(__name__)

BASE_URL = "https://api.coingecko.com/api/v3/simple/price"


def parse_simple_price(
    symbol: str,
    asset_id: str,
    vs_currency: str,
    payload: Mapping[str, Any],
    now: int,
) -> Quote:
    """Map a ``simple/price`` response entry to a Quote."""
    entry = payload.get(asset_id)
    if not isinstance(entry, Mapping):
        raise MalformedResponseError(f"no entry for {asset_id}")

    price = entry.get(vs_currency)
    if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0:
        raise InvalidQuoteError(f"invalid price {price!r}")
    price = float(price)

    change_pct = entry.get(f"{vs_currency}_24h_change")
    if isinstance(change_pct, bool) or not isinstance(change_pct, (int, float)):
        change_pct = None
    updated_at = entry.get("last_updated_at")

    return Quote(
        symbol=symbol,
        display_name=asset_id,
        price=price,
        currency=vs_currency.upper(),
        change_pct=float(change_pct) if change_pct is not None else None,
        change_abs=price * change_pct / 100 if change_pct is not None else None,
        market_time=int(updated_at) * 1000 if isinstance(updated_at, (int, float)) and updated_at > 0 else now,
        source=SOURCE_CRYPTO_FALLBACK,
        last_updated=now,
    )


class CoinGeckoProvider(QuoteProvider):
    """QuoteProvider backed by CoinGecko's public ``simple/price`` endpoint.

    Only symbols listed in CRYPTO_ASSET_IDS are served; anything else returns
    None without touching the network.
    """

    source = SOURCE_CRYPTO_FALLBACK

    def __init__(
        self,
        session: httpx.AsyncClient | None = None,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        asset_ids: Mapping[str, str] | None = None,
    ) -> None:
        self._client = session
        self._owns_client = session is None
        self._base_url = base_url
        self._timeout = timeout
        self._asset_ids = dict(asset_ids or CRYPTO_ASSET_IDS)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, connect=5.0))
        return self._client

    async def _fetch(self, symbol: str) -> Quote | None:
        asset_id = self._asset_ids.get(symbol)
        if asset_id is None:
            return None
        pair = split_pair(symbol)
        vs_currency = pair[1].lower() if pair else "usd"

        params = {
            "ids": asset_id,
            "vs_currencies": vs_currency,
            "include_last_updated_at": "true",
            "include_24hr_change": "true",
        }
        client = await self._get_client()
        try:
            response = await client.get(self._base_url, params=params)
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
        return parse_simple_price(symbol, asset_id, vs_currency, payload, now_ms())

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
