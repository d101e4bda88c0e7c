"""Tests for the CoinGecko fallback provider."""

import httpx
import pytest

from dashboard.quotes.coingecko import CoinGeckoProvider, parse_simple_price
from dashboard.quotes.errors import InvalidQuoteError, MalformedResponseError

NOW = 1_700_000_000_000

SIMPLE_PRICE = {
    "bitcoin": {
        "usd": 58000.0,
        "usd_24h_change": 2.0,
        "last_updated_at": 1_699_999_900,
    }
}


def _provider(responses: list[httpx.Response], requests: list[httpx.Request]) -> CoinGeckoProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responses.pop(0)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CoinGeckoProvider(session=client)


class TestParseSimplePrice:
    """Response mapping without HTTP."""

    def test_full_entry(self):
        quote = parse_simple_price("BTC-USD", "bitcoin", "usd", SIMPLE_PRICE, NOW)
        assert quote.price == 58000.0
        assert quote.currency == "USD"
        assert quote.change_pct == 2.0
        assert quote.change_abs == pytest.approx(1160.0)
        assert quote.market_time == 1_699_999_900_000
        assert quote.source == "crypto-fallback"

    def test_without_optional_fields(self):
        quote = parse_simple_price("BTC-USD", "bitcoin", "usd", {"bitcoin": {"usd": 58000}}, NOW)
        assert quote.price == 58000.0
        assert quote.change_pct is None
        assert quote.change_abs is None
        assert quote.market_time == NOW

    def test_missing_asset(self):
        with pytest.raises(MalformedResponseError):
            parse_simple_price("BTC-USD", "bitcoin", "usd", {}, NOW)

    @pytest.mark.parametrize("price", [0, -1, None, "58000", True])
    def test_invalid_price(self, price):
        with pytest.raises(InvalidQuoteError):
            parse_simple_price("BTC-USD", "bitcoin", "usd", {"bitcoin": {"usd": price}}, NOW)


@pytest.mark.asyncio
class TestCoinGeckoProvider:
    """HTTP behaviour of the provider."""

    async def test_fetch_known_pair(self):
        requests: list[httpx.Request] = []
        provider = _provider([httpx.Response(200, json=SIMPLE_PRICE)], requests)

        quote = await provider.fetch("btc-usd")

        assert quote.symbol == "BTC-USD"
        assert quote.price == 58000.0
        params = requests[0].url.params
        assert params["ids"] == "bitcoin"
        assert params["vs_currencies"] == "usd"
        assert params["include_last_updated_at"] == "true"

    async def test_unknown_symbol_makes_no_request(self):
        """Symbols without a known asset id never hit the network."""
        requests: list[httpx.Request] = []
        provider = _provider([], requests)

        assert await provider.fetch("DOGE-USD") is None
        assert await provider.fetch("AAPL") is None
        assert requests == []

    async def test_rate_limited_is_no_data(self):
        requests: list[httpx.Request] = []
        provider = _provider([httpx.Response(429, json={"status": {"error_code": 429}})], requests)
        assert await provider.fetch("BTC-USD") is None

    async def test_empty_payload_is_no_data(self):
        requests: list[httpx.Request] = []
        provider = _provider([httpx.Response(200, json={})], requests)
        assert await provider.fetch("ETH-USD") is None

    async def test_custom_asset_ids(self):
        requests: list[httpx.Request] = []
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: requests.append(request)
                or httpx.Response(200, json={"solana": {"usd": 150.0}})
            )
        )
        provider = CoinGeckoProvider(session=client, asset_ids={"SOL-USD": "solana"})

        quote = await provider.fetch("SOL-USD")

        assert quote.price == 150.0
        assert requests[0].url.params["ids"] == "solana"
