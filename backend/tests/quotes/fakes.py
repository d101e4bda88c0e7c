"""Scripted fakes shared by the quote tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from dashboard.quotes.interface import PairQuoteProvider, QuoteProvider
from dashboard.quotes.models import Quote

START_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += int(minutes * MINUTE_MS)


def make_quote(
    symbol: str,
    price: float,
    *,
    source: str = "primary",
    market_time: int = START_MS,
    currency: str = "USD",
) -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        currency=currency,
        market_time=market_time,
        source=source,
        last_updated=market_time,
    )


class FakeProvider(QuoteProvider):
    """Scripted provider.

    ``responses[symbol]`` is consumed one entry per call; once exhausted the
    ``default`` result is returned (None unless set). A response may be an
    Exception instance, which is raised. Set ``gate`` to hold every fetch
    until the event is set.
    """

    def __init__(self, source: str = "primary", clock: FakeClock | None = None) -> None:
        self.source = source
        self.clock = clock
        self.responses: dict[str, list] = defaultdict(list)
        self.default: dict[str, float | None] = {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    def script(self, symbol: str, *prices: float | None | Exception) -> None:
        self.responses[symbol].extend(prices)

    def _quote(self, symbol: str, price: float) -> Quote:
        market_time = self.clock() if self.clock else START_MS
        return make_quote(symbol, price, source=self.source, market_time=market_time)

    async def _fetch(self, symbol: str) -> Quote | None:
        self.calls.append(symbol)
        if self.gate is not None:
            await self.gate.wait()
        if self.responses[symbol]:
            result = self.responses[symbol].pop(0)
        else:
            result = self.default.get(symbol)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return None
        return self._quote(symbol, result)

    async def aclose(self) -> None:
        self.closed = True


class FakeSecondary(FakeProvider, PairQuoteProvider):
    """Secondary provider fake with a separate scripted crypto endpoint."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        super().__init__(source="secondary", clock=clock)
        self.crypto = FakeProvider(source="secondary", clock=clock)

    async def _fetch_crypto(self, symbol: str) -> Quote | None:
        return await self.crypto._fetch(symbol)
