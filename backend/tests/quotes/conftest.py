"""Fixtures for quote subsystem tests.

Providers are replaced by scripted fakes (see ``fakes.py``) and time by a
manual clock, so the engine can be exercised without network access or real
waiting.
"""

from __future__ import annotations

import pytest
from fakes import FakeClock, FakeProvider, FakeSecondary

from dashboard.quotes.engine import QuoteEngine
from dashboard.quotes.refresh_settings import RefreshSettingsRepository
from dashboard.quotes.settings_store import InMemorySettingsStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def settings(store: InMemorySettingsStore) -> RefreshSettingsRepository:
    return RefreshSettingsRepository(store)


@pytest.fixture
def primary(clock: FakeClock) -> FakeProvider:
    return FakeProvider(source="primary", clock=clock)


@pytest.fixture
def secondary(clock: FakeClock) -> FakeSecondary:
    return FakeSecondary(clock=clock)


@pytest.fixture
def crypto_fallback(clock: FakeClock) -> FakeProvider:
    return FakeProvider(source="crypto-fallback", clock=clock)


@pytest.fixture
def engine(
    primary: FakeProvider,
    secondary: FakeSecondary,
    crypto_fallback: FakeProvider,
    settings: RefreshSettingsRepository,
    clock: FakeClock,
) -> QuoteEngine:
    return QuoteEngine(
        primary=primary,
        settings=settings,
        secondary=secondary,
        crypto_fallback=crypto_fallback,
        clock=clock,
    )
