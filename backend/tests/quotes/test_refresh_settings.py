"""Tests for the refresh settings repository."""

import pytest

from dashboard.quotes.refresh_settings import (
    API_KEY_KEY,
    REFRESH_INTERVAL_KEY,
    SYMBOLS_KEY,
    RefreshSettingsRepository,
    clamp_interval,
)
from dashboard.quotes.settings_store import InMemorySettingsStore
from dashboard.quotes.symbols import DEFAULT_SYMBOLS


class TestWatchlist:
    """Symbols setting."""

    def test_defaults_when_unset(self, settings):
        assert settings.symbols() == DEFAULT_SYMBOLS

    def test_save_normalizes(self, settings, store):
        saved = settings.save_symbols(["aapl", " MSFT ", "AAPL", ""])
        assert saved == ["AAPL", "MSFT"]
        assert store.get(SYMBOLS_KEY, None) == ["AAPL", "MSFT"]

    def test_empty_list_reads_as_defaults(self, settings):
        settings.save_symbols([])
        assert settings.symbols() == DEFAULT_SYMBOLS

    def test_corrupt_value_reads_as_defaults(self, store):
        store.set(SYMBOLS_KEY, "AAPL")
        assert RefreshSettingsRepository(store).symbols() == DEFAULT_SYMBOLS


class TestRefreshInterval:
    """Interval setting and clamping."""

    @pytest.mark.parametrize(
        "minutes,expected",
        [(1, 5), (5, 5), (10, 10), (12.4, 12), (1440, 1440), (5000, 1440)],
    )
    def test_clamp_interval(self, minutes, expected):
        assert clamp_interval(minutes) == expected

    def test_default(self, settings):
        assert settings.refresh_interval_minutes() == 10

    def test_save_clamps(self, settings, store):
        assert settings.save_refresh_interval_minutes(2) == 5
        assert store.get(REFRESH_INTERVAL_KEY, None) == 5

    @pytest.mark.parametrize("raw", ["15", True, None, [10]])
    def test_non_numeric_reads_as_default(self, store, raw):
        store.set(REFRESH_INTERVAL_KEY, raw)
        assert RefreshSettingsRepository(store).refresh_interval_minutes() == 10

    def test_stored_out_of_range_is_clamped_on_read(self, store):
        store.set(REFRESH_INTERVAL_KEY, 100000)
        assert RefreshSettingsRepository(store).refresh_interval_minutes() == 1440


class TestApiKey:
    """Secondary provider key."""

    def test_unset(self, settings):
        assert settings.api_key() is None

    def test_default_used_until_stored(self):
        store = InMemorySettingsStore()
        repo = RefreshSettingsRepository(store, default_api_key="env-key")
        assert repo.api_key() == "env-key"

        repo.save_api_key("stored-key")
        assert repo.api_key() == "stored-key"

    def test_empty_key_clears_default(self):
        """Clearing the key wins over the environment default."""
        repo = RefreshSettingsRepository(InMemorySettingsStore(), default_api_key="env-key")
        assert repo.save_api_key("   ") is None
        assert repo.api_key() is None

    def test_key_is_trimmed(self, settings, store):
        settings.save_api_key("  abc  ")
        assert settings.api_key() == "abc"
        assert store.get(API_KEY_KEY, None) == "abc"


class TestSnapshot:
    """Combined snapshot."""

    def test_snapshot(self, settings):
        settings.save_symbols(["AAPL", "BTC-USD"])
        settings.save_refresh_interval_minutes(15)
        settings.save_api_key("k")

        snapshot = settings.snapshot()

        assert snapshot.symbols == ["AAPL", "BTC-USD"]
        assert snapshot.refresh_interval_minutes == 15
        assert snapshot.refresh_interval_ms == 15 * 60 * 1000
        assert snapshot.to_dict() == {
            "symbols": ["AAPL", "BTC-USD"],
            "refreshIntervalMinutes": 15,
            "apiKey": "k",
        }
