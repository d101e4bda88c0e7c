"""Watchlist, refresh interval and provider key, persisted in the settings store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .settings_store import SettingsStore
from .symbols import DEFAULT_SYMBOLS, normalize_symbols

logger = logging.getLogger(__name__)

SYMBOLS_KEY = "topbar.symbols"
REFRESH_INTERVAL_KEY = "quotes.refreshIntervalMinutes"
API_KEY_KEY = "quotes.alphaApiKey"
SNAPSHOT_KEY = "quotes.cache"

DEFAULT_REFRESH_MINUTES = 10
MIN_REFRESH_MINUTES = 5
MAX_REFRESH_MINUTES = 60 * 24


@dataclass(frozen=True, slots=True)
class RefreshSettings:
    """Snapshot of the refresh settings taken at the start of a cycle."""

    symbols: list[str]
    refresh_interval_minutes: int
    api_key: str | None

    @property
    def refresh_interval_ms(self) -> int:
        return self.refresh_interval_minutes * 60 * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbols": list(self.symbols),
            "refreshIntervalMinutes": self.refresh_interval_minutes,
            "apiKey": self.api_key,
        }


def clamp_interval(minutes: float) -> int:
    """Round to whole minutes and clamp to [MIN_REFRESH_MINUTES, MAX_REFRESH_MINUTES]."""
    return max(MIN_REFRESH_MINUTES, min(MAX_REFRESH_MINUTES, round(minutes)))


class RefreshSettingsRepository:
    """Typed accessors over the raw settings store.

    ``default_api_key`` (typically from the environment) is only used while no
    key has ever been stored; storing an empty key disables the secondary
    provider even if the environment provides one.
    """

    def __init__(self, store: SettingsStore, default_api_key: str | None = None) -> None:
        self._store = store
        self._default_api_key = default_api_key

    @property
    def store(self) -> SettingsStore:
        return self._store

    def snapshot(self) -> RefreshSettings:
        return RefreshSettings(
            symbols=self.symbols(),
            refresh_interval_minutes=self.refresh_interval_minutes(),
            api_key=self.api_key(),
        )

    # --- Watchlist ---

    def symbols(self) -> list[str]:
        stored = self._store.get(SYMBOLS_KEY, DEFAULT_SYMBOLS)
        if not isinstance(stored, list) or not stored:
            stored = DEFAULT_SYMBOLS
        return normalize_symbols(stored) or list(DEFAULT_SYMBOLS)

    def save_symbols(self, symbols: Iterable[str]) -> list[str]:
        normalized = normalize_symbols(symbols)
        self._store.set(SYMBOLS_KEY, normalized)
        logger.info("Watchlist saved: %s", ", ".join(normalized) or "(empty)")
        return normalized

    # --- Refresh interval ---

    def refresh_interval_minutes(self) -> int:
        stored = self._store.get(REFRESH_INTERVAL_KEY, DEFAULT_REFRESH_MINUTES)
        if isinstance(stored, bool) or not isinstance(stored, (int, float)):
            return DEFAULT_REFRESH_MINUTES
        return clamp_interval(stored)

    def save_refresh_interval_minutes(self, minutes: float) -> int:
        clamped = clamp_interval(minutes)
        self._store.set(REFRESH_INTERVAL_KEY, clamped)
        logger.info("Refresh interval saved: %d min", clamped)
        return clamped

    # --- Provider key ---

    def api_key(self) -> str | None:
        stored = self._store.get(API_KEY_KEY, None)
        if stored is None:
            stored = self._default_api_key
        if not isinstance(stored, str) or not stored.strip():
            return None
        return stored.strip()

    def save_api_key(self, key: str | None) -> str | None:
        cleaned = key.strip() if key else ""
        self._store.set(API_KEY_KEY, cleaned)
        logger.info("Secondary provider key %s", "set" if cleaned else "cleared")
        return cleaned or None
