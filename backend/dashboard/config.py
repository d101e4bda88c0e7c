"""Application configuration loaded from the environment."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    return Path.home() / ".config" / "desktop-dashboard"


class AppConfig(BaseSettings):
    """Process-level configuration (``DASHBOARD_*`` variables or ``.env``).

    User-editable quote settings (watchlist, interval, key) live in the
    settings store instead; the key here only seeds an empty store.
    """

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Desktop Dashboard"
    log_level: str = "INFO"

    # Storage
    data_dir: Path | None = None
    database_url: str | None = None

    # Quote providers
    http_timeout_seconds: float = 10.0
    alpha_vantage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DASHBOARD_ALPHA_VANTAGE_API_KEY", "ALPHA_VANTAGE_API_KEY"),
    )

    # HTTP
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    scheduler_enabled: bool = True

    def get_data_dir(self) -> Path:
        """Data directory, created if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.get_data_dir() / 'data.db'}"


@lru_cache
def get_config() -> AppConfig:
    return AppConfig()


def reset_config() -> None:
    """Drop the cached config so the next ``get_config`` re-reads the environment."""
    get_config.cache_clear()
