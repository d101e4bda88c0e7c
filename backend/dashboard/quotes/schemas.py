"""Request models for the quotes API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QuoteSettingsUpdate(BaseModel):
    """Body of ``PUT /api/quotes/settings``. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbols: list[str] | None = Field(default=None, description="Watchlist, normalised server side")
    refresh_interval_minutes: float | None = Field(
        default=None,
        alias="refreshIntervalMinutes",
        gt=0,
        description="Refresh interval, clamped to [5, 1440] minutes",
    )
    api_key: str | None = Field(
        default=None,
        alias="apiKey",
        description="Secondary provider key; an empty string clears it",
    )
