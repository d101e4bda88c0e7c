"""REST endpoints for quotes and quote settings."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from .models import Quote, now_ms
from .schemas import QuoteSettingsUpdate
from .service import QuoteService
from .symbols import normalize_symbols

logger = logging.getLogger(__name__)


def _quotes_response(quotes: list[Quote]) -> dict:
    return {"quotes": [quote.to_dict() for quote in quotes], "timestamp": now_ms()}


def create_quotes_router(service: QuoteService) -> APIRouter:
    """Create the ``/api/quotes`` router bound to ``service``."""
    router = APIRouter(prefix="/api/quotes", tags=["quotes"])

    @router.get("")
    async def get_quotes(symbols: str | None = None) -> dict:
        """Quotes for ``?symbols=A,B,C``, or the cached snapshot when omitted."""
        requested = normalize_symbols(symbols.split(",")) if symbols else []
        try:
            if requested:
                quotes = await service.quotes_for(requested)
            else:
                quotes = await service.cached_or_refresh()
        except Exception as e:
            logger.exception("Failed to fetch quotes")
            raise HTTPException(status_code=500, detail="Failed to fetch quotes") from e
        return _quotes_response(quotes)

    @router.get("/default")
    async def get_default_quotes() -> dict:
        """Live refresh of the configured watchlist (also broadcast)."""
        try:
            quotes = await service.refresh_default()
        except Exception as e:
            logger.exception("Failed to fetch default quotes")
            raise HTTPException(status_code=500, detail="Failed to fetch default quotes") from e
        return _quotes_response(quotes)

    @router.get("/settings")
    def get_settings() -> dict:
        return {"settings": service.get_settings().to_dict(), "timestamp": now_ms()}

    @router.put("/settings")
    async def put_settings(update: QuoteSettingsUpdate) -> dict:
        try:
            settings = await service.update_settings(
                symbols=update.symbols,
                refresh_interval_minutes=update.refresh_interval_minutes,
                api_key=update.api_key,
            )
        except Exception as e:
            logger.exception("Failed to update quote settings")
            raise HTTPException(status_code=400, detail="Failed to update quote settings") from e
        return {"settings": settings.to_dict(), "status": "ok"}

    return router
