"""Factory for wiring the quote subsystem together."""

from __future__ import annotations

import logging

from ..config import AppConfig
from ..db import create_db_engine, create_session_factory
from .alpha_vantage import AlphaVantageProvider
from .broadcast import Broadcaster
from .coingecko import CoinGeckoProvider
from .engine import QuoteEngine
from .refresh_settings import RefreshSettingsRepository
from .service import QuoteService
from .settings_store import SettingsStore, SqlSettingsStore
from .yahoo import YahooQuoteProvider

logger = logging.getLogger(__name__)


def create_settings_store(config: AppConfig) -> SettingsStore:
    """SQL-backed settings store at the configured database URL."""
    database_url = config.get_database_url()
    engine = create_db_engine(database_url)
    logger.info("Settings store: %s", engine.url.render_as_string(hide_password=True))
    return SqlSettingsStore(create_session_factory(engine))


def create_quote_service(config: AppConfig, store: SettingsStore | None = None) -> QuoteService:
    """Build providers, engine, broadcaster and scheduler.

    Returns an unstarted service. Caller must await service.start() and,
    on shutdown, service.stop().
    """
    store = store if store is not None else create_settings_store(config)
    settings = RefreshSettingsRepository(store, default_api_key=config.alpha_vantage_api_key)

    timeout = config.http_timeout_seconds
    primary = YahooQuoteProvider(timeout=timeout)
    # Resolved per request against the engine's applied settings snapshot
    secondary = AlphaVantageProvider(api_key=lambda: engine.settings.api_key, timeout=timeout)
    crypto_fallback = CoinGeckoProvider(timeout=timeout)

    engine = QuoteEngine(
        primary=primary,
        settings=settings,
        secondary=secondary,
        crypto_fallback=crypto_fallback,
    )
    if settings.api_key():
        logger.info("Quote providers: Alpha Vantage -> Yahoo -> CoinGecko")
    else:
        logger.info("Quote providers: Yahoo -> CoinGecko (no Alpha Vantage key)")
    return QuoteService(engine=engine, settings=settings, broadcaster=Broadcaster())


