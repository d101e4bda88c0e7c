"""FastAPI application for the desktop dashboard backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard.config import AppConfig, get_config
from dashboard.logging_config import setup_logging
from dashboard.quotes import QuoteService, create_quote_service, create_quotes_router, create_stream_router
from dashboard.quotes.models import now_ms

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, service: QuoteService | None = None) -> FastAPI:
    """Application factory.

    ``service`` may be injected (tests); otherwise it is built from ``config``.
    The quote scheduler runs for the lifetime of the app unless
    ``config.scheduler_enabled`` is False.
    """
    config = config or get_config()
    service = service or create_quote_service(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.scheduler_enabled:
            await service.start()
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(title=config.app_name, version="0.1.0", lifespan=lifespan)
    app.state.quote_service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": now_ms()}

    app.include_router(create_quotes_router(service))
    app.include_router(create_stream_router(service))
    return app


def main() -> None:
    import uvicorn

    config = get_config()
    setup_logging(config)
    uvicorn.run(create_app(config), host="127.0.0.1", port=3001)


if __name__ == "__main__":
    main()
