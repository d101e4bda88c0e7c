"""Quote acquisition subsystem for the dashboard ticker.

Public API:
    Quote               - Immutable quote snapshot dataclass
    QuoteEngine         - Per-symbol cache with in-flight dedup and fallback chain
    QuoteProvider       - Abstract interface for upstream providers
    QuoteService        - Engine + settings + scheduler + broadcast facade
    create_quote_service - Factory that wires providers and the settings store
    create_quotes_router - FastAPI router factory for the REST endpoints
    create_stream_router - FastAPI router factory for WebSocket/SSE delivery
"""

from .api import create_quotes_router
from .engine import QuoteEngine
from .factory import create_quote_service
from .interface import QuoteProvider
from .models import Quote
from .service import QuoteService
from .stream import create_stream_router

__all__ = [
    "Quote",
    "QuoteEngine",
    "QuoteProvider",
    "QuoteService",
    "create_quote_service",
    "create_quotes_router",
    "create_stream_router",
]
