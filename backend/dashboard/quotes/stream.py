"""Real-time quote delivery over WebSocket and SSE."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from .broadcast import QUOTES_UPDATE_EVENT, Message
from .service import QuoteService

logger = logging.getLogger(__name__)

SUBSCRIBE_EVENT = "quotes:subscribe"


def _snapshot_message(service: QuoteService) -> Message:
    return QUOTES_UPDATE_EVENT, [quote.to_dict() for quote in service.cached_quotes()]


def _requested_event(raw: str) -> str | None:
    """Accept either a bare event name or ``{"event": name}``."""
    text = raw.strip()
    if not text.startswith("{"):
        return text or None
    try:
        data = json.loads(text)
    except ValueError:
        return None
    event = data.get("event") if isinstance(data, dict) else None
    return event if isinstance(event, str) else None


def create_stream_router(service: QuoteService) -> APIRouter:
    """Create the real-time router with a reference to the quote service.

    Both transports send the current snapshot as soon as a client connects,
    then every ``quotes:update`` the broadcaster emits.
    """
    router = APIRouter(tags=["streaming"])

    @router.websocket("/ws/quotes")
    async def quotes_socket(websocket: WebSocket) -> None:
        """Messages are ``{"event": "quotes:update", "data": [Quote, ...]}``.

        Sending ``quotes:subscribe`` re-sends the current snapshot.
        """
        await websocket.accept()
        queue = service.broadcaster.subscribe()
        client = websocket.client.host if websocket.client else "unknown"
        logger.info("WebSocket client connected: %s", client)

        async def pump() -> None:
            try:
                while True:
                    event, payload = await queue.get()
                    await websocket.send_json({"event": event, "data": payload})
            except Exception as e:
                logger.debug("WebSocket push to %s stopped: %s", client, e)

        pump_task: asyncio.Task | None = None
        try:
            event, payload = _snapshot_message(service)
            await websocket.send_json({"event": event, "data": payload})
            pump_task = asyncio.create_task(pump(), name="quotes-ws-pump")

            while True:
                if _requested_event(await websocket.receive_text()) == SUBSCRIBE_EVENT:
                    event, payload = _snapshot_message(service)
                    await websocket.send_json({"event": event, "data": payload})
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning("WebSocket client %s failed: %s", client, e)
        finally:
            # No awaits here: the server may already be tearing the connection down
            service.broadcaster.unsubscribe(queue)
            if pump_task is not None:
                pump_task.cancel()
            logger.info("WebSocket client disconnected: %s", client)

    @router.get("/api/stream/quotes")
    async def stream_quotes(request: Request) -> StreamingResponse:
        """SSE endpoint carrying the same events, for EventSource clients."""
        return StreamingResponse(
            _generate_events(service, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


def _format_sse(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def _generate_events(
    service: QuoteService,
    request: Request,
    disconnect_check_interval: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted quote events.

    Stops when the client disconnects (checked every
    ``disconnect_check_interval`` seconds while idle).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    queue = service.broadcaster.subscribe()
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        yield _format_sse(*_snapshot_message(service))
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break
            try:
                event, payload = await asyncio.wait_for(queue.get(), timeout=disconnect_check_interval)
            except asyncio.TimeoutError:
                continue
            yield _format_sse(event, payload)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        service.broadcaster.unsubscribe(queue)
