"""In-process fan-out of quote events to connected real-time clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

QUOTES_UPDATE_EVENT = "quotes:update"

Message = tuple[str, Any]


class Broadcaster:
    """Publish ``(event, payload)`` messages to every subscriber queue.

    Each subscriber gets its own bounded queue. A client that stops reading
    loses its oldest messages rather than blocking the publisher.
    """

    def __init__(self, max_queue_size: int = 16) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[Message]] = set()

    def subscribe(self) -> asyncio.Queue[Message]:
        queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        logger.debug("Subscriber added (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Message]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Subscriber removed (%d total)", len(self._subscribers))

    def emit(self, event: str, payload: Any) -> int:
        """Queue a message for every subscriber. Returns how many were reached."""
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                logger.debug("Dropped oldest %s message for a slow subscriber", event)
            queue.put_nowait((event, payload))
        return len(self._subscribers)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
