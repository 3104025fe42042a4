"""
Event gateway between a running build loop and its single subscriber.
"""

import asyncio
from collections.abc import AsyncIterator

from forge_core import get_logger

from .events import Heartbeat, StreamEvent

logger = get_logger(__name__)

DEFAULT_HEARTBEAT_INTERVAL = 30.0


class EventGateway:
    """
    Ordered, single-subscriber event channel.

    The producer side calls ``emit``; the subscriber iterates ``events()``.
    Heartbeats are interleaved on a fixed schedule that does not reset when
    regular events flow. Once the subscriber disconnects nothing more is
    delivered and ``cancelled`` turns true so the producer can stop at its
    next safe point.
    """

    def __init__(self, heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL):
        self.heartbeat_interval = heartbeat_interval
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._cancelled = False
        self._closed = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: StreamEvent) -> bool:
        """
        Queue an event for delivery.

        Returns:
            False if the event was dropped because the subscriber is gone
            or a terminal event was already sent
        """
        if self._cancelled or self._closed:
            logger.debug("Dropping event", event_type=event.type.value)
            return False

        self._queue.put_nowait(event)
        if event.is_terminal:
            self._closed = True
        return True

    def disconnect(self) -> None:
        """Mark the subscriber as gone."""
        if self._cancelled:
            return
        self._cancelled = True
        self._queue.put_nowait(None)
        logger.info("Event subscriber disconnected")

    def close(self) -> None:
        """End the stream without a terminal event."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events in emission order until a terminal event or close."""
        loop = asyncio.get_running_loop()
        next_beat = loop.time() + self.heartbeat_interval

        while not self._cancelled:
            remaining = next_beat - loop.time()
            if remaining <= 0:
                next_beat += self.heartbeat_interval
                yield Heartbeat()
                continue

            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=remaining)
            except asyncio.TimeoutError:
                continue

            if event is None or self._cancelled:
                return

            yield event
            if event.is_terminal:
                return
