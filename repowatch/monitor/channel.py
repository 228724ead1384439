"""Single-producer, single-consumer conduit for notification events."""

import asyncio
import logging
from collections.abc import AsyncIterator

from ..models.enums import NotificationEvent

logger = logging.getLogger(__name__)


class ChannelClosedError(Exception):
    """Raised when putting an event on a channel whose consumer is gone."""

    pass


class NotificationChannel:
    """FIFO delivery of ``NotificationEvent`` from the engine to one consumer.

    Delivery is at-most-once and order-preserving. Once the consumer closes
    the channel, sends become no-ops; the first dropped send is logged.
    """

    def __init__(self, maxsize: int = 0):
        # None is the wake-up sentinel pushed by close()
        self._queue: asyncio.Queue[NotificationEvent | None] = asyncio.Queue(maxsize)
        self._closed = False
        self._drop_logged = False
        self.sent = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Events queued but not yet received."""
        return self._queue.qsize()

    def put(self, event: NotificationEvent) -> None:
        """Enqueue ``event`` without waiting.

        Raises:
            ChannelClosedError: If the consumer closed the channel
            asyncio.QueueFull: If a bounded channel is full
        """
        if self._closed:
            raise ChannelClosedError(f"Channel closed, cannot deliver {event.value}")
        self._queue.put_nowait(event)

    def send(self, event: NotificationEvent) -> bool:
        """Deliver ``event`` if possible; never raises and never retries.

        Returns:
            True if the event was queued
        """
        try:
            self.put(event)
        except ChannelClosedError as e:
            self.dropped += 1
            if not self._drop_logged:
                logger.warning(f"{e}; further notifications will be dropped")
                self._drop_logged = True
            return False
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Notification channel full, dropped {event.value}")
            return False

        self.sent += 1
        return True

    async def receive(self) -> NotificationEvent | None:
        """Wait for the next event; ``None`` once closed and drained."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """Mark the consumer as gone and wake a pending ``receive``."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # receive() returns None once the backlog drains
            pass

    async def __aiter__(self) -> AsyncIterator[NotificationEvent]:
        while True:
            event = await self.receive()
            if event is None:
                return
            yield event
