"""Fan-out hub for rendered chart frames.

One producer publishes, any number of viewers subscribe.  Each subscriber
owns a bounded queue; when it is full the oldest pending frame is dropped
to make room, so a slow viewer sees a gap instead of stalling the producer.
``publish`` is synchronous and never waits on a subscriber.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from dishwatch.models.metrics import Frame

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 16


class Subscription:
    """A viewer's private delivery queue.  Obtain one from :meth:`FrameHub.subscribe`."""

    def __init__(self, hub: FrameHub, maxsize: int) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[Frame | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._dropped = 0
        self._delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> int:
        """Frames discarded because this subscriber fell behind."""
        return self._dropped

    @property
    def delivered(self) -> int:
        """Frames enqueued for this subscriber."""
        return self._delivered

    @property
    def pending(self) -> int:
        return 0 if self._closed else self._queue.qsize()

    def _offer(self, frame: Frame) -> bool:
        """Enqueue *frame* without waiting, evicting the oldest entry if full."""
        if self._closed:
            return False
        if self._queue.full():
            with contextlib.suppress(asyncio.QueueEmpty):
                self._queue.get_nowait()
                self._dropped += 1
        self._queue.put_nowait(frame)
        self._delivered += 1
        return True

    def _shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        # wake a consumer blocked in get()
        self._queue.put_nowait(None)

    async def get(self) -> Frame | None:
        """Wait for the next frame; ``None`` once the subscription is closed."""
        if self._closed:
            return None
        frame = await self._queue.get()
        if self._closed:
            return None
        return frame

    def close(self) -> None:
        """Unsubscribe from the hub.  Safe to call more than once."""
        self._hub.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[Frame]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[Frame]:
        while True:
            frame = await self.get()
            if frame is None:
                return
            yield frame


class FrameHub:
    """Broadcasts frames to every current subscriber, best effort, newest wins."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        if queue_size < 1:
            raise ValueError(f"Queue size must be at least 1, got {queue_size}")
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def published(self) -> int:
        """Total frames passed to :meth:`publish`."""
        return self._published

    def subscribe(self) -> Subscription:
        """Register a new, empty subscription.  Earlier frames are not replayed."""
        sub = Subscription(self, self._queue_size)
        self._subscribers.add(sub)
        logger.debug("Viewer subscribed (total: %d)", len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove *sub*; it receives nothing more.  Idempotent."""
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.debug("Viewer unsubscribed (remaining: %d)", len(self._subscribers))
        sub._shutdown()

    def publish(self, frame: Frame) -> int:
        """Deliver *frame* to all subscribers without blocking.

        Returns the number of subscribers that received it.  Subscribers
        found closed are dropped as an implicit unsubscribe.
        """
        self._published += 1
        delivered = 0
        for sub in tuple(self._subscribers):
            if sub._offer(frame):
                delivered += 1
            else:
                self._subscribers.discard(sub)
                logger.debug("Dropped closed subscriber during publish")
        return delivered

    @contextlib.asynccontextmanager
    async def subscription(self) -> AsyncIterator[Subscription]:
        """``async with hub.subscription() as sub:``, always unsubscribing on exit."""
        sub = self.subscribe()
        try:
            yield sub
        finally:
            self.unsubscribe(sub)
