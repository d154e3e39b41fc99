"""One live viewer: initial charts, then every published frame.

The session is transport-agnostic; :class:`StarletteTransport` adapts a
Starlette ``WebSocket``.  Its lifetime is bound to the transport: when the
peer goes away the subscription is closed, which wakes the pending
``get()`` so the session ends instead of waiting for the next frame.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from dishwatch.models.metrics import Frame
    from dishwatch.telemetry.hub import Subscription
    from dishwatch.telemetry.pipeline import ChartPipeline

logger = logging.getLogger(__name__)


class ViewerTransport(Protocol):
    async def send_bytes(self, data: bytes) -> None: ...

    async def wait_closed(self) -> None:
        """Return once the peer has disconnected."""
        ...


class StarletteTransport:
    """:class:`ViewerTransport` over an accepted Starlette ``WebSocket``."""

    def __init__(self, websocket: Any) -> None:
        self._ws = websocket

    async def send_bytes(self, data: bytes) -> None:
        await self._ws.send_bytes(data)

    async def wait_closed(self) -> None:
        # Viewers never send anything meaningful; drain until disconnect.
        while True:
            message = await self._ws.receive()
            if message.get("type") == "websocket.disconnect":
                return


class ViewerSession:
    """Pushes tagged chart frames to one viewer until it disconnects."""

    def __init__(self, pipeline: ChartPipeline, transport: ViewerTransport) -> None:
        self._pipeline = pipeline
        self._transport = transport
        self._sent = 0

    @property
    def sent(self) -> int:
        """Frames successfully handed to the transport."""
        return self._sent

    async def run(self) -> None:
        """Serve the viewer.  Returns when the transport closes or a send fails."""
        store = self._pipeline.store
        # Snapshot and subscribe with no await in between, so every sample
        # is either in the initial charts or in a later live frame.
        snapshots = store.snapshot_all()
        sub = self._pipeline.hub.subscribe()
        watcher = asyncio.create_task(self._watch_transport(sub))
        try:
            for metric in store.metrics:
                frame = await self._pipeline.render_series(metric, snapshots[metric.key])
                if frame is None:
                    continue
                if sub.closed or not await self._send(frame):
                    return
            async for frame in sub:
                if not await self._send(frame):
                    return
        finally:
            sub.close()
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
            logger.debug(
                "Viewer session ended after %d frames (%d dropped)", self._sent, sub.dropped
            )

    async def _send(self, frame: Frame) -> bool:
        try:
            await self._transport.send_bytes(frame.tagged())
        except Exception:
            logger.debug("Send to viewer failed, ending session", exc_info=True)
            return False
        self._sent += 1
        return True

    async def _watch_transport(self, sub: Subscription) -> None:
        try:
            await self._transport.wait_closed()
        except Exception:
            logger.debug("Viewer transport errored", exc_info=True)
        sub.close()
