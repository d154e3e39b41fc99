"""Long-lived connection to the dish, with reconnect.

:class:`UpstreamSession` is an explicit state machine::

    DISCONNECTED ──► CONNECTING ──► STREAMING
                        ▲  │            │
                        │  ▼            ▼
                        └── FAULTED ◄───┘
                       (fixed backoff)

There is no terminal state and no retry limit: the dish reboots and drops
off the network from time to time, and the service is expected to pick it
up again on its own.  Every failure (connect refused, stream closed,
undecodable message) is logged and ends in ``FAULTED``; only cancellation
leaves :meth:`UpstreamSession.run`.

The transport sits behind :class:`UpstreamConnector` so the state machine
can be driven by a scripted upstream in tests.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from dishwatch.errors import UpstreamError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dishwatch.telemetry.decoder import StatusDecoder
    from dishwatch.telemetry.pipeline import ChartPipeline

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0
_TRANSITION_HISTORY = 64


class UpstreamState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    FAULTED = "faulted"


class UpstreamStream(Protocol):
    """An open status stream."""

    async def next_message(self) -> bytes | str | None:
        """Return the next raw message, ``None`` at end of stream; raise on stream error."""
        ...

    async def close(self) -> None: ...


class UpstreamConnector(Protocol):
    async def connect(self, endpoint: str) -> UpstreamStream:
        """Open a status stream to *endpoint*; raise on failure."""
        ...


# -- WebSocket transport ------------------------------------------------------


class WebSocketStream:
    """:class:`UpstreamStream` over a ``websockets`` client connection."""

    def __init__(self, websocket: Any) -> None:
        self._ws = websocket

    async def next_message(self) -> bytes | str | None:
        from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

        try:
            message: bytes | str = await self._ws.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as exc:
            raise UpstreamError(f"Status stream closed abnormally: {exc}") from exc
        return message

    async def close(self) -> None:
        with contextlib.suppress(Exception):
            await self._ws.close()


class WebSocketConnector:
    """Connects to the dish status endpoint with ``websockets``."""

    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout

    async def connect(self, endpoint: str) -> WebSocketStream:
        """Open the stream.

        Raises :class:`UpstreamError` on failure.
        """
        import websockets.asyncio.client as ws_client

        try:
            websocket = await ws_client.connect(endpoint, open_timeout=self._open_timeout)
        except Exception as exc:
            raise UpstreamError(f"Failed to connect to dish at {endpoint}: {exc}") from exc
        return WebSocketStream(websocket)


# -- State machine ------------------------------------------------------------


class UpstreamSession:
    """Drives connect → stream → fault → backoff → reconnect, forever."""

    def __init__(
        self,
        endpoint: str,
        connector: UpstreamConnector,
        decoder: StatusDecoder,
        pipeline: ChartPipeline,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._endpoint = endpoint
        self._connector = connector
        self._decoder = decoder
        self._pipeline = pipeline
        self._reconnect_delay = reconnect_delay
        self._sleep = sleep

        self._state = UpstreamState.DISCONNECTED
        self._state_events = {state: asyncio.Event() for state in UpstreamState}
        self._state_events[self._state].set()
        self._transitions: deque[UpstreamState] = deque(
            [self._state], maxlen=_TRANSITION_HISTORY
        )
        self._reached: set[UpstreamState] = {self._state}

        self._attempts = 0
        self._backoffs = 0
        self._messages = 0
        self._samples = 0
        self._last_error: str | None = None
        self._last_message_at: datetime | None = None

    # -- Introspection --------------------------------------------------------

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state(self) -> UpstreamState:
        return self._state

    @property
    def transitions(self) -> list[UpstreamState]:
        """Most recent states entered, oldest first."""
        return list(self._transitions)

    @property
    def attempts(self) -> int:
        """Connection attempts made."""
        return self._attempts

    @property
    def backoffs(self) -> int:
        """Backoff waits started."""
        return self._backoffs

    @property
    def messages(self) -> int:
        return self._messages

    @property
    def samples(self) -> int:
        return self._samples

    @property
    def last_error(self) -> str | None:
        """Most recent failure; kept after the session recovers."""
        return self._last_error

    def status(self) -> dict[str, Any]:
        """JSON-friendly summary for the status endpoint."""
        return {
            "endpoint": self._endpoint,
            "state": self._state.value,
            "attempts": self._attempts,
            "backoffs": self._backoffs,
            "messages": self._messages,
            "samples": self._samples,
            "last_error": self._last_error,
            "last_message_at": (
                self._last_message_at.isoformat() if self._last_message_at else None
            ),
        }

    async def wait_for_state(self, state: UpstreamState) -> None:
        """Return once the session has entered *state* at least once.

        Returns immediately if it already has, even if it has since moved on,
        so a state held for no longer than one loop step is never missed.
        """
        while state not in self._reached:
            await self._state_events[state].wait()

    # -- Run loop -------------------------------------------------------------

    async def run(self) -> None:
        """Run until cancelled.  Never raises anything else."""
        try:
            while True:
                stream = await self._connect()
                if stream is not None:
                    try:
                        await self._stream(stream)
                    finally:
                        await self._close(stream)
                await self._backoff()
        finally:
            self._set_state(UpstreamState.DISCONNECTED)

    async def _close(self, stream: UpstreamStream) -> None:
        try:
            await stream.close()
        except Exception:
            logger.debug("Error closing status stream", exc_info=True)

    async def _connect(self) -> UpstreamStream | None:
        self._set_state(UpstreamState.CONNECTING)
        self._attempts += 1
        logger.info("Connecting to dish endpoint: %s", self._endpoint)
        try:
            stream = await self._connector.connect(self._endpoint)
        except Exception as exc:
            self._fault("Connection error", exc)
            return None
        logger.info("Status stream opened")
        return stream

    async def _stream(self, stream: UpstreamStream) -> None:
        self._set_state(UpstreamState.STREAMING)
        while True:
            try:
                raw = await stream.next_message()
                if raw is None:
                    logger.warning("Status stream ended")
                    self._set_state(UpstreamState.FAULTED)
                    return
                await self._handle_message(raw)
            except Exception as exc:
                self._fault("Stream error", exc)
                return

    async def _handle_message(self, raw: bytes | str) -> None:
        received = self._decoder.decode(raw)
        self._messages += 1
        self._last_message_at = datetime.now(UTC)
        for item in received:
            self._samples += 1
            await self._pipeline.ingest(item.metric, item.sample)

    async def _backoff(self) -> None:
        self._backoffs += 1
        logger.info("Reconnecting to dish in %g seconds...", self._reconnect_delay)
        await self._sleep(self._reconnect_delay)

    # -- Helpers --------------------------------------------------------------

    def _fault(self, what: str, exc: Exception) -> None:
        self._last_error = f"{what}: {exc}"
        logger.warning("%s: %s", what, exc, exc_info=logger.isEnabledFor(logging.DEBUG))
        self._set_state(UpstreamState.FAULTED)

    def _set_state(self, state: UpstreamState) -> None:
        if state is self._state:
            return
        logger.debug("Upstream %s -> %s", self._state.value, state.value)
        self._state_events[self._state].clear()
        self._state = state
        self._reached.add(state)
        self._state_events[state].set()
        self._transitions.append(state)
