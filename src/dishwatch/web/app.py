"""Starlette application: the page, the live websocket and snapshot images.

Routes:

- ``GET /``                  → viewer page
- ``GET /initial/{metric}``  → current chart as ``image/png``
- ``GET /status``            → upstream and fan-out counters as JSON
- ``WS  /ws``                → :class:`ViewerSession` (tagged PNG frames)

When an :class:`UpstreamSession` is given, the app's lifespan runs it as a
background task and cancels it on shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from starlette.applications import Starlette
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.routing import Route, WebSocketRoute

from dishwatch.web.page import INDEX_HTML
from dishwatch.web.viewer import StarletteTransport, ViewerSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from dishwatch.telemetry.pipeline import ChartPipeline
    from dishwatch.telemetry.upstream import UpstreamSession

logger = logging.getLogger(__name__)


class _LoggingASGI:
    """Thin ASGI wrapper that logs every HTTP and WebSocket request."""

    def __init__(self, app: Any) -> None:
        self._app = app

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        if scope["type"] == "http":
            method = scope.get("method", "?")
            path = scope.get("path", "/")
            status: int | None = None

            async def _logging_send(message: Any) -> None:
                nonlocal status
                if message.get("type") == "http.response.start":
                    status = message.get("status")
                await send(message)

            await self._app(scope, receive, _logging_send)
            if status is not None:
                logger.info("HTTP %s %s -> %d", method, path, status)
        elif scope["type"] == "websocket":
            client = scope.get("client") or ("unknown", 0)
            logger.info("WS  %s from %s", scope.get("path", "/"), client[0])
            await self._app(scope, receive, send)
        else:
            await self._app(scope, receive, send)


def create_app(pipeline: ChartPipeline, upstream: UpstreamSession | None = None) -> Any:
    """Build the ASGI app around an existing pipeline (and optional upstream)."""

    async def index(request: Request) -> Response:
        return HTMLResponse(INDEX_HTML)

    async def initial(request: Request) -> Response:
        key = request.path_params["metric"]
        if key not in pipeline.store:
            return Response(f"Unknown metric: {key}", status_code=404, media_type="text/plain")
        frame = await pipeline.render_current(pipeline.store.metric(key))
        if frame is None:
            return Response(b"", media_type="text/plain")
        return Response(frame.payload, media_type="image/png")

    async def status(request: Request) -> Response:
        metrics: dict[str, Any] = {}
        for metric in pipeline.store:
            buf = pipeline.store.buffer(metric.key)
            latest = buf.latest()
            metrics[metric.key] = {
                "title": metric.title,
                "unit": metric.unit,
                "samples": len(buf),
                "capacity": buf.capacity,
                "latest": latest.value if latest else None,
                "latest_at": latest.timestamp.isoformat() if latest else None,
            }
        return JSONResponse(
            {
                "upstream": upstream.status() if upstream is not None else None,
                "viewers": pipeline.hub.subscriber_count,
                "published": pipeline.hub.published,
                "rendered": pipeline.rendered,
                "render_failures": pipeline.render_failures,
                "metrics": metrics,
            }
        )

    async def live(websocket: WebSocket) -> None:
        await websocket.accept()
        session = ViewerSession(pipeline, StarletteTransport(websocket))
        await session.run()
        with contextlib.suppress(Exception):
            await websocket.close()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if upstream is not None:
            task = asyncio.create_task(upstream.run(), name="dishwatch-upstream")
            logger.info("Upstream session started for %s", upstream.endpoint)
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                logger.info("Upstream session stopped")

    app = Starlette(
        routes=[
            Route("/", index),
            Route("/initial/{metric}", initial),
            Route("/status", status),
            WebSocketRoute("/ws", live),
        ],
        lifespan=lifespan,
    )
    return _LoggingASGI(app)
