"""Wire settings into a running service: store, hub, pipeline, upstream and app."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from dishwatch.output.chart import ChartRenderer
from dishwatch.telemetry.decoder import StatusDecoder
from dishwatch.telemetry.history import HistoryStore
from dishwatch.telemetry.hub import FrameHub
from dishwatch.telemetry.pipeline import ChartPipeline
from dishwatch.telemetry.upstream import UpstreamSession, WebSocketConnector
from dishwatch.web.app import create_app

if TYPE_CHECKING:
    from dishwatch.models.config import AppSettings
    from dishwatch.output.chart import Renderer
    from dishwatch.telemetry.upstream import UpstreamConnector

logger = logging.getLogger(__name__)


@dataclass
class Service:
    """Everything ``dishwatch serve`` runs, built once at startup."""

    settings: AppSettings
    store: HistoryStore
    hub: FrameHub
    pipeline: ChartPipeline
    upstream: UpstreamSession
    app: Any


def build_service(
    settings: AppSettings,
    *,
    connector: UpstreamConnector | None = None,
    renderer: Renderer | None = None,
) -> Service:
    """Construct the service graph.  Nothing runs until the app's lifespan starts."""
    store = HistoryStore(settings.history_capacity)
    hub = FrameHub(settings.viewer_queue_size)
    pipeline = ChartPipeline(store, renderer or ChartRenderer(), hub)
    upstream = UpstreamSession(
        settings.endpoint,
        connector or WebSocketConnector(open_timeout=settings.connect_timeout),
        StatusDecoder(),
        pipeline,
        reconnect_delay=settings.reconnect_delay,
    )
    logger.debug(
        "Built service: capacity=%d queue=%d endpoint=%s",
        settings.history_capacity,
        settings.viewer_queue_size,
        settings.endpoint,
    )
    return Service(
        settings=settings,
        store=store,
        hub=hub,
        pipeline=pipeline,
        upstream=upstream,
        app=create_app(pipeline, upstream),
    )
