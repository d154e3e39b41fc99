"""Dish telemetry: history buffers, decoding, fan-out and the upstream session."""

from __future__ import annotations

from dishwatch.telemetry.decoder import MetricSample, StatusDecoder
from dishwatch.telemetry.history import HistoryBuffer, HistoryStore
from dishwatch.telemetry.hub import FrameHub, Subscription
from dishwatch.telemetry.pipeline import ChartPipeline
from dishwatch.telemetry.upstream import (
    UpstreamConnector,
    UpstreamSession,
    UpstreamState,
    UpstreamStream,
    WebSocketConnector,
)

__all__ = [
    "ChartPipeline",
    "FrameHub",
    "HistoryBuffer",
    "HistoryStore",
    "MetricSample",
    "StatusDecoder",
    "Subscription",
    "UpstreamConnector",
    "UpstreamSession",
    "UpstreamState",
    "UpstreamStream",
    "WebSocketConnector",
]
