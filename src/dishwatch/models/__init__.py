from __future__ import annotations

from dishwatch.models.config import DEFAULT_ENDPOINT, AppSettings, load_settings
from dishwatch.models.metrics import (
    DOWNLINK,
    METRICS,
    METRICS_BY_KEY,
    PING,
    UPLINK,
    Frame,
    MetricSpec,
    Sample,
    get_metric,
)

__all__ = [
    # config
    "DEFAULT_ENDPOINT",
    "AppSettings",
    "load_settings",
    # metrics
    "DOWNLINK",
    "METRICS",
    "METRICS_BY_KEY",
    "PING",
    "UPLINK",
    "Frame",
    "MetricSpec",
    "Sample",
    "get_metric",
]
