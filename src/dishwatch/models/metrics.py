"""Value types shared by the history, rendering and fan-out layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class Sample:
    """One observation of a metric."""

    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class MetricSpec:
    """A tracked metric and how it is charted.

    ``discriminant`` is the one-byte tag prefixed to every frame sent to
    viewers so several charts can share one connection.
    """

    key: str
    discriminant: int
    title: str
    unit: str
    default: float = 0.0


@dataclass(frozen=True, slots=True)
class Frame:
    """A rendered chart image for one metric."""

    metric: MetricSpec
    payload: bytes

    def tagged(self) -> bytes:
        """Return the payload prefixed with the metric's discriminant byte."""
        return bytes([self.metric.discriminant]) + self.payload


DOWNLINK = MetricSpec("down", 0, "Downlink Throughput", "Mbps", 0.0)
UPLINK = MetricSpec("up", 1, "Uplink Throughput", "Mbps", 0.0)
PING = MetricSpec("ping", 2, "Ping Latency", "ms", 25.0)

METRICS: tuple[MetricSpec, ...] = (DOWNLINK, UPLINK, PING)
METRICS_BY_KEY: dict[str, MetricSpec] = {m.key: m for m in METRICS}


def get_metric(key: str) -> MetricSpec:
    """Look up a metric by key.

    Raises:
        KeyError: If *key* is not a registered metric.
    """
    try:
        return METRICS_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown metric: {key!r}") from None
