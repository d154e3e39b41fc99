"""Decode dish status messages into per-metric samples.

The upstream sends one JSON object per websocket message.  Only the status
variant carries chart data::

    {
      "dishGetStatus": {
        "downlinkThroughputBps": 123456.0,
        "uplinkThroughputBps": 7890.0,
        "popPingLatencyMs": 31.5,
        ...
      }
    }

snake_case keys (``dish_get_status``, ``downlink_throughput_bps`` ...) are
accepted too.  Any other variant decodes to no samples.  A field that is
missing or not numeric is skipped on its own; the other fields of the same
message still count.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from dishwatch.errors import DecodeError
from dishwatch.models.metrics import Sample

logger = logging.getLogger(__name__)

_STATUS_KEYS = ("dishGetStatus", "dish_get_status")

# metric key -> (accepted field names, scale applied to the raw value)
_FIELDS: dict[str, tuple[tuple[str, ...], float]] = {
    "down": (("downlinkThroughputBps", "downlink_throughput_bps"), 1 / 1_000_000),
    "up": (("uplinkThroughputBps", "uplink_throughput_bps"), 1 / 1_000_000),
    "ping": (("popPingLatencyMs", "pop_ping_latency_ms"), 1.0),
}


@dataclass(frozen=True, slots=True)
class MetricSample:
    """A decoded sample together with the metric it belongs to."""

    metric: str
    sample: Sample


class StatusDecoder:
    """Turns raw upstream messages into :class:`MetricSample` lists."""

    def decode(self, raw: bytes | str, *, now: datetime | None = None) -> list[MetricSample]:
        """Decode one upstream message.

        All samples from one message share the receive timestamp *now*
        (defaults to the current UTC time).

        Raises:
            DecodeError: If *raw* is not a JSON object.
        """
        try:
            message = json.loads(raw)
        except (ValueError, TypeError) as exc:
            raise DecodeError(f"Status message is not valid JSON: {exc}") from exc
        if not isinstance(message, dict):
            raise DecodeError(f"Status message is a {type(message).__name__}, not an object")

        status = _first(message, _STATUS_KEYS)
        if not isinstance(status, dict):
            logger.debug("Ignoring non-status message with keys %s", sorted(message)[:5])
            return []

        ts = now or datetime.now(UTC)
        samples: list[MetricSample] = []
        for metric, (names, scale) in _FIELDS.items():
            value = _as_float(_first(status, names))
            if value is None:
                continue
            samples.append(MetricSample(metric, Sample(ts, value * scale)))
        return samples


def _first(mapping: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if name in mapping:
            return mapping[name]
    return None


def _as_float(value: Any) -> float | None:
    # bool is an int subclass but never a meaningful reading here
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        result = float(value)
    except ValueError:
        return None
    return result if math.isfinite(result) else None
