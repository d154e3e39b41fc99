"""Bounded, time-ordered sample history per metric.

Each :class:`HistoryBuffer` has a single writer (the ingest path) and any
number of readers.  Readers never look at the live deque: they take a
:meth:`~HistoryBuffer.snapshot`, an immutable copy made under the lock, so a
render can run for as long as it likes without holding anything.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from dishwatch.models.metrics import METRICS, MetricSpec, Sample

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


class HistoryBuffer:
    """FIFO of the most recent *capacity* samples, non-decreasing by timestamp.

    Samples older than the current tail are rejected rather than inserted,
    so the buffer never has to re-sort and a snapshot is always in order.
    """

    def __init__(self, capacity: int, samples: Iterable[Sample] = ()) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._lock = threading.Lock()
        self._samples: deque[Sample] = deque(maxlen=capacity)
        for sample in samples:
            self.append(sample)

    @classmethod
    def prefilled(
        cls,
        capacity: int,
        default: float,
        *,
        now: datetime | None = None,
    ) -> HistoryBuffer:
        """Return a full buffer of *default* values, one second apart, ending before *now*."""
        end = now or datetime.now(UTC)
        placeholders = (
            Sample(end - timedelta(seconds=capacity - i), default) for i in range(capacity)
        )
        return cls(capacity, placeholders)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: Sample) -> bool:
        """Add *sample* at the tail, evicting the oldest sample when full.

        Returns ``False`` (and leaves the buffer untouched) if *sample* is
        older than the current tail.
        """
        with self._lock:
            if self._samples and sample.timestamp < self._samples[-1].timestamp:
                logger.debug(
                    "Rejected out-of-order sample at %s (tail is %s)",
                    sample.timestamp.isoformat(),
                    self._samples[-1].timestamp.isoformat(),
                )
                return False
            self._samples.append(sample)
            return True

    def snapshot(self) -> tuple[Sample, ...]:
        """Return an immutable copy of the current contents, oldest first."""
        with self._lock:
            return tuple(self._samples)

    def latest(self) -> Sample | None:
        """Return the newest sample, or ``None`` if the buffer is empty."""
        with self._lock:
            return self._samples[-1] if self._samples else None


class HistoryStore:
    """One prefilled :class:`HistoryBuffer` per tracked metric."""

    def __init__(
        self,
        capacity: int,
        metrics: Iterable[MetricSpec] = METRICS,
        *,
        now: datetime | None = None,
    ) -> None:
        start = now or datetime.now(UTC)
        self._metrics: dict[str, MetricSpec] = {}
        self._buffers: dict[str, HistoryBuffer] = {}
        for metric in metrics:
            self._metrics[metric.key] = metric
            self._buffers[metric.key] = HistoryBuffer.prefilled(
                capacity, metric.default, now=start
            )
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def metrics(self) -> tuple[MetricSpec, ...]:
        """Tracked metrics in registration order."""
        return tuple(self._metrics.values())

    def __iter__(self) -> Iterator[MetricSpec]:
        return iter(self.metrics)

    def __contains__(self, key: object) -> bool:
        return key in self._buffers

    def metric(self, key: str) -> MetricSpec:
        """Return the metric definition for *key*; raises ``KeyError`` for untracked metrics."""
        return self._metrics[key]

    def buffer(self, key: str) -> HistoryBuffer:
        """Return the buffer for *key*; raises ``KeyError`` for untracked metrics."""
        return self._buffers[key]

    def snapshot_all(self) -> dict[str, tuple[Sample, ...]]:
        """Snapshot every buffer, keyed by metric."""
        return {key: buf.snapshot() for key, buf in self._buffers.items()}
