"""Ingest → snapshot → render → publish.

Ties the history store, the renderer and the fan-out hub together.  The
upstream session calls :meth:`ChartPipeline.ingest` for every decoded
sample; viewers and the snapshot endpoint call
:meth:`ChartPipeline.render_current`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from dishwatch.models.metrics import Frame

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dishwatch.models.metrics import MetricSpec, Sample
    from dishwatch.output.chart import Renderer
    from dishwatch.telemetry.history import HistoryStore
    from dishwatch.telemetry.hub import FrameHub

logger = logging.getLogger(__name__)


class ChartPipeline:
    """Keeps the histories, renders charts and hands frames to the hub."""

    def __init__(self, store: HistoryStore, renderer: Renderer, hub: FrameHub) -> None:
        self._store = store
        self._renderer = renderer
        self._hub = hub
        self._rendered = 0
        self._render_failures = 0

    @property
    def store(self) -> HistoryStore:
        return self._store

    @property
    def hub(self) -> FrameHub:
        return self._hub

    @property
    def rendered(self) -> int:
        return self._rendered

    @property
    def render_failures(self) -> int:
        return self._render_failures

    async def ingest(self, metric_key: str, sample: Sample) -> Frame | None:
        """Append *sample*, render the new history and publish it.

        Returns the published frame, or ``None`` if the sample was rejected
        as out of order or the render failed.  Untracked metrics are ignored.
        """
        if metric_key not in self._store:
            logger.debug("Ignoring sample for untracked metric %s", metric_key)
            return None
        if not self._store.buffer(metric_key).append(sample):
            return None
        frame = await self.render_current(self._store.metric(metric_key))
        if frame is not None:
            self._hub.publish(frame)
        return frame

    async def render_current(self, metric: MetricSpec) -> Frame | None:
        """Render the current history of *metric*; ``None`` if rendering fails."""
        series = self._store.buffer(metric.key).snapshot()
        return await self.render_series(metric, series)

    async def render_series(self, metric: MetricSpec, series: Sequence[Sample]) -> Frame | None:
        """Render an already-taken snapshot off the event loop."""
        try:
            payload = await asyncio.to_thread(
                self._renderer.render, metric.title, series, metric.unit
            )
        except Exception:
            self._render_failures += 1
            logger.warning("Failed to render %s chart, skipping", metric.key, exc_info=True)
            return None
        self._rendered += 1
        return Frame(metric, payload)
