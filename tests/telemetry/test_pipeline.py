"""Tests for ChartPipeline: ingest → render → publish."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dishwatch.models.metrics import DOWNLINK, PING, UPLINK, Sample

if TYPE_CHECKING:
    from dishwatch.telemetry.history import HistoryStore
    from dishwatch.telemetry.hub import FrameHub
    from dishwatch.telemetry.pipeline import ChartPipeline
    from tests._helpers import StubRenderer

from tests._helpers import at, values_of


class TestIngest:
    async def test_ingest_appends_renders_and_publishes(
        self, pipeline: ChartPipeline, hub: FrameHub, renderer: StubRenderer
    ) -> None:
        sub = hub.subscribe()
        frame = await pipeline.ingest("down", Sample(at(0), 12.5))

        assert frame is not None
        assert frame.metric is DOWNLINK
        assert values_of(frame.payload) == [0, 0, 0, 0, 12.5]
        assert await sub.get() == frame
        assert renderer.calls[-1][0] == "Downlink Throughput"
        assert renderer.calls[-1][2] == "Mbps"
        assert pipeline.rendered == 1

    async def test_only_the_ingested_metric_is_rendered(
        self, pipeline: ChartPipeline, renderer: StubRenderer
    ) -> None:
        await pipeline.ingest("ping", Sample(at(0), 40.0))
        assert [call[0] for call in renderer.calls] == ["Ping Latency"]

    async def test_out_of_order_sample_not_published(
        self, pipeline: ChartPipeline, hub: FrameHub, store: HistoryStore
    ) -> None:
        await pipeline.ingest("up", Sample(at(5), 1.0))
        published = hub.published

        assert await pipeline.ingest("up", Sample(at(1), 2.0)) is None
        assert hub.published == published
        assert store.buffer("up").latest() == Sample(at(5), 1.0)

    async def test_untracked_metric_ignored(self, pipeline: ChartPipeline, hub: FrameHub) -> None:
        assert await pipeline.ingest("snr", Sample(at(0), 9.0)) is None
        assert hub.published == 0

    async def test_render_failure_skips_publish_but_keeps_sample(
        self,
        pipeline: ChartPipeline,
        hub: FrameHub,
        store: HistoryStore,
        renderer: StubRenderer,
    ) -> None:
        renderer.fail_titles.add(UPLINK.title)
        assert await pipeline.ingest("up", Sample(at(0), 3.0)) is None
        assert hub.published == 0
        assert pipeline.render_failures == 1
        assert store.buffer("up").latest() == Sample(at(0), 3.0)

        # other metrics are unaffected
        assert await pipeline.ingest("down", Sample(at(0), 1.0)) is not None
        assert hub.published == 1

    async def test_frames_follow_ingest_order(
        self, pipeline: ChartPipeline, hub: FrameHub
    ) -> None:
        sub = hub.subscribe()
        for i in range(1, 4):
            await pipeline.ingest("ping", Sample(at(i), float(i)))
        frames = [await sub.get() for _ in range(3)]
        payloads = [values_of(f.payload)[-1] for f in frames]  # type: ignore[union-attr]
        assert payloads == [1.0, 2.0, 3.0]


class TestRenderCurrent:
    async def test_renders_prefilled_history(self, pipeline: ChartPipeline) -> None:
        frame = await pipeline.render_current(PING)
        assert frame is not None
        assert values_of(frame.payload) == [PING.default] * 5

    async def test_returns_none_on_failure(
        self, pipeline: ChartPipeline, renderer: StubRenderer
    ) -> None:
        renderer.fail_titles.add(PING.title)
        assert await pipeline.render_current(PING) is None

    async def test_does_not_publish(self, pipeline: ChartPipeline, hub: FrameHub) -> None:
        await pipeline.render_current(DOWNLINK)
        assert hub.published == 0
