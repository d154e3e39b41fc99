"""Shared fixtures: a fast stand-in renderer and a wired pipeline."""

from __future__ import annotations

import pytest

from dishwatch.telemetry.history import HistoryStore
from dishwatch.telemetry.hub import FrameHub
from dishwatch.telemetry.pipeline import ChartPipeline
from tests._helpers import T0, StubRenderer


@pytest.fixture()
def renderer() -> StubRenderer:
    return StubRenderer()


@pytest.fixture()
def store() -> HistoryStore:
    return HistoryStore(5, now=T0)


@pytest.fixture()
def hub() -> FrameHub:
    return FrameHub(queue_size=4)


@pytest.fixture()
def pipeline(store: HistoryStore, renderer: StubRenderer, hub: FrameHub) -> ChartPipeline:
    return ChartPipeline(store, renderer, hub)
