from __future__ import annotations

from dishwatch.output.chart import ChartRenderer, Renderer

__all__ = ["ChartRenderer", "Renderer"]
