"""Render a metric history as a PNG line chart.

Uses the matplotlib object API with the Agg canvas rather than ``pyplot``
so every call owns its figure and renders can run in worker threads.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Protocol

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.dates import AutoDateLocator, DateFormatter
from matplotlib.figure import Figure

from dishwatch.errors import RenderError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dishwatch.models.metrics import Sample

WIDTH_PX = 1200
HEIGHT_PX = 300
_DPI = 100
_LINE_COLOR = "#2e7d32"  # dark green


class Renderer(Protocol):
    """Anything that turns a series into encoded image bytes."""

    def render(self, title: str, series: Sequence[Sample], unit: str) -> bytes: ...


class ChartRenderer:
    """PNG line charts with a ``%H:%M:%S`` time axis."""

    def __init__(self, width: int = WIDTH_PX, height: int = HEIGHT_PX) -> None:
        self._width = width
        self._height = height

    def render(self, title: str, series: Sequence[Sample], unit: str) -> bytes:
        """Render *series* and return PNG bytes.

        Raises:
            RenderError: If *series* is empty or matplotlib fails.
        """
        if not series:
            raise RenderError(f"Cannot render {title!r}: series is empty")

        times = [s.timestamp for s in series]
        values = [s.value for s in series]
        y_min = min(values)
        y_max = max(max(values), 0.0)
        if y_min == y_max:
            # flat series, e.g. placeholder data
            y_max = y_min + 1.0

        try:
            fig = Figure(figsize=(self._width / _DPI, self._height / _DPI), dpi=_DPI)
            FigureCanvasAgg(fig)
            fig.patch.set_facecolor("white")
            ax = fig.add_subplot()
            ax.plot(times, values, color=_LINE_COLOR, linewidth=1.5)
            ax.set_title(title, fontsize=14)
            ax.set_xlabel("Time")
            ax.set_ylabel(unit)
            ax.set_ylim(y_min, y_max)
            if times[0] != times[-1]:
                ax.set_xlim(times[0], times[-1])
            ax.xaxis.set_major_formatter(DateFormatter("%H:%M:%S", tz=times[-1].tzinfo))
            ax.xaxis.set_major_locator(AutoDateLocator(minticks=3, maxticks=6))
            ax.grid(True, alpha=0.3)
            fig.tight_layout()

            buf = io.BytesIO()
            fig.savefig(buf, format="png", facecolor=fig.get_facecolor(), edgecolor="none")
        except (ValueError, TypeError, OverflowError) as exc:
            raise RenderError(f"Failed to render {title!r}: {exc}") from exc
        return buf.getvalue()
