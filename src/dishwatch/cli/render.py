"""``dishwatch render``: write a metric's placeholder chart to a PNG file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from dishwatch.models.metrics import METRICS_BY_KEY
from dishwatch.output.chart import ChartRenderer
from dishwatch.telemetry.history import HistoryBuffer

if TYPE_CHECKING:
    from dishwatch.cli.main import AppContext


@click.command("render")
@click.argument("metric", type=click.Choice(sorted(METRICS_BY_KEY)))
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.option("--capacity", type=click.IntRange(min=1), default=300, help="Placeholder samples")
@click.pass_obj
def render_cmd(app_ctx: AppContext, metric: str, output: str, capacity: int) -> None:
    """Render the startup chart for METRIC into OUTPUT (PNG)."""
    spec = METRICS_BY_KEY[metric]
    series = HistoryBuffer.prefilled(capacity, spec.default).snapshot()
    png = ChartRenderer().render(spec.title, series, spec.unit)
    path = Path(output)
    path.write_bytes(png)
    app_ctx.output.info(f"Wrote {spec.title} chart ({len(png)} bytes) to [cyan]{path}[/cyan]")
