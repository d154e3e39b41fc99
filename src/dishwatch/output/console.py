from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dishwatch.models.metrics import METRICS_BY_KEY

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dishwatch.models.config import AppSettings
    from dishwatch.telemetry.decoder import MetricSample


class ConsoleOutput:
    """Rich-based terminal output helpers for *dishwatch*."""

    def __init__(self, console: Console | None = None, err_console: Console | None = None) -> None:
        self._con = console or Console()
        self._err = err_console or Console(stderr=True)

    @property
    def console(self) -> Console:
        return self._con

    # ------------------------------------------------------------------
    # serve
    # ------------------------------------------------------------------

    def serve_banner(self, settings: AppSettings) -> None:
        """Print where to browse and where telemetry comes from."""
        browse_host = "localhost" if settings.host in ("0.0.0.0", "::") else settings.host
        lines = [
            f"[bold]Open your browser at[/bold] [cyan]http://{browse_host}:{settings.port}[/cyan]",
            f"Dish endpoint: {settings.endpoint}",
            f"History: {settings.history_capacity} samples per metric",
        ]
        self._con.print(Panel("\n".join(lines), title="dishwatch", expand=False))

    # ------------------------------------------------------------------
    # probe
    # ------------------------------------------------------------------

    def samples(self, rows: Iterable[MetricSample], *, title: str = "Dish status") -> None:
        """Print decoded samples as a table."""
        table = Table(title=title)
        table.add_column("Time", style="dim")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Unit")

        for row in rows:
            spec = METRICS_BY_KEY.get(row.metric)
            table.add_row(
                row.sample.timestamp.strftime("%H:%M:%S"),
                spec.title if spec else row.metric,
                f"{row.sample.value:.2f}",
                spec.unit if spec else "",
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # messages
    # ------------------------------------------------------------------

    def info(self, message: str) -> None:
        self._con.print(message)

    def error(self, message: str) -> None:
        self._err.print(f"[bold red]Error:[/bold red] {message}")
