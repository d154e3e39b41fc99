"""``dishwatch probe``: connect once and print decoded status samples."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import click

from dishwatch.errors import UpstreamError
from dishwatch.models.config import load_settings
from dishwatch.telemetry.decoder import StatusDecoder
from dishwatch.telemetry.upstream import WebSocketConnector

if TYPE_CHECKING:
    from dishwatch.cli.main import AppContext
    from dishwatch.telemetry.decoder import MetricSample
    from dishwatch.telemetry.upstream import UpstreamConnector

logger = logging.getLogger(__name__)


async def probe(
    connector: UpstreamConnector,
    endpoint: str,
    *,
    count: int,
    timeout: float,
) -> list[MetricSample]:
    """Read up to *count* messages from *endpoint* and return their samples.

    Raises:
        UpstreamError: If the connection fails or no message arrives within
            *timeout* seconds.
    """
    decoder = StatusDecoder()
    stream = await connector.connect(endpoint)
    rows: list[MetricSample] = []
    try:
        for _ in range(count):
            try:
                raw = await asyncio.wait_for(stream.next_message(), timeout=timeout)
            except TimeoutError:
                raise UpstreamError(f"No status message within {timeout:g}s") from None
            if raw is None:
                logger.info("Status stream ended after %d samples", len(rows))
                break
            rows.extend(decoder.decode(raw))
    finally:
        await stream.close()
    return rows


@click.command("probe")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None)
@click.option("--endpoint", default=None, help="Dish status stream URL (ws:// or wss://)")
@click.option("--count", type=click.IntRange(min=1), default=3, help="Messages to read")
@click.option("--timeout", type=float, default=10.0, help="Seconds to wait per message")
@click.pass_obj
def probe_cmd(
    app_ctx: AppContext,
    config_file: str | None,
    endpoint: str | None,
    count: int,
    timeout: float,
) -> None:
    """Connect to the dish once and print what it reports."""
    settings = load_settings(config_file, endpoint=endpoint)
    connector = WebSocketConnector(open_timeout=settings.connect_timeout)
    rows = asyncio.run(probe(connector, settings.endpoint, count=count, timeout=timeout))
    if not rows:
        app_ctx.output.info("[yellow]No status samples received.[/yellow]")
        return
    app_ctx.output.samples(rows, title=f"Dish status ({settings.endpoint})")
