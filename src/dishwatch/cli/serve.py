"""``dishwatch serve``: web server plus the upstream dish session."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import click

from dishwatch.models.config import load_settings

if TYPE_CHECKING:
    from dishwatch.cli.main import AppContext
    from dishwatch.models.config import AppSettings

logger = logging.getLogger(__name__)


async def _safe_uvicorn_serve(server: Any, port: int) -> None:
    """Run uvicorn.Server.serve() with SystemExit protection.

    Uvicorn calls ``sys.exit(1)`` when it cannot bind the port.  That
    ``SystemExit`` would tear down the event loop before the caller sees
    it, so it is converted to an ``OSError``.
    """
    try:
        await server.serve()
    except SystemExit as exc:
        if exc.code == 0:
            logger.debug("Uvicorn exited cleanly (code 0) on port %d", port)
            return
        raise OSError(f"Web server failed to start on port {port}") from exc


async def _serve(settings: AppSettings) -> None:
    import uvicorn

    from dishwatch.setup import build_service

    service = build_service(settings)
    config = uvicorn.Config(
        service.app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_config=None,
        access_log=False,
    )
    await _safe_uvicorn_serve(uvicorn.Server(config), settings.port)


@click.command("serve")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML settings file (default: ./config.toml if present)",
)
@click.option("--endpoint", default=None, help="Dish status stream URL (ws:// or wss://)")
@click.option(
    "--capacity",
    "history_capacity",
    type=int,
    default=None,
    help="Samples kept per metric",
)
@click.option("--host", default=None, help="Bind address (default: 0.0.0.0)")
@click.option("--port", type=int, default=None, help="HTTP port (default: 8080)")
@click.option(
    "--reconnect-delay",
    type=float,
    default=None,
    help="Seconds to wait before reconnecting to the dish (default: 5)",
)
@click.pass_obj
def serve_cmd(
    app_ctx: AppContext,
    config_file: str | None,
    endpoint: str | None,
    history_capacity: int | None,
    host: str | None,
    port: int | None,
    reconnect_delay: float | None,
) -> None:
    """Serve live dish charts to any number of browsers."""
    settings = load_settings(
        config_file,
        endpoint=endpoint,
        history_capacity=history_capacity,
        host=host,
        port=port,
        reconnect_delay=reconnect_delay,
    )
    app_ctx.output.serve_banner(settings)
    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
