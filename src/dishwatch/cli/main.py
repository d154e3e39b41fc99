"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging

import click

from dishwatch import __version__
from dishwatch.errors import DishwatchError
from dishwatch.output.console import ConsoleOutput

_LOG_FORMAT = "%(asctime)s  %(levelname)-5s  [%(name)s]  %(message)s"
_NOISY_LOGGERS = ("websockets", "uvicorn.access", "matplotlib")

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    verbose: bool
    _output: ConsoleOutput | None = dataclasses.field(default=None, repr=False)

    @property
    def output(self) -> ConsoleOutput:
        if self._output is None:
            self._output = ConsoleOutput()
        return self._output


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with ``--verbose``, INFO otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(__version__, prog_name="dishwatch")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Live throughput and latency charts from a satellite dish."""
    configure_logging(verbose)
    ctx.obj = AppContext(verbose=verbose)


def _register_commands() -> None:
    """Import and attach all subcommands to the root CLI."""
    from dishwatch.cli.probe import probe_cmd
    from dishwatch.cli.render import render_cmd
    from dishwatch.cli.serve import serve_cmd

    cli.add_command(probe_cmd)
    cli.add_command(render_cmd)
    cli.add_command(serve_cmd)


_register_commands()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except DishwatchError as exc:
        ConsoleOutput().error(str(exc))
        raise SystemExit(1) from exc
    except Exception as exc:
        ConsoleOutput().error(f"{type(exc).__name__}: {exc}")
        raise SystemExit(1) from exc
