"""Steadfast CLI.

Operator commands for inspecting how the resilience layer treats failures.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Global option state, config loading
    ├── output.py             # Rich formatting
    └── commands/
        ├── inspect_cmd.py    # classify, backoff, plan
        └── config_cmd.py     # config show, config path
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from steadfast import __version__

from . import helpers as helpers
from .commands import backoff, classify, config_app, plan
from .helpers import (
    configure_global_logging,
    set_config_path,
    set_log_format,
    set_log_level,
)
from .output import console

app = typer.Typer(
    name="steadfast",
    help="Inspect retry, circuit breaker and recovery behavior",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Steadfast v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


def config_callback(value: Path | None) -> Path | None:
    set_config_path(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="STEADFAST_LOG_LEVEL",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="STEADFAST_LOG_FORMAT",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            callback=config_callback,
            help="Path to a resilience YAML config file",
            envvar="STEADFAST_CONFIG",
        ),
    ] = None,
) -> None:
    """Steadfast - retry, circuit breaking and recovery planning."""
    configure_global_logging(console)


app.command()(classify)
app.command()(backoff)
app.command()(plan)
app.add_typer(config_app)


__all__ = ["app", "console", "main"]
