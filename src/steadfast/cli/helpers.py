"""Shared state and helpers for CLI commands.

Global options (log level, log format, config path) are collected by the
app callback into module-level state, then applied once before the
invoked command runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from steadfast.core.config import ResilienceConfig, load_config
from steadfast.core.errors import ConfigurationError
from steadfast.core.logging import configure_logging

from .output import output_error

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("json", "console", "both")


@dataclass
class _CliState:
    log_level: str | None = None
    log_format: str | None = None
    config_path: Path | None = None
    logging_configured: bool = False


_state = _CliState()


def set_log_level(level: str) -> None:
    level = level.upper()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(f"must be one of {', '.join(LOG_LEVELS)}")
    _state.log_level = level


def set_log_format(fmt: str) -> None:
    fmt = fmt.lower()
    if fmt not in LOG_FORMATS:
        raise typer.BadParameter(f"must be one of {', '.join(LOG_FORMATS)}")
    _state.log_format = fmt


def set_config_path(path: Path | None) -> None:
    _state.config_path = path


def get_config_path() -> Path | None:
    return _state.config_path


def load_cli_config(console: Console) -> ResilienceConfig:
    """Load the configuration selected by ``--config``.

    Raises:
        typer.Exit: If the file exists but is invalid.
    """
    try:
        return load_config(_state.config_path)
    except ConfigurationError as e:
        output_error(
            str(e),
            hints=["Check the YAML syntax and field names in the config file."],
            console_instance=console,
        )
        raise typer.Exit(1) from None


def configure_global_logging(console: Console) -> None:
    """Configure logging from global options, falling back to the config file.

    Only configures once per session.

    Raises:
        typer.Exit: If logging configuration fails.
    """
    if _state.logging_configured:
        return

    config = load_cli_config(console).logging
    try:
        configure_logging(
            level=_state.log_level or config.level,  # type: ignore[arg-type]
            format=_state.log_format or config.format,  # type: ignore[arg-type]
            file_path=config.file_path,
        )
        _state.logging_configured = True
    except ValueError as e:
        output_error(f"Logging configuration error: {e}", console_instance=console)
        raise typer.Exit(1) from None


def reset_cli_state() -> None:
    """Reset global option state (for tests)."""
    global _state
    _state = _CliState()


__all__ = [
    "LOG_FORMATS",
    "LOG_LEVELS",
    "configure_global_logging",
    "get_config_path",
    "load_cli_config",
    "reset_cli_state",
    "set_config_path",
    "set_log_format",
    "set_log_level",
]
