"""Configuration commands for the Steadfast CLI.

Subcommands:
- `steadfast config show`: display the resolved configuration as a table
- `steadfast config path`: show which config file is in use
"""

from __future__ import annotations

from typing import Any

import typer
from rich.table import Table

from ..helpers import get_config_path, load_cli_config
from ..output import console, print_json

config_app = typer.Typer(
    name="config",
    help="Inspect resilience configuration.",
    invoke_without_command=True,
)


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    """Inspect resilience configuration."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _flatten_model(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested dict into dot-notation keys."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            result.update(_flatten_model(value, full_key))
        else:
            result[full_key] = value
    return result


@config_app.command()
def show(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Display the resolved configuration.

    Values set in the config file are marked "file"; everything else comes
    from the built-in defaults.

    Examples:
        steadfast config show
        steadfast --config resilience.yaml config show --json
    """
    config = load_cli_config(console)
    data = config.model_dump(mode="json")

    if json_output:
        print_json(data)
        return

    config_path = get_config_path()
    from_file = set(_flatten_model(config.model_dump(mode="json", exclude_unset=True)))
    if config_path is not None and config_path.exists():
        source_label = f"[dim]{config_path}[/dim]"
    else:
        source_label = "[dim](defaults)[/dim]"
    console.print(f"\nResilience configuration: {source_label}\n")

    table = Table(show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("Key", style="white", min_width=30)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key, value in _flatten_model(data).items():
        source = "file" if key in from_file else "[dim]default[/dim]"
        table.add_row(key, str(value), source)

    console.print(table)


@config_app.command()
def path() -> None:
    """Show the config file in use, if any."""
    config_path = get_config_path()
    if config_path is None:
        console.print("[dim]No config file; using defaults[/dim]")
    elif not config_path.exists():
        console.print(f"{config_path} [yellow](not found, using defaults)[/yellow]")
    else:
        console.print(str(config_path))


__all__ = ["config_app"]
