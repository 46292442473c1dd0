"""Rich output formatting for the Steadfast CLI.

Centralizes console, colors and table builders so every command renders
classifications, schedules and plans the same way.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from steadfast.core.errors import ClassifiedError, Severity
from steadfast.recovery.plan import ActionType, RecoveryPlan

# Commands print through this console; tests swap it via CliRunner capture.
console = Console()


class StatusColors:
    """Color mappings for severities and action types."""

    SEVERITY: dict[Severity, str] = {
        Severity.LOW: "green",
        Severity.MEDIUM: "yellow",
        Severity.HIGH: "red",
        Severity.CRITICAL: "bold red",
    }

    ACTION: dict[ActionType, str] = {
        ActionType.RETRY: "cyan",
        ActionType.REDIRECT: "blue",
        ActionType.FALLBACK: "magenta",
        ActionType.MANUAL: "dim",
    }

    @classmethod
    def get_severity_color(cls, severity: Severity) -> str:
        return cls.SEVERITY.get(severity, "white")

    @classmethod
    def get_action_color(cls, action_type: ActionType) -> str:
        return cls.ACTION.get(action_type, "white")


def format_seconds(seconds: float | None) -> str:
    """Format a delay for display (e.g., "250ms", "1.5s", "2m 05s")."""
    if seconds is None:
        return "-"
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s".replace(".0s", "s")
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


def print_json(data: Any, console_instance: Console | None = None) -> None:
    out = console_instance or console
    out.print_json(json.dumps(data, default=str))


def create_classification_table(error: ClassifiedError, user_message: str) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    retry_style = "green" if error.retryable else "red"
    table.add_row("Kind", error.kind.value)
    table.add_row("Code", error.code)
    retry_label = "yes" if error.retryable else "no"
    table.add_row("Retryable", f"[{retry_style}]{retry_label}[/{retry_style}]")
    table.add_row("Status", str(error.status_code))
    table.add_row("Message", user_message)
    return table


def create_schedule_table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("After attempt", justify="right")
    table.add_column("Delay", justify="right", style="green")
    table.add_column("Cumulative", justify="right", style="dim")
    return table


def create_plan_panel(plan: RecoveryPlan) -> Panel:
    """Render a plan as a panel with its actions listed in order."""
    color = StatusColors.get_severity_color(plan.severity)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action")
    table.add_column("Description")
    table.add_column("Target", style="dim")
    for i, action in enumerate(plan.actions, start=1):
        action_color = StatusColors.get_action_color(action.type)
        table.add_row(
            str(i),
            f"[{action_color}]{action.type.value}[/{action_color}]",
            action.description,
            action.target_path or "",
        )

    header = (
        f"[{color}]{plan.severity.value.upper()}[/{color}]  "
        f"{plan.error.code}  "
        f"recoverable: {'yes' if plan.can_recover else 'no'}"
    )
    if plan.estimated_recovery_time is not None:
        header += f"  eta: {format_seconds(plan.estimated_recovery_time)}"

    return Panel(
        Group(header, "", plan.user_message, "", table),
        title="Recovery plan",
        border_style=color,
    )


def output_error(
    message: str,
    *,
    hints: list[str] | None = None,
    severity: Literal["error", "warning"] = "error",
    console_instance: Console | None = None,
) -> None:
    """Print an error or warning with optional hints."""
    out = console_instance or console
    color = "red" if severity == "error" else "yellow"
    label = "Error" if severity == "error" else "Warning"
    out.print(f"[{color}]{label}:[/{color}] {message}")

    if hints:
        out.print()
        out.print("[dim]Hints:[/dim]")
        for hint in hints:
            out.print(f"  - {hint}")


__all__ = [
    "StatusColors",
    "console",
    "create_classification_table",
    "create_plan_panel",
    "create_schedule_table",
    "format_seconds",
    "output_error",
    "print_json",
]
