"""Inspection commands: classify, backoff, plan.

These commands never run an operation. They show how the configured
resilience layer would treat a failure: its classification, the retry
delay schedule, and the recovery plan built for it.
"""

from __future__ import annotations

from dataclasses import replace

import typer

from steadfast.core.errors import ClassifiedError, ErrorClassifier, ErrorKind
from steadfast.execution.retry import RetryPolicy, compute_delay
from steadfast.recovery import ErrorRecoveryService, create_error_context

from ..helpers import load_cli_config
from ..output import (
    console,
    create_classification_table,
    create_plan_panel,
    create_schedule_table,
    format_seconds,
    output_error,
    print_json,
)


def classify(
    message: str = typer.Argument(..., help="Raw failure message to classify"),
    locale: str | None = typer.Option(
        None,
        "--locale",
        "-l",
        help="Locale for the friendly message (default from config)",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Classify a failure message and show its user-facing message.

    Examples:
        steadfast classify "read timeout after 30s"
        steadfast classify "boom" --locale es
    """
    config = load_cli_config(console)
    classifier = ErrorClassifier.from_config(config.classifier)
    error = classifier.classify(RuntimeError(message))
    friendly = classifier.get_user_friendly_message(error, locale)

    if json_output:
        data = error.to_dict()
        data["userMessage"] = friendly
        print_json(data)
        return

    console.print(create_classification_table(error, friendly))


def backoff(
    preset: str | None = typer.Option(
        None,
        "--preset",
        "-p",
        help="Named retry preset (default: the top-level retry policy)",
    ),
    attempts: int | None = typer.Option(
        None,
        "--attempts",
        "-n",
        min=1,
        help="Override max attempts",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the retry delay schedule for a policy, without jitter.

    Examples:
        steadfast backoff
        steadfast backoff --preset network --attempts 6
    """
    config = load_cli_config(console)
    if preset is None:
        retry_config = config.retry
        title = "Retry schedule (default policy)"
    else:
        if preset not in config.presets:
            output_error(
                f"Unknown retry preset '{preset}'",
                hints=[f"Available presets: {', '.join(sorted(config.presets))}"],
            )
            raise typer.Exit(1)
        retry_config = config.presets[preset]
        title = f"Retry schedule ({preset})"

    policy = replace(RetryPolicy.from_config(retry_config), jitter=False)
    if attempts is not None:
        policy = replace(policy, max_attempts=attempts)

    schedule: list[tuple[int, float]] = [
        (attempt, compute_delay(policy, attempt)) for attempt in range(1, policy.max_attempts)
    ]

    if json_output:
        print_json({
            "preset": preset,
            "max_attempts": policy.max_attempts,
            "delays": [delay for _, delay in schedule],
            "total_delay": sum(delay for _, delay in schedule),
        })
        return

    if not schedule:
        console.print(f"[dim]{title}: a single attempt, no retries.[/dim]")
        return

    table = create_schedule_table(title)
    cumulative = 0.0
    for attempt, delay in schedule:
        cumulative += delay
        table.add_row(str(attempt), format_seconds(delay), format_seconds(cumulative))
    console.print(table)


def plan(
    kind: ErrorKind = typer.Argument(
        ...,
        case_sensitive=False,
        help="Error kind to plan recovery for",
    ),
    operation: str = typer.Option("cli", "--operation", "-o", help="Operation name"),
    subject: str | None = typer.Option(None, "--subject", "-s", help="Subject id"),
    profile_type: str | None = typer.Option(
        None, "--profile-type", "-t", help="Profile type for profile errors"
    ),
    retryable: bool | None = typer.Option(
        None,
        "--retryable/--not-retryable",
        help="Override the kind's default retryability",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the recovery plan built for an error kind.

    Examples:
        steadfast plan profile_not_found --profile-type candidate
        steadfast plan storage_connection_error --json
    """
    config = load_cli_config(console)
    service = ErrorRecoveryService(config=config)
    context = create_error_context(operation, subject, profile_type)
    error = ClassifiedError.of_kind(kind, f"{kind.value} (inspected)", retryable=retryable)
    recovery_plan = service.create_recovery_plan(error, context)

    if json_output:
        print_json(recovery_plan.to_dict())
        return

    console.print(create_plan_panel(recovery_plan))


__all__ = ["backoff", "classify", "plan"]
