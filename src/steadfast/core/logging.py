"""Structured logging infrastructure for Steadfast.

Provides structured logging using structlog with resilience-specific context
such as the operation name and subject identifier. Supports console output,
JSON output, or both (console to stderr and JSON to a rotating file).

Example usage:
    from steadfast.core.logging import get_logger, configure_logging, with_log_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("retry")
    logger.info("retry.attempt_failed", attempt=2)

    # Correlate every entry emitted inside a block
    ctx = LogContext(operation="create_profile", subject_id="user-42")
    with with_log_context(ctx):
        logger.info("recovery.plan_created")  # includes operation, subject_id
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field names whose values must never reach a log sink
SENSITIVE_PATTERNS = frozenset({
    "password",
    "passwd",
    "token",
    "secret",
    "credential",
    "api_key",
    "apikey",
    "authorization",
    "bearer",
    "cookie",
})


@dataclass(frozen=True)
class LogContext:
    """Correlation fields attached to every log entry inside a block.

    Attributes:
        operation: Logical operation name (e.g., "create_profile").
        subject_id: Identifier of the subject being acted on (e.g., a user id).
        secondary_id: Optional secondary identifier (e.g., a profile type).
        correlation_id: Unique id for this invocation, generated if omitted.
    """

    operation: str
    subject_id: str | None = None
    secondary_id: str | None = None
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging, dropping unset fields."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "correlation_id": self.correlation_id,
        }
        if self.subject_id is not None:
            result["subject_id"] = self.subject_id
        if self.secondary_id is not None:
            result["secondary_id"] = self.secondary_id
        return result


# ContextVar keeps concurrent tasks from seeing each other's context
_current_context: ContextVar[LogContext | None] = ContextVar(
    "steadfast_log_context", default=None
)


def get_log_context() -> LogContext | None:
    """Get the LogContext active for the current task, if any."""
    return _current_context.get()


@contextmanager
def with_log_context(ctx: LogContext) -> Iterator[LogContext]:
    """Set a LogContext for the duration of a block.

    Args:
        ctx: The context whose fields should be added to every log entry.

    Yields:
        The context that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _sanitize_value(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that merges the active LogContext.

    Explicitly bound fields take precedence over context fields.
    """
    ctx = get_log_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class SteadfastLogger:
    """Component logger wrapper around structlog.

    The underlying structlog logger is fetched on every call so that loggers
    created at import time still honour a later configure_logging().
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    @property
    def component(self) -> str:
        return self._component

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> SteadfastLogger:
        """Create a new logger with additional bound context."""
        new_logger = SteadfastLogger.__new__(SteadfastLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback. Call from within an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(include_timestamps: bool) -> list[Processor]:
    """Processors shared by every handler; rendering happens in the formatter."""
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])
    return processors


def _build_formatter(renderer: Processor, include_timestamps: bool) -> logging.Formatter:
    """Formatter rendering structlog entries (and foreign stdlib records) for one handler."""
    foreign_pre_chain: list[Processor] = [structlog.stdlib.add_log_level]
    if include_timestamps:
        foreign_pre_chain.append(_add_timestamp)
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=foreign_pre_chain,
    )


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console", "both"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 20,
    backup_count: int = 5,
    include_timestamps: bool = True,
) -> None:
    """Configure Steadfast structured logging.

    Call once at application startup. Each handler renders entries with its
    own formatter, so console output and JSON output can run side by side.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable output, "json" for structured
            output, "both" for console to stderr and JSON to file_path.
        file_path: Log file path. Required when format="both".
        max_file_size_mb: Maximum log file size before rotation.
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to add ISO8601 timestamps.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            _build_formatter(
                structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                include_timestamps,
            )
        )
        handlers.append(console_handler)

    if format in ("json", "both"):
        json_handler: logging.Handler
        if file_path is not None:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(
            _build_formatter(structlog.processors.JSONRenderer(), include_timestamps)
        )
        handlers.append(json_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    # cache_logger_on_first_use=False so module-level loggers follow reconfiguration
    structlog.configure(
        processors=[
            *_build_processors(include_timestamps),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> SteadfastLogger:
    """Get a logger bound to a component name.

    Args:
        component: Component name (e.g., "retry", "circuit_breaker").
        **initial_context: Additional context to bind.

    Returns:
        A SteadfastLogger for the component.
    """
    return SteadfastLogger(component, **initial_context)


__all__ = [
    "LogContext",
    "SENSITIVE_PATTERNS",
    "SteadfastLogger",
    "configure_logging",
    "get_log_context",
    "get_logger",
    "with_log_context",
]
