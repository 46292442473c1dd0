"""Tests for steadfast.core.logging module."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import pytest

from steadfast.core.logging import (
    SENSITIVE_PATTERNS,
    LogContext,
    SteadfastLogger,
    _add_context,
    _sanitize_event_dict,
    _sanitize_value,
    configure_logging,
    get_log_context,
    get_logger,
    with_log_context,
)


class CapturingHandler(logging.Handler):
    """Collects entries rendered by the formatter it is given."""

    def __init__(self, formatter: logging.Formatter | None) -> None:
        super().__init__()
        self.setFormatter(formatter)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(self.format(record))


@pytest.fixture
def captured() -> CapturingHandler:
    """Configure JSON logging and capture every entry."""
    configure_logging(level="DEBUG", format="json", include_timestamps=False)
    root = logging.getLogger()
    handler = CapturingHandler(root.handlers[0].formatter)
    root.addHandler(handler)
    return handler


class TestSanitization:
    """Tests for sensitive field redaction."""

    def test_known_sensitive_patterns(self):
        assert "password" in SENSITIVE_PATTERNS
        assert "token" in SENSITIVE_PATTERNS
        assert "authorization" in SENSITIVE_PATTERNS

    def test_sanitize_value(self):
        assert _sanitize_value("session_token", "abc") == "[REDACTED]"
        assert _sanitize_value("Password", "hunter2") == "[REDACTED]"
        assert _sanitize_value("subject_id", "user-1") == "user-1"

    def test_sanitize_event_dict_nested(self):
        result = _sanitize_event_dict(
            None, "info", {"event": "x", "headers": {"Authorization": "Bearer y", "accept": "*/*"}}
        )
        assert result["headers"]["Authorization"] == "[REDACTED]"
        assert result["headers"]["accept"] == "*/*"


class TestLogContext:
    """Tests for LogContext and with_log_context."""

    def test_to_dict_drops_unset(self):
        ctx = LogContext(operation="login")
        data = ctx.to_dict()
        assert data["operation"] == "login"
        assert "subject_id" not in data
        assert data["correlation_id"]

    def test_context_set_and_restored(self):
        assert get_log_context() is None
        ctx = LogContext(operation="login", subject_id="user-1")
        with with_log_context(ctx) as active:
            assert active is ctx
            assert get_log_context() is ctx
        assert get_log_context() is None

    def test_restored_on_exception(self):
        with pytest.raises(RuntimeError):
            with with_log_context(LogContext(operation="login")):
                raise RuntimeError("boom")
        assert get_log_context() is None

    def test_add_context_preserves_explicit_values(self):
        with with_log_context(LogContext(operation="login", subject_id="user-1")):
            result = _add_context(None, "info", {"event": "x", "operation": "explicit"})
        assert result["operation"] == "explicit"
        assert result["subject_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_context_isolated_across_tasks(self):
        seen: dict[str, str | None] = {}

        async def task(name: str) -> None:
            with with_log_context(LogContext(operation=name)):
                await asyncio.sleep(0)
                ctx = get_log_context()
                seen[name] = ctx.operation if ctx else None

        await asyncio.gather(task("a"), task("b"))
        assert seen == {"a": "a", "b": "b"}


class TestSteadfastLogger:
    """Tests for the component logger wrapper."""

    def test_get_logger(self):
        logger = get_logger("retry")
        assert isinstance(logger, SteadfastLogger)
        assert logger.component == "retry"

    def test_bind_returns_new_logger(self):
        logger = get_logger("retry")
        bound = logger.bind(operation="load")
        assert bound is not logger
        assert bound.component == "retry"

    def test_output_includes_component_and_context(self, captured):
        logger = get_logger("recovery")
        with with_log_context(LogContext(operation="create_profile", subject_id="user-1")):
            logger.info("recovery.plan_created", error_code="AUTH_FAILED", token="secret")

        entry = json.loads(captured.messages[-1])
        assert entry["event"] == "recovery.plan_created"
        assert entry["component"] == "recovery"
        assert entry["operation"] == "create_profile"
        assert entry["subject_id"] == "user-1"
        assert entry["error_code"] == "AUTH_FAILED"
        assert entry["token"] == "[REDACTED]"

    def test_level_filtering(self, captured):
        logging.getLogger().setLevel(logging.WARNING)
        get_logger("retry").info("retry.scheduled")
        assert captured.messages == []


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self):
        configure_logging(level="WARNING", format="console")
        assert logging.getLogger().level == logging.WARNING

    def test_both_requires_file_path(self):
        with pytest.raises(ValueError, match="file_path is required"):
            configure_logging(format="both")

    def test_file_output(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "steadfast.log"
        configure_logging(level="INFO", format="both", file_path=log_file)

        get_logger("retry").info("retry.scheduled", attempt=1)

        lines = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])
        assert entry["event"] == "retry.scheduled"
        assert entry["attempt"] == 1
        assert entry["component"] == "retry"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_both_keeps_console_on_stderr(self, tmp_path: Path):
        configure_logging(level="INFO", format="both", file_path=tmp_path / "steadfast.log")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        assert any(getattr(h, "stream", None) is sys.stderr for h in handlers)

    def test_replaces_existing_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.NullHandler())
        configure_logging(level="INFO", format="console")
        assert not any(isinstance(h, logging.NullHandler) for h in root.handlers)
        assert len(root.handlers) == 1
