"""Pytest fixtures for Steadfast tests."""

import logging
import random
from typing import Generator

import pytest
import structlog

from steadfast.execution import CircuitBreakerRegistry, RetryExecutor
from steadfast.recovery import ErrorRecoveryService
from tests.helpers import FakeSleep


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI state before and after each test.

    This ensures test isolation for logging configuration.
    """
    from steadfast.cli import helpers

    helpers.reset_cli_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_cli_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def executor(fake_sleep: FakeSleep) -> RetryExecutor:
    """Retry executor with a recording sleep and a seeded random source."""
    return RetryExecutor(sleep=fake_sleep, rng=random.Random(42))


@pytest.fixture
def registry(executor: RetryExecutor) -> CircuitBreakerRegistry:
    return CircuitBreakerRegistry(executor=executor)


@pytest.fixture
def service(executor: RetryExecutor) -> ErrorRecoveryService:
    return ErrorRecoveryService(executor=executor)
