"""Ordered fallback chains.

Tries each operation of a chain under the same retry policy, in order,
stopping at the first success. When every operation fails, the outcome
carries the last operation's error and the attempts spent across the whole
chain.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from steadfast.core.errors import ConfigurationError
from steadfast.core.logging import get_logger
from steadfast.execution.retry import Operation, RetryExecutor, RetryOutcome, RetryPolicy

_logger = get_logger("fallback")

T = TypeVar("T")


async def execute_with_fallback(
    operations: Sequence[Operation[T]],
    policy: RetryPolicy,
    executor: RetryExecutor | None = None,
    operation_name: str = "fallback",
) -> RetryOutcome[T]:
    """Run a fallback chain.

    Args:
        operations: Ordered alternatives; each is retried independently.
        policy: Retry policy applied to every operation in the chain.
        executor: Retry executor to use (a default one if omitted).
        operation_name: Prefix for per-step operation names in logs.

    Returns:
        The first successful outcome (with cumulative attempts), or a failure
        with the last error and cumulative attempts.

    Raises:
        ConfigurationError: If ``operations`` is empty.
    """
    if not operations:
        raise ConfigurationError("execute_with_fallback requires at least one operation")

    runner = executor or RetryExecutor()
    total_attempts = 0
    total_duration = 0.0
    last: RetryOutcome[T] | None = None

    for index, operation in enumerate(operations, start=1):
        step_name = f"{operation_name}_step_{index}"
        _logger.debug(
            "fallback.step_started",
            operation=step_name,
            step=index,
            steps=len(operations),
        )
        last = await runner.execute_with_retry(operation, policy, step_name)
        total_attempts += last.attempts
        total_duration += last.total_duration

        if last.success:
            if index > 1:
                _logger.info("fallback.recovered", operation=operation_name, step=index)
            return RetryOutcome(
                success=True,
                result=last.result,
                attempts=total_attempts,
                total_duration=total_duration,
            )

    assert last is not None and last.error is not None
    _logger.error(
        "fallback.exhausted",
        operation=operation_name,
        steps=len(operations),
        attempts=total_attempts,
        error_code=last.error.code,
    )
    return RetryOutcome(
        success=False,
        error=last.error,
        attempts=total_attempts,
        total_duration=total_duration,
    )


__all__ = ["execute_with_fallback"]
