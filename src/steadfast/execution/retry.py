"""Retry executor with exponential backoff.

Runs a zero-argument operation under a RetryPolicy, classifying each failure
and deciding per attempt whether another try is worthwhile:

- Success returns immediately with the attempt count.
- A failure whose classification fails ``retry_condition``, or the failure of
  the last permitted attempt, ends the run.
- Otherwise the executor notifies ``on_retry``, suspends for the backoff
  delay without blocking the event loop, and tries again.

Example usage:
    from steadfast.execution.retry import RetryExecutor, RetryPolicy

    executor = RetryExecutor()
    policy = RetryPolicy(max_attempts=3, base_delay=0.5)

    outcome = await executor.execute_with_retry(lambda: store.load(user_id), policy)
    if outcome.success:
        profile = outcome.result
    else:
        logger.error("load_failed", error_code=outcome.error.code)

The executor keeps no state between calls; attempt counters are local to
each execution and the policy is never mutated.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import math
import random
import sys
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from steadfast.core.errors import (
    ClassifiedError,
    ClassifiedException,
    ConfigurationError,
    ErrorClassifier,
)
from steadfast.core.logging import get_logger

if TYPE_CHECKING:
    from steadfast.core.config import RetryConfig

_logger = get_logger("retry")

T = TypeVar("T")

Operation = Callable[[], T | Awaitable[T]]
RetryCondition = Callable[[ClassifiedError], bool]
SleepFunc = Callable[[float], Awaitable[None]]

# Cap on the backoff exponent
MAX_BACKOFF_EXPONENT = 32

# Ceiling for any computed delay; a growth that overflows saturates here
MAX_DELAY_SECONDS = sys.float_info.max


@dataclass(frozen=True)
class RetryEvent:
    """Emitted to ``on_retry`` before each backoff delay.

    Attributes:
        attempt: The attempt that just failed (1-indexed).
        delay_seconds: The delay about to be waited.
        error: Classification of the failure.
        operation_name: Name the caller gave the operation.
    """

    attempt: int
    delay_seconds: float
    error: ClassifiedError
    operation_name: str


OnRetry = Callable[[RetryEvent], None]


class RetryEventLog:
    """An ``on_retry`` sink that records every RetryEvent it receives.

    Example:
        events = RetryEventLog()
        policy = RetryPolicy(max_attempts=3, on_retry=events)
        await executor.execute_with_retry(op, policy)
        assert events.attempts == [1, 2]
    """

    def __init__(self) -> None:
        self.events: list[RetryEvent] = []

    def __call__(self, event: RetryEvent) -> None:
        self.events.append(event)

    @property
    def attempts(self) -> list[int]:
        return [e.attempt for e in self.events]

    @property
    def delays(self) -> list[float]:
        return [e.delay_seconds for e in self.events]

    def __len__(self) -> int:
        return len(self.events)


def default_retry_condition(error: ClassifiedError) -> bool:
    """Retry exactly the failures classified as retryable."""
    return error.retryable


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry/backoff policy, reusable across calls.

    Attributes:
        max_attempts: Total attempts including the first call (>= 1).
        base_delay: Delay in seconds after the first failure.
        backoff_multiplier: Growth factor per attempt (>= 1).
        jitter: Scale each delay by a random factor in [0.5, 1.0].
        max_delay: Optional cap on any single delay, in seconds.
        retry_condition: Predicate over the classified failure.
        on_retry: Listener notified before each delay.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    max_delay: float | None = None
    retry_condition: RetryCondition = default_retry_condition
    on_retry: OnRetry | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ConfigurationError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.backoff_multiplier < 1:
            raise ConfigurationError(
                f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}"
            )
        if self.max_delay is not None and self.max_delay < 0:
            raise ConfigurationError(f"max_delay must be >= 0, got {self.max_delay}")

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        retry_condition: RetryCondition | None = None,
        on_retry: OnRetry | None = None,
    ) -> RetryPolicy:
        """Build a policy from a RetryConfig model."""
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            backoff_multiplier=config.backoff_multiplier,
            jitter=config.jitter,
            max_delay=config.max_delay_seconds,
            retry_condition=retry_condition or default_retry_condition,
            on_retry=on_retry,
        )

    def with_on_retry(self, on_retry: OnRetry | None) -> RetryPolicy:
        """Return a copy of this policy with a different listener."""
        return replace(self, on_retry=on_retry)


def compute_delay(
    policy: RetryPolicy,
    attempt: int,
    rng: random.Random | None = None,
) -> float:
    """Compute the delay to wait after ``attempt`` failed.

    delay = base_delay * backoff_multiplier ** (attempt - 1), capped by
    max_delay (and MAX_DELAY_SECONDS when the growth overflows), then scaled
    into [delay / 2, delay] when jitter is enabled.

    Args:
        policy: The retry policy.
        attempt: The attempt that just failed (1-indexed).
        rng: Random source for jitter (module random if omitted).

    Returns:
        Delay in seconds.
    """
    exponent = min(max(attempt - 1, 0), MAX_BACKOFF_EXPONENT)
    try:
        growth = policy.backoff_multiplier ** exponent
    except OverflowError:
        growth = math.inf
    delay = policy.base_delay * growth if policy.base_delay else 0.0
    if policy.max_delay is not None:
        delay = min(delay, policy.max_delay)
    delay = min(delay, MAX_DELAY_SECONDS)
    if policy.jitter:
        delay *= (rng or random).uniform(0.5, 1.0)
    return delay


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running an operation under a retry policy.

    Invariants: ``attempts <= max_attempts``; ``success`` implies a result
    and no error; a failure always carries the classified error. Breaker
    short-circuits report ``attempts == 0``.
    """

    success: bool
    result: T | None = None
    error: ClassifiedError | None = None
    attempts: int = 0
    total_duration: float = 0.0

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("a successful outcome cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("a failed outcome must carry an error")

    def unwrap(self) -> T:
        """Return the result, or raise the classified failure.

        Raises:
            ClassifiedException: If the outcome is a failure.
        """
        if not self.success:
            assert self.error is not None
            if isinstance(self.error.cause, ClassifiedException):
                raise self.error.cause
            raise ClassifiedException(self.error) from self.error.cause
        return self.result  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "attempts": self.attempts,
            "total_duration": round(self.total_duration, 3),
            "error": self.error.to_dict() if self.error is not None else None,
        }


async def invoke(operation: Operation[T]) -> T:
    """Call an operation and await its result if it returned an awaitable."""
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result  # type: ignore[return-value]


class RetryExecutor:
    """Runs operations under a RetryPolicy.

    Holds only collaborators (classifier, sleep, random source, clock); no
    per-call state, so a single executor may serve many concurrent calls.

    Attributes:
        classifier: Classifies failures before retry decisions.
    """

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        sleep: SleepFunc | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the executor.

        Args:
            classifier: Error classifier (default patterns if omitted).
            sleep: Coroutine used to wait between attempts (asyncio.sleep).
            rng: Random source for jitter.
            clock: Monotonic clock used for total_duration.
        """
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng
        self._clock = clock

    async def execute_with_retry(
        self,
        operation: Operation[T],
        policy: RetryPolicy,
        operation_name: str = "operation",
    ) -> RetryOutcome[T]:
        """Run ``operation`` until it succeeds or the policy gives up.

        Args:
            operation: Zero-argument callable returning a value or awaitable.
            policy: Retry policy to apply.
            operation_name: Name used in logs and retry events.

        Returns:
            RetryOutcome describing the final result.
        """
        started = self._clock()
        attempt = 1

        while True:
            try:
                _logger.debug(
                    "retry.attempt_started",
                    operation=operation_name,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                )
                result = await invoke(operation)
            except Exception as e:
                error = self.classifier.classify(e)
                _logger.warning(
                    "retry.attempt_failed",
                    operation=operation_name,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    error_code=error.code,
                    retryable=error.retryable,
                )

                if attempt >= policy.max_attempts or not policy.retry_condition(error):
                    _logger.error(
                        "retry.gave_up",
                        operation=operation_name,
                        attempts=attempt,
                        error_code=error.code,
                        reason=(
                            "max_attempts" if attempt >= policy.max_attempts else "not_retryable"
                        ),
                    )
                    return RetryOutcome(
                        success=False,
                        error=error,
                        attempts=attempt,
                        total_duration=self._clock() - started,
                    )

                delay = compute_delay(policy, attempt, self._rng)
                if policy.on_retry is not None:
                    policy.on_retry(RetryEvent(attempt, delay, error, operation_name))
                _logger.debug(
                    "retry.scheduled",
                    operation=operation_name,
                    attempt=attempt,
                    delay_seconds=round(delay, 3),
                )
                await self._sleep(delay)
                attempt += 1
                continue

            if attempt > 1:
                _logger.info("retry.recovered", operation=operation_name, attempts=attempt)
            return RetryOutcome(
                success=True,
                result=result,
                attempts=attempt,
                total_duration=self._clock() - started,
            )


async def execute_with_retry(
    operation: Operation[T],
    policy: RetryPolicy,
    operation_name: str = "operation",
) -> RetryOutcome[T]:
    """Run an operation under ``policy`` with a default executor."""
    return await RetryExecutor().execute_with_retry(operation, policy, operation_name)


def retry(
    policy: RetryPolicy,
    executor: RetryExecutor | None = None,
    operation_name: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorate an async function so every call runs under ``policy``.

    The wrapped function returns the result on success and raises a
    ClassifiedException once the policy gives up.

    Example:
        @retry(RetryPolicy(max_attempts=3, base_delay=0.2))
        async def fetch_profile(user_id: str) -> Profile:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation_name or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            runner = executor or RetryExecutor()
            outcome = await runner.execute_with_retry(
                lambda: func(*args, **kwargs), policy, name
            )
            return outcome.unwrap()

        return wrapper

    return decorator


__all__ = [
    "MAX_BACKOFF_EXPONENT",
    "MAX_DELAY_SECONDS",
    "OnRetry",
    "Operation",
    "RetryCondition",
    "RetryEvent",
    "RetryEventLog",
    "RetryExecutor",
    "RetryOutcome",
    "RetryPolicy",
    "compute_delay",
    "default_retry_condition",
    "execute_with_retry",
    "invoke",
    "retry",
]
