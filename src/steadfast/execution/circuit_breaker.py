"""Per-key circuit breakers gating the retry executor.

Implements the circuit breaker pattern to protect a failing dependency from
retry storms. Each logical service name (the key) gets its own breaker,
created lazily on first use.

The circuit breaker has three states:
- CLOSED: Normal operation, calls flow through to the retry executor
- OPEN: Calls short-circuit with zero attempts
- HALF_OPEN: A single probe call is admitted to test recovery

State transitions:
- CLOSED -> OPEN: When consecutive failed calls reach failure_threshold
- OPEN -> CLOSED: On an explicit reset (clear_circuit_breakers)
- OPEN -> HALF_OPEN: After recovery_timeout, only when one is configured
- HALF_OPEN -> CLOSED: On a successful probe
- HALF_OPEN -> OPEN: On a failed probe

A "failed call" is one whose retry execution exhausted its attempts, not an
individual attempt.

Example usage:
    registry = CircuitBreakerRegistry()

    outcome = await registry.execute_with_circuit_breaker(
        lambda: storage.fetch(user_id), "storage", policy
    )
    if outcome.attempts == 0:
        # Breaker is open; the operation was never invoked
        ...
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from threading import Lock
from typing import TYPE_CHECKING, Any, TypeVar

from steadfast.core.errors import CIRCUIT_OPEN_CODE, ClassifiedError, ErrorKind
from steadfast.core.logging import get_logger
from steadfast.execution.retry import Operation, RetryExecutor, RetryOutcome, RetryPolicy

if TYPE_CHECKING:
    from steadfast.core.config import CircuitBreakerConfig

_logger = get_logger("circuit_breaker")

T = TypeVar("T")

DEFAULT_FAILURE_THRESHOLD = 5


class CircuitState(str, Enum):
    """State of a circuit breaker."""

    CLOSED = "closed"
    """Normal operation - calls are allowed and failures are counted."""

    OPEN = "open"
    """Blocking calls - every call short-circuits without invoking the operation."""

    HALF_OPEN = "half_open"
    """Testing recovery - one probe call is allowed."""


@dataclass(frozen=True)
class CircuitBreakerSnapshot:
    """Point-in-time view of one breaker, for monitoring."""

    key: str
    state: CircuitState
    consecutive_failures: int
    opened_at: datetime | None
    times_opened: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "times_opened": self.times_opened,
        }


class CircuitBreaker:
    """Circuit breaker for a single key.

    Thread-safe: all state modifications are protected by a per-breaker lock,
    so unrelated keys never contend with each other.

    Attributes:
        key: Logical service name this breaker protects.
        failure_threshold: Consecutive failed calls before opening.
        recovery_timeout: Seconds before an open breaker admits a probe,
            or None to stay open until reset.
    """

    def __init__(
        self,
        key: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        recovery_timeout: float | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if recovery_timeout is not None and recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be positive")

        self.key = key
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        # State (protected by lock)
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: datetime | None = None
        self._opened_monotonic: float | None = None
        self._probe_in_flight = False
        self._times_opened = 0

        self._lock = Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_transition_to_half_open()
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def opened_at(self) -> datetime | None:
        """Wall-clock time the breaker last opened; None unless OPEN or HALF_OPEN."""
        with self._lock:
            return self._opened_at

    def _maybe_transition_to_half_open(self) -> None:
        """Move OPEN -> HALF_OPEN once the recovery timeout elapsed.

        Must be called while holding the lock.
        """
        if self._state != CircuitState.OPEN or self.recovery_timeout is None:
            return
        if self._opened_monotonic is None:
            return

        elapsed = time.monotonic() - self._opened_monotonic
        if elapsed >= self.recovery_timeout:
            self._state = CircuitState.HALF_OPEN
            self._probe_in_flight = False
            _logger.info(
                "circuit_breaker.state_changed",
                key=self.key,
                from_state=CircuitState.OPEN.value,
                to_state=CircuitState.HALF_OPEN.value,
                reason="recovery_timeout_elapsed",
                elapsed_seconds=round(elapsed, 2),
            )

    def try_acquire(self) -> bool:
        """Decide whether a call may proceed.

        Returns True when CLOSED, and for the first caller while HALF_OPEN.
        Returns False while OPEN, or while a half-open probe is in flight.
        """
        with self._lock:
            self._maybe_transition_to_half_open()
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        """Record a successful call.

        Effects by state:
        - CLOSED: Resets the consecutive failure count
        - HALF_OPEN: Transitions to CLOSED (recovery confirmed)
        """
        with self._lock:
            self._consecutive_failures = 0
            self._probe_in_flight = False
            if self._state == CircuitState.HALF_OPEN:
                _logger.info(
                    "circuit_breaker.state_changed",
                    key=self.key,
                    from_state=CircuitState.HALF_OPEN.value,
                    to_state=CircuitState.CLOSED.value,
                    reason="recovery_confirmed",
                )
                self._close()

    def record_failure(self) -> None:
        """Record a failed call.

        Effects by state:
        - CLOSED: Increments the failure count, may transition to OPEN
        - HALF_OPEN: Transitions back to OPEN (recovery failed)
        """
        with self._lock:
            self._consecutive_failures += 1
            self._probe_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                _logger.info(
                    "circuit_breaker.state_changed",
                    key=self.key,
                    from_state=CircuitState.HALF_OPEN.value,
                    to_state=CircuitState.OPEN.value,
                    reason="recovery_test_failed",
                )
                self._open()
            elif self._state == CircuitState.CLOSED:
                if self._consecutive_failures >= self.failure_threshold:
                    _logger.warning(
                        "circuit_breaker.state_changed",
                        key=self.key,
                        from_state=CircuitState.CLOSED.value,
                        to_state=CircuitState.OPEN.value,
                        reason="failure_threshold_exceeded",
                        failure_count=self._consecutive_failures,
                        failure_threshold=self.failure_threshold,
                    )
                    self._open()
                else:
                    _logger.debug(
                        "circuit_breaker.failure_recorded",
                        key=self.key,
                        failure_count=self._consecutive_failures,
                        failure_threshold=self.failure_threshold,
                    )

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = datetime.now(UTC)
        self._opened_monotonic = time.monotonic()
        self._times_opened += 1

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None
        self._opened_monotonic = None

    def reset(self) -> None:
        """Force the breaker back to CLOSED with zero failures."""
        with self._lock:
            old_state = self._state
            self._close()
            self._probe_in_flight = False
            if old_state != CircuitState.CLOSED:
                _logger.info("circuit_breaker.reset", key=self.key, from_state=old_state.value)

    def snapshot(self) -> CircuitBreakerSnapshot:
        with self._lock:
            self._maybe_transition_to_half_open()
            return CircuitBreakerSnapshot(
                key=self.key,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                opened_at=self._opened_at,
                times_opened=self._times_opened,
            )

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(key={self.key!r}, state={self._state.value}, "
            f"failures={self._consecutive_failures}/{self.failure_threshold})"
        )


def circuit_open_error(key: str) -> ClassifiedError:
    """Synthetic failure returned when a call is short-circuited."""
    return ClassifiedError(
        kind=ErrorKind.UNCLASSIFIED,
        code=CIRCUIT_OPEN_CODE,
        message=f"circuit breaker is open for {key}",
        retryable=False,
        status_code=503,
    )


class CircuitBreakerRegistry:
    """Owns one CircuitBreaker per key and runs calls through them.

    The registry lock only guards creation and removal of breakers; calls on
    different keys never serialize on it.

    Example:
        registry = CircuitBreakerRegistry(executor=RetryExecutor())
        outcome = await registry.execute_with_circuit_breaker(op, "storage", policy)
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        recovery_timeout: float | None = None,
        executor: RetryExecutor | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.executor = executor or RetryExecutor()
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = Lock()

    @classmethod
    def from_config(
        cls,
        config: CircuitBreakerConfig,
        executor: RetryExecutor | None = None,
    ) -> CircuitBreakerRegistry:
        return cls(
            failure_threshold=config.failure_threshold,
            recovery_timeout=config.recovery_timeout_seconds,
            executor=executor,
        )

    def get(self, key: str) -> CircuitBreaker:
        """Return the breaker for ``key``, creating it on first use."""
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                breaker = CircuitBreaker(key, self.failure_threshold, self.recovery_timeout)
                self._breakers[key] = breaker
                _logger.debug("circuit_breaker.created", key=key)
            return breaker

    async def execute_with_circuit_breaker(
        self,
        operation: Operation[T],
        key: str,
        policy: RetryPolicy,
        operation_name: str | None = None,
    ) -> RetryOutcome[T]:
        """Run ``operation`` through the breaker for ``key``.

        Args:
            operation: Zero-argument callable returning a value or awaitable.
            key: Logical service name.
            policy: Retry policy for calls the breaker admits.
            operation_name: Name used in logs (defaults to the key).

        Returns:
            The retry outcome, or a zero-attempt failure if the breaker is open.
        """
        breaker = self.get(key)
        if not breaker.try_acquire():
            _logger.warning("circuit_breaker.rejected", key=key, error_code=CIRCUIT_OPEN_CODE)
            return RetryOutcome(success=False, error=circuit_open_error(key), attempts=0)

        try:
            outcome = await self.executor.execute_with_retry(
                operation, policy, operation_name or key
            )
        except BaseException:
            # Cancellation or a raising retry hook still counts against the key
            breaker.record_failure()
            raise

        if outcome.success:
            breaker.record_success()
        else:
            breaker.record_failure()
        return outcome

    def clear_circuit_breakers(self) -> None:
        """Wipe all keyed state; every key starts CLOSED on next use."""
        with self._lock:
            count = len(self._breakers)
            self._breakers.clear()
        _logger.info("circuit_breaker.cleared", breakers=count)

    def get_statistics(self) -> list[CircuitBreakerSnapshot]:
        """Snapshot every known breaker, ordered by key."""
        with self._lock:
            breakers = list(self._breakers.values())
        return sorted((b.snapshot() for b in breakers), key=lambda s: s.key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._breakers

    def __len__(self) -> int:
        with self._lock:
            return len(self._breakers)


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerSnapshot",
    "CircuitState",
    "DEFAULT_FAILURE_THRESHOLD",
    "circuit_open_error",
]
