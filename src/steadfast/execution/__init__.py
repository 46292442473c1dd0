"""Execution primitives: retry, circuit breaking, fallback chains, batches."""

from steadfast.execution.retry import (
    RetryEvent,
    RetryEventLog,
    RetryExecutor,
    RetryOutcome,
    RetryPolicy,
    compute_delay,
    execute_with_retry,
    retry,
)
from steadfast.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerSnapshot,
    CircuitState,
)
from steadfast.execution.fallback import execute_with_fallback
from steadfast.execution.batch import (
    BatchItem,
    BatchResult,
    BatchStrategy,
    execute_batch_with_retry,
)

__all__ = [
    "BatchItem",
    "BatchResult",
    "BatchStrategy",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerSnapshot",
    "CircuitState",
    "RetryEvent",
    "RetryEventLog",
    "RetryExecutor",
    "RetryOutcome",
    "RetryPolicy",
    "compute_delay",
    "execute_batch_with_retry",
    "execute_with_fallback",
    "execute_with_retry",
    "retry",
]
