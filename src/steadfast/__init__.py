"""Steadfast - retry, circuit breaking, fallback chains and recovery planning.

Example usage:
    from steadfast import ErrorRecoveryService, RetryExecutor, RetryPolicy

    executor = RetryExecutor()
    outcome = await executor.execute_with_retry(fetch_profile, RetryPolicy(max_attempts=3))
    if not outcome.success:
        plan = ErrorRecoveryService().create_recovery_plan(outcome.error, context)
"""

__version__ = "0.3.0"

from steadfast.core.errors import (
    ClassifiedError,
    ClassifiedException,
    ConfigurationError,
    ErrorClassifier,
    ErrorKind,
    ResilienceError,
    Severity,
    get_user_friendly_message,
    is_retryable_error,
)
from steadfast.core.config import ResilienceConfig, load_config
from steadfast.core.logging import configure_logging, get_logger
from steadfast.execution import (
    BatchItem,
    BatchStrategy,
    CircuitBreakerRegistry,
    RetryEvent,
    RetryExecutor,
    RetryOutcome,
    RetryPolicy,
    execute_batch_with_retry,
    execute_with_fallback,
    execute_with_retry,
    retry,
)
from steadfast.recovery import (
    ActionType,
    ErrorContext,
    ErrorRecoveryService,
    RecoveryAction,
    RecoveryPlan,
    RecoveryResult,
)

__all__ = [
    "__version__",
    "ActionType",
    "BatchItem",
    "BatchStrategy",
    "CircuitBreakerRegistry",
    "ClassifiedError",
    "ClassifiedException",
    "ConfigurationError",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorKind",
    "ErrorRecoveryService",
    "RecoveryAction",
    "RecoveryPlan",
    "RecoveryResult",
    "ResilienceConfig",
    "ResilienceError",
    "RetryEvent",
    "RetryExecutor",
    "RetryOutcome",
    "RetryPolicy",
    "Severity",
    "configure_logging",
    "execute_batch_with_retry",
    "execute_with_fallback",
    "execute_with_retry",
    "get_logger",
    "get_user_friendly_message",
    "is_retryable_error",
    "load_config",
    "retry",
]
