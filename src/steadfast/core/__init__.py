"""Core taxonomy, configuration and logging."""

from steadfast.core.errors import ClassifiedError, ErrorClassifier, ErrorKind, Severity
from steadfast.core.config import ResilienceConfig, RetryConfig, load_config

__all__ = [
    "ClassifiedError",
    "ErrorClassifier",
    "ErrorKind",
    "ResilienceConfig",
    "RetryConfig",
    "Severity",
    "load_config",
]
