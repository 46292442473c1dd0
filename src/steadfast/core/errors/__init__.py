"""Error taxonomy and classification.

Re-exports all public symbols.
"""

from steadfast.core.errors.codes import (
    CIRCUIT_OPEN_CODE,
    KIND_DEFAULTS,
    TRANSIENT_CODE,
    UNCLASSIFIED_CODE,
    ErrorKind,
    KindDefaults,
    Severity,
)
from steadfast.core.errors.models import ClassifiedError
from steadfast.core.errors.exceptions import (
    ClassifiedException,
    ConfigurationError,
    ResilienceError,
    authentication_failed,
    profile_creation_failed,
    profile_not_found,
    storage_connection_error,
)
from steadfast.core.errors.classifier import (
    DEFAULT_TRANSIENT_PATTERNS,
    MESSAGES,
    ErrorClassifier,
    classify_error,
    get_user_friendly_message,
    is_retryable_error,
)

__all__ = [
    "CIRCUIT_OPEN_CODE",
    "KIND_DEFAULTS",
    "TRANSIENT_CODE",
    "UNCLASSIFIED_CODE",
    "ErrorKind",
    "KindDefaults",
    "Severity",
    "ClassifiedError",
    "ClassifiedException",
    "ConfigurationError",
    "ResilienceError",
    "authentication_failed",
    "profile_creation_failed",
    "profile_not_found",
    "storage_connection_error",
    "DEFAULT_TRANSIENT_PATTERNS",
    "MESSAGES",
    "ErrorClassifier",
    "classify_error",
    "get_user_friendly_message",
    "is_retryable_error",
]
