"""Error kinds, codes, and severity tiers.

Contains the closed taxonomy of failure kinds that may propagate past the
resilience layer.

Error Kind Taxonomy
===================

| Kind | Code | Retryable | Status |
|------|------|-----------|--------|
| AUTHENTICATION_FAILED | AUTH_FAILED | No | 401 |
| PROFILE_NOT_FOUND | PROFILE_NOT_FOUND | No | 404 |
| PROFILE_CREATION_FAILED | PROFILE_CREATION_FAILED | Yes | 500 |
| STORAGE_CONNECTION_ERROR | STORAGE_CONNECTION_ERROR | Yes | 503 |
| UNCLASSIFIED | UNCLASSIFIED / TRANSIENT_ERROR | Pattern-based | 500 / 503 |

Unclassified failures are retryable only when their message matches one of
the transient patterns (``timeout``, ``connection``, ``network``,
``unavailable``). The stable code distinguishes the two cases so that
pattern statistics and structured logs can tell them apart.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class ErrorKind(str, Enum):
    """Closed set of failure kinds understood by the resilience layer."""

    AUTHENTICATION_FAILED = "authentication_failed"
    """Credentials were rejected by the identity provider."""

    PROFILE_NOT_FOUND = "profile_not_found"
    """The requested profile does not exist."""

    PROFILE_CREATION_FAILED = "profile_creation_failed"
    """Persisting a new profile failed (usually transient)."""

    STORAGE_CONNECTION_ERROR = "storage_connection_error"
    """The persistence layer could not be reached."""

    UNCLASSIFIED = "unclassified"
    """Anything else. Retryability is decided by message patterns."""


class Severity(str, Enum):
    """Severity tier shown alongside a user-facing message."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class KindDefaults(NamedTuple):
    """Default classification attributes for an error kind.

    Attributes:
        code: Stable error code for logs and structured output.
        retryable: Whether the same operation may succeed if attempted again.
        status_code: HTTP-style status used by the consumers of this layer.
    """

    code: str
    retryable: bool
    status_code: int


UNCLASSIFIED_CODE = "UNCLASSIFIED"
TRANSIENT_CODE = "TRANSIENT_ERROR"
CIRCUIT_OPEN_CODE = "CIRCUIT_BREAKER_OPEN"

KIND_DEFAULTS: dict[ErrorKind, KindDefaults] = {
    ErrorKind.AUTHENTICATION_FAILED: KindDefaults("AUTH_FAILED", False, 401),
    ErrorKind.PROFILE_NOT_FOUND: KindDefaults("PROFILE_NOT_FOUND", False, 404),
    ErrorKind.PROFILE_CREATION_FAILED: KindDefaults("PROFILE_CREATION_FAILED", True, 500),
    ErrorKind.STORAGE_CONNECTION_ERROR: KindDefaults("STORAGE_CONNECTION_ERROR", True, 503),
    ErrorKind.UNCLASSIFIED: KindDefaults(UNCLASSIFIED_CODE, False, 500),
}

# Unclassified failures that matched a transient message pattern
TRANSIENT_DEFAULTS = KindDefaults(TRANSIENT_CODE, True, 503)


__all__ = [
    "CIRCUIT_OPEN_CODE",
    "ErrorKind",
    "KIND_DEFAULTS",
    "KindDefaults",
    "Severity",
    "TRANSIENT_CODE",
    "TRANSIENT_DEFAULTS",
    "UNCLASSIFIED_CODE",
]
