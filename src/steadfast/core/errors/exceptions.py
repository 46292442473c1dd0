"""Exceptions raised by and into the resilience layer.

Two families live here:

- ``ClassifiedException`` is how consumers surface a pre-classified failure.
  It carries a ``ClassifiedError`` and is recognised by the classifier as-is.
  The factory helpers build the common shapes.
- ``ResilienceError`` and its subclasses signal misuse of the layer itself
  (bad configuration, contract violations). They are never retried.
"""

from __future__ import annotations

from .codes import ErrorKind
from .models import ClassifiedError


class ClassifiedException(Exception):
    """An exception that already knows its classification."""

    def __init__(self, error: ClassifiedError) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def retryable(self) -> bool:
        return self.error.retryable


class ResilienceError(Exception):
    """Base exception for misuse of the resilience layer."""


class ConfigurationError(ResilienceError):
    """Raised when a policy, chain or configuration file is invalid.

    Examples: an empty fallback chain, max_attempts below 1, unparseable YAML.
    """


def authentication_failed(
    message: str = "Authentication failed",
    cause: BaseException | None = None,
) -> ClassifiedException:
    """Credentials were rejected by the identity provider."""
    return ClassifiedException(
        ClassifiedError.of_kind(ErrorKind.AUTHENTICATION_FAILED, message, cause)
    )


def profile_not_found(profile_type: str, subject_id: str | None = None) -> ClassifiedException:
    """The subject has no profile of the requested type."""
    message = f"{profile_type} profile not found"
    if subject_id:
        message += f" for user {subject_id}"
    return ClassifiedException(ClassifiedError.of_kind(ErrorKind.PROFILE_NOT_FOUND, message))


def profile_creation_failed(
    profile_type: str,
    cause: BaseException | None = None,
) -> ClassifiedException:
    """Persisting a new profile failed."""
    detail = str(cause) if cause is not None else "unknown error"
    return ClassifiedException(
        ClassifiedError.of_kind(
            ErrorKind.PROFILE_CREATION_FAILED,
            f"Failed to create {profile_type} profile: {detail}",
            cause,
        )
    )


def storage_connection_error(
    operation: str,
    cause: BaseException | None = None,
) -> ClassifiedException:
    """The persistence layer could not be reached during ``operation``."""
    detail = str(cause) if cause is not None else "unknown error"
    return ClassifiedException(
        ClassifiedError.of_kind(
            ErrorKind.STORAGE_CONNECTION_ERROR,
            f"Storage connection error during {operation}: {detail}",
            cause,
        )
    )


__all__ = [
    "ClassifiedException",
    "ConfigurationError",
    "ResilienceError",
    "authentication_failed",
    "profile_creation_failed",
    "profile_not_found",
    "storage_connection_error",
]
