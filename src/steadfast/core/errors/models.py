"""Data model for classified errors.

A ClassifiedError is the only failure shape that propagates past the
resilience layer. It is an immutable tagged value: the ``kind`` decides how
the failure is retried and planned for, the ``code`` identifies it in logs,
and the original exception is kept in ``cause`` for diagnostics only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .codes import KIND_DEFAULTS, ErrorKind


@dataclass(frozen=True, eq=False)
class ClassifiedError:
    """A failure with its classification and metadata.

    Two ClassifiedErrors compare equal when they share kind and code, which
    is what recurring-pattern tracking needs. Message, cause and timestamp
    are diagnostic and do not participate in equality.
    """

    kind: ErrorKind
    code: str
    message: str
    retryable: bool
    status_code: int
    cause: BaseException | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def of_kind(
        cls,
        kind: ErrorKind,
        message: str,
        cause: BaseException | None = None,
        retryable: bool | None = None,
    ) -> ClassifiedError:
        """Build a ClassifiedError using the default attributes for ``kind``.

        Args:
            kind: The error kind.
            message: Technical message (for logs, never shown to users).
            cause: Optional underlying exception.
            retryable: Override of the kind's default retryability.

        Returns:
            A new ClassifiedError.
        """
        defaults = KIND_DEFAULTS[kind]
        return cls(
            kind=kind,
            code=defaults.code,
            message=message,
            retryable=defaults.retryable if retryable is None else retryable,
            status_code=defaults.status_code,
            cause=cause,
        )

    @property
    def pattern_key(self) -> tuple[ErrorKind, str]:
        return (self.kind, self.code)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassifiedError):
            return NotImplemented
        return self.pattern_key == other.pattern_key

    def __hash__(self) -> int:
        return hash(self.pattern_key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for structured output.

        The raw cause is reduced to its type name so that internals never
        leak into serialized payloads.
        """
        return {
            "kind": self.kind.value,
            "errorCode": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "statusCode": self.status_code,
            "cause": type(self.cause).__name__ if self.cause is not None else None,
            "timestamp": self.timestamp.isoformat(),
        }


__all__ = ["ClassifiedError"]
