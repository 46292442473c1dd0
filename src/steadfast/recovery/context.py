"""Error context for recovery planning.

An ErrorContext describes where a failure happened. It is used as a
correlation and statistics key and is never mutated after creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Mapping

from steadfast.core.logging import LogContext


@dataclass(frozen=True)
class ErrorContext:
    """Where and for whom a failure occurred.

    Attributes:
        operation: Logical operation name (e.g., "create_profile").
        subject_id: Identifier of the acting subject (e.g., a user id).
        secondary_id: Optional secondary identifier (e.g., a profile type).
        created_at: When the context was created (UTC).
        session_id: Optional session identifier.
        metadata: Free-form read-only extra data (e.g., the current URL).
    """

    operation: str
    subject_id: str | None = None
    secondary_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    session_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def profile_type(self) -> str | None:
        """The secondary identifier, read as a profile type."""
        return self.secondary_id

    def to_log_context(self) -> LogContext:
        return LogContext(
            operation=self.operation,
            subject_id=self.subject_id,
            secondary_id=self.secondary_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "subject_id": self.subject_id,
            "secondary_id": self.secondary_id,
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }


def create_error_context(
    operation: str,
    subject_id: str | None = None,
    secondary_id: str | None = None,
    *,
    session_id: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> ErrorContext:
    """Create an ErrorContext stamped with the current time."""
    return ErrorContext(
        operation=operation,
        subject_id=subject_id,
        secondary_id=secondary_id,
        session_id=session_id,
        metadata=metadata or {},
    )


__all__ = ["ErrorContext", "create_error_context"]
