"""Recovery plans and the actions they contain.

A RecoveryPlan is built fresh for every failure. Its actions are ordered;
executable actions (retry, fallback) carry a zero-argument operation, while
advisory actions (redirect, manual) are for the caller or UI to act on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from steadfast.core.errors import ClassifiedError, Severity
from steadfast.execution.retry import Operation


class ActionType(str, Enum):
    """Kind of remediation an action represents."""

    RETRY = "retry"
    """Re-run the original operation under the recovery retry policy."""

    REDIRECT = "redirect"
    """Send the user to another path. Advisory."""

    FALLBACK = "fallback"
    """Run an alternate, usually degraded, operation once."""

    MANUAL = "manual"
    """No automated remedy; requires human or operator intervention."""

    @property
    def is_executable(self) -> bool:
        return self in (ActionType.RETRY, ActionType.FALLBACK)


@dataclass(frozen=True)
class RecoveryAction:
    """One step of a recovery plan.

    Attributes:
        type: The action type.
        description: Operator-facing description.
        user_message: Short user-facing label for the action.
        target_path: Redirect target (REDIRECT only).
        operation: Bound operation (RETRY and FALLBACK only).
        max_attempts: Attempt budget overriding the recovery retry policy
            (RETRY only); None keeps the policy's own.
    """

    type: ActionType
    description: str
    user_message: str = ""
    target_path: str | None = None
    operation: Operation[Any] | None = None
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.type == ActionType.REDIRECT and not self.target_path:
            raise ValueError("redirect actions require a target_path")
        if self.type == ActionType.MANUAL and self.operation is not None:
            raise ValueError("manual actions cannot carry an operation")
        if self.max_attempts is not None:
            if self.type != ActionType.RETRY:
                raise ValueError("only retry actions carry max_attempts")
            if self.max_attempts < 1:
                raise ValueError("max_attempts must be at least 1")

    def with_operation(self, operation: Operation[Any]) -> RecoveryAction:
        """Return a copy bound to a different operation."""
        if not self.type.is_executable:
            raise ValueError(f"{self.type.value} actions are not executable")
        return replace(self, operation=operation)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "description": self.description,
            "user_message": self.user_message,
        }
        if self.target_path is not None:
            data["target_path"] = self.target_path
        if self.max_attempts is not None:
            data["max_attempts"] = self.max_attempts
        return data


@dataclass(frozen=True)
class RecoveryPlan:
    """Remediation plan for one classified failure.

    Attributes:
        can_recover: Whether any automated or guided recovery exists.
        actions: Ordered actions; never empty.
        severity: Severity tier shown with the user message.
        user_message: Non-empty, non-technical message.
        error: The classified failure the plan was built for.
        estimated_recovery_time: Seconds, when a retry estimate is meaningful.
    """

    can_recover: bool
    actions: tuple[RecoveryAction, ...]
    severity: Severity
    user_message: str
    error: ClassifiedError
    estimated_recovery_time: float | None = None

    def __post_init__(self) -> None:
        if not self.actions:
            raise ValueError("a recovery plan needs at least one action")
        if not self.user_message:
            raise ValueError("a recovery plan needs a user message")

    @property
    def action_types(self) -> list[ActionType]:
        return [a.type for a in self.actions]

    def with_operation(self, action_type: ActionType, operation: Operation[Any]) -> RecoveryPlan:
        """Return a copy with every action of ``action_type`` bound to ``operation``."""
        actions = tuple(
            a.with_operation(operation) if a.type == action_type else a for a in self.actions
        )
        return replace(self, actions=actions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_recover": self.can_recover,
            "severity": self.severity.value,
            "user_message": self.user_message,
            "error_code": self.error.code,
            "estimated_recovery_time": self.estimated_recovery_time,
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class RecoveryResult:
    """Result of executing a recovery plan.

    Attributes:
        success: Whether an executable action succeeded.
        executed_actions: Types of the actions that actually ran, in order.
        result: The successful action's result.
        error: The last failure, when no action succeeded.
    """

    success: bool
    executed_actions: list[ActionType] = field(default_factory=list)
    result: Any = None
    error: ClassifiedError | None = None


__all__ = ["ActionType", "RecoveryAction", "RecoveryPlan", "RecoveryResult"]
