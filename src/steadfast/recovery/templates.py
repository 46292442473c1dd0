"""Plan templates: one builder per error kind.

A template turns a classified error and its context into a RecoveryPlan.
The create_default_templates() factory returns a registry with the built-in
templates registered:

| Kind | can_recover | actions | severity |
|------|-------------|---------|----------|
| AUTHENTICATION_FAILED | yes | redirect to login | medium |
| PROFILE_NOT_FOUND | yes | redirect to create, redirect to select | medium |
| PROFILE_CREATION_FAILED | yes | retry, manual | high |
| STORAGE_CONNECTION_ERROR | yes | retry, fallback to cached data | high |
| UNCLASSIFIED | no | manual | critical |

Retry actions are created with a placeholder operation that fails
immediately; the planner binds the caller's operation when one is given.
Once a pattern has failed recovery more than
``RecoveryConfig.failed_recovery_threshold`` times, its retry actions are
limited to ``degraded_retry_attempts`` attempts.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from steadfast.core.config import RecoveryConfig
from steadfast.core.errors import ClassifiedError, ClassifiedException, ErrorKind, Severity
from steadfast.recovery.context import ErrorContext
from steadfast.recovery.plan import ActionType, RecoveryAction, RecoveryPlan
from steadfast.recovery.statistics import ErrorPatternStat


@dataclass(frozen=True)
class TemplateInput:
    """Everything a template needs to build a plan.

    Attributes:
        error: The classified failure.
        context: Where the failure happened.
        config: Recovery paths and estimates.
        user_message: Localized friendly message for the failure.
        pattern: History of this error pattern before the current
            occurrence, if any.
    """

    error: ClassifiedError
    context: ErrorContext
    config: RecoveryConfig
    user_message: str
    pattern: ErrorPatternStat | None = None


PlanTemplate = Callable[[TemplateInput], RecoveryPlan]


def unbound_retry_operation() -> Any:
    """Placeholder retry payload; fails without being retried."""
    raise ClassifiedException(
        ClassifiedError.of_kind(
            ErrorKind.UNCLASSIFIED,
            "no operation bound to the retry action",
            retryable=False,
        )
    )


def cached_fallback_operation() -> dict[str, Any]:
    """Default degraded result for storage outages."""
    return {"cached": True, "data": None}


def _retry_attempts(inputs: TemplateInput) -> int | None:
    """Shortened attempt budget for patterns whose recoveries keep failing."""
    pattern = inputs.pattern
    if pattern is not None and pattern.failed_recoveries > inputs.config.failed_recovery_threshold:
        return inputs.config.degraded_retry_attempts
    return None


def _retry_action(inputs: TemplateInput, description: str) -> RecoveryAction:
    return RecoveryAction(
        type=ActionType.RETRY,
        description=description,
        user_message="Try again",
        operation=unbound_retry_operation,
        max_attempts=_retry_attempts(inputs),
    )


def _manual_action(description: str = "Contact support for assistance") -> RecoveryAction:
    return RecoveryAction(
        type=ActionType.MANUAL,
        description=description,
        user_message="Contact support",
    )


def authentication_template(inputs: TemplateInput) -> RecoveryPlan:
    return RecoveryPlan(
        can_recover=True,
        actions=(
            RecoveryAction(
                type=ActionType.REDIRECT,
                description="Redirect to the login page",
                user_message="Sign in again",
                target_path=inputs.config.login_path,
            ),
        ),
        severity=Severity.MEDIUM,
        user_message=inputs.user_message,
        error=inputs.error,
    )


def profile_not_found_template(inputs: TemplateInput) -> RecoveryPlan:
    actions: list[RecoveryAction] = []
    profile_type = inputs.context.profile_type
    if profile_type:
        actions.append(
            RecoveryAction(
                type=ActionType.REDIRECT,
                description=f"Redirect to {profile_type} profile creation",
                user_message="Create profile",
                target_path=inputs.config.profile_create_path.format(profile_type=profile_type),
            )
        )
    actions.append(
        RecoveryAction(
            type=ActionType.REDIRECT,
            description="Redirect to profile selection",
            user_message="Choose another profile",
            target_path=inputs.config.profile_select_path,
        )
    )
    return RecoveryPlan(
        can_recover=True,
        actions=tuple(actions),
        severity=Severity.MEDIUM,
        user_message=inputs.user_message,
        error=inputs.error,
    )


def profile_creation_failed_template(inputs: TemplateInput) -> RecoveryPlan:
    if not inputs.error.retryable:
        return unrecoverable_template(inputs, severity=Severity.HIGH)
    return RecoveryPlan(
        can_recover=True,
        actions=(
            _retry_action(inputs, "Retry profile creation"),
            _manual_action("Contact support if profile creation keeps failing"),
        ),
        severity=Severity.HIGH,
        user_message=inputs.user_message,
        error=inputs.error,
        estimated_recovery_time=inputs.config.profile_creation_recovery_seconds,
    )


def storage_connection_template(inputs: TemplateInput) -> RecoveryPlan:
    actions: list[RecoveryAction] = []
    if inputs.error.retryable:
        actions.append(_retry_action(inputs, "Retry the storage operation"))
    actions.append(
        RecoveryAction(
            type=ActionType.FALLBACK,
            description="Serve cached data",
            user_message="Show saved data",
            operation=cached_fallback_operation,
        )
    )
    return RecoveryPlan(
        can_recover=True,
        actions=tuple(actions),
        severity=Severity.HIGH,
        user_message=inputs.user_message,
        error=inputs.error,
        estimated_recovery_time=inputs.config.storage_recovery_seconds,
    )


def transient_retry_template(inputs: TemplateInput) -> RecoveryPlan:
    """Retry plan for retryable unclassified failures (opt-in)."""
    return RecoveryPlan(
        can_recover=True,
        actions=(
            _retry_action(inputs, "Retry the operation"),
        ),
        severity=Severity.MEDIUM,
        user_message=inputs.user_message,
        error=inputs.error,
        estimated_recovery_time=inputs.config.transient_recovery_seconds,
    )


def unrecoverable_template(
    inputs: TemplateInput,
    severity: Severity = Severity.CRITICAL,
) -> RecoveryPlan:
    return RecoveryPlan(
        can_recover=False,
        actions=(_manual_action(),),
        severity=severity,
        user_message=inputs.user_message,
        error=inputs.error,
    )


def unclassified_template(inputs: TemplateInput) -> RecoveryPlan:
    if inputs.error.retryable and inputs.config.retry_transient_unclassified:
        return transient_retry_template(inputs)
    return unrecoverable_template(inputs)


class TemplateRegistry:
    """Maps error kinds to plan templates.

    Kinds without a registered template use the fallback template, which
    produces an unrecoverable plan with a single manual action.

    Example:
        registry = create_default_templates()
        plan = registry.build(TemplateInput(error, context, config, message))
    """

    def __init__(self, fallback: PlanTemplate = unrecoverable_template) -> None:
        self._templates: dict[ErrorKind, PlanTemplate] = {}
        self._fallback = fallback

    def register(self, kind: ErrorKind, template: PlanTemplate) -> None:
        """Register (or replace) the template for ``kind``."""
        self._templates[kind] = template

    def get(self, kind: ErrorKind) -> PlanTemplate:
        return self._templates.get(kind, self._fallback)

    def build(self, inputs: TemplateInput) -> RecoveryPlan:
        return self.get(inputs.error.kind)(inputs)

    def kinds(self) -> list[ErrorKind]:
        return list(self._templates)

    def __len__(self) -> int:
        return len(self._templates)


def create_default_templates() -> TemplateRegistry:
    """Create a registry with the built-in template for every error kind."""
    registry = TemplateRegistry()
    registry.register(ErrorKind.AUTHENTICATION_FAILED, authentication_template)
    registry.register(ErrorKind.PROFILE_NOT_FOUND, profile_not_found_template)
    registry.register(ErrorKind.PROFILE_CREATION_FAILED, profile_creation_failed_template)
    registry.register(ErrorKind.STORAGE_CONNECTION_ERROR, storage_connection_template)
    registry.register(ErrorKind.UNCLASSIFIED, unclassified_template)
    return registry


__all__ = [
    "PlanTemplate",
    "TemplateInput",
    "TemplateRegistry",
    "cached_fallback_operation",
    "create_default_templates",
    "unbound_retry_operation",
]
