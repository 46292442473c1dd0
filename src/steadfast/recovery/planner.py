"""Error recovery service.

Turns failures into recovery plans, executes the executable parts of a plan,
and keeps per-pattern statistics.

The service owns its state explicitly: the template registry, the retry
executor used for retry actions, and the statistics store are all fields of
the instance rather than module-level singletons. Construct one per process
(or per test) and pass it to the code that needs it.

Example usage:
    service = ErrorRecoveryService()
    context = service.create_error_context("create_profile", user_id, "candidate")

    try:
        await profiles.create(user_id, "candidate")
    except Exception as e:
        plan = service.create_recovery_plan(
            e, context, operation=lambda: profiles.create(user_id, "candidate")
        )
        result = await service.execute_recovery(plan, context)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from steadfast.core.config import ResilienceConfig
from steadfast.core.errors import ClassifiedError, ErrorClassifier
from steadfast.core.logging import get_logger, with_log_context
from steadfast.execution.retry import Operation, RetryExecutor, RetryPolicy, invoke
from steadfast.recovery.context import ErrorContext, create_error_context
from steadfast.recovery.plan import ActionType, RecoveryPlan, RecoveryResult
from steadfast.recovery.statistics import RecoveryStatistics, StatisticsStore
from steadfast.recovery.templates import (
    TemplateInput,
    TemplateRegistry,
    create_default_templates,
)

_logger = get_logger("recovery")


class ErrorRecoveryService:
    """Plans and executes recovery for classified failures.

    Thread-safe: plan creation is a pure function of its inputs apart from
    the statistics update, which the store serializes per pattern.

    Attributes:
        config: Resilience configuration (recovery section is used).
        classifier: Classifies raw failures and supplies user messages.
        executor: Runs retry actions.
        statistics: Per-pattern occurrence store.
        templates: Kind to plan template mapping.
    """

    def __init__(
        self,
        config: ResilienceConfig | None = None,
        classifier: ErrorClassifier | None = None,
        executor: RetryExecutor | None = None,
        statistics: StatisticsStore | None = None,
        templates: TemplateRegistry | None = None,
    ) -> None:
        self.config = config or ResilienceConfig()
        self.classifier = classifier or ErrorClassifier.from_config(self.config.classifier)
        self.executor = executor or RetryExecutor(classifier=self.classifier)
        self.statistics = statistics or StatisticsStore()
        self.templates = templates or create_default_templates()
        self._retry_policy = RetryPolicy.from_config(self.config.recovery.retry)

    @property
    def retry_policy(self) -> RetryPolicy:
        """Policy applied to retry actions during execute_recovery."""
        return self._retry_policy

    @staticmethod
    def create_error_context(
        operation: str,
        subject_id: str | None = None,
        secondary_id: str | None = None,
        *,
        session_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> ErrorContext:
        """Create an ErrorContext stamped with the current time."""
        return create_error_context(
            operation,
            subject_id,
            secondary_id,
            session_id=session_id,
            metadata=metadata,
        )

    def create_recovery_plan(
        self,
        error: object,
        context: ErrorContext,
        operation: Operation[Any] | None = None,
        fallback: Operation[Any] | None = None,
    ) -> RecoveryPlan:
        """Build a recovery plan for a failure and count its pattern.

        Args:
            error: Exception, ClassifiedError, or any classifiable object.
            context: Where the failure happened.
            operation: Bound to retry actions (the original operation).
            fallback: Replaces the default payload of fallback actions.

        Returns:
            A fresh RecoveryPlan with at least one action and a user message.
        """
        classified = self.classifier.classify(error)
        message = self.classifier.get_user_friendly_message(classified)
        history = self.statistics.get(classified.kind, context.operation)

        plan = self.templates.build(
            TemplateInput(
                error=classified,
                context=context,
                config=self.config.recovery,
                user_message=message,
                pattern=history,
            )
        )
        if operation is not None and ActionType.RETRY in plan.action_types:
            plan = plan.with_operation(ActionType.RETRY, operation)
        if fallback is not None and ActionType.FALLBACK in plan.action_types:
            plan = plan.with_operation(ActionType.FALLBACK, fallback)

        stat = self.statistics.record_occurrence(classified.kind, context.operation)

        with with_log_context(context.to_log_context()):
            _logger.info(
                "recovery.plan_created",
                error_code=classified.code,
                can_recover=plan.can_recover,
                severity=plan.severity.value,
                actions=[t.value for t in plan.action_types],
                occurrences=stat.count,
            )
        return plan

    async def execute_recovery(self, plan: RecoveryPlan, context: ErrorContext) -> RecoveryResult:
        """Execute the plan's executable actions in order.

        Redirect and manual actions are advisory and skipped. Retry actions
        run under the recovery retry policy, limited to the action's
        max_attempts when it sets one; fallback actions run once. The first
        success stops execution.

        Args:
            plan: Plan returned by create_recovery_plan.
            context: Context the plan was created for.

        Returns:
            RecoveryResult with the action types that ran.
        """
        result = RecoveryResult(success=False)
        last_error: ClassifiedError | None = None

        with with_log_context(context.to_log_context()):
            for action in plan.actions:
                if not action.type.is_executable or action.operation is None:
                    continue

                result.executed_actions.append(action.type)
                if action.type == ActionType.RETRY:
                    policy = self._retry_policy
                    if action.max_attempts is not None:
                        policy = replace(policy, max_attempts=action.max_attempts)
                    outcome = await self.executor.execute_with_retry(
                        action.operation, policy, f"{context.operation}_recovery"
                    )
                    if outcome.success:
                        result.success = True
                        result.result = outcome.result
                        break
                    last_error = outcome.error
                else:
                    try:
                        value = await invoke(action.operation)
                    except Exception as e:
                        last_error = self.classifier.classify(e)
                        _logger.warning(
                            "recovery.fallback_failed",
                            error_code=last_error.code,
                        )
                        continue
                    result.success = True
                    result.result = value
                    break

            if not result.executed_actions:
                _logger.info("recovery.nothing_executable", error_code=plan.error.code)
                return result

            result.error = None if result.success else last_error
            self.statistics.record_recovery(plan.error.kind, context.operation, result.success)
            log = _logger.info if result.success else _logger.warning
            log(
                "recovery.executed",
                error_code=plan.error.code,
                success=result.success,
                executed_actions=[t.value for t in result.executed_actions],
            )
        return result

    def get_recovery_statistics(self) -> RecoveryStatistics:
        """Total error count and patterns sorted by descending count."""
        return self.statistics.statistics()

    def clear_error_patterns(self) -> None:
        self.statistics.clear()
        _logger.info("recovery.patterns_cleared")


__all__ = ["ErrorRecoveryService"]
