"""Tests for steadfast.recovery planner, plans and templates."""

import pytest

from steadfast.core.config import RecoveryConfig, ResilienceConfig
from steadfast.core.errors import (
    MESSAGES,
    ClassifiedError,
    ErrorKind,
    Severity,
    authentication_failed,
    profile_creation_failed,
    profile_not_found,
    storage_connection_error,
)
from steadfast.recovery import (
    ActionType,
    ErrorRecoveryService,
    RecoveryAction,
    RecoveryPlan,
    TemplateRegistry,
    create_default_templates,
)
from tests.helpers import AsyncCallCounter, CallCounter, always_failing


@pytest.fixture
def context(service):
    return service.create_error_context("create_profile", "user-1", "candidate")


class TestCreateErrorContext:
    """Tests for ErrorRecoveryService.create_error_context."""

    def test_fields(self):
        ctx = ErrorRecoveryService.create_error_context("login", "user-9")
        assert ctx.operation == "login"
        assert ctx.subject_id == "user-9"
        assert ctx.secondary_id is None
        assert ctx.created_at.tzinfo is not None

    def test_metadata_is_read_only(self):
        ctx = ErrorRecoveryService.create_error_context(
            "login", metadata={"current_path": "/dashboard"}
        )
        assert ctx.metadata["current_path"] == "/dashboard"
        with pytest.raises(TypeError):
            ctx.metadata["x"] = 1  # type: ignore[index]

    def test_immutable(self):
        ctx = ErrorRecoveryService.create_error_context("login")
        with pytest.raises(AttributeError):
            ctx.operation = "other"  # type: ignore[misc]


class TestCreateRecoveryPlan:
    """Tests for the kind-to-plan mapping."""

    def test_authentication_failed(self, service, context):
        plan = service.create_recovery_plan(authentication_failed(), context)

        assert plan.can_recover is True
        assert plan.severity == Severity.MEDIUM
        assert plan.action_types == [ActionType.REDIRECT]
        assert plan.actions[0].target_path == "/auth/login"
        assert plan.user_message == MESSAGES["en"]["AUTH_FAILED"]

    def test_profile_not_found_uses_profile_type(self, service, context):
        plan = service.create_recovery_plan(profile_not_found("candidate"), context)

        assert plan.can_recover is True
        assert plan.severity == Severity.MEDIUM
        assert plan.actions[0].type == ActionType.REDIRECT
        assert plan.actions[0].target_path == "/profile/create/candidate"
        assert plan.actions[-1].target_path == "/profile/select"

    def test_profile_not_found_without_profile_type(self, service):
        ctx = service.create_error_context("load_profile", "user-1")
        plan = service.create_recovery_plan(profile_not_found("candidate"), ctx)

        assert plan.action_types == [ActionType.REDIRECT]
        assert plan.actions[0].target_path == "/profile/select"

    def test_profile_creation_failed(self, service, context):
        plan = service.create_recovery_plan(profile_creation_failed("candidate"), context)

        assert plan.can_recover is True
        assert plan.severity == Severity.HIGH
        assert plan.actions[0].type == ActionType.RETRY
        assert plan.estimated_recovery_time == 30.0

    def test_non_retryable_profile_creation_failure(self, service, context):
        error = ClassifiedError.of_kind(
            ErrorKind.PROFILE_CREATION_FAILED, "duplicate", retryable=False
        )
        plan = service.create_recovery_plan(error, context)

        assert plan.can_recover is False
        assert plan.action_types == [ActionType.MANUAL]

    def test_storage_connection_error(self, service, context):
        plan = service.create_recovery_plan(storage_connection_error("load"), context)

        assert plan.can_recover is True
        assert plan.severity == Severity.HIGH
        assert plan.action_types == [ActionType.RETRY, ActionType.FALLBACK]
        assert plan.estimated_recovery_time == 15.0

    def test_unknown_error(self, service, context):
        plan = service.create_recovery_plan(Exception("x"), context)

        assert plan.can_recover is False
        assert ActionType.MANUAL in plan.action_types
        assert plan.severity == Severity.CRITICAL
        assert plan.user_message

    def test_transient_unclassified_is_manual_by_default(self, service, context):
        plan = service.create_recovery_plan(RuntimeError("timeout"), context)
        assert plan.can_recover is False
        assert plan.severity == Severity.CRITICAL

    def test_transient_unclassified_retry_opt_in(self, executor, context):
        config = ResilienceConfig(recovery=RecoveryConfig(retry_transient_unclassified=True))
        service = ErrorRecoveryService(config=config, executor=executor)

        plan = service.create_recovery_plan(RuntimeError("timeout"), context)

        assert plan.can_recover is True
        assert plan.action_types == [ActionType.RETRY]
        assert plan.estimated_recovery_time == 10.0

    @pytest.mark.parametrize(
        "error",
        [
            authentication_failed(),
            profile_not_found("company"),
            profile_creation_failed("company"),
            storage_connection_error("save"),
            ValueError("boom"),
        ],
    )
    def test_every_plan_has_action_and_message(self, service, context, error):
        plan = service.create_recovery_plan(error, context)
        assert len(plan.actions) >= 1
        assert plan.user_message

    def test_plan_shape_is_deterministic(self, service, context):
        first = service.create_recovery_plan(storage_connection_error("a"), context)
        second = service.create_recovery_plan(storage_connection_error("b"), context)
        assert first.to_dict()["actions"] == second.to_dict()["actions"]

    def test_custom_paths(self, executor, context):
        recovery = RecoveryConfig(login_path="/signin", profile_create_path="/new/{profile_type}")
        service = ErrorRecoveryService(
            config=ResilienceConfig(recovery=recovery), executor=executor
        )

        auth_plan = service.create_recovery_plan(authentication_failed(), context)
        profile_plan = service.create_recovery_plan(profile_not_found("candidate"), context)

        assert auth_plan.actions[0].target_path == "/signin"
        assert profile_plan.actions[0].target_path == "/new/candidate"

    def test_locale(self, executor, context):
        config = ResilienceConfig.model_validate({"classifier": {"locale": "es"}})
        service = ErrorRecoveryService(config=config, executor=executor)
        plan = service.create_recovery_plan(authentication_failed(), context)
        assert plan.user_message == MESSAGES["es"]["AUTH_FAILED"]


class TestRecoveryPlanModel:
    """Tests for plan and action invariants."""

    def test_plan_requires_action(self):
        error = ClassifiedError.of_kind(ErrorKind.UNCLASSIFIED, "x")
        with pytest.raises(ValueError):
            RecoveryPlan(
                can_recover=False,
                actions=(),
                severity=Severity.CRITICAL,
                user_message="m",
                error=error,
            )

    def test_redirect_requires_target(self):
        with pytest.raises(ValueError):
            RecoveryAction(type=ActionType.REDIRECT, description="go")

    def test_manual_cannot_be_bound(self):
        action = RecoveryAction(type=ActionType.MANUAL, description="call support")
        with pytest.raises(ValueError):
            action.with_operation(lambda: None)

    def test_to_dict(self, service, context):
        data = service.create_recovery_plan(authentication_failed(), context).to_dict()
        assert data["severity"] == "medium"
        assert data["error_code"] == "AUTH_FAILED"
        assert data["actions"][0] == {
            "type": "redirect",
            "description": "Redirect to the login page",
            "user_message": "Sign in again",
            "target_path": "/auth/login",
        }


class TestTemplateRegistry:
    """Tests for TemplateRegistry."""

    def test_default_covers_every_kind(self):
        registry = create_default_templates()
        assert set(registry.kinds()) == set(ErrorKind)

    def test_unregistered_kind_uses_fallback(self, service, context):
        service.templates = TemplateRegistry()
        plan = service.create_recovery_plan(authentication_failed(), context)
        assert plan.can_recover is False
        assert plan.action_types == [ActionType.MANUAL]


class TestExecuteRecovery:
    """Tests for ErrorRecoveryService.execute_recovery."""

    @pytest.mark.asyncio
    async def test_retry_action_runs_bound_operation(self, service, context):
        operation = CallCounter(failures=1, result="created")
        plan = service.create_recovery_plan(
            profile_creation_failed("candidate"), context, operation=operation
        )

        result = await service.execute_recovery(plan, context)

        assert result.success
        assert result.result == "created"
        assert result.executed_actions == [ActionType.RETRY]
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_storage_falls_back_to_cached_data(self, service, context):
        operation = always_failing(storage_connection_error("load"))
        plan = service.create_recovery_plan(
            storage_connection_error("load"), context, operation=operation
        )

        result = await service.execute_recovery(plan, context)

        assert result.success
        assert result.executed_actions == [ActionType.RETRY, ActionType.FALLBACK]
        assert result.result == {"cached": True, "data": None}

    @pytest.mark.asyncio
    async def test_custom_fallback(self, service, context):
        fallback = AsyncCallCounter(result={"cached": True, "data": [1]})
        plan = service.create_recovery_plan(
            storage_connection_error("load"),
            context,
            operation=always_failing(storage_connection_error("load")),
            fallback=fallback,
        )

        result = await service.execute_recovery(plan, context)

        assert result.result == {"cached": True, "data": [1]}
        assert fallback.calls == 1

    @pytest.mark.asyncio
    async def test_unbound_retry_fails(self, service, context):
        plan = service.create_recovery_plan(profile_creation_failed("candidate"), context)

        result = await service.execute_recovery(plan, context)

        assert result.success is False
        assert result.executed_actions == [ActionType.RETRY]
        assert result.error is not None

    @pytest.mark.asyncio
    async def test_advisory_actions_skipped(self, service, context):
        plan = service.create_recovery_plan(authentication_failed(), context)

        result = await service.execute_recovery(plan, context)

        assert result.success is False
        assert result.executed_actions == []

    @pytest.mark.asyncio
    async def test_manual_only_plan_fails(self, service, context):
        plan = service.create_recovery_plan(Exception("x"), context)

        result = await service.execute_recovery(plan, context)

        assert result.success is False
        assert result.executed_actions == []

    @pytest.mark.asyncio
    async def test_failing_fallback(self, service, context):
        plan = service.create_recovery_plan(
            storage_connection_error("load"),
            context,
            operation=always_failing(authentication_failed()),
            fallback=always_failing(ValueError("cache miss")),
        )

        result = await service.execute_recovery(plan, context)

        assert result.success is False
        assert result.executed_actions == [ActionType.RETRY, ActionType.FALLBACK]
        assert result.error.code == "UNCLASSIFIED"

    @pytest.mark.asyncio
    async def test_recovery_outcome_recorded(self, service, context):
        plan = service.create_recovery_plan(
            profile_creation_failed("candidate"), context, operation=CallCounter()
        )
        await service.execute_recovery(plan, context)

        stat = service.get_recovery_statistics().error_patterns[0]
        assert stat.successful_recoveries == 1
        assert stat.success_rate == 1.0


class TestFailureHistory:
    """Tests for retry budgets shortened by a pattern's failed recoveries."""

    @pytest.mark.asyncio
    async def test_retry_shortened_after_repeated_failed_recoveries(self, service, context):
        for _ in range(4):
            plan = service.create_recovery_plan(
                profile_creation_failed("candidate"),
                context,
                operation=always_failing(profile_creation_failed("candidate")),
            )
            assert plan.actions[0].max_attempts is None
            result = await service.execute_recovery(plan, context)
            assert result.success is False

        operation = CallCounter(failures=1, result="created")
        plan = service.create_recovery_plan(
            profile_creation_failed("candidate"), context, operation=operation
        )

        assert plan.actions[0].max_attempts == 1
        assert plan.to_dict()["actions"][0]["max_attempts"] == 1

        result = await service.execute_recovery(plan, context)

        assert result.success is False
        assert operation.calls == 1

    def test_successful_recoveries_keep_full_budget(self, service, context):
        kind = ErrorKind.STORAGE_CONNECTION_ERROR
        service.statistics.record_occurrence(kind, context.operation)
        for _ in range(5):
            service.statistics.record_recovery(kind, context.operation, success=True)

        plan = service.create_recovery_plan(storage_connection_error("load"), context)

        assert plan.actions[0].type == ActionType.RETRY
        assert plan.actions[0].max_attempts is None

    def test_configured_threshold(self, executor, context):
        recovery = RecoveryConfig(failed_recovery_threshold=0, degraded_retry_attempts=2)
        service = ErrorRecoveryService(
            config=ResilienceConfig(recovery=recovery), executor=executor
        )
        kind = ErrorKind.STORAGE_CONNECTION_ERROR
        service.statistics.record_occurrence(kind, context.operation)
        service.statistics.record_recovery(kind, context.operation, success=False)

        plan = service.create_recovery_plan(storage_connection_error("load"), context)

        assert plan.actions[0].max_attempts == 2

    def test_history_is_per_operation(self, service, context):
        kind = ErrorKind.STORAGE_CONNECTION_ERROR
        service.statistics.record_occurrence(kind, "other_operation")
        for _ in range(5):
            service.statistics.record_recovery(kind, "other_operation", success=False)

        plan = service.create_recovery_plan(storage_connection_error("load"), context)

        assert plan.actions[0].max_attempts is None

    def test_max_attempts_only_on_retry_actions(self):
        with pytest.raises(ValueError):
            RecoveryAction(
                type=ActionType.FALLBACK,
                description="cached",
                operation=lambda: None,
                max_attempts=1,
            )
        with pytest.raises(ValueError):
            RecoveryAction(type=ActionType.RETRY, description="again", max_attempts=0)
