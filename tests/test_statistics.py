"""Tests for steadfast.recovery.statistics and recovery statistics reporting."""

import threading
from datetime import UTC, datetime

import pytest

from steadfast.core.errors import (
    ErrorKind,
    authentication_failed,
    storage_connection_error,
)
from steadfast.recovery import ErrorRecoveryService
from steadfast.recovery.statistics import ErrorPatternStat, StatisticsStore


class TestStatisticsStore:
    """Tests for StatisticsStore."""

    def test_first_occurrence_creates_pattern(self):
        store = StatisticsStore()
        stat = store.record_occurrence(ErrorKind.PROFILE_NOT_FOUND, "load_profile")
        assert stat.count == 1
        assert stat.first_seen == stat.last_seen
        assert len(store) == 1

    def test_repeat_occurrence_increments(self):
        store = StatisticsStore()
        first = store.record_occurrence(ErrorKind.PROFILE_NOT_FOUND, "load_profile")
        second = store.record_occurrence(ErrorKind.PROFILE_NOT_FOUND, "load_profile")
        assert second.count == 2
        assert second.first_seen == first.first_seen
        assert second.last_seen >= first.last_seen

    def test_key_is_kind_and_operation(self):
        store = StatisticsStore()
        store.record_occurrence(ErrorKind.PROFILE_NOT_FOUND, "a")
        store.record_occurrence(ErrorKind.PROFILE_NOT_FOUND, "b")
        store.record_occurrence(ErrorKind.AUTHENTICATION_FAILED, "a")
        assert len(store) == 3

    def test_sorted_by_descending_count(self):
        store = StatisticsStore()
        store.record_occurrence(ErrorKind.UNCLASSIFIED, "x")
        for _ in range(3):
            store.record_occurrence(ErrorKind.STORAGE_CONNECTION_ERROR, "save")
        for _ in range(2):
            store.record_occurrence(ErrorKind.AUTHENTICATION_FAILED, "login")

        stats = store.statistics()

        assert stats.total_errors == 6
        assert [p.count for p in stats.error_patterns] == [3, 2, 1]

    def test_recovery_counts(self):
        store = StatisticsStore()
        store.record_occurrence(ErrorKind.STORAGE_CONNECTION_ERROR, "save")
        store.record_occurrence(ErrorKind.STORAGE_CONNECTION_ERROR, "save")
        store.record_recovery(ErrorKind.STORAGE_CONNECTION_ERROR, "save", success=True)
        store.record_recovery(ErrorKind.STORAGE_CONNECTION_ERROR, "save", success=False)

        stat = store.get(ErrorKind.STORAGE_CONNECTION_ERROR, "save")

        assert stat.successful_recoveries == 1
        assert stat.failed_recoveries == 1
        assert stat.success_rate == 0.5

    def test_recovery_for_unknown_pattern_is_dropped(self):
        store = StatisticsStore()
        assert store.record_recovery(ErrorKind.UNCLASSIFIED, "x", success=True) is False
        assert store.get(ErrorKind.UNCLASSIFIED, "x") is None
        assert len(store) == 0

    def test_clear(self):
        store = StatisticsStore()
        store.record_occurrence(ErrorKind.UNCLASSIFIED, "x")
        store.clear()
        assert store.statistics().total_errors == 0
        assert store.get(ErrorKind.UNCLASSIFIED, "x") is None

    def test_concurrent_increments_are_not_lost(self):
        store = StatisticsStore()

        def worker():
            for _ in range(500):
                store.record_occurrence(ErrorKind.UNCLASSIFIED, "x")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get(ErrorKind.UNCLASSIFIED, "x").count == 4000


class TestErrorPatternStat:
    """Tests for ErrorPatternStat."""

    def test_success_rate_with_zero_count(self):
        now = datetime.now(UTC)
        stat = ErrorPatternStat(
            kind=ErrorKind.UNCLASSIFIED,
            operation="x",
            count=0,
            first_seen=now,
            last_seen=now,
            successful_recoveries=1,
        )
        assert stat.success_rate == 0.0

    def test_to_dict(self):
        store = StatisticsStore()
        stat = store.record_occurrence(ErrorKind.AUTHENTICATION_FAILED, "login")
        data = stat.to_dict()
        assert data["kind"] == "authentication_failed"
        assert data["operation"] == "login"
        assert data["count"] == 1


class TestRecoveryStatistics:
    """Tests for ErrorRecoveryService statistics reporting."""

    def test_every_plan_counted(self, service):
        ctx = service.create_error_context("login", "user-1")
        service.create_recovery_plan(authentication_failed(), ctx)
        service.create_recovery_plan(authentication_failed(), ctx)
        service.create_recovery_plan(storage_connection_error("login"), ctx)

        stats = service.get_recovery_statistics()

        assert stats.total_errors == 3
        top = stats.error_patterns[0]
        assert top.kind == ErrorKind.AUTHENTICATION_FAILED
        assert (top.operation, top.count) == ("login", 2)

    def test_idempotent_reads(self, service):
        ctx = service.create_error_context("login")
        service.create_recovery_plan(authentication_failed(), ctx)

        first = service.get_recovery_statistics()
        second = service.get_recovery_statistics()

        assert first.total_errors == second.total_errors
        assert [p.count for p in first.error_patterns] == [p.count for p in second.error_patterns]

    def test_clear_error_patterns(self, service):
        ctx = service.create_error_context("login")
        service.create_recovery_plan(authentication_failed(), ctx)

        service.clear_error_patterns()

        stats = service.get_recovery_statistics()
        assert stats.total_errors == 0
        assert stats.error_patterns == []

    def test_services_do_not_share_state(self, service, executor):
        other = ErrorRecoveryService(executor=executor)
        service.create_recovery_plan(authentication_failed(), service.create_error_context("a"))
        assert other.get_recovery_statistics().total_errors == 0

    @pytest.mark.asyncio
    async def test_clear_during_recovery_leaves_no_pattern(self, service):
        ctx = service.create_error_context("save")

        def operation():
            service.clear_error_patterns()
            return "saved"

        plan = service.create_recovery_plan(
            storage_connection_error("save"), ctx, operation=operation
        )
        result = await service.execute_recovery(plan, ctx)

        assert result.success
        stats = service.get_recovery_statistics()
        assert stats.total_errors == 0
        assert stats.error_patterns == []
