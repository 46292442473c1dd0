"""In-memory store of recurring error patterns.

Each pattern is keyed by (error kind, operation name) and counts how often
recovery was planned for it. Entries live for the lifetime of the store and
can be cleared explicitly.

Thread-safe: each pattern has its own lock; the store lock only guards
creating and clearing entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock
from typing import Any

from steadfast.core.errors import ErrorKind

PatternKey = tuple[ErrorKind, str]


@dataclass(frozen=True)
class ErrorPatternStat:
    """Snapshot of one error pattern."""

    kind: ErrorKind
    operation: str
    count: int
    first_seen: datetime
    last_seen: datetime
    successful_recoveries: int = 0
    failed_recoveries: int = 0

    @property
    def success_rate(self) -> float:
        if self.count == 0:
            return 0.0
        return self.successful_recoveries / self.count

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "operation": self.operation,
            "count": self.count,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "successful_recoveries": self.successful_recoveries,
            "failed_recoveries": self.failed_recoveries,
            "success_rate": round(self.success_rate, 3),
        }


@dataclass(frozen=True)
class RecoveryStatistics:
    """Aggregate view returned by ``get_recovery_statistics``."""

    total_errors: int
    error_patterns: list[ErrorPatternStat]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "error_patterns": [p.to_dict() for p in self.error_patterns],
        }


class _PatternCounter:
    """Mutable counters for one pattern, guarded by their own lock."""

    def __init__(self, kind: ErrorKind, operation: str, now: datetime) -> None:
        self.kind = kind
        self.operation = operation
        self.count = 0
        self.first_seen = now
        self.last_seen = now
        self.successful_recoveries = 0
        self.failed_recoveries = 0
        self.lock = Lock()

    def snapshot(self) -> ErrorPatternStat:
        with self.lock:
            return ErrorPatternStat(
                kind=self.kind,
                operation=self.operation,
                count=self.count,
                first_seen=self.first_seen,
                last_seen=self.last_seen,
                successful_recoveries=self.successful_recoveries,
                failed_recoveries=self.failed_recoveries,
            )


class StatisticsStore:
    """Per-pattern occurrence and recovery counters."""

    def __init__(self) -> None:
        self._patterns: dict[PatternKey, _PatternCounter] = {}
        self._lock = Lock()

    def _counter(self, kind: ErrorKind, operation: str, now: datetime) -> _PatternCounter:
        key = (kind, operation)
        with self._lock:
            counter = self._patterns.get(key)
            if counter is None:
                counter = _PatternCounter(kind, operation, now)
                self._patterns[key] = counter
            return counter

    def record_occurrence(self, kind: ErrorKind, operation: str) -> ErrorPatternStat:
        """Count one occurrence of the pattern, creating it if needed."""
        now = datetime.now(UTC)
        counter = self._counter(kind, operation, now)
        with counter.lock:
            counter.count += 1
            counter.last_seen = now
        return counter.snapshot()

    def record_recovery(self, kind: ErrorKind, operation: str, success: bool) -> bool:
        """Count the result of a recovery attempt for the pattern.

        Patterns are only created by record_occurrence; a result for a
        pattern that is unknown (for example cleared while the recovery ran)
        is dropped.

        Returns:
            True if the result was recorded.
        """
        with self._lock:
            counter = self._patterns.get((kind, operation))
        if counter is None:
            return False
        with counter.lock:
            if success:
                counter.successful_recoveries += 1
            else:
                counter.failed_recoveries += 1
        return True

    def get(self, kind: ErrorKind, operation: str) -> ErrorPatternStat | None:
        with self._lock:
            counter = self._patterns.get((kind, operation))
        return counter.snapshot() if counter is not None else None

    def statistics(self) -> RecoveryStatistics:
        """Total count and patterns sorted by descending occurrence count."""
        with self._lock:
            counters = list(self._patterns.values())
        patterns = sorted(
            (c.snapshot() for c in counters),
            key=lambda p: (-p.count, p.kind.value, p.operation),
        )
        return RecoveryStatistics(
            total_errors=sum(p.count for p in patterns),
            error_patterns=patterns,
        )

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)


__all__ = [
    "ErrorPatternStat",
    "PatternKey",
    "RecoveryStatistics",
    "StatisticsStore",
]
