"""Batch execution of keyed operations under retry.

Each item is run through the retry executor in order. The strategy decides
what a failure means for the rest of the batch:

- FAIL_FAST: stop at the first failed item
- BEST_EFFORT: run every item; overall success only if all succeeded
- ALL_OR_NOTHING: run every item; any failure marks the whole batch failed
  and is logged as a batch-level failure for the caller to compensate
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from steadfast.core.logging import get_logger
from steadfast.execution.retry import Operation, RetryExecutor, RetryOutcome, RetryPolicy

_logger = get_logger("batch")

T = TypeVar("T")


class BatchStrategy(str, Enum):
    """How a failed item affects the rest of a batch."""

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"
    ALL_OR_NOTHING = "all_or_nothing"


@dataclass(frozen=True)
class BatchItem(Generic[T]):
    """One keyed operation in a batch.

    Attributes:
        key: Identifier reported back with the outcome.
        operation: Zero-argument callable returning a value or awaitable.
        policy: Per-item policy; the batch default is used when None.
    """

    key: str
    operation: Operation[T]
    policy: RetryPolicy | None = None


@dataclass
class BatchResult(Generic[T]):
    """Outcomes of a batch, in execution order."""

    results: list[tuple[str, RetryOutcome[T]]] = field(default_factory=list)
    overall_success: bool = True

    @property
    def failed_keys(self) -> list[str]:
        return [key for key, outcome in self.results if not outcome.success]

    def outcome_for(self, key: str) -> RetryOutcome[T] | None:
        for item_key, outcome in self.results:
            if item_key == key:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_success": self.overall_success,
            "results": [{"key": key, **outcome.to_dict()} for key, outcome in self.results],
        }


async def execute_batch_with_retry(
    items: Sequence[BatchItem[T]],
    strategy: BatchStrategy = BatchStrategy.BEST_EFFORT,
    policy: RetryPolicy | None = None,
    executor: RetryExecutor | None = None,
) -> BatchResult[T]:
    """Run a batch of keyed operations.

    Args:
        items: Items to run, in order.
        strategy: Failure handling strategy.
        policy: Default policy for items without their own.
        executor: Retry executor to use.

    Returns:
        BatchResult with per-key outcomes and the overall verdict.
    """
    runner = executor or RetryExecutor()
    default_policy = policy or RetryPolicy()
    batch: BatchResult[T] = BatchResult()

    for item in items:
        outcome = await runner.execute_with_retry(
            item.operation, item.policy or default_policy, item.key
        )
        batch.results.append((item.key, outcome))

        if not outcome.success:
            batch.overall_success = False
            if strategy == BatchStrategy.FAIL_FAST:
                _logger.warning("batch.failed_fast", key=item.key, completed=len(batch.results))
                break

    if strategy == BatchStrategy.ALL_OR_NOTHING and not batch.overall_success:
        _logger.warning(
            "batch.all_or_nothing_failed",
            failed_keys=batch.failed_keys,
            succeeded=len(batch.results) - len(batch.failed_keys),
        )

    return batch


__all__ = [
    "BatchItem",
    "BatchResult",
    "BatchStrategy",
    "execute_batch_with_retry",
]
