"""Shared test helpers for Steadfast tests."""


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class CallCounter:
    """Operation that fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int = 0, error: Exception | None = None, result="ok") -> None:
        self.failures = failures
        self.error = error or ConnectionError("connection reset")
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


class AsyncCallCounter(CallCounter):
    """Async variant of CallCounter."""

    async def __call__(self):  # type: ignore[override]
        return super().__call__()


def always_failing(error: Exception | None = None) -> CallCounter:
    """A CallCounter that never succeeds."""
    return CallCounter(failures=10**9, error=error)
