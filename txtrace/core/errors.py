from __future__ import annotations


class TraceError(Exception):
    """Base class for retrieval and aggregation failures."""


class StoreError(TraceError):
    """The store failed to execute a query (connectivity, bad statement, timeout)."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SubtaskTimeoutError(StoreError):
    """A fetch subtask ran past its deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"subtask did not finish within {timeout:g}s")
        self.timeout = timeout


class SchedulingError(TraceError):
    """The worker pool failed to run a subtask to completion."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
