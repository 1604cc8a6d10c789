"""Error taxonomy and retry classification for reconciliation runs."""

from __future__ import annotations

from inventory_odg.api.client import APIError

# Status codes returned by the Delivery Service which must not be retried.
# Anything not listed here, including client errors and transport failures,
# is retried by the scheduler.
NON_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({500})


class ReconcileError(Exception):
    """Base class of all errors which abort a reconciliation run."""

    retryable: bool = True

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable
        self.state: str | None = None


class PayloadError(ReconcileError):
    """Invalid or missing task payload."""

    retryable = False


class QueryError(ReconcileError):
    """The inventory query failed or returned rows of the wrong shape."""

    def __init__(self, message: str, *, permanent: bool = False) -> None:
        super().__init__(message, retryable=not permanent)

    @property
    def permanent(self) -> bool:
        return not self.retryable


class RemoteSyncError(ReconcileError):
    """A call to the Delivery Service failed."""

    def __init__(self, message: str, cause: APIError, *, retryable: bool) -> None:
        super().__init__(message, retryable=retryable)
        self.cause = cause

    @property
    def status_code(self) -> int | None:
        return self.cause.status_code


class RunCancelled(ReconcileError):
    """The run was cancelled before it completed."""


class UnknownTaskError(KeyError):
    """No reconciler is registered under the requested task name."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown task: {self.name}"


def is_retryable_status(status_code: int | None) -> bool:
    return status_code not in NON_RETRYABLE_STATUS_CODES


def classify_remote_error(err: APIError, action: str) -> RemoteSyncError:
    """Wrap an API error, deciding whether the scheduler should retry it."""
    return RemoteSyncError(
        f"{action}: {err}",
        err,
        retryable=is_retryable_status(err.status_code),
    )
