"""Reconciliation error taxonomy.

Every error raised by the core derives from :class:`ReconcileError` and carries a
short ``summary`` (suitable as a diagnostic title) next to the detailed message.
"""

from __future__ import annotations


class ReconcileError(Exception):
    """Base class for failures surfaced to the host."""

    summary = "Reconcile Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.detail = message
        self.cleanup_error: BaseException | None = None


class ClientError(ReconcileError):
    """A remote call failed at the transport or server level."""

    summary = "Client Error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ReconcileError):
    """The expected remote entity does not exist."""

    summary = "Not Found"


class NoResultsError(NotFoundError):
    """A filter did not match any item."""

    def __init__(self, message: str = "given filter does not match any item") -> None:
        super().__init__(message)


class AmbiguousResultsError(ReconcileError):
    """A filter matched more than one item."""

    summary = "Ambiguous Results"

    def __init__(
        self,
        message: str = "given filter applies to more than one result",
        *,
        count: int | None = None,
    ) -> None:
        super().__init__(message)
        self.count = count


class NotSupportedError(ReconcileError):
    """The requested change cannot be applied in place."""

    summary = "Not Supported"

    def __init__(self, message: str, *, attributes: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.attributes = attributes


class PollTimeoutError(ReconcileError):
    """The awaited condition did not become true before cancellation.

    The remote operation may still complete later; the outcome is unknown.
    """

    summary = "Timeout"

    def __init__(self, message: str = "Timeout while waiting for condition") -> None:
        super().__init__(message)
