"""
Error taxonomy for store access and reconciliation.

Store adapters translate their native failures into these types so the
reconcile algorithms can decide what is retried and what is fatal.
"""

from typing import Any, Optional


class ReconcileError(Exception):
    """Base class for all kreconcile errors."""


class StoreError(ReconcileError):
    """A call against the remote store failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """The addressed object does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class ConflictError(StoreError):
    """
    The write was rejected by the store's optimistic-concurrency check.

    Also raised when creating an object that already exists.
    """

    def __init__(self, message: str):
        super().__init__(message, status=409)


class SerializationError(ReconcileError):
    """An object could not be serialized. Never retried."""


class UnknownKindError(ReconcileError, KeyError):
    """No kind is registered under the requested name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ExhaustionError(ReconcileError):
    """
    A retry or poll budget was consumed without success.

    Attributes:
        target: The identity (or selector) the loop was working on.
        attempts: Number of attempts made.
        last_error: The last underlying error, if any.
    """

    verb = "reconcile"

    def __init__(
        self,
        target: Any,
        attempts: int,
        last_error: Optional[BaseException] = None,
        action: Optional[str] = None,
    ):
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        self.action = action or self.verb
        message = f"failed to {self.action} {target} after {attempts} attempts"
        if last_error is not None:
            message += f" due to {last_error}"
        super().__init__(message)


class WaitTimeoutError(ExhaustionError):
    """A condition was not satisfied before the poll budget ran out."""

    verb = "wait for"
