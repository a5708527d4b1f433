"""
Error taxonomy for business operations.

- Validation failures (bad input, duplicate mobile, missing record, role
  checks) are raised before any write is attempted.
- A rejected database write is converted at the write call site into a
  PermissionDeniedError carrying the attempted path, operation and payload,
  emitted to every `error_events` listener, and then raised.
- Bulk operations never raise for individual ineligible items; they report
  them in their result instead.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Mapping, Optional

logger = logging.getLogger(__name__)


class OperationError(Exception):
    """Base class for errors surfaced by business operations."""


class ValidationError(OperationError):
    def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.problems = problems or [message]


class DuplicateNumberError(ValidationError):
    def __init__(self, mobile: str) -> None:
        super().__init__(f"The mobile number {mobile} already exists.")
        self.mobile = mobile


class RecordNotFoundError(OperationError):
    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection} record not found: {record_id}")
        self.collection = collection
        self.record_id = record_id


class ForbiddenActionError(OperationError):
    """The acting user's role does not allow the operation."""


class PermissionDeniedError(OperationError):
    """
    The database rejected a write.

    Attributes mirror what was attempted so the failure can be reported
    without re-deriving the request.
    """

    def __init__(
        self,
        path: str,
        operation: str,
        request_resource_data: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(f"Missing or insufficient permissions: {operation} on {path}")
        self.path = path
        self.operation = operation
        self.request_resource_data = dict(request_resource_data or {})
        self.cause = cause

    def to_event(self) -> dict[str, Any]:
        return {
            "error": "permission-error",
            "detail": str(self),
            "path": self.path,
            "operation": self.operation,
            "request_resource_data": self.request_resource_data,
        }


ErrorListener = Callable[[PermissionDeniedError], None]


class ErrorEmitter:
    """Fan-out of structured write errors to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[ErrorListener] = []
        self._lock = threading.Lock()

    def on(self, listener: ErrorListener) -> Callable[[], None]:
        """Subscribe; returns a function that unsubscribes."""

        with self._lock:
            self._listeners.append(listener)

        def _off() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _off

    def emit(self, error: PermissionDeniedError) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(error)
            except Exception:
                logger.exception("Error listener failed", extra={"path": error.path})


error_events = ErrorEmitter()


__all__ = [
    "DuplicateNumberError",
    "ErrorEmitter",
    "ForbiddenActionError",
    "OperationError",
    "PermissionDeniedError",
    "RecordNotFoundError",
    "ValidationError",
    "error_events",
]
