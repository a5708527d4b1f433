"""
Operation context shared by every mutation service.

An OperationContext binds the record store, the acting user and a clock. It
owns the write call site: batches are committed here, rejected writes are
converted into PermissionDeniedError and emitted, and successful writes are
followed by a re-sync of the touched collections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from domain.activity import Activity
from domain.lifecycle import SYSTEM_ACTOR
from domain.time import DEFAULT_BUSINESS_TIMEZONE, utc_now
from domain.user import User, UserRole
from repositories.document_store import Collection, DocumentStoreError, WriteBatch
from repositories.record_mapping import activity_to_document
from services.errors import ForbiddenActionError, PermissionDeniedError, error_events
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

SYSTEM_USER = User(uid="system", email="", role=UserRole.ADMIN, display_name=SYSTEM_ACTOR)


@dataclass
class OperationContext:
    store: RecordStore
    actor: User
    clock: Callable[[], datetime] = utc_now
    timezone: str = DEFAULT_BUSINESS_TIMEZONE
    _sr_offsets: dict[Collection, int] = field(default_factory=dict, repr=False)

    @property
    def performer(self) -> str:
        return self.actor.performer_name

    def now(self) -> datetime:
        return self.clock()

    def require_admin(self, action: str) -> None:
        if not self.actor.is_admin:
            raise ForbiddenActionError(f"Only admins can {action}.")

    def allocate_sr_no(self, collection: Collection) -> int:
        """Next serial number, counting ones already handed out for the pending write."""

        offset = self._sr_offsets.get(collection, 0)
        self._sr_offsets[collection] = offset + 1
        return self.store.next_sr_no(collection) + offset

    def add_activity(
        self,
        batch: WriteBatch,
        action: str,
        description: str,
        *,
        employee_name: Optional[str] = None,
    ) -> str:
        activity = Activity(
            id=None,
            sr_no=self.allocate_sr_no(Collection.ACTIVITIES),
            employee_name=employee_name or self.performer,
            action=action,
            description=description,
            timestamp=self.now(),
            created_by=self.actor.uid,
        )
        return batch.set(Collection.ACTIVITIES, activity_to_document(activity))

    def commit(
        self,
        batch: WriteBatch,
        *,
        path: str,
        operation: str,
        info: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Commit `batch` atomically, then refresh the touched collections.

        Raises:
            PermissionDeniedError: the database rejected the batch.
        """

        self._sr_offsets.clear()
        if not batch:
            return

        try:
            self.store.documents.commit(batch)
        except DocumentStoreError as e:
            error = PermissionDeniedError(path, operation, info, cause=e)
            logger.warning(
                "Write rejected by database",
                extra={"path": path, "operation": operation, "code": e.code, "error": str(e)},
            )
            error_events.emit(error)
            raise error from e

        self.store.sync(batch.collections)

    def record_activity(self, action: str, description: str, *, employee_name: Optional[str] = None) -> None:
        batch = WriteBatch()
        self.add_activity(batch, action, description, employee_name=employee_name)
        self.commit(batch, path="activities", operation="create", info={"action": action})


def system_context(store: RecordStore, clock: Callable[[], datetime] = utc_now, timezone: str = DEFAULT_BUSINESS_TIMEZONE) -> OperationContext:
    return OperationContext(store=store, actor=SYSTEM_USER, clock=clock, timezone=timezone)


__all__ = ["OperationContext", "SYSTEM_USER", "system_context"]
