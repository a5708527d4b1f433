"""
Reminder service: work reminders and their completion rules.

System reminders are linked to the record they track through `task_id` and may
only be completed once the underlying condition is resolved:
- COCP safe custody: the number's safe custody date must be moved to the future.
- Pre-booked RTS: the pre-booking must be sold (or cancelled).

Bulk completion applies to every eligible reminder and reports the rest with
their reasons; it never fails as a whole because of ineligible items.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from domain.reminder import Reminder, ReminderStatus
from domain.time import is_due
from domain.user import User
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import reminder_to_document
from services.context import OperationContext
from services.errors import RecordNotFoundError, ValidationError
from services.record_store import RecordStore

REMINDER_NOT_FOUND = "Reminder not found"


@dataclass(frozen=True, slots=True)
class CompletionCheck:
    can_be_done: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class BulkCompletionResult:
    """
    updated: ids of reminders that were changed (marked Done or deleted)
    skipped: (reminder id, reason) for every selected reminder left untouched
    """

    updated: List[str]
    skipped: List[tuple[str, str]] = field(default_factory=list)


def can_reminder_be_marked_done(store: RecordStore, reminder: Reminder, now: datetime, tz_name: str) -> CompletionCheck:
    number_id = reminder.linked_number_id()
    if number_id is not None:
        number = store.find(Collection.NUMBERS, number_id)
        if number is not None and number.safe_custody_date is not None and is_due(number.safe_custody_date, now, tz_name):
            return CompletionCheck(
                False,
                f"The Safe Custody Date for {number.mobile} has not been updated to a future date.",
            )
        return CompletionCheck(True)

    prebooking_id = reminder.linked_prebooking_id()
    if prebooking_id is not None:
        prebooking = store.find(Collection.PREBOOKINGS, prebooking_id)
        if prebooking is not None:
            return CompletionCheck(
                False,
                f"The Pre-Booked number {prebooking.mobile} has not been marked as sold yet.",
            )

    return CompletionCheck(True)


def add_reminder(
    ctx: OperationContext,
    task_name: str,
    assigned_to: Sequence[str],
    due_date: datetime,
    *,
    task_id: Optional[str] = None,
    record_activity: bool = True,
) -> str:
    if not task_name.strip():
        raise ValidationError("Task name is required.")
    if not assigned_to:
        raise ValidationError("A reminder must be assigned to at least one user.")

    reminder = Reminder(
        id=None,
        sr_no=ctx.allocate_sr_no(Collection.REMINDERS),
        task_name=task_name,
        assigned_to=tuple(assigned_to),
        status=ReminderStatus.PENDING,
        due_date=due_date,
        created_by=ctx.actor.uid,
        task_id=task_id,
    )

    batch = WriteBatch()
    reminder_id = batch.set(Collection.REMINDERS, reminder_to_document(reminder))
    if record_activity:
        ctx.add_activity(batch, "Added Reminder", f'Assigned task "{task_name}" to {", ".join(assigned_to)}')
    ctx.commit(batch, path="reminders", operation="create", info=reminder_to_document(reminder))
    return reminder_id


def _completion_patch(ctx: OperationContext, note: Optional[str]) -> dict:
    patch = {"status": ReminderStatus.DONE.value, "completionDate": ctx.now().isoformat()}
    if note:
        patch["notes"] = note
    return patch


def mark_reminder_done(ctx: OperationContext, reminder_id: str, note: Optional[str] = None) -> None:
    """
    Complete one reminder.

    Raises:
        ValidationError: the linked condition is not resolved yet.
    """

    reminder = ctx.store.find(Collection.REMINDERS, reminder_id)
    if reminder is None:
        raise RecordNotFoundError("reminders", reminder_id)

    check = can_reminder_be_marked_done(ctx.store, reminder, ctx.now(), ctx.timezone)
    if not check.can_be_done:
        raise ValidationError(check.message)

    batch = WriteBatch()
    batch.update(Collection.REMINDERS, reminder_id, _completion_patch(ctx, note))
    ctx.add_activity(batch, "Marked Task Done", f"Completed task: {reminder.task_name}")
    ctx.commit(batch, path=f"reminders/{reminder_id}", operation="update", info={"status": "Done", "note": note})


def bulk_mark_reminders_done(ctx: OperationContext, reminder_ids: Sequence[str], note: Optional[str] = None) -> BulkCompletionResult:
    eligible: list[Reminder] = []
    skipped: list[tuple[str, str]] = []
    now = ctx.now()

    for reminder_id in dict.fromkeys(reminder_ids):
        reminder = ctx.store.find(Collection.REMINDERS, reminder_id)
        if reminder is None:
            skipped.append((reminder_id, REMINDER_NOT_FOUND))
            continue
        check = can_reminder_be_marked_done(ctx.store, reminder, now, ctx.timezone)
        if check.can_be_done:
            eligible.append(reminder)
        else:
            skipped.append((reminder_id, check.message))

    if not eligible:
        return BulkCompletionResult(updated=[], skipped=skipped)

    batch = WriteBatch()
    patch = _completion_patch(ctx, note)
    for reminder in eligible:
        batch.update(Collection.REMINDERS, reminder.id, patch)
    ctx.add_activity(batch, "Bulk Marked Tasks Done", f"Completed {len(eligible)} task(s).")
    ctx.commit(
        batch, path="reminders", operation="update",
        info={"info": f"Bulk mark done for {len(eligible)} reminders."},
    )
    return BulkCompletionResult(updated=[r.id for r in eligible], skipped=skipped)


def assign_reminders(ctx: OperationContext, reminder_ids: Sequence[str], user_names: Sequence[str]) -> None:
    if not user_names:
        raise ValidationError("Select at least one user.")

    reminder_ids = list(dict.fromkeys(reminder_ids))
    batch = WriteBatch()
    for reminder_id in reminder_ids:
        if ctx.store.find(Collection.REMINDERS, reminder_id) is None:
            raise RecordNotFoundError("reminders", reminder_id)
        batch.update(Collection.REMINDERS, reminder_id, {"assignedTo": list(user_names)})
    ctx.add_activity(
        batch, "Assigned Reminders",
        f"Assigned {len(reminder_ids)} reminder(s) to {', '.join(user_names)}.",
    )
    ctx.commit(batch, path="reminders", operation="update", info={"assignedTo": list(user_names)})


def delete_reminder(ctx: OperationContext, reminder_id: str) -> None:
    ctx.require_admin("delete reminders")
    reminder = ctx.store.find(Collection.REMINDERS, reminder_id)
    if reminder is None:
        raise RecordNotFoundError("reminders", reminder_id)

    batch = WriteBatch()
    batch.delete(Collection.REMINDERS, reminder_id)
    ctx.add_activity(batch, "Deleted Reminder", f"Deleted task: {reminder.task_name}")
    ctx.commit(batch, path=f"reminders/{reminder_id}", operation="delete")


def bulk_delete_reminders(ctx: OperationContext, reminder_ids: Sequence[str]) -> BulkCompletionResult:
    """Delete the selected Done reminders; Pending ones are reported and kept."""

    ctx.require_admin("delete reminders")

    done: list[Reminder] = []
    skipped: list[tuple[str, str]] = []
    for reminder_id in dict.fromkeys(reminder_ids):
        reminder = ctx.store.find(Collection.REMINDERS, reminder_id)
        if reminder is None:
            skipped.append((reminder_id, REMINDER_NOT_FOUND))
            continue
        if reminder.is_pending:
            skipped.append((reminder_id, "Only completed reminders can be deleted."))
        else:
            done.append(reminder)

    if not done:
        return BulkCompletionResult(updated=[], skipped=skipped)

    batch = WriteBatch()
    for reminder in done:
        batch.delete(Collection.REMINDERS, reminder.id)
    ctx.add_activity(batch, "Bulk Deleted Reminders", f"Deleted {len(done)} reminder(s).")
    ctx.commit(
        batch, path="reminders", operation="delete",
        info={"info": f"Bulk delete of {len(done)} reminders."},
    )
    return BulkCompletionResult(updated=[r.id for r in done], skipped=skipped)


def due_reminders(store: RecordStore, user: User, now: datetime, tz_name: str) -> list[Reminder]:
    """Pending reminders visible to `user` that are due today or earlier."""

    return [r for r in store.reminders_for(user) if r.is_pending and is_due(r.due_date, now, tz_name)]


class ReminderPopupTracker:
    """
    Remembers which due reminders each user has already been shown, so a
    reminder pops up once per process lifetime.
    """

    def __init__(self) -> None:
        self._shown: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def take_new(self, user: User, due: Sequence[Reminder]) -> list[Reminder]:
        with self._lock:
            shown = self._shown.setdefault(user.uid, set())
            fresh = [r for r in due if r.id not in shown]
            shown.update(r.id for r in fresh)
        return fresh


__all__ = [
    "BulkCompletionResult",
    "CompletionCheck",
    "ReminderPopupTracker",
    "add_reminder",
    "assign_reminders",
    "bulk_delete_reminders",
    "bulk_mark_reminders_done",
    "can_reminder_be_marked_done",
    "delete_reminder",
    "due_reminders",
    "mark_reminder_done",
]
