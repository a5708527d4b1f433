"""
Recurring checks run by the scheduler under the `System` identity.

- promote_due_rts_numbers: Non-RTS numbers whose RTS date has arrived become RTS.
- create_system_reminders: reminders for arrived COCP safe custody dates and
  for pre-bookings whose number is RTS, keyed by task id so each is created once.
- sweep_completed_reminders: Done reminders past the retention window are deleted.

"Today" is the calendar day in the business time zone. Each check writes one
batch; a rejected batch is reported through the usual error channel and the
check simply runs again on its next tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List

from domain.lifecycle import LifecycleAction, SYSTEM_ACTOR
from domain.number import NumberStatus, NumberType
from domain.reminder import Reminder, ReminderStatus, cocp_safe_custody_task_id, prebooked_rts_task_id
from domain.time import DEFAULT_BUSINESS_TIMEZONE, is_due, utc_now
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import event_to_document, reminder_to_document
from services.context import OperationContext, system_context
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


def promote_due_rts_numbers(ctx: OperationContext) -> List[str]:
    """Flip due Non-RTS numbers to RTS; returns the promoted number ids."""

    now = ctx.now()
    due = [
        n for n in ctx.store.numbers
        if n.status == NumberStatus.NON_RTS and is_due(n.rts_date, now, ctx.timezone)
    ]
    if not due:
        return []

    batch = WriteBatch()
    for number in due:
        event = number.history.next_event(
            LifecycleAction.RTS_STATUS_CHANGED,
            "Number automatically became RTS as per schedule.",
            SYSTEM_ACTOR,
            now,
        )
        batch.update(
            Collection.NUMBERS,
            number.id,
            {"status": NumberStatus.RTS.value, "rtsDate": None},
            append_history=[event_to_document(event)],
        )
        ctx.add_activity(
            batch, "Auto-updated to RTS", f"Number {number.mobile} automatically became RTS.",
            employee_name=SYSTEM_ACTOR,
        )

    ctx.commit(batch, path="numbers", operation="update", info={"info": "Batch update for RTS status"})

    promoted = [n.id for n in due]
    ctx.store.mark_recently_auto_rts(promoted, now)
    logger.info("Numbers promoted to RTS", extra={"count": len(promoted)})
    return promoted


def create_system_reminders(ctx: OperationContext) -> List[str]:
    """
    Create the missing system reminders; returns the task ids created.

    Nothing is created while there is no admin to assign them to.
    """

    admins = tuple(ctx.store.admin_names)
    if not admins:
        return []

    now = ctx.now()
    existing = {r.task_id for r in ctx.store.reminders if r.task_id}
    batch = WriteBatch()
    created: list[str] = []

    def _stage(task_id: str, task_name: str, due_date) -> None:
        reminder = Reminder(
            id=None,
            sr_no=ctx.allocate_sr_no(Collection.REMINDERS),
            task_name=task_name,
            assigned_to=admins,
            status=ReminderStatus.PENDING,
            due_date=due_date,
            created_by=ctx.actor.uid,
            task_id=task_id,
        )
        batch.set(Collection.REMINDERS, reminder_to_document(reminder))
        existing.add(task_id)
        created.append(task_id)

    for number in ctx.store.numbers:
        if number.number_type != NumberType.COCP or not is_due(number.safe_custody_date, now, ctx.timezone):
            continue
        task_id = cocp_safe_custody_task_id(number.id)
        if task_id in existing:
            continue
        _stage(task_id, f"Safe Custody Date arrived for {number.mobile}", number.safe_custody_date)
        ctx.add_activity(
            batch, "Safe Custody Date Arrived",
            f"Safe Custody Date for COCP number {number.mobile} has arrived.",
            employee_name=SYSTEM_ACTOR,
        )

    for prebooking in ctx.store.prebookings:
        if not prebooking.is_rts:
            continue
        task_id = prebooked_rts_task_id(prebooking.id)
        if task_id in existing:
            continue
        _stage(task_id, f"Pre-Booked Number is now RTS: {prebooking.mobile}", now)

    if not created:
        return []

    ctx.commit(batch, path="reminders", operation="create", info={"info": f"System reminders: {len(created)}"})
    logger.info("System reminders created", extra={"count": len(created)})
    return created


def sweep_completed_reminders(ctx: OperationContext, retention_days: int = DEFAULT_RETENTION_DAYS) -> List[str]:
    """Delete Done reminders completed more than `retention_days` ago; returns their ids."""

    cutoff = ctx.now() - timedelta(days=retention_days)
    stale = [
        r for r in ctx.store.reminders
        if r.status == ReminderStatus.DONE and r.completion_date is not None and r.completion_date < cutoff
    ]
    if not stale:
        return []

    batch = WriteBatch()
    for reminder in stale:
        batch.delete(Collection.REMINDERS, reminder.id)
    ctx.add_activity(
        batch, "Auto-deleted reminders",
        f"Automatically deleted {len(stale)} completed reminder(s) older than {retention_days} days.",
        employee_name=SYSTEM_ACTOR,
    )
    ctx.commit(batch, path="reminders", operation="delete", info={"info": f"Auto-delete of {len(stale)} reminders."})
    logger.info("Completed reminders swept", extra={"count": len(stale)})
    return [r.id for r in stale]


@dataclass
class CheckReport:
    promoted_rts: List[str] = field(default_factory=list)
    reminders_created: List[str] = field(default_factory=list)
    reminders_swept: List[str] = field(default_factory=list)


def run_scheduled_checks(
    store: RecordStore,
    *,
    clock: Callable = utc_now,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> CheckReport:
    """Run every check once, in order (used by the CLI and at startup)."""

    ctx = system_context(store, clock=clock, timezone=timezone)
    report = CheckReport()
    report.promoted_rts = promote_due_rts_numbers(ctx)
    report.reminders_created = create_system_reminders(ctx)
    report.reminders_swept = sweep_completed_reminders(ctx, retention_days)
    return report


__all__ = [
    "CheckReport",
    "DEFAULT_RETENTION_DAYS",
    "create_system_reminders",
    "promote_due_rts_numbers",
    "run_scheduled_checks",
    "sweep_completed_reminders",
]
