"""
Tests for `services/reminder_service.py`.

Covers contract rules:
- A COCP safe custody reminder cannot be completed while the custody date is due.
- A pre-booked RTS reminder cannot be completed while the pre-booking exists.
- Bulk completion updates every eligible reminder and reports the rest.
- Only completed reminders can be bulk deleted.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from domain.number import NumberType
from domain.reminder import ReminderStatus, cocp_safe_custody_task_id, prebooked_rts_task_id
from repositories.document_store import Collection
from services import inventory_service, reminder_service, transition_service
from services.errors import ForbiddenActionError, ValidationError
from services.reminder_service import ReminderPopupTracker

from conftest import ADMIN, EMPLOYEE, NOW

TODAY = datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)
NEXT_MONTH = datetime(2025, 4, 10, 0, 0, tzinfo=timezone.utc)


def _reminder(ctx, reminder_id):
    return ctx.store.find(Collection.REMINDERS, reminder_id)


@pytest.fixture
def cocp_number_id(admin_ctx, make_draft) -> str:
    return inventory_service.add_number(
        admin_ctx,
        make_draft("9814567890", number_type=NumberType.COCP, account_name="Acme", safe_custody_date=TODAY),
    )


def test_add_reminder_requires_assignee(admin_ctx) -> None:
    with pytest.raises(ValidationError):
        reminder_service.add_reminder(admin_ctx, "Call dealer", [], NOW)

    with pytest.raises(ValidationError):
        reminder_service.add_reminder(admin_ctx, " ", ["Ravi"], NOW)


def test_mark_plain_reminder_done(admin_ctx) -> None:
    reminder_id = reminder_service.add_reminder(admin_ctx, "Call dealer", ["Ravi"], NOW)

    reminder_service.mark_reminder_done(admin_ctx, reminder_id, note="Called")

    reminder = _reminder(admin_ctx, reminder_id)
    assert reminder.status == ReminderStatus.DONE
    assert reminder.completion_date == NOW
    assert reminder.notes == "Called"


def test_cocp_reminder_blocked_until_date_moves(admin_ctx, cocp_number_id) -> None:
    """Verify completion waits until the safe custody date is in the future."""

    reminder_id = reminder_service.add_reminder(
        admin_ctx, "Safe custody due", ["Asha"], NOW, task_id=cocp_safe_custody_task_id(cocp_number_id)
    )

    with pytest.raises(ValidationError, match="has not been updated to a future date"):
        reminder_service.mark_reminder_done(admin_ctx, reminder_id)

    inventory_service.update_safe_custody_date(admin_ctx, cocp_number_id, NEXT_MONTH)
    reminder_service.mark_reminder_done(admin_ctx, reminder_id)

    assert _reminder(admin_ctx, reminder_id).status == ReminderStatus.DONE


def test_prebooked_reminder_blocked_until_sold(admin_ctx, make_draft) -> None:
    number_id = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
    prebooking_id = transition_service.mark_as_pre_booked(admin_ctx, [number_id]).applied[0]
    reminder = reminder_service.add_reminder(
        admin_ctx, "Sell pre-booked", ["Asha"], NOW, task_id=prebooked_rts_task_id(prebooking_id)
    )

    check = reminder_service.can_reminder_be_marked_done(admin_ctx.store, _reminder(admin_ctx, reminder), NOW, admin_ctx.timezone)

    assert not check.can_be_done
    assert check.message == "The Pre-Booked number 9876543210 has not been marked as sold yet."


def test_bulk_mark_done_reports_ineligible(admin_ctx, cocp_number_id, make_draft) -> None:
    """Verify three eligible reminders are completed and two blocked ones are reported."""

    plain = [reminder_service.add_reminder(admin_ctx, f"Task {i}", ["Ravi"], NOW) for i in range(3)]
    blocked_cocp = reminder_service.add_reminder(
        admin_ctx, "Safe custody due", ["Asha"], NOW, task_id=cocp_safe_custody_task_id(cocp_number_id)
    )
    number_id = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
    prebooking_id = transition_service.mark_as_pre_booked(admin_ctx, [number_id]).applied[0]
    blocked_prebooked = reminder_service.add_reminder(
        admin_ctx, "Sell pre-booked", ["Asha"], NOW, task_id=prebooked_rts_task_id(prebooking_id)
    )

    result = reminder_service.bulk_mark_reminders_done(admin_ctx, plain + [blocked_cocp, blocked_prebooked])

    assert sorted(result.updated) == sorted(plain)
    assert [rid for rid, _ in result.skipped] == [blocked_cocp, blocked_prebooked]
    assert all(_reminder(admin_ctx, rid).status == ReminderStatus.DONE for rid in plain)
    assert _reminder(admin_ctx, blocked_cocp).is_pending
    assert _reminder(admin_ctx, blocked_prebooked).is_pending


def test_bulk_delete_keeps_pending(admin_ctx) -> None:
    done_id = reminder_service.add_reminder(admin_ctx, "Done task", ["Ravi"], NOW)
    pending_id = reminder_service.add_reminder(admin_ctx, "Open task", ["Ravi"], NOW)
    reminder_service.mark_reminder_done(admin_ctx, done_id)

    result = reminder_service.bulk_delete_reminders(admin_ctx, [done_id, pending_id])

    assert result.updated == [done_id]
    assert result.skipped == [
        (pending_id, "Only completed reminders can be deleted.")
    ]
    assert _reminder(admin_ctx, done_id) is None
    assert _reminder(admin_ctx, pending_id) is not None


def test_bulk_operations_report_unknown_reminders(admin_ctx) -> None:
    """Verify unknown ids are reported and repeated ids are handled once."""

    reminder_id = reminder_service.add_reminder(admin_ctx, "Call dealer", ["Ravi"], NOW)

    result = reminder_service.bulk_mark_reminders_done(admin_ctx, [reminder_id, "missing", reminder_id])

    assert result.updated == [reminder_id]
    assert result.skipped == [("missing", "Reminder not found")]

    result = reminder_service.bulk_delete_reminders(admin_ctx, ["missing", reminder_id, reminder_id])

    assert result.updated == [reminder_id]
    assert result.skipped == [("missing", "Reminder not found")]
    assert _reminder(admin_ctx, reminder_id) is None


def test_delete_reminder_is_admin_only(admin_ctx, employee_ctx) -> None:
    reminder_id = reminder_service.add_reminder(admin_ctx, "Open task", ["Ravi"], NOW)

    with pytest.raises(ForbiddenActionError):
        reminder_service.delete_reminder(employee_ctx, reminder_id)

    reminder_service.delete_reminder(admin_ctx, reminder_id)
    assert _reminder(admin_ctx, reminder_id) is None


def test_assign_reminders(admin_ctx) -> None:
    reminder_id = reminder_service.add_reminder(admin_ctx, "Open task", ["Asha"], NOW)

    reminder_service.assign_reminders(admin_ctx, [reminder_id], ["Ravi", "Asha"])

    assert _reminder(admin_ctx, reminder_id).assigned_to == ("Ravi", "Asha")


def test_assign_reminders_counts_repeated_ids_once(admin_ctx) -> None:
    reminder_id = reminder_service.add_reminder(admin_ctx, "Open task", ["Asha"], NOW)

    reminder_service.assign_reminders(admin_ctx, [reminder_id, reminder_id], ["Ravi"])

    activity = next(a for a in admin_ctx.store.activities if a.action == "Assigned Reminders")
    assert activity.description == "Assigned 1 reminder(s) to Ravi."


def test_due_reminders_use_business_day(admin_ctx) -> None:
    """Verify a reminder due later today (business time) counts as due, tomorrow does not."""

    later_today = reminder_service.add_reminder(admin_ctx, "Later today", ["Ravi"], NOW + timedelta(hours=10))
    tomorrow = reminder_service.add_reminder(admin_ctx, "Tomorrow", ["Ravi"], NOW + timedelta(days=1))

    due = reminder_service.due_reminders(admin_ctx.store, EMPLOYEE, NOW, admin_ctx.timezone)

    assert [r.id for r in due] == [later_today]
    assert tomorrow not in [r.id for r in due]


def test_popup_tracker_shows_each_reminder_once(admin_ctx) -> None:
    reminder_service.add_reminder(admin_ctx, "Call dealer", ["Asha"], NOW)
    due = reminder_service.due_reminders(admin_ctx.store, ADMIN, NOW, admin_ctx.timezone)
    tracker = ReminderPopupTracker()

    assert len(tracker.take_new(ADMIN, due)) == 1
    assert tracker.take_new(ADMIN, due) == []
    assert len(tracker.take_new(EMPLOYEE, due)) == 1
