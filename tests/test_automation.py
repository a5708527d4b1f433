"""
Tests for `services/automation.py`.

Covers:
- Due Non-RTS numbers are promoted by the System identity, once.
- System reminders are created once per task id and assigned to every admin.
- Done reminders past the retention window are swept.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from domain.lifecycle import SYSTEM_ACTOR
from domain.number import NumberStatus, NumberType
from domain.reminder import cocp_safe_custody_task_id, prebooked_rts_task_id
from repositories.document_store import Collection
from services import automation, inventory_service, reminder_service, transition_service
from services.context import system_context

from conftest import NOW

# 2025-03-10 in Asia/Kolkata (still 2025-03-09 in UTC)
TODAY_LOCAL = datetime(2025, 3, 9, 18, 30, tzinfo=timezone.utc)
TOMORROW_LOCAL = TODAY_LOCAL + timedelta(days=1)


def _system(store, clock):
    return system_context(store, clock=clock)


def test_promotes_only_due_numbers(store, admin_ctx, clock, make_draft) -> None:
    """Verify a number due today (business day) is promoted and one due tomorrow is not."""

    due = inventory_service.add_number(admin_ctx, make_draft("9876543210", status=NumberStatus.NON_RTS, rts_date=TODAY_LOCAL))
    later = inventory_service.add_number(admin_ctx, make_draft("9814567890", status=NumberStatus.NON_RTS, rts_date=TOMORROW_LOCAL))

    promoted = automation.promote_due_rts_numbers(_system(store, clock))

    assert promoted == [due]
    number = store.find(Collection.NUMBERS, due)
    assert number.status == NumberStatus.RTS
    assert number.rts_date is None
    event = number.history.newest_first()[0]
    assert event.performed_by == SYSTEM_ACTOR
    assert event.description == "Number automatically became RTS as per schedule."
    assert store.find(Collection.NUMBERS, later).status == NumberStatus.NON_RTS
    assert due in store.recently_auto_rts_ids(NOW)

    assert automation.promote_due_rts_numbers(_system(store, clock)) == []


def test_system_reminders_created_once(store, admin_ctx, clock, make_draft) -> None:
    cocp = inventory_service.add_number(
        admin_ctx,
        make_draft("9000000001", number_type=NumberType.COCP, account_name="Acme", safe_custody_date=TODAY_LOCAL),
    )
    rts = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
    prebooking_id = transition_service.mark_as_pre_booked(admin_ctx, [rts]).applied[0]

    created = automation.create_system_reminders(_system(store, clock))

    assert sorted(created) == sorted([cocp_safe_custody_task_id(cocp), prebooked_rts_task_id(prebooking_id)])
    assert all(r.assigned_to == ("Asha",) for r in store.reminders)
    assert automation.create_system_reminders(_system(store, clock)) == []
    assert len(store.reminders) == 2


def test_no_admin_means_no_reminders(store, documents, admin_ctx, clock, make_draft) -> None:
    inventory_service.add_number(
        admin_ctx,
        make_draft("9000000001", number_type=NumberType.COCP, account_name="Acme", safe_custody_date=TODAY_LOCAL),
    )
    documents.collections[Collection.USERS].pop("uid-admin")
    store.sync([Collection.USERS])

    assert automation.create_system_reminders(_system(store, clock)) == []


def test_sweep_deletes_old_done_reminders(store, admin_ctx, clock) -> None:
    old = reminder_service.add_reminder(admin_ctx, "Old", ["Ravi"], NOW)
    reminder_service.mark_reminder_done(admin_ctx, old)
    pending = reminder_service.add_reminder(admin_ctx, "Open", ["Ravi"], NOW)

    clock.advance(days=8)
    swept = automation.sweep_completed_reminders(_system(store, clock), retention_days=7)

    assert swept == [old]
    assert [r.id for r in store.reminders] == [pending]


def test_run_scheduled_checks_reports_each_step(store, admin_ctx, clock, make_draft) -> None:
    inventory_service.add_number(admin_ctx, make_draft("9876543210", status=NumberStatus.NON_RTS, rts_date=TODAY_LOCAL))

    report = automation.run_scheduled_checks(store, clock=clock)

    assert len(report.promoted_rts) == 1
    assert report.reminders_created == []
    assert report.reminders_swept == []
