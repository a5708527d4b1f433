"""
Tests for `domain/history.py` and the global history view.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from domain.history import HistoryStage, build_global_history, lifecycle_for
from domain.lifecycle import LifecycleAction, LifecycleLog
from domain.number import NumberDraft, NumberStatus
from domain.sale import SaleRecord
from services import inventory_service, ledger_service, transition_service
from services.list_views import ListQuery, history_view

T0 = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def _number(number_id: str, mobile: str):
    draft = NumberDraft(
        mobile=mobile,
        status=NumberStatus.RTS,
        purchase_from="numberwale",
        purchase_price=Decimal("5000"),
        purchase_date=T0,
    )
    history = LifecycleLog().append(LifecycleAction.CREATED, "Added.", "Asha", T0)
    return draft.to_record(record_id=number_id, sr_no=1, created_by="uid-admin", history=history)


def test_conflicting_locations_are_flagged() -> None:
    """Verify a mobile in inventory and sales at once is kept on both rows and flagged."""

    number = _number("n1", "9876543210")
    sale = SaleRecord(
        id="s1", sr_no=1, mobile="9876543210", sum=9, sold_to="numberatm",
        sale_price=Decimal("8000"), sale_date=T0, upload_status=number.upload_status,
        created_by="uid-admin", original_number_data=number.snapshot(),
    )
    clean = _number("n2", "9814567890")

    records = build_global_history([number, clean], [sale], [], [])

    by_id = {r.id: r for r in records}
    assert by_id["numbers-n1"].location_conflict
    assert by_id["sales-s1"].location_conflict
    assert not by_id["numbers-n2"].location_conflict


def test_lifecycle_merges_events_newest_first() -> None:
    number = _number("n1", "9876543210")
    later = replace(number, history=number.history.append(LifecycleAction.ASSIGNED, "Assigned.", "Asha", T0))

    events = lifecycle_for(build_global_history([number, later], [], [], []), "9876543210")

    assert [e.action for e in events] == ["Assigned", "Created"]


def test_history_view_covers_every_stage(admin_ctx, make_draft) -> None:
    """Verify one row per stage, including the deleted archive and dealer purchases."""

    sold = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
    booked = inventory_service.add_number(admin_ctx, make_draft("9814567890"))
    removed = inventory_service.add_number(admin_ctx, make_draft("9000000001"))
    inventory_service.add_number(admin_ctx, make_draft("9000000002"))
    transition_service.sell_number(admin_ctx, sold, "numberatm", Decimal("8000"), T0)
    transition_service.mark_as_pre_booked(admin_ctx, [booked])
    transition_service.delete_numbers(admin_ctx, [removed], "Lost SIM")
    ledger_service.add_dealer_purchase(admin_ctx, "9000000003", "Karan Telecom", Decimal("4000"))

    page = history_view(admin_ctx.store, ListQuery(page_size=None))

    stages = {r.mobile: r.current_stage for r in page.items}
    assert stages == {
        "9876543210": HistoryStage.SOLD,
        "9814567890": HistoryStage.PRE_BOOKED,
        "9000000001": HistoryStage.DELETED,
        "9000000002": HistoryStage.IN_INVENTORY,
        "9000000003": HistoryStage.DEALER_PURCHASE,
    }
    assert not any(r.location_conflict for r in page.items)

    sold_only = history_view(admin_ctx.store, ListQuery(page_size=None), stage="Sold")
    assert [r.mobile for r in sold_only.items] == ["9876543210"]
