"""
Tests for `services/ledger_service.py`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from services import inventory_service, ledger_service
from services.errors import DuplicateNumberError, ForbiddenActionError, ValidationError

from conftest import EMPLOYEE


def test_dealer_purchase_blocks_known_mobiles(admin_ctx, make_draft) -> None:
    """Verify a dealer purchase counts toward mobile uniqueness both ways."""

    purchase_id = ledger_service.add_dealer_purchase(admin_ctx, "9876543210", "Karan Telecom", Decimal("4000"))

    purchase = admin_ctx.store.dealer_purchases[0]
    assert purchase.id == purchase_id
    assert purchase.sum == 9

    with pytest.raises(DuplicateNumberError):
        inventory_service.add_number(admin_ctx, make_draft("9876543210"))

    inventory_service.add_number(admin_ctx, make_draft("9814567890"))
    with pytest.raises(DuplicateNumberError):
        ledger_service.add_dealer_purchase(admin_ctx, "9814567890", "Karan Telecom", Decimal("4000"))


def test_delete_dealer_purchases(admin_ctx) -> None:
    purchase_id = ledger_service.add_dealer_purchase(admin_ctx, "9876543210", "Karan Telecom", Decimal("4000"))

    ledger_service.delete_dealer_purchases(admin_ctx, [purchase_id])

    assert admin_ctx.store.dealer_purchases == ()
    assert {a.action for a in admin_ctx.store.activities} == {"Added Dealer Purchase", "Deleted Dealer Purchases"}


def test_payment_must_be_positive(admin_ctx) -> None:
    with pytest.raises(ValidationError):
        ledger_service.add_payment(admin_ctx, "numberatm", Decimal("0"), datetime(2025, 3, 1, tzinfo=timezone.utc))


def test_add_payment_records_activity(admin_ctx) -> None:
    ledger_service.add_payment(admin_ctx, "numberatm", Decimal("2500"), datetime(2025, 3, 1, tzinfo=timezone.utc), "UPI")

    assert admin_ctx.store.payments[0].notes == "UPI"
    assert admin_ctx.store.activities[0].description == "Received payment of ₹2500 from numberatm."


def test_delete_activities_is_admin_only(admin_ctx, employee_ctx) -> None:
    ledger_service.add_payment(admin_ctx, "numberatm", Decimal("2500"), datetime(2025, 3, 1, tzinfo=timezone.utc))
    activity_id = admin_ctx.store.activities[0].id

    with pytest.raises(ForbiddenActionError):
        ledger_service.delete_activities(employee_ctx, [activity_id])

    ledger_service.delete_activities(admin_ctx, [activity_id])
    assert [a.action for a in admin_ctx.store.activities] == ["Deleted Activities"]


def test_delete_user(admin_ctx) -> None:
    with pytest.raises(ForbiddenActionError):
        ledger_service.delete_user(admin_ctx, admin_ctx.actor.uid)

    ledger_service.delete_user(admin_ctx, EMPLOYEE.uid)

    assert admin_ctx.store.user_by_uid(EMPLOYEE.uid) is None
