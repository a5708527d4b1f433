"""
Tests for `domain/sale.py`.

Covers contract rules:
- SaleRecord.sale_date is required and must be a UTC timestamp.
- SaleRecord is immutable (frozen).
- Purchase price and profit come from the embedded number.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.lifecycle import LifecycleLog
from domain.number import NumberDraft, NumberStatus, UploadStatus
from domain.sale import SaleRecord

SOLD_AT = datetime(2025, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def _embedded_number():
    draft = NumberDraft(
        mobile="9876543210",
        status=NumberStatus.RTS,
        purchase_from="numberwale",
        purchase_price=Decimal("5000"),
        purchase_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    return draft.to_record(record_id=None, sr_no=1, created_by="uid-admin", history=LifecycleLog())


def _sale(**overrides) -> SaleRecord:
    fields = dict(
        id="s1",
        sr_no=1,
        mobile="9876543210",
        sum=9,
        sold_to="vipnumbershop",
        sale_price=Decimal("8000"),
        sale_date=SOLD_AT,
        upload_status=UploadStatus.PENDING,
        created_by="uid-admin",
        original_number_data=_embedded_number(),
    )
    fields.update(overrides)
    return SaleRecord(**fields)


def test_sale_record_sale_date_must_be_utc() -> None:
    """Verify sale_date enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        _sale(sale_date=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _sale(sale_date=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=2))))


def test_sale_record_is_immutable() -> None:
    """Verify SaleRecord cannot be mutated after creation (frozen entity)."""

    sale = _sale()

    with pytest.raises(FrozenInstanceError):
        sale.sold_to = "someone else"  # type: ignore[misc]


def test_profit_uses_embedded_purchase_price() -> None:
    sale = _sale()

    assert sale.purchase_price == Decimal("5000")
    assert sale.profit == Decimal("3000")


def test_sale_without_embedded_number_has_zero_cost() -> None:
    sale = _sale(original_number_data=None)

    assert sale.purchase_price == Decimal("0")
    assert len(sale.history) == 0
