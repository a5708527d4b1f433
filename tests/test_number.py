"""
Tests for `domain/number.py` and `domain/digits.py`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from domain.digits import digit_sum, digital_root, is_valid_mobile, max_digit_repetition
from domain.lifecycle import LifecycleLog
from domain.number import NumberDraft, NumberStatus, NumberType, OwnershipType, PdBill

PURCHASED = datetime(2025, 1, 5, tzinfo=timezone.utc)


def _draft(**overrides) -> NumberDraft:
    fields = dict(
        mobile="9876543210",
        status=NumberStatus.RTS,
        purchase_from="numberwale",
        purchase_price=Decimal("5000"),
        purchase_date=PURCHASED,
    )
    fields.update(overrides)
    return NumberDraft(**fields)


class TestDigits:
    def test_digit_sum_and_root(self) -> None:
        """Verify the plain digit sum and the digital root."""

        assert digit_sum("9876543210") == 45
        assert digital_root("9876543210") == 9
        assert digital_root("1000000000") == 1

    def test_max_digit_repetition(self) -> None:
        assert max_digit_repetition("9999912345") == 5
        assert max_digit_repetition("9876543210") == 1

    def test_is_valid_mobile(self) -> None:
        assert is_valid_mobile("9876543210")
        assert not is_valid_mobile("987654321")
        assert not is_valid_mobile("98765432ab")
        assert not is_valid_mobile(None)


class TestNumberDraft:
    def test_valid_draft_has_no_problems(self) -> None:
        assert _draft().problems() == []

    def test_non_rts_requires_rts_date(self) -> None:
        """Verify a Non-RTS draft without an RTS date is rejected."""

        assert "RTS date is required for Non-RTS numbers." in _draft(status=NumberStatus.NON_RTS).problems()

    def test_cocp_requires_account_and_safe_custody(self) -> None:
        problems = _draft(number_type=NumberType.COCP).problems()

        assert "Safe Custody Date is required for COCP numbers." in problems
        assert "Account Name is required for COCP numbers." in problems

    def test_partnership_requires_partner(self) -> None:
        problems = _draft(ownership_type=OwnershipType.PARTNERSHIP).problems()

        assert problems == ["Partner Name is required for Partnership ownership."]

    def test_normalized_drops_fields_of_other_types(self) -> None:
        """Verify type-specific fields are cleared when they do not apply."""

        draft = _draft(
            rts_date=PURCHASED,
            account_name="Acme",
            safe_custody_date=PURCHASED,
            bill_date=PURCHASED,
            pd_bill=PdBill.YES,
            partner_name="Karan",
        ).normalized()

        assert draft.rts_date is None
        assert draft.account_name is None
        assert draft.safe_custody_date is None
        assert draft.bill_date is None
        assert draft.pd_bill is None
        assert draft.partner_name is None

    def test_postpaid_defaults_pd_bill_to_no(self) -> None:
        draft = _draft(number_type=NumberType.POSTPAID, bill_date=PURCHASED).normalized()

        assert draft.pd_bill == PdBill.NO

    def test_to_record_derives_sum(self) -> None:
        """Verify the stored sum is the digital root of the mobile."""

        record = _draft().to_record(record_id="n1", sr_no=1, created_by="uid-admin", history=LifecycleLog())

        assert record.sum == 9
        assert record.snapshot().id is None
