"""
Tests for `services/csv_import_service.py`.

Covers contract rules:
- Each row is rejected with the reason of the first failing check.
- Accepted rows are created in one batch.
- When the database rejects the batch no row is created and every accepted
  row is reported as failed.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from domain.number import NumberStatus, NumberType, UNASSIGNED
from services import csv_import_service, inventory_service
from services.csv_import_service import (
    REASON_ALREADY_EXISTS,
    REASON_DUPLICATE_IN_FILE,
    REASON_INVALID_MOBILE,
    REASON_INVALID_PURCHASE_PRICE,
    REASON_INVALID_RTS_DATE,
    REASON_INVALID_SAFE_CUSTODY,
    REASON_INVALID_STATUS,
    REASON_MISSING_ACCOUNT,
    REASON_MISSING_PARTNER,
    REASON_WRITE_REJECTED,
    import_numbers,
    parse_import_date,
    read_csv_rows,
    validate_row,
)

HEADER = "Mobile,Status,NumberType,PurchaseDate,PurchasePrice,AssignedTo,RTSDate,AccountName,SafeCustodyDate"


def _row(**overrides) -> dict[str, str]:
    row = {
        "Mobile": "9876543210",
        "Status": "RTS",
        "PurchaseDate": "05-01-2025",
        "PurchasePrice": "5000",
    }
    row.update(overrides)
    return row


def _validate(row, seen=None, existing=()):
    return validate_row(
        row,
        seen_mobiles=set() if seen is None else seen,
        is_duplicate=lambda mobile: mobile in existing,
        employees=["Asha", "Ravi"],
    )


class TestParseImportDate:
    def test_day_first_is_local_midnight(self) -> None:
        """Verify dd-mm-yyyy is read day first and stored as local midnight in UTC."""

        assert parse_import_date("05-01-2025") == datetime(2025, 1, 4, 18, 30, tzinfo=timezone.utc)

    def test_other_formats(self) -> None:
        assert parse_import_date("2025-01-05") == datetime(2025, 1, 4, 18, 30, tzinfo=timezone.utc)
        assert parse_import_date("01/05/2025") == datetime(2025, 1, 4, 18, 30, tzinfo=timezone.utc)

    def test_unparseable(self) -> None:
        assert parse_import_date("") is None
        assert parse_import_date("someday") is None


class TestValidateRow:
    def test_valid_row_builds_draft(self) -> None:
        draft, reason = _validate(_row(AssignedTo="Ravi"))

        assert reason is None
        assert draft.mobile == "9876543210"
        assert draft.assigned_to == "Ravi"
        assert draft.name == "Ravi"

    def test_unknown_assignee_falls_back_to_unassigned(self) -> None:
        draft, _ = _validate(_row(AssignedTo="Stranger"))

        assert draft.assigned_to == UNASSIGNED

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"Mobile": "98765"}, REASON_INVALID_MOBILE),
            ({"Status": "Ready"}, REASON_INVALID_STATUS),
            ({"OwnershipType": "Partnership"}, REASON_MISSING_PARTNER),
            ({"NumberType": "COCP", "AccountName": "Acme"}, REASON_INVALID_SAFE_CUSTODY),
            ({"NumberType": "COCP", "SafeCustodyDate": "01-04-2025"}, REASON_MISSING_ACCOUNT),
            ({"Status": "Non-RTS"}, REASON_INVALID_RTS_DATE),
            ({"PurchasePrice": ""}, REASON_INVALID_PURCHASE_PRICE),
            ({"PurchasePrice": "five"}, REASON_INVALID_PURCHASE_PRICE),
        ],
    )
    def test_rejection_reasons(self, overrides, reason) -> None:
        draft, found = _validate(_row(**overrides))

        assert draft is None
        assert found == reason

    def test_first_failing_check_wins(self) -> None:
        """Verify a row failing several checks reports the earliest one."""

        _, reason = _validate(_row(Status="", PurchasePrice=""))

        assert reason == REASON_INVALID_STATUS

    def test_duplicates_in_file_and_system(self) -> None:
        seen: set[str] = set()

        assert _validate(_row(), seen=seen)[1] is None
        assert _validate(_row(), seen=seen)[1] == REASON_DUPLICATE_IN_FILE
        assert _validate(_row(Mobile="9814567890"), existing={"9814567890"})[1] == REASON_ALREADY_EXISTS


class TestImportNumbers:
    CSV = "\n".join([
        HEADER,
        "9876543210,RTS,Prepaid,05-01-2025,5000,Ravi,,,",
        "9814567890,Non-RTS,Prepaid,05-01-2025,4500,,20-03-2025,,",
        "9000000001,RTS,COCP,05-01-2025,3000,,,Acme,01-04-2025",
        "9000000002,RTS,Prepaid,05-01-2025,,,,,",
    ])

    def test_import_creates_accepted_rows(self, admin_ctx, documents) -> None:
        """Verify accepted rows are created in one batch and rejected rows carry a row number."""

        result = import_numbers(admin_ctx, read_csv_rows(self.CSV))

        assert result.total_rows == 4
        assert result.created == ["9876543210", "9814567890", "9000000001"]
        assert [(f.row_number, f.reason) for f in result.failed] == [(5, REASON_INVALID_PURCHASE_PRICE)]
        assert documents.commits == 1

        numbers = {n.mobile: n for n in admin_ctx.store.numbers}
        assert numbers["9814567890"].status == NumberStatus.NON_RTS
        assert numbers["9000000001"].number_type == NumberType.COCP
        assert numbers["9876543210"].history.events[0].description == "Number imported from CSV file."
        assert sorted(n.sr_no for n in numbers.values()) == [1, 2, 3]
        assert any(a.action == "Imported Numbers" for a in admin_ctx.store.activities)

    def test_dry_run_writes_nothing(self, admin_ctx, documents) -> None:
        result = import_numbers(admin_ctx, read_csv_rows(self.CSV), dry_run=True)

        assert result.dry_run
        assert result.success_count == 3
        assert documents.commits == 0
        assert admin_ctx.store.numbers == ()

    def test_rejected_batch_fails_every_accepted_row(self, admin_ctx, documents) -> None:
        documents.reject_writes = True

        result = import_numbers(admin_ctx, read_csv_rows(self.CSV))

        assert result.created == []
        reasons = [f.reason for f in result.failed]
        assert reasons.count(REASON_WRITE_REJECTED) == 3
        assert reasons.count(REASON_INVALID_PURCHASE_PRICE) == 1
        assert admin_ctx.store.numbers == ()

    def test_existing_mobile_is_rejected(self, admin_ctx, make_draft) -> None:
        rows = read_csv_rows("\n".join([HEADER, "9876543210,RTS,Prepaid,05-01-2025,5000,,,,"]))
        inventory_service.add_number(admin_ctx, make_draft("9876543210"))
        result = csv_import_service.import_numbers(admin_ctx, rows)

        assert result.created == []
        assert result.failed[0].reason == REASON_ALREADY_EXISTS


def test_read_csv_rows_trims_headers_and_bom() -> None:
    rows = read_csv_rows("\ufeff Mobile , Status \n 9876543210 , RTS \n")

    assert rows == [{"Mobile": "9876543210", "Status": "RTS"}]
