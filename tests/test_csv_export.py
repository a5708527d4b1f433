"""
Tests for `services/csv_export_service.py`.

Covers:
- CSV injection characters are stripped from text cells.
- The sales report starts with its summary rows and lists sales newest first.
- Exports are limited to what the caller can see and are logged as activities.
"""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from services import inventory_service, ledger_service, transition_service
from services.csv_export_service import (
    NUMBER_EXPORT_HEADER,
    SALES_REPORT_HEADER,
    export_numbers,
    export_sales_report,
    sanitize_csv_field,
)
from services.csv_import_service import read_csv_rows

from conftest import EMPLOYEE


def _rows(content: str) -> list[list[str]]:
    return list(csv.reader(StringIO(content)))


class TestSanitizeCsvField:
    def test_strips_leading_formula_characters(self) -> None:
        assert sanitize_csv_field("=HYPERLINK(\"x\")", "sold_to") == 'HYPERLINK("x")'
        assert sanitize_csv_field("+-@cmd", "notes") == "cmd"

    def test_leaves_plain_text(self) -> None:
        assert sanitize_csv_field("Ravi Traders") == "Ravi Traders"
        assert sanitize_csv_field(None) == ""

    def test_logs_when_stripping(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            sanitize_csv_field("=1+1", "sold_to")

        assert "CSV injection character(s) stripped from field 'sold_to'" in caplog.text


class TestSalesReport:
    def test_report_layout(self, admin_ctx, make_draft) -> None:
        """Verify the summary block, the header row and newest-first ordering."""

        first = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
        second = inventory_service.add_number(admin_ctx, make_draft("9814567890"))
        transition_service.sell_number(
            admin_ctx, first, "numberatm", Decimal("8000"), datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
        )
        transition_service.sell_number(
            admin_ctx, second, "numberatm", Decimal("9500"), datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc)
        )

        export = export_sales_report(admin_ctx, "numberatm")

        rows = _rows(export.content)
        assert rows[0] == ["Sales Report For", "numberatm"]
        assert rows[2] == ["Total Billed", "17500"]
        assert rows[3] == ["Total Purchase Amount", "10000"]
        assert rows[4] == ["Profit / Loss", "7500"]
        assert rows[6] == SALES_REPORT_HEADER
        assert [r[1] for r in rows[7:]] == ["9814567890", "9876543210"]
        assert rows[7][8] == "05-03-2025"
        assert export.filename == "sales_report_numberatm.csv"
        assert export.record_count == 2
        assert any(a.action == "Exported Sales Report" for a in admin_ctx.store.activities)

    def test_no_matching_sales(self, admin_ctx) -> None:
        with pytest.raises(ValueError):
            export_sales_report(admin_ctx, "nobody")


class TestNumbersExport:
    def test_uses_import_column_names(self, admin_ctx, make_draft) -> None:
        inventory_service.add_number(admin_ctx, make_draft("9876543210", notes="=SUM(A1)"))

        export = export_numbers(admin_ctx, list(admin_ctx.store.numbers))

        rows = read_csv_rows(export.content)
        assert list(rows[0]) == NUMBER_EXPORT_HEADER
        assert rows[0]["Mobile"] == "9876543210"
        assert rows[0]["PurchaseDate"] == "05-01-2025"
        assert rows[0]["PurchasePrice"] == "5000"
        assert rows[0]["Notes"] == "SUM(A1)"

    def test_postpaid_export(self, admin_ctx, make_draft) -> None:
        from domain.number import NumberType

        inventory_service.add_number(
            admin_ctx,
            make_draft(
                "9876543210",
                number_type=NumberType.POSTPAID,
                bill_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
            ),
        )

        export = export_numbers(admin_ctx, list(admin_ctx.store.numbers), postpaid=True)

        rows = _rows(export.content)
        assert rows[1] == ["1", "9876543210", "9", "RTS", "N/A", "2025-03-01", "No"]
        assert export.filename == "postpaid_numbers_export.csv"

    def test_empty_selection(self, admin_ctx) -> None:
        with pytest.raises(ValueError, match="Please select at least one number to export."):
            export_numbers(admin_ctx, [])


def test_payments_do_not_change_report_totals(admin_ctx, make_draft) -> None:
    number_id = inventory_service.add_number(admin_ctx, make_draft("9876543210"))
    transition_service.sell_number(
        admin_ctx, number_id, "numberatm", Decimal("8000"), datetime(2025, 3, 1, tzinfo=timezone.utc)
    )
    ledger_service.add_payment(admin_ctx, "numberatm", Decimal("3000"), datetime(2025, 3, 2, tzinfo=timezone.utc))

    rows = _rows(export_sales_report(admin_ctx).content)

    assert rows[0] == ["Sales Report For", "All Vendors"]
    assert rows[2] == ["Total Billed", "8000"]


def test_employee_export_only_covers_their_sales(admin_ctx, employee_ctx, make_draft) -> None:
    mine = inventory_service.add_number(admin_ctx, make_draft("9876543210", assigned_to=EMPLOYEE.display_name))
    other = inventory_service.add_number(admin_ctx, make_draft("9814567890"))
    for number_id in (mine, other):
        transition_service.sell_number(
            admin_ctx, number_id, "numberatm", Decimal("8000"), datetime(2025, 3, 1, tzinfo=timezone.utc)
        )

    export = export_sales_report(employee_ctx)

    assert export.record_count == 1
