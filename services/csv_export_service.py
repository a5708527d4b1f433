"""
CSV export service for sales reports and number lists.

Security:
- CSV Injection Prevention: every text cell is sanitized so a spreadsheet
  never evaluates it as a formula
- Security Logging: logs when dangerous characters are stripped

Exports are generated from the same filtered views the list endpoints use, so
a download always matches what the caller sees (role filtering included).
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from io import StringIO
from typing import Iterable, List, Optional, Sequence

from domain.activity import format_amount
from domain.number import NumberRecord
from domain.sale import SaleRecord
from domain.time import DEFAULT_BUSINESS_TIMEZONE, business_date
from services.context import OperationContext
from services.list_views import ListQuery, filtered_sales, summarize_sales
from services.query_pipeline import ALL

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

SALES_REPORT_HEADER = [
    "Sr.No",
    "Mobile",
    "Sum",
    "Purchase From",
    "Purchase Price",
    "Purchase Date",
    "Sold To",
    "Sale Price",
    "Sale Date",
]

POSTPAID_EXPORT_HEADER = ["Sr.No", "Mobile", "Sum", "Status", "RTS Date", "Bill Date", "PD Bill"]

# Same column names the importer reads, so an export can be edited and re-imported.
NUMBER_EXPORT_HEADER = [
    "Sr.No",
    "Mobile",
    "Sum",
    "Status",
    "UploadStatus",
    "NumberType",
    "OwnershipType",
    "PartnerName",
    "SafeCustodyDate",
    "AccountName",
    "BillDate",
    "PDBill",
    "RTSDate",
    "PurchaseDate",
    "PurchasePrice",
    "SalePrice",
    "AssignedTo",
    "PurchaseFrom",
    "CurrentLocation",
    "LocationType",
    "Notes",
]


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    Args:
        value: Field value to sanitize
        field_name: Name of the field being sanitized (for logging)

    Returns:
        Sanitized string safe for CSV export

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "sold_to")
        # Returns "HYPERLINK(...)" and logs warning about stripped "=" character

        sanitize_csv_field("Ravi Traders", "sold_to")
        # Returns "Ravi Traders" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def _date_cell(value: Optional[datetime], fmt: str, tz_name: str) -> str:
    if value is None:
        return NOT_AVAILABLE
    return business_date(value, tz_name).strftime(fmt)


def _render(rows: Iterable[Sequence[object]]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    return output.getvalue()


@dataclass(frozen=True, slots=True)
class CsvExport:
    """Rendered CSV plus the suggested download name."""

    filename: str
    content: str
    record_count: int


# ---------------------------------------------------------------------------
# Sales report
# ---------------------------------------------------------------------------

def generate_sales_report_csv(
    sales: Sequence[SaleRecord],
    total_billed: Decimal,
    total_purchase: Decimal,
    sold_to: str = ALL,
    tz_name: str = DEFAULT_BUSINESS_TIMEZONE,
) -> str:
    """
    Render a sales report: summary rows, a blank spacer, the records header
    and one row per sale, newest sale first.

    Args:
        sales: Sales to list (already filtered)
        total_billed: Sum of sale prices of `sales`
        total_purchase: Sum of original purchase prices of `sales`
        sold_to: Buyer filter the report was generated for ("all" for every buyer)
        tz_name: Time zone used to print calendar dates

    Returns:
        CSV content as a string
    """
    label = "All Vendors" if sold_to in ("", ALL) else sanitize_csv_field(sold_to, "sold_to")

    rows: List[List[object]] = [
        ["Sales Report For", label],
        [""],
        ["Total Billed", format_amount(total_billed)],
        ["Total Purchase Amount", format_amount(total_purchase)],
        ["Profit / Loss", format_amount(total_billed - total_purchase)],
        [""],
        SALES_REPORT_HEADER,
    ]

    for sale in sorted(sales, key=lambda s: s.sale_date, reverse=True):
        original = sale.original_number_data
        rows.append([
            sale.sr_no,
            sale.mobile,
            sale.sum,
            sanitize_csv_field(original.purchase_from, "purchase_from") if original else NOT_AVAILABLE,
            format_amount(original.purchase_price) if original else "0",
            _date_cell(original.purchase_date if original else None, "%d-%m-%Y", tz_name),
            sanitize_csv_field(sale.sold_to, "sold_to"),
            format_amount(sale.sale_price),
            _date_cell(sale.sale_date, "%d-%m-%Y", tz_name),
        ])

    return _render(rows)


def export_sales_report(ctx: OperationContext, sold_to: str = ALL, search: str = "") -> CsvExport:
    """
    Build the sales report for the caller's visible sales and log the export.

    Raises:
        ValueError: If no sale matches the filter
    """
    matching = filtered_sales(ctx.store, ctx.actor, ListQuery(search=search, page_size=None), sold_to)
    if not matching:
        raise ValueError("There are no sales records matching the current filter.")

    summary = summarize_sales(matching, ctx.store.payments, sold_to)
    content = generate_sales_report_csv(
        matching, summary.total_billed, summary.total_purchase, sold_to, ctx.timezone,
    )

    ctx.record_activity(
        "Exported Sales Report",
        f"Exported {len(matching)} sales records for filter: {sold_to or ALL}.",
    )
    logger.info("Sales report exported", extra={"sold_to": sold_to, "records": len(matching)})
    return CsvExport(filename=f"sales_report_{sold_to or ALL}.csv", content=content, record_count=len(matching))


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def generate_postpaid_csv(numbers: Sequence[NumberRecord], tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> str:
    rows: List[List[object]] = [POSTPAID_EXPORT_HEADER]
    for number in numbers:
        rows.append([
            number.sr_no,
            number.mobile,
            number.sum,
            number.status.value,
            _date_cell(number.rts_date, "%Y-%m-%d", tz_name),
            _date_cell(number.bill_date, "%Y-%m-%d", tz_name),
            number.pd_bill.value if number.pd_bill else "",
        ])
    return _render(rows)


def generate_numbers_csv(numbers: Sequence[NumberRecord], tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> str:
    """Full inventory rows using the import column names; dates are dd-mm-yyyy."""

    def _day(value: Optional[datetime]) -> str:
        return "" if value is None else business_date(value, tz_name).strftime("%d-%m-%Y")

    rows: List[List[object]] = [NUMBER_EXPORT_HEADER]
    for n in numbers:
        rows.append([
            n.sr_no,
            n.mobile,
            n.sum,
            n.status.value,
            n.upload_status.value,
            n.number_type.value,
            n.ownership_type.value,
            sanitize_csv_field(n.partner_name, "partner_name"),
            _day(n.safe_custody_date),
            sanitize_csv_field(n.account_name, "account_name"),
            _day(n.bill_date),
            n.pd_bill.value if n.pd_bill else "",
            _day(n.rts_date),
            _day(n.purchase_date),
            format_amount(n.purchase_price),
            format_amount(n.sale_price),
            sanitize_csv_field(n.assigned_to, "assigned_to"),
            sanitize_csv_field(n.purchase_from, "purchase_from"),
            sanitize_csv_field(n.current_location, "current_location"),
            n.location_type.value,
            sanitize_csv_field(n.notes, "notes"),
        ])
    return _render(rows)


def export_numbers(
    ctx: OperationContext,
    numbers: Sequence[NumberRecord],
    *,
    postpaid: bool = False,
) -> CsvExport:
    """
    Export a selection of numbers (the caller passes the current view's rows).

    Raises:
        ValueError: If the selection is empty
    """
    if not numbers:
        if postpaid:
            raise ValueError("Please select at least one Postpaid number to export.")
        raise ValueError("Please select at least one number to export.")

    if postpaid:
        content = generate_postpaid_csv(numbers, ctx.timezone)
        filename = "postpaid_numbers_export.csv"
        description = f"Exported {len(numbers)} selected Postpaid number(s) to CSV."
    else:
        content = generate_numbers_csv(numbers, ctx.timezone)
        filename = "numbers_export.csv"
        description = f"Exported {len(numbers)} number(s) to CSV."

    ctx.record_activity("Exported Data", description)
    return CsvExport(filename=filename, content=content, record_count=len(numbers))


__all__ = [
    "CsvExport",
    "NUMBER_EXPORT_HEADER",
    "POSTPAID_EXPORT_HEADER",
    "SALES_REPORT_HEADER",
    "export_numbers",
    "export_sales_report",
    "generate_numbers_csv",
    "generate_postpaid_csv",
    "generate_sales_report_csv",
    "sanitize_csv_field",
]
