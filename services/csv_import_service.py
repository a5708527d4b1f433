"""
CSV import of numbers into inventory.

Every row is validated on its own and either turned into a new NumberRecord
or rejected with a reason. Checks run in a fixed order and the first failing
check is the reason reported for the row:

1. mobile present and exactly 10 digits
2. mobile not repeated earlier in the same file
3. mobile not already in the system
4. Status is "RTS" or "Non-RTS"
5. PartnerName present for Partnership ownership
6. SafeCustodyDate valid for COCP
7. AccountName present for COCP
8. BillDate valid for Postpaid
9. RTSDate valid for Non-RTS
10. PurchaseDate valid
11. PurchasePrice a number

Unknown values of the other enumerated columns fall back to their defaults.
All accepted rows are created in a single batch: if the database rejects it,
no row is created and every accepted row is reported as failed.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Callable, Iterable, List, Mapping, Optional

from domain.digits import is_valid_mobile
from domain.lifecycle import LifecycleAction, LifecycleLog
from domain.number import (
    LocationType,
    NumberDraft,
    NumberRecord,
    NumberStatus,
    NumberType,
    OwnershipType,
    PdBill,
    UNASSIGNED,
    UploadStatus,
)
from domain.time import DEFAULT_BUSINESS_TIMEZONE, start_of_business_day
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import number_to_document
from services.context import OperationContext
from services.errors import PermissionDeniedError

logger = logging.getLogger(__name__)

# Tried in order; the first format that parses wins.
DATE_FORMATS: tuple[str, ...] = (
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%m/%d/%y",
)

REASON_INVALID_MOBILE = "Invalid or missing mobile number (must be 10 digits)"
REASON_DUPLICATE_IN_FILE = "Duplicate mobile number found within the import file"
REASON_ALREADY_EXISTS = "Mobile number already exists in the system"
REASON_INVALID_STATUS = 'Status is a required field. Must be "RTS" or "Non-RTS"'
REASON_MISSING_PARTNER = "PartnerName is required for Partnership ownership"
REASON_INVALID_SAFE_CUSTODY = "Invalid or missing SafeCustodyDate (required for COCP)"
REASON_MISSING_ACCOUNT = "Missing AccountName (required for COCP)"
REASON_INVALID_BILL_DATE = "Invalid or missing BillDate (required for Postpaid)"
REASON_INVALID_RTS_DATE = "Invalid or missing RTSDate (required for Non-RTS status)"
REASON_INVALID_PURCHASE_DATE = "Invalid or missing PurchaseDate"
REASON_INVALID_PURCHASE_PRICE = "Invalid or missing PurchasePrice"
REASON_WRITE_REJECTED = "Database permission denied"


@dataclass(frozen=True, slots=True)
class RejectedRow:
    row_number: int
    record: Mapping[str, str]
    reason: str


@dataclass(frozen=True, slots=True)
class AcceptedRow:
    row_number: int
    draft: NumberDraft


@dataclass
class ImportResult:
    """Results from a CSV import."""

    total_rows: int
    created: List[str] = field(default_factory=list)
    failed: List[RejectedRow] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success_count(self) -> int:
        return len(self.created)


def read_csv_rows(text: str) -> list[dict[str, str]]:
    """Parse CSV text into dictionaries keyed by the (trimmed) header names."""

    reader = csv.DictReader(StringIO(text.lstrip("\ufeff")))
    rows: list[dict[str, str]] = []
    for raw in reader:
        rows.append({
            (key or "").strip(): (value or "").strip() if isinstance(value, str) else ""
            for key, value in raw.items()
        })
    return rows


def parse_import_date(raw: Optional[str], tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> Optional[datetime]:
    """
    Parse a calendar date from a CSV cell into local midnight (as UTC).

    Returns None for empty or unparseable values.
    """

    text = (raw or "").strip()
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return start_of_business_day(parsed.date(), tz_name)
    return None


def _amount(raw: Optional[str]) -> Optional[Decimal]:
    text = (raw or "").replace(",", "").strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _choice(enum_cls, raw: Optional[str], default):
    for member in enum_cls:
        if member.value == (raw or "").strip():
            return member
    return default


def validate_row(
    row: Mapping[str, str],
    *,
    seen_mobiles: set[str],
    is_duplicate: Callable[[str], bool],
    employees: Iterable[str],
    tz_name: str = DEFAULT_BUSINESS_TIMEZONE,
) -> tuple[Optional[NumberDraft], Optional[str]]:
    """
    Validate one CSV row and build its draft.

    Args:
        row: CSV row dictionary
        seen_mobiles: Mobiles accepted earlier in the same file (updated on success)
        is_duplicate: Whether a mobile already exists in the system
        employees: Display names rows may be assigned to
        tz_name: Business time zone for calendar dates

    Returns:
        Tuple of (draft, None) when valid, or (None, reason)
    """
    mobile = (row.get("Mobile") or "").strip()
    if not is_valid_mobile(mobile):
        return None, REASON_INVALID_MOBILE
    if mobile in seen_mobiles:
        return None, REASON_DUPLICATE_IN_FILE
    if is_duplicate(mobile):
        return None, REASON_ALREADY_EXISTS

    raw_status = (row.get("Status") or "").strip()
    if raw_status not in (NumberStatus.RTS.value, NumberStatus.NON_RTS.value):
        return None, REASON_INVALID_STATUS
    status = NumberStatus(raw_status)

    upload_status = _choice(UploadStatus, row.get("UploadStatus"), UploadStatus.PENDING)
    number_type = _choice(NumberType, row.get("NumberType"), NumberType.PREPAID)
    ownership_type = _choice(OwnershipType, row.get("OwnershipType"), OwnershipType.INDIVIDUAL)
    partner_name = (row.get("PartnerName") or "").strip()

    if ownership_type == OwnershipType.PARTNERSHIP and not partner_name:
        return None, REASON_MISSING_PARTNER

    safe_custody_date = parse_import_date(row.get("SafeCustodyDate"), tz_name)
    if number_type == NumberType.COCP and safe_custody_date is None:
        return None, REASON_INVALID_SAFE_CUSTODY

    account_name = (row.get("AccountName") or "").strip()
    if number_type == NumberType.COCP and not account_name:
        return None, REASON_MISSING_ACCOUNT

    bill_date = parse_import_date(row.get("BillDate"), tz_name)
    if number_type == NumberType.POSTPAID and bill_date is None:
        return None, REASON_INVALID_BILL_DATE

    rts_date = None
    if status == NumberStatus.NON_RTS:
        rts_date = parse_import_date(row.get("RTSDate"), tz_name)
        if rts_date is None:
            return None, REASON_INVALID_RTS_DATE

    purchase_date = parse_import_date(row.get("PurchaseDate"), tz_name)
    if purchase_date is None:
        return None, REASON_INVALID_PURCHASE_DATE

    purchase_price = _amount(row.get("PurchasePrice"))
    if purchase_price is None:
        return None, REASON_INVALID_PURCHASE_PRICE

    assigned_to = (row.get("AssignedTo") or "").strip()
    if assigned_to not in set(employees):
        assigned_to = UNASSIGNED

    draft = NumberDraft(
        mobile=mobile,
        status=status,
        purchase_from=(row.get("PurchaseFrom") or "").strip() or "N/A",
        purchase_price=purchase_price,
        purchase_date=purchase_date,
        upload_status=upload_status,
        number_type=number_type,
        sale_price=_amount(row.get("SalePrice")) or Decimal("0"),
        rts_date=rts_date,
        name=assigned_to,
        current_location=(row.get("CurrentLocation") or "").strip() or "N/A",
        location_type=_choice(LocationType, row.get("LocationType"), LocationType.STORE),
        assigned_to=assigned_to,
        notes=(row.get("Notes") or "").strip(),
        safe_custody_date=safe_custody_date,
        account_name=account_name or None,
        ownership_type=ownership_type,
        partner_name=partner_name or None,
        bill_date=bill_date,
        pd_bill=_choice(PdBill, row.get("PDBill"), PdBill.NO),
    ).normalized()

    seen_mobiles.add(mobile)
    return draft, None


def plan_import(
    ctx: OperationContext,
    rows: Iterable[Mapping[str, str]],
) -> tuple[list[AcceptedRow], list[RejectedRow]]:
    """Validate every row against the current store without writing anything."""

    accepted: list[AcceptedRow] = []
    rejected: list[RejectedRow] = []
    seen: set[str] = set()
    employees = ctx.store.employees

    # Row 1 is the header line.
    for row_number, row in enumerate(rows, start=2):
        draft, reason = validate_row(
            row,
            seen_mobiles=seen,
            is_duplicate=ctx.store.is_mobile_duplicate,
            employees=employees,
            tz_name=ctx.timezone,
        )
        if draft is None:
            rejected.append(RejectedRow(row_number, dict(row), reason or "Invalid row"))
        else:
            accepted.append(AcceptedRow(row_number, draft))

    return accepted, rejected


def import_numbers(
    ctx: OperationContext,
    rows: Iterable[Mapping[str, str]],
    *,
    dry_run: bool = False,
) -> ImportResult:
    """
    Import CSV rows as new inventory numbers.

    Args:
        ctx: Operation context of the importing user
        rows: Parsed CSV rows (see read_csv_rows)
        dry_run: Validate only; nothing is written

    Returns:
        ImportResult with created mobiles and per-row failures
    """
    rows = list(rows)
    accepted, rejected = plan_import(ctx, rows)
    result = ImportResult(total_rows=len(rows), failed=list(rejected), dry_run=dry_run)

    if dry_run or not accepted:
        if dry_run:
            result.created = [a.draft.mobile for a in accepted]
        return result

    records: list[NumberRecord] = []
    for item in accepted:
        history = LifecycleLog().append(
            LifecycleAction.CREATED, "Number imported from CSV file.", ctx.performer, ctx.now(),
        )
        records.append(
            item.draft.to_record(
                record_id=None,
                sr_no=ctx.allocate_sr_no(Collection.NUMBERS),
                created_by=ctx.actor.uid,
                history=history,
            )
        )

    batch = WriteBatch()
    for record in records:
        batch.set(Collection.NUMBERS, number_to_document(record))
    ctx.add_activity(batch, "Imported Numbers", f"Imported {len(records)} number(s) from CSV file.")

    try:
        ctx.commit(batch, path="numbers", operation="write", info={"info": f"Bulk add of {len(records)} records."})
    except PermissionDeniedError:
        result.failed.extend(RejectedRow(a.row_number, _draft_summary(a.draft), REASON_WRITE_REJECTED) for a in accepted)
        return result

    result.created = [r.mobile for r in records]
    logger.info(
        "CSV import finished",
        extra={"total_rows": result.total_rows, "created_count": len(result.created), "failed_count": len(result.failed)},
    )
    return result


def _draft_summary(draft: NumberDraft) -> dict[str, str]:
    return {"Mobile": draft.mobile, "Status": draft.status.value, "NumberType": draft.number_type.value}


__all__ = [
    "AcceptedRow",
    "DATE_FORMATS",
    "ImportResult",
    "REASON_INVALID_PURCHASE_PRICE",
    "REASON_WRITE_REJECTED",
    "RejectedRow",
    "import_numbers",
    "parse_import_date",
    "plan_import",
    "read_csv_rows",
    "validate_row",
]
