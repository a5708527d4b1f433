"""
Transition service: moving a number between inventory, sales, pre-bookings and
the deleted-number archive.

Every transition follows the same contract:
1. Locate the source record in the store snapshot.
2. Strip its identifier.
3. Append one lifecycle event to its embedded history.
4. Build the destination record embedding the updated source.
5. Commit one batch: create destination, delete source, write the activity.

The batch is all-or-nothing. If the database rejects it, nothing moves and the
caller receives a PermissionDeniedError. A mobile is therefore never in two of
inventory, sales and pre-bookings at once.

Bulk transitions move each id once, however often it is repeated in the request.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import List, Sequence

from domain.activity import describe_bulk, format_amount
from domain.deleted_number import DeletedNumberRecord
from domain.lifecycle import LifecycleAction
from domain.number import UNASSIGNED, NumberRecord
from domain.prebooking import PreBookingRecord
from domain.sale import SaleRecord
from repositories.document_store import Collection, WriteBatch
from repositories.record_mapping import (
    deleted_number_to_document,
    number_to_document,
    prebooking_to_document,
    sale_to_document,
)
from services.context import OperationContext
from services.errors import DuplicateNumberError, RecordNotFoundError, ValidationError
from services.inventory_service import BulkResult


def _with_event(ctx: OperationContext, number: NumberRecord, action: LifecycleAction, description: str) -> NumberRecord:
    """Identifier stripped, one event appended."""

    history = number.history.append(action, description, ctx.performer, ctx.now())
    return replace(number.snapshot(), history=history)


def _require(ctx: OperationContext, collection: Collection, record_id: str):
    record = ctx.store.find(collection, record_id)
    if record is None:
        raise RecordNotFoundError(collection.value, record_id)
    return record


def _validate_sale(sold_to: str, sale_price: Decimal) -> None:
    if not sold_to.strip():
        raise ValidationError("Buyer (sold to) is required.")
    if sale_price < 0:
        raise ValidationError("Sale price cannot be negative.")


def _sale_from(
    ctx: OperationContext,
    source: NumberRecord,
    *,
    sr_no: int,
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> SaleRecord:
    return SaleRecord(
        id=None,
        sr_no=sr_no,
        mobile=source.mobile,
        sum=source.sum,
        sold_to=sold_to,
        sale_price=sale_price,
        sale_date=sale_date,
        upload_status=source.upload_status,
        created_by=ctx.actor.uid,
        original_number_data=source,
    )


# ---------------------------------------------------------------------------
# Inventory -> sales
# ---------------------------------------------------------------------------

def sell_number(
    ctx: OperationContext,
    number_id: str,
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> str:
    """Sell one inventory number; returns the new sale id."""

    _validate_sale(sold_to, sale_price)
    number: NumberRecord = _require(ctx, Collection.NUMBERS, number_id)
    carried = _with_event(
        ctx, number, LifecycleAction.SOLD,
        f"Sold to {sold_to} for ₹{format_amount(sale_price)}.",
    )
    sale = _sale_from(
        ctx, carried,
        sr_no=ctx.allocate_sr_no(Collection.SALES),
        sold_to=sold_to, sale_price=sale_price, sale_date=sale_date,
    )

    batch = WriteBatch()
    sale_id = batch.set(Collection.SALES, sale_to_document(sale))
    batch.delete(Collection.NUMBERS, number_id)
    ctx.add_activity(
        batch, "Sold Number",
        f"Sold number {number.mobile} to {sold_to} for ₹{format_amount(sale_price)}",
    )
    ctx.commit(batch, path="sales", operation="create", info={"info": f"Sell number {number.mobile}"})
    return sale_id


def bulk_sell_numbers(
    ctx: OperationContext,
    number_ids: Sequence[str],
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> BulkResult:
    _validate_sale(sold_to, sale_price)
    batch = WriteBatch()
    sold: List[NumberRecord] = []
    created: List[str] = []
    skipped: List[tuple[str, str]] = []

    for number_id in dict.fromkeys(number_ids):
        number = ctx.store.find(Collection.NUMBERS, number_id)
        if number is None:
            skipped.append((number_id, "Number not found"))
            continue
        carried = _with_event(
            ctx, number, LifecycleAction.SOLD,
            f"Sold to {sold_to} for ₹{format_amount(sale_price)}.",
        )
        sale = _sale_from(
            ctx, carried,
            sr_no=ctx.allocate_sr_no(Collection.SALES),
            sold_to=sold_to, sale_price=sale_price, sale_date=sale_date,
        )
        created.append(batch.set(Collection.SALES, sale_to_document(sale)))
        batch.delete(Collection.NUMBERS, number_id)
        sold.append(number)

    if not sold:
        return BulkResult(applied=[], skipped=skipped)

    ctx.add_activity(batch, "Bulk Sold Numbers", describe_bulk(f"Sold to {sold_to}:", [n.mobile for n in sold]))
    ctx.commit(batch, path="sales", operation="create", info={"info": f"Bulk sell of {len(sold)} numbers"})
    return BulkResult(applied=created, skipped=skipped)


def cancel_sale(ctx: OperationContext, sale_id: str) -> str:
    """Return a sold number to inventory as Unassigned; returns the new number id."""

    sale: SaleRecord = _require(ctx, Collection.SALES, sale_id)
    if sale.original_number_data is None:
        raise ValidationError("Could not find original number data to restore.")

    restored = _with_event(
        ctx, sale.original_number_data, LifecycleAction.SALE_CANCELLED,
        "Sale cancelled and number returned to inventory.",
    )
    restored = replace(restored, assigned_to=UNASSIGNED, name=UNASSIGNED)

    batch = WriteBatch()
    number_id = batch.set(Collection.NUMBERS, number_to_document(restored))
    batch.delete(Collection.SALES, sale_id)
    ctx.add_activity(batch, "Cancelled Sale", f"Cancelled sale for number {sale.mobile}. Returned to inventory.")
    ctx.commit(batch, path="numbers/sales", operation="write", info={"info": f"Cancel sale for {sale.mobile}"})
    return number_id


# ---------------------------------------------------------------------------
# Inventory <-> pre-bookings -> sales
# ---------------------------------------------------------------------------

def mark_as_pre_booked(ctx: OperationContext, number_ids: Sequence[str]) -> BulkResult:
    batch = WriteBatch()
    moved: List[NumberRecord] = []
    created: List[str] = []
    skipped: List[tuple[str, str]] = []

    for number_id in dict.fromkeys(number_ids):
        number = ctx.store.find(Collection.NUMBERS, number_id)
        if number is None:
            skipped.append((number_id, "Number not found"))
            continue
        carried = _with_event(ctx, number, LifecycleAction.PRE_BOOKED, "Number moved to pre-booking list.")
        prebooking = PreBookingRecord(
            id=None,
            sr_no=ctx.allocate_sr_no(Collection.PREBOOKINGS),
            mobile=number.mobile,
            sum=number.sum,
            upload_status=number.upload_status,
            pre_booking_date=ctx.now(),
            created_by=ctx.actor.uid,
            original_number_data=carried,
        )
        created.append(batch.set(Collection.PREBOOKINGS, prebooking_to_document(prebooking)))
        batch.delete(Collection.NUMBERS, number_id)
        moved.append(number)

    if not moved:
        return BulkResult(applied=[], skipped=skipped)

    ctx.add_activity(batch, "Pre-Booked Numbers", describe_bulk("Moved to Pre-Booking:", [n.mobile for n in moved]))
    ctx.commit(batch, path="prebookings/numbers", operation="write", info={"info": f"Pre-booking {len(moved)} numbers"})
    return BulkResult(applied=created, skipped=skipped)


def cancel_pre_booking(ctx: OperationContext, prebooking_id: str) -> str:
    prebooking: PreBookingRecord = _require(ctx, Collection.PREBOOKINGS, prebooking_id)
    if prebooking.original_number_data is None:
        raise ValidationError("Could not find the pre-booking record to cancel.")

    restored = _with_event(
        ctx, prebooking.original_number_data, LifecycleAction.PRE_BOOKING_CANCELLED,
        "Pre-booking was cancelled.",
    )

    batch = WriteBatch()
    number_id = batch.set(Collection.NUMBERS, number_to_document(restored))
    batch.delete(Collection.PREBOOKINGS, prebooking_id)
    ctx.add_activity(
        batch, "Cancelled Pre-Booking",
        f"Cancelled pre-booking for {prebooking.mobile} and returned it to inventory.",
    )
    ctx.commit(batch, path="prebookings/numbers", operation="write", info={"info": f"Cancel pre-booking for {prebooking.mobile}"})
    return number_id


def _stage_prebooked_sale(
    ctx: OperationContext,
    batch: WriteBatch,
    prebooking: PreBookingRecord,
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> str:
    carried = _with_event(
        ctx, prebooking.original_number_data, LifecycleAction.SOLD,
        f"Sold from pre-booking to {sold_to} for ₹{format_amount(sale_price)}.",
    )
    sale = SaleRecord(
        id=None,
        sr_no=ctx.allocate_sr_no(Collection.SALES),
        mobile=prebooking.mobile,
        sum=prebooking.sum,
        sold_to=sold_to,
        sale_price=sale_price,
        sale_date=sale_date,
        upload_status=prebooking.upload_status,
        created_by=ctx.actor.uid,
        original_number_data=carried,
    )
    sale_id = batch.set(Collection.SALES, sale_to_document(sale))
    batch.delete(Collection.PREBOOKINGS, prebooking.id)
    return sale_id


def sell_pre_booked_number(
    ctx: OperationContext,
    prebooking_id: str,
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> str:
    _validate_sale(sold_to, sale_price)
    prebooking: PreBookingRecord = _require(ctx, Collection.PREBOOKINGS, prebooking_id)
    if prebooking.original_number_data is None:
        raise ValidationError("Could not find the pre-booking record to sell.")

    batch = WriteBatch()
    sale_id = _stage_prebooked_sale(ctx, batch, prebooking, sold_to, sale_price, sale_date)
    ctx.add_activity(batch, "Sold Pre-Booked Number", f"Sold pre-booked number {prebooking.mobile} to {sold_to}.")
    ctx.commit(batch, path="sales/prebookings", operation="write", info={"info": f"Sell pre-booked number {prebooking.mobile}"})
    return sale_id


def bulk_sell_pre_booked_numbers(
    ctx: OperationContext,
    prebooking_ids: Sequence[str],
    sold_to: str,
    sale_price: Decimal,
    sale_date: datetime,
) -> BulkResult:
    _validate_sale(sold_to, sale_price)
    batch = WriteBatch()
    sold: List[PreBookingRecord] = []
    created: List[str] = []
    skipped: List[tuple[str, str]] = []

    for prebooking_id in dict.fromkeys(prebooking_ids):
        prebooking = ctx.store.find(Collection.PREBOOKINGS, prebooking_id)
        if prebooking is None or prebooking.original_number_data is None:
            skipped.append((prebooking_id, "Pre-booking not found"))
            continue
        created.append(_stage_prebooked_sale(ctx, batch, prebooking, sold_to, sale_price, sale_date))
        sold.append(prebooking)

    if not sold:
        return BulkResult(applied=[], skipped=skipped)

    ctx.add_activity(batch, "Bulk Sold Pre-Booked", describe_bulk(f"Sold to {sold_to}:", [pb.mobile for pb in sold]))
    ctx.commit(batch, path="sales/prebookings", operation="write", info={"info": f"Bulk sell of {len(sold)} pre-booked numbers."})
    return BulkResult(applied=created, skipped=skipped)


# ---------------------------------------------------------------------------
# Inventory <-> deleted-number archive
# ---------------------------------------------------------------------------

def delete_numbers(ctx: OperationContext, number_ids: Sequence[str], reason: str) -> BulkResult:
    """Archive inventory numbers with a reason (admin only)."""

    ctx.require_admin("delete number records")
    if not reason.strip():
        raise ValidationError("A reason is required to delete numbers.")

    batch = WriteBatch()
    archived: List[NumberRecord] = []
    created: List[str] = []
    skipped: List[tuple[str, str]] = []

    for number_id in dict.fromkeys(number_ids):
        number = ctx.store.find(Collection.NUMBERS, number_id)
        if number is None:
            skipped.append((number_id, "Number not found"))
            continue
        carried = _with_event(ctx, number, LifecycleAction.DELETED, f"Number deleted. Reason: {reason}")
        deleted = DeletedNumberRecord(
            id=None,
            original_id=number_id,
            original_sr_no=number.sr_no,
            mobile=number.mobile,
            sum=number.sum,
            deletion_reason=reason,
            deleted_by=ctx.performer,
            deleted_at=ctx.now(),
            original_number_data=carried,
        )
        created.append(batch.set(Collection.DELETED_NUMBERS, deleted_number_to_document(deleted)))
        batch.delete(Collection.NUMBERS, number_id)
        archived.append(number)

    if not archived:
        return BulkResult(applied=[], skipped=skipped)

    ctx.add_activity(
        batch, "Deleted Numbers",
        describe_bulk("Permanently deleted from master inventory:", [n.mobile for n in archived]),
    )
    ctx.commit(batch, path="numbers", operation="delete", info={"info": f"Batch delete {len(archived)} numbers"})
    return BulkResult(applied=created, skipped=skipped)


def restore_deleted_number(ctx: OperationContext, deleted_id: str) -> str:
    """Move an archived number back into inventory; returns the new number id."""

    ctx.require_admin("restore deleted numbers")
    deleted: DeletedNumberRecord = _require(ctx, Collection.DELETED_NUMBERS, deleted_id)
    if ctx.store.is_mobile_duplicate(deleted.mobile):
        raise DuplicateNumberError(deleted.mobile)

    restored = _with_event(
        ctx, deleted.original_number_data, LifecycleAction.RESTORED,
        "Number restored from deleted archive.",
    )

    batch = WriteBatch()
    number_id = batch.set(Collection.NUMBERS, number_to_document(restored))
    batch.delete(Collection.DELETED_NUMBERS, deleted_id)
    ctx.add_activity(batch, "Restored Number", f"Restored number {deleted.mobile} to inventory.")
    ctx.commit(batch, path="numbers/deletedNumbers", operation="write", info={"info": f"Restore {deleted.mobile}"})
    return number_id


__all__ = [
    "bulk_sell_numbers",
    "bulk_sell_pre_booked_numbers",
    "cancel_pre_booking",
    "cancel_sale",
    "delete_numbers",
    "mark_as_pre_booked",
    "restore_deleted_number",
    "sell_number",
    "sell_pre_booked_number",
]
