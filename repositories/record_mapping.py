"""
Document <-> domain conversion for every collection.

Documents use the stored camelCase field names; domain objects use snake_case.
Timestamps are stored as ISO-8601 UTC strings and money as decimal strings.
A document's `id` key is the row id and is never written inside `data`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from domain.activity import Activity
from domain.dealer_purchase import DealerPurchaseRecord
from domain.deleted_number import DeletedNumberRecord
from domain.lifecycle import LifecycleEvent, LifecycleLog
from domain.number import (
    LocationType,
    NumberRecord,
    NumberStatus,
    NumberType,
    OwnershipType,
    PdBill,
    UNASSIGNED,
    UploadStatus,
)
from domain.payment import PaymentRecord
from domain.prebooking import PreBookingRecord
from domain.reminder import Reminder, ReminderStatus
from domain.sale import SaleRecord
from domain.time import require_utc_timestamp
from domain.user import User, UserRole


def _to_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    if dt is None:
        return None
    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _optional_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return _parse_utc_datetime(value)


def _decimal(value: Any) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def _money(value: Decimal) -> str:
    return str(value)


# --------------------------------------------------------------------------
# Lifecycle events
# --------------------------------------------------------------------------

def event_to_document(event: LifecycleEvent) -> dict[str, Any]:
    return {
        "id": event.event_id,
        "action": event.action,
        "description": event.description,
        "timestamp": _to_iso_utc(event.timestamp, name="timestamp"),
        "performedBy": event.performed_by,
    }


def document_to_event(doc: Mapping[str, Any]) -> LifecycleEvent:
    return LifecycleEvent(
        event_id=str(doc["id"]),
        action=str(doc["action"]),
        description=str(doc.get("description", "")),
        timestamp=_parse_utc_datetime(doc["timestamp"]),
        performed_by=str(doc.get("performedBy", "")),
    )


def _history_from(value: Any) -> LifecycleLog:
    return LifecycleLog.of(document_to_event(item) for item in (value or []))


# --------------------------------------------------------------------------
# Numbers
# --------------------------------------------------------------------------

def number_to_document(record: NumberRecord) -> dict[str, Any]:
    """Document body for a number (without `id`)."""

    return {
        "srNo": record.sr_no,
        "mobile": record.mobile,
        "sum": record.sum,
        "status": record.status.value,
        "uploadStatus": record.upload_status.value,
        "numberType": record.number_type.value,
        "purchaseFrom": record.purchase_from,
        "purchasePrice": _money(record.purchase_price),
        "salePrice": _money(record.sale_price),
        "rtsDate": _to_iso_utc(record.rts_date, name="rts_date"),
        "name": record.name,
        "currentLocation": record.current_location,
        "locationType": record.location_type.value,
        "assignedTo": record.assigned_to,
        "purchaseDate": _to_iso_utc(record.purchase_date, name="purchase_date"),
        "notes": record.notes,
        "checkInDate": _to_iso_utc(record.check_in_date, name="check_in_date"),
        "safeCustodyDate": _to_iso_utc(record.safe_custody_date, name="safe_custody_date"),
        "createdBy": record.created_by,
        "accountName": record.account_name,
        "ownershipType": record.ownership_type.value,
        "partnerName": record.partner_name,
        "billDate": _to_iso_utc(record.bill_date, name="bill_date"),
        "pdBill": record.pd_bill.value if record.pd_bill else None,
        "history": [event_to_document(event) for event in record.history],
    }


def document_to_number(doc: Mapping[str, Any], doc_id: Optional[str] = None) -> NumberRecord:
    """Convert a stored (or embedded) number document into a NumberRecord."""

    pd_bill = doc.get("pdBill")
    return NumberRecord(
        id=doc_id if doc_id is not None else doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        mobile=str(doc["mobile"]),
        sum=int(doc.get("sum") or 0),
        status=NumberStatus(doc.get("status", NumberStatus.RTS.value)),
        upload_status=UploadStatus(doc.get("uploadStatus", UploadStatus.PENDING.value)),
        number_type=NumberType(doc.get("numberType", NumberType.PREPAID.value)),
        purchase_from=str(doc.get("purchaseFrom") or ""),
        purchase_price=_decimal(doc.get("purchasePrice")),
        sale_price=_decimal(doc.get("salePrice")),
        purchase_date=_parse_utc_datetime(doc["purchaseDate"]),
        created_by=str(doc.get("createdBy") or ""),
        rts_date=_optional_datetime(doc.get("rtsDate")),
        name=str(doc.get("name") or UNASSIGNED),
        current_location=str(doc.get("currentLocation") or ""),
        location_type=LocationType(doc.get("locationType") or LocationType.STORE.value),
        assigned_to=str(doc.get("assignedTo") or UNASSIGNED),
        notes=doc.get("notes"),
        check_in_date=_optional_datetime(doc.get("checkInDate")),
        safe_custody_date=_optional_datetime(doc.get("safeCustodyDate")),
        account_name=doc.get("accountName"),
        ownership_type=OwnershipType(doc.get("ownershipType") or OwnershipType.INDIVIDUAL.value),
        partner_name=doc.get("partnerName"),
        bill_date=_optional_datetime(doc.get("billDate")),
        pd_bill=PdBill(pd_bill) if pd_bill else None,
        history=_history_from(doc.get("history")),
    )


def _optional_number(value: Any) -> Optional[NumberRecord]:
    if not value:
        return None
    return document_to_number(value, doc_id=None)


def _embedded_number(record: Optional[NumberRecord]) -> Optional[dict[str, Any]]:
    if record is None:
        return None
    return number_to_document(record.snapshot())


# --------------------------------------------------------------------------
# Sales, pre-bookings, deleted numbers, dealer purchases
# --------------------------------------------------------------------------

def sale_to_document(sale: SaleRecord) -> dict[str, Any]:
    return {
        "srNo": sale.sr_no,
        "mobile": sale.mobile,
        "sum": sale.sum,
        "soldTo": sale.sold_to,
        "salePrice": _money(sale.sale_price),
        "saleDate": _to_iso_utc(sale.sale_date, name="sale_date"),
        "uploadStatus": sale.upload_status.value,
        "createdBy": sale.created_by,
        "originalNumberData": _embedded_number(sale.original_number_data),
    }


def document_to_sale(doc: Mapping[str, Any]) -> SaleRecord:
    return SaleRecord(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        mobile=str(doc["mobile"]),
        sum=int(doc.get("sum") or 0),
        sold_to=str(doc.get("soldTo") or ""),
        sale_price=_decimal(doc.get("salePrice")),
        sale_date=_parse_utc_datetime(doc["saleDate"]),
        upload_status=UploadStatus(doc.get("uploadStatus") or UploadStatus.PENDING.value),
        created_by=str(doc.get("createdBy") or ""),
        original_number_data=_optional_number(doc.get("originalNumberData")),
    )


def prebooking_to_document(prebooking: PreBookingRecord) -> dict[str, Any]:
    return {
        "srNo": prebooking.sr_no,
        "mobile": prebooking.mobile,
        "sum": prebooking.sum,
        "uploadStatus": prebooking.upload_status.value,
        "preBookingDate": _to_iso_utc(prebooking.pre_booking_date, name="pre_booking_date"),
        "createdBy": prebooking.created_by,
        "originalNumberData": _embedded_number(prebooking.original_number_data),
    }


def document_to_prebooking(doc: Mapping[str, Any]) -> PreBookingRecord:
    return PreBookingRecord(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        mobile=str(doc["mobile"]),
        sum=int(doc.get("sum") or 0),
        upload_status=UploadStatus(doc.get("uploadStatus") or UploadStatus.PENDING.value),
        pre_booking_date=_parse_utc_datetime(doc["preBookingDate"]),
        created_by=str(doc.get("createdBy") or ""),
        original_number_data=_optional_number(doc.get("originalNumberData")),
    )


def deleted_number_to_document(deleted: DeletedNumberRecord) -> dict[str, Any]:
    return {
        "originalId": deleted.original_id,
        "originalSrNo": deleted.original_sr_no,
        "mobile": deleted.mobile,
        "sum": deleted.sum,
        "deletionReason": deleted.deletion_reason,
        "deletedBy": deleted.deleted_by,
        "deletedAt": _to_iso_utc(deleted.deleted_at, name="deleted_at"),
        "originalNumberData": _embedded_number(deleted.original_number_data),
    }


def document_to_deleted_number(doc: Mapping[str, Any]) -> DeletedNumberRecord:
    return DeletedNumberRecord(
        id=doc.get("id"),
        original_id=str(doc.get("originalId") or ""),
        original_sr_no=int(doc.get("originalSrNo") or 0),
        mobile=str(doc["mobile"]),
        sum=int(doc.get("sum") or 0),
        deletion_reason=str(doc.get("deletionReason") or ""),
        deleted_by=str(doc.get("deletedBy") or ""),
        deleted_at=_parse_utc_datetime(doc["deletedAt"]),
        original_number_data=document_to_number(doc["originalNumberData"], doc_id=None),
    )


def dealer_purchase_to_document(purchase: DealerPurchaseRecord) -> dict[str, Any]:
    return {
        "srNo": purchase.sr_no,
        "mobile": purchase.mobile,
        "sum": purchase.sum,
        "dealerName": purchase.dealer_name,
        "price": _money(purchase.price),
        "createdBy": purchase.created_by,
    }


def document_to_dealer_purchase(doc: Mapping[str, Any]) -> DealerPurchaseRecord:
    return DealerPurchaseRecord(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        mobile=str(doc["mobile"]),
        sum=int(doc.get("sum") or 0),
        dealer_name=str(doc.get("dealerName") or ""),
        price=_decimal(doc.get("price")),
        created_by=str(doc.get("createdBy") or ""),
    )


# --------------------------------------------------------------------------
# Reminders, activities, payments, users
# --------------------------------------------------------------------------

def reminder_to_document(reminder: Reminder) -> dict[str, Any]:
    return {
        "srNo": reminder.sr_no,
        "taskId": reminder.task_id,
        "taskName": reminder.task_name,
        "assignedTo": list(reminder.assigned_to),
        "status": reminder.status.value,
        "dueDate": _to_iso_utc(reminder.due_date, name="due_date"),
        "createdBy": reminder.created_by,
        "completionDate": _to_iso_utc(reminder.completion_date, name="completion_date"),
        "notes": reminder.notes,
    }


def document_to_reminder(doc: Mapping[str, Any]) -> Reminder:
    assigned = doc.get("assignedTo") or []
    if isinstance(assigned, str):
        assigned = [assigned]
    return Reminder(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        task_name=str(doc.get("taskName") or ""),
        assigned_to=tuple(str(name) for name in assigned),
        status=ReminderStatus(doc.get("status") or ReminderStatus.PENDING.value),
        due_date=_parse_utc_datetime(doc["dueDate"]),
        created_by=str(doc.get("createdBy") or ""),
        task_id=doc.get("taskId"),
        completion_date=_optional_datetime(doc.get("completionDate")),
        notes=doc.get("notes"),
    )


def activity_to_document(activity: Activity) -> dict[str, Any]:
    return {
        "srNo": activity.sr_no,
        "employeeName": activity.employee_name,
        "action": activity.action,
        "description": activity.description,
        "timestamp": _to_iso_utc(activity.timestamp, name="timestamp"),
        "createdBy": activity.created_by,
    }


def document_to_activity(doc: Mapping[str, Any]) -> Activity:
    return Activity(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        employee_name=str(doc.get("employeeName") or ""),
        action=str(doc.get("action") or ""),
        description=str(doc.get("description") or ""),
        timestamp=_parse_utc_datetime(doc["timestamp"]),
        created_by=str(doc.get("createdBy") or ""),
    )


def payment_to_document(payment: PaymentRecord) -> dict[str, Any]:
    return {
        "srNo": payment.sr_no,
        "vendorName": payment.vendor_name,
        "amount": _money(payment.amount),
        "paymentDate": _to_iso_utc(payment.payment_date, name="payment_date"),
        "notes": payment.notes,
        "createdBy": payment.created_by,
    }


def document_to_payment(doc: Mapping[str, Any]) -> PaymentRecord:
    return PaymentRecord(
        id=doc.get("id"),
        sr_no=int(doc.get("srNo") or 0),
        vendor_name=str(doc.get("vendorName") or ""),
        amount=_decimal(doc.get("amount")),
        payment_date=_parse_utc_datetime(doc["paymentDate"]),
        created_by=str(doc.get("createdBy") or ""),
        notes=doc.get("notes"),
    )


def user_to_document(user: User) -> dict[str, Any]:
    return {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "role": user.role.value,
    }


def document_to_user(doc: Mapping[str, Any]) -> User:
    return User(
        uid=str(doc.get("uid") or doc["id"]),
        email=str(doc.get("email") or ""),
        role=UserRole(doc.get("role") or UserRole.EMPLOYEE.value),
        display_name=doc.get("displayName"),
    )


__all__ = [
    "activity_to_document",
    "dealer_purchase_to_document",
    "deleted_number_to_document",
    "document_to_activity",
    "document_to_dealer_purchase",
    "document_to_deleted_number",
    "document_to_event",
    "document_to_number",
    "document_to_payment",
    "document_to_prebooking",
    "document_to_reminder",
    "document_to_sale",
    "document_to_user",
    "event_to_document",
    "number_to_document",
    "payment_to_document",
    "prebooking_to_document",
    "reminder_to_document",
    "sale_to_document",
    "user_to_document",
]
