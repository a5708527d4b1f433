"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Timestamps in requests may carry any offset (naive values are taken as UTC);
they are normalized to UTC before reaching the services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, Field

from domain.activity import Activity
from domain.dealer_purchase import DealerPurchaseRecord
from domain.deleted_number import DeletedNumberRecord
from domain.digits import digit_sum
from domain.history import GlobalHistoryRecord
from domain.lifecycle import LifecycleEvent, LifecycleLog
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
from domain.payment import PaymentRecord
from domain.prebooking import PreBookingRecord
from domain.reminder import Reminder, ReminderStatus
from domain.sale import SaleRecord
from domain.user import User, UserRole


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]

T = TypeVar("T")


# ============================================================================
# Shared Models
# ============================================================================

class PageResponse(BaseModel, Generic[T]):
    """One page of a list view."""
    items: List[T]
    total_items: int
    page: int
    page_size: Optional[int] = None
    total_pages: int


class SkippedItem(BaseModel):
    id: str
    reason: str


class BulkResultResponse(BaseModel):
    """Outcome of an operation over many records."""
    applied: List[str]
    skipped: List[SkippedItem] = []

    class Config:
        json_schema_extra = {
            "example": {
                "applied": ["a1b2c3", "d4e5f6"],
                "skipped": [{"id": "zz99", "reason": "Number not found"}]
            }
        }


class CreatedResponse(BaseModel):
    id: str


class IdsRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class LifecycleEventResponse(BaseModel):
    event_id: str
    action: str
    description: str
    timestamp: datetime
    performed_by: str

    @classmethod
    def from_domain(cls, event: LifecycleEvent) -> "LifecycleEventResponse":
        return cls(
            event_id=event.event_id,
            action=event.action,
            description=event.description,
            timestamp=event.timestamp,
            performed_by=event.performed_by,
        )


def _history(log: LifecycleLog) -> List[LifecycleEventResponse]:
    return [LifecycleEventResponse.from_domain(e) for e in log.newest_first()]


# ============================================================================
# Number Models
# ============================================================================

class NumberResponse(BaseModel):
    """Inventory number (also used for the number embedded in sales and pre-bookings)."""
    id: Optional[str] = None
    sr_no: int
    mobile: str
    sum: int
    two_digit_sum: int
    status: NumberStatus
    upload_status: UploadStatus
    number_type: NumberType
    purchase_from: str
    purchase_price: Decimal
    sale_price: Decimal
    purchase_date: datetime
    rts_date: Optional[datetime] = None
    name: str
    current_location: str
    location_type: LocationType
    assigned_to: str
    notes: Optional[str] = None
    check_in_date: Optional[datetime] = None
    safe_custody_date: Optional[datetime] = None
    account_name: Optional[str] = None
    ownership_type: OwnershipType
    partner_name: Optional[str] = None
    bill_date: Optional[datetime] = None
    pd_bill: Optional[PdBill] = None
    created_by: str
    history: List[LifecycleEventResponse] = []

    class Config:
        json_schema_extra = {
            "example": {
                "id": "4f1c2a",
                "sr_no": 12,
                "mobile": "9876543210",
                "sum": 9,
                "two_digit_sum": 45,
                "status": "Non-RTS",
                "upload_status": "Pending",
                "number_type": "Prepaid",
                "purchase_from": "numberwale",
                "purchase_price": "5000",
                "sale_price": "8000",
                "purchase_date": "2025-01-01T00:00:00Z",
                "rts_date": "2025-02-01T00:00:00Z",
                "name": "Unassigned",
                "current_location": "Store",
                "location_type": "Store",
                "assigned_to": "Unassigned",
                "ownership_type": "Individual",
                "created_by": "uid-admin",
                "history": []
            }
        }

    @classmethod
    def from_domain(cls, n: NumberRecord) -> "NumberResponse":
        return cls(
            id=n.id,
            sr_no=n.sr_no,
            mobile=n.mobile,
            sum=n.sum,
            two_digit_sum=digit_sum(n.mobile),
            status=n.status,
            upload_status=n.upload_status,
            number_type=n.number_type,
            purchase_from=n.purchase_from,
            purchase_price=n.purchase_price,
            sale_price=n.sale_price,
            purchase_date=n.purchase_date,
            rts_date=n.rts_date,
            name=n.name,
            current_location=n.current_location,
            location_type=n.location_type,
            assigned_to=n.assigned_to,
            notes=n.notes,
            check_in_date=n.check_in_date,
            safe_custody_date=n.safe_custody_date,
            account_name=n.account_name,
            ownership_type=n.ownership_type,
            partner_name=n.partner_name,
            bill_date=n.bill_date,
            pd_bill=n.pd_bill,
            created_by=n.created_by,
            history=_history(n.history),
        )


class NumberDraftRequest(BaseModel):
    """Fields of a number entered by a user."""
    mobile: str = Field(..., description="10-digit mobile number")
    status: NumberStatus
    purchase_from: str
    purchase_price: Decimal = Field(..., ge=0)
    purchase_date: UtcDatetime
    upload_status: UploadStatus = UploadStatus.PENDING
    number_type: NumberType = NumberType.PREPAID
    sale_price: Decimal = Field(Decimal("0"), ge=0)
    rts_date: Optional[UtcDatetime] = None
    current_location: str = ""
    location_type: LocationType = LocationType.STORE
    assigned_to: str = UNASSIGNED
    notes: Optional[str] = None
    check_in_date: Optional[UtcDatetime] = None
    safe_custody_date: Optional[UtcDatetime] = None
    account_name: Optional[str] = None
    ownership_type: OwnershipType = OwnershipType.INDIVIDUAL
    partner_name: Optional[str] = None
    bill_date: Optional[UtcDatetime] = None
    pd_bill: Optional[PdBill] = None

    class Config:
        json_schema_extra = {
            "example": {
                "mobile": "9876543210",
                "status": "Non-RTS",
                "purchase_from": "numberwale",
                "purchase_price": "5000",
                "purchase_date": "2025-01-01T00:00:00Z",
                "rts_date": "2025-02-01T00:00:00Z",
                "number_type": "Prepaid"
            }
        }

    def to_draft(self, mobile: Optional[str] = None) -> NumberDraft:
        return NumberDraft(
            mobile=(mobile if mobile is not None else self.mobile).strip(),
            status=self.status,
            purchase_from=self.purchase_from,
            purchase_price=self.purchase_price,
            purchase_date=self.purchase_date,
            upload_status=self.upload_status,
            number_type=self.number_type,
            sale_price=self.sale_price,
            rts_date=self.rts_date,
            name=self.assigned_to,
            current_location=self.current_location,
            location_type=self.location_type,
            assigned_to=self.assigned_to,
            notes=self.notes,
            check_in_date=self.check_in_date,
            safe_custody_date=self.safe_custody_date,
            account_name=self.account_name,
            ownership_type=self.ownership_type,
            partner_name=self.partner_name,
            bill_date=self.bill_date,
            pd_bill=self.pd_bill,
        )


class AddMultipleNumbersRequest(BaseModel):
    """Shared number details applied to every mobile in the list."""
    details: NumberDraftRequest
    mobiles: List[str] = Field(..., min_length=1)


class StatusUpdateRequest(BaseModel):
    status: NumberStatus
    rts_date: Optional[UtcDatetime] = None
    note: Optional[str] = None


class UploadStatusRequest(BaseModel):
    upload_status: UploadStatus


class BulkUploadStatusRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    upload_status: UploadStatus


class AssignNumbersRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    employee_name: str
    location_type: LocationType
    current_location: str


class LocationUpdateRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    location_type: LocationType
    current_location: str


class SafeCustodyDateRequest(BaseModel):
    safe_custody_date: UtcDatetime


class BulkSafeCustodyDateRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    safe_custody_date: UtcDatetime


class PostpaidDetailsRequest(BaseModel):
    bill_date: UtcDatetime
    pd_bill: PdBill


class BulkPostpaidDetailsRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    bill_date: UtcDatetime
    pd_bill: PdBill


class MobileListReviewRequest(BaseModel):
    """Newline or comma separated mobiles pasted by the user."""
    text: str
    require_type: Optional[NumberType] = None


class MobileListReviewResponse(BaseModel):
    found: List[NumberResponse]
    not_found: List[str]
    duplicates: List[str]
    not_cocp: List[str]


class DeleteNumbersRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


# ============================================================================
# Sale / Pre-booking Models
# ============================================================================

class SellRequest(BaseModel):
    sold_to: str = Field(..., min_length=1)
    sale_price: Decimal = Field(..., ge=0)
    sale_date: UtcDatetime

    class Config:
        json_schema_extra = {
            "example": {
                "sold_to": "vipnumbershop",
                "sale_price": "8000",
                "sale_date": "2025-03-01T10:00:00Z"
            }
        }


class BulkSellRequest(SellRequest):
    ids: List[str] = Field(..., min_length=1)


class SaleResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    mobile: str
    sum: int
    sold_to: str
    sale_price: Decimal
    sale_date: datetime
    upload_status: UploadStatus
    purchase_price: Decimal
    profit: Decimal
    created_by: str
    original_number_data: Optional[NumberResponse] = None

    @classmethod
    def from_domain(cls, s: SaleRecord) -> "SaleResponse":
        return cls(
            id=s.id,
            sr_no=s.sr_no,
            mobile=s.mobile,
            sum=s.sum,
            sold_to=s.sold_to,
            sale_price=s.sale_price,
            sale_date=s.sale_date,
            upload_status=s.upload_status,
            purchase_price=s.purchase_price,
            profit=s.profit,
            created_by=s.created_by,
            original_number_data=NumberResponse.from_domain(s.original_number_data) if s.original_number_data else None,
        )


class SalesSummaryResponse(BaseModel):
    total_billed: Decimal
    total_purchase: Decimal
    profit_loss: Decimal
    total_paid: Decimal
    amount_remaining: Decimal
    record_count: int


class SalesListResponse(BaseModel):
    page: PageResponse[SaleResponse]
    summary: SalesSummaryResponse
    sold_to_options: List[str]


class PreBookingResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    mobile: str
    sum: int
    upload_status: UploadStatus
    pre_booking_date: datetime
    created_by: str
    original_number_data: Optional[NumberResponse] = None

    @classmethod
    def from_domain(cls, pb: PreBookingRecord) -> "PreBookingResponse":
        return cls(
            id=pb.id,
            sr_no=pb.sr_no,
            mobile=pb.mobile,
            sum=pb.sum,
            upload_status=pb.upload_status,
            pre_booking_date=pb.pre_booking_date,
            created_by=pb.created_by,
            original_number_data=NumberResponse.from_domain(pb.original_number_data) if pb.original_number_data else None,
        )


class DeletedNumberResponse(BaseModel):
    id: Optional[str] = None
    original_id: str
    original_sr_no: int
    mobile: str
    sum: int
    deletion_reason: str
    deleted_by: str
    deleted_at: datetime
    original_number_data: NumberResponse

    @classmethod
    def from_domain(cls, d: DeletedNumberRecord) -> "DeletedNumberResponse":
        return cls(
            id=d.id,
            original_id=d.original_id,
            original_sr_no=d.original_sr_no,
            mobile=d.mobile,
            sum=d.sum,
            deletion_reason=d.deletion_reason,
            deleted_by=d.deleted_by,
            deleted_at=d.deleted_at,
            original_number_data=NumberResponse.from_domain(d.original_number_data),
        )


# ============================================================================
# Dealer Purchase / Payment Models
# ============================================================================

class DealerPurchaseRequest(BaseModel):
    mobile: str
    dealer_name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)


class DealerPurchaseResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    mobile: str
    sum: int
    dealer_name: str
    price: Decimal
    created_by: str

    @classmethod
    def from_domain(cls, dp: DealerPurchaseRecord) -> "DealerPurchaseResponse":
        return cls(
            id=dp.id, sr_no=dp.sr_no, mobile=dp.mobile, sum=dp.sum,
            dealer_name=dp.dealer_name, price=dp.price, created_by=dp.created_by,
        )


class PaymentRequest(BaseModel):
    vendor_name: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    payment_date: UtcDatetime
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    vendor_name: str
    amount: Decimal
    payment_date: datetime
    notes: Optional[str] = None
    created_by: str

    @classmethod
    def from_domain(cls, p: PaymentRecord) -> "PaymentResponse":
        return cls(
            id=p.id, sr_no=p.sr_no, vendor_name=p.vendor_name, amount=p.amount,
            payment_date=p.payment_date, notes=p.notes, created_by=p.created_by,
        )


# ============================================================================
# Reminder Models
# ============================================================================

class ReminderRequest(BaseModel):
    task_name: str = Field(..., min_length=1)
    assigned_to: List[str] = Field(..., min_length=1)
    due_date: UtcDatetime


class MarkDoneRequest(BaseModel):
    note: Optional[str] = None


class BulkMarkDoneRequest(BaseModel):
    reminder_ids: List[str] = Field(..., min_length=1)
    note: Optional[str] = None


class AssignRemindersRequest(BaseModel):
    reminder_ids: List[str] = Field(..., min_length=1)
    user_names: List[str] = Field(..., min_length=1)


class ReminderResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    task_id: Optional[str] = None
    task_name: str
    assigned_to: List[str]
    status: ReminderStatus
    due_date: datetime
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: str

    @classmethod
    def from_domain(cls, r: Reminder) -> "ReminderResponse":
        return cls(
            id=r.id, sr_no=r.sr_no, task_id=r.task_id, task_name=r.task_name,
            assigned_to=list(r.assigned_to), status=r.status, due_date=r.due_date,
            completion_date=r.completion_date, notes=r.notes, created_by=r.created_by,
        )


class ReminderBulkResponse(BaseModel):
    updated: List[str]
    skipped: List[SkippedItem] = []


# ============================================================================
# History / Activity / User Models
# ============================================================================

class GlobalHistoryResponse(BaseModel):
    id: str
    mobile: str
    rts_status: str
    number_type: str
    current_stage: str
    sold_to: Optional[str] = None
    sale_date: Optional[datetime] = None
    sale_price: Optional[Decimal] = None
    purchase_from: Optional[str] = None
    purchase_date: Optional[datetime] = None
    purchase_price: Optional[Decimal] = None
    deletion_reason: Optional[str] = None
    deleted_by: Optional[str] = None
    deleted_at: Optional[datetime] = None
    location_conflict: bool = False
    history: List[LifecycleEventResponse] = []

    @classmethod
    def from_domain(cls, h: GlobalHistoryRecord) -> "GlobalHistoryResponse":
        return cls(
            id=h.id,
            mobile=h.mobile,
            rts_status=h.rts_status,
            number_type=h.number_type,
            current_stage=h.current_stage.value,
            sold_to=h.sale_info.sold_to if h.sale_info else None,
            sale_date=h.sale_info.sale_date if h.sale_info else None,
            sale_price=h.sale_info.sale_price if h.sale_info else None,
            purchase_from=h.purchase_info.purchase_from if h.purchase_info else None,
            purchase_date=h.purchase_info.purchase_date if h.purchase_info else None,
            purchase_price=h.purchase_info.purchase_price if h.purchase_info else None,
            deletion_reason=h.deletion_info.reason if h.deletion_info else None,
            deleted_by=h.deletion_info.deleted_by if h.deletion_info else None,
            deleted_at=h.deletion_info.deleted_at if h.deletion_info else None,
            location_conflict=h.location_conflict,
            history=_history(h.history),
        )


class ActivityResponse(BaseModel):
    id: Optional[str] = None
    sr_no: int
    employee_name: str
    action: str
    description: str
    timestamp: datetime
    created_by: str

    @classmethod
    def from_domain(cls, a: Activity) -> "ActivityResponse":
        return cls(
            id=a.id, sr_no=a.sr_no, employee_name=a.employee_name, action=a.action,
            description=a.description, timestamp=a.timestamp, created_by=a.created_by,
        )


class UserResponse(BaseModel):
    uid: str
    email: str
    role: UserRole
    display_name: Optional[str] = None

    @classmethod
    def from_domain(cls, u: User) -> "UserResponse":
        return cls(uid=u.uid, email=u.email, role=u.role, display_name=u.display_name)


# ============================================================================
# Import / Export Models
# ============================================================================

class ImportFailure(BaseModel):
    row_number: int
    record: dict
    reason: str


class ImportResultResponse(BaseModel):
    total_rows: int
    success_count: int
    created: List[str]
    failed: List[ImportFailure]
    dry_run: bool = False


class ExportNumbersRequest(BaseModel):
    number_ids: List[str] = Field(..., min_length=1)
    postpaid: bool = False


# ============================================================================
# Conversion helpers
# ============================================================================

def page_response(page, convert) -> PageResponse:
    """Wrap a services Page, converting each item with `convert`."""
    return PageResponse(
        items=[convert(item) for item in page.items],
        total_items=page.total_items,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
    )


def bulk_result_response(result) -> BulkResultResponse:
    return BulkResultResponse(
        applied=list(result.applied),
        skipped=[SkippedItem(id=item_id, reason=reason) for item_id, reason in result.skipped],
    )


def reminder_bulk_response(result) -> ReminderBulkResponse:
    return ReminderBulkResponse(
        updated=list(result.updated),
        skipped=[SkippedItem(id=reminder_id, reason=reason) for reminder_id, reason in result.skipped],
    )
