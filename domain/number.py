"""
Domain: phone numbers held in inventory.

A NumberRecord is one mobile number the business owns and has not yet sold,
pre-booked, or deleted. The same shape is embedded (with `id=None`) inside sale,
pre-booking and deleted-number records as `original_number_data`, which is how
the number's lifecycle history travels with it.

Invariants:
- `mobile` is exactly 10 digits.
- `sum` is the digital root of `mobile`.
- RTS numbers carry no `rts_date`; Non-RTS numbers carry the date they become RTS.
- COCP numbers carry `account_name` and `safe_custody_date`; Postpaid numbers carry
  `bill_date` and `pd_bill`; other number types carry neither.
- Partnership ownership carries `partner_name`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .digits import digital_root, is_valid_mobile
from .lifecycle import LifecycleLog
from .time import require_optional_utc_timestamp, require_utc_timestamp

UNASSIGNED: str = "Unassigned"


class NumberStatus(str, Enum):
    RTS = "RTS"
    NON_RTS = "Non-RTS"


class UploadStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"


class NumberType(str, Enum):
    PREPAID = "Prepaid"
    POSTPAID = "Postpaid"
    COCP = "COCP"


class LocationType(str, Enum):
    STORE = "Store"
    EMPLOYEE = "Employee"
    DEALER = "Dealer"


class OwnershipType(str, Enum):
    INDIVIDUAL = "Individual"
    PARTNERSHIP = "Partnership"


class PdBill(str, Enum):
    YES = "Yes"
    NO = "No"


@dataclass(frozen=True, slots=True)
class NumberRecord:
    """
    A number in inventory. `id is None` means the record is an embedded copy.
    """

    id: Optional[str]
    sr_no: int
    mobile: str
    sum: int
    status: NumberStatus
    upload_status: UploadStatus
    number_type: NumberType
    purchase_from: str
    purchase_price: Decimal
    sale_price: Decimal
    purchase_date: datetime
    created_by: str
    rts_date: Optional[datetime] = None
    name: str = UNASSIGNED
    current_location: str = ""
    location_type: LocationType = LocationType.STORE
    assigned_to: str = UNASSIGNED
    notes: Optional[str] = None
    check_in_date: Optional[datetime] = None
    safe_custody_date: Optional[datetime] = None
    account_name: Optional[str] = None
    ownership_type: OwnershipType = OwnershipType.INDIVIDUAL
    partner_name: Optional[str] = None
    bill_date: Optional[datetime] = None
    pd_bill: Optional[PdBill] = None
    history: LifecycleLog = field(default_factory=LifecycleLog)

    def __post_init__(self) -> None:
        require_utc_timestamp("purchase_date", self.purchase_date)
        require_optional_utc_timestamp("rts_date", self.rts_date)
        require_optional_utc_timestamp("check_in_date", self.check_in_date)
        require_optional_utc_timestamp("safe_custody_date", self.safe_custody_date)
        require_optional_utc_timestamp("bill_date", self.bill_date)

    def snapshot(self) -> "NumberRecord":
        """Copy with the identifier stripped, for embedding in another record."""

        return replace(self, id=None)

    def is_assigned_to(self, name: str) -> bool:
        return self.assigned_to == name


@dataclass(frozen=True, slots=True)
class NumberDraft:
    """
    User-supplied fields for creating or editing a number.

    Identity, serial number, digit sum, creator and history are not part of a
    draft; the inventory service derives them.
    """

    mobile: str
    status: NumberStatus
    purchase_from: str
    purchase_price: Decimal
    purchase_date: datetime
    upload_status: UploadStatus = UploadStatus.PENDING
    number_type: NumberType = NumberType.PREPAID
    sale_price: Decimal = Decimal("0")
    rts_date: Optional[datetime] = None
    name: str = UNASSIGNED
    current_location: str = ""
    location_type: LocationType = LocationType.STORE
    assigned_to: str = UNASSIGNED
    notes: Optional[str] = None
    check_in_date: Optional[datetime] = None
    safe_custody_date: Optional[datetime] = None
    account_name: Optional[str] = None
    ownership_type: OwnershipType = OwnershipType.INDIVIDUAL
    partner_name: Optional[str] = None
    bill_date: Optional[datetime] = None
    pd_bill: Optional[PdBill] = None

    def problems(self) -> list[str]:
        """Every reason this draft cannot be stored (empty when valid)."""

        found: list[str] = []
        if not is_valid_mobile(self.mobile):
            found.append("Mobile number must be exactly 10 digits.")
        if self.status == NumberStatus.NON_RTS and self.rts_date is None:
            found.append("RTS date is required for Non-RTS numbers.")
        if self.number_type == NumberType.COCP:
            if self.safe_custody_date is None:
                found.append("Safe Custody Date is required for COCP numbers.")
            if not (self.account_name or "").strip():
                found.append("Account Name is required for COCP numbers.")
        if self.number_type == NumberType.POSTPAID and self.bill_date is None:
            found.append("Bill Date is required for Postpaid numbers.")
        if self.ownership_type == OwnershipType.PARTNERSHIP and not (self.partner_name or "").strip():
            found.append("Partner Name is required for Partnership ownership.")
        if self.purchase_price < 0:
            found.append("Purchase price cannot be negative.")
        if self.sale_price < 0:
            found.append("Sale price cannot be negative.")
        return found

    def normalized(self) -> "NumberDraft":
        """Drop fields that do not apply to this number's type, status and ownership."""

        draft = self
        if draft.status == NumberStatus.RTS:
            draft = replace(draft, rts_date=None)
        if draft.number_type != NumberType.COCP:
            draft = replace(draft, account_name=None, safe_custody_date=None)
        if draft.number_type != NumberType.POSTPAID:
            draft = replace(draft, bill_date=None, pd_bill=None)
        elif draft.pd_bill is None:
            draft = replace(draft, pd_bill=PdBill.NO)
        if draft.ownership_type != OwnershipType.PARTNERSHIP:
            draft = replace(draft, partner_name=None)
        return draft

    def to_record(
        self,
        *,
        record_id: Optional[str],
        sr_no: int,
        created_by: str,
        history: LifecycleLog,
    ) -> NumberRecord:
        draft = self.normalized()
        return NumberRecord(
            id=record_id,
            sr_no=sr_no,
            mobile=draft.mobile,
            sum=digital_root(draft.mobile),
            status=draft.status,
            upload_status=draft.upload_status,
            number_type=draft.number_type,
            purchase_from=draft.purchase_from,
            purchase_price=draft.purchase_price,
            sale_price=draft.sale_price,
            purchase_date=draft.purchase_date,
            created_by=created_by,
            rts_date=draft.rts_date,
            name=draft.name,
            current_location=draft.current_location,
            location_type=draft.location_type,
            assigned_to=draft.assigned_to,
            notes=draft.notes,
            check_in_date=draft.check_in_date,
            safe_custody_date=draft.safe_custody_date,
            account_name=draft.account_name,
            ownership_type=draft.ownership_type,
            partner_name=draft.partner_name,
            bill_date=draft.bill_date,
            pd_bill=draft.pd_bill,
            history=history,
        )


__all__ = [
    "LocationType",
    "NumberDraft",
    "NumberRecord",
    "NumberStatus",
    "NumberType",
    "OwnershipType",
    "PdBill",
    "UNASSIGNED",
    "UploadStatus",
]
