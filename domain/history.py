"""
Domain: global history across every collection a number can live in (pure).

`build_global_history` maps each source collection to GlobalHistoryRecord rows
independently and concatenates them; it performs no I/O and never persists.

Invariants:
- Row ids are `<collection>-<document id>` and are unique across sources.
- A mobile should appear in at most one of the exclusive stages (In Inventory,
  Sold, Pre-Booked). Rows violating that are still returned, flagged with
  `location_conflict=True`, and logged.
- Dealer purchases have no lifecycle history and no purchase date.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from .dealer_purchase import DealerPurchaseRecord
from .deleted_number import DeletedNumberRecord
from .lifecycle import LifecycleEvent, LifecycleLog
from .number import NumberRecord
from .prebooking import PreBookingRecord
from .sale import SaleRecord

logger = logging.getLogger(__name__)

NOT_AVAILABLE: str = "N/A"


class HistoryStage(str, Enum):
    IN_INVENTORY = "In Inventory"
    SOLD = "Sold"
    PRE_BOOKED = "Pre-Booked"
    DEALER_PURCHASE = "Dealer Purchase"
    DELETED = "Deleted"


EXCLUSIVE_STAGES: frozenset[HistoryStage] = frozenset(
    {HistoryStage.IN_INVENTORY, HistoryStage.SOLD, HistoryStage.PRE_BOOKED}
)


@dataclass(frozen=True, slots=True)
class SaleInfo:
    sold_to: str
    sale_date: datetime
    sale_price: Decimal


@dataclass(frozen=True, slots=True)
class PurchaseInfo:
    purchase_from: str
    purchase_date: Optional[datetime]
    purchase_price: Decimal


@dataclass(frozen=True, slots=True)
class DeletionInfo:
    reason: str
    deleted_by: str
    deleted_at: datetime


@dataclass(frozen=True, slots=True)
class GlobalHistoryRecord:
    id: str
    mobile: str
    rts_status: str
    number_type: str
    current_stage: HistoryStage
    sale_info: Optional[SaleInfo] = None
    purchase_info: Optional[PurchaseInfo] = None
    deletion_info: Optional[DeletionInfo] = None
    history: LifecycleLog = LifecycleLog()
    location_conflict: bool = False


def _purchase_info(number: Optional[NumberRecord]) -> Optional[PurchaseInfo]:
    if number is None:
        return None
    return PurchaseInfo(
        purchase_from=number.purchase_from,
        purchase_date=number.purchase_date,
        purchase_price=number.purchase_price,
    )


def _from_number(number: NumberRecord) -> GlobalHistoryRecord:
    return GlobalHistoryRecord(
        id=f"numbers-{number.id}",
        mobile=number.mobile,
        rts_status=number.status.value,
        number_type=number.number_type.value,
        current_stage=HistoryStage.IN_INVENTORY,
        purchase_info=_purchase_info(number),
        history=number.history,
    )


def _from_sale(sale: SaleRecord) -> GlobalHistoryRecord:
    original = sale.original_number_data
    return GlobalHistoryRecord(
        id=f"sales-{sale.id}",
        mobile=sale.mobile,
        rts_status=original.status.value if original else NOT_AVAILABLE,
        number_type=original.number_type.value if original else NOT_AVAILABLE,
        current_stage=HistoryStage.SOLD,
        sale_info=SaleInfo(sold_to=sale.sold_to, sale_date=sale.sale_date, sale_price=sale.sale_price),
        purchase_info=_purchase_info(original),
        history=sale.history,
    )


def _from_prebooking(prebooking: PreBookingRecord) -> GlobalHistoryRecord:
    original = prebooking.original_number_data
    return GlobalHistoryRecord(
        id=f"prebookings-{prebooking.id}",
        mobile=prebooking.mobile,
        rts_status=original.status.value if original else NOT_AVAILABLE,
        number_type=original.number_type.value if original else NOT_AVAILABLE,
        current_stage=HistoryStage.PRE_BOOKED,
        purchase_info=_purchase_info(original),
        history=prebooking.history,
    )


def _from_dealer_purchase(purchase: DealerPurchaseRecord) -> GlobalHistoryRecord:
    return GlobalHistoryRecord(
        id=f"dealerPurchases-{purchase.id}",
        mobile=purchase.mobile,
        rts_status=NOT_AVAILABLE,
        number_type=NOT_AVAILABLE,
        current_stage=HistoryStage.DEALER_PURCHASE,
        purchase_info=PurchaseInfo(
            purchase_from=purchase.dealer_name,
            purchase_date=None,
            purchase_price=purchase.price,
        ),
    )


def _from_deleted(deleted: DeletedNumberRecord) -> GlobalHistoryRecord:
    original = deleted.original_number_data
    return GlobalHistoryRecord(
        id=f"deletedNumbers-{deleted.id}",
        mobile=deleted.mobile,
        rts_status=original.status.value,
        number_type=original.number_type.value,
        current_stage=HistoryStage.DELETED,
        purchase_info=_purchase_info(original),
        deletion_info=DeletionInfo(
            reason=deleted.deletion_reason,
            deleted_by=deleted.deleted_by,
            deleted_at=deleted.deleted_at,
        ),
        history=deleted.history,
    )


def find_location_conflicts(records: Iterable[GlobalHistoryRecord]) -> dict[str, list[HistoryStage]]:
    """Mobiles present in more than one exclusive stage, with those stages."""

    stages: dict[str, list[HistoryStage]] = defaultdict(list)
    for record in records:
        if record.current_stage in EXCLUSIVE_STAGES:
            stages[record.mobile].append(record.current_stage)
    return {mobile: found for mobile, found in stages.items() if len(found) > 1}


def build_global_history(
    numbers: Sequence[NumberRecord],
    sales: Sequence[SaleRecord],
    prebookings: Sequence[PreBookingRecord],
    dealer_purchases: Sequence[DealerPurchaseRecord],
    deleted_numbers: Sequence[DeletedNumberRecord] = (),
) -> list[GlobalHistoryRecord]:
    """
    Merge every source collection into one list of history rows.

    Order: inventory, sales, pre-bookings, dealer purchases, deleted numbers.
    """

    records: list[GlobalHistoryRecord] = [
        *(_from_number(number) for number in numbers),
        *(_from_sale(sale) for sale in sales),
        *(_from_prebooking(prebooking) for prebooking in prebookings),
        *(_from_dealer_purchase(purchase) for purchase in dealer_purchases),
        *(_from_deleted(deleted) for deleted in deleted_numbers),
    ]

    conflicts = find_location_conflicts(records)
    if not conflicts:
        return records

    for mobile, stages in conflicts.items():
        logger.warning(
            f"Mobile {mobile} is present in more than one location",
            extra={"mobile": mobile, "stages": [stage.value for stage in stages]},
        )
    return [
        replace(record, location_conflict=True)
        if record.mobile in conflicts and record.current_stage in EXCLUSIVE_STAGES
        else record
        for record in records
    ]


def lifecycle_for(records: Iterable[GlobalHistoryRecord], mobile: str) -> list[LifecycleEvent]:
    """Every lifecycle event recorded for `mobile`, newest first, without duplicates."""

    merged = LifecycleLog()
    for record in records:
        if record.mobile != mobile:
            continue
        for event in record.history:
            merged = merged.with_event(event)
    return merged.newest_first()


__all__ = [
    "DeletionInfo",
    "EXCLUSIVE_STAGES",
    "GlobalHistoryRecord",
    "HistoryStage",
    "NOT_AVAILABLE",
    "PurchaseInfo",
    "SaleInfo",
    "build_global_history",
    "find_location_conflicts",
    "lifecycle_for",
]
