"""
Domain: sale records.

A sale is created when a number leaves inventory (or the pre-booking list) for a
buyer. The sold number's full record, history included, is embedded as
`original_number_data` so a cancelled sale can put the number back exactly as
it was.

Invariants:
- A mobile is in at most one of inventory, sales and pre-bookings at a time.
- `sale_date` is a UTC timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .lifecycle import LifecycleLog
from .number import NumberRecord, UploadStatus
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Immutable record of one number sold to one buyer.

    All timestamps must be passed explicitly.
    """

    id: Optional[str]
    sr_no: int
    mobile: str
    sum: int
    sold_to: str
    sale_price: Decimal
    sale_date: datetime
    upload_status: UploadStatus
    created_by: str
    original_number_data: Optional[NumberRecord] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("sale_date", self.sale_date)

    @property
    def history(self) -> LifecycleLog:
        if self.original_number_data is None:
            return LifecycleLog()
        return self.original_number_data.history

    @property
    def purchase_price(self) -> Decimal:
        if self.original_number_data is None:
            return Decimal("0")
        return self.original_number_data.purchase_price

    @property
    def profit(self) -> Decimal:
        return self.sale_price - self.purchase_price


__all__ = ["SaleRecord"]
