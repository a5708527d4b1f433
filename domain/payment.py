"""
Domain: payments received from vendors (buyers) against sales.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    id: Optional[str]
    sr_no: int
    vendor_name: str
    amount: Decimal
    payment_date: datetime
    created_by: str
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("payment_date", self.payment_date)
        if self.amount <= 0:
            raise ValueError("amount must be positive")


__all__ = ["PaymentRecord"]
