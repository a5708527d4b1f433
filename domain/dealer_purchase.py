"""
Domain: numbers bought in from dealers (tracked separately from inventory).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True, slots=True)
class DealerPurchaseRecord:
    id: Optional[str]
    sr_no: int
    mobile: str
    sum: int
    dealer_name: str
    price: Decimal
    created_by: str


__all__ = ["DealerPurchaseRecord"]
