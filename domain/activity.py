"""
Domain: activity feed entries (the business-level audit log).

Activities are written by operations alongside their data changes, and by the
recurring checks under the `System` name.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .time import DEFAULT_BUSINESS_TIMEZONE, business_date, require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Activity:
    id: Optional[str]
    sr_no: int
    employee_name: str
    action: str
    description: str
    timestamp: datetime
    created_by: str

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)


def describe_bulk(base: str, mobiles: Iterable[str]) -> str:
    """
    Activity text for an operation over many numbers.

    "Sold to Ravi" + [a, b] -> "Sold to Ravi 2 numbers: a, b."
    """

    listed = list(mobiles)
    if not listed:
        return f"{base} 0 numbers."
    return f"{base} {len(listed)} numbers: {', '.join(listed)}."


def format_amount(amount: Decimal) -> str:
    """Rupee amount as shown in descriptions: 5000 -> "5000", 99.5 -> "99.5"."""

    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), "f")


def format_day(value: datetime, tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> str:
    return business_date(value, tz_name).strftime("%d/%m/%Y")


__all__ = ["Activity", "describe_bulk", "format_amount", "format_day"]
