"""
Domain: pre-booked numbers.

A pre-booking reserves a number for a buyer before the sale is final. The
number's record leaves inventory and is embedded as `original_number_data`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .lifecycle import LifecycleLog
from .number import NumberRecord, NumberStatus, UploadStatus
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class PreBookingRecord:
    id: Optional[str]
    sr_no: int
    mobile: str
    sum: int
    upload_status: UploadStatus
    pre_booking_date: datetime
    created_by: str
    original_number_data: Optional[NumberRecord] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("pre_booking_date", self.pre_booking_date)

    @property
    def history(self) -> LifecycleLog:
        if self.original_number_data is None:
            return LifecycleLog()
        return self.original_number_data.history

    @property
    def assigned_to(self) -> Optional[str]:
        if self.original_number_data is None:
            return None
        return self.original_number_data.assigned_to

    @property
    def is_rts(self) -> bool:
        return (
            self.original_number_data is not None
            and self.original_number_data.status == NumberStatus.RTS
        )


__all__ = ["PreBookingRecord"]
