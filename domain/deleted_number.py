"""
Domain: archived (deleted) numbers.

Deleting a number never discards it: the record is archived with a reason so an
admin can restore it later with its history intact.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .lifecycle import LifecycleLog
from .number import NumberRecord
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class DeletedNumberRecord:
    id: Optional[str]
    original_id: str
    original_sr_no: int
    mobile: str
    sum: int
    deletion_reason: str
    deleted_by: str
    deleted_at: datetime
    original_number_data: NumberRecord

    def __post_init__(self) -> None:
        require_utc_timestamp("deleted_at", self.deleted_at)

    @property
    def history(self) -> LifecycleLog:
        return self.original_number_data.history


__all__ = ["DeletedNumberRecord"]
