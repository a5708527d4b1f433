"""
Domain: work reminders.

Reminders are tasks assigned to one or more users. System-generated reminders
carry a `task_id` that doubles as an idempotency key: at most one reminder per
task id is ever created.

System task ids:
- `cocp-safecustody-<numberId>`: a COCP number's safe custody date arrived.
- `prebooked-rts-<preBookingId>`: a pre-booked number is RTS and can be sold.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .time import require_optional_utc_timestamp, require_utc_timestamp

COCP_SAFE_CUSTODY_PREFIX: str = "cocp-safecustody-"
PREBOOKED_RTS_PREFIX: str = "prebooked-rts-"


class ReminderStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"


def cocp_safe_custody_task_id(number_id: str) -> str:
    return f"{COCP_SAFE_CUSTODY_PREFIX}{number_id}"


def prebooked_rts_task_id(prebooking_id: str) -> str:
    return f"{PREBOOKED_RTS_PREFIX}{prebooking_id}"


@dataclass(frozen=True, slots=True)
class Reminder:
    id: Optional[str]
    sr_no: int
    task_name: str
    assigned_to: tuple[str, ...]
    status: ReminderStatus
    due_date: datetime
    created_by: str
    task_id: Optional[str] = None
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("due_date", self.due_date)
        require_optional_utc_timestamp("completion_date", self.completion_date)

    @property
    def is_pending(self) -> bool:
        return self.status == ReminderStatus.PENDING

    def is_assigned_to(self, name: str) -> bool:
        return name in self.assigned_to

    def linked_number_id(self) -> Optional[str]:
        """Number id this reminder tracks, for COCP safe custody reminders."""

        if self.task_id and self.task_id.startswith(COCP_SAFE_CUSTODY_PREFIX):
            return self.task_id[len(COCP_SAFE_CUSTODY_PREFIX):]
        return None

    def linked_prebooking_id(self) -> Optional[str]:
        if self.task_id and self.task_id.startswith(PREBOOKED_RTS_PREFIX):
            return self.task_id[len(PREBOOKED_RTS_PREFIX):]
        return None


__all__ = [
    "COCP_SAFE_CUSTODY_PREFIX",
    "PREBOOKED_RTS_PREFIX",
    "Reminder",
    "ReminderStatus",
    "cocp_safe_custody_task_id",
    "prebooked_rts_task_id",
]
