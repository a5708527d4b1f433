"""
Domain: lifecycle events and the per-number lifecycle log.

Every state-changing operation on a number appends exactly one LifecycleEvent.

Invariants:
- Events are never mutated or removed once appended.
- Appending is a set-union keyed by event_id: re-appending a known event is a no-op.
- Timestamps produced by `next_event` are strictly increasing within a log.
- Chronology is always derived by sorting on timestamp at read time; the stored
  order of the events is not trusted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Iterator, Optional
from uuid import uuid4

from .time import require_utc_timestamp

SYSTEM_ACTOR: str = "System"

_MONOTONIC_STEP = timedelta(microseconds=1)


class LifecycleAction(str, Enum):
    CREATED = "Created"
    DETAILS_UPDATED = "Details Updated"
    RTS_STATUS_CHANGED = "RTS Status Changed"
    UPLOAD_STATUS_CHANGED = "Upload Status Changed"
    ASSIGNED = "Assigned"
    CHECKED_IN = "Checked In"
    SOLD = "Sold"
    SALE_CANCELLED = "Sale Cancelled"
    PRE_BOOKED = "Pre-Booked"
    PRE_BOOKING_CANCELLED = "Pre-booking Cancelled"
    COCP_DATE_CHANGED = "COCP Date Changed"
    LOCATION_UPDATED = "Location Updated"
    POSTPAID_DETAILS_UPDATED = "Postpaid Details Updated"
    DELETED = "Deleted"
    RESTORED = "Restored"


def new_event_id(at: datetime) -> str:
    """Event id in the `<epoch millis>-<random>` form used by stored histories."""

    return f"{int(at.timestamp() * 1000)}-{uuid4().hex[:7]}"


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    event_id: str
    action: str
    description: str
    timestamp: datetime
    performed_by: str

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)


@dataclass(frozen=True, slots=True)
class LifecycleLog:
    """
    Ordered, append-only history of a number.

    The log is immutable; `append` and `with_event` return a new log.
    """

    events: tuple[LifecycleEvent, ...] = ()

    @classmethod
    def of(cls, events: Iterable[LifecycleEvent]) -> "LifecycleLog":
        log = cls()
        for event in events:
            log = log.with_event(event)
        return log

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[LifecycleEvent]:
        return iter(self.events)

    @property
    def newest_timestamp(self) -> Optional[datetime]:
        if not self.events:
            return None
        return max(event.timestamp for event in self.events)

    def next_event(
        self,
        action: LifecycleAction | str,
        description: str,
        performed_by: str,
        at: datetime,
    ) -> LifecycleEvent:
        """
        Build the event that `append` would add, without adding it.

        If `at` is not after the newest existing event the timestamp is bumped
        to one microsecond past it.
        """

        require_utc_timestamp("at", at)
        stamp = at
        newest = self.newest_timestamp
        if newest is not None and stamp <= newest:
            stamp = newest + _MONOTONIC_STEP

        return LifecycleEvent(
            event_id=new_event_id(stamp),
            action=action.value if isinstance(action, LifecycleAction) else str(action),
            description=description,
            timestamp=stamp,
            performed_by=performed_by,
        )

    def with_event(self, event: LifecycleEvent) -> "LifecycleLog":
        if any(existing.event_id == event.event_id for existing in self.events):
            return self
        return LifecycleLog(self.events + (event,))

    def append(
        self,
        action: LifecycleAction | str,
        description: str,
        performed_by: str,
        at: datetime,
    ) -> "LifecycleLog":
        return self.with_event(self.next_event(action, description, performed_by, at))

    def chronological(self) -> list[LifecycleEvent]:
        return sorted(self.events, key=lambda event: event.timestamp)

    def newest_first(self) -> list[LifecycleEvent]:
        return sorted(self.events, key=lambda event: event.timestamp, reverse=True)


__all__ = [
    "LifecycleAction",
    "LifecycleEvent",
    "LifecycleLog",
    "SYSTEM_ACTOR",
    "new_event_id",
]
