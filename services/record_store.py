"""
Record store: the in-memory mirror of every collection.

The store is the single place the rest of the service reads data from. It has
an explicit lifecycle:

- `start()` loads every collection once.
- `sync(collections)` re-reads collections from the database; it is driven by
  the snapshot feed (a recurring task) and by operations after each write.
- `apply_snapshot(collection, documents)` is the subscription callback: it
  swaps one collection's snapshot atomically.
- `stop()` tears the state down.

Invariants:
- Readers always see a whole snapshot of a collection, never a partial one.
- Nothing is written to the local snapshot optimistically; writes only become
  visible once the database returns them.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from domain.activity import Activity
from domain.dealer_purchase import DealerPurchaseRecord
from domain.deleted_number import DeletedNumberRecord
from domain.history import GlobalHistoryRecord, build_global_history
from domain.number import NumberRecord
from domain.payment import PaymentRecord
from domain.prebooking import PreBookingRecord
from domain.reminder import Reminder
from domain.sale import SaleRecord
from domain.user import User
from repositories.document_store import Collection, DocumentStore
from repositories.record_mapping import (
    document_to_activity,
    document_to_dealer_purchase,
    document_to_deleted_number,
    document_to_number,
    document_to_payment,
    document_to_prebooking,
    document_to_reminder,
    document_to_sale,
    document_to_user,
)

logger = logging.getLogger(__name__)

DEFAULT_VENDORS: tuple[str, ...] = (
    "lifetimenumber",
    "vipnumberstore",
    "vipnumbershop",
    "numberwale",
    "numberspoint",
    "vipfancynumber",
    "numberatm",
    "numbersolution",
)

RECENT_AUTO_RTS_WINDOW = timedelta(minutes=5)

_PARSERS: dict[Collection, Callable[[Mapping[str, Any]], Any]] = {
    Collection.NUMBERS: document_to_number,
    Collection.SALES: document_to_sale,
    Collection.REMINDERS: document_to_reminder,
    Collection.ACTIVITIES: document_to_activity,
    Collection.DEALER_PURCHASES: document_to_dealer_purchase,
    Collection.PREBOOKINGS: document_to_prebooking,
    Collection.PAYMENTS: document_to_payment,
    Collection.USERS: document_to_user,
    Collection.DELETED_NUMBERS: document_to_deleted_number,
}

SnapshotListener = Callable[[Collection], None]


class RecordStore:
    """Typed, thread-safe snapshot of all collections."""

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents
        self._lock = threading.RLock()
        self._snapshots: dict[Collection, tuple[Any, ...]] = {}
        self._listeners: list[SnapshotListener] = []
        self._recent_auto_rts: dict[str, datetime] = {}
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def loading(self) -> bool:
        with self._lock:
            return len(self._snapshots) < len(Collection)

    def start(self) -> None:
        self.sync()
        self._started = True
        logger.info("Record store started", extra={"collections": len(self._snapshots)})

    def stop(self) -> None:
        with self._lock:
            self._snapshots.clear()
            self._recent_auto_rts.clear()
        self._started = False
        logger.info("Record store stopped")

    def sync(self, collections: Optional[Iterable[Collection]] = None) -> None:
        """Re-read the given collections (all when omitted) from the database."""

        for collection in collections if collections is not None else Collection:
            self.apply_snapshot(collection, self._documents.fetch_collection(collection))

    def apply_snapshot(self, collection: Collection, documents: Sequence[Mapping[str, Any]]) -> None:
        parse = _PARSERS[collection]
        records: list[Any] = []
        for document in documents:
            try:
                records.append(parse(document))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    f"Skipping malformed {collection.value} document",
                    extra={"collection": collection.value, "doc_id": document.get("id"), "error": str(e)},
                )

        with self._lock:
            self._snapshots[collection] = tuple(records)
            listeners = list(self._listeners)

        for listener in listeners:
            listener(collection)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def _get(self, collection: Collection) -> tuple[Any, ...]:
        with self._lock:
            return self._snapshots.get(collection, ())

    @property
    def numbers(self) -> tuple[NumberRecord, ...]:
        return self._get(Collection.NUMBERS)

    @property
    def sales(self) -> tuple[SaleRecord, ...]:
        return self._get(Collection.SALES)

    @property
    def reminders(self) -> tuple[Reminder, ...]:
        return self._get(Collection.REMINDERS)

    @property
    def activities(self) -> tuple[Activity, ...]:
        return self._get(Collection.ACTIVITIES)

    @property
    def dealer_purchases(self) -> tuple[DealerPurchaseRecord, ...]:
        return self._get(Collection.DEALER_PURCHASES)

    @property
    def prebookings(self) -> tuple[PreBookingRecord, ...]:
        return self._get(Collection.PREBOOKINGS)

    @property
    def payments(self) -> tuple[PaymentRecord, ...]:
        return self._get(Collection.PAYMENTS)

    @property
    def users(self) -> tuple[User, ...]:
        return self._get(Collection.USERS)

    @property
    def deleted_numbers(self) -> tuple[DeletedNumberRecord, ...]:
        return self._get(Collection.DELETED_NUMBERS)

    def find(self, collection: Collection, record_id: str) -> Optional[Any]:
        for record in self._get(collection):
            key = record.uid if collection == Collection.USERS else record.id
            if key == record_id:
                return record
        return None

    def user_by_uid(self, uid: str) -> Optional[User]:
        return self.find(Collection.USERS, uid)

    # ------------------------------------------------------------------
    # Role-filtered views
    # ------------------------------------------------------------------

    def numbers_for(self, user: User) -> tuple[NumberRecord, ...]:
        if user.is_admin:
            return self.numbers
        return tuple(n for n in self.numbers if n.assigned_to == user.display_name)

    def reminders_for(self, user: User) -> tuple[Reminder, ...]:
        if user.is_admin:
            return self.reminders
        return tuple(r for r in self.reminders if r.is_assigned_to(user.display_name or ""))

    def prebookings_for(self, user: User) -> tuple[PreBookingRecord, ...]:
        if user.is_admin:
            return self.prebookings
        return tuple(pb for pb in self.prebookings if pb.assigned_to == user.display_name)

    def sales_for(self, user: User) -> tuple[SaleRecord, ...]:
        if user.is_admin:
            return self.sales
        return tuple(
            s for s in self.sales
            if s.original_number_data is not None and s.original_number_data.assigned_to == user.display_name
        )

    def activities_for(self, user: User) -> tuple[Activity, ...]:
        if user.is_admin:
            return self.activities
        return tuple(a for a in self.activities if a.employee_name == user.display_name)

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------

    @property
    def employees(self) -> list[str]:
        """Display names of every user, sorted."""

        return sorted(u.display_name for u in self.users if u.display_name)

    @property
    def admin_names(self) -> list[str]:
        return [u.display_name for u in self.users if u.is_admin and u.display_name]

    @property
    def vendors(self) -> list[str]:
        """Default vendor list merged with every buyer that appears on a sale."""

        return sorted(set(DEFAULT_VENDORS) | {s.sold_to for s in self.sales if s.sold_to})

    def global_history(self) -> list[GlobalHistoryRecord]:
        return build_global_history(
            self.numbers,
            self.sales,
            self.prebookings,
            self.dealer_purchases,
            self.deleted_numbers,
        )

    def is_mobile_duplicate(self, mobile: str, current_id: Optional[str] = None) -> bool:
        """
        True when `mobile` already exists in inventory, sales, dealer purchases
        or pre-bookings.

        With `current_id`, editing a number without changing its mobile is not
        a duplicate.
        """

        if not mobile:
            return False

        if current_id:
            current = self.find(Collection.NUMBERS, current_id)
            if current is not None and current.mobile == mobile:
                return False

        existing = {n.mobile for n in self.numbers}
        existing.update(s.mobile for s in self.sales)
        existing.update(dp.mobile for dp in self.dealer_purchases)
        existing.update(pb.mobile for pb in self.prebookings)
        return mobile in existing

    def next_sr_no(self, collection: Collection) -> int:
        records = self._get(collection)
        if not records:
            return 1
        return max(getattr(r, "sr_no", 0) or 0 for r in records) + 1

    # ------------------------------------------------------------------
    # Recently auto-RTS numbers (pinned at the top of the inventory view)
    # ------------------------------------------------------------------

    def mark_recently_auto_rts(self, number_ids: Iterable[str], now: datetime) -> None:
        with self._lock:
            for number_id in number_ids:
                self._recent_auto_rts[number_id] = now + RECENT_AUTO_RTS_WINDOW

    def recently_auto_rts_ids(self, now: datetime) -> frozenset[str]:
        with self._lock:
            expired = [k for k, until in self._recent_auto_rts.items() if until <= now]
            for number_id in expired:
                del self._recent_auto_rts[number_id]
            return frozenset(self._recent_auto_rts)


__all__ = ["DEFAULT_VENDORS", "RECENT_AUTO_RTS_WINDOW", "RecordStore"]
