"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import the api, domain,
repositories and services modules, and provides an in-memory document store
that applies write batches the same way `commit_document_batch` does
(all-or-nothing, `update` merges top-level fields, history is a set-union by
event id).
"""

import copy
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

import pytest

# Add the project directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.number import NumberDraft, NumberStatus, NumberType  # noqa: E402
from domain.user import User, UserRole  # noqa: E402
from repositories.document_store import Collection, DocumentStoreError, WriteBatch  # noqa: E402
from repositories.record_mapping import user_to_document  # noqa: E402
from services.context import OperationContext  # noqa: E402
from services.record_store import RecordStore  # noqa: E402

# 2025-03-10 12:00 in Asia/Kolkata
NOW = datetime(2025, 3, 10, 6, 30, tzinfo=timezone.utc)

ADMIN = User(uid="uid-admin", email="asha@example.com", role=UserRole.ADMIN, display_name="Asha")
EMPLOYEE = User(uid="uid-ravi", email="ravi@example.com", role=UserRole.EMPLOYEE, display_name="Ravi")


class InMemoryDocumentStore:
    """DocumentStore keeping every collection in dictionaries."""

    def __init__(self) -> None:
        self.collections: dict[Collection, dict[str, dict[str, Any]]] = {c: {} for c in Collection}
        self.reject_writes = False
        self.commits = 0

    def fetch_collection(self, collection: Collection) -> list[dict[str, Any]]:
        return [dict(copy.deepcopy(data), id=doc_id) for doc_id, data in self.collections[collection].items()]

    def put(self, collection: Collection, doc_id: str, data: dict[str, Any]) -> None:
        self.collections[collection][doc_id] = copy.deepcopy(data)

    def get(self, collection: Collection, doc_id: str) -> dict[str, Any] | None:
        return self.collections[collection].get(doc_id)

    def commit(self, batch: WriteBatch) -> None:
        if self.reject_writes:
            raise DocumentStoreError("Missing or insufficient permissions.", code="42501")

        staged = copy.deepcopy(self.collections)
        for op in batch.operations:
            table = staged[op.collection]
            if op.kind == "set":
                table[op.doc_id] = copy.deepcopy(dict(op.data or {}))
            elif op.kind == "update":
                if op.doc_id not in table:
                    raise DocumentStoreError(f"Document {op.collection.value}/{op.doc_id} does not exist")
                current = table[op.doc_id]
                current.update(copy.deepcopy(dict(op.data or {})))
                history = list(current.get("history") or [])
                known = {event["id"] for event in history}
                for event in op.append_history:
                    if event["id"] not in known:
                        history.append(dict(event))
                        known.add(event["id"])
                if op.append_history:
                    current["history"] = history
            elif op.kind == "delete":
                table.pop(op.doc_id, None)
            else:
                raise DocumentStoreError(f"Unknown batch operation: {op.kind}")

        self.collections = staged
        self.commits += 1


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    docs = InMemoryDocumentStore()
    for user in (ADMIN, EMPLOYEE):
        docs.put(Collection.USERS, user.uid, user_to_document(user))
    return docs


@pytest.fixture
def store(documents: InMemoryDocumentStore) -> RecordStore:
    record_store = RecordStore(documents)
    record_store.start()
    return record_store


@pytest.fixture
def admin_ctx(store: RecordStore, clock: FixedClock) -> OperationContext:
    return OperationContext(store=store, actor=ADMIN, clock=clock)


@pytest.fixture
def employee_ctx(store: RecordStore, clock: FixedClock) -> OperationContext:
    return OperationContext(store=store, actor=EMPLOYEE, clock=clock)


@pytest.fixture
def make_draft() -> Callable[..., NumberDraft]:
    """Factory for a valid RTS prepaid draft; keyword arguments override fields."""

    def _make(mobile: str, **overrides: Any) -> NumberDraft:
        fields: dict[str, Any] = {
            "mobile": mobile,
            "status": NumberStatus.RTS,
            "purchase_from": "numberwale",
            "purchase_price": Decimal("5000"),
            "purchase_date": datetime(2025, 1, 5, 0, 0, tzinfo=timezone.utc),
            "number_type": NumberType.PREPAID,
            "sale_price": Decimal("8000"),
            "current_location": "Store",
        }
        fields.update(overrides)
        return NumberDraft(**fields)

    return _make
