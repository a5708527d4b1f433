"""
Document store repository (persistence).

The hosted database is used as a document store: every collection is a
Supabase table `(id text primary key, data jsonb)` and every record is one JSON
document. This module provides *only* persistence primitives:

- `fetch_collection`: read every document of a collection.
- `commit`: apply a WriteBatch atomically via the `commit_document_batch`
  PostgreSQL function (see sql/document_store.sql).

It does not enforce business rules. Update operations may carry
`append_history` events, which the database merges into the document's
`history` array as a set-union keyed by event id, so concurrent appends never
overwrite each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Protocol, Sequence
from uuid import uuid4

from postgrest.exceptions import APIError

from repositories.client import get_supabase

_COMMIT_FUNCTION: str = "commit_document_batch"
_PAGE_SIZE: int = 1000


class Collection(str, Enum):
    NUMBERS = "numbers"
    SALES = "sales"
    REMINDERS = "reminders"
    ACTIVITIES = "activities"
    DEALER_PURCHASES = "dealerPurchases"
    PREBOOKINGS = "prebookings"
    PAYMENTS = "payments"
    USERS = "users"
    DELETED_NUMBERS = "deletedNumbers"

    @property
    def table(self) -> str:
        """Supabase table backing this collection."""

        return _TABLES[self]


_TABLES: dict[Collection, str] = {
    Collection.NUMBERS: "numbers",
    Collection.SALES: "sales",
    Collection.REMINDERS: "reminders",
    Collection.ACTIVITIES: "activities",
    Collection.DEALER_PURCHASES: "dealer_purchases",
    Collection.PREBOOKINGS: "prebookings",
    Collection.PAYMENTS: "payments",
    Collection.USERS: "users",
    Collection.DELETED_NUMBERS: "deleted_numbers",
}


class DocumentStoreError(RuntimeError):
    """Raised when the database rejects a read or a batch."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class WriteOperation:
    kind: str  # set, update, delete
    collection: Collection
    doc_id: str
    data: Optional[Mapping[str, Any]] = None
    append_history: tuple[Mapping[str, Any], ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "op": self.kind,
            "table": self.collection.table,
            "id": self.doc_id,
            "data": dict(self.data) if self.data is not None else None,
            "append_history": [dict(event) for event in self.append_history],
        }


@dataclass
class WriteBatch:
    """
    Ordered set of writes committed all-or-nothing.

    Operations are applied in insertion order inside one database transaction.
    """

    operations: List[WriteOperation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.operations)

    def set(self, collection: Collection, data: Mapping[str, Any], doc_id: Optional[str] = None) -> str:
        """Create (or fully replace) a document; returns its id."""

        new_id = doc_id or uuid4().hex
        self.operations.append(WriteOperation("set", collection, new_id, data))
        return new_id

    def update(
        self,
        collection: Collection,
        doc_id: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        append_history: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        self.operations.append(
            WriteOperation("update", collection, doc_id, data or {}, tuple(append_history))
        )

    def delete(self, collection: Collection, doc_id: str) -> None:
        self.operations.append(WriteOperation("delete", collection, doc_id))

    @property
    def collections(self) -> frozenset[Collection]:
        return frozenset(operation.collection for operation in self.operations)

    def to_payload(self) -> list[dict[str, Any]]:
        return [operation.to_payload() for operation in self.operations]


class DocumentStore(Protocol):
    def fetch_collection(self, collection: Collection) -> list[dict[str, Any]]:
        ...

    def commit(self, batch: WriteBatch) -> None:
        ...


def _row_to_document(row: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a `(id, data)` row into a document dict carrying its `id`."""

    document = dict(row.get("data") or {})
    document["id"] = str(row["id"])
    return document


class SupabaseDocumentStore:
    """DocumentStore backed by Supabase tables and one RPC for atomic batches."""

    def __init__(self, client: Any = None, page_size: int = _PAGE_SIZE) -> None:
        self._client = client
        self._page_size = page_size

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def fetch_collection(self, collection: Collection) -> list[dict[str, Any]]:
        """
        Retrieve every document in a collection.

        Pages through the table 1000 rows at a time (PostgREST row cap).
        """

        rows: list[Mapping[str, Any]] = []
        offset = 0

        while True:
            response = (
                self.client.table(collection.table)
                .select("id,data")
                .order("id")
                .range(offset, offset + self._page_size - 1)
                .execute()
            )

            error = getattr(response, "error", None)
            if error:
                raise DocumentStoreError(f"Failed to fetch {collection.value}: {error}")

            page_rows = getattr(response, "data", None) or []
            rows.extend(page_rows)
            if len(page_rows) < self._page_size:
                break
            offset += len(page_rows)

        return [_row_to_document(row) for row in rows]

    def commit(self, batch: WriteBatch) -> None:
        """
        Apply every operation of `batch` in one transaction.

        Raises:
            DocumentStoreError: the database rejected the batch; nothing was applied.
        """

        if not batch:
            return

        try:
            response = self.client.rpc(_COMMIT_FUNCTION, {"p_operations": batch.to_payload()}).execute()
        except APIError as e:
            # supabase-py raises APIError for some JSON results of PostgreSQL functions,
            # including successful ones
            try:
                error_data = e.json() if callable(getattr(e, "json", None)) else {}
            except (TypeError, ValueError):
                error_data = {}

            if isinstance(error_data, dict) and error_data.get("success") is True:
                return

            message = error_data.get("message") if isinstance(error_data, dict) else None
            code = error_data.get("code") if isinstance(error_data, dict) else None
            raise DocumentStoreError(f"Failed to commit batch: {message or e}", code=code) from e

        error = getattr(response, "error", None)
        if error:
            raise DocumentStoreError(f"Failed to commit batch: {error}")

        result = getattr(response, "data", None)
        if isinstance(result, dict) and result.get("success") is False:
            raise DocumentStoreError(
                f"Failed to commit batch: {result.get('message')}",
                code=result.get("error"),
            )


__all__ = [
    "Collection",
    "DocumentStore",
    "DocumentStoreError",
    "SupabaseDocumentStore",
    "WriteBatch",
    "WriteOperation",
]
