"""
List views: every table of the back office expressed as a parameterization of
the shared query pipeline.

Each view starts from the role-filtered collection of the store, applies its
filters, sorts by one of its sortable columns and paginates. Column names are
the snake_case attribute names of the records; an unknown column is a
ValidationError rather than a silent no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from domain.activity import Activity
from domain.dealer_purchase import DealerPurchaseRecord
from domain.deleted_number import DeletedNumberRecord
from domain.digits import digit_sum
from domain.history import GlobalHistoryRecord
from domain.number import NumberRecord, NumberType
from domain.payment import PaymentRecord
from domain.prebooking import PreBookingRecord
from domain.reminder import Reminder
from domain.sale import SaleRecord
from domain.user import User
from services.errors import ValidationError
from services.query_pipeline import (
    ALL,
    AdvancedSearch,
    Page,
    Predicate,
    QueryPipeline,
    SortDirection,
    SortSpec,
    active_predicates,
    field_equals,
    mobile_contains,
)
from services.record_store import RecordStore

ColumnKey = Union[str, Callable[[Any], Any]]


@dataclass(frozen=True, slots=True)
class ListQuery:
    """Paging and sorting parameters common to every view."""

    search: str = ""
    sort: Optional[str] = None
    direction: SortDirection = SortDirection.ASCENDING
    page: int = 1
    page_size: Optional[int] = 10


NUMBER_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "mobile": "mobile",
    "sum": "sum",
    "two_digit_sum": lambda n: digit_sum(n.mobile),
    "status": "status",
    "rts_date": "rts_date",
    "upload_status": "upload_status",
    "number_type": "number_type",
    "assigned_to": "assigned_to",
    "name": "name",
    "purchase_from": "purchase_from",
    "purchase_price": "purchase_price",
    "sale_price": "sale_price",
    "purchase_date": "purchase_date",
    "current_location": "current_location",
    "location_type": "location_type",
    "check_in_date": "check_in_date",
    "safe_custody_date": "safe_custody_date",
    "account_name": "account_name",
    "bill_date": "bill_date",
    "pd_bill": "pd_bill",
}

SALE_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "mobile": "mobile",
    "sum": "sum",
    "sold_to": "sold_to",
    "sale_price": "sale_price",
    "sale_date": "sale_date",
    "upload_status": "upload_status",
    "purchase_price": "purchase_price",
    "profit": "profit",
}

PREBOOKING_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "mobile": "mobile",
    "sum": "sum",
    "upload_status": "upload_status",
    "pre_booking_date": "pre_booking_date",
    "assigned_to": "assigned_to",
    "status": "original_number_data.status",
}

DEALER_PURCHASE_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "mobile": "mobile",
    "sum": "sum",
    "dealer_name": "dealer_name",
    "price": "price",
}

REMINDER_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "task_name": "task_name",
    "status": "status",
    "due_date": "due_date",
    "completion_date": "completion_date",
    "assigned_to": lambda r: ", ".join(r.assigned_to),
}

HISTORY_COLUMNS: dict[str, ColumnKey] = {
    "mobile": "mobile",
    "rts_status": "rts_status",
    "number_type": "number_type",
    "current_stage": "current_stage",
}

DELETED_NUMBER_COLUMNS: dict[str, ColumnKey] = {
    "original_sr_no": "original_sr_no",
    "mobile": "mobile",
    "sum": "sum",
    "deletion_reason": "deletion_reason",
    "deleted_by": "deleted_by",
    "deleted_at": "deleted_at",
}

ACTIVITY_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "employee_name": "employee_name",
    "action": "action",
    "timestamp": "timestamp",
}

PAYMENT_COLUMNS: dict[str, ColumnKey] = {
    "sr_no": "sr_no",
    "vendor_name": "vendor_name",
    "amount": "amount",
    "payment_date": "payment_date",
}


def _sort_spec(
    query: ListQuery,
    columns: Mapping[str, ColumnKey],
    default: Optional[SortSpec] = None,
) -> Optional[SortSpec]:
    if not query.sort:
        return default
    if query.sort not in columns:
        raise ValidationError(
            f"Cannot sort by '{query.sort}'.",
            problems=[f"sort must be one of: {', '.join(sorted(columns))}"],
        )
    return SortSpec(columns[query.sort], query.direction)


def _pipeline(
    query: ListQuery,
    predicates: list[Predicate],
    sort: Optional[SortSpec],
    **kwargs: Any,
) -> QueryPipeline:
    return QueryPipeline(
        predicates=predicates,
        sort=sort,
        page=query.page,
        page_size=query.page_size,
        **kwargs,
    )


def _text_contains(term: str, *paths: str) -> Optional[Predicate]:
    """Case-insensitive substring match over any of the given text attributes."""

    if not term:
        return None
    needle = term.strip().lower()

    def _matches(item: Any) -> bool:
        for path in paths:
            value = getattr(item, path, None)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    return _matches


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

def number_pipeline(
    store: RecordStore,
    query: ListQuery,
    *,
    status: str = ALL,
    number_type: str = ALL,
    upload_status: str = ALL,
    assigned_to: str = ALL,
    advanced: Optional[AdvancedSearch] = None,
    now: Optional[datetime] = None,
) -> QueryPipeline:
    advanced = advanced or AdvancedSearch()
    pinned = store.recently_auto_rts_ids(now) if now is not None else frozenset()
    return _pipeline(
        query,
        active_predicates(
            mobile_contains(query.search),
            field_equals("status", status),
            field_equals("number_type", number_type),
            field_equals("upload_status", upload_status),
            field_equals("assigned_to", assigned_to),
            advanced.predicate(),
        ),
        _sort_spec(query, NUMBER_COLUMNS, SortSpec("sr_no")),
        pinned=pinned,
        rank=advanced.ranking(),
    )


def numbers_view(store: RecordStore, user: User, query: ListQuery, **filters: Any) -> Page[NumberRecord]:
    """
    The "All Numbers" table.

    Numbers promoted to RTS by the scheduler in the last few minutes are pinned
    at the top when `now` is passed.
    """

    return number_pipeline(store, query, **filters).run(store.numbers_for(user))


def postpaid_view(store: RecordStore, user: User, query: ListQuery) -> Page[NumberRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(field_equals("number_type", NumberType.POSTPAID), mobile_contains(query.search)),
        _sort_spec(query, NUMBER_COLUMNS),
    )
    return pipeline.run(store.numbers_for(user))


def cocp_view(store: RecordStore, user: User, query: ListQuery) -> Page[NumberRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(field_equals("number_type", NumberType.COCP), mobile_contains(query.search)),
        _sort_spec(query, NUMBER_COLUMNS, SortSpec("safe_custody_date")),
    )
    return pipeline.run(store.numbers_for(user))


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SalesSummary:
    """
    Totals over every sale matching the filters (not just the current page).

    total_paid counts all payments, or only the selected buyer's when the
    view is filtered by buyer.
    """

    total_billed: Decimal
    total_purchase: Decimal
    profit_loss: Decimal
    total_paid: Decimal
    amount_remaining: Decimal
    record_count: int


@dataclass(frozen=True, slots=True)
class SalesView:
    page: Page[SaleRecord]
    summary: SalesSummary
    sold_to_options: list[str]


def summarize_sales(sales: list[SaleRecord], payments: tuple[PaymentRecord, ...], sold_to: str = ALL) -> SalesSummary:
    total_billed = sum((s.sale_price for s in sales), Decimal("0"))
    total_purchase = sum((s.purchase_price for s in sales), Decimal("0"))

    relevant = payments if sold_to in ("", ALL) else [p for p in payments if p.vendor_name == sold_to]
    total_paid = sum((p.amount for p in relevant), Decimal("0"))

    return SalesSummary(
        total_billed=total_billed,
        total_purchase=total_purchase,
        profit_loss=total_billed - total_purchase,
        total_paid=total_paid,
        amount_remaining=total_billed - total_paid,
        record_count=len(sales),
    )


def filtered_sales(store: RecordStore, user: User, query: ListQuery, sold_to: str = ALL) -> list[SaleRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(field_equals("sold_to", sold_to), mobile_contains(query.search)),
        _sort_spec(query, SALE_COLUMNS),
    )
    return pipeline.apply(store.sales_for(user))


def sales_view(store: RecordStore, user: User, query: ListQuery, sold_to: str = ALL) -> SalesView:
    visible = store.sales_for(user)
    matching = filtered_sales(store, user, query, sold_to)
    return SalesView(
        page=_pipeline(query, [], None).paginate(matching),
        summary=summarize_sales(matching, store.payments, sold_to),
        sold_to_options=sorted({s.sold_to for s in visible if s.sold_to}),
    )


# ---------------------------------------------------------------------------
# Other collections
# ---------------------------------------------------------------------------

def prebookings_view(store: RecordStore, user: User, query: ListQuery) -> Page[PreBookingRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(mobile_contains(query.search)),
        _sort_spec(query, PREBOOKING_COLUMNS, SortSpec("sr_no")),
    )
    return pipeline.run(store.prebookings_for(user))


def dealer_purchases_view(store: RecordStore, query: ListQuery, dealer_name: str = ALL) -> Page[DealerPurchaseRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(mobile_contains(query.search), field_equals("dealer_name", dealer_name)),
        _sort_spec(query, DEALER_PURCHASE_COLUMNS, SortSpec("sr_no")),
    )
    return pipeline.run(store.dealer_purchases)


def reminders_view(store: RecordStore, user: User, query: ListQuery, status: str = ALL) -> Page[Reminder]:
    """Pending reminders always come first, then the selected column (due date by default)."""

    pipeline = _pipeline(
        query,
        active_predicates(field_equals("status", status), _text_contains(query.search, "task_name")),
        _sort_spec(query, REMINDER_COLUMNS, SortSpec("due_date")),
        rank=lambda r: 1 if r.is_pending else 0,
    )
    return pipeline.run(store.reminders_for(user))


def history_view(store: RecordStore, query: ListQuery, stage: str = ALL) -> Page[GlobalHistoryRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(mobile_contains(query.search), field_equals("current_stage", stage)),
        _sort_spec(query, HISTORY_COLUMNS),
    )
    return pipeline.run(store.global_history())


def deleted_numbers_view(store: RecordStore, query: ListQuery) -> Page[DeletedNumberRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(mobile_contains(query.search)),
        _sort_spec(query, DELETED_NUMBER_COLUMNS, SortSpec("deleted_at", SortDirection.DESCENDING)),
    )
    return pipeline.run(store.deleted_numbers)


def activities_view(store: RecordStore, user: User, query: ListQuery) -> Page[Activity]:
    pipeline = _pipeline(
        query,
        active_predicates(_text_contains(query.search, "employee_name", "action", "description")),
        _sort_spec(query, ACTIVITY_COLUMNS, SortSpec("timestamp", SortDirection.DESCENDING)),
    )
    return pipeline.run(store.activities_for(user))


def payments_view(store: RecordStore, query: ListQuery, vendor_name: str = ALL) -> Page[PaymentRecord]:
    pipeline = _pipeline(
        query,
        active_predicates(field_equals("vendor_name", vendor_name), _text_contains(query.search, "vendor_name", "notes")),
        _sort_spec(query, PAYMENT_COLUMNS, SortSpec("payment_date", SortDirection.DESCENDING)),
    )
    return pipeline.run(store.payments)


__all__ = [
    "ListQuery",
    "SalesSummary",
    "SalesView",
    "activities_view",
    "cocp_view",
    "dealer_purchases_view",
    "deleted_numbers_view",
    "filtered_sales",
    "history_view",
    "number_pipeline",
    "numbers_view",
    "payments_view",
    "postpaid_view",
    "prebookings_view",
    "reminders_view",
    "sales_view",
    "summarize_sales",
]
