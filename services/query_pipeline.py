"""
Query pipeline shared by every list view: filter -> sort -> paginate.

Sorting rules:
- Stable: records with equal keys keep their input order.
- Missing values (None) sort last in both directions.
- Strings compare case-insensitively.
- `rank` (when given) takes precedence over the column sort, highest first.
- `pinned` ids always come first, ahead of ranking and column order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from domain.digits import digit_sum, max_digit_repetition

T = TypeVar("T")

Predicate = Callable[[Any], bool]

ALL: str = "all"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


def _resolve(item: Any, path: str) -> Any:
    value = item
    for part in path.split("."):
        if value is None:
            return None
        value = getattr(value, part, None)
    return value


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value.casefold()
    return value


@dataclass(frozen=True, slots=True)
class SortSpec:
    """Column to sort by: an attribute path ("original_number_data.purchase_price") or a key function."""

    key: str | Callable[[Any], Any]
    direction: SortDirection = SortDirection.ASCENDING

    def value_of(self, item: Any) -> Any:
        if callable(self.key):
            return self.key(item)
        return _resolve(item, self.key)


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: List[T]
    total_items: int
    page: int
    page_size: Optional[int]
    total_pages: int


@dataclass(frozen=True)
class QueryPipeline:
    predicates: Sequence[Predicate] = ()
    sort: Optional[SortSpec] = None
    page: int = 1
    page_size: Optional[int] = 10
    pinned: frozenset[str] = field(default_factory=frozenset)
    rank: Optional[Callable[[Any], int]] = None

    def filter(self, items: Iterable[T]) -> list[T]:
        return [item for item in items if all(predicate(item) for predicate in self.predicates)]

    def order(self, items: Sequence[T]) -> list[T]:
        ordered = list(items)

        if self.sort is not None:
            present = [(self.sort.value_of(item), item) for item in ordered]
            with_value = [pair for pair in present if pair[0] is not None]
            missing = [item for value, item in present if value is None]
            with_value.sort(
                key=lambda pair: _comparable(pair[0]),
                reverse=self.sort.direction == SortDirection.DESCENDING,
            )
            ordered = [item for _, item in with_value] + missing

        if self.rank is not None:
            ordered.sort(key=lambda item: -self.rank(item))

        if self.pinned:
            ordered = (
                [item for item in ordered if getattr(item, "id", None) in self.pinned]
                + [item for item in ordered if getattr(item, "id", None) not in self.pinned]
            )

        return ordered

    def paginate(self, items: Sequence[T]) -> Page[T]:
        total = len(items)
        if self.page_size is None or self.page_size <= 0:
            return Page(items=list(items), total_items=total, page=1, page_size=None, total_pages=1 if total else 0)

        total_pages = math.ceil(total / self.page_size)
        page = max(1, self.page)
        start = (page - 1) * self.page_size
        return Page(
            items=list(items[start:start + self.page_size]),
            total_items=total,
            page=page,
            page_size=self.page_size,
            total_pages=total_pages,
        )

    def apply(self, items: Iterable[T]) -> list[T]:
        """Filter and sort without paginating."""

        return self.order(self.filter(items))

    def run(self, items: Iterable[T]) -> Page[T]:
        return self.paginate(self.apply(items))


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def mobile_contains(term: Optional[str]) -> Optional[Predicate]:
    """Case-insensitive substring match on `mobile`; None when there is no term."""

    if not term:
        return None
    needle = term.strip().lower()
    return lambda item: bool(getattr(item, "mobile", "")) and needle in item.mobile.lower()


def field_equals(path: str, value: Any) -> Optional[Predicate]:
    """Equality on an attribute; `None`, "" and "all" disable the filter."""

    if value is None or value == "" or value == ALL:
        return None
    expected = _comparable(value)
    return lambda item: _comparable(_resolve(item, path)) == expected


def active_predicates(*predicates: Optional[Predicate]) -> list[Predicate]:
    """Drop disabled (None) predicates."""

    return [p for p in predicates if p is not None]


def _tokens(text: str) -> list[str]:
    return [token.strip() for token in text.split(",") if token.strip()]


def _as_int(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class AdvancedSearch:
    """
    Digit-pattern search over mobiles.

    start_with / anywhere / end_with: prefix, substring, suffix
    must_contain: comma list, every token must occur
    not_contain: comma list, no token may occur
    only_contain: every digit of the mobile must be one of these characters
    total: plain digit sum equals the value
    sum: digital root equals the value
    max_contain: no digit occurs more than this many times
    most_contains: rank results by how many pattern matches they have
    """

    start_with: str = ""
    anywhere: str = ""
    end_with: str = ""
    must_contain: str = ""
    not_contain: str = ""
    only_contain: str = ""
    total: str = ""
    sum: str = ""
    max_contain: str = ""
    most_contains: bool = False

    @property
    def is_active(self) -> bool:
        return any(
            (self.start_with, self.anywhere, self.end_with, self.must_contain, self.not_contain,
             self.only_contain, self.total, self.sum, self.max_contain, self.most_contains)
        )

    def matches(self, mobile: str, stored_sum: Optional[int] = None) -> bool:
        if self.start_with and not mobile.startswith(self.start_with):
            return False
        if self.end_with and not mobile.endswith(self.end_with):
            return False
        if self.anywhere and self.anywhere not in mobile:
            return False

        if self.must_contain and not all(token in mobile for token in _tokens(self.must_contain)):
            return False
        if self.not_contain and any(token in mobile for token in _tokens(self.not_contain)):
            return False

        if self.only_contain:
            allowed = set(self.only_contain)
            if not all(ch in allowed for ch in mobile):
                return False

        if self.total:
            if _as_int(self.total) != digit_sum(mobile):
                return False

        if self.sum:
            expected = _as_int(self.sum)
            if expected is None or stored_sum is None or stored_sum != expected:
                return False

        if self.max_contain:
            limit = _as_int(self.max_contain)
            if limit is None or max_digit_repetition(mobile) > limit:
                return False

        return True

    def match_score(self, mobile: str) -> int:
        """Number of pattern occurrences in the mobile, used by `most_contains`."""

        patterns = _tokens(self.must_contain)
        if self.anywhere:
            patterns.append(self.anywhere)
        return sum(mobile.count(pattern) for pattern in patterns)

    def predicate(self) -> Optional[Predicate]:
        if not self.is_active:
            return None
        return lambda item: self.matches(item.mobile, getattr(item, "sum", None))

    def ranking(self) -> Optional[Callable[[Any], int]]:
        if not self.most_contains:
            return None
        return lambda item: self.match_score(item.mobile)


__all__ = [
    "ALL",
    "AdvancedSearch",
    "Page",
    "Predicate",
    "QueryPipeline",
    "SortDirection",
    "SortSpec",
    "active_predicates",
    "field_equals",
    "mobile_contains",
]
