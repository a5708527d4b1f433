"""
Tests for `services/query_pipeline.py`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from services.query_pipeline import (
    AdvancedSearch,
    QueryPipeline,
    SortDirection,
    SortSpec,
    field_equals,
    mobile_contains,
)


@dataclass(frozen=True)
class Row:
    id: str
    mobile: str
    price: Optional[int] = None
    name: str = ""
    sum: Optional[int] = None


ROWS = [
    Row("a", "9876543210", 300, "ravi"),
    Row("b", "9814567890", None, "Asha"),
    Row("c", "9000000001", 100, "asha"),
    Row("d", "9111111111", 200, "Karan"),
]


class TestAdvancedSearch:
    def test_must_contain_requires_every_token(self) -> None:
        search = AdvancedSearch(must_contain="1,4")

        assert search.matches("9814567890")
        assert not search.matches("9876503210")

    def test_not_contain(self) -> None:
        search = AdvancedSearch(not_contain="0, 5")

        assert search.matches("9811111111")
        assert not search.matches("9876543210")

    def test_prefix_suffix_anywhere(self) -> None:
        assert AdvancedSearch(start_with="98", end_with="10", anywhere="654").matches("9876543210")
        assert not AdvancedSearch(start_with="99").matches("9876543210")

    def test_only_contain(self) -> None:
        assert AdvancedSearch(only_contain="91").matches("9111111111")
        assert not AdvancedSearch(only_contain="91").matches("9111111112")

    def test_total_is_plain_digit_sum(self) -> None:
        """Verify Total compares the plain digit sum, Sum the stored digital root."""

        assert AdvancedSearch(total="45").matches("9876543210")
        assert not AdvancedSearch(total="9").matches("9876543210")
        assert AdvancedSearch(sum="9").matches("9876543210", stored_sum=9)
        assert not AdvancedSearch(sum="9").matches("9876543210", stored_sum=None)

    def test_max_contain(self) -> None:
        assert AdvancedSearch(max_contain="1").matches("9876543210")
        assert not AdvancedSearch(max_contain="3").matches("9111111111")

    def test_inactive_search_has_no_predicate(self) -> None:
        assert AdvancedSearch().predicate() is None
        assert AdvancedSearch().ranking() is None

    def test_match_score_counts_occurrences(self) -> None:
        search = AdvancedSearch(must_contain="11", most_contains=True)

        assert search.match_score("9111111111") == 4
        assert search.match_score("9814567890") == 0


class TestPipeline:
    def test_missing_values_sort_last_both_ways(self) -> None:
        ascending = QueryPipeline(sort=SortSpec("price"), page_size=None).apply(ROWS)
        descending = QueryPipeline(sort=SortSpec("price", SortDirection.DESCENDING), page_size=None).apply(ROWS)

        assert [r.id for r in ascending] == ["c", "d", "a", "b"]
        assert [r.id for r in descending] == ["a", "d", "c", "b"]

    def test_string_sort_is_case_insensitive_and_stable(self) -> None:
        ordered = QueryPipeline(sort=SortSpec("name"), page_size=None).apply(ROWS)

        assert [r.id for r in ordered] == ["b", "c", "d", "a"]

    def test_rank_then_pinned(self) -> None:
        """Verify pinned ids lead, then ranking, then column order."""

        pipeline = QueryPipeline(
            sort=SortSpec("price"),
            rank=lambda r: r.mobile.count("1"),
            pinned=frozenset({"c"}),
            page_size=None,
        )

        assert [r.id for r in pipeline.apply(ROWS)] == ["c", "d", "a", "b"]

    def test_filters(self) -> None:
        pipeline = QueryPipeline(predicates=[mobile_contains("98"), field_equals("name", "ASHA")], page_size=None)

        assert [r.id for r in pipeline.apply(ROWS)] == ["b"]
        assert field_equals("name", "all") is None
        assert mobile_contains("") is None

    def test_pagination(self) -> None:
        page = QueryPipeline(sort=SortSpec("id"), page=2, page_size=3).run(ROWS)

        assert [r.id for r in page.items] == ["d"]
        assert page.total_items == 4
        assert page.total_pages == 2

    def test_unpaged(self) -> None:
        page = QueryPipeline(page_size=0).run(ROWS)

        assert len(page.items) == 4
        assert page.page_size is None
        assert page.total_pages == 1
