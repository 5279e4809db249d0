"""Tests for sorting and pagination."""

from datetime import date, timedelta

import pytest

from conftest import FOOD, TRAVEL, make_expense
from expense_tracker.models.stats import ELLIPSIS
from expense_tracker.queries.pagination import (
    InvalidPageSizeError,
    UnknownSortFieldError,
    page_markers,
    paginate,
    sort_expenses,
)


def make_many(n):
    start = date(2024, 1, 1)
    return [make_expense(f"e{i}", i, day=start + timedelta(days=i)) for i in range(n)]


class TestSortExpenses:

    def test_default_is_newest_first(self):
        expenses = make_many(5)
        assert [e.id for e in sort_expenses(expenses)] == ["e4", "e3", "e2", "e1", "e0"]

    def test_ascending_amount(self):
        expenses = [make_expense("a", 3), make_expense("b", 1), make_expense("c", 2)]
        assert [e.id for e in sort_expenses(expenses, "amount", descending=False)] == ["b", "c", "a"]

    def test_stable_for_equal_keys(self):
        same_day = date(2024, 3, 1)
        expenses = [make_expense(f"e{i}", i, day=same_day) for i in range(4)]
        assert [e.id for e in sort_expenses(expenses)] == ["e0", "e1", "e2", "e3"]

    def test_idempotent(self):
        expenses = make_many(6) + [make_expense("dup", 1, day=date(2024, 1, 3))]
        once = sort_expenses(expenses)
        assert sort_expenses(once) == once

    def test_category_sorts_by_label(self):
        expenses = [
            make_expense("t", 1, category=TRAVEL),
            make_expense("u", 1),
            make_expense("f", 1, category=FOOD),
        ]
        ordered = sort_expenses(expenses, "category", descending=False)
        assert [e.id for e in ordered] == ["f", "t", "u"]

    def test_unknown_field(self):
        with pytest.raises(UnknownSortFieldError):
            sort_expenses([], "vendor")


class TestPaginate:

    def test_pages_reconstruct_sorted_list(self):
        expenses = make_many(23)
        pages = [paginate(expenses, 5, n) for n in range(1, 6)]
        assert pages[0].total_pages == 5
        rebuilt = [item for page in pages for item in page.items]
        assert rebuilt == sort_expenses(expenses)

    def test_page_bounds(self):
        page = paginate(make_many(23), 5, 5)
        assert page.page == 5
        assert len(page.items) == 3
        assert (page.start_index, page.end_index) == (20, 23)
        assert page.total_items == 23
        assert page.has_next is False
        assert page.has_previous is True

    def test_page_is_clamped(self):
        expenses = make_many(12)
        assert paginate(expenses, 5, 99).page == 3
        assert paginate(expenses, 5, 0).page == 1
        assert paginate(expenses, 5, -4).items == paginate(expenses, 5, 1).items

    def test_empty_list(self):
        page = paginate([], 10, 3)
        assert page.page == 1
        assert page.total_pages == 0
        assert page.items == []
        assert (page.start_index, page.end_index) == (0, 0)
        assert page.has_next is False

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_page_size(self, size):
        with pytest.raises(InvalidPageSizeError):
            paginate(make_many(3), size, 1)


class TestPageMarkers:

    def test_middle_page(self):
        assert page_markers(6, 10) == [1, ELLIPSIS, 5, 6, 7, ELLIPSIS, 10]

    def test_first_page(self):
        assert page_markers(1, 10) == [1, 2, ELLIPSIS, 10]

    def test_last_page(self):
        assert page_markers(10, 10) == [1, ELLIPSIS, 9, 10]

    def test_single_page_gap_shows_number(self):
        assert page_markers(4, 7) == [1, 2, 3, 4, 5, 6, 7]

    def test_few_pages(self):
        assert page_markers(1, 1) == [1]
        assert page_markers(2, 3) == [1, 2, 3]

    def test_no_pages(self):
        assert page_markers(1, 0) == []

    def test_wider_window(self):
        assert page_markers(10, 20, siblings=2) == [1, ELLIPSIS, 8, 9, 10, 11, 12, ELLIPSIS, 20]
