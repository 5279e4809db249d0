"""
Sorting and pagination of expense lists.

Sorting is stable: expenses that compare equal keep their relative
order, so re-sorting a sorted list changes nothing.

Out-of-range page numbers are clamped into [1, total_pages] rather than
rejected; a list with no expenses has zero pages and is shown as page 1.
"""

from math import ceil
from typing import Any, Callable, Iterable

from expense_tracker.models.expense import Expense
from expense_tracker.models.stats import ELLIPSIS, ExpensePage, PageMarker


class InvalidPageSizeError(ValueError):
    """Page size must be a positive integer."""
    pass


class UnknownSortFieldError(ValueError):
    """Expenses cannot be sorted by the requested field."""
    pass


SORT_KEYS: dict[str, Callable[[Expense], Any]] = {
    "date": lambda expense: expense.date,
    "amount": lambda expense: expense.amount,
    "category": lambda expense: expense.category_label.casefold(),
    "description": lambda expense: (expense.description or "").casefold(),
}


def sort_expenses(
    expenses: Iterable[Expense],
    field: str = "date",
    descending: bool = True,
) -> list[Expense]:
    """
    Sort expenses by `field` (default: most recent first).

    Raises:
        UnknownSortFieldError: If field is not one of SORT_KEYS
    """
    try:
        key = SORT_KEYS[field]
    except KeyError:
        raise UnknownSortFieldError(
            f"Cannot sort by {field!r}. Allowed: {sorted(SORT_KEYS)}"
        )
    # sorted() stays stable with reverse=True
    return sorted(expenses, key=key, reverse=descending)


def count_pages(total_items: int, page_size: int) -> int:
    if page_size < 1:
        raise InvalidPageSizeError(f"Page size must be positive, got {page_size}")
    return ceil(total_items / page_size)


def clamp_page(page: int, total_pages: int) -> int:
    return max(1, min(page, total_pages))


def paginate(
    expenses: Iterable[Expense],
    page_size: int,
    page: int,
    sort_field: str = "date",
    descending: bool = True,
) -> ExpensePage:
    """
    Sort expenses and cut out one page.

    Args:
        expenses: Expenses to page through.
        page_size: Expenses per page, at least 1.
        page: 1-indexed page number; clamped into range.
        sort_field: Field to sort by before slicing.
        descending: Sort direction.

    Returns:
        ExpensePage with the items of the (clamped) page.

    Raises:
        InvalidPageSizeError: If page_size is not positive
    """
    ordered = sort_expenses(expenses, sort_field, descending)
    total_pages = count_pages(len(ordered), page_size)
    current = clamp_page(page, total_pages)

    start_index = min((current - 1) * page_size, len(ordered))
    end_index = min(current * page_size, len(ordered))

    return ExpensePage(
        items=ordered[start_index:end_index],
        page=current,
        page_size=page_size,
        total_pages=total_pages,
        total_items=len(ordered),
        start_index=start_index,
        end_index=end_index,
    )


def page_markers(current: int, total_pages: int, siblings: int = 1) -> list[PageMarker]:
    """
    Page numbers to show in pagination controls.

    The first and last pages are always shown, plus `siblings` pages on
    each side of the current one. A gap of two or more pages becomes a
    single ELLIPSIS; a gap of exactly one page shows that page instead.

    Example:
        page_markers(6, 10) -> [1, ELLIPSIS, 5, 6, 7, ELLIPSIS, 10]
    """
    if total_pages < 1:
        return []
    current = clamp_page(current, total_pages)

    shown = {1, total_pages}
    shown.update(
        range(max(1, current - siblings), min(total_pages, current + siblings) + 1)
    )

    markers: list[PageMarker] = []
    previous = 0
    for number in sorted(shown):
        gap = number - previous - 1
        if gap == 1:
            markers.append(previous + 1)
        elif gap > 1:
            markers.append(ELLIPSIS)
        markers.append(number)
        previous = number
    return markers
