"""
Read-side query package.

The pure functions (filter, aggregate, sort, paginate, format) are
exported here. The executor that talks to storage lives in
expense_tracker.queries.executor and is imported from there.
"""

from expense_tracker.queries.aggregation import aggregate_expenses, category_breakdown
from expense_tracker.queries.filters import filter_expenses, matches_filter
from expense_tracker.queries.formatting import currency_symbol, format_compact, format_currency
from expense_tracker.queries.pagination import (
    InvalidPageSizeError,
    UnknownSortFieldError,
    page_markers,
    paginate,
    sort_expenses,
)

__all__ = [
    "InvalidPageSizeError",
    "UnknownSortFieldError",
    "aggregate_expenses",
    "category_breakdown",
    "currency_symbol",
    "filter_expenses",
    "format_compact",
    "format_currency",
    "matches_filter",
    "page_markers",
    "paginate",
    "sort_expenses",
]
