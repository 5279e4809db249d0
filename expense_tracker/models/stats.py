"""
Result models for the read side: statistics, pages and the dashboard.

All of these are snapshots computed from a list of expenses.
Nothing here is persisted.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field

from expense_tracker.models.expense import Category, Expense, ExpenseFilter


# Marker used in page lists where a run of pages is collapsed
ELLIPSIS = "ellipsis"

PageMarker = Union[int, str]


class CurrencySummary(BaseModel):
    """Totals for the expenses recorded in one currency."""

    currency: str
    total: float = 0.0
    count: int = Field(default=0, ge=0)
    average: float = 0.0
    monthly_total: float = Field(
        default=0.0,
        description="Total restricted to the reporting month"
    )
    monthly_count: int = Field(default=0, ge=0)


class CategorySummary(BaseModel):
    """Totals for one category within one currency."""

    category_id: Optional[str] = Field(
        default=None,
        description="None for Uncategorized"
    )
    name: str
    currency: str
    total: float = 0.0
    count: int = Field(default=0, ge=0)


class ExpenseStats(BaseModel):
    """
    Summary statistics over a list of expenses.

    Amounts are grouped by currency and never summed across currencies.
    """

    count: int = Field(default=0, ge=0)
    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Reporting month (YYYY-MM) used for monthly totals"
    )
    currencies: dict[str, CurrencySummary] = Field(
        default_factory=dict,
        description="Per-currency totals in first-seen order"
    )
    primary_currency: Optional[str] = Field(
        default=None,
        description="Most frequent currency, None when there are no expenses"
    )
    categories: dict[str, list[CategorySummary]] = Field(
        default_factory=dict,
        description="Per-currency category totals, largest first"
    )
    top_category: Optional[CategorySummary] = Field(
        default=None,
        description="Largest category within the primary currency"
    )

    @property
    def has_multiple_currencies(self) -> bool:
        return len(self.currencies) > 1

    @property
    def totals(self) -> dict[str, float]:
        return {code: summary.total for code, summary in self.currencies.items()}

    @property
    def monthly_totals(self) -> dict[str, float]:
        return {code: summary.monthly_total for code, summary in self.currencies.items()}

    @property
    def averages(self) -> dict[str, float]:
        return {code: summary.average for code, summary in self.currencies.items()}


class ExpensePage(BaseModel):
    """
    One page of a sorted expense list.

    start_index is inclusive and end_index exclusive, both 0-based
    positions in the full sorted list. A UI shows them as
    "start_index + 1 to end_index of total_items".
    """

    items: list[Expense] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    total_items: int = Field(..., ge=0)
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class DashboardView(BaseModel):
    """Everything the expense dashboard shows for one user and filter."""

    criteria: ExpenseFilter
    stats: ExpenseStats
    page: ExpensePage
    page_markers: list[PageMarker] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
