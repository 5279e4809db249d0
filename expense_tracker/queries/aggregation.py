"""
Pure functions for expense statistics.

This module contains the functional core of the dashboard summary:
- No I/O operations (no database, no clock, no files)
- No side effects
- "Today" is always passed in, so results are reproducible

Amounts are grouped by currency and never added across currencies.

TIE-BREAKS (deterministic):
- Primary currency: highest record count; on a tie, the currency seen
  first in input order wins.
- Top category: highest total amount within the primary currency; on a
  tie, the category seen first in input order wins.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Hashable, Iterable, Optional, TypeVar

from expense_tracker.models.expense import Expense
from expense_tracker.models.stats import CategorySummary, CurrencySummary, ExpenseStats


K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class Tally:
    """Running total and count for one group."""

    total: float = 0.0
    count: int = 0

    def merge(self, amount: float) -> "Tally":
        return Tally(total=self.total + amount, count=self.count + 1)


EMPTY_TALLY = Tally()


def tally_by(expenses: Iterable[Expense], key: Callable[[Expense], K]) -> dict[K, Tally]:
    """
    Group expenses by `key` and tally their amounts.

    The returned mapping preserves first-seen order of keys, which the
    tie-break rules rely on.
    """
    tallies: dict[K, Tally] = {}
    for expense in expenses:
        group = key(expense)
        tallies[group] = tallies.get(group, EMPTY_TALLY).merge(expense.amount)
    return tallies


def average(total: float, count: int) -> float:
    """Mean amount, 0 when there is nothing to average."""
    if count <= 0:
        return 0.0
    return total / count


def in_month(expense: Expense, today: date) -> bool:
    return expense.date.year == today.year and expense.date.month == today.month


def pick_primary_currency(by_currency: dict[str, Tally]) -> Optional[str]:
    """Currency with the most records; first seen wins ties."""
    if not by_currency:
        return None
    # max() keeps the first maximal key in iteration order
    return max(by_currency, key=lambda code: by_currency[code].count)


def category_breakdown(expenses: Iterable[Expense], currency: str) -> list[CategorySummary]:
    """
    Category totals for the expenses in one currency, largest first.

    Groups by category_id (None is Uncategorized). Equal totals keep
    first-seen order.
    """
    in_currency = [expense for expense in expenses if expense.currency == currency]

    labels: dict[Optional[str], str] = {}
    for expense in in_currency:
        labels.setdefault(expense.category_id, expense.category_label)

    tallies = tally_by(in_currency, lambda expense: expense.category_id)
    ranked = sorted(tallies.items(), key=lambda item: item[1].total, reverse=True)

    return [
        CategorySummary(
            category_id=category_id,
            name=labels[category_id],
            currency=currency,
            total=tally.total,
            count=tally.count,
        )
        for category_id, tally in ranked
    ]


def aggregate_expenses(expenses: Iterable[Expense], today: date) -> ExpenseStats:
    """
    Summarise a list of expenses.

    Args:
        expenses: Snapshot of one user's expenses (usually already filtered).
        today: Reference date; its calendar month is the "this month" window.

    Returns:
        ExpenseStats with per-currency totals, counts, averages and monthly
        totals, the primary currency and the top category.
    """
    expenses = list(expenses)

    by_currency = tally_by(expenses, lambda expense: expense.currency)
    monthly = tally_by(
        (expense for expense in expenses if in_month(expense, today)),
        lambda expense: expense.currency,
    )

    currencies = {
        code: CurrencySummary(
            currency=code,
            total=tally.total,
            count=tally.count,
            average=average(tally.total, tally.count),
            monthly_total=monthly.get(code, EMPTY_TALLY).total,
            monthly_count=monthly.get(code, EMPTY_TALLY).count,
        )
        for code, tally in by_currency.items()
    }

    categories = {code: category_breakdown(expenses, code) for code in by_currency}

    primary_currency = pick_primary_currency(by_currency)
    top_category = None
    if primary_currency is not None and categories[primary_currency]:
        top_category = categories[primary_currency][0]

    return ExpenseStats(
        count=len(expenses),
        month=today.strftime("%Y-%m"),
        currencies=currencies,
        primary_currency=primary_currency,
        categories=categories,
        top_category=top_category,
    )
