"""
Expense filter predicate.

The same predicate is used by every storage backend and by in-memory
filtering, so a list filtered at the source and a list filtered here
always agree.
"""

from typing import Iterable, Optional

from expense_tracker.models.expense import Expense, ExpenseFilter


def matches_filter(expense: Expense, criteria: Optional[ExpenseFilter]) -> bool:
    """
    Check whether one expense satisfies every criterion that is set.

    Criteria are AND-ed. Date bounds are inclusive. Search is a
    case-insensitive substring match on the description; an expense
    without a description never matches a search term.
    """
    if criteria is None:
        return True

    if criteria.category_id and expense.category_id != criteria.category_id:
        return False
    if criteria.currency and expense.currency != criteria.currency:
        return False
    if criteria.start_date and expense.date < criteria.start_date:
        return False
    if criteria.end_date and expense.date > criteria.end_date:
        return False
    if criteria.search:
        description = (expense.description or "").casefold()
        if criteria.search.casefold() not in description:
            return False

    return True


def filter_expenses(
    expenses: Iterable[Expense],
    criteria: Optional[ExpenseFilter],
) -> list[Expense]:
    """Keep the expenses matching `criteria`, preserving their order."""
    return [expense for expense in expenses if matches_filter(expense, criteria)]
