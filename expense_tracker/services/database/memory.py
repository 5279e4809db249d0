"""
In-memory storage.

Used by the test-suite and for running without any backend configured.
Behaves like the Google Sheets implementation: same ordering, same
filter predicate, same user scoping. Returned objects are copies, so
callers cannot mutate stored state by accident.
"""

from typing import Iterable, Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Category, Expense, ExpenseFilter
from expense_tracker.queries.filters import matches_filter
from expense_tracker.services.database.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ExpenseNotFoundError,
    ExpenseStorageInterface,
    PersistenceError,
)


class InMemoryCategoryStorage(CategoryStorageInterface):
    """Categories held in a dict."""

    def __init__(self, categories: Iterable[Category] = ()):
        self._categories = {category.id: category for category in categories}

    def add(self, category: Category) -> None:
        self._categories[category.id] = category

    def lookup(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    async def list_categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.name)

    async def get_category(self, category_id: str) -> Optional[Category]:
        return self.lookup(category_id)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses held in an insertion-ordered dict keyed by ID."""

    def __init__(self, categories: Optional[InMemoryCategoryStorage] = None):
        self._rows: dict[str, Expense] = {}
        self._categories = categories or InMemoryCategoryStorage()

    def _join(self, expense: Expense) -> Expense:
        category = None
        if expense.category_id is not None:
            category = self._categories.lookup(expense.category_id)
        return expense.model_copy(update={"category": category}, deep=True)

    async def list_expenses(
        self,
        user_id: str,
        criteria: Optional[ExpenseFilter] = None,
    ) -> list[Expense]:
        expenses = [
            self._join(expense)
            for expense in self._rows.values()
            if expense.user_id == user_id and matches_filter(expense, criteria)
        ]
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    async def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        expense = self._rows.get(expense_id)
        if expense is None or expense.user_id != user_id:
            return None
        return self._join(expense)

    async def create_expense(self, expense: Expense) -> Expense:
        if expense.id in self._rows:
            raise PersistenceError(f"Expense already exists: {expense.id}")
        self._rows[expense.id] = expense.model_copy(update={"category": None}, deep=True)
        return self._join(expense)

    async def update_expense(self, expense: Expense) -> Expense:
        existing = self._rows.get(expense.id)
        if existing is None or existing.user_id != expense.user_id:
            raise ExpenseNotFoundError(f"Expense not found: {expense.id}")
        self._rows[expense.id] = expense.model_copy(update={"category": None}, deep=True)
        return self._join(expense)

    async def delete_expense(self, user_id: str, expense_id: str) -> bool:
        existing = self._rows.get(expense_id)
        if existing is None or existing.user_id != user_id:
            return False
        del self._rows[expense_id]
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
