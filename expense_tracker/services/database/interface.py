"""
Abstract Database Interface

DESIGN DECISION: We define an abstract interface for expense persistence.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Every expense operation takes the owner's user_id explicitly. Implementations
must never return or touch another user's rows.

Calls are one request, one response: no retries, no streaming. A failure is
raised to the caller as a PersistenceError.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.expense import Category, Expense, ExpenseFilter


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_expenses(
        self,
        user_id: str,
        criteria: Optional[ExpenseFilter] = None,
    ) -> list[Expense]:
        """
        List a user's expenses, most recent first, categories joined in.

        Args:
            user_id: Owner whose expenses to list
            criteria: Optional filter, applied with matches_filter so the
                      result equals in-memory filtering of the full list

        Returns:
            Matching expenses sorted by date descending

        Raises:
            PersistenceError: If the query fails
        """
        pass

    @abstractmethod
    async def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        """
        Retrieve one of the user's expenses by ID.

        Returns:
            The expense if it exists and belongs to user_id, None otherwise
        """
        pass

    @abstractmethod
    async def create_expense(self, expense: Expense) -> Expense:
        """
        Insert a new expense.

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        """
        Replace an existing expense (matched on id and user_id).

        Raises:
            ExpenseNotFoundError: If no such expense exists for the user
            PersistenceError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, user_id: str, expense_id: str) -> bool:
        """
        Delete one of the user's expenses.

        Returns:
            True if a row was deleted, False if none matched
        """
        pass


class CategoryStorageInterface(ABC):
    """Read access to the category reference data."""

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """All categories, ordered by name."""
        pass

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[Category]:
        """A category by ID, or None."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Events for one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class PersistenceError(Exception):
    """Base exception for database operations."""
    pass


class ExpenseNotFoundError(PersistenceError):
    """Expense does not exist for this user."""
    pass


class BackendConnectionError(PersistenceError):
    """Could not connect to the database backend."""
    pass
