"""
Dashboard Query Execution

DESIGN DECISION: Storage only fetches. Everything the dashboard shows is
computed here by the pure query functions over the fetched snapshot:

    storage.list_expenses -> filter -> aggregate -> paginate -> markers

The filter predicate is applied again after fetching. Backends are
expected to apply it already, so this is a no-op for a correct backend
and keeps the statistics honest for one that is not.

Statistics are computed over the filtered list, not just the current page.
"""

from datetime import date
from typing import Optional

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.auth import UserSession, require_user
from expense_tracker.config import AppSettings
from expense_tracker.models.expense import ExpenseFilter
from expense_tracker.models.stats import DashboardView
from expense_tracker.queries.aggregation import aggregate_expenses
from expense_tracker.queries.filters import filter_expenses
from expense_tracker.queries.pagination import page_markers, paginate
from expense_tracker.services.database import (
    CategoryStorageInterface,
    ExpenseStorageInterface,
    PersistenceError,
)


class ExpenseQueryExecutor:
    """
    Builds dashboard views from stored expenses.

    GUARANTEES:
    - Only the signed-in user's expenses are ever read
    - Statistics never add amounts across currencies
    - Storage failures propagate to the caller unchanged
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        category_storage: CategoryStorageInterface,
        settings: AppSettings,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._categories = category_storage
        self._settings = settings
        self._audit_logger = audit_logger

    async def load_dashboard(
        self,
        session: Optional[UserSession],
        today: date,
        criteria: Optional[ExpenseFilter] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: str = "date",
        descending: bool = True,
    ) -> DashboardView:
        """
        Load one page of the dashboard.

        Args:
            session: The signed-in user, or None
            today: Reference date for the monthly totals
            criteria: Optional filter; None shows everything
            page: Requested 1-indexed page; clamped into range
            page_size: Expenses per page; defaults to the configured size
            sort_field: Field to sort the list by
            descending: Sort direction

        Raises:
            NotAuthenticatedError: If session is None
            PersistenceError: If storage fails
            InvalidPageSizeError: If page_size is not positive
        """
        user_id = require_user(session)
        criteria = criteria or ExpenseFilter()
        page_size = page_size if page_size is not None else self._settings.default_page_size
        correlation_id = create_correlation_id()

        try:
            fetched = await self._expenses.list_expenses(user_id, criteria)
            categories = await self._categories.list_categories()
        except PersistenceError as e:
            if self._audit_logger:
                await self._audit_logger.log_persistence_error(
                    user_id=user_id,
                    operation="load_dashboard",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        expenses = filter_expenses(fetched, criteria)
        stats = aggregate_expenses(expenses, today)
        expense_page = paginate(expenses, page_size, page, sort_field, descending)

        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                user_id=user_id,
                criteria=criteria.active_criteria,
                result_count=len(expenses),
                correlation_id=correlation_id,
            )

        return DashboardView(
            criteria=criteria,
            stats=stats,
            page=expense_page,
            page_markers=page_markers(
                expense_page.page,
                expense_page.total_pages,
                self._settings.pagination_siblings,
            ),
            categories=categories,
        )
