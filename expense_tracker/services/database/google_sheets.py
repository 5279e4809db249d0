"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view and export their expenses directly in Sheets
2. No database server to run
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python, with the same
  predicate used for in-memory filtering)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials

from expense_tracker.config import GoogleSheetsSettings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.expense import Category, Expense, ExpenseFilter
from expense_tracker.queries.filters import matches_filter
from expense_tracker.services.database.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    CategoryStorageInterface,
    ExpenseNotFoundError,
    ExpenseStorageInterface,
    PersistenceError,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "currency",
    "category_id",
    "date",
    "description",
    "attachment_url",
    "attachment_name",
    "attachment_type",
    "created_at",
    "updated_at",
]

# Column mappings for Categories sheet
CATEGORY_COLUMNS = [
    "id",
    "name",
    "icon",
    "color",
    "created_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and lazily creates missing worksheets.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create(self._settings.expenses_sheet_name, EXPENSE_COLUMNS, 1000)

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet."""
        return self._get_or_create(self._settings.categories_sheet_name, CATEGORY_COLUMNS, 100)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Categories stored one per row."""

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _row_to_category(self, row: list) -> Category:
        return Category(
            id=_cell(row, 0),
            name=_cell(row, 1),
            icon=_cell(row, 2) or None,
            color=_cell(row, 3) or None,
            created_at=datetime.fromisoformat(_cell(row, 4)),
        )

    def load_all(self) -> dict[str, Category]:
        """All categories keyed by ID, for joining onto expenses."""
        try:
            sheet = self._client.get_categories_sheet()
            rows = sheet.get_all_values()[1:]  # Skip header

            categories = {}
            for row in rows:
                if not row or not row[0]:
                    continue
                category = self._row_to_category(row)
                categories[category.id] = category
            return categories
        except BackendConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to load categories: {e}")

    async def list_categories(self) -> list[Category]:
        return sorted(self.load_all().values(), key=lambda c: c.name)

    async def get_category(self, category_id: str) -> Optional[Category]:
        return self.load_all().get(category_id)


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Expenses are stored as rows in a worksheet with one expense per row.
    Categories are joined in from the Categories sheet when reading.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        categories: Optional[GoogleSheetsCategoryStorage] = None,
    ):
        self._client = client
        self._categories = categories or GoogleSheetsCategoryStorage(client)

    def _expense_to_row(self, expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            expense.id,
            expense.user_id,
            repr(expense.amount),
            expense.currency,
            expense.category_id or "",
            expense.date.isoformat(),
            expense.description or "",
            expense.attachment_url or "",
            expense.attachment_name or "",
            expense.attachment_type or "",
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
        ]

    def _row_to_expense(
        self,
        row: list,
        categories: dict[str, Category],
    ) -> Expense:
        """Convert a spreadsheet row to an Expense, joining its category."""
        category_id = _cell(row, 4) or None
        return Expense(
            id=_cell(row, 0),
            user_id=_cell(row, 1),
            amount=float(_cell(row, 2)),
            currency=_cell(row, 3),
            category_id=category_id,
            category=categories.get(category_id) if category_id else None,
            date=date.fromisoformat(_cell(row, 5)),
            description=_cell(row, 6) or None,
            attachment_url=_cell(row, 7) or None,
            attachment_name=_cell(row, 8) or None,
            attachment_type=_cell(row, 9) or None,
            created_at=datetime.fromisoformat(_cell(row, 10)),
            updated_at=datetime.fromisoformat(_cell(row, 11)),
        )

    def _find_row(self, rows: list[list], user_id: str, expense_id: str) -> Optional[int]:
        """1-based sheet row number of an expense, or None."""
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if row and _cell(row, 0) == expense_id and _cell(row, 1) == user_id:
                return idx
        return None

    async def list_expenses(
        self,
        user_id: str,
        criteria: Optional[ExpenseFilter] = None,
    ) -> list[Expense]:
        """List a user's expenses, newest first."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
            categories = self._categories.load_all()

            expenses = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue
                if _cell(row, 1) != user_id:
                    continue

                expense = self._row_to_expense(row, categories)
                if matches_filter(expense, criteria):
                    expenses.append(expense)

            expenses.sort(key=lambda e: e.date, reverse=True)
            return expenses
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to list expenses: {e}")

    async def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            rows = sheet.get_all_values()
            idx = self._find_row(rows, user_id, expense_id)
            if idx is None:
                return None
            return self._row_to_expense(rows[idx - 1], self._categories.load_all())
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to get expense: {e}")

    async def create_expense(self, expense: Expense) -> Expense:
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save expense: {e}")
        return expense

    async def update_expense(self, expense: Expense) -> Expense:
        try:
            sheet = self._client.get_expenses_sheet()
            rows = sheet.get_all_values()
            idx = self._find_row(rows, expense.user_id, expense.id)
            if idx is None:
                raise ExpenseNotFoundError(f"Expense not found: {expense.id}")

            new_row = self._expense_to_row(expense)
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return expense
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update expense: {e}")

    async def delete_expense(self, user_id: str, expense_id: str) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet.get_all_values(), user_id, expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete expense: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            user_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=_cell(row, 6) or None,
            correlation_id=UUID(_cell(row, 7)) if _cell(row, 7) else None,
            description=_cell(row, 8),
            details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
            error_message=_cell(row, 10) or None,
        )

    def _load_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
            return [self._row_to_event(row) for row in all_rows if row and row[0]]
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to get audit events: {e}")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise PersistenceError(f"Failed to write audit event: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._load_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
