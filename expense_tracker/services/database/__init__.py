"""
Database Services Package

Provides abstract interfaces and concrete implementations for expense,
category and audit persistence. Google Sheets is the hosted backend; the
in-memory implementation backs tests and local runs.
"""

from expense_tracker.services.database.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    CategoryStorageInterface,
    ExpenseNotFoundError,
    ExpenseStorageInterface,
    PersistenceError,
)
from expense_tracker.services.database.memory import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
)
from expense_tracker.services.database.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "ExpenseStorageInterface",
    # Exceptions
    "BackendConnectionError",
    "ExpenseNotFoundError",
    "PersistenceError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryExpenseStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
]
