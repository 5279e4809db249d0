"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker system.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    UNCATEGORIZED_LABEL,
    AttachmentUpload,
    Category,
    Expense,
    ExpenseFilter,
    ExpenseFormData,
    PreparedAttachment,
    StoredAttachment,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.stats import (
    ELLIPSIS,
    CategorySummary,
    CurrencySummary,
    DashboardView,
    ExpensePage,
    ExpenseStats,
    PageMarker,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "UNCATEGORIZED_LABEL",
    "AttachmentUpload",
    "Category",
    "Expense",
    "ExpenseFilter",
    "ExpenseFormData",
    "PreparedAttachment",
    "StoredAttachment",
    "ValidationIssue",
    "ValidationResult",
    # Read-side models
    "ELLIPSIS",
    "CategorySummary",
    "CurrencySummary",
    "DashboardView",
    "ExpensePage",
    "ExpenseStats",
    "PageMarker",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
