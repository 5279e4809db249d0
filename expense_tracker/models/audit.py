"""
Audit Models for Expense Tracker

Every mutation in the system is logged for audit purposes.
This provides:
1. Traceability of who changed which expense and when
2. Debugging information when a backend call fails
3. A record of receipts that could not be cleaned up

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expense lifecycle
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Receipts
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    ATTACHMENT_DELETED = "attachment_deleted"
    ATTACHMENT_DELETE_FAILED = "attachment_delete_failed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Reads
    QUERY_EXECUTED = "query_executed"

    # Failures
    PERSISTENCE_ERROR = "persistence_error"
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'attachment', 'query')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by every event of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(user_id, expense_id, ...)
        event = AuditEventBuilder.attachment_delete_failed(user_id, url, ...)
    """

    @staticmethod
    def expense_created(
        user_id: str,
        expense_id: str,
        amount: float,
        currency: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense created: {currency} {amount:.2f}",
            details={
                "amount": amount,
                "currency": currency,
            },
        )

    @staticmethod
    def expense_updated(
        user_id: str,
        expense_id: str,
        changed_fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated ({len(changed_fields)} fields changed)",
            details={
                "changed_fields": changed_fields,
            },
        )

    @staticmethod
    def expense_deleted(
        user_id: str,
        expense_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
        )

    @staticmethod
    def attachment_uploaded(
        user_id: str,
        url: str,
        filename: str,
        size_bytes: int,
        original_size_bytes: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOADED,
            user_id=user_id,
            entity_type="attachment",
            entity_id=url,
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={
                "filename": filename,
                "size_bytes": size_bytes,
                "original_size_bytes": original_size_bytes,
            },
        )

    @staticmethod
    def attachment_deleted(
        user_id: str,
        url: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_DELETED,
            user_id=user_id,
            entity_type="attachment",
            entity_id=url,
            correlation_id=correlation_id,
            description="Receipt deleted",
        )

    @staticmethod
    def attachment_delete_failed(
        user_id: str,
        url: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_DELETE_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="attachment",
            entity_id=url,
            correlation_id=correlation_id,
            description="Receipt could not be deleted and was left in storage",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        user_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def query_executed(
        user_id: str,
        criteria: list[str],
        result_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Expense query returned {result_count} results",
            details={
                "criteria": criteria,
                "result_count": result_count,
            },
        )

    @staticmethod
    def backend_error(
        event_type: AuditEventType,
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Backend error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
