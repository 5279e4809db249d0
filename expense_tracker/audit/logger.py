"""
Audit Logger

DESIGN DECISION: Every mutation in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A record of receipts that could not be cleaned up

The audit logger:
- Always writes a structured local log line
- Persists to an audit store when one is configured
- Gracefully handles failures (a failing audit store never breaks the main flow)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_tracker.services.database import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        user_id: str,
        expense_id: str,
        amount: float,
        currency: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_created(
            user_id=user_id,
            expense_id=expense_id,
            amount=amount,
            currency=currency,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        user_id: str,
        expense_id: str,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            user_id=user_id,
            expense_id=expense_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        user_id: str,
        expense_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            user_id=user_id,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_attachment_uploaded(
        self,
        user_id: str,
        url: str,
        filename: str,
        size_bytes: int,
        original_size_bytes: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_uploaded(
            user_id=user_id,
            url=url,
            filename=filename,
            size_bytes=size_bytes,
            original_size_bytes=original_size_bytes,
            correlation_id=correlation_id,
        ))

    async def log_attachment_deleted(
        self,
        user_id: str,
        url: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_deleted(
            user_id=user_id,
            url=url,
            correlation_id=correlation_id,
        ))

    async def log_attachment_delete_failed(
        self,
        user_id: str,
        url: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_delete_failed(
            user_id=user_id,
            url=url,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        user_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_query_executed(
        self,
        user_id: str,
        criteria: list[str],
        result_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.query_executed(
            user_id=user_id,
            criteria=criteria,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_persistence_error(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.backend_error(
            event_type=AuditEventType.PERSISTENCE_ERROR,
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.backend_error(
            event_type=AuditEventType.STORAGE_ERROR,
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
