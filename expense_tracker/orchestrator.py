"""
Main Orchestrator for Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Create (validate -> prepare receipt -> upload -> save)
2. Update (validate -> replace/remove receipt -> save)
3. Delete (delete row -> remove receipt)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing runs without a signed-in user
- Nothing persists with error-level validation issues
- Every mutation is audited

Failure policy:
- Errors propagate to the caller.
- A receipt that cannot be deleted while deleting its expense is
  audit-logged as a warning and the expense delete goes ahead.
- A receipt uploaded for a save that then fails is removed again
  (best-effort, failure logged) before the save error is re-raised.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import structlog
from pydantic import ValidationError

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.auth import NotAuthenticatedError, UserSession, require_user
from expense_tracker.config import Settings, get_settings
from expense_tracker.models.expense import (
    AttachmentUpload,
    Expense,
    ExpenseFormData,
    StoredAttachment,
)
from expense_tracker.queries.executor import ExpenseQueryExecutor
from expense_tracker.services.database import (
    BackendConnectionError,
    CategoryStorageInterface,
    ExpenseNotFoundError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    PersistenceError,
)
from expense_tracker.services.storage import (
    AttachmentPreparer,
    AttachmentStorageInterface,
    CloudinaryAttachmentStorage,
    StorageError,
)
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator


logger = structlog.get_logger(__name__)

# Fields compared to report what an update changed
TRACKED_FIELDS = ("amount", "currency", "category_id", "date", "description", "attachment_url")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpenseService:
    """
    Orchestrates the expense write flows.

    Receipt handling is optional: without attachment storage, expenses
    can still be saved, but submitting a receipt raises StorageError.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        validator: ExpenseValidator,
        preparer: AttachmentPreparer,
        attachment_storage: Optional[AttachmentStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expenses = expense_storage
        self._validator = validator
        self._preparer = preparer
        self._attachments = attachment_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def _validate(
        self,
        user_id: str,
        form: ExpenseFormData,
        today: date,
        correlation_id: UUID,
    ) -> None:
        """Raise ExpenseValidationError (after auditing) on error-level issues."""
        result = await self._validator.validate(form, today)
        if result.has_errors:
            await self._audit_logger.log_validation_failed(
                user_id=user_id,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                correlation_id=correlation_id,
            )
            raise ExpenseValidationError(result)

    async def _upload(
        self,
        user_id: str,
        upload: AttachmentUpload,
        correlation_id: UUID,
    ) -> StoredAttachment:
        if self._attachments is None:
            raise StorageError("Receipt storage is not configured")

        prepared = self._preparer.prepare(upload)
        try:
            stored = await self._attachments.upload(user_id, prepared)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                user_id=user_id,
                operation="upload",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_attachment_uploaded(
            user_id=user_id,
            url=stored.url,
            filename=stored.name,
            size_bytes=prepared.size_bytes,
            original_size_bytes=prepared.original_size_bytes,
            correlation_id=correlation_id,
        )
        return stored

    async def _discard_attachment(
        self,
        user_id: str,
        url: str,
        correlation_id: UUID,
    ) -> bool:
        """
        Delete a receipt without letting a failure escape.

        Returns True if the receipt is gone.
        """
        if self._attachments is None:
            await self._audit_logger.log_attachment_delete_failed(
                user_id=user_id,
                url=url,
                error_message="Receipt storage is not configured",
                correlation_id=correlation_id,
            )
            return False

        try:
            await self._attachments.delete(url)
        except StorageError as e:
            await self._audit_logger.log_attachment_delete_failed(
                user_id=user_id,
                url=url,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return False

        await self._audit_logger.log_attachment_deleted(
            user_id=user_id,
            url=url,
            correlation_id=correlation_id,
        )
        return True

    async def create_expense(
        self,
        session: Optional[UserSession],
        form: ExpenseFormData,
        today: date,
        attachment: Optional[AttachmentUpload] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record a new expense for the signed-in user.

        Args:
            session: The signed-in user, or None
            form: Submitted expense fields
            today: Reference date for validation
            attachment: Optional receipt file

        Returns:
            The saved Expense

        Raises:
            NotAuthenticatedError: If session is None
            ExpenseValidationError: If the form or receipt is invalid
            StorageError: If the receipt upload fails
            PersistenceError: If saving fails
        """
        user_id = require_user(session)
        correlation_id = correlation_id or create_correlation_id()

        await self._validate(user_id, form, today, correlation_id)

        stored = None
        if attachment is not None:
            stored = await self._upload(user_id, attachment, correlation_id)

        now = _utcnow()
        expense = Expense(
            id=str(uuid4()),
            user_id=user_id,
            amount=form.amount,
            currency=form.currency,
            category_id=form.category_id,
            date=form.date,
            description=form.description,
            attachment_url=stored.url if stored else None,
            attachment_name=stored.name if stored else None,
            attachment_type=stored.content_type if stored else None,
            created_at=now,
            updated_at=now,
        )

        try:
            saved = await self._expenses.create_expense(expense)
        except PersistenceError as e:
            await self._audit_logger.log_persistence_error(
                user_id=user_id,
                operation="create_expense",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            if stored is not None:
                await self._discard_attachment(user_id, stored.url, correlation_id)
            raise

        await self._audit_logger.log_expense_created(
            user_id=user_id,
            expense_id=saved.id,
            amount=saved.amount,
            currency=saved.currency,
            correlation_id=correlation_id,
        )
        return saved

    async def update_expense(
        self,
        session: Optional[UserSession],
        expense_id: str,
        form: ExpenseFormData,
        today: date,
        attachment: Optional[AttachmentUpload] = None,
        remove_attachment: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Change an existing expense.

        A new receipt replaces the old one; remove_attachment drops the
        receipt (and wins if both are given). The old receipt is deleted
        only after the row is saved, and a failure to delete it is logged,
        not raised.

        Raises:
            NotAuthenticatedError: If session is None
            ExpenseNotFoundError: If the user has no expense with this ID
            ExpenseValidationError: If the form or receipt is invalid
            StorageError: If the receipt upload fails
            PersistenceError: If saving fails
        """
        user_id = require_user(session)
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._expenses.get_expense(user_id, expense_id)
        if existing is None:
            raise ExpenseNotFoundError(f"Expense not found: {expense_id}")

        await self._validate(user_id, form, today, correlation_id)

        changes = {
            "amount": form.amount,
            "currency": form.currency,
            "category_id": form.category_id,
            "category": None,
            "date": form.date,
            "description": form.description,
            "updated_at": _utcnow(),
        }

        stored = None
        if remove_attachment:
            changes.update(attachment_url=None, attachment_name=None, attachment_type=None)
        elif attachment is not None:
            stored = await self._upload(user_id, attachment, correlation_id)
            changes.update(
                attachment_url=stored.url,
                attachment_name=stored.name,
                attachment_type=stored.content_type,
            )

        updated = existing.model_copy(update=changes)

        try:
            saved = await self._expenses.update_expense(updated)
        except PersistenceError as e:
            await self._audit_logger.log_persistence_error(
                user_id=user_id,
                operation="update_expense",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            if stored is not None:
                await self._discard_attachment(user_id, stored.url, correlation_id)
            raise

        if existing.attachment_url and existing.attachment_url != saved.attachment_url:
            await self._discard_attachment(user_id, existing.attachment_url, correlation_id)

        await self._audit_logger.log_expense_updated(
            user_id=user_id,
            expense_id=expense_id,
            changed_fields=[
                field for field in TRACKED_FIELDS
                if getattr(existing, field) != getattr(saved, field)
            ],
            correlation_id=correlation_id,
        )
        return saved

    async def delete_expense(
        self,
        session: Optional[UserSession],
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an expense and its receipt.

        The row goes first; the receipt is removed only once the row is gone.

        Raises:
            NotAuthenticatedError: If session is None
            ExpenseNotFoundError: If the user has no expense with this ID
            PersistenceError: If the delete fails
        """
        user_id = require_user(session)
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._expenses.get_expense(user_id, expense_id)
        if existing is None:
            raise ExpenseNotFoundError(f"Expense not found: {expense_id}")

        try:
            deleted = await self._expenses.delete_expense(user_id, expense_id)
        except PersistenceError as e:
            await self._audit_logger.log_persistence_error(
                user_id=user_id,
                operation="delete_expense",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        if not deleted:
            raise ExpenseNotFoundError(f"Expense not found: {expense_id}")

        if existing.attachment_url:
            await self._discard_attachment(user_id, existing.attachment_url, correlation_id)

        await self._audit_logger.log_expense_deleted(
            user_id=user_id,
            expense_id=expense_id,
            correlation_id=correlation_id,
        )


def describe_failure(exc: Exception) -> str:
    """Turn an error from the flows above into a message for the user."""
    if isinstance(exc, NotAuthenticatedError):
        return "Please sign in to continue."
    if isinstance(exc, ExpenseValidationError):
        return ExpenseValidator.get_user_friendly_summary(exc.result)
    if isinstance(exc, ExpenseNotFoundError):
        return "That expense no longer exists."
    if isinstance(exc, BackendConnectionError):
        return "Could not reach the expense database. Please try again later."
    if isinstance(exc, PersistenceError):
        return f"Could not save your changes: {exc}"
    if isinstance(exc, StorageError):
        return f"Could not store the receipt: {exc}"
    return f"Something went wrong: {exc}"


def create_app_components(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
) -> tuple[ExpenseService, ExpenseQueryExecutor, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets and Cloudinary.
                    Set to False to run on in-memory storage.
        settings: Settings to use instead of get_settings()

    Returns:
        (expense_service, query_executor, sheets_client)
    """
    settings = settings or get_settings()
    app_settings = settings.app

    sheets_client = None
    expense_storage: ExpenseStorageInterface
    category_storage: CategoryStorageInterface
    attachment_storage = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            sheets_client.connect()
            category_storage = GoogleSheetsCategoryStorage(sheets_client)
            expense_storage = GoogleSheetsExpenseStorage(sheets_client, category_storage)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except (ValidationError, PersistenceError) as e:
            # Storage not configured - continue without it
            logger.warning("sheets_storage_unavailable", error=str(e))
            sheets_client = None

        try:
            attachment_storage = CloudinaryAttachmentStorage(settings.cloudinary)
        except ValidationError as e:
            logger.warning("receipt_storage_unavailable", error=str(e))

    if sheets_client is None:
        category_storage = InMemoryCategoryStorage()
        expense_storage = InMemoryExpenseStorage(category_storage)
        audit_logger = AuditLogger()  # Local-only logging

    validator = ExpenseValidator(app_settings, category_storage)
    expense_service = ExpenseService(
        expense_storage=expense_storage,
        validator=validator,
        preparer=AttachmentPreparer(app_settings, validator),
        attachment_storage=attachment_storage,
        audit_logger=audit_logger,
    )
    query_executor = ExpenseQueryExecutor(
        expense_storage=expense_storage,
        category_storage=category_storage,
        settings=app_settings,
        audit_logger=audit_logger,
    )

    return expense_service, query_executor, sheets_client
