"""Flow tests for creating, updating and deleting expenses."""

import asyncio
from datetime import date

import pytest

from conftest import TODAY, make_image
from expense_tracker.auth import NotAuthenticatedError, UserSession
from expense_tracker.config import Settings
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import (
    AttachmentUpload,
    ExpenseFormData,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.orchestrator import ExpenseService, create_app_components, describe_failure
from expense_tracker.queries.executor import ExpenseQueryExecutor
from expense_tracker.services.database import (
    BackendConnectionError,
    ExpenseNotFoundError,
    InMemoryExpenseStorage,
    PersistenceError,
)
from expense_tracker.services.storage import StorageError
from expense_tracker.validation import ExpenseValidationError


def form(**overrides) -> ExpenseFormData:
    values = {"amount": 42.0, "currency": "usd", "date": date(2024, 1, 10), "category_id": "food"}
    values.update(overrides)
    return ExpenseFormData(**values)


def receipt() -> AttachmentUpload:
    return AttachmentUpload(filename="receipt.png", content_type="image/png", data=make_image())


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class FailingCreateStorage(InMemoryExpenseStorage):

    async def create_expense(self, expense):
        raise PersistenceError("write failed")


class FailingChangeStorage(InMemoryExpenseStorage):
    """Accepts new rows but refuses to change or delete them."""

    async def update_expense(self, expense):
        raise PersistenceError("update failed")

    async def delete_expense(self, user_id, expense_id):
        raise PersistenceError("delete failed")


@pytest.fixture
def service(expense_storage, validator, preparer, attachment_storage, audit_logger):
    return ExpenseService(
        expense_storage=expense_storage,
        validator=validator,
        preparer=preparer,
        attachment_storage=attachment_storage,
        audit_logger=audit_logger,
    )


class TestCreateExpense:

    def test_create(self, service, session, expense_storage, audit_storage):
        expense = asyncio.run(service.create_expense(session, form(), TODAY))

        assert expense.user_id == "user-1"
        assert expense.currency == "USD"
        assert expense.category.name == "Food"
        stored = asyncio.run(expense_storage.get_expense("user-1", expense.id))
        assert stored.amount == 42.0
        assert event_types(audit_storage) == [AuditEventType.EXPENSE_CREATED]

    def test_requires_session(self, service):
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(service.create_expense(None, form(), TODAY))

    def test_validation_error_blocks_save(self, service, session, expense_storage, audit_storage):
        with pytest.raises(ExpenseValidationError):
            asyncio.run(service.create_expense(session, form(category_id="pets"), TODAY))

        assert asyncio.run(expense_storage.list_expenses("user-1")) == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_with_receipt(self, service, session, attachment_storage, audit_storage):
        expense = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        assert expense.has_attachment
        assert expense.attachment_name == "receipt.png"
        assert expense.attachment_type == "image/jpeg"
        assert len(attachment_storage.uploaded) == 1
        assert event_types(audit_storage) == [
            AuditEventType.ATTACHMENT_UPLOADED,
            AuditEventType.EXPENSE_CREATED,
        ]

    def test_upload_failure_propagates(self, service, session, attachment_storage, expense_storage):
        attachment_storage.fail_upload = True
        with pytest.raises(StorageError):
            asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))
        assert asyncio.run(expense_storage.list_expenses("user-1")) == []

    def test_receipt_without_storage_configured(self, expense_storage, validator, preparer, session):
        service = ExpenseService(expense_storage, validator, preparer)
        with pytest.raises(StorageError, match="not configured"):
            asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

    def test_failed_save_removes_uploaded_receipt(
        self, categories, validator, preparer, attachment_storage, audit_logger, audit_storage, session
    ):
        service = ExpenseService(
            FailingCreateStorage(categories), validator, preparer, attachment_storage, audit_logger
        )

        with pytest.raises(PersistenceError, match="write failed"):
            asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        assert len(attachment_storage.deleted) == 1
        assert AuditEventType.PERSISTENCE_ERROR in event_types(audit_storage)
        assert AuditEventType.ATTACHMENT_DELETED in event_types(audit_storage)


class TestUpdateExpense:

    def test_update_fields(self, service, session, audit_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY))

        updated = asyncio.run(service.update_expense(
            session, created.id, form(amount=10, category_id="travel", description="Taxi"), TODAY
        ))

        assert updated.amount == 10
        assert updated.category.name == "Travel"
        assert updated.created_at == created.created_at
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.EXPENSE_UPDATED
        assert event.details["changed_fields"] == ["amount", "category_id", "description"]

    def test_update_missing(self, service, session):
        with pytest.raises(ExpenseNotFoundError):
            asyncio.run(service.update_expense(session, "ghost", form(), TODAY))

    def test_replace_receipt_deletes_old_one(self, service, session, attachment_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        updated = asyncio.run(service.update_expense(
            session, created.id, form(), TODAY, attachment=receipt()
        ))

        assert updated.attachment_url != created.attachment_url
        assert attachment_storage.deleted == [created.attachment_url]

    def test_remove_receipt(self, service, session, attachment_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        updated = asyncio.run(service.update_expense(
            session, created.id, form(), TODAY, remove_attachment=True
        ))

        assert updated.attachment_url is None
        assert updated.attachment_name is None
        assert attachment_storage.deleted == [created.attachment_url]

    def test_old_receipt_delete_failure_is_logged(self, service, session, attachment_storage, audit_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))
        attachment_storage.fail_delete = True

        updated = asyncio.run(service.update_expense(
            session, created.id, form(), TODAY, remove_attachment=True
        ))

        assert updated.attachment_url is None
        assert AuditEventType.ATTACHMENT_DELETE_FAILED in event_types(audit_storage)


    def test_failed_save_keeps_old_receipt(
        self, categories, validator, preparer, attachment_storage, audit_logger, audit_storage, session
    ):
        storage = FailingChangeStorage(categories)
        service = ExpenseService(storage, validator, preparer, attachment_storage, audit_logger)
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        with pytest.raises(PersistenceError, match="update failed"):
            asyncio.run(service.update_expense(
                session, created.id, form(amount=5), TODAY, attachment=receipt()
            ))

        new_url = "https://files.example/user-1/2.jpg"
        assert attachment_storage.deleted == [new_url]
        assert created.attachment_url not in attachment_storage.deleted
        kept = asyncio.run(storage.get_expense("user-1", created.id))
        assert kept.attachment_url == created.attachment_url
        assert kept.amount == 42.0
        assert AuditEventType.PERSISTENCE_ERROR in event_types(audit_storage)


class TestDeleteExpense:

    def test_delete_cascades_to_receipt(self, service, session, expense_storage, attachment_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        asyncio.run(service.delete_expense(session, created.id))

        assert asyncio.run(expense_storage.get_expense("user-1", created.id)) is None
        assert attachment_storage.deleted == [created.attachment_url]

    def test_receipt_failure_does_not_block_delete(
        self, service, session, expense_storage, attachment_storage, audit_storage
    ):
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))
        attachment_storage.fail_delete = True

        asyncio.run(service.delete_expense(session, created.id))

        assert asyncio.run(expense_storage.get_expense("user-1", created.id)) is None
        failed = [
            event for event in audit_storage.events
            if event.event_type == AuditEventType.ATTACHMENT_DELETE_FAILED
        ]
        assert failed[0].error_message == "delete refused"
        assert audit_storage.events[-1].event_type == AuditEventType.EXPENSE_DELETED

    def test_failed_delete_keeps_receipt(
        self, categories, validator, preparer, attachment_storage, audit_logger, audit_storage, session
    ):
        storage = FailingChangeStorage(categories)
        service = ExpenseService(storage, validator, preparer, attachment_storage, audit_logger)
        created = asyncio.run(service.create_expense(session, form(), TODAY, attachment=receipt()))

        with pytest.raises(PersistenceError, match="delete failed"):
            asyncio.run(service.delete_expense(session, created.id))

        assert attachment_storage.deleted == []
        kept = asyncio.run(storage.get_expense("user-1", created.id))
        assert kept.attachment_url == created.attachment_url
        assert audit_storage.events[-1].event_type == AuditEventType.PERSISTENCE_ERROR

    def test_delete_missing(self, service, session):
        with pytest.raises(ExpenseNotFoundError):
            asyncio.run(service.delete_expense(session, "ghost"))

    def test_cannot_delete_someone_elses(self, service, session, expense_storage):
        created = asyncio.run(service.create_expense(session, form(), TODAY))

        with pytest.raises(ExpenseNotFoundError):
            asyncio.run(service.delete_expense(UserSession(user_id="intruder"), created.id))
        assert asyncio.run(expense_storage.get_expense("user-1", created.id)) is not None


class TestDescribeFailure:

    def test_messages(self):
        assert describe_failure(NotAuthenticatedError("Not authenticated")) == "Please sign in to continue."
        assert describe_failure(ExpenseNotFoundError("x")) == "That expense no longer exists."
        assert "database" in describe_failure(BackendConnectionError("x"))
        assert describe_failure(PersistenceError("disk full")) == "Could not save your changes: disk full"
        assert describe_failure(StorageError("quota")) == "Could not store the receipt: quota"
        assert describe_failure(RuntimeError("boom")) == "Something went wrong: boom"

    def test_validation_message(self):
        error = ExpenseValidationError(ValidationResult(issues=[
            ValidationIssue(field="currency", issue_type="invalid_format", message="Bad code", severity="error"),
        ]))
        assert describe_failure(error) == "Please fix the following:\n   • Bad code"


class TestCreateAppComponents:

    def test_in_memory_wiring(self):
        service, executor, sheets_client = create_app_components(use_storage=False, settings=Settings())

        assert isinstance(service, ExpenseService)
        assert isinstance(executor, ExpenseQueryExecutor)
        assert sheets_client is None

    def test_wired_components_share_storage(self, session):
        service, executor, _ = create_app_components(use_storage=False, settings=Settings())

        asyncio.run(service.create_expense(session, form(category_id=None), TODAY))
        view = asyncio.run(executor.load_dashboard(session, TODAY))

        assert view.stats.count == 1
