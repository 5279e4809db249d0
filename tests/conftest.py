"""Shared fixtures: sample data and in-memory wiring."""

from datetime import date, datetime, timezone
from io import BytesIO
from typing import Optional

import pytest
from PIL import Image

from expense_tracker.audit import AuditLogger
from expense_tracker.auth import UserSession
from expense_tracker.config import AppSettings
from expense_tracker.models.expense import Category, Expense, PreparedAttachment, StoredAttachment
from expense_tracker.services.database import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
)
from expense_tracker.services.storage import (
    AttachmentPreparer,
    AttachmentStorageInterface,
    StorageError,
)
from expense_tracker.validation import ExpenseValidator


TODAY = date(2024, 1, 15)

FOOD = Category(id="food", name="Food", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
TRAVEL = Category(id="travel", name="Travel", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


def make_expense(
    id: str,
    amount: float,
    currency: str = "USD",
    day: date = TODAY,
    category: Optional[Category] = None,
    description: Optional[str] = None,
    user_id: str = "user-1",
    **extra,
) -> Expense:
    return Expense(
        id=id,
        user_id=user_id,
        amount=amount,
        currency=currency,
        category_id=category.id if category else None,
        category=category,
        date=day,
        description=description,
        **extra,
    )


def make_image(size=(800, 600), fmt="PNG", color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeAttachmentStorage(AttachmentStorageInterface):
    """Records uploads and deletes; can be told to fail."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.uploaded: list[PreparedAttachment] = []
        self.deleted: list[str] = []

    async def upload(self, user_id: str, attachment: PreparedAttachment) -> StoredAttachment:
        if self.fail_upload:
            raise StorageError("upload refused")
        self.uploaded.append(attachment)
        return StoredAttachment(
            url=f"https://files.example/{user_id}/{len(self.uploaded)}.{attachment.extension}",
            name=attachment.display_name,
            content_type=attachment.content_type,
        )

    async def delete(self, url: str) -> None:
        if self.fail_delete:
            raise StorageError("delete refused")
        self.deleted.append(url)


@pytest.fixture
def session():
    return UserSession(user_id="user-1", email="user@example.com")


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def categories():
    return InMemoryCategoryStorage([FOOD, TRAVEL])


@pytest.fixture
def expense_storage(categories):
    return InMemoryExpenseStorage(categories)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def validator(app_settings, categories):
    return ExpenseValidator(app_settings, categories)


@pytest.fixture
def preparer(app_settings, validator):
    return AttachmentPreparer(app_settings, validator)


@pytest.fixture
def attachment_storage():
    return FakeAttachmentStorage()
