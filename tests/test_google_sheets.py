"""Tests for the Google Sheets backend, run against an in-memory worksheet."""

import asyncio
from datetime import date
from uuid import uuid4

import pytest

from conftest import make_expense
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.expense import ExpenseFilter
from expense_tracker.services.database import (
    ExpenseNotFoundError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsExpenseStorage,
    PersistenceError,
)
from expense_tracker.services.database.google_sheets import (
    AUDIT_COLUMNS,
    CATEGORY_COLUMNS,
    EXPENSE_COLUMNS,
)


class FakeWorksheet:
    """The subset of gspread.Worksheet the storage uses."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(value) for value in values])

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class BrokenWorksheet(FakeWorksheet):

    def append_row(self, values, value_input_option=None):
        raise RuntimeError("quota exceeded")


class FakeSheetsClient:

    def __init__(self, audit_sheet=None):
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS)
        self.categories = FakeWorksheet(CATEGORY_COLUMNS)
        self.audit = audit_sheet or FakeWorksheet(AUDIT_COLUMNS)
        self.categories.append_row(["food", "Food", "🍔", "orange", "2024-01-01T00:00:00+00:00"])
        self.categories.append_row(["bills", "Bills", "", "", "2024-01-01T00:00:00+00:00"])

    def get_expenses_sheet(self):
        return self.expenses

    def get_categories_sheet(self):
        return self.categories

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def storage(client):
    return GoogleSheetsExpenseStorage(client)


class TestGoogleSheetsCategoryStorage:

    def test_list_sorted_by_name(self, client):
        categories = asyncio.run(GoogleSheetsCategoryStorage(client).list_categories())
        assert [c.name for c in categories] == ["Bills", "Food"]
        assert categories[1].icon == "🍔"
        assert categories[0].icon is None

    def test_get_category(self, client):
        storage = GoogleSheetsCategoryStorage(client)
        assert asyncio.run(storage.get_category("food")).name == "Food"
        assert asyncio.run(storage.get_category("pets")) is None

    def test_malformed_row_is_persistence_error(self, client):
        client.categories.append_row(["misc", "Misc", "", "", ""])
        storage = GoogleSheetsCategoryStorage(client)

        with pytest.raises(PersistenceError, match="Failed to load categories"):
            asyncio.run(storage.list_categories())
        with pytest.raises(PersistenceError):
            asyncio.run(storage.get_category("food"))

    def test_malformed_category_fails_expense_listing(self, client, storage):
        asyncio.run(storage.create_expense(make_expense("e1", 1)))
        client.categories.append_row(["misc", "", "", "", "2024-01-01T00:00:00+00:00"])

        with pytest.raises(PersistenceError):
            asyncio.run(storage.list_expenses("user-1"))


class TestGoogleSheetsExpenseStorage:

    def test_round_trip_joins_category(self, storage):
        expense = make_expense("e1", 12.34, "EUR", date(2024, 1, 5), description="Dinner")
        expense = expense.model_copy(update={"category_id": "food"})
        asyncio.run(storage.create_expense(expense))

        loaded = asyncio.run(storage.get_expense("user-1", "e1"))

        assert loaded.amount == 12.34
        assert loaded.currency == "EUR"
        assert loaded.date == date(2024, 1, 5)
        assert loaded.category.name == "Food"
        assert loaded.description == "Dinner"
        assert loaded.attachment_url is None

    def test_list_is_scoped_sorted_and_filtered(self, storage):
        for expense in [
            make_expense("a", 1, "USD", date(2024, 1, 1)),
            make_expense("b", 2, "EUR", date(2024, 1, 9)),
            make_expense("c", 3, "USD", date(2024, 1, 5)),
            make_expense("x", 4, "USD", date(2024, 1, 7), user_id="someone-else"),
        ]:
            asyncio.run(storage.create_expense(expense))

        everything = asyncio.run(storage.list_expenses("user-1"))
        assert [e.id for e in everything] == ["b", "c", "a"]

        usd = asyncio.run(storage.list_expenses("user-1", ExpenseFilter(currency="usd")))
        assert [e.id for e in usd] == ["c", "a"]

    def test_other_users_expense_is_invisible(self, storage):
        asyncio.run(storage.create_expense(make_expense("e1", 1, user_id="owner")))
        assert asyncio.run(storage.get_expense("intruder", "e1")) is None
        assert asyncio.run(storage.delete_expense("intruder", "e1")) is False

    def test_update(self, storage):
        expense = make_expense("e1", 1)
        asyncio.run(storage.create_expense(expense))

        asyncio.run(storage.update_expense(expense.model_copy(update={"amount": 99.5})))

        assert asyncio.run(storage.get_expense("user-1", "e1")).amount == 99.5

    def test_update_missing(self, storage):
        with pytest.raises(ExpenseNotFoundError):
            asyncio.run(storage.update_expense(make_expense("ghost", 1)))

    def test_delete(self, storage, client):
        asyncio.run(storage.create_expense(make_expense("e1", 1)))
        asyncio.run(storage.create_expense(make_expense("e2", 2)))

        assert asyncio.run(storage.delete_expense("user-1", "e1")) is True

        assert [row[0] for row in client.expenses.rows[1:]] == ["e2"]


class TestGoogleSheetsAuditStorage:

    def test_append_and_read_back(self, client):
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.expense_created(
            user_id="user-1",
            expense_id="e1",
            amount=5,
            currency="USD",
            correlation_id=correlation_id,
        )

        assert asyncio.run(storage.append_event(event)) is True

        by_entity = asyncio.run(storage.get_events_by_entity("expense", "e1"))
        assert [e.event_id for e in by_entity] == [event.event_id]
        assert by_entity[0].details == {"amount": 5, "currency": "USD"}

        by_correlation = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(by_correlation) == 1
        assert asyncio.run(storage.get_recent_events(limit=10))[0].event_id == event.event_id

    def test_malformed_row_is_persistence_error(self, client):
        client.audit.append_row(["not-a-uuid", "", "expense_created", "info"])
        storage = GoogleSheetsAuditStorage(client)

        with pytest.raises(PersistenceError, match="Failed to get audit events"):
            asyncio.run(storage.get_recent_events())

    def test_append_failure_raises(self):
        client = FakeSheetsClient(audit_sheet=BrokenWorksheet(AUDIT_COLUMNS))
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.expense_deleted(
            user_id="user-1",
            expense_id="e1",
            correlation_id=uuid4(),
        )
        with pytest.raises(PersistenceError, match="quota exceeded"):
            asyncio.run(storage.append_event(event))
