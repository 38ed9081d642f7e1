"""
Tests for the Google Sheets gateway.

The spreadsheet is a FakeSpreadsheet; nothing talks to Google.
"""

import asyncio
import time
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from tenacity import wait_none

from conftest import PRINCIPAL, FakeSpreadsheet, FakeWorksheet
from finance_tracker.config import GoogleSheetsSettings
from finance_tracker.models import CategoryColor, CategoryDraft, EntityKind, ExpenseDraft
from finance_tracker.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsEntityGateway,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from finance_tracker.services.storage import google_sheets
from finance_tracker.services.storage.google_sheets import (
    COLUMNS,
    entity_to_row,
    row_to_entity,
)


@pytest.fixture
def sheets_settings(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}", encoding="utf-8")
    return GoogleSheetsSettings(
        credentials_path=str(credentials),
        spreadsheet_id="sheet-123",
    )


@pytest.fixture
def spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture
def sheets_gateway(sheets_settings, spreadsheet, monkeypatch):
    client = GoogleSheetsClient(sheets_settings)
    monkeypatch.setattr(client, "get_spreadsheet", lambda: spreadsheet)
    return GoogleSheetsEntityGateway(client)


def expense_row(exp_id, user_id, amount, on, category_id="food"):
    return [exp_id, user_id, f"expense {exp_id}", amount, category_id, on, "2024-01-01T00:00:00+00:00"]


class TestRowMapping:
    """Entities to rows and back."""

    def test_expense_round_trip(self):
        """Test that an expense survives the row format."""
        row = expense_row("e1", PRINCIPAL, "3.250", "2024-01-02")
        expense = row_to_entity(EntityKind.EXPENSE, row)

        assert expense.amount == Decimal("3.250")
        assert expense.date == date(2024, 1, 2)
        assert entity_to_row(
            EntityKind.EXPENSE, expense, datetime(2024, 1, 1, tzinfo=timezone.utc),
        ) == row

    def test_category_unknown_color(self):
        """Test that a row with an odd color still loads."""
        category = row_to_entity(EntityKind.CATEGORY, ["c1", PRINCIPAL, "Food", "", "neon"])
        assert category.color == CategoryColor.SLATE

    def test_malformed_amount_raises(self):
        """Test that a non-numeric amount is reported as malformed."""
        with pytest.raises((ValueError, ArithmeticError)):
            row_to_entity(EntityKind.INCOME, ["i1", PRINCIPAL, "Salary", "lots", "2024-01-01"])


class TestGoogleSheetsEntityGateway:
    """The gateway contract over worksheets."""

    def test_missing_worksheet_is_created_with_headers(self, sheets_gateway, spreadsheet):
        """Test that the first access creates the sheet."""
        assert asyncio.run(sheets_gateway.list(EntityKind.CATEGORY, PRINCIPAL)) == []
        assert spreadsheet.worksheets["Categories"].rows == [COLUMNS[EntityKind.CATEGORY]]

    def test_list_filters_principal_and_sorts(self, sheets_gateway, spreadsheet):
        """Test principal scoping and newest-first order."""
        spreadsheet.worksheets["Expenses"] = FakeWorksheet("Expenses", [
            COLUMNS[EntityKind.EXPENSE],
            expense_row("e1", PRINCIPAL, "1", "2024-01-01"),
            expense_row("e2", "someone-else", "9", "2024-01-09"),
            expense_row("e3", PRINCIPAL, "2", "2024-01-03"),
            [],
        ])

        expenses = asyncio.run(sheets_gateway.list(EntityKind.EXPENSE, PRINCIPAL))

        assert [e.id for e in expenses] == ["e3", "e1"]

    def test_malformed_rows_are_skipped(self, sheets_gateway, spreadsheet):
        """Test that one bad row does not hide the rest."""
        spreadsheet.worksheets["Expenses"] = FakeWorksheet("Expenses", [
            COLUMNS[EntityKind.EXPENSE],
            expense_row("bad", PRINCIPAL, "abc", "2024-01-01"),
            expense_row("good", PRINCIPAL, "2", "2024-01-03"),
        ])

        expenses = asyncio.run(sheets_gateway.list(EntityKind.EXPENSE, PRINCIPAL))

        assert [e.id for e in expenses] == ["good"]

    def test_create_appends_row(self, sheets_gateway, spreadsheet):
        """Test that create assigns an id and appends one row."""
        draft = CategoryDraft(name="Pets", icon="M0 0", color="pink")

        category = asyncio.run(sheets_gateway.create(EntityKind.CATEGORY, PRINCIPAL, draft))

        rows = spreadsheet.worksheets["Categories"].rows
        assert len(rows) == 2
        assert rows[1][:5] == [category.id, PRINCIPAL, "Pets", "M0 0", "pink"]
        assert category.user_id == PRINCIPAL

    def test_create_failure_is_storage_error(self, sheets_gateway, spreadsheet):
        """Test that gspread errors are wrapped and not retried."""
        sheet = FakeWorksheet("Expenses", [COLUMNS[EntityKind.EXPENSE]])
        sheet.fail_appends = True
        spreadsheet.worksheets["Expenses"] = sheet
        draft = ExpenseDraft(
            description="Lunch", amount=Decimal("1"), category_id="food", date=date(2024, 1, 1),
        )

        with pytest.raises(StorageError):
            asyncio.run(sheets_gateway.create(EntityKind.EXPENSE, PRINCIPAL, draft))

        assert len(sheet.rows) == 1

    def test_delete_only_own_row(self, sheets_gateway, spreadsheet):
        """Test that delete matches id and principal."""
        spreadsheet.worksheets["Expenses"] = FakeWorksheet("Expenses", [
            COLUMNS[EntityKind.EXPENSE],
            expense_row("shared-id", "someone-else", "1", "2024-01-01"),
            expense_row("shared-id", PRINCIPAL, "2", "2024-01-02"),
        ])

        asyncio.run(sheets_gateway.delete(EntityKind.EXPENSE, PRINCIPAL, "shared-id"))

        rows = spreadsheet.worksheets["Expenses"].rows
        assert [row[1] for row in rows[1:]] == ["someone-else"]

    def test_delete_missing_raises_not_found(self, sheets_gateway):
        """Test that an unknown id is NotFoundError."""
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_gateway.delete(EntityKind.INCOME, PRINCIPAL, "nope"))

    def test_list_does_not_block_event_loop(self, sheets_gateway, spreadsheet):
        """Test that other coroutines keep running during a slow sheet read."""
        spreadsheet.worksheets["Incomes"] = SlowWorksheet(
            "Incomes", [COLUMNS[EntityKind.INCOME]], delay=0.5,
        )
        ticks = []

        async def ticker(stop: asyncio.Event):
            while not stop.is_set():
                ticks.append(1)
                await asyncio.sleep(0.05)

        async def list_while_ticking():
            stop = asyncio.Event()
            task = asyncio.ensure_future(ticker(stop))
            await asyncio.sleep(0)
            incomes = await sheets_gateway.list(EntityKind.INCOME, PRINCIPAL)
            stop.set()
            await task
            return incomes

        assert asyncio.run(list_while_ticking()) == []
        assert len(ticks) > 3


class SlowWorksheet(FakeWorksheet):
    """A worksheet whose reads block like a real network call."""

    def __init__(self, title, rows=None, delay=0.5):
        super().__init__(title, rows)
        self.delay = delay

    def get_all_values(self):
        time.sleep(self.delay)
        return super().get_all_values()


class TestGoogleSheetsClient:
    """Connection handling."""

    def test_sheet_names_follow_settings(self, sheets_settings):
        """Test the per-kind worksheet names."""
        client = GoogleSheetsClient(sheets_settings)
        assert client.sheet_name(EntityKind.INCOME) == "Incomes"

    def test_connect_retries_then_raises(self, sheets_settings, monkeypatch):
        """Test that the handshake is retried three times before giving up."""
        attempts = []

        def refuse(path, scopes):
            attempts.append(path)
            raise RuntimeError("invalid grant")

        monkeypatch.setattr(google_sheets.Credentials, "from_service_account_file", refuse)
        client = GoogleSheetsClient(sheets_settings)
        connect = GoogleSheetsClient.connect.retry_with(wait=wait_none())

        with pytest.raises(StorageConnectionError):
            connect(client)

        assert len(attempts) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
