"""
Google Sheets Remote Gateway

DESIGN DECISION: A spreadsheet is the hosted row-store backend because:
1. Users can view their own data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions; last writer wins
- Limited query capabilities (we filter by principal in Python)

Only the connection handshake is retried. Entity writes are at-most-once:
a failed create or delete is reported to the store, never replayed here.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Optional, Sequence

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.audit import get_logger
from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.entities import (
    Category,
    Draft,
    Entity,
    EntityKind,
    Expense,
    Income,
    build_entity,
)
from finance_tracker.services.storage.interface import (
    EntityGateway,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    sort_for_contract,
)


# Column mappings per worksheet
COLUMNS = {
    EntityKind.CATEGORY: ["id", "user_id", "name", "icon", "color", "created_at"],
    EntityKind.EXPENSE: [
        "id", "user_id", "description", "amount", "category_id", "date", "created_at",
    ],
    EntityKind.INCOME: ["id", "user_id", "description", "amount", "date", "created_at"],
}

logger = get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
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
            except FileNotFoundError as e:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def sheet_name(self, kind: EntityKind) -> str:
        return {
            EntityKind.CATEGORY: self._settings.categories_sheet_name,
            EntityKind.EXPENSE: self._settings.expenses_sheet_name,
            EntityKind.INCOME: self._settings.incomes_sheet_name,
        }[kind]

    def get_entity_sheet(self, kind: EntityKind) -> gspread.Worksheet:
        """Get or create the worksheet for one entity kind."""
        spreadsheet = self.get_spreadsheet()
        name = self.sheet_name(kind)
        try:
            sheet = spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=name,
                rows=1000,
                cols=len(COLUMNS[kind]),
            )
            sheet.append_row(COLUMNS[kind])
        return sheet


def entity_to_row(kind: EntityKind, entity: Entity, created_at: datetime) -> list:
    """Convert an entity to a spreadsheet row."""
    if kind == EntityKind.CATEGORY:
        return [
            entity.id,
            entity.user_id or "",
            entity.name,
            entity.icon,
            entity.color.value,
            created_at.isoformat(),
        ]
    if kind == EntityKind.EXPENSE:
        return [
            entity.id,
            entity.user_id or "",
            entity.description,
            str(entity.amount),
            entity.category_id,
            entity.date.isoformat(),
            created_at.isoformat(),
        ]
    return [
        entity.id,
        entity.user_id or "",
        entity.description,
        str(entity.amount),
        entity.date.isoformat(),
        created_at.isoformat(),
    ]


def row_to_entity(kind: EntityKind, row: list) -> Entity:
    """
    Convert a spreadsheet row to an entity.

    Raises:
        ValueError: If the row is malformed
    """
    # Handle missing columns gracefully
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    if kind == EntityKind.CATEGORY:
        return Category(
            id=safe_get(0),
            user_id=safe_get(1) or None,
            name=safe_get(2),
            icon=safe_get(3),
            color=safe_get(4),
        )
    if kind == EntityKind.EXPENSE:
        return Expense(
            id=safe_get(0),
            user_id=safe_get(1) or None,
            description=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            category_id=safe_get(4),
            date=safe_get(5),
        )
    return Income(
        id=safe_get(0),
        user_id=safe_get(1) or None,
        description=safe_get(2),
        amount=Decimal(safe_get(3, "0")),
        date=safe_get(4),
    )


class GoogleSheetsEntityGateway(EntityGateway):
    """
    Google Sheets implementation of the remote gateway.

    Each entity kind lives in its own worksheet, one record per row.
    Rows carry the owning principal; filtering happens on read.

    gspread is blocking, so every call runs in the default executor and
    the event loop keeps serving other coroutines meanwhile.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def list(self, kind: EntityKind, principal: str) -> Sequence[Entity]:
        """List one principal's records in contract order."""
        return await self._run(self._list_sync, kind, principal)

    async def create(self, kind: EntityKind, principal: str, draft: Draft) -> Entity:
        """Append a new row and return the stored record."""
        return await self._run(self._create_sync, kind, principal, draft)

    async def delete(self, kind: EntityKind, principal: str, identifier: str) -> None:
        """Delete the principal's row with this identifier."""
        await self._run(self._delete_sync, kind, principal, identifier)

    def _list_sync(self, kind: EntityKind, principal: str) -> Sequence[Entity]:
        try:
            sheet = self._client.get_entity_sheet(kind)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {kind.value}: {e}") from e

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            if len(row) < 2 or row[1] != principal:
                continue

            try:
                records.append(row_to_entity(kind, row))
            except (ValueError, ArithmeticError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    kind=kind.value,
                    row_id=row[0],
                    error=str(e),
                )

        return sort_for_contract(kind, records)

    def _create_sync(self, kind: EntityKind, principal: str, draft: Draft) -> Entity:
        entity = build_entity(kind, draft, uuid.uuid4().hex, principal)
        try:
            sheet = self._client.get_entity_sheet(kind)
            row = entity_to_row(kind, entity, datetime.now(timezone.utc))
            sheet.append_row(row, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create {kind.value} record: {e}") from e
        return entity

    def _delete_sync(self, kind: EntityKind, principal: str, identifier: str) -> None:
        try:
            sheet = self._client.get_entity_sheet(kind)
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
                if row and row[0] == identifier and len(row) > 1 and row[1] == principal:
                    sheet.delete_rows(idx)
                    return
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value} record: {e}") from e

        raise NotFoundError(f"No {kind.value} record with id {identifier}")
