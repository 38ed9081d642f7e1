"""
Shared test doubles.

No test talks to Google, Gemini or the network: the gateway, the asset
fetcher, the spreadsheet and the language model are all replaced here.
"""

import json
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional, Sequence

import gspread
import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.errors import AssetFetchError
from finance_tracker.models.entities import (
    Category,
    CategoryColor,
    Draft,
    Entity,
    EntityKind,
    Expense,
    Income,
    build_entity,
)
from finance_tracker.offline import AssetFetcher, AssetRequest, AssetResponse
from finance_tracker.services.storage import (
    EntityGateway,
    NotFoundError,
    StorageError,
    sort_for_contract,
)


PRINCIPAL = "user-1"


# =============================================================================
# Entity gateway
# =============================================================================

class FakeGateway(EntityGateway):
    """
    In-memory gateway that records every call.

    Set fail_on to a set of operation names ("list", "create", "delete")
    to make them raise StorageError.
    """

    def __init__(self, records: Optional[dict[EntityKind, list[Entity]]] = None):
        self.records: dict[EntityKind, list[Entity]] = {
            kind: list((records or {}).get(kind, [])) for kind in EntityKind
        }
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self.fail_kinds: set[EntityKind] = set()
        self._next_id = 0

    def operations(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def _maybe_fail(self, operation: str, kind: EntityKind) -> None:
        if operation in self.fail_on and (not self.fail_kinds or kind in self.fail_kinds):
            raise StorageError(f"{operation} unavailable")

    async def list(self, kind: EntityKind, principal: str) -> Sequence[Entity]:
        self.calls.append(("list", kind, principal))
        self._maybe_fail("list", kind)
        return sort_for_contract(kind, list(self.records[kind]))

    async def create(self, kind: EntityKind, principal: str, draft: Draft) -> Entity:
        self.calls.append(("create", kind, principal, draft))
        self._maybe_fail("create", kind)
        self._next_id += 1
        entity = build_entity(kind, draft, f"srv-{self._next_id}", principal)
        self.records[kind].append(entity)
        return entity

    async def delete(self, kind: EntityKind, principal: str, identifier: str) -> None:
        self.calls.append(("delete", kind, principal, identifier))
        self._maybe_fail("delete", kind)
        remaining = [record for record in self.records[kind] if record.id != identifier]
        if len(remaining) == len(self.records[kind]):
            raise NotFoundError(f"No {kind.value} record with id {identifier}")
        self.records[kind] = remaining


# =============================================================================
# Asset fetcher
# =============================================================================

class FakeFetcher(AssetFetcher):
    """
    Serves bodies from a dict keyed by URL.

    Missing URLs answer 404. URLs in `broken` raise AssetFetchError.
    """

    def __init__(self, bodies: Optional[dict[str, bytes]] = None):
        self.bodies: dict[str, bytes] = dict(bodies or {})
        self.broken: set[str] = set()
        self.requests: list[AssetRequest] = []

    async def fetch(self, request: AssetRequest) -> AssetResponse:
        self.requests.append(request)
        if request.url in self.broken:
            raise AssetFetchError(request.url, f"offline: {request.url}")
        if request.url not in self.bodies:
            return AssetResponse(url=request.url, status=404)
        return AssetResponse(url=request.url, status=200, body=self.bodies[request.url])


# =============================================================================
# gspread
# =============================================================================

class FakeWorksheet:
    """Just enough of gspread.Worksheet for the gateway."""

    def __init__(self, title: str, rows: Optional[list[list[str]]] = None):
        self.title = title
        self.rows: list[list[str]] = [list(row) for row in (rows or [])]
        self.fail_appends = False

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option="RAW"):
        if self.fail_appends:
            raise gspread.exceptions.GSpreadException("quota exceeded")
        self.rows.append([str(value) for value in values])

    def delete_rows(self, index: int):
        del self.rows[index - 1]


class FakeSpreadsheet:
    def __init__(self):
        self.worksheets: dict[str, FakeWorksheet] = {}

    def worksheet(self, title: str) -> FakeWorksheet:
        if title not in self.worksheets:
            raise gspread.WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, title: str, rows: int, cols: int) -> FakeWorksheet:
        sheet = FakeWorksheet(title)
        self.worksheets[title] = sheet
        return sheet


class FakeGeminiModel:
    """Returns canned text from generate_content_async."""

    def __init__(self, payload=None, error: Optional[Exception] = None):
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self.payload = payload
        self.error = error
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt: str):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.payload)


# =============================================================================
# Builders
# =============================================================================

def make_category(cat_id: str, name: str, user_id: Optional[str] = PRINCIPAL) -> Category:
    return Category(id=cat_id, name=name, color=CategoryColor.TEAL, user_id=user_id)


def make_expense(
    exp_id: str,
    amount: str,
    on: date,
    category_id: str = "c1",
    user_id: Optional[str] = PRINCIPAL,
) -> Expense:
    return Expense(
        id=exp_id,
        description=f"expense {exp_id}",
        amount=Decimal(amount),
        category_id=category_id,
        date=on,
        user_id=user_id,
    )


def make_income(
    inc_id: str,
    amount: str,
    on: date,
    user_id: Optional[str] = PRINCIPAL,
) -> Income:
    return Income(
        id=inc_id,
        description=f"income {inc_id}",
        amount=Decimal(amount),
        date=on,
        user_id=user_id,
    )


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
