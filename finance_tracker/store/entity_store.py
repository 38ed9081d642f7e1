"""
Synchronized Entity Store

The single source of truth the UI renders from. It owns three ordered
collections (categories, expenses, incomes) and keeps them consistent with
the remote store.

PROTOCOL (confirmed-only, the default):
1. Validate locally - invalid input never reaches the network
2. Call the remote gateway
3. Success -> apply the server-confirmed result locally
4. Failure -> leave local state untouched and raise OperationFailed

PROTOCOL (optimistic, opt-in per call):
1. Validate locally
2. Insert a tentative record tagged pending
3. Success -> replace the tentative record with the confirmed one
4. Failure -> remove the tentative record and raise OperationFailed

GUARANTEES:
- Expenses and incomes are sorted by date descending after every insert
  (stable; a new record goes before existing records with the same date)
- Categories are sorted by name ascending after every insert
- Deletions preserve order
- Nothing is retried; every operation is at-most-once
- Operations are not serialized; concurrent calls may resolve in any order

Deleting a category does NOT cascade. Expenses that point at it become
orphaned and are shown as "missing category" (see category_for()).
"""

import uuid
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.audit import AuditLogger
from finance_tracker.errors import LoadFailed, OperationFailed, ValidationError
from finance_tracker.models.entities import (
    Category,
    Draft,
    Entity,
    EntityKind,
    Expense,
    Income,
    build_entity,
)
from finance_tracker.services.storage import EntityGateway, NotFoundError, sort_for_contract
from finance_tracker.validation import EntityValidator


PENDING_PREFIX = "pending-"

Listener = Callable[[EntityKind], None]


class LoadReport(BaseModel):
    """Outcome of a load(): per-kind counts and failures."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    counts: dict[EntityKind, int] = Field(default_factory=dict)
    failures: dict[EntityKind, LoadFailed] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


class SynchronizedEntityStore:
    """
    Owns the in-memory collections for one principal.

    Consumers read through the categories / expenses / incomes properties,
    which return tuples of frozen models. The only way to change a
    collection is through this class.
    """

    def __init__(
        self,
        gateway: EntityGateway,
        principal: str,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntityValidator] = None,
    ):
        if not principal:
            raise ValueError("A store session needs a principal")

        self._gateway = gateway
        self._principal = principal
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or EntityValidator()
        self._collections: dict[EntityKind, list[Entity]] = {
            kind: [] for kind in EntityKind
        }
        self._pending_ids: set[str] = set()
        self._listeners: list[Listener] = []

    # -- Read-only views ---------------------------------------------------

    @property
    def principal(self) -> str:
        return self._principal

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._collections[EntityKind.CATEGORY])

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return tuple(self._collections[EntityKind.EXPENSE])

    @property
    def incomes(self) -> tuple[Income, ...]:
        return tuple(self._collections[EntityKind.INCOME])

    def collection(self, kind: EntityKind) -> tuple[Entity, ...]:
        return tuple(self._collections[kind])

    def is_pending(self, identifier: str) -> bool:
        """Is this a tentative record still waiting for the remote?"""
        return identifier in self._pending_ids

    def category_for(self, expense: Expense) -> Optional[Category]:
        """The expense's category, or None when the reference dangles."""
        for category in self._collections[EntityKind.CATEGORY]:
            if category.id == expense.category_id:
                return category
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call listener(kind) after every local mutation.

        Returns:
            A callable that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, kind: EntityKind, records: list[Entity]) -> None:
        self._collections[kind] = records
        for listener in list(self._listeners):
            listener(kind)

    # -- Load --------------------------------------------------------------

    async def load(self) -> LoadReport:
        """
        Replace every collection with the remote's copy.

        Fails soft: a kind that cannot be fetched is presented empty and
        its LoadFailed is recorded in the report. Never raises for
        gateway errors.
        """
        report = LoadReport()

        for kind in EntityKind:
            try:
                fetched = await self._gateway.list(kind, self._principal)
            except Exception as e:
                failure = LoadFailed(kind.value, f"Could not load {kind.value}: {e}")
                failure.__cause__ = e
                report.failures[kind] = failure
                self._audit_logger.log_load_failed(kind.value, self._principal, e)
                self._replace(kind, [])
                continue

            records = []
            for record in fetched:
                if record.user_id is not None and record.user_id != self._principal:
                    self._audit_logger.log_foreign_record_dropped(
                        kind.value, record.id, self._principal, record.user_id,
                    )
                    continue
                records.append(record)

            report.counts[kind] = len(records)
            self._replace(kind, records)

        self._pending_ids.clear()
        self._audit_logger.log_collections_loaded(
            self._principal,
            {kind.value: count for kind, count in report.counts.items()},
        )
        return report

    # -- Add ---------------------------------------------------------------

    def _validate(self, kind: EntityKind, fields: Union[Mapping[str, Any], Draft]) -> Draft:
        try:
            return self._validator.validate(kind, fields)
        except ValidationError as e:
            self._audit_logger.log_validation_failed(
                kind.value,
                self._principal,
                [issue.model_dump() for issue in e.issues],
            )
            raise

    async def add(
        self,
        kind: EntityKind,
        fields: Union[Mapping[str, Any], Draft],
        optimistic: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Entity:
        """
        Create a record through the remote and apply it locally.

        Args:
            kind: Which collection
            fields: Raw form values or a draft
            optimistic: Show a tentative record while the remote responds
            correlation_id: Optional id tying this call to a user action

        Returns:
            The server-confirmed record

        Raises:
            ValidationError: Input is invalid; the remote was not contacted
            OperationFailed: The remote rejected the write; local state is unchanged
        """
        draft = self._validate(kind, fields)

        tentative = None
        if optimistic:
            tentative = build_entity(
                kind, draft, f"{PENDING_PREFIX}{uuid.uuid4().hex}", self._principal,
            )
            self._pending_ids.add(tentative.id)
            self._replace(kind, sort_for_contract(kind, [tentative, *self._collections[kind]]))

        try:
            confirmed = await self._gateway.create(kind, self._principal, draft)
        except Exception as e:
            if tentative is not None:
                self._discard_tentative(kind, tentative.id)
            self._audit_logger.log_operation_failed(
                kind=kind.value,
                operation="create",
                principal=self._principal,
                error=e,
                correlation_id=correlation_id,
            )
            raise OperationFailed(
                kind.value,
                "create",
                f"Could not save {kind.value} record: {e}",
            ) from e

        current = self._collections[kind]
        if tentative is not None:
            self._pending_ids.discard(tentative.id)
            current = [record for record in current if record.id != tentative.id]

        # A load() that finished meanwhile may already hold the confirmed record
        if any(record.id == confirmed.id for record in current):
            records = current
        else:
            records = [confirmed, *current]

        self._replace(kind, sort_for_contract(kind, records))
        self._audit_logger.log_entity_created(
            kind.value, confirmed.id, self._principal, correlation_id,
        )
        return confirmed

    def _discard_tentative(self, kind: EntityKind, identifier: str) -> None:
        self._pending_ids.discard(identifier)
        self._replace(
            kind,
            [record for record in self._collections[kind] if record.id != identifier],
        )

    async def add_category(self, fields: Union[Mapping[str, Any], Draft], **kwargs) -> Category:
        return await self.add(EntityKind.CATEGORY, fields, **kwargs)

    async def add_expense(self, fields: Union[Mapping[str, Any], Draft], **kwargs) -> Expense:
        return await self.add(EntityKind.EXPENSE, fields, **kwargs)

    async def add_income(self, fields: Union[Mapping[str, Any], Draft], **kwargs) -> Income:
        return await self.add(EntityKind.INCOME, fields, **kwargs)

    # -- Remove ------------------------------------------------------------

    async def remove(
        self,
        kind: EntityKind,
        identifier: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a record through the remote, then drop it locally.

        The remote call is attempted even when the identifier is not held
        locally; the remote is the authority on what exists.

        Raises:
            OperationFailed: The remote delete failed (including not-found);
                local state is unchanged
        """
        try:
            await self._gateway.delete(kind, self._principal, identifier)
        except Exception as e:
            self._audit_logger.log_operation_failed(
                kind=kind.value,
                operation="delete",
                principal=self._principal,
                error=e,
                entity_id=identifier,
                correlation_id=correlation_id,
            )
            if isinstance(e, NotFoundError):
                message = f"No {kind.value} record with id {identifier}"
            else:
                message = f"Could not delete {kind.value} record: {e}"
            raise OperationFailed(kind.value, "delete", message, entity_id=identifier) from e

        self._replace(
            kind,
            [record for record in self._collections[kind] if record.id != identifier],
        )
        self._audit_logger.log_entity_deleted(
            kind.value, identifier, self._principal, correlation_id,
        )

    async def remove_category(self, identifier: str, **kwargs) -> None:
        """
        Delete a category.

        Expenses that reference it are left alone and become orphaned.
        """
        await self.remove(EntityKind.CATEGORY, identifier, **kwargs)

    async def remove_expense(self, identifier: str, **kwargs) -> None:
        await self.remove(EntityKind.EXPENSE, identifier, **kwargs)

    async def remove_income(self, identifier: str, **kwargs) -> None:
        await self.remove(EntityKind.INCOME, identifier, **kwargs)
