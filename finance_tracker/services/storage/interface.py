"""
Abstract Remote Gateway Interface

DESIGN DECISION: The store only talks to the remote through this interface.
This allows us to:
1. Swap the hosted row-store for another backend without touching the store
2. Use the local slot file as a pre-remote / offline-development backend
3. Use in-memory doubles in tests
4. Keep the synchronization protocol decoupled from the wire

The interface is intentionally small: the store needs list, create and
delete, and the three entity kinds share one shape.

ORDERING CONTRACT:
- categories are returned by name ascending
- expenses and incomes are returned by date descending
"""

from abc import ABC, abstractmethod
from typing import Sequence

from finance_tracker.models.entities import Draft, Entity, EntityKind


class EntityGateway(ABC):
    """
    Abstract interface for the remote store.

    Any backend (Google Sheets, local slots, a hosted database)
    must implement these methods. None of them retry; the store treats
    every call as at-most-once.
    """

    @abstractmethod
    async def list(self, kind: EntityKind, principal: str) -> Sequence[Entity]:
        """
        Fetch every record of one kind owned by a principal.

        Args:
            kind: Which collection to fetch
            principal: Owning principal identifier

        Returns:
            Records in contract order

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def create(self, kind: EntityKind, principal: str, draft: Draft) -> Entity:
        """
        Create a record owned by a principal.

        Args:
            kind: Which collection to write to
            principal: Owning principal identifier
            draft: Validated user input

        Returns:
            The stored record carrying its server-assigned identifier

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, principal: str, identifier: str) -> None:
        """
        Delete a record by identifier.

        Raises:
            NotFoundError: If the principal owns no such record
            StorageError: If the delete fails
        """
        pass


def sort_for_contract(kind: EntityKind, records: list[Entity]) -> list[Entity]:
    """Order records the way every gateway must return them."""
    if kind == EntityKind.CATEGORY:
        return sorted(records, key=lambda record: record.name.casefold())
    return sorted(records, key=lambda record: record.date, reverse=True)


class StorageError(Exception):
    """Base exception for remote store operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
