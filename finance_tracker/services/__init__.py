"""Services package."""

from finance_tracker.services.storage import (
    EntityGateway,
    GoogleSheetsClient,
    GoogleSheetsEntityGateway,
    LocalRecordSlot,
    LocalSlotEntityGateway,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "EntityGateway",
    "GoogleSheetsClient",
    "GoogleSheetsEntityGateway",
    "LocalRecordSlot",
    "LocalSlotEntityGateway",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
