"""
Storage Services Package

Provides the abstract remote gateway and its implementations.
Google Sheets is the hosted backend; the local slot file is the pre-remote
fallback. Both follow the same interface, so they are interchangeable.
"""

from finance_tracker.services.storage.interface import (
    EntityGateway,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    sort_for_contract,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsEntityGateway,
)
from finance_tracker.services.storage.local import (
    LocalRecordSlot,
    LocalSlotEntityGateway,
    default_categories,
)

__all__ = [
    # Interfaces
    "EntityGateway",
    "sort_for_contract",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsEntityGateway",
    # Local slot implementation
    "LocalRecordSlot",
    "LocalSlotEntityGateway",
    "default_categories",
]
