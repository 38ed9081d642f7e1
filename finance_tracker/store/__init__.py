"""Entity store package."""

from finance_tracker.store.entity_store import (
    PENDING_PREFIX,
    LoadReport,
    SynchronizedEntityStore,
)

__all__ = ["PENDING_PREFIX", "LoadReport", "SynchronizedEntityStore"]
