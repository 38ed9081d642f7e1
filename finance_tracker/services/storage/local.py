"""
Local Slot Gateway

The pre-remote variant of the store: every collection is serialized into a
named slot of a local key-value file, much like browser local storage.

FORMAT:
- The slot file is one JSON object: {slot_key: serialized_collection}
- A serialized collection is a JSON array of records
- Dates are ISO-8601 strings and amounts are decimal strings; both are
  parsed back into date / Decimal values on read

A slot that cannot be read (bad JSON, a record that no longer validates)
falls back to the initial collection instead of crashing. For categories
the initial collection is the default category set.
"""

import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Sequence, Union

import pydantic

from finance_tracker.audit import get_logger
from finance_tracker.models.entities import (
    ENTITY_MODELS,
    Category,
    CategoryColor,
    Draft,
    Entity,
    EntityKind,
    build_entity,
)
from finance_tracker.services.storage.interface import (
    EntityGateway,
    NotFoundError,
    StorageError,
    sort_for_contract,
)


logger = get_logger(__name__)


# (id, name, icon, color)
DEFAULT_CATEGORIES = [
    ("food", "Food", "M13 17h8m0 0V9m0 8l-8-8-4 4-6-6", CategoryColor.CYAN),
    ("transport", "Transport", "M12 19l9 2-9-18-9 18 9-2zm0 0v-8", CategoryColor.BLUE),
    (
        "bills",
        "Bills",
        "M9 12h6m-6 4h6m2 5H7a2 2 0 01-2-2V5a2 2 0 012-2h5.586a1 1 0 01.707.293"
        "l5.414 5.414a1 1 0 01.293.707V19a2 2 0 01-2 2z",
        CategoryColor.RED,
    ),
    (
        "entertainment",
        "Entertainment",
        "M14.752 11.168l-3.197-2.132A1 1 0 0010 9.87v4.263a1 1 0 001.555.832"
        "l3.197-2.132a1 1 0 000-1.664zM21 12a9 9 0 11-18 0 9 9 0 0118 0z",
        CategoryColor.PURPLE,
    ),
    (
        "health",
        "Health",
        "M4.318 6.318a4.5 4.5 0 000 6.364L12 20.364l7.682-7.682a4.5 4.5 0 00"
        "-6.364-6.364L12 7.636l-1.318-1.318a4.5 4.5 0 00-6.364 0z",
        CategoryColor.GREEN,
    ),
    ("shopping", "Shopping", "M16 11V7a4 4 0 00-8 0v4M5 9h14l1 12H4L5 9z", CategoryColor.ORANGE),
    (
        "other",
        "Other",
        "M5 12h.01M12 12h.01M19 12h.01M6 12a1 1 0 11-2 0 1 1 0 012 0zm7 0a1 1 0 11"
        "-2 0 1 1 0 012 0zm7 0a1 1 0 11-2 0 1 1 0 012 0z",
        CategoryColor.SLATE,
    ),
]


def default_categories(principal: Optional[str]) -> list[Category]:
    """The category set a new principal starts with."""
    return [
        Category(id=cat_id, name=name, icon=icon, color=color, user_id=principal)
        for cat_id, name, icon, color in DEFAULT_CATEGORIES
    ]


class LocalRecordSlot:
    """
    A small key-value store persisted as one JSON file.

    Values are strings, like browser local storage. A missing or corrupt
    file reads as empty.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning("slot_file_unreadable", path=str(self._path), error=str(e))
            return {}

        if not isinstance(data, dict):
            logger.warning("slot_file_unreadable", path=str(self._path), error="not an object")
            return {}
        return {key: value for key, value in data.items() if isinstance(value, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def _write_all(self, data: dict[str, str]) -> None:
        """
        Replace the file atomically.

        Raises:
            OSError: If the file cannot be written
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


def serialize_records(records: Sequence[Entity]) -> str:
    """Serialize records; dates become ISO-8601 strings."""
    return json.dumps([record.model_dump(mode="json") for record in records])


def deserialize_records(kind: EntityKind, raw: str) -> list[Entity]:
    """
    Parse a serialized collection back into entities.

    Raises:
        ValueError: If the value is not a readable collection
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of {kind.value} records")
    model = ENTITY_MODELS[kind]
    return [model(**item) for item in data]


class LocalSlotEntityGateway(EntityGateway):
    """
    Gateway backed by a LocalRecordSlot.

    Each principal gets one slot per entity kind.
    """

    def __init__(self, slot: LocalRecordSlot):
        self._slot = slot

    @staticmethod
    def slot_key(kind: EntityKind, principal: str) -> str:
        return f"{kind.value}:{principal}"

    def _initial(self, kind: EntityKind, principal: str) -> list:
        if kind == EntityKind.CATEGORY:
            return default_categories(principal)
        return []

    def _read(self, kind: EntityKind, principal: str) -> list:
        key = self.slot_key(kind, principal)
        raw = self._slot.get(key)
        if raw is None:
            return self._initial(kind, principal)

        try:
            return deserialize_records(kind, raw)
        except (ValueError, TypeError, pydantic.ValidationError) as e:
            logger.warning("slot_value_corrupt", slot=key, error=str(e))
            return self._initial(kind, principal)

    def _write(self, kind: EntityKind, principal: str, records: Sequence[Entity]) -> None:
        try:
            self._slot.set(self.slot_key(kind, principal), serialize_records(records))
        except OSError as e:
            raise StorageError(f"Failed to write {kind.value} slot: {e}") from e

    async def list(self, kind: EntityKind, principal: str) -> Sequence[Entity]:
        return sort_for_contract(kind, self._read(kind, principal))

    async def create(self, kind: EntityKind, principal: str, draft: Draft) -> Entity:
        entity = build_entity(kind, draft, uuid.uuid4().hex, principal)
        records = self._read(kind, principal)
        records.append(entity)
        self._write(kind, principal, records)
        return entity

    async def delete(self, kind: EntityKind, principal: str, identifier: str) -> None:
        records = self._read(kind, principal)
        remaining = [record for record in records if record.id != identifier]
        if len(remaining) == len(records):
            raise NotFoundError(f"No {kind.value} record with id {identifier}")
        self._write(kind, principal, remaining)
