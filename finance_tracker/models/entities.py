"""
Core Entity Models for Finance Tracker

Three entity kinds are held by the store: categories, expenses and incomes.
Each kind has two shapes:
1. A DRAFT - what the user typed, before the remote store assigned an id
2. An ENTITY - a server-confirmed record carrying its identifier and owner

DESIGN DECISION: Entities are frozen. The store hands them to the UI as
read-only values; the only way to change a collection is through the store.

Amounts are Decimal and are never rounded here. Rounding happens only when a
value is displayed.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntityKind(str, Enum):
    """
    The three collections owned by the store.

    The value doubles as the remote table name and the local slot key.
    """
    CATEGORY = "categories"
    EXPENSE = "expenses"
    INCOME = "incomes"


class CategoryColor(str, Enum):
    """
    Closed set of category color tags.

    Unknown tags are never an error: they fall back to DEFAULT.
    """
    TEAL = "teal"
    BLUE = "blue"
    RED = "red"
    PURPLE = "purple"
    GREEN = "green"
    ORANGE = "orange"
    SLATE = "slate"
    PINK = "pink"
    YELLOW = "yellow"
    CYAN = "cyan"

    @classmethod
    def coerce(cls, value: Any) -> "CategoryColor":
        """Map any value onto the closed set, falling back to slate."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return DEFAULT_CATEGORY_COLOR


DEFAULT_CATEGORY_COLOR = CategoryColor.SLATE

# Hex values used by charts, keyed by tag
CATEGORY_COLOR_HEX = {
    CategoryColor.TEAL: "#00bab3",
    CategoryColor.BLUE: "#3b82f6",
    CategoryColor.RED: "#ef4444",
    CategoryColor.PURPLE: "#a855f7",
    CategoryColor.GREEN: "#22c55e",
    CategoryColor.ORANGE: "#f97316",
    CategoryColor.SLATE: "#64748b",
    CategoryColor.PINK: "#ec4899",
    CategoryColor.YELLOW: "#eab308",
    CategoryColor.CYAN: "#06b6d4",
}


def to_calendar_date(value: Any) -> Any:
    """
    Reduce a date-like value to its calendar day.

    Datetimes (and ISO datetime strings) lose their time-of-day. Aware
    datetimes are converted to local time first so the day matches what the
    user saw. Anything else is returned untouched for pydantic to judge.
    """
    if isinstance(value, str) and "T" in value:
        try:
            value = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


# =============================================================================
# DRAFTS - user input before the remote store confirms it
# =============================================================================

class CategoryDraft(BaseModel):
    """A category the user wants to create."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique per principal (case-insensitive)"
    )
    icon: str = Field(
        default="",
        description="Opaque SVG path data, not interpreted by the store"
    )
    color: CategoryColor = Field(
        default=DEFAULT_CATEGORY_COLOR,
        description="Color tag"
    )

    @field_validator("color", mode="before")
    @classmethod
    def fallback_color(cls, v: Any) -> CategoryColor:
        return CategoryColor.coerce(v)


class ExpenseDraft(BaseModel):
    """An expense the user wants to record."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Free text description"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount, currency-unscaled"
    )
    category_id: str = Field(
        ...,
        min_length=1,
        description="Category reference (may dangle once the category is deleted)"
    )
    date: dt.date = Field(
        ...,
        description="Occurrence date; time-of-day is not significant"
    )

    @field_validator("date", mode="before")
    @classmethod
    def calendar_day(cls, v: Any) -> Any:
        return to_calendar_date(v)


class IncomeDraft(BaseModel):
    """An income the user wants to record."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
    )
    date: dt.date = Field(
        ...,
    )

    @field_validator("date", mode="before")
    @classmethod
    def calendar_day(cls, v: Any) -> Any:
        return to_calendar_date(v)


# =============================================================================
# ENTITIES - server-confirmed records
# =============================================================================

class Category(CategoryDraft):
    """
    A category owned by one principal.

    Deleting a category never touches the expenses pointing at it; those
    become orphaned and render as "missing category".
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque, stable identifier"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owning principal"
    )


class Expense(ExpenseDraft):
    """A recorded expense."""

    id: str = Field(..., min_length=1)
    user_id: Optional[str] = None


class Income(IncomeDraft):
    """A recorded income. Incomes have no category."""

    id: str = Field(..., min_length=1)
    user_id: Optional[str] = None


Entity = Union[Category, Expense, Income]
Draft = Union[CategoryDraft, ExpenseDraft, IncomeDraft]


ENTITY_MODELS: dict[EntityKind, type] = {
    EntityKind.CATEGORY: Category,
    EntityKind.EXPENSE: Expense,
    EntityKind.INCOME: Income,
}

DRAFT_MODELS: dict[EntityKind, type] = {
    EntityKind.CATEGORY: CategoryDraft,
    EntityKind.EXPENSE: ExpenseDraft,
    EntityKind.INCOME: IncomeDraft,
}


def build_entity(
    kind: EntityKind,
    draft: Draft,
    identifier: str,
    principal: Optional[str],
) -> Entity:
    """Attach a server identifier and owner to a draft."""
    model = ENTITY_MODELS[kind]
    fields = draft.model_dump(exclude={"id", "user_id"})
    return model(**fields, id=identifier, user_id=principal)
