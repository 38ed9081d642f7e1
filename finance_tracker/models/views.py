"""
Derived View Models

Outputs of the aggregation engine. These are recomputed on every read from
the store's current collections and are never persisted.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.entities import CATEGORY_COLOR_HEX, CategoryColor, Expense, Income


def round_for_display(value: Decimal, places: int = 3) -> Decimal:
    """Round half-up to a fixed number of places. Display only."""
    quantum = Decimal(1).scaleb(-places)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


class BalanceSummary(BaseModel):
    """
    Totals across both collections.

    All three fields are exact sums; use display() for rounded values.
    """
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Field(default=Decimal("0"))
    total_expenses: Decimal = Field(default=Decimal("0"))
    balance: Decimal = Field(default=Decimal("0"))

    @property
    def is_negative(self) -> bool:
        return self.balance < 0

    def display(self, places: int = 3) -> dict[str, Decimal]:
        """Rounded copies of the totals for rendering."""
        return {
            "total_income": round_for_display(self.total_income, places),
            "total_expenses": round_for_display(self.total_expenses, places),
            "balance": round_for_display(self.balance, places),
        }


class CategoryTotal(BaseModel):
    """One slice of the spending-by-category chart."""
    model_config = ConfigDict(frozen=True)

    category_id: str
    name: str
    total: Decimal
    color: CategoryColor

    @property
    def hex_color(self) -> str:
        """Chart fill for this slice."""
        return CATEGORY_COLOR_HEX[self.color]


class DateGroup(BaseModel):
    """
    A calendar bucket of records.

    key is "YYYY-MM-DD" for daily groups and "YYYY-MM" for monthly groups.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    items: tuple[Union[Expense, Income], ...] = Field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))

    def __len__(self) -> int:
        return len(self.items)
