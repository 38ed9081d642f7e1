"""
Aggregation Engine

DESIGN DECISION: Derived views are pure functions of the current
collections. They are recomputed on every render instead of being
maintained incrementally; recomputation is cheap and cannot go stale.

GUARANTEES:
- Sums are exact Decimal arithmetic; rounding is for display only
- Empty inputs give empty groups and zero totals, never errors
- Expenses whose category no longer exists are left out of the breakdown
  (not lumped into "other")
"""

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finance_tracker.models.entities import Category, Expense, Income
from finance_tracker.models.views import (
    BalanceSummary,
    CategoryTotal,
    DateGroup,
    round_for_display,
)


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

ZERO = Decimal("0")


def _sum_amounts(records: Iterable) -> Decimal:
    return sum((record.amount for record in records), ZERO)


def balance_summary(
    expenses: Sequence[Expense],
    incomes: Sequence[Income],
) -> BalanceSummary:
    """Total income, total expenses and balance = income - expenses."""
    total_income = _sum_amounts(incomes)
    total_expenses = _sum_amounts(expenses)
    return BalanceSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
    )


def category_breakdown(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
) -> list[CategoryTotal]:
    """
    Sum expense amounts per existing category.

    Output order is the order in which each category first appears among
    the expenses.
    """
    categories_by_id = {category.id: category for category in categories}
    totals: dict[str, Decimal] = {}

    for expense in expenses:
        if expense.category_id not in categories_by_id:
            continue
        totals[expense.category_id] = totals.get(expense.category_id, ZERO) + expense.amount

    return [
        CategoryTotal(
            category_id=category_id,
            name=categories_by_id[category_id].name,
            total=total,
            color=categories_by_id[category_id].color,
        )
        for category_id, total in totals.items()
    ]


def _group_by_key(records: Sequence, key_of) -> dict[str, list]:
    groups: dict[str, list] = {}
    for record in records:
        groups.setdefault(key_of(record), []).append(record)
    return groups


def group_expenses_by_day(expenses: Sequence[Expense]) -> list[DateGroup]:
    """
    Bucket expenses by calendar day ("YYYY-MM-DD").

    Buckets follow the source order; expenses are expected pre-sorted by
    date descending, so buckets come out newest first.
    """
    groups = _group_by_key(expenses, lambda expense: expense.date.isoformat())
    return [DateGroup(key=key, items=tuple(items)) for key, items in groups.items()]


def group_incomes_by_month(incomes: Sequence[Income]) -> list[DateGroup]:
    """
    Bucket incomes by calendar month ("YYYY-MM").

    Buckets follow the source order; within a bucket incomes are re-sorted
    by date descending (stable).
    """
    groups = _group_by_key(incomes, lambda income: income.date.strftime("%Y-%m"))
    return [
        DateGroup(
            key=key,
            items=tuple(sorted(items, key=lambda income: income.date, reverse=True)),
        )
        for key, items in groups.items()
    ]


def day_label(key: str, today: Optional[date] = None) -> str:
    """
    Heading for a daily group.

    "Today" and "Yesterday" are relative to today; anything else reads
    like "January 2, 2024".
    """
    day = date.fromisoformat(key)
    today = today or date.today()

    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"


def month_label(key: str) -> str:
    """Heading for a monthly group, e.g. "January 2024"."""
    year, month = key.split("-")
    return f"{MONTH_NAMES[int(month) - 1]} {int(year)}"


def format_amount(value: Decimal, currency: str = "OMR", places: int = 3) -> str:
    """Render an amount for display, e.g. "12.500 OMR"."""
    return f"{round_for_display(value, places)} {currency}"
