"""Aggregation engine package."""

from finance_tracker.aggregation.engine import (
    balance_summary,
    category_breakdown,
    day_label,
    format_amount,
    group_expenses_by_day,
    group_incomes_by_month,
    month_label,
)

__all__ = [
    "balance_summary",
    "category_breakdown",
    "day_label",
    "format_amount",
    "group_expenses_by_day",
    "group_incomes_by_month",
    "month_label",
]
