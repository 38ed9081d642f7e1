"""AI Agents package."""

from finance_tracker.agents.message_parser import (
    MessageParsingAgent,
    ParsedExpense,
    resolve_category,
)

__all__ = [
    "MessageParsingAgent",
    "ParsedExpense",
    "resolve_category",
]
