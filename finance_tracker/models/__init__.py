"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker data layer.
All data flowing through the store, the aggregation engine and the audit trail
must conform to these schemas.
"""

from finance_tracker.models.entities import (
    CATEGORY_COLOR_HEX,
    DEFAULT_CATEGORY_COLOR,
    DRAFT_MODELS,
    ENTITY_MODELS,
    Category,
    CategoryColor,
    CategoryDraft,
    Draft,
    Entity,
    EntityKind,
    Expense,
    ExpenseDraft,
    Income,
    IncomeDraft,
    build_entity,
    to_calendar_date,
)
from finance_tracker.models.views import (
    BalanceSummary,
    CategoryTotal,
    DateGroup,
    round_for_display,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "CATEGORY_COLOR_HEX",
    "DEFAULT_CATEGORY_COLOR",
    "DRAFT_MODELS",
    "ENTITY_MODELS",
    "Category",
    "CategoryColor",
    "CategoryDraft",
    "Draft",
    "Entity",
    "EntityKind",
    "Expense",
    "ExpenseDraft",
    "Income",
    "IncomeDraft",
    "build_entity",
    "to_calendar_date",
    # View models
    "BalanceSummary",
    "CategoryTotal",
    "DateGroup",
    "round_for_display",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
