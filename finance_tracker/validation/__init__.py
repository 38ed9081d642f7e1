"""Validation package."""

from finance_tracker.validation.validator import EntityValidator

__all__ = ["EntityValidator"]
