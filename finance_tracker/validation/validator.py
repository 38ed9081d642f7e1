"""
Entity Input Validation

DESIGN DECISION: Validation runs before the store contacts the remote.
Invalid input never produces a network call.

Validation is schema-driven: the draft models carry the domain constraints
(non-empty text, positive amount, a real calendar date). This module turns
pydantic's error report into our own ValidationIssue list, so the UI gets
one issue per field in plain language.

IMPORTANT: Validation NEVER silently fixes issues (the one exception is the
category color tag, which falls back to a default by definition).
"""

from collections.abc import Mapping
from typing import Any, Union

import pydantic

from finance_tracker.errors import ValidationError, ValidationIssue
from finance_tracker.models.entities import DRAFT_MODELS, Draft, EntityKind


# pydantic error type -> (our issue type, message)
_ISSUE_MESSAGES = {
    "missing": ("missing", "This field is required"),
    "string_too_short": ("missing", "This field cannot be empty"),
    "string_too_long": ("too_long", "This value is too long"),
    "greater_than": ("not_positive", "Please enter a valid, positive amount"),
    "decimal_parsing": ("not_numeric", "Please enter a valid, positive amount"),
    "decimal_type": ("not_numeric", "Please enter a valid, positive amount"),
    "finite_number": ("not_numeric", "Please enter a valid, positive amount"),
    "date_parsing": ("invalid_date", "Please enter a valid date"),
    "date_from_datetime_parsing": ("invalid_date", "Please enter a valid date"),
    "date_type": ("invalid_date", "Please enter a valid date"),
}


def _issue_from_error(error: dict) -> ValidationIssue:
    location = ".".join(str(part) for part in error.get("loc", ())) or "input"
    issue_type, message = _ISSUE_MESSAGES.get(
        error.get("type", ""),
        ("invalid_value", error.get("msg", "Invalid value")),
    )
    return ValidationIssue(field=location, issue_type=issue_type, message=message)


class EntityValidator:
    """
    Converts raw form values into validated drafts.

    Accepts either a mapping of raw values (strings straight from a form are
    fine) or an already-built draft of the right kind.
    """

    def validate(
        self,
        kind: EntityKind,
        fields: Union[Mapping[str, Any], Draft],
    ) -> Draft:
        """
        Validate input for one entity kind.

        Returns:
            The validated draft

        Raises:
            ValidationError: With one issue per offending field
        """
        model = DRAFT_MODELS[kind]

        if type(fields) is model:
            return fields

        if isinstance(fields, pydantic.BaseModel):
            fields = fields.model_dump()

        if not isinstance(fields, Mapping):
            raise ValidationError(
                kind.value,
                [ValidationIssue(
                    field="input",
                    issue_type="invalid_value",
                    message=f"Expected a mapping of {kind.value} fields",
                )],
            )

        # Blank strings from empty form inputs count as missing values
        cleaned = {
            key: (None if isinstance(value, str) and not value.strip() else value)
            for key, value in fields.items()
        }
        cleaned = {key: value for key, value in cleaned.items() if value is not None}

        try:
            return model(**cleaned)
        except pydantic.ValidationError as e:
            issues = [_issue_from_error(error) for error in e.errors()]
            raise ValidationError(kind.value, issues) from e
