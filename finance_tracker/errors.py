"""
Error Taxonomy

Every failure the data layer can report is one of these types. None of them
is fatal: each is recoverable at the UI boundary.

- ValidationError: local input failed domain constraints, never reached the network
- OperationFailed: a remote write was rejected or the transport failed
- LoadFailed: an initial collection fetch failed; the collection is shown empty
- CacheInstallFailed: a cache generation could not be populated completely
- EnrichmentFailed: best-effort message parsing produced nothing usable
"""

from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single problem with user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_positive', 'invalid_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class FinanceTrackerError(Exception):
    """Base exception for the data layer."""
    pass


class ValidationError(FinanceTrackerError):
    """Input rejected before touching the network."""

    def __init__(self, kind: str, issues: list[ValidationIssue]):
        self.kind = kind
        self.issues = issues
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        super().__init__(f"Invalid {kind} input: {summary}")

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class OperationFailed(FinanceTrackerError):
    """
    A remote create/delete failed.

    Local state was left unchanged. The operation is not retried; the caller
    keeps the user's input and decides whether to resubmit.
    """

    def __init__(
        self,
        kind: str,
        operation: str,
        message: str,
        entity_id: Optional[str] = None,
    ):
        self.kind = kind
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class LoadFailed(FinanceTrackerError):
    """An initial collection fetch failed."""

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message)


class CacheInstallFailed(FinanceTrackerError):
    """A cache generation could not be populated; it never becomes active."""

    def __init__(self, tag: str, failed_assets: list[str]):
        self.tag = tag
        self.failed_assets = failed_assets
        super().__init__(
            f"Cache generation {tag} failed to install: "
            f"{len(failed_assets)} asset(s) unavailable"
        )


class EnrichmentFailed(FinanceTrackerError):
    """Message parsing failed. The user should enter the expense manually."""

    USER_HINT = "Failed to parse message. Please enter manually."

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.USER_HINT)


class AssetFetchError(FinanceTrackerError):
    """Network fetch of an asset failed."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(message)
