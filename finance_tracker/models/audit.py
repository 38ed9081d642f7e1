"""
Audit Models for Finance Tracker

Every remote write, every tolerated failure and every cache transition is
recorded as an AuditEvent. This replaces scattered console prints with a
single typed trail that can be read back when something goes wrong.

DESIGN DECISION: Events are only emitted through structured logging. The
remote store holds financial records, not the trail.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entity store
    COLLECTIONS_LOADED = "collections_loaded"
    LOAD_FAILED = "load_failed"
    FOREIGN_RECORD_DROPPED = "foreign_record_dropped"
    ENTITY_CREATED = "entity_created"
    ENTITY_DELETED = "entity_deleted"
    VALIDATION_FAILED = "validation_failed"
    OPERATION_FAILED = "operation_failed"

    # Offline asset cache
    CACHE_INSTALLED = "cache_installed"
    CACHE_INSTALL_FAILED = "cache_install_failed"
    CACHE_ACTIVATED = "cache_activated"
    CACHE_EVICTED = "cache_evicted"
    REVALIDATION_FAILED = "revalidation_failed"

    # Enrichment
    ENRICHMENT_FAILED = "enrichment_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Entity kind or 'asset_cache'"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Record identifier or cache version tag"
    )
    principal: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "principal": self.principal,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


def _error_fields(error: BaseException) -> dict[str, str]:
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("expenses", expense.id, principal)
        event = AuditEventBuilder.cache_evicted("expense-tracker-v1", "expense-tracker-v2")
    """

    @staticmethod
    def collections_loaded(principal: str, counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTIONS_LOADED,
            principal=principal,
            description="Collections loaded from remote store",
            details={"counts": counts},
        )

    @staticmethod
    def load_failed(kind: str, principal: str, error: BaseException) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            principal=principal,
            description=f"Could not load {kind}; presenting an empty collection",
            **_error_fields(error),
        )

    @staticmethod
    def foreign_record_dropped(
        kind: str,
        entity_id: str,
        principal: str,
        owner: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FOREIGN_RECORD_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            entity_id=entity_id,
            principal=principal,
            description=f"Dropped {kind} record owned by another principal",
            details={"owner": owner},
        )

    @staticmethod
    def entity_created(
        kind: str,
        entity_id: str,
        principal: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=kind,
            entity_id=entity_id,
            principal=principal,
            correlation_id=correlation_id,
            description=f"Created {kind} record",
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        kind: str,
        entity_id: str,
        principal: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=kind,
            entity_id=entity_id,
            principal=principal,
            correlation_id=correlation_id,
            description=f"Deleted {kind} record",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        kind: str,
        principal: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            principal=principal,
            description=f"Rejected {kind} input with {len(issues)} issue(s)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def operation_failed(
        kind: str,
        operation: str,
        principal: str,
        error: BaseException,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            entity_id=entity_id,
            principal=principal,
            correlation_id=correlation_id,
            description=f"Remote {operation} of {kind} failed",
            details={"operation": operation},
            **_error_fields(error),
        )

    @staticmethod
    def cache_installed(tag: str, asset_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_INSTALLED,
            entity_type="asset_cache",
            entity_id=tag,
            description=f"Installed cache generation {tag}",
            details={"asset_count": asset_count},
        )

    @staticmethod
    def cache_install_failed(tag: str, failed_assets: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_INSTALL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="asset_cache",
            entity_id=tag,
            description=f"Cache generation {tag} failed to install",
            details={"failed_assets": failed_assets},
        )

    @staticmethod
    def cache_activated(tag: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_ACTIVATED,
            entity_type="asset_cache",
            entity_id=tag,
            description=f"Cache generation {tag} is now active",
        )

    @staticmethod
    def cache_evicted(tag: str, superseded_by: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_EVICTED,
            entity_type="asset_cache",
            entity_id=tag,
            description=f"Evicted cache generation {tag}",
            details={"superseded_by": superseded_by},
        )

    @staticmethod
    def revalidation_failed(tag: str, url: str, error: BaseException) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REVALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="asset_cache",
            entity_id=tag,
            description="Background refresh failed; cached copy was served",
            details={"url": url},
            **_error_fields(error),
        )

    @staticmethod
    def enrichment_failed(reason: str, error: Optional[BaseException] = None) -> AuditEvent:
        fields = _error_fields(error) if error else {}
        return AuditEvent(
            event_type=AuditEventType.ENRICHMENT_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Message parsing failed: {reason}",
            is_user_action=True,
            **fields,
        )
