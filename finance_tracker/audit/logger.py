"""
Audit Logger

DESIGN DECISION: Every remote write, every tolerated failure and every cache
transition is logged. This provides:
1. Complete traceability of what the store did on the user's behalf
2. Debugging capability when the network misbehaves
3. A single place where "fail soft" paths are still visible

The audit logger:
- Writes structured JSON through structlog
- Never raises; logging must not break the main flow
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Structured logger for modules that log outside the audit trail."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Every event is rendered as one structured log line at its severity.
    Events are also kept in memory (bounded) so a session can show the
    user what happened recently.
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory
        """
        self._logger = structlog.get_logger("finance_tracker.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        return list(self._history)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]

        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    # -- Entity store ------------------------------------------------------

    def log_collections_loaded(self, principal: str, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.collections_loaded(principal, counts))

    def log_load_failed(self, kind: str, principal: str, error: BaseException) -> None:
        self.log(AuditEventBuilder.load_failed(kind, principal, error))

    def log_foreign_record_dropped(
        self,
        kind: str,
        entity_id: str,
        principal: str,
        owner: Optional[str],
    ) -> None:
        self.log(AuditEventBuilder.foreign_record_dropped(kind, entity_id, principal, owner))

    def log_entity_created(
        self,
        kind: str,
        entity_id: str,
        principal: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entity_created(kind, entity_id, principal, correlation_id))

    def log_entity_deleted(
        self,
        kind: str,
        entity_id: str,
        principal: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entity_deleted(kind, entity_id, principal, correlation_id))

    def log_validation_failed(self, kind: str, principal: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(kind, principal, issues))

    def log_operation_failed(
        self,
        kind: str,
        operation: str,
        principal: str,
        error: BaseException,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.operation_failed(
            kind=kind,
            operation=operation,
            principal=principal,
            error=error,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    # -- Offline asset cache -----------------------------------------------

    def log_cache_installed(self, tag: str, asset_count: int) -> None:
        self.log(AuditEventBuilder.cache_installed(tag, asset_count))

    def log_cache_install_failed(self, tag: str, failed_assets: list[str]) -> None:
        self.log(AuditEventBuilder.cache_install_failed(tag, failed_assets))

    def log_cache_activated(self, tag: str) -> None:
        self.log(AuditEventBuilder.cache_activated(tag))

    def log_cache_evicted(self, tag: str, superseded_by: str) -> None:
        self.log(AuditEventBuilder.cache_evicted(tag, superseded_by))

    def log_revalidation_failed(self, tag: str, url: str, error: BaseException) -> None:
        self.log(AuditEventBuilder.revalidation_failed(tag, url, error))

    # -- Enrichment --------------------------------------------------------

    def log_enrichment_failed(self, reason: str, error: Optional[BaseException] = None) -> None:
        self.log(AuditEventBuilder.enrichment_failed(reason, error))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., submitting an expense)
    and pass it through the store call.
    """
    return uuid4()
