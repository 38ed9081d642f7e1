"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Session setup (settings -> gateway -> store, asset cache, parser)
2. Expense entry (message -> parse -> prefill -> user edits -> submit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing parsed from a message is saved without the user submitting it
- Every write goes through the store's validate-then-remote protocol
- A failed enrichment never blocks manual entry

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import datetime as dt
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.agents import MessageParsingAgent, resolve_category
from finance_tracker.audit import AuditLogger, create_correlation_id, get_logger
from finance_tracker.config import get_settings
from finance_tracker.models.entities import EntityKind, Expense, ExpenseDraft
from finance_tracker.offline import (
    DEFAULT_ASSET_MANIFEST,
    CacheStorage,
    OfflineAssetCache,
    RequestsAssetFetcher,
)
from finance_tracker.services.storage import (
    EntityGateway,
    GoogleSheetsClient,
    GoogleSheetsEntityGateway,
    LocalRecordSlot,
    LocalSlotEntityGateway,
)
from finance_tracker.store import SynchronizedEntityStore


logger = get_logger(__name__)


class ExpenseDraftPrefill(BaseModel):
    """
    Values to pre-fill the expense form with.

    Every field is a suggestion. The user may change any of them before
    submitting, and category_id is None when nothing could be matched.
    """

    description: str = ""
    amount: Optional[Decimal] = None
    category_id: Optional[str] = None
    date: dt.date = Field(default_factory=dt.date.today)

    def to_fields(self) -> dict[str, Any]:
        """Form values ready for ExpenseEntryFlow.submit()."""
        return {
            "description": self.description,
            "amount": self.amount,
            "category_id": self.category_id,
            "date": self.date,
        }


class ExpenseEntryFlow:
    """
    Orchestrates the expense form.

    Flow:
    1. Paste → Parse the message with the agent (optional)
    2. Prefill → Resolve the category against the store's categories
    3. Review → User edits the form (PAUSE)
    4. Submit → store.add(EXPENSE, ...)

    Step 1 may fail with EnrichmentFailed; the form stays usable.
    """

    def __init__(
        self,
        store: SynchronizedEntityStore,
        parser: Optional[MessageParsingAgent] = None,
        fallback_category_name: str = "Other",
    ):
        self._store = store
        self._parser = parser
        self._fallback_category_name = fallback_category_name

    @property
    def can_parse_messages(self) -> bool:
        return self._parser is not None

    async def prefill_from_message(self, text: str) -> ExpenseDraftPrefill:
        """
        Parse a transaction message into form values.

        Raises:
            EnrichmentFailed: Parsing failed; the user should enter manually
            RuntimeError: No parser is configured
        """
        if self._parser is None:
            raise RuntimeError("Message parsing is not configured")

        categories = self._store.categories
        parsed = await self._parser.parse_message(
            text,
            [category.name for category in categories],
            fallback_category_name=self._fallback_category_name,
        )
        category = resolve_category(
            parsed.category_name, categories, fallback=self._fallback_category_name,
        )
        return ExpenseDraftPrefill(
            description=parsed.description,
            amount=parsed.amount,
            category_id=category.id if category is not None else None,
        )

    async def submit(
        self,
        fields: Union[Mapping[str, Any], ExpenseDraft, ExpenseDraftPrefill],
        optimistic: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Save the form.

        Raises:
            ValidationError: The form is invalid; nothing was sent
            OperationFailed: The remote rejected the write
        """
        if isinstance(fields, ExpenseDraftPrefill):
            fields = fields.to_fields()
        return await self._store.add(
            EntityKind.EXPENSE,
            fields,
            optimistic=optimistic,
            correlation_id=correlation_id or create_correlation_id(),
        )


class AppComponents(BaseModel):
    """Everything a UI session needs."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    store: SynchronizedEntityStore
    cache: OfflineAssetCache
    audit_logger: AuditLogger
    parser: Optional[MessageParsingAgent] = None

    def expense_entry_flow(self) -> ExpenseEntryFlow:
        return ExpenseEntryFlow(
            self.store,
            self.parser,
            fallback_category_name=get_settings().app.fallback_category_name,
        )


def create_gateway(backend: str) -> EntityGateway:
    """Build the remote gateway named by backend ("google_sheets" or "local")."""
    settings = get_settings()
    if backend == "google_sheets":
        return GoogleSheetsEntityGateway(GoogleSheetsClient(settings.google_sheets))
    if backend == "local":
        return LocalSlotEntityGateway(LocalRecordSlot(settings.app.local_store_path))
    raise ValueError(f"Unknown storage backend: {backend}")


def create_asset_cache(audit_logger: Optional[AuditLogger] = None) -> OfflineAssetCache:
    """Build the offline asset cache from OfflineCacheSettings."""
    cache_settings = get_settings().offline_cache
    fetcher = RequestsAssetFetcher(
        cache_settings.asset_base_url,
        timeout=cache_settings.fetch_timeout_seconds,
    )
    return OfflineAssetCache(
        storage=CacheStorage(),
        fetcher=fetcher,
        manifest=DEFAULT_ASSET_MANIFEST,
        api_hosts=cache_settings.api_hosts_list,
        base_url=cache_settings.asset_base_url,
        audit_logger=audit_logger,
    )


def create_message_parser(
    audit_logger: Optional[AuditLogger] = None,
) -> Optional[MessageParsingAgent]:
    """The Gemini parser, or None when Gemini is not configured."""
    try:
        gemini_settings = get_settings().gemini
    except ValueError as e:
        logger.warning("message_parser_disabled", reason=str(e))
        return None
    return MessageParsingAgent(settings=gemini_settings, audit_logger=audit_logger)


def create_app_components(
    principal: str,
    backend: Optional[str] = None,
    gateway: Optional[EntityGateway] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        principal: The signed-in user; every remote call is scoped to it
        backend: "google_sheets" or "local"; defaults to AppSettings
        gateway: A ready-made gateway (overrides backend, used by tests)

    Returns:
        AppComponents with an unloaded store. Call store.load() next.
    """
    audit_logger = AuditLogger()

    if gateway is None:
        gateway = create_gateway(backend or get_settings().app.storage_backend)

    store = SynchronizedEntityStore(gateway, principal, audit_logger=audit_logger)

    return AppComponents(
        store=store,
        cache=create_asset_cache(audit_logger),
        parser=create_message_parser(audit_logger),
        audit_logger=audit_logger,
    )
