"""
Offline Asset Cache

Keeps the application shell (markup, scripts, styles, icons and pinned
library bundles) available without a network round trip.

STATE MACHINE (per version tag):
    INSTALLING -> INSTALLED -> ACTIVE -> EVICTED
         \
          -> FAILED

- install(tag): fetch the whole manifest. The generation is committed
  to storage only when EVERY asset arrived with an OK status. A partial
  generation is never stored; the previous generation keeps serving.
  Manifest entries on a live data-API host are skipped.
- activate(tag): the tag becomes the one generation consulted for lookups
  and every other generation is deleted immediately.

REQUEST POLICY (handle()):
1. Live data-API hosts and non-GET requests bypass the cache entirely.
2. Everything else is stale-while-revalidate: a cached copy is returned at
   once while a network fetch refreshes the entry for the NEXT request.
   Without a cached copy the caller waits for the network.
3. Network failures only surface when there was nothing cached to serve.
"""

import asyncio
from collections.abc import Iterable
from typing import Optional
from urllib.parse import urljoin

from finance_tracker.audit import AuditLogger, get_logger
from finance_tracker.errors import AssetFetchError, CacheInstallFailed
from finance_tracker.offline.fetcher import AssetFetcher
from finance_tracker.offline.models import AssetRequest, AssetResponse, CacheState
from finance_tracker.offline.storage import AssetCacheGeneration, CacheStorage


logger = get_logger(__name__)


class OfflineAssetCache:
    """
    Versioned asset cache with stale-while-revalidate lookups.

    Exactly one generation is active at a time.
    """

    def __init__(
        self,
        storage: CacheStorage,
        fetcher: AssetFetcher,
        manifest: Iterable[str],
        api_hosts: Iterable[str] = (),
        base_url: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._fetcher = fetcher
        self._manifest = tuple(manifest)
        self._api_hosts = frozenset(host.lower() for host in api_hosts)
        self._base_url = base_url
        self._audit_logger = audit_logger or AuditLogger()
        self._states: dict[str, CacheState] = {}
        self._active_tag: Optional[str] = None
        self._revalidations: set[asyncio.Task] = set()

    # -- Introspection -----------------------------------------------------

    @property
    def active_tag(self) -> Optional[str]:
        return self._active_tag

    @property
    def manifest(self) -> tuple[str, ...]:
        return self._manifest

    def state_of(self, tag: str) -> Optional[CacheState]:
        return self._states.get(tag)

    def _active_generation(self) -> Optional[AssetCacheGeneration]:
        if self._active_tag is None:
            return None
        return self._storage.get(self._active_tag)

    def _resolve(self, request: AssetRequest) -> AssetRequest:
        if self._base_url is None:
            return request
        url = urljoin(self._base_url, request.url)
        if url == request.url:
            return request
        return AssetRequest(url=url, method=request.method)

    def bypasses_cache(self, request: AssetRequest) -> bool:
        """Live API traffic and non-GET requests are never cached."""
        if request.method.upper() != "GET":
            return True
        return request.host in self._api_hosts

    # -- Lifecycle ---------------------------------------------------------

    async def install(self, tag: str) -> AssetCacheGeneration:
        """
        Populate a new generation from the manifest, all-or-nothing.

        Raises:
            CacheInstallFailed: If any asset could not be fetched; nothing
                is stored and the active generation is unaffected
        """
        if tag != self._active_tag:
            self._states[tag] = CacheState.INSTALLING
        asset_requests = []
        for url in self._manifest:
            request = self._resolve(AssetRequest(url=url))
            if self.bypasses_cache(request):
                # Live API responses never enter a generation
                logger.warning("manifest_entry_skipped", tag=tag, url=request.url)
                continue
            asset_requests.append(request)

        results = await asyncio.gather(
            *(self._fetcher.fetch(request) for request in asset_requests),
            return_exceptions=True,
        )

        staged = AssetCacheGeneration(tag)
        failed = []
        for request, result in zip(asset_requests, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failed.append(request.url)
            elif not result.ok:
                failed.append(request.url)
            else:
                staged.put(request, result)

        if failed:
            if tag != self._active_tag:
                self._states[tag] = CacheState.FAILED
            self._audit_logger.log_cache_install_failed(tag, failed)
            raise CacheInstallFailed(tag, failed)

        self._storage.commit(staged)
        # Re-installing the active tag replaces its entries but keeps it active
        self._states[tag] = (
            CacheState.ACTIVE if tag == self._active_tag else CacheState.INSTALLED
        )
        self._audit_logger.log_cache_installed(tag, len(staged))
        return staged

    def activate(self, tag: str) -> None:
        """
        Make an installed generation the active one and evict all others.

        Raises:
            KeyError: If the tag was never installed
        """
        if not self._storage.has(tag):
            raise KeyError(f"Cache generation {tag} is not installed")

        self._active_tag = tag
        self._states[tag] = CacheState.ACTIVE
        self._audit_logger.log_cache_activated(tag)

        for name in self._storage.keys():
            if name != tag:
                self._storage.delete(name)
                self._states[name] = CacheState.EVICTED
                self._audit_logger.log_cache_evicted(name, tag)

    async def upgrade(self, tag: str) -> None:
        """Install then activate a generation."""
        await self.install(tag)
        self.activate(tag)

    # -- Request interception ----------------------------------------------

    async def handle(self, request: AssetRequest) -> AssetResponse:
        """
        Answer a request according to the cache policy.

        Raises:
            AssetFetchError: Network failed and nothing was cached
        """
        request = self._resolve(request)

        if self.bypasses_cache(request):
            return await self._fetcher.fetch(request)

        generation = self._active_generation()
        cached = generation.match(request) if generation is not None else None

        fetch = asyncio.ensure_future(self._fetch_and_store(request, generation))

        if cached is None:
            return await fetch

        self._revalidations.add(fetch)
        fetch.add_done_callback(self._revalidation_done)
        return cached

    async def _fetch_and_store(
        self,
        request: AssetRequest,
        generation: Optional[AssetCacheGeneration],
    ) -> AssetResponse:
        response = await self._fetcher.fetch(request)
        # Only the generation that is still active takes the refresh
        if response.ok and generation is not None and generation is self._active_generation():
            generation.put(request, response)
        return response

    def _revalidation_done(self, task: asyncio.Task) -> None:
        self._revalidations.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            url = error.url if isinstance(error, AssetFetchError) else "unknown"
            self._audit_logger.log_revalidation_failed(self._active_tag or "", url, error)

    async def wait_for_revalidation(self) -> None:
        """Wait until every background refresh has finished."""
        while self._revalidations:
            pending = list(self._revalidations)
            await asyncio.gather(*pending, return_exceptions=True)
            self._revalidations.difference_update(pending)

    def snapshot(self) -> dict[str, list[str]]:
        """Request keys held by every stored generation."""
        return self._storage.snapshot()
