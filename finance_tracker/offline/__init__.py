"""Offline asset cache package."""

from finance_tracker.offline.asset_cache import OfflineAssetCache
from finance_tracker.offline.fetcher import AssetFetcher, RequestsAssetFetcher
from finance_tracker.offline.manifest import DEFAULT_ASSET_MANIFEST
from finance_tracker.offline.models import AssetRequest, AssetResponse, CacheState
from finance_tracker.offline.storage import AssetCacheGeneration, CacheStorage

__all__ = [
    "DEFAULT_ASSET_MANIFEST",
    "AssetCacheGeneration",
    "AssetFetcher",
    "AssetRequest",
    "AssetResponse",
    "CacheState",
    "CacheStorage",
    "OfflineAssetCache",
    "RequestsAssetFetcher",
]
