"""
Cache Storage

An arena of named cache generations. Each generation is a plain map from
request key to response; replacing an entry is a single assignment, so the
lookup/populate path needs no locking.
"""

from typing import Optional

from finance_tracker.offline.models import AssetRequest, AssetResponse


class AssetCacheGeneration:
    """One versioned, named snapshot of cached assets."""

    def __init__(self, name: str, entries: Optional[dict[str, AssetResponse]] = None):
        self.name = name
        self._entries: dict[str, AssetResponse] = dict(entries or {})

    def match(self, request: AssetRequest) -> Optional[AssetResponse]:
        return self._entries.get(request.cache_key)

    def put(self, request: AssetRequest, response: AssetResponse) -> None:
        """Store a response, replacing any prior entry for the request."""
        self._entries[request.cache_key] = response

    def keys(self) -> list[str]:
        return list(self._entries)

    def snapshot(self) -> dict[str, AssetResponse]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request: AssetRequest) -> bool:
        return request.cache_key in self._entries


class CacheStorage:
    """Named generations, keyed by version tag."""

    def __init__(self):
        self._generations: dict[str, AssetCacheGeneration] = {}

    def open(self, name: str) -> AssetCacheGeneration:
        """Get a generation, creating it empty if needed."""
        if name not in self._generations:
            self._generations[name] = AssetCacheGeneration(name)
        return self._generations[name]

    def get(self, name: str) -> Optional[AssetCacheGeneration]:
        return self._generations.get(name)

    def commit(self, generation: AssetCacheGeneration) -> None:
        """Store a fully populated generation under its name."""
        self._generations[generation.name] = generation

    def has(self, name: str) -> bool:
        return name in self._generations

    def keys(self) -> list[str]:
        return list(self._generations)

    def delete(self, name: str) -> bool:
        return self._generations.pop(name, None) is not None

    def snapshot(self) -> dict[str, list[str]]:
        """Every generation's request keys; used for inspection."""
        return {name: generation.keys() for name, generation in self._generations.items()}
