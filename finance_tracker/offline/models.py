"""
Asset Request / Response Models

Requests are identified by method and normalized URL; that pair is the
cache key. Responses carry the body as bytes so a cached copy can be served
repeatedly.
"""

from enum import Enum
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field


class CacheState(str, Enum):
    """Lifecycle of one cache generation."""
    INSTALLING = "installing"
    INSTALLED = "installed"     # populated, waiting to be activated
    ACTIVE = "active"           # the only generation serving lookups
    EVICTED = "evicted"         # deleted after a newer generation activated
    FAILED = "failed"           # population failed; never activated


class AssetRequest(BaseModel):
    """A request observed by the cache layer."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    method: str = Field(default="GET")

    @property
    def host(self) -> str:
        return (urlsplit(self.url).hostname or "").lower()

    @property
    def cache_key(self) -> str:
        """Method plus URL without its fragment, with a lowercased scheme and host."""
        parts = urlsplit(self.url)
        normalized = urlunsplit((
            parts.scheme.lower(),
            parts.netloc.lower(),
            parts.path or "/",
            parts.query,
            "",
        ))
        return f"{self.method.upper()} {normalized}"


class AssetResponse(BaseModel):
    """A network or cached response."""
    model_config = ConfigDict(frozen=True)

    url: str
    status: int = Field(..., ge=0)
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
