"""
Asset Fetchers

The cache never talks to the network directly; it goes through an
AssetFetcher. RequestsAssetFetcher is the production implementation.
"""

import asyncio
from abc import ABC, abstractmethod
from functools import partial
from typing import Optional
from urllib.parse import urljoin

import requests

from finance_tracker.errors import AssetFetchError
from finance_tracker.offline.models import AssetRequest, AssetResponse


class AssetFetcher(ABC):
    """Abstract network access for the asset cache."""

    @abstractmethod
    async def fetch(self, request: AssetRequest) -> AssetResponse:
        """
        Fetch a request from the network.

        Returns:
            The response, whatever its status

        Raises:
            AssetFetchError: If no response was received at all
        """
        pass


class RequestsAssetFetcher(AssetFetcher):
    """
    Fetches assets with a requests.Session.

    Relative manifest paths ("/index.html") are resolved against base_url.
    The blocking call runs in the loop's default executor.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def resolve(self, url: str) -> str:
        return urljoin(self.base_url, url)

    def _fetch_sync(self, request: AssetRequest) -> AssetResponse:
        url = self.resolve(request.url)
        try:
            response = self.session.request(
                method=request.method,
                url=url,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AssetFetchError(url, f"Asset request failed for {url}: {e}") from e

        return AssetResponse(
            url=request.url,
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    async def fetch(self, request: AssetRequest) -> AssetResponse:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._fetch_sync, request))
