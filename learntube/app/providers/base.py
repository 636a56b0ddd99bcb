from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx

from learntube.app.services.models import Channel, Comment, Video


class BaseVideoProvider(ABC):
    """Base class for upstream video platform providers.

    Providers are stateless with respect to credentials: the caller passes the
    API key chosen by the key pool on every call. Subclasses can accept an
    external httpx.AsyncClient for connection pooling, or create their own if
    not provided.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        """Initialize the provider.

        Args:
            base_url: The API base URL
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds for per-request clients
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self.timeout)

    @asynccontextmanager
    async def _client_context(self):
        """Yield the shared client, or a per-request client that is closed afterwards."""
        client = self._get_client()
        is_shared = self._http_client is not None
        try:
            yield client
        finally:
            if not is_shared:
                await client.aclose()

    def _get_endpoint_url(self, endpoint: str) -> str:
        """Build full URL for an API endpoint, e.g. "/search"."""
        return f"{self.base_url}{endpoint}"

    @abstractmethod
    async def search(self, query: str, limit: int, api_key: str) -> list[Video]:
        """Search videos by free text, in upstream relevance order."""

    @abstractmethod
    async def list_videos(self, video_ids: Sequence[str], api_key: str) -> list[Video]:
        """Look up full video records by id."""

    @abstractmethod
    async def trending(
        self, limit: int, api_key: str, category_id: str, region_code: str
    ) -> list[Video]:
        """Most popular videos in a category and region."""

    @abstractmethod
    async def list_comments(self, video_id: str, limit: int, api_key: str) -> list[Comment]:
        """Top-level comments for a video."""

    @abstractmethod
    async def list_channels(self, channel_ids: Sequence[str], api_key: str) -> list[Channel]:
        """Look up channel profiles by id."""

    @abstractmethod
    async def channel_uploads(self, channel_id: str, limit: int, api_key: str) -> list[Video]:
        """Most recent public uploads of a channel, newest first."""
