"""Shared fixtures for learntube tests.

Provides controllable clocks, a stub upstream provider whose calls can be
counted, and a factory for fully wired directory clients.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from learntube.app.core.cache import ResponseCache
from learntube.app.providers.base import BaseVideoProvider
from learntube.app.providers.keypool import KeyPool
from learntube.app.services.models import Video
from learntube.app.services.quota import QuotaLedger
from learntube.app.services.search_policy import EducationalFilter
from learntube.app.services.video_directory import VideoDirectoryClient

PACIFIC = ZoneInfo("America/Los_Angeles")
TEST_KEY = "AIzaSyTestKey0000000001"


class ManualClock:
    """Aware datetime clock advanced explicitly by tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class MonotonicClock:
    """Float clock for cache TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider(BaseVideoProvider):
    """Provider whose upstream calls are AsyncMocks, so tests can count them."""

    def __init__(self):
        super().__init__("https://stub.invalid/youtube/v3")
        self.search_mock = AsyncMock(return_value=[])
        self.list_videos_mock = AsyncMock(return_value=[])
        self.trending_mock = AsyncMock(return_value=[])
        self.list_comments_mock = AsyncMock(return_value=[])
        self.list_channels_mock = AsyncMock(return_value=[])
        self.channel_uploads_mock = AsyncMock(return_value=[])

    async def search(self, query: str, limit: int, api_key: str) -> list[Video]:
        return await self.search_mock(query, limit, api_key)

    async def list_videos(self, video_ids: Sequence[str], api_key: str) -> list[Video]:
        return await self.list_videos_mock(list(video_ids), api_key)

    async def trending(self, limit: int, api_key: str, category_id: str, region_code: str):
        return await self.trending_mock(limit, api_key, category_id, region_code)

    async def list_comments(self, video_id: str, limit: int, api_key: str):
        return await self.list_comments_mock(video_id, limit, api_key)

    async def list_channels(self, channel_ids: Sequence[str], api_key: str):
        return await self.list_channels_mock(list(channel_ids), api_key)

    async def channel_uploads(self, channel_id: str, limit: int, api_key: str):
        return await self.channel_uploads_mock(channel_id, limit, api_key)


def make_video(video_id: str, title: Optional[str] = None, **kwargs) -> Video:
    return Video(id=video_id, title=title or f"Video {video_id}", **kwargs)


@pytest.fixture
def ledger_clock() -> ManualClock:
    return ManualClock(datetime(2026, 3, 10, 12, 0, tzinfo=PACIFIC))


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def make_directory(stub_provider, ledger_clock):
    """Factory for directory clients wired to the stub provider."""

    def _make(
        keys: Sequence[str] = (TEST_KEY,),
        limit: int = 10_000,
        search_filter: Optional[EducationalFilter] = None,
    ) -> VideoDirectoryClient:
        return VideoDirectoryClient(
            key_pool=KeyPool(keys),
            ledger=QuotaLedger(limit=limit, clock=ledger_clock),
            cache=ResponseCache(max_entries=1000),
            provider=stub_provider,
            search_filter=search_filter,
        )

    return _make
