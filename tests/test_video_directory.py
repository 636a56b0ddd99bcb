"""Tests for the video directory client."""

import asyncio

import httpx
import pytest
import respx
from httpx import Response

from learntube.app.core.cache import ResponseCache
from learntube.app.exceptions import (
    InvalidArgumentError,
    UpstreamDomainError,
    UpstreamErrorKind,
    UpstreamUnavailableError,
)
from learntube.app.providers.keypool import KeyPool
from learntube.app.providers.youtube import YouTubeProvider
from learntube.app.services.fallback import search_fallback, trending_fallback
from learntube.app.services.models import Channel, Comment, Source
from learntube.app.services.quota import QuotaLedger
from learntube.app.services.search_policy import EducationalFilter
from learntube.app.services.video_directory import VideoDirectoryClient
from tests.conftest import TEST_KEY, make_video

PYTHON_RESULTS = [make_video("vid-1", "Python Basics"), make_video("vid-2", "Python OOP")]


def domain_error(kind: UpstreamErrorKind, status: int = 403) -> UpstreamDomainError:
    return UpstreamDomainError(kind, status, reason=kind.value)


class TestSearchVideos:
    """Cache, quota and fallback behavior of search_videos."""

    @pytest.mark.asyncio
    async def test_live_then_cached(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        first = await directory.search_videos("python", 20)
        second = await directory.search_videos("python", 20)

        assert stub_provider.search_mock.await_count == 1
        assert first.meta.source is Source.LIVE
        assert second.meta.source is Source.CACHED
        assert first.items == second.items == PYTHON_RESULTS

    @pytest.mark.asyncio
    async def test_upstream_called_with_selected_key(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        await directory.search_videos("  python  ", 20)

        stub_provider.search_mock.assert_awaited_once_with("python", 20, TEST_KEY)

    @pytest.mark.asyncio
    async def test_equivalent_queries_share_cache(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        await directory.search_videos("Python", 20)
        result = await directory.search_videos("  python ", 20)

        assert result.meta.source is Source.CACHED
        assert stub_provider.search_mock.await_count == 1

    @pytest.mark.asyncio
    async def test_live_result_keeps_upstream_order(self, make_directory, stub_provider):
        ranked = [make_video("z"), make_video("a"), make_video("m")]
        stub_provider.search_mock.return_value = ranked
        directory = make_directory()

        result = await directory.search_videos("python", 20)

        assert [v.id for v in result.items] == ["z", "a", "m"]

    @pytest.mark.asyncio
    async def test_debits_search_and_enrichment(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        await directory.search_videos("python", 20)

        assert directory.get_quota_info().used == 101
        stub_provider.list_videos_mock.assert_awaited_once_with(["vid-1", "vid-2"], TEST_KEY)

    @pytest.mark.asyncio
    async def test_enrichment_merges_details(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        stub_provider.list_videos_mock.return_value = [
            make_video("vid-2", "Python OOP", duration_seconds=600, view_count=1200)
        ]
        directory = make_directory()

        result = await directory.search_videos("python", 20)

        assert [v.id for v in result.items] == ["vid-1", "vid-2"]
        assert result.items[0].duration_seconds == 0
        assert result.items[1].duration_seconds == 600
        assert result.items[1].view_count == 1200

    @pytest.mark.asyncio
    async def test_enrichment_skipped_when_budget_exhausted(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory(limit=100)

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.LIVE
        assert stub_provider.list_videos_mock.await_count == 0
        assert directory.get_quota_info().used == 100

    @pytest.mark.asyncio
    async def test_enrichment_failure_is_ignored(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        stub_provider.list_videos_mock.side_effect = UpstreamUnavailableError()
        directory = make_directory()

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.LIVE
        assert result.items == PYTHON_RESULTS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None])
    async def test_empty_query_rejected(self, make_directory, query):
        directory = make_directory()
        with pytest.raises(InvalidArgumentError):
            await directory.search_videos(query, 20)

    @pytest.mark.asyncio
    async def test_empty_query_rejected_even_when_exhausted(self, make_directory):
        directory = make_directory(limit=100)
        directory.ledger.try_debit(100)
        with pytest.raises(InvalidArgumentError):
            await directory.search_videos("", 20)

    @pytest.mark.asyncio
    async def test_quota_exhausted_returns_fallback(self, make_directory, stub_provider):
        directory = make_directory(limit=10_000)
        directory.ledger.try_debit(10_000)

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_QUOTA
        assert result.meta.status_code == 503
        assert result.meta.error_kind == "quota_exceeded"
        assert len(result.items) > 0
        assert directory.get_quota_info().used == 10_000
        assert stub_provider.search_mock.await_count == 0

    @pytest.mark.asyncio
    async def test_fallback_parametrized_by_query(self, make_directory):
        directory = make_directory(limit=100)
        directory.ledger.try_debit(100)

        first = await directory.search_videos("rust", 20)
        second = await directory.search_videos("rust", 20)

        assert [v.title for v in first.items] == [v.title for v in second.items]
        assert all("rust" in v.title for v in first.items)
        assert first.items == search_fallback("rust")

    @pytest.mark.asyncio
    async def test_network_error_returns_fallback_and_is_not_cached(
        self, make_directory, stub_provider
    ):
        stub_provider.search_mock.side_effect = UpstreamUnavailableError()
        directory = make_directory()

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_ERROR
        assert result.meta.status_code == 200
        assert result.meta.message == "Using sample data (YouTube API temporarily unavailable)"
        assert len(directory.cache) == 0
        # The admitted cost is sunk
        assert directory.get_quota_info().used == 100

        stub_provider.search_mock.side_effect = None
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        retry = await directory.search_videos("python", 20)
        assert retry.meta.source is Source.LIVE

    @pytest.mark.asyncio
    async def test_upstream_quota_exceeded_saturates_ledger(self, make_directory, stub_provider):
        stub_provider.search_mock.side_effect = domain_error(UpstreamErrorKind.QUOTA_EXCEEDED)
        directory = make_directory()

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_QUOTA
        assert result.meta.status_code == 503
        assert directory.get_quota_info().remaining == 0

        await directory.get_trending_videos()
        assert stub_provider.trending_mock.await_count == 0

    @pytest.mark.asyncio
    async def test_no_keys_short_circuits(self, make_directory, stub_provider):
        directory = make_directory(keys=())

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_QUOTA
        assert result.meta.error_kind == "not_configured"
        assert result.meta.message == "YouTube API key not configured"
        assert directory.get_quota_info().used == 0
        assert stub_provider.search_mock.await_count == 0

    @pytest.mark.asyncio
    async def test_limit_clamped(self, make_directory, stub_provider):
        directory = make_directory()

        await directory.search_videos("python", 500)
        await directory.search_videos("java", 0)

        assert stub_provider.search_mock.await_args_list[0].args[1] == 50
        assert stub_provider.search_mock.await_args_list[1].args[1] == 1

    @pytest.mark.asyncio
    async def test_concurrent_identical_searches_single_flight(
        self, make_directory, stub_provider
    ):
        async def slow_search(query, limit, api_key):
            await asyncio.sleep(0.01)
            return PYTHON_RESULTS

        stub_provider.search_mock.side_effect = slow_search
        directory = make_directory()

        results = await asyncio.gather(*(directory.search_videos("python", 20) for _ in range(5)))

        assert stub_provider.search_mock.await_count == 1
        sources = sorted(r.meta.source.value for r in results)
        assert sources == ["cached"] * 4 + ["live"]
        assert directory.get_quota_info().used == 101
        assert directory._inflight == {}


class TestTrendingVideos:
    """Trending feed and its fixed fallback."""

    @pytest.mark.asyncio
    async def test_live(self, make_directory, stub_provider):
        stub_provider.trending_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        result = await directory.get_trending_videos()

        assert result.meta.source is Source.LIVE
        stub_provider.trending_mock.assert_awaited_once_with(12, TEST_KEY, "27", "US")
        assert directory.get_quota_info().used == 1

    @pytest.mark.asyncio
    async def test_fallback_is_fixed(self, make_directory, stub_provider):
        stub_provider.trending_mock.side_effect = UpstreamUnavailableError()
        directory = make_directory()

        first = await directory.get_trending_videos()
        second = await directory.get_trending_videos()

        assert first.meta.source is Source.FALLBACK_ERROR
        assert first.items == second.items == trending_fallback()
        assert len(first.items) == 4

    @pytest.mark.asyncio
    async def test_no_keys_message(self, make_directory):
        directory = make_directory(keys=())

        result = await directory.get_trending_videos()

        assert result.meta.message == "Showing sample programming videos (API key not configured)"
        assert result.meta.status_code == 200
        assert len(result.items) == 4


class TestGetVideo:
    """Single video lookups."""

    @pytest.mark.asyncio
    async def test_found(self, make_directory, stub_provider):
        video = make_video("dQw4w9WgXcQ", "JavaScript Fundamentals")
        stub_provider.list_videos_mock.return_value = [video]
        directory = make_directory()

        result = await directory.get_video("dQw4w9WgXcQ")
        cached = await directory.get_video("dQw4w9WgXcQ")

        assert result.items == [video]
        assert result.meta.source is Source.LIVE
        assert cached.meta.source is Source.CACHED
        assert stub_provider.list_videos_mock.await_count == 1

    @pytest.mark.asyncio
    async def test_not_found(self, make_directory, stub_provider):
        directory = make_directory()

        result = await directory.get_video("missing")

        assert result.items == []
        assert result.meta.status_code == 404
        assert result.meta.error_kind == "not_found"
        assert len(directory.cache) == 0

    @pytest.mark.asyncio
    async def test_quota_exhausted(self, make_directory):
        directory = make_directory(limit=10)
        directory.ledger.try_debit(10)

        result = await directory.get_video("abc")

        assert result.items == []
        assert result.meta.status_code == 503

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, make_directory):
        with pytest.raises(InvalidArgumentError):
            await make_directory().get_video("  ")


class TestVideoComments:
    """Differentiated comment outcomes."""

    @pytest.mark.asyncio
    async def test_live(self, make_directory, stub_provider):
        comments = [Comment(id="c1", author="Ada", text="Great explanation")]
        stub_provider.list_comments_mock.return_value = comments
        directory = make_directory()

        result = await directory.get_video_comments("vid-1", 20)

        assert result.items == comments
        assert result.meta.source is Source.LIVE
        stub_provider.list_comments_mock.assert_awaited_once_with("vid-1", 20, TEST_KEY)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "error_kind", "status", "message"),
        [
            (
                domain_error(UpstreamErrorKind.COMMENTS_DISABLED),
                "comments_disabled",
                200,
                "Comments are disabled for this video",
            ),
            (
                domain_error(UpstreamErrorKind.FORBIDDEN),
                "comments_disabled",
                200,
                "Comments are disabled for this video",
            ),
            (
                domain_error(UpstreamErrorKind.QUOTA_EXCEEDED),
                "quota_exceeded",
                503,
                "YouTube API quota or rate limit exceeded. Please try again later.",
            ),
            (
                domain_error(UpstreamErrorKind.NOT_FOUND, 404),
                "not_found",
                200,
                "No comments found for this video",
            ),
            (
                domain_error(UpstreamErrorKind.OTHER, 400),
                "upstream_error",
                500,
                "Failed to fetch comments",
            ),
            (UpstreamUnavailableError(), "upstream_error", 500, "Failed to fetch comments"),
        ],
    )
    async def test_failure_modes(
        self, make_directory, stub_provider, error, error_kind, status, message
    ):
        stub_provider.list_comments_mock.side_effect = error
        directory = make_directory()

        result = await directory.get_video_comments("vid-1", 20)

        assert result.items == []
        assert result.meta.error_kind == error_kind
        assert result.meta.status_code == status
        assert result.meta.message == message

    @pytest.mark.asyncio
    async def test_comments_disabled_is_not_cached(self, make_directory, stub_provider):
        stub_provider.list_comments_mock.side_effect = domain_error(
            UpstreamErrorKind.COMMENTS_DISABLED
        )
        directory = make_directory()

        await directory.get_video_comments("vid-1", 20)
        await directory.get_video_comments("vid-1", 20)

        assert stub_provider.list_comments_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, make_directory):
        with pytest.raises(InvalidArgumentError):
            await make_directory().get_video_comments("", 20)


class TestOperations:
    """Pass-through operational calls."""

    @pytest.mark.asyncio
    async def test_clear_cache_forces_upstream(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()

        await directory.search_videos("python", 20)
        assert directory.clear_cache() == 1
        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.LIVE
        assert stub_provider.search_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_reset_quota(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = PYTHON_RESULTS
        directory = make_directory()
        await directory.search_videos("python", 20)

        state = directory.reset_quota()

        assert state.used == 0
        assert directory.get_quota_info().used == 0

    def test_diagnostics(self, make_directory):
        data = make_directory().diagnostics()
        assert data["api_keys"] == 1
        assert data["cache_entries"] == 0
        assert data["quota"]["remaining"] == 10_000


class TestUpstreamBodies:
    """Failures raised inside the real provider stay absorbed."""

    BASE = "https://www.googleapis.com/youtube/v3"

    @pytest.fixture
    def directory(self, ledger_clock) -> VideoDirectoryClient:
        return VideoDirectoryClient(
            key_pool=KeyPool([TEST_KEY]),
            ledger=QuotaLedger(limit=10_000, clock=ledger_clock),
            cache=ResponseCache(max_entries=100),
            provider=YouTubeProvider(base_url=self.BASE),
        )

    @pytest.fixture
    def mock_api(self):
        with respx.mock(base_url=self.BASE, assert_all_called=False) as router:
            yield router

    @pytest.mark.asyncio
    async def test_undecodable_comments_body(self, directory, mock_api):
        mock_api.get("/commentThreads").mock(
            return_value=Response(
                200,
                stream=httpx.ByteStream(b"not gzip"),
                headers={"Content-Encoding": "gzip"},
            )
        )

        result = await directory.get_video_comments("vid-1", 20)

        assert result.items == []
        assert result.meta.source is Source.FALLBACK_ERROR
        assert result.meta.error_kind == "upstream_error"
        assert result.meta.status_code == 500

    @pytest.mark.asyncio
    async def test_redirect_loop_on_search(self, directory, mock_api):
        mock_api.get("/search").mock(side_effect=httpx.TooManyRedirects)

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_ERROR
        assert result.items == search_fallback("python")[:20]

    @pytest.mark.asyncio
    async def test_non_list_items_on_search(self, directory, mock_api):
        mock_api.get("/search").mock(return_value=Response(200, json={"items": "oops"}))

        result = await directory.search_videos("python", 20)

        assert result.meta.source is Source.FALLBACK_ERROR
        assert result.meta.error_kind == "upstream_error"
        assert result.items == search_fallback("python")[:20]


class TestEducationalSearch:
    """Search with the educational filter enabled."""

    @pytest.mark.asyncio
    async def test_query_widened_and_overfetched(self, make_directory, stub_provider):
        directory = make_directory(search_filter=EducationalFilter())

        await directory.search_videos("python", 20)

        stub_provider.search_mock.assert_awaited_once_with(
            "python programming tutorial", 40, TEST_KEY
        )

    @pytest.mark.asyncio
    async def test_overfetch_capped(self, make_directory, stub_provider):
        directory = make_directory(search_filter=EducationalFilter())

        await directory.search_videos("learn python", 40)

        stub_provider.search_mock.assert_awaited_once_with("learn python", 50, TEST_KEY)

    @pytest.mark.asyncio
    async def test_duration_window_keeps_upstream_order(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = [
            make_video("short"),
            make_video("lesson"),
            make_video("stream"),
            make_video("recap"),
        ]
        stub_provider.list_videos_mock.return_value = [
            make_video("recap", duration_seconds=300),
            make_video("stream", duration_seconds=9000),
            make_video("lesson", duration_seconds=600),
            make_video("short", duration_seconds=30),
        ]
        directory = make_directory(search_filter=EducationalFilter())

        result = await directory.search_videos("python", 20)

        assert [v.id for v in result.items] == ["lesson", "recap"]
        assert result.meta.source is Source.LIVE

    @pytest.mark.asyncio
    async def test_truncated_to_limit(self, make_directory, stub_provider):
        stub_provider.search_mock.return_value = [make_video(f"v{i}") for i in range(6)]
        directory = make_directory(search_filter=EducationalFilter())

        result = await directory.search_videos("python", 3)

        assert [v.id for v in result.items] == ["v0", "v1", "v2"]

    @pytest.mark.asyncio
    async def test_without_filter_query_is_unchanged(self, make_directory, stub_provider):
        directory = make_directory()

        await directory.search_videos("python", 20)

        stub_provider.search_mock.assert_awaited_once_with("python", 20, TEST_KEY)


FCC = Channel(
    id="UC8butISFwT-Wl7EV0hUK0BQ",
    title="freeCodeCamp.org",
    uploads_playlist_id="UU8butISFwT-Wl7EV0hUK0BQ",
)


class TestChannels:
    """Channel profile and uploads."""

    @pytest.mark.asyncio
    async def test_get_channel_live_then_cached(self, make_directory, stub_provider):
        stub_provider.list_channels_mock.return_value = [FCC]
        directory = make_directory()

        first = await directory.get_channel(FCC.id)
        second = await directory.get_channel(FCC.id)

        assert first.items == [FCC]
        assert first.meta.source is Source.LIVE
        assert second.meta.source is Source.CACHED
        stub_provider.list_channels_mock.assert_awaited_once_with([FCC.id], TEST_KEY)
        assert directory.get_quota_info().used == 1

    @pytest.mark.asyncio
    async def test_get_channel_not_found(self, make_directory):
        result = await make_directory().get_channel("UCmissing")

        assert result.items == []
        assert result.meta.status_code == 404
        assert result.meta.error_kind == "not_found"
        assert result.meta.message == "Channel not found"

    @pytest.mark.asyncio
    async def test_get_channel_upstream_failure(self, make_directory, stub_provider):
        stub_provider.list_channels_mock.side_effect = UpstreamUnavailableError()

        result = await make_directory().get_channel(FCC.id)

        assert result.meta.source is Source.FALLBACK_ERROR
        assert result.meta.status_code == 500
        assert result.meta.message == "Failed to fetch channel info"

    @pytest.mark.asyncio
    async def test_get_channel_empty_id_rejected(self, make_directory):
        with pytest.raises(InvalidArgumentError):
            await make_directory().get_channel(" ")

    @pytest.mark.asyncio
    async def test_channel_videos_enriched(self, make_directory, stub_provider):
        stub_provider.channel_uploads_mock.return_value = [make_video("new-1"), make_video("old-1")]
        stub_provider.list_videos_mock.return_value = [
            make_video("old-1", duration_seconds=900, view_count=42)
        ]
        directory = make_directory()

        result = await directory.get_channel_videos(FCC.id, 10)

        assert [v.id for v in result.items] == ["new-1", "old-1"]
        assert result.items[1].view_count == 42
        stub_provider.channel_uploads_mock.assert_awaited_once_with(FCC.id, 10, TEST_KEY)
        assert directory.get_quota_info().used == 3

    @pytest.mark.asyncio
    async def test_channel_videos_not_found(self, make_directory, stub_provider):
        stub_provider.channel_uploads_mock.side_effect = UpstreamDomainError(
            UpstreamErrorKind.NOT_FOUND, 404, reason="channelNotFound"
        )

        result = await make_directory().get_channel_videos("UCmissing", 10)

        assert result.items == []
        assert result.meta.status_code == 404
        assert result.meta.message == "Channel not found"

    @pytest.mark.asyncio
    async def test_channel_videos_quota_exhausted(self, make_directory, stub_provider):
        directory = make_directory(limit=1)

        result = await directory.get_channel_videos(FCC.id, 10)

        assert result.meta.source is Source.FALLBACK_QUOTA
        assert result.meta.status_code == 503
        stub_provider.channel_uploads_mock.assert_not_awaited()
