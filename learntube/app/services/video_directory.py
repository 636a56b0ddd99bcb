"""Video directory client: the facade over the YouTube Data API.

Every fetch follows the same template:

    cache hit            -> cached
    no keys configured   -> fallback-quota (not_configured)
    ledger denies cost   -> fallback-quota
    upstream succeeds    -> cache populated, live
    upstream fails       -> fallback-error (or fallback-quota when upstream
                            itself reported quota exhaustion)

Only ``InvalidArgumentError`` reaches the caller; every other condition is
absorbed into a ``DirectoryResult`` whose ``meta`` says what happened.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, TYPE_CHECKING

from learntube.app.core.cache import ResponseCache, make_cache_key, normalize_query
from learntube.app.core.logging import get_log_context, get_logger
from learntube.app.exceptions import (
    InvalidArgumentError,
    NoKeysConfiguredError,
    QuotaExhaustedError,
    UpstreamDomainError,
    UpstreamErrorKind,
    UpstreamUnavailableError,
)
from learntube.app.providers.base import BaseVideoProvider
from learntube.app.providers.keypool import KeyPool, mask_key
from learntube.app.services import fallback
from learntube.app.services.models import DirectoryResult, FetchMeta, Source
from learntube.app.services.quota import QuotaLedger, QuotaState
from learntube.app.services.search_policy import EducationalFilter

if TYPE_CHECKING:
    import httpx

    from learntube.app.core.config import Settings

logger = get_logger(__name__)

MIN_RESULTS = 1
MAX_RESULTS = 50

DEFAULT_TTLS: Mapping[str, int] = {
    "search": 3600,
    "trending": 1800,
    "videos": 86400,
    "comments": 21600,
    "channels": 43200,
    "channel_videos": 43200,
}

# Conditions absorbed into a fallback result
_ABSORBED = (
    NoKeysConfiguredError,
    QuotaExhaustedError,
    UpstreamUnavailableError,
    UpstreamDomainError,
)


@dataclass
class _InFlight:
    """Per cache key lock shared by concurrent callers missing the same entry."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0


def _failure_kind(exc: Exception) -> str:
    """Reduce an absorbed exception to its structured error kind."""
    if isinstance(exc, NoKeysConfiguredError):
        return "not_configured"
    if isinstance(exc, QuotaExhaustedError):
        return UpstreamErrorKind.QUOTA_EXCEEDED.value
    if isinstance(exc, UpstreamDomainError):
        return exc.kind.value
    return "upstream_error"


def _failure_source(kind: str) -> Source:
    if kind in ("not_configured", UpstreamErrorKind.QUOTA_EXCEEDED.value):
        return Source.FALLBACK_QUOTA
    return Source.FALLBACK_ERROR


def _clamp(limit: int) -> int:
    return max(MIN_RESULTS, min(MAX_RESULTS, int(limit)))


class VideoDirectoryClient:
    """Quota-aware, cached access to YouTube videos, comments and channels.

    One instance per process owns the quota ledger and response cache; every
    concurrent request handler shares it.

    Usage:
        directory = VideoDirectoryClient.from_settings(settings, http_client)
        videos, meta = await directory.search_videos("python", 20)
    """

    def __init__(
        self,
        key_pool: KeyPool,
        ledger: QuotaLedger,
        cache: ResponseCache,
        provider: BaseVideoProvider,
        ttls: Optional[Mapping[str, int]] = None,
        trending_category_id: str = "27",
        region_code: str = "US",
        search_filter: Optional[EducationalFilter] = None,
    ) -> None:
        self._key_pool = key_pool
        self._ledger = ledger
        self._cache = cache
        self._provider = provider
        self._ttls = dict(ttls or DEFAULT_TTLS)
        self._trending_category_id = trending_category_id
        self._region_code = region_code
        self._search_filter = search_filter
        self._inflight: dict[str, _InFlight] = {}

    @classmethod
    def from_settings(
        cls, settings: "Settings", http_client: Optional["httpx.AsyncClient"] = None
    ) -> "VideoDirectoryClient":
        """Build a client with its collaborators from application settings."""
        from learntube.app.providers.youtube import YouTubeProvider

        search_filter = None
        if settings.youtube_educational_filter:
            search_filter = EducationalFilter(
                min_duration_seconds=settings.youtube_min_duration_seconds,
                max_duration_seconds=settings.youtube_max_duration_seconds,
                enhance_queries=settings.youtube_enhance_search_query,
                overfetch_factor=settings.youtube_search_overfetch_factor,
            )

        return cls(
            key_pool=KeyPool.from_settings(settings),
            ledger=QuotaLedger(
                limit=settings.youtube_daily_quota_limit,
                costs=settings.quota_costs,
                tz_name=settings.youtube_quota_timezone,
            ),
            cache=ResponseCache(max_entries=settings.youtube_cache_max_entries),
            provider=YouTubeProvider(base_url=settings.youtube_base_url, http_client=http_client),
            ttls=settings.cache_ttls,
            trending_category_id=settings.youtube_trending_category_id,
            region_code=settings.youtube_region_code,
            search_filter=search_filter,
        )

    @property
    def key_pool(self) -> KeyPool:
        return self._key_pool

    @property
    def ledger(self) -> QuotaLedger:
        return self._ledger

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def _fetch(
        self,
        operation: str,
        cache_key: str,
        call: Callable[[str], Awaitable[list]],
    ) -> DirectoryResult:
        """Run one operation through cache, key pool, ledger and upstream.

        Args:
            operation: Operation kind, indexing both the cost and TTL tables
            cache_key: Normalized cache key for the request
            call: Upstream call taking the selected API key

        Returns:
            A cached or live result

        Raises:
            NoKeysConfiguredError: No credential is configured
            QuotaExhaustedError: The ledger denied admission
            UpstreamUnavailableError: Network failure, timeout or 5xx
            UpstreamDomainError: Upstream 4xx
        """
        cached = self._cache.get(cache_key)
        if cached is not None:
            return DirectoryResult(list(cached), FetchMeta(Source.CACHED))

        if not self._key_pool.count():
            raise NoKeysConfiguredError()

        # Single-flight: callers missing the same key wait for the first one
        # and then re-check the cache. No await between lookup and increment.
        flight = self._inflight.get(cache_key)
        if flight is None:
            flight = self._inflight[cache_key] = _InFlight()
        flight.waiters += 1
        try:
            async with flight.lock:
                cached = self._cache.get(cache_key)
                if cached is not None:
                    return DirectoryResult(list(cached), FetchMeta(Source.CACHED))
                return await self._call_upstream(operation, cache_key, call)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0:
                self._inflight.pop(cache_key, None)

    async def _call_upstream(
        self,
        operation: str,
        cache_key: str,
        call: Callable[[str], Awaitable[list]],
    ) -> DirectoryResult:
        cost = self._ledger.cost_of(operation)
        if not self._ledger.try_debit(cost):
            raise QuotaExhaustedError(remaining=self._ledger.get_state().remaining, cost=cost)

        api_key = self._key_pool.select_key()
        masked = mask_key(api_key)
        try:
            items = await call(api_key)
        except UpstreamDomainError as e:
            if e.kind is UpstreamErrorKind.QUOTA_EXCEEDED:
                self._ledger.mark_exhausted()
            logger.warning(
                f"YouTube {operation} rejected: {e.message}",
                extra=get_log_context(
                    operation=operation, api_key=masked, status_code=e.status_code
                ),
            )
            raise
        except UpstreamUnavailableError as e:
            logger.warning(
                f"YouTube {operation} unavailable: {e.message}",
                extra=get_log_context(operation=operation, api_key=masked),
            )
            raise

        self._cache.put(cache_key, list(items), self._ttls[operation])
        logger.info(
            f"YouTube {operation} served live ({len(items)} items)",
            extra=get_log_context(
                operation=operation,
                source=Source.LIVE.value,
                api_key=masked,
                quota_used=self._ledger.get_state().used,
            ),
        )
        return DirectoryResult(list(items), FetchMeta(Source.LIVE))

    async def _enrich(self, videos: list, api_key: str) -> list:
        """Merge duration and statistics from videos.list into search results.

        Best effort: skipped when the ledger denies the extra cost, ignored on
        upstream failure. Search order is preserved.
        """
        if not videos or not self._ledger.try_debit(self._ledger.cost_of("videos")):
            return videos
        try:
            details = await self._provider.list_videos([v.id for v in videos], api_key)
        except UpstreamDomainError as e:
            if e.kind is UpstreamErrorKind.QUOTA_EXCEEDED:
                self._ledger.mark_exhausted()
            logger.warning(f"Search enrichment failed: {e.message}")
            return videos
        except UpstreamUnavailableError as e:
            logger.warning(f"Search enrichment failed: {e.message}")
            return videos
        by_id = {v.id: v for v in details}
        return [by_id.get(v.id, v) for v in videos]

    def _log_fallback(self, operation: str, meta: FetchMeta) -> None:
        logger.info(
            f"YouTube {operation} degraded to {meta.source.value} ({meta.error_kind})",
            extra=get_log_context(operation=operation, source=meta.source.value),
        )

    async def search_videos(self, query: str, limit: int = 20) -> DirectoryResult:
        """Search videos by free text.

        With an educational filter the upstream query may be widened, more
        results are requested, and videos outside the duration window are
        dropped after enrichment. Upstream order is kept.

        Args:
            query: Search text, must not be blank
            limit: Result count, clamped to 1..50

        Raises:
            InvalidArgumentError: If query is empty or blank
        """
        if not query or not query.strip():
            raise InvalidArgumentError("query", "Query parameter is required")
        limit = _clamp(limit)
        cache_key = make_cache_key("search", normalize_query(query), limit)

        policy = self._search_filter

        async def call(api_key: str) -> list:
            text = query.strip()
            if policy is None:
                videos = await self._provider.search(text, limit, api_key)
                return await self._enrich(videos, api_key)
            videos = await self._provider.search(
                policy.upstream_query(text), policy.upstream_limit(limit), api_key
            )
            return policy.apply(await self._enrich(videos, api_key), limit)

        try:
            return await self._fetch("search", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.NOT_CONFIGURED_MESSAGE, 200
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.SEARCH_FALLBACK_MESSAGE, 503
            else:
                message, status = fallback.SEARCH_FALLBACK_MESSAGE, 200
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("search", meta)
            return DirectoryResult(fallback.search_fallback(query)[:limit], meta)

    async def get_trending_videos(self, limit: int = 12) -> DirectoryResult:
        """Most popular Education videos in the configured region."""
        limit = _clamp(limit)
        cache_key = make_cache_key(
            "trending", self._trending_category_id, self._region_code, limit
        )

        async def call(api_key: str) -> list:
            return await self._provider.trending(
                limit, api_key, self._trending_category_id, self._region_code
            )

        try:
            return await self._fetch("trending", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.TRENDING_NOT_CONFIGURED_MESSAGE, 200
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.TRENDING_FALLBACK_MESSAGE, 503
            else:
                message, status = fallback.TRENDING_ERROR_MESSAGE, 200
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("trending", meta)
            return DirectoryResult(fallback.trending_fallback()[:limit], meta)

    async def get_video(self, video_id: str) -> DirectoryResult:
        """Full details for one video. There is no sample data for this call.

        Raises:
            InvalidArgumentError: If video_id is empty
        """
        if not video_id or not video_id.strip():
            raise InvalidArgumentError("video_id", "Video ID is required")
        video_id = video_id.strip()
        cache_key = make_cache_key("videos", video_id)

        async def call(api_key: str) -> list:
            videos = await self._provider.list_videos([video_id], api_key)
            if not videos:
                raise UpstreamDomainError(
                    UpstreamErrorKind.NOT_FOUND, 404, detail=fallback.VIDEO_NOT_FOUND_MESSAGE
                )
            return videos[:1]

        try:
            return await self._fetch("videos", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.NOT_CONFIGURED_MESSAGE, 500
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.QUOTA_EXCEEDED_MESSAGE, 503
            elif kind == UpstreamErrorKind.NOT_FOUND.value:
                message, status = fallback.VIDEO_NOT_FOUND_MESSAGE, 404
            else:
                message, status = fallback.VIDEO_FAILED_MESSAGE, 500
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("videos", meta)
            return DirectoryResult([], meta)

    async def get_video_comments(self, video_id: str, limit: int = 20) -> DirectoryResult:
        """Top-level comments for a video, most relevant first.

        Failures always yield an empty list. ``meta.error_kind`` is one of
        ``comments_disabled``, ``quota_exceeded``, ``not_found``,
        ``upstream_error`` or ``not_configured``.

        Raises:
            InvalidArgumentError: If video_id is empty
        """
        if not video_id or not video_id.strip():
            raise InvalidArgumentError("video_id", "Video ID is required")
        video_id = video_id.strip()
        limit = _clamp(limit)
        cache_key = make_cache_key("comments", video_id, limit)

        async def call(api_key: str) -> list:
            return await self._provider.list_comments(video_id, limit, api_key)

        try:
            return await self._fetch("comments", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.NOT_CONFIGURED_MESSAGE, 200
            elif kind in (
                UpstreamErrorKind.COMMENTS_DISABLED.value,
                UpstreamErrorKind.FORBIDDEN.value,
            ):
                kind = UpstreamErrorKind.COMMENTS_DISABLED.value
                message, status = fallback.COMMENTS_DISABLED_MESSAGE, 200
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.QUOTA_EXCEEDED_MESSAGE, 503
            elif kind == UpstreamErrorKind.NOT_FOUND.value:
                message, status = fallback.COMMENTS_NOT_FOUND_MESSAGE, 200
            else:
                kind = "upstream_error"
                message, status = fallback.COMMENTS_FAILED_MESSAGE, 500
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("comments", meta)
            return DirectoryResult([], meta)

    async def get_channel(self, channel_id: str) -> DirectoryResult:
        """Profile of one channel. There is no sample data for this call.

        Raises:
            InvalidArgumentError: If channel_id is empty
        """
        if not channel_id or not channel_id.strip():
            raise InvalidArgumentError("channel_id", "Channel ID is required")
        channel_id = channel_id.strip()
        cache_key = make_cache_key("channels", channel_id)

        async def call(api_key: str) -> list:
            channels = await self._provider.list_channels([channel_id], api_key)
            if not channels:
                raise UpstreamDomainError(
                    UpstreamErrorKind.NOT_FOUND, 404, detail=fallback.CHANNEL_NOT_FOUND_MESSAGE
                )
            return channels[:1]

        try:
            return await self._fetch("channels", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.NOT_CONFIGURED_MESSAGE, 500
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.QUOTA_EXCEEDED_MESSAGE, 503
            elif kind == UpstreamErrorKind.NOT_FOUND.value:
                message, status = fallback.CHANNEL_NOT_FOUND_MESSAGE, 404
            else:
                message, status = fallback.CHANNEL_FAILED_MESSAGE, 500
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("channels", meta)
            return DirectoryResult([], meta)

    async def get_channel_videos(self, channel_id: str, limit: int = 20) -> DirectoryResult:
        """Most recent uploads of a channel, newest first, with durations and statistics.

        Failures yield an empty list.

        Raises:
            InvalidArgumentError: If channel_id is empty
        """
        if not channel_id or not channel_id.strip():
            raise InvalidArgumentError("channel_id", "Channel ID is required")
        channel_id = channel_id.strip()
        limit = _clamp(limit)
        cache_key = make_cache_key("channel_videos", channel_id, limit)

        async def call(api_key: str) -> list:
            videos = await self._provider.channel_uploads(channel_id, limit, api_key)
            return await self._enrich(videos, api_key)

        try:
            return await self._fetch("channel_videos", cache_key, call)
        except _ABSORBED as exc:
            kind = _failure_kind(exc)
            if kind == "not_configured":
                message, status = fallback.NOT_CONFIGURED_MESSAGE, 200
            elif kind == UpstreamErrorKind.QUOTA_EXCEEDED.value:
                message, status = fallback.QUOTA_EXCEEDED_MESSAGE, 503
            elif kind == UpstreamErrorKind.NOT_FOUND.value:
                message, status = fallback.CHANNEL_NOT_FOUND_MESSAGE, 404
            else:
                message, status = fallback.CHANNEL_VIDEOS_FAILED_MESSAGE, 500
            meta = FetchMeta(_failure_source(kind), message, kind, status)
            self._log_fallback("channel_videos", meta)
            return DirectoryResult([], meta)

    def get_quota_info(self) -> QuotaState:
        return self._ledger.get_state()

    def clear_cache(self) -> int:
        """Drop every cached response.

        Returns:
            Number of entries removed
        """
        count = self._cache.invalidate_all()
        logger.info(f"Cleared {count} cached YouTube responses")
        return count

    def reset_quota(self) -> QuotaState:
        """Zero the ledger without waiting for the daily rollover."""
        self._ledger.clear()
        return self._ledger.get_state()

    def diagnostics(self) -> dict[str, Any]:
        """Snapshot for the health endpoint."""
        return {
            "api_keys": self._key_pool.count(),
            "cache_entries": len(self._cache),
            "quota": self._ledger.get_state().to_dict(),
        }
