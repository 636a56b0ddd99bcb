"""YouTube Data API v3 provider.

Wraps the upstream operation kinds used by the directory: ``search.list``,
``videos.list`` (by id or the mostPopular chart), ``commentThreads.list``,
``channels.list`` and ``playlistItems.list`` (channel uploads). Responses are
parsed into immutable value records; HTTP failures are classified into the
learntube exception taxonomy so that the directory can pick a fallback
without inspecting raw responses.
"""

from typing import Any, Optional, Sequence

import httpx

from learntube.app.core.logging import get_logger
from learntube.app.core.utils import parse_iso8601_duration, parse_timestamp
from learntube.app.exceptions import (
    LearnTubeException,
    UpstreamDomainError,
    UpstreamErrorKind,
    UpstreamUnavailableError,
)
from learntube.app.providers.base import BaseVideoProvider
from learntube.app.services.models import Channel, Comment, Video

logger = get_logger(__name__)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"

# Upstream caps maxResults at 50 for every list endpoint we use
MAX_RESULTS = 50

_QUOTA_REASONS = frozenset(
    {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"}
)
_NOT_FOUND_REASONS = frozenset(
    {
        "videoNotFound",
        "commentThreadNotFound",
        "channelNotFound",
        "playlistNotFound",
        "notFound",
    }
)

_THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")


def _error_reason(payload: Any) -> tuple[Optional[str], Optional[str]]:
    """Extract (reason, message) from a Google JSON error body."""
    if not isinstance(payload, dict):
        return None, None
    error = payload.get("error")
    if not isinstance(error, dict):
        return None, None
    message = error.get("message")
    errors = error.get("errors") or []
    reason = None
    if errors and isinstance(errors[0], dict):
        reason = errors[0].get("reason")
    return reason, message


def classify_error(response: httpx.Response) -> LearnTubeException:
    """Map a non-2xx YouTube response to a learntube exception.

    5xx responses are transient outages. 4xx responses are domain errors,
    classified by the ``reason`` of the first entry in ``error.errors``.
    """
    status = response.status_code
    if status >= 500:
        return UpstreamUnavailableError(f"YouTube API returned {status}")

    try:
        payload = response.json()
    except ValueError:
        payload = None
    reason, message = _error_reason(payload)

    if status == 429 or reason in _QUOTA_REASONS:
        kind = UpstreamErrorKind.QUOTA_EXCEEDED
    elif reason == "commentsDisabled":
        kind = UpstreamErrorKind.COMMENTS_DISABLED
    elif status == 404 or reason in _NOT_FOUND_REASONS:
        kind = UpstreamErrorKind.NOT_FOUND
    elif status == 403:
        kind = UpstreamErrorKind.FORBIDDEN
    else:
        kind = UpstreamErrorKind.OTHER
    return UpstreamDomainError(kind, status, reason=reason, detail=message)


def _to_int(value: Any) -> int:
    # Statistics arrive as decimal strings
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _obj(value: Any) -> dict:
    """Return value if it is a JSON object, else an empty one."""
    return value if isinstance(value, dict) else {}


def _best_thumbnail(thumbnails: Any) -> str:
    if not isinstance(thumbnails, dict):
        return ""
    for size in _THUMBNAIL_PREFERENCE:
        thumb = thumbnails.get(size)
        if isinstance(thumb, dict) and thumb.get("url"):
            return thumb["url"]
    return ""


def _items(data: dict) -> list[dict]:
    """The resource list of a list response, without non-object entries.

    Raises:
        UpstreamUnavailableError: If ``items`` is present but not a list
    """
    items = data.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise UpstreamUnavailableError("YouTube API returned a malformed body")
    return [item for item in items if isinstance(item, dict)]


def _tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(tag) for tag in value)


def parse_video(item: dict) -> Optional[Video]:
    """Parse a search or videos resource into a Video.

    Search results carry the id as ``{"kind": ..., "videoId": ...}``; videos
    resources carry it as a plain string. Returns None for items without an id.
    """
    raw_id = item.get("id")
    video_id = raw_id.get("videoId") if isinstance(raw_id, dict) else raw_id
    if not video_id or not isinstance(video_id, str):
        return None

    snippet = _obj(item.get("snippet"))
    details = _obj(item.get("contentDetails"))
    stats = _obj(item.get("statistics"))
    return Video(
        id=video_id,
        title=snippet.get("title", ""),
        channel_id=snippet.get("channelId", ""),
        channel_title=snippet.get("channelTitle", ""),
        description=snippet.get("description", ""),
        thumbnail_url=_best_thumbnail(snippet.get("thumbnails")),
        published_at=parse_timestamp(snippet.get("publishedAt")),
        tags=_tags(snippet.get("tags")),
        duration_seconds=parse_iso8601_duration(details.get("duration")),
        view_count=_to_int(stats.get("viewCount")),
        like_count=_to_int(stats.get("likeCount")),
    )


def parse_playlist_item(item: dict) -> Optional[Video]:
    """Parse a playlistItems resource (an upload) into a Video without statistics."""
    snippet = _obj(item.get("snippet"))
    details = _obj(item.get("contentDetails"))
    video_id = details.get("videoId") or _obj(snippet.get("resourceId")).get("videoId")
    if not video_id or not isinstance(video_id, str):
        return None
    return Video(
        id=video_id,
        title=snippet.get("title", ""),
        channel_id=snippet.get("channelId", ""),
        channel_title=snippet.get("channelTitle", ""),
        description=snippet.get("description", ""),
        thumbnail_url=_best_thumbnail(snippet.get("thumbnails")),
        published_at=parse_timestamp(
            details.get("videoPublishedAt") or snippet.get("publishedAt")
        ),
    )


def parse_comment(item: dict) -> Optional[Comment]:
    """Parse a commentThread resource into its top-level Comment."""
    top = _obj(_obj(item.get("snippet")).get("topLevelComment"))
    snippet = _obj(top.get("snippet"))
    comment_id = top.get("id") or item.get("id")
    if not comment_id or not isinstance(comment_id, str):
        return None
    return Comment(
        id=comment_id,
        author=snippet.get("authorDisplayName", ""),
        text=snippet.get("textDisplay", ""),
        author_avatar=snippet.get("authorProfileImageUrl", ""),
        author_channel_url=snippet.get("authorChannelUrl", ""),
        like_count=_to_int(snippet.get("likeCount")),
        published_at=parse_timestamp(snippet.get("publishedAt")),
    )


def parse_channel(item: dict) -> Optional[Channel]:
    """Parse a channels resource into a Channel."""
    channel_id = item.get("id")
    if not channel_id or not isinstance(channel_id, str):
        return None
    snippet = _obj(item.get("snippet"))
    stats = _obj(item.get("statistics"))
    branding = _obj(_obj(item.get("brandingSettings")).get("image"))
    playlists = _obj(_obj(item.get("contentDetails")).get("relatedPlaylists"))
    hidden = bool(stats.get("hiddenSubscriberCount"))
    return Channel(
        id=channel_id,
        title=snippet.get("title", ""),
        handle=snippet.get("customUrl", ""),
        description=snippet.get("description", ""),
        thumbnail_url=_best_thumbnail(snippet.get("thumbnails")),
        banner_url=branding.get("bannerExternalUrl", ""),
        published_at=parse_timestamp(snippet.get("publishedAt")),
        subscriber_count=0 if hidden else _to_int(stats.get("subscriberCount")),
        video_count=_to_int(stats.get("videoCount")),
        view_count=_to_int(stats.get("viewCount")),
        uploads_playlist_id=playlists.get("uploads", ""),
    )


class YouTubeProvider(BaseVideoProvider):
    """YouTube Data API v3 client with support for a shared HTTP client.

    Authentication uses the ``key`` query parameter. No call is retried here;
    retry policy belongs to callers across separate invocations.
    """

    def __init__(
        self,
        base_url: str = YOUTUBE_API_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        super().__init__(base_url, http_client, timeout)

    async def _get(self, endpoint: str, params: dict[str, Any], api_key: str) -> dict:
        """Issue one GET and return the decoded body.

        Raises:
            UpstreamUnavailableError: Network failure, timeout, 5xx or an
                undecodable body
            UpstreamDomainError: Any 4xx response
        """
        url = self._get_endpoint_url(endpoint)
        query = {**params, "key": api_key}
        try:
            async with self._client_context() as client:
                resp = await client.get(url, params=query)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"YouTube API timed out: {endpoint}") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(f"YouTube API unreachable: {e}") from e
        except httpx.RequestError as e:
            # Content decoding failures and redirect loops
            raise UpstreamUnavailableError(f"YouTube API request failed: {e}") from e

        if resp.status_code >= 400:
            raise classify_error(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamUnavailableError("YouTube API returned a malformed body") from e
        if not isinstance(data, dict):
            raise UpstreamUnavailableError("YouTube API returned a malformed body")
        return data

    async def search(self, query: str, limit: int, api_key: str) -> list[Video]:
        data = await self._get(
            "/search",
            {
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": min(limit, MAX_RESULTS),
                "order": "relevance",
                "safeSearch": "strict",
            },
            api_key,
        )
        return [v for v in (parse_video(item) for item in _items(data)) if v]

    async def list_videos(self, video_ids: Sequence[str], api_key: str) -> list[Video]:
        if not video_ids:
            return []
        data = await self._get(
            "/videos",
            {
                "part": "snippet,contentDetails,statistics",
                "id": ",".join(video_ids[:MAX_RESULTS]),
            },
            api_key,
        )
        return [v for v in (parse_video(item) for item in _items(data)) if v]

    async def trending(
        self, limit: int, api_key: str, category_id: str = "27", region_code: str = "US"
    ) -> list[Video]:
        data = await self._get(
            "/videos",
            {
                "part": "snippet,contentDetails,statistics",
                "chart": "mostPopular",
                "videoCategoryId": category_id,
                "regionCode": region_code,
                "maxResults": min(limit, MAX_RESULTS),
            },
            api_key,
        )
        return [v for v in (parse_video(item) for item in _items(data)) if v]

    async def list_comments(self, video_id: str, limit: int, api_key: str) -> list[Comment]:
        data = await self._get(
            "/commentThreads",
            {
                "part": "snippet",
                "videoId": video_id,
                "maxResults": min(limit, MAX_RESULTS),
                "order": "relevance",
                "textFormat": "plainText",
            },
            api_key,
        )
        return [c for c in (parse_comment(item) for item in _items(data)) if c]

    async def list_channels(self, channel_ids: Sequence[str], api_key: str) -> list[Channel]:
        if not channel_ids:
            return []
        data = await self._get(
            "/channels",
            {
                "part": "snippet,statistics,brandingSettings,contentDetails",
                "id": ",".join(channel_ids[:MAX_RESULTS]),
            },
            api_key,
        )
        return [c for c in (parse_channel(item) for item in _items(data)) if c]

    async def channel_uploads(self, channel_id: str, limit: int, api_key: str) -> list[Video]:
        """Read the channel's uploads playlist: one channels call, one playlistItems call.

        Raises:
            UpstreamDomainError: NOT_FOUND when the channel does not exist
        """
        channels = await self.list_channels([channel_id], api_key)
        uploads = channels[0].uploads_playlist_id if channels else ""
        if not uploads:
            raise UpstreamDomainError(
                UpstreamErrorKind.NOT_FOUND, 404, reason="channelNotFound"
            )
        data = await self._get(
            "/playlistItems",
            {
                "part": "snippet,contentDetails",
                "playlistId": uploads,
                "maxResults": min(limit, MAX_RESULTS),
            },
            api_key,
        )
        return [v for v in (parse_playlist_item(item) for item in _items(data)) if v]
