"""Value records returned by the video directory."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Optional

from learntube.app.core.utils import (
    format_count,
    format_duration,
    format_relative_time,
    format_view_count,
)


class Source(str, Enum):
    """Where a directory result came from."""

    CACHED = "cached"
    LIVE = "live"
    FALLBACK_QUOTA = "fallback-quota"
    FALLBACK_ERROR = "fallback-error"

    @property
    def is_fallback(self) -> bool:
        return self in (Source.FALLBACK_QUOTA, Source.FALLBACK_ERROR)


@dataclass(frozen=True)
class Video:
    """A YouTube video as shown in listings and on the detail page.

    Attributes:
        id: YouTube video id
        title: Video title
        channel_id: Owning channel id
        channel_title: Owning channel display name
        description: Full description text
        thumbnail_url: Best available thumbnail
        published_at: Upload timestamp, or None if upstream omitted it
        tags: Creator supplied tags
        duration_seconds: Length in seconds, 0 when unknown
        view_count: View count, 0 when unknown
        like_count: Like count, 0 when unknown
        channel_thumbnail_url: Channel avatar, when known
    """

    id: str
    title: str
    channel_id: str = ""
    channel_title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    published_at: Optional[datetime] = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    duration_seconds: int = 0
    view_count: int = 0
    like_count: int = 0
    channel_thumbnail_url: str = ""

    @property
    def duration(self) -> str:
        return format_duration(self.duration_seconds)

    @property
    def views(self) -> str:
        return format_view_count(self.view_count)

    @property
    def published(self) -> str:
        return format_relative_time(self.published_at)

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "channel_id": self.channel_id,
            "channel_title": self.channel_title,
            "description": self.description,
            "thumbnail_url": self.thumbnail_url,
            "channel_thumbnail_url": self.channel_thumbnail_url,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "published": self.published,
            "tags": list(self.tags),
            "duration_seconds": self.duration_seconds,
            "duration": self.duration,
            "view_count": self.view_count,
            "views": self.views,
            "like_count": self.like_count,
            "url": self.url,
        }


@dataclass(frozen=True)
class Comment:
    """A top-level comment on a video."""

    id: str
    author: str
    text: str
    author_avatar: str = ""
    author_channel_url: str = ""
    like_count: int = 0
    published_at: Optional[datetime] = None

    @property
    def formatted_time(self) -> str:
        return format_relative_time(self.published_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "author_avatar": self.author_avatar,
            "author_channel_url": self.author_channel_url,
            "text": self.text,
            "like_count": self.like_count,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "formatted_time": self.formatted_time,
        }


@dataclass(frozen=True)
class Channel:
    """A YouTube channel profile.

    Attributes:
        id: Channel id, usually starting with "UC"
        title: Display name
        handle: Custom URL handle such as "@freecodecamp", when set
        uploads_playlist_id: Playlist holding every public upload
        subscriber_count: 0 when hidden or unknown
    """

    id: str
    title: str
    handle: str = ""
    description: str = ""
    thumbnail_url: str = ""
    banner_url: str = ""
    published_at: Optional[datetime] = None
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0
    uploads_playlist_id: str = ""

    @property
    def subscribers(self) -> str:
        return format_count(self.subscriber_count, "subscribers")

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/channel/{self.id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "handle": self.handle,
            "description": self.description,
            "thumbnail_url": self.thumbnail_url,
            "banner_url": self.banner_url,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "subscriber_count": self.subscriber_count,
            "subscribers": self.subscribers,
            "video_count": self.video_count,
            "view_count": self.view_count,
            "url": self.url,
        }


@dataclass(frozen=True)
class FetchMeta:
    """Annotation attached to every directory result.

    Attributes:
        source: Where the items came from
        message: Human readable note for the UI, e.g. a sample data banner
        error_kind: Structured failure kind when the fetch did not go live
        status_code: HTTP-equivalent outcome signal
    """

    source: Source
    message: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: int = 200

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"source": self.source.value}
        if self.message is not None:
            data["message"] = self.message
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind
        return data


class DirectoryResult(NamedTuple):
    """Items plus the metadata describing how they were obtained."""

    items: list
    meta: FetchMeta
