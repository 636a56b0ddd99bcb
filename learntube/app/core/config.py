import json
import os
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# YOUTUBE_API_KEY_1 .. YOUTUBE_API_KEY_8
NUMBERED_KEY_SLOTS = 8

_PLACEHOLDER_RE = re.compile(r"^your_.*_here$", re.IGNORECASE)


def _split_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set)):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []

    # Prefer JSON, but tolerate comma or whitespace separated values.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    return [p for p in re.split(r"[,\s]+", raw) if p]


def _parse_cors_origins(raw: Any) -> list[str]:
    origins = _split_list(raw)
    if "*" in origins:
        return ["*"]

    result: list[str] = []
    for origin in origins:
        if "://" not in origin:
            # Browsers include the scheme in the Origin header.
            candidates = [f"http://{origin}", f"https://{origin}"]
        else:
            candidates = [origin]
        for candidate in candidates:
            if candidate not in result:
                result.append(candidate)
    return result


def is_placeholder_key(value: str) -> bool:
    """Return True for empty values and template placeholders from .env.example."""
    value = value.strip()
    return not value or bool(_PLACEHOLDER_RE.match(value))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # YouTube credentials. Keys from all three sources are merged by the key pool.
    youtube_api_key: str = ""  # legacy single key
    youtube_api_keys: Annotated[list[str], NoDecode] = []

    @field_validator("youtube_api_keys", mode="before")
    @classmethod
    def decode_api_keys(cls, v: Any) -> list[str]:
        return _split_list(v)

    youtube_base_url: str = "https://www.googleapis.com/youtube/v3"

    # Daily quota (YouTube resets at midnight Pacific time)
    youtube_daily_quota_limit: int = 10000
    youtube_quota_timezone: str = "America/Los_Angeles"

    # Quota cost per operation kind, in YouTube quota units
    youtube_cost_search: int = 100
    youtube_cost_videos: int = 1
    youtube_cost_comments: int = 1
    youtube_cost_channels: int = 1
    youtube_cost_playlist_items: int = 1

    # Response cache TTLs in seconds
    youtube_cache_ttl_search: int = 3600  # 1 hour
    youtube_cache_ttl_trending: int = 1800  # 30 minutes
    youtube_cache_ttl_video: int = 86400  # 24 hours
    youtube_cache_ttl_comments: int = 21600  # 6 hours
    youtube_cache_ttl_channel: int = 43200  # 12 hours
    youtube_cache_max_entries: int = 1000

    # Trending feed: Education category in the given region
    youtube_trending_category_id: str = "27"
    youtube_region_code: str = "US"

    # Educational search: uploads shorter than the minimum or longer than the
    # maximum are dropped, and queries without a learning keyword are widened
    # with "programming tutorial". Search over-fetches to make up for drops.
    youtube_educational_filter: bool = True
    youtube_min_duration_seconds: int = 60
    youtube_max_duration_seconds: int = 7200
    youtube_enhance_search_query: bool = True
    youtube_search_overfetch_factor: int = 2

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 5.0
    httpx_read_timeout: float = 15.0
    httpx_write_timeout: float = 5.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 50
    httpx_max_keepalive_connections: int = 10

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "youtube_daily_quota_limit",
        "youtube_cost_search",
        "youtube_cost_videos",
        "youtube_cost_comments",
        "youtube_cost_channels",
        "youtube_cost_playlist_items",
        "youtube_cache_max_entries",
        "youtube_search_overfetch_factor",
        "youtube_max_duration_seconds",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate quota limit, costs and cache bound are positive."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator(
        "youtube_cache_ttl_search",
        "youtube_cache_ttl_trending",
        "youtube_cache_ttl_video",
        "youtube_cache_ttl_comments",
        "youtube_cache_ttl_channel",
    )
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """Validate cache TTLs are positive."""
        if v <= 0:
            raise ValueError("cache TTL must be positive")
        return v

    @field_validator(
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    def numbered_api_keys(self) -> list[str]:
        """Read YOUTUBE_API_KEY_1..8 from the process environment."""
        keys = []
        for i in range(1, NUMBERED_KEY_SLOTS + 1):
            value = os.getenv(f"YOUTUBE_API_KEY_{i}", "")
            if not is_placeholder_key(value):
                keys.append(value.strip())
        return keys

    def all_api_keys(self) -> list[str]:
        """All configured credentials in declaration order, without duplicates.

        Order: YOUTUBE_API_KEYS, numbered keys, then the legacy single key.
        """
        candidates = [*self.youtube_api_keys, *self.numbered_api_keys(), self.youtube_api_key]
        keys: list[str] = []
        for key in candidates:
            key = key.strip()
            if is_placeholder_key(key) or key in keys:
                continue
            keys.append(key)
        return keys

    @property
    def quota_costs(self) -> dict[str, int]:
        """Cost table keyed by operation kind."""
        return {
            "search": self.youtube_cost_search,
            "videos": self.youtube_cost_videos,
            "trending": self.youtube_cost_videos,
            "comments": self.youtube_cost_comments,
            "channels": self.youtube_cost_channels,
            "channel_videos": self.youtube_cost_channels + self.youtube_cost_playlist_items,
        }

    @property
    def cache_ttls(self) -> dict[str, int]:
        """Cache TTL keyed by operation kind."""
        return {
            "search": self.youtube_cache_ttl_search,
            "trending": self.youtube_cache_ttl_trending,
            "videos": self.youtube_cache_ttl_video,
            "comments": self.youtube_cache_ttl_comments,
            "channels": self.youtube_cache_ttl_channel,
            "channel_videos": self.youtube_cache_ttl_channel,
        }

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
