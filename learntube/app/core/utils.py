"""Utility functions for learntube."""

import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

_ISO8601_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_duration(value: Optional[str]) -> int:
    """Convert a YouTube ISO 8601 duration into seconds.

    Returns 0 for missing or malformed values.

    Examples:
        >>> parse_iso8601_duration("PT1H2M3S")
        3723
        >>> parse_iso8601_duration("P1DT1S")
        86401
    """
    if not value:
        return 0
    match = _ISO8601_DURATION_RE.match(value)
    if not match:
        return 0
    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    return parts["days"] * 86400 + parts["hours"] * 3600 + parts["minutes"] * 60 + parts["seconds"]


def format_duration(seconds: int) -> str:
    """Render seconds as H:MM:SS or M:SS."""
    hours, remainder = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_count(count: int, unit: str) -> str:
    """Render a count compactly, e.g. "1.2M views" or "3.4K subscribers"."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M {unit}"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K {unit}"
    return f"{count} {unit}"


def format_view_count(count: int) -> str:
    """Render a view count as "1.2M views", "3.4K views" or "12 views"."""
    return format_count(count, "views")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def format_relative_time(when: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a timestamp relative to now, e.g. "3 days ago".

    Naive datetimes are treated as UTC. Returns "" when ``when`` is None.
    """
    if when is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    hours = int((now - when).total_seconds() // 3600)
    if hours < 1:
        return "just now"
    if hours < 24:
        return _plural(hours, "hour")
    if hours < 24 * 7:
        return _plural(hours // 24, "day")
    if hours < 24 * 30:
        return _plural(hours // (24 * 7), "week")
    if hours < 24 * 365:
        return _plural(hours // (24 * 30), "month")
    return _plural(hours // (24 * 365), "year")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp from the YouTube API.

    Returns None for missing or malformed values.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def next_midnight(now: datetime, tz_name: str) -> datetime:
    """Return the first local midnight in ``tz_name`` strictly after ``now``.

    Args:
        now: An aware datetime.
        tz_name: IANA timezone name, e.g. "America/Los_Angeles".

    Examples:
        >>> next_midnight(datetime(2026, 3, 1, 12, tzinfo=timezone.utc), "UTC")
        datetime.datetime(2026, 3, 2, 0, 0, tzinfo=zoneinfo.ZoneInfo(key='UTC'))
    """
    tz = ZoneInfo(tz_name)
    local = now.astimezone(tz)
    return datetime.combine(local.date() + timedelta(days=1), time(0), tzinfo=tz)
