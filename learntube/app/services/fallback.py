"""Deterministic sample data served when live YouTube results are unavailable.

Search placeholders are parametrized by the query text, so the same query
always yields the same titles. The trending set is fixed and does not depend
on any input.
"""

from datetime import datetime, timezone

from learntube.app.services.models import Video

SEARCH_FALLBACK_MESSAGE = "Using sample data (YouTube API temporarily unavailable)"
TRENDING_FALLBACK_MESSAGE = "Showing sample programming videos (YouTube API temporarily unavailable)"
TRENDING_NOT_CONFIGURED_MESSAGE = "Showing sample programming videos (API key not configured)"
TRENDING_ERROR_MESSAGE = "Showing sample programming videos (service temporarily unavailable)"
NOT_CONFIGURED_MESSAGE = "YouTube API key not configured"
QUOTA_EXCEEDED_MESSAGE = "YouTube API quota or rate limit exceeded. Please try again later."
COMMENTS_DISABLED_MESSAGE = "Comments are disabled for this video"
COMMENTS_NOT_FOUND_MESSAGE = "No comments found for this video"
COMMENTS_FAILED_MESSAGE = "Failed to fetch comments"
VIDEO_NOT_FOUND_MESSAGE = "Video not found"
VIDEO_FAILED_MESSAGE = "Failed to fetch video details"
CHANNEL_NOT_FOUND_MESSAGE = "Channel not found"
CHANNEL_FAILED_MESSAGE = "Failed to fetch channel info"
CHANNEL_VIDEOS_FAILED_MESSAGE = "Failed to fetch channel videos"

_PLACEHOLDER_THUMB = "https://via.placeholder.com/320x180/{bg}/{fg}?text={text}"


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def search_fallback(query: str) -> list[Video]:
    """Three placeholder tutorials titled after the query."""
    query = query.strip()
    return [
        Video(
            id="sample-search-1",
            title=f"{query} - Complete Tutorial for Beginners",
            channel_id="sample-channel-1",
            channel_title="TechEdu Pro",
            description=(
                f"Learn {query} with this comprehensive tutorial covering all the "
                "basics and advanced concepts."
            ),
            thumbnail_url=_PLACEHOLDER_THUMB.format(bg="1a1a1a", fg="ffffff", text="Tutorial"),
            published_at=_utc(2024, 1, 15, 10, 0),
            duration_seconds=45 * 60 + 30,
            view_count=25000,
            like_count=1500,
        ),
        Video(
            id="sample-search-2",
            title=f"Advanced {query} Techniques and Best Practices",
            channel_id="sample-channel-2",
            channel_title="CodeMaster",
            description=(
                f"Take your {query} skills to the next level with advanced "
                "techniques and industry best practices."
            ),
            thumbnail_url=_PLACEHOLDER_THUMB.format(bg="61dafb", fg="000000", text="Advanced"),
            published_at=_utc(2024, 1, 10, 14, 30),
            duration_seconds=3600 + 20 * 60 + 15,
            view_count=18000,
            like_count=1200,
        ),
        Video(
            id="sample-search-3",
            title=f"{query} Project - Build Real Applications",
            channel_id="sample-channel-3",
            channel_title="Project Builder",
            description=f"Build real-world projects using {query} and gain practical experience.",
            thumbnail_url=_PLACEHOLDER_THUMB.format(bg="3776ab", fg="ffffff", text="Project"),
            published_at=_utc(2024, 1, 8, 9, 0),
            duration_seconds=2 * 3600 + 15 * 60 + 45,
            view_count=32000,
            like_count=2100,
        ),
    ]


_TRENDING_SAMPLES = (
    Video(
        id="dQw4w9WgXcQ",
        title="JavaScript Fundamentals - Complete Tutorial",
        channel_id="UC123",
        channel_title="CodeAcademy",
        description="Learn JavaScript fundamentals with hands-on examples and exercises.",
        thumbnail_url=_PLACEHOLDER_THUMB.format(bg="2563eb", fg="ffffff", text="JS+Tutorial"),
        published_at=_utc(2024, 1, 13, 12, 0),
        tags=("javascript", "programming", "tutorial"),
        duration_seconds=45 * 60 + 30,
        view_count=125000,
        like_count=5200,
    ),
    Video(
        id="example2",
        title="React Hooks Explained - Beginner to Advanced",
        channel_id="UC456",
        channel_title="WebDev Pro",
        description="Master React Hooks with practical examples and best practices.",
        thumbnail_url=_PLACEHOLDER_THUMB.format(bg="06b6d4", fg="ffffff", text="React+Hooks"),
        published_at=_utc(2024, 1, 14, 12, 0),
        tags=("react", "hooks", "javascript"),
        duration_seconds=32 * 60 + 15,
        view_count=89000,
        like_count=3800,
    ),
    Video(
        id="example3",
        title="Python for Beginners - Full Course",
        channel_id="UC789",
        channel_title="PythonMaster",
        description="Complete Python programming course for absolute beginners.",
        thumbnail_url=_PLACEHOLDER_THUMB.format(bg="10b981", fg="ffffff", text="Python+Course"),
        published_at=_utc(2024, 1, 12, 12, 0),
        tags=("python", "programming", "beginners"),
        duration_seconds=2 * 3600 + 15 * 60 + 45,
        view_count=245000,
        like_count=9200,
    ),
    Video(
        id="example4",
        title="CSS Grid Layout - Modern Web Design",
        channel_id="UC101",
        channel_title="DesignCode",
        description="Learn CSS Grid for creating responsive layouts efficiently.",
        thumbnail_url=_PLACEHOLDER_THUMB.format(bg="8b5cf6", fg="ffffff", text="CSS+Grid"),
        published_at=_utc(2024, 1, 14, 12, 0),
        tags=("css", "grid", "web-design"),
        duration_seconds=28 * 60 + 22,
        view_count=67000,
        like_count=2900,
    ),
)


def trending_fallback() -> list[Video]:
    """The fixed set of sample programming videos."""
    return list(_TRENDING_SAMPLES)
