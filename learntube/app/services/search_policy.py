"""Educational search policy.

Search results are narrowed to learning content: queries without a learning
keyword are widened with "programming tutorial", and uploads outside a
duration window (shorts, multi-hour streams) are dropped. Because dropped
items shrink the page, the upstream call asks for more results than the
caller wants.
"""

from dataclasses import dataclass
from typing import Iterable

from learntube.app.services.models import Video

LEARNING_KEYWORDS = (
    "programming",
    "coding",
    "development",
    "tutorial",
    "course",
    "explained",
    "guide",
    "learn",
)
QUERY_SUFFIX = "programming tutorial"

# Upstream caps maxResults at 50
UPSTREAM_MAX_RESULTS = 50


def enhance_query(query: str) -> str:
    """Append a learning suffix unless the query already names one.

    Examples:
        >>> enhance_query("react hooks")
        'react hooks programming tutorial'
        >>> enhance_query("Learn Rust")
        'Learn Rust'
    """
    lowered = query.lower()
    if any(keyword in lowered for keyword in LEARNING_KEYWORDS):
        return query
    return f"{query} {QUERY_SUFFIX}"


@dataclass(frozen=True)
class EducationalFilter:
    """Duration window and query widening applied to search.

    A duration of 0 means upstream details were unavailable; such videos are
    kept rather than dropped.
    """

    min_duration_seconds: int = 60
    max_duration_seconds: int = 7200
    enhance_queries: bool = True
    overfetch_factor: int = 2

    def upstream_query(self, query: str) -> str:
        return enhance_query(query) if self.enhance_queries else query

    def upstream_limit(self, limit: int) -> int:
        return min(limit * self.overfetch_factor, UPSTREAM_MAX_RESULTS)

    def accepts(self, video: Video) -> bool:
        duration = video.duration_seconds
        if duration == 0:
            return True
        return self.min_duration_seconds < duration < self.max_duration_seconds

    def apply(self, videos: Iterable[Video], limit: int) -> list[Video]:
        """Keep accepted videos in upstream order, up to limit."""
        return [v for v in videos if self.accepts(v)][:limit]
