"""Core utilities for the learntube application."""

from learntube.app.core.cache import ResponseCache, make_cache_key, normalize_query
from learntube.app.core.config import settings
from learntube.app.core.logging import get_logger, setup_logging

__all__ = [
    "ResponseCache",
    "make_cache_key",
    "normalize_query",
    "settings",
    "get_logger",
    "setup_logging",
]
