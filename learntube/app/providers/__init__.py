"""Upstream providers package for learntube.

This package provides:
- API key pool with random selection (KeyPool)
- Base video provider interface (BaseVideoProvider)
- YouTube Data API v3 implementation (YouTubeProvider)
"""

from learntube.app.providers.base import BaseVideoProvider
from learntube.app.providers.keypool import KeyPool, mask_key
from learntube.app.providers.youtube import YouTubeProvider, classify_error

__all__ = [
    "BaseVideoProvider",
    "KeyPool",
    "mask_key",
    "YouTubeProvider",
    "classify_error",
]
