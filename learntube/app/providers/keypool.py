"""API key pool for the YouTube Data API.

Distributes outbound calls across the configured credentials by uniform
random choice. The upstream quota is assumed to be per project, so no per-key
usage is tracked; when keys belong to separate projects with their own
quotas this policy gives no fairness guarantee.
"""

import random
from typing import Iterable, Optional, TYPE_CHECKING

from learntube.app.core.config import is_placeholder_key
from learntube.app.exceptions import NoKeysConfiguredError

if TYPE_CHECKING:
    from learntube.app.core.config import Settings


def mask_key(key: str) -> str:
    """Mask an API key for logs and diagnostics.

    Examples:
        >>> mask_key("AIzaSyA1234567890abcdef")
        'AIza...cdef'
        >>> mask_key("short")
        '***'
    """
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


class KeyPool:
    """Immutable set of API credentials with random selection.

    Usage:
        pool = KeyPool.from_settings(settings)
        key = pool.select_key()
    """

    def __init__(self, keys: Iterable[str], rng: Optional[random.Random] = None):
        """Initialize the pool.

        Args:
            keys: Candidate credentials. Empty values, placeholders and
                duplicates are dropped; order of first appearance is kept.
            rng: Random source, injectable for deterministic tests.
        """
        unique: list[str] = []
        for key in keys:
            key = (key or "").strip()
            if is_placeholder_key(key) or key in unique:
                continue
            unique.append(key)
        self._keys = tuple(unique)
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "KeyPool":
        """Build a pool from every key source in the settings."""
        return cls(settings.all_api_keys())

    def select_key(self) -> str:
        """Pick a credential for one outbound call.

        Raises:
            NoKeysConfiguredError: If the pool is empty
        """
        if not self._keys:
            raise NoKeysConfiguredError()
        return self._rng.choice(self._keys)

    def list_keys(self) -> frozenset[str]:
        return frozenset(self._keys)

    def masked_keys(self) -> list[str]:
        return [mask_key(key) for key in self._keys]

    def count(self) -> int:
        return len(self._keys)

    def __bool__(self) -> bool:
        return bool(self._keys)

    def __repr__(self) -> str:
        return f"KeyPool(keys={self.masked_keys()})"
