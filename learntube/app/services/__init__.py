"""Services package for learntube.

This package provides:
- Value records for directory results
- The daily quota ledger
- Deterministic fallback data

The directory client lives in ``learntube.app.services.video_directory``.
"""

from learntube.app.services.models import (
    Channel,
    Comment,
    DirectoryResult,
    FetchMeta,
    Source,
    Video,
)
from learntube.app.services.quota import QuotaLedger, QuotaState, QuotaStatus, usage_status

__all__ = [
    "Channel",
    "Comment",
    "DirectoryResult",
    "FetchMeta",
    "Source",
    "Video",
    "QuotaLedger",
    "QuotaState",
    "QuotaStatus",
    "usage_status",
]
