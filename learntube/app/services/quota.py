"""Daily quota ledger for the YouTube Data API.

The ledger tracks cost units consumed against a fixed daily budget shared by
every caller in the process. YouTube resets quotas at midnight Pacific time;
the ledger rolls over lazily on the first access after the reset time instead
of running a timer.

All reads and mutations go through one lock. Critical sections never perform
I/O, so the ledger is safe to call from threads and from asyncio tasks alike.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Mapping, Optional

from learntube.app.core.logging import get_logger
from learntube.app.core.utils import next_midnight
from learntube.app.exceptions import InvalidArgumentError

logger = get_logger(__name__)

DEFAULT_DAILY_LIMIT = 10_000
DEFAULT_TIMEZONE = "America/Los_Angeles"

# YouTube Data API v3 published costs
DEFAULT_COSTS: Mapping[str, int] = {
    "search": 100,
    "videos": 1,
    "trending": 1,
    "comments": 1,
    "channels": 1,
    # channels.list for the uploads playlist, then playlistItems.list
    "channel_videos": 2,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QuotaState:
    """Read view of the ledger.

    Attributes:
        used: Cost units consumed since the last rollover
        limit: Daily budget
        reset_time: Next rollover, an aware datetime in the quota timezone
    """

    used: int
    limit: int
    reset_time: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def usage_percentage(self) -> int:
        return round(self.used / self.limit * 100) if self.limit else 100

    def to_dict(self) -> dict:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_time": self.reset_time.isoformat(),
        }


class QuotaLedger:
    """Process-wide quota accounting with atomic admission.

    Usage:
        ledger = QuotaLedger(limit=10_000)
        if ledger.try_debit(ledger.cost_of("search")):
            ...  # call upstream
        else:
            ...  # serve fallback
    """

    def __init__(
        self,
        limit: int = DEFAULT_DAILY_LIMIT,
        costs: Optional[Mapping[str, int]] = None,
        tz_name: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the ledger.

        Args:
            limit: Daily budget in cost units
            costs: Cost table keyed by operation kind
            tz_name: IANA timezone whose midnight marks the rollover
            clock: Source of aware "now" datetimes, injectable for tests
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._limit = limit
        self._costs = dict(costs or DEFAULT_COSTS)
        self._tz_name = tz_name
        self._clock = clock
        self._lock = threading.Lock()
        self._used = 0
        self._reset_time = next_midnight(clock(), tz_name)

    def cost_of(self, kind: str) -> int:
        """Look up the cost of an operation kind.

        Raises:
            KeyError: If the kind has no cost entry
        """
        return self._costs[kind]

    @property
    def costs(self) -> dict[str, int]:
        return dict(self._costs)

    def _rollover_locked(self) -> Optional[int]:
        """Roll over if the reset time passed.

        Returns:
            Units cleared by the rollover, or None if none happened
        """
        now = self._clock()
        if now < self._reset_time:
            return None
        previous = self._used
        self._used = 0
        # Whole days in wall-clock time so the boundary stays at local midnight
        # across DST changes; more than one step only after a multi-day idle.
        while self._reset_time <= now:
            self._reset_time = self._reset_time + timedelta(days=1)
        return previous

    def _log_rollover(self, cleared: Optional[int], state: QuotaState) -> None:
        # Called after the lock is released
        if cleared is not None:
            logger.info(
                f"Quota rolled over: {cleared} units cleared, next reset {state.reset_time.isoformat()}"
            )

    def _state_locked(self) -> QuotaState:
        return QuotaState(used=self._used, limit=self._limit, reset_time=self._reset_time)

    def get_state(self) -> QuotaState:
        """Return the current state, rolling over first if the reset time passed."""
        with self._lock:
            cleared = self._rollover_locked()
            state = self._state_locked()
        self._log_rollover(cleared, state)
        return state

    def try_debit(self, cost: int) -> bool:
        """Admit a call if it fits in the remaining budget.

        Args:
            cost: Positive cost in units

        Returns:
            True if admitted and recorded, False if denied (no mutation)
        """
        if cost <= 0:
            raise InvalidArgumentError("cost", "cost must be a positive integer")
        with self._lock:
            cleared = self._rollover_locked()
            admitted = self._used + cost <= self._limit
            if admitted:
                self._used += cost
            state = self._state_locked()
        self._log_rollover(cleared, state)
        if not admitted:
            logger.warning(
                f"Quota would be exceeded. Used: {state.used}, Cost: {cost}, Limit: {state.limit}"
            )
        return admitted

    def force_debit(self, cost: int) -> QuotaState:
        """Record a cost that was already spent upstream, regardless of budget."""
        if cost < 0:
            raise InvalidArgumentError("cost", "cost must not be negative")
        with self._lock:
            cleared = self._rollover_locked()
            self._used += cost
            state = self._state_locked()
        self._log_rollover(cleared, state)
        return state

    def mark_exhausted(self) -> QuotaState:
        """Saturate usage after upstream reported its own quota exhaustion.

        Every later call is denied until the next rollover.
        """
        with self._lock:
            cleared = self._rollover_locked()
            self._used = max(self._used, self._limit)
            state = self._state_locked()
        self._log_rollover(cleared, state)
        logger.warning("Upstream reported quota exhaustion; ledger saturated until reset")
        return state

    def clear(self) -> None:
        """Reset usage to zero without waiting for rollover (admin and tests)."""
        with self._lock:
            self._used = 0
        logger.info("Quota ledger cleared")


class QuotaStatus(str, Enum):
    """Usage bands reported by the quota endpoint."""

    HEALTHY = "healthy"
    MODERATE = "moderate"
    WARNING = "warning"
    CRITICAL = "critical"


def classify_usage(usage_percentage: int) -> QuotaStatus:
    if usage_percentage >= 90:
        return QuotaStatus.CRITICAL
    if usage_percentage >= 75:
        return QuotaStatus.WARNING
    if usage_percentage >= 50:
        return QuotaStatus.MODERATE
    return QuotaStatus.HEALTHY


_RECOMMENDATIONS = {
    QuotaStatus.CRITICAL: [
        "CRITICAL: Quota usage is very high. API calls may fail.",
        "Serve cached data instead of live API calls.",
        "Reduce search frequency; each search costs 100 units.",
    ],
    QuotaStatus.WARNING: [
        "WARNING: Quota usage is high. Monitor closely.",
        "Prioritize essential API calls only.",
        "Use cached data when possible.",
    ],
    QuotaStatus.MODERATE: [
        "Moderate quota usage. Consider optimizing API calls.",
        "Cache frequently accessed data.",
    ],
    QuotaStatus.HEALTHY: [
        "Quota usage is healthy.",
        "Continue monitoring to maintain efficiency.",
    ],
}


def recommendations_for(status: QuotaStatus, key_count: int) -> list[str]:
    """Operator guidance for a usage band and key configuration."""
    recommendations = list(_RECOMMENDATIONS[status])
    if key_count == 0:
        recommendations.insert(0, "CRITICAL: No YouTube API keys configured. All results are sample data.")
    elif key_count == 1:
        recommendations.append("Only 1 API key configured. Add more keys for redundancy.")
    return recommendations


def usage_status(state: QuotaState, key_count: int) -> tuple[QuotaStatus, list[str]]:
    """Classify a ledger state and attach recommendations."""
    status = classify_usage(state.usage_percentage)
    return status, recommendations_for(status, key_count)
