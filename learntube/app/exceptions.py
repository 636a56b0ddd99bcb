"""Custom exceptions for learntube."""

from enum import Enum


class LearnTubeException(Exception):
    """Base class for learntube exceptions with HTTP status code.

    All custom exceptions inherit from this class and define their
    specific status_code for consistent HTTP response handling.
    """

    status_code: int = 500

    def __init__(self, message: str = "Internal error"):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(LearnTubeException):
    """Raised when a caller supplies an empty or malformed required parameter.

    Never retried. This is the only directory error surfaced to callers.
    Maps to HTTP 400 Bad Request.
    """

    status_code = 400

    def __init__(self, argument: str, detail: str | None = None):
        self.argument = argument
        super().__init__(detail or f"{argument} is required")


class NoKeysConfiguredError(LearnTubeException):
    """Raised by the key pool when no YouTube API key is configured."""

    status_code = 500

    def __init__(self, detail: str = "YouTube API key not configured"):
        super().__init__(detail)


class QuotaExhaustedError(LearnTubeException):
    """Signals that the daily quota ledger denied admission.

    Maps to HTTP 503 Service Unavailable.
    """

    status_code = 503

    def __init__(self, remaining: int = 0, cost: int = 0):
        self.remaining = remaining
        self.cost = cost
        super().__init__(
            "YouTube API quota or rate limit exceeded. Please try again later."
        )


class UpstreamUnavailableError(LearnTubeException):
    """Network failure, timeout or 5xx response from the YouTube API."""

    status_code = 503

    def __init__(self, detail: str = "YouTube API temporarily unavailable"):
        super().__init__(detail)


class UpstreamErrorKind(str, Enum):
    """Classification of YouTube API domain errors."""

    QUOTA_EXCEEDED = "quota_exceeded"
    COMMENTS_DISABLED = "comments_disabled"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    OTHER = "other"


class UpstreamDomainError(LearnTubeException):
    """A 4xx error response from the YouTube API.

    Attributes:
        kind: Classified error kind
        reason: Raw reason string from the Google error body, if any
    """

    def __init__(
        self,
        kind: UpstreamErrorKind,
        status_code: int,
        reason: str | None = None,
        detail: str | None = None,
    ):
        self.kind = kind
        self.status_code = status_code
        self.reason = reason
        super().__init__(detail or f"YouTube API error: {reason or kind.value}")
