from __future__ import annotations

from typing import Any


class CompatError(Exception):
    """
    Base exception for failures surfaced to Mastodon clients.
    """

    pass


class Unauthorized(CompatError):
    """
    Raised when a request needs an authenticated user and has none.
    """

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(CompatError):
    """
    Raised when the platform refuses an operation for the current user.
    """

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(CompatError):
    """
    Raised when a requested object does not exist or is not visible.
    """

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class DomainValidationError(CompatError):
    """
    Raised for domain rule failures (poll expired, already voted, ...).
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConstraintViolation(CompatError):
    """
    Raised when the platform rejects a write because of a data constraint.
    """

    def __init__(self, message: str, *, field: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class PlatformError(CompatError):
    """
    Raised by gateway implementations when a platform call fails.
    """

    pass


class CursorError(CompatError):
    """
    Raised when a pagination cursor cannot be encoded or decoded.
    """

    pass


class RateLimited(CompatError):
    """
    Raised when a caller has run out of rate limit tokens.
    """

    def __init__(self, retry_after_seconds: int = 1, headers: Any = None) -> None:
        super().__init__("Too many requests")
        self.retry_after_seconds = retry_after_seconds
        self.headers = dict(headers or {})
