"""Error taxonomy shared by all layers."""

from __future__ import annotations


class VidbridgeError(Exception):
    """Base class for all vidbridge errors."""


class InvalidInputError(VidbridgeError, ValueError):
    """Raised before any I/O when a required argument is missing or empty."""


class UpstreamError(VidbridgeError):
    """An upstream request failed. ``status`` is the HTTP status, if any."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UpstreamBlockedError(UpstreamError):
    """Upstream answered 403: it is blocking or rate-limiting us."""

    def __init__(self, message: str = "upstream blocked the request") -> None:
        super().__init__(message, status=403)


class UpstreamUnavailableError(UpstreamError):
    """Network failure, timeout or 5xx from upstream."""


class AuthenticationError(UpstreamError):
    """Login was rejected by upstream."""


class CacheStoreError(VidbridgeError):
    """A cache backend failed. Never escapes ``TieredCache``."""
