"""Authenticated-session value objects."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any


def credentials_hash(email: str, password: str) -> str:
    """SHA-256 hex digest of ``email:password``."""
    return hashlib.sha256(f"{email}:{password}".encode("utf-8")).hexdigest()


def mask_email(email: str) -> str:
    """First three characters followed by ``***`` (for logs)."""
    return f"{email[:3]}***"


@dataclass(frozen=True)
class UpstreamUser:
    """Subset of the upstream account profile returned on login."""

    id: int | None = None
    email: str = ""
    name: str = ""
    is_premium: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class LoginResult:
    """Result of a successful upstream login."""

    session_token: str
    expires_at_unix: int  # seconds
    user: UpstreamUser = field(default_factory=UpstreamUser)

    @property
    def expires_at_ms(self) -> int:
        return self.expires_at_unix * 1000


@dataclass(frozen=True)
class CachedSession:
    """Serializable session snapshot stored under ``user-session:<hash>``.

    The password is deliberately absent: callers re-supply it.
    """

    session_token: str
    email: str
    expires_at_ms: int
    is_premium: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_token": self.session_token,
            "email": self.email,
            "expires_at": self.expires_at_ms,
            "is_premium": self.is_premium,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CachedSession:
        return cls(
            session_token=data["session_token"],
            email=data["email"],
            expires_at_ms=int(data["expires_at"]),
            is_premium=bool(data.get("is_premium", False)),
        )
