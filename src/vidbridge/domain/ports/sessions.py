"""Session Port - credential-scoped authenticated sessions."""

from __future__ import annotations

from typing import Any, Protocol


class AuthenticatedSessionPort(Protocol):
    """A logged-in upstream session that refreshes itself before use."""

    @property
    def is_logged_in(self) -> bool: ...

    async def get_video_details(self, video_id: str) -> dict[str, Any]: ...


class SessionProviderPort(Protocol):
    """Hands out sessions per ``(email, password)``, one login at a time."""

    async def get_session(
        self, email: str, password: str
    ) -> AuthenticatedSessionPort: ...
