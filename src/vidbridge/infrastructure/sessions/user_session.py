"""Authenticated client wrapper with refresh-before-use."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from vidbridge.domain.entities.session import LoginResult, mask_email
from vidbridge.domain.exceptions import AuthenticationError, UpstreamError
from vidbridge.domain.ports.upstream import UpstreamClientPort

log = structlog.get_logger(__name__)


class UserSession:
    """One upstream session token plus the credentials needed to renew it.

    The password stays in memory for the lifetime of the object: the
    upstream token cannot be refreshed without logging in again.

    Args:
        client: Upstream client used for login and authenticated calls.
        session_token: Existing token, if any.
        email: Account e-mail (required for refresh).
        password: Account password (required for refresh).
        expires_at_ms: Token expiry as Unix milliseconds.
        refresh_buffer_seconds: Refresh when the token expires within this window.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        client: UpstreamClientPort,
        *,
        session_token: str | None = None,
        email: str | None = None,
        password: str | None = None,
        expires_at_ms: int | None = None,
        is_premium: bool = False,
        refresh_buffer_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self.session_token = session_token
        self.email = email
        self.password = password
        self.expires_at_ms = expires_at_ms
        self.is_premium = is_premium
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self._clock = clock

    def __repr__(self) -> str:
        email = mask_email(self.email) if self.email else None
        return f"UserSession(email={email!r}, expires_at_ms={self.expires_at_ms})"

    @property
    def is_logged_in(self) -> bool:
        return self.session_token is not None

    def needs_refresh(self) -> bool:
        """True when there is no expiry or it falls inside the refresh buffer."""
        if not self.expires_at_ms:
            return True
        now_ms = self._clock() * 1000
        return now_ms >= self.expires_at_ms - self.refresh_buffer_seconds * 1000

    def apply_login(self, result: LoginResult) -> None:
        self.session_token = result.session_token
        self.expires_at_ms = result.expires_at_ms
        self.is_premium = result.user.is_premium

    async def login(self, email: str, password: str) -> LoginResult:
        """Log in and take over the new token, expiry and credentials."""
        result = await self._client.login(email, password)
        self.email = email
        self.password = password
        self.apply_login(result)
        return result

    async def ensure_valid_session(self) -> bool:
        """Refresh the token if it is due.

        Returns whether the session is usable. A failed refresh is logged and
        reported as ``False``; the following data call then fails on its own.
        """
        if not self.needs_refresh():
            return True

        if not self.email or not self.password:
            return False

        try:
            await self.login(self.email, self.password)
        except UpstreamError as e:
            log.warning(
                "session_refresh_failed",
                email=mask_email(self.email),
                error=str(e),
                status=e.status,
            )
            return False

        log.info("session_refreshed", email=mask_email(self.email))
        return True

    async def get_video_details(self, video_id: str) -> dict[str, Any]:
        """Authenticated stream details, refreshing the session first if due."""
        await self.ensure_valid_session()
        if self.session_token is None:
            raise AuthenticationError("no session token")
        return await self._client.get_authenticated_stream_details(
            video_id, session_token=self.session_token
        )
