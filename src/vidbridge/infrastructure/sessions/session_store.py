"""Per-credential session manager with single-flight login."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from vidbridge.domain.entities.session import (
    CachedSession,
    credentials_hash,
    mask_email,
)
from vidbridge.domain.exceptions import InvalidInputError
from vidbridge.domain.ports.cache import MISSING
from vidbridge.domain.ports.upstream import UpstreamClientPort
from vidbridge.infrastructure.cache.tiered import TieredCache
from vidbridge.infrastructure.common.single_flight import SingleFlight
from vidbridge.infrastructure.sessions.user_session import UserSession

log = structlog.get_logger(__name__)

SESSION_KEY_PREFIX = "user-session:"


class SessionStore:
    """Hands out ``UserSession`` objects per ``(email, password)``.

    Lookup order for ``get_session``:

    1. Session cache (``user-session:<sha256(email:password)>``). A hit is
       rebuilt with the caller's password, which is never cached.
    2. Running login for the same credentials: await it.
    3. Otherwise start a login. Its ledger entry is removed when it settles,
       so a failed login is never remembered.

    A fresh login is cached for ``expires_at - now - margin``, where the
    margin is ``cache_safety_seconds`` or the refresh buffer, whichever is
    larger; if that is not positive the session is returned but not cached.
    A cached entry is only used while it has lifetime left; a remote hit is
    copied to the local tier for no longer than that remaining lifetime. A
    served session therefore never needs a refresh login of its own.

    Args:
        client: Upstream client (login + authenticated calls).
        cache: Session cache; ``None`` disables session caching.
        refresh_buffer_seconds: Passed to every ``UserSession``.
        cache_safety_seconds: Minimum margin subtracted from the token expiry.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        client: UpstreamClientPort,
        cache: TieredCache | None = None,
        *,
        refresh_buffer_seconds: float = 300,
        cache_safety_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._cache = cache
        self._refresh_buffer = refresh_buffer_seconds
        self._safety = cache_safety_seconds
        self._clock = clock
        self._pending: SingleFlight[UserSession] = SingleFlight("session_login")

    @staticmethod
    def cache_key(email: str, password: str) -> str:
        return f"{SESSION_KEY_PREFIX}{credentials_hash(email, password)}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_session(self, email: str, password: str) -> UserSession:
        """Return a logged-in session for the credentials.

        Raises:
            InvalidInputError: If email or password is empty.
            AuthenticationError: If upstream rejects the login.
            UpstreamError: For any other upstream failure during login.
        """
        if not email or not password:
            raise InvalidInputError("email and password are required")

        key = self.cache_key(email, password)

        if self._cache is not None:
            cached = await self._cached_session(key, email, password)
            if cached is not None:
                return cached

        if key in self._pending:
            log.debug("session_login_joined", email=mask_email(email))

        return await self._pending.run(
            key, lambda: self._initialize(key, email, password)
        )

    async def clear_cache(self, email: str, password: str) -> None:
        """Forget the cached session for these credentials."""
        if not email or not password:
            return
        if self._cache is not None:
            await self._cache.delete(self.cache_key(email, password))
        log.debug("session_cache_cleared", email=mask_email(email))

    def clear_all(self) -> None:
        """Drop pending logins; cached sessions expire through their TTL."""
        pending = len(self._pending)
        self._pending = SingleFlight("session_login")
        log.info("session_pending_cleared", pending=pending)

    def stats(self) -> dict[str, Any]:
        return {
            "cache_enabled": self._cache is not None,
            "pending_initializations": len(self._pending),
        }

    async def aclose(self) -> None:
        await self._pending.cancel_all()
        log.debug("session_store_closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _remaining_seconds(self, expires_at_ms: int) -> float:
        """Usable lifetime left: token expiry minus now minus the margin."""
        margin = max(self._safety, self._refresh_buffer)
        return (expires_at_ms - self._clock() * 1000) / 1000 - margin

    def _promote_ttl(self, raw: Any) -> float:
        return self._remaining_seconds(CachedSession.from_dict(raw).expires_at_ms)

    def _new_session(self, **kwargs: Any) -> UserSession:
        return UserSession(
            self._client,
            refresh_buffer_seconds=self._refresh_buffer,
            clock=self._clock,
            **kwargs,
        )

    async def _cached_session(
        self, key: str, email: str, password: str
    ) -> UserSession | None:
        assert self._cache is not None
        raw = await self._cache.get(key, promote_ttl=self._promote_ttl)
        if raw is MISSING:
            return None

        try:
            cached = CachedSession.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            log.warning(
                "session_cache_corrupt",
                email=mask_email(email),
                error=str(e),
            )
            await self._cache.delete(key)
            return None

        if self._remaining_seconds(cached.expires_at_ms) <= 0:
            log.debug("session_cache_expired", email=mask_email(email))
            await self._cache.delete(key)
            return None

        log.debug("session_cache_hit", email=mask_email(email))
        return self._new_session(
            session_token=cached.session_token,
            email=cached.email,
            password=password,
            expires_at_ms=cached.expires_at_ms,
            is_premium=cached.is_premium,
        )

    async def _initialize(self, key: str, email: str, password: str) -> UserSession:
        session = self._new_session(email=email, password=password)
        try:
            result = await session.login(email, password)
        except Exception as e:
            log.error(
                "session_login_failed",
                email=mask_email(email),
                error=str(e),
            )
            raise

        log.info(
            "session_initialized",
            email=mask_email(email),
            is_premium=result.user.is_premium,
            expires_at=result.expires_at_unix,
        )

        if self._cache is not None:
            ttl = self._remaining_seconds(result.expires_at_ms)
            if ttl > 0:
                snapshot = CachedSession(
                    session_token=result.session_token,
                    email=email,
                    expires_at_ms=result.expires_at_ms,
                    is_premium=result.user.is_premium,
                )
                await self._cache.set(key, snapshot.to_dict(), ttl)
                log.debug(
                    "session_cached",
                    email=mask_email(email),
                    ttl_minutes=round(ttl / 60),
                )
            else:
                log.warning(
                    "session_ttl_not_positive",
                    email=mask_email(email),
                    ttl_seconds=round(ttl),
                )

        return session
