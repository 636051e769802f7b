"""Tests for SessionStore: cached sessions and single-flight login."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from vidbridge.domain.entities.session import credentials_hash
from vidbridge.domain.exceptions import AuthenticationError, InvalidInputError
from vidbridge.domain.ports.cache import MISSING
from vidbridge.infrastructure.cache.memory_adapter import MemoryAdapter
from vidbridge.infrastructure.cache.tiered import TieredCache
from vidbridge.infrastructure.sessions.session_store import SessionStore

EMAIL = "user@example.com"
PASSWORD = "hunter2"


@pytest.fixture()
def session_cache() -> TieredCache:
    return TieredCache(MemoryAdapter(), name="sessions")


@pytest.fixture()
def store(mock_upstream: AsyncMock, session_cache: TieredCache, clock) -> SessionStore:
    return SessionStore(
        mock_upstream,
        session_cache,
        refresh_buffer_seconds=300,
        cache_safety_seconds=300,
        clock=clock,
    )


class TestCacheKey:
    def test_key_is_prefixed_credentials_hash(self) -> None:
        expected = f"user-session:{credentials_hash(EMAIL, PASSWORD)}"
        assert SessionStore.cache_key(EMAIL, PASSWORD) == expected


class TestGetSession:
    @pytest.mark.parametrize("email,password", [("", "pw"), ("a@b.c", "")])
    async def test_empty_credentials_rejected(
        self, store: SessionStore, email: str, password: str
    ) -> None:
        with pytest.raises(InvalidInputError):
            await store.get_session(email, password)

    async def test_concurrent_requests_log_in_once(
        self, store: SessionStore, mock_upstream: AsyncMock, login_factory, clock
    ) -> None:
        release = asyncio.Event()
        result = login_factory(expires_at_unix=int(clock() + 3600))

        async def slow_login(email: str, password: str):
            await release.wait()
            return result

        mock_upstream.login.side_effect = slow_login

        waiters = [
            asyncio.create_task(store.get_session(EMAIL, PASSWORD)) for _ in range(5)
        ]
        await asyncio.sleep(0)
        assert store.stats()["pending_initializations"] == 1
        release.set()
        sessions = await asyncio.gather(*waiters)

        mock_upstream.login.assert_awaited_once_with(EMAIL, PASSWORD)
        assert all(s is sessions[0] for s in sessions)
        assert store.stats()["pending_initializations"] == 0

    async def test_failed_login_is_not_remembered(
        self, store: SessionStore, mock_upstream: AsyncMock, login_factory, clock
    ) -> None:
        mock_upstream.login.side_effect = [
            AuthenticationError("rejected"),
            login_factory(expires_at_unix=int(clock() + 3600)),
        ]

        with pytest.raises(AuthenticationError):
            await store.get_session(EMAIL, PASSWORD)
        assert store.stats()["pending_initializations"] == 0

        session = await store.get_session(EMAIL, PASSWORD)
        assert session.session_token == "tok-1"
        assert mock_upstream.login.await_count == 2

    async def test_session_cached_without_password(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        login_factory,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 3600)
        )

        await store.get_session(EMAIL, PASSWORD)

        cached = await session_cache.get(SessionStore.cache_key(EMAIL, PASSWORD))
        assert cached["session_token"] == "tok-1"
        assert cached["email"] == EMAIL
        assert PASSWORD not in cached.values()
        assert "password" not in cached

    async def test_cache_hit_skips_login(
        self,
        store: SessionStore,
        login_factory,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 3600)
        )
        await store.get_session(EMAIL, PASSWORD)

        session = await store.get_session(EMAIL, PASSWORD)

        assert mock_upstream.login.await_count == 1
        assert session.session_token == "tok-1"
        assert session.password == PASSWORD

    async def test_ttl_not_positive_is_not_cached(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        login_factory,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        # Expires inside the safety margin
        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 200)
        )

        session = await store.get_session(EMAIL, PASSWORD)

        assert session.session_token == "tok-1"
        key = SessionStore.cache_key(EMAIL, PASSWORD)
        assert await session_cache.get(key) is MISSING

    async def test_expired_cache_entry_is_deleted(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        key = SessionStore.cache_key(EMAIL, PASSWORD)
        await session_cache.set(
            key,
            {
                "session_token": "stale",
                "email": EMAIL,
                "expires_at": int((clock() - 10) * 1000),
            },
            ttl=600,
        )

        session = await store.get_session(EMAIL, PASSWORD)

        assert session.session_token == "tok-1"
        mock_upstream.login.assert_awaited_once()

    async def test_entry_inside_safety_margin_is_not_served(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        key = SessionStore.cache_key(EMAIL, PASSWORD)
        await session_cache.set(
            key,
            {
                "session_token": "stale",
                "email": EMAIL,
                "expires_at": int((clock() + 120) * 1000),
            },
            ttl=43_200,
        )

        session = await store.get_session(EMAIL, PASSWORD)

        assert session.session_token == "tok-1"
        mock_upstream.login.assert_awaited_once()

    async def test_corrupt_cache_entry_is_a_miss(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        mock_upstream: AsyncMock,
    ) -> None:
        key = SessionStore.cache_key(EMAIL, PASSWORD)
        await session_cache.set(key, {"garbage": True}, ttl=600)

        await store.get_session(EMAIL, PASSWORD)

        mock_upstream.login.assert_awaited_once()

    async def test_without_cache(self, mock_upstream: AsyncMock, clock) -> None:
        store = SessionStore(mock_upstream, None, clock=clock)

        await store.get_session(EMAIL, PASSWORD)
        await store.get_session(EMAIL, PASSWORD)

        assert mock_upstream.login.await_count == 2
        assert store.stats()["cache_enabled"] is False


class TestHousekeeping:
    async def test_clear_cache(
        self,
        store: SessionStore,
        session_cache: TieredCache,
        login_factory,
        mock_upstream: AsyncMock,
        clock,
    ) -> None:
        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 3600)
        )
        await store.get_session(EMAIL, PASSWORD)

        await store.clear_cache(EMAIL, PASSWORD)

        key = SessionStore.cache_key(EMAIL, PASSWORD)
        assert await session_cache.get(key) is MISSING

    async def test_clear_all_drops_pending(self, store: SessionStore) -> None:
        store.clear_all()
        assert store.stats()["pending_initializations"] == 0


class TestSharedRemoteTier:
    """Two processes whose session caches share one remote store."""

    async def test_promoted_session_expires_with_its_token(
        self, mock_upstream: AsyncMock, login_factory, clock
    ) -> None:
        remote = MemoryAdapter(timer=clock)
        cache_a = TieredCache(MemoryAdapter(timer=clock), remote, name="a")
        cache_b = TieredCache(
            MemoryAdapter(ttl_seconds=43_200, timer=clock), remote, name="b"
        )
        store_a = SessionStore(mock_upstream, cache_a, clock=clock)
        store_b = SessionStore(mock_upstream, cache_b, clock=clock)

        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 900)
        )
        await store_a.get_session(EMAIL, PASSWORD)
        await cache_a.drain()

        # Remote hit in process B, copied into its local tier
        await store_b.get_session(EMAIL, PASSWORD)
        await cache_b.drain()
        assert mock_upstream.login.await_count == 1

        clock.advance(700)
        mock_upstream.login.return_value = login_factory(
            "tok-2", expires_at_unix=int(clock() + 3600)
        )

        sessions = await asyncio.gather(
            *(store_b.get_session(EMAIL, PASSWORD) for _ in range(3))
        )
        for session in sessions:
            await session.get_video_details("101")

        assert mock_upstream.login.await_count == 2
        assert {s.session_token for s in sessions} == {"tok-2"}

    async def test_promotion_bounded_by_token_lifetime(
        self, mock_upstream: AsyncMock, login_factory, clock
    ) -> None:
        remote = MemoryAdapter(timer=clock)
        local = MemoryAdapter(ttl_seconds=43_200, timer=clock)
        writer_cache = TieredCache(MemoryAdapter(timer=clock), remote)
        writer = SessionStore(mock_upstream, writer_cache, clock=clock)
        reader_cache = TieredCache(local, remote)
        reader = SessionStore(mock_upstream, reader_cache, clock=clock)

        mock_upstream.login.return_value = login_factory(
            expires_at_unix=int(clock() + 900)
        )
        await writer.get_session(EMAIL, PASSWORD)
        await writer_cache.drain()
        await reader.get_session(EMAIL, PASSWORD)
        await reader_cache.drain()

        key = SessionStore.cache_key(EMAIL, PASSWORD)
        clock.advance(599)
        assert await local.exists(key) is True
        clock.advance(2)
        assert await local.exists(key) is False
