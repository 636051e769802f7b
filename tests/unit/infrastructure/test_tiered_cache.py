"""Tests for TieredCache read-through, write-back and promotion."""

from __future__ import annotations

from unittest.mock import AsyncMock

from vidbridge.domain.exceptions import CacheStoreError
from vidbridge.domain.ports.cache import MISSING
from vidbridge.infrastructure.cache.memory_adapter import MemoryAdapter
from vidbridge.infrastructure.cache.tiered import TieredCache


def _failing_store() -> AsyncMock:
    store = AsyncMock()
    store.name = "broken"
    store.get = AsyncMock(side_effect=CacheStoreError("down"))
    store.set = AsyncMock(side_effect=CacheStoreError("down"))
    store.delete = AsyncMock(side_effect=CacheStoreError("down"))
    store.aclose = AsyncMock()
    return store


class TestRead:
    async def test_local_hit_skips_remote(self) -> None:
        local = MemoryAdapter()
        remote = AsyncMock()
        cache = TieredCache(local, remote)
        await local.set("k", "v")

        assert await cache.get("k") == "v"
        remote.get.assert_not_awaited()

    async def test_remote_hit_is_promoted_to_local(self) -> None:
        local = MemoryAdapter()
        backing = MemoryAdapter()
        await backing.set("k", {"x": 1})
        remote = AsyncMock(wraps=backing)
        remote.name = "remote"
        cache = TieredCache(local, remote)

        assert await cache.get("k", promote_ttl=60) == {"x": 1}
        await cache.drain()
        assert await cache.get("k") == {"x": 1}

        assert remote.get.await_count == 1
        assert await local.get("k") == {"x": 1}

    async def test_promote_ttl_derived_from_value(self, clock) -> None:
        local = MemoryAdapter(ttl_seconds=3600, timer=clock)
        remote = MemoryAdapter()
        await remote.set("k", {"left": 30})
        cache = TieredCache(local, remote)

        await cache.get("k", promote_ttl=lambda value: value["left"])
        await cache.drain()

        clock.advance(29)
        assert await local.exists("k") is True
        clock.advance(2)
        assert await local.exists("k") is False

    async def test_non_positive_promote_ttl_skips_promotion(self) -> None:
        local = MemoryAdapter()
        remote = MemoryAdapter()
        await remote.set("k", "v")
        cache = TieredCache(local, remote)

        assert await cache.get("k", promote_ttl=lambda _: 0) == "v"
        await cache.drain()

        assert await local.exists("k") is False

    async def test_miss_everywhere(self) -> None:
        cache = TieredCache(MemoryAdapter(), MemoryAdapter())
        assert await cache.get("k") is MISSING

    async def test_failed_local_read_is_a_miss(self) -> None:
        cache = TieredCache(_failing_store())
        assert await cache.get("k") is MISSING

    async def test_failed_remote_read_is_a_miss(self) -> None:
        cache = TieredCache(MemoryAdapter(), _failing_store())
        assert await cache.get("k") is MISSING


class TestWrite:
    async def test_writes_both_tiers(self) -> None:
        local, remote = MemoryAdapter(), MemoryAdapter()
        cache = TieredCache(local, remote)

        await cache.set("k", [1], ttl=60)
        assert await local.get("k") == [1]

        await cache.drain()
        assert await remote.get("k") == [1]

    async def test_skips_uncacheable_values(self) -> None:
        local = MemoryAdapter()
        remote = AsyncMock()
        cache = TieredCache(local, remote)

        for value in (None, [], {}):
            await cache.set("k", value, ttl=60)

        assert await local.exists("k") is False
        remote.set.assert_not_awaited()
        assert cache.pending_writes == 0

    async def test_remote_failure_keeps_local_value(self) -> None:
        local = MemoryAdapter()
        cache = TieredCache(local, _failing_store())

        await cache.set("k", "v", ttl=60)
        await cache.drain()

        assert await cache.get("k") == "v"

    async def test_local_failure_does_not_raise(self) -> None:
        remote = MemoryAdapter()
        cache = TieredCache(_failing_store(), remote)

        await cache.set("k", "v", ttl=60)
        await cache.drain()
        assert await remote.get("k") == "v"


class TestLifecycle:
    async def test_delete_removes_from_all_tiers(self) -> None:
        local, remote = MemoryAdapter(), MemoryAdapter()
        cache = TieredCache(local, remote)
        await cache.set("k", "v", ttl=60)
        await cache.drain()

        await cache.delete("k")
        assert await local.get("k") is MISSING
        assert await remote.get("k") is MISSING

    async def test_delete_errors_are_absorbed(self) -> None:
        cache = TieredCache(MemoryAdapter(), _failing_store())
        await cache.delete("k")

    async def test_aclose_drains_then_closes(self) -> None:
        remote = AsyncMock()
        remote.name = "remote"
        cache = TieredCache(MemoryAdapter(), remote)
        await cache.set("k", "v", ttl=60)

        await cache.aclose()

        remote.set.assert_awaited_once_with("k", "v", ttl=60)
        remote.aclose.assert_awaited_once()
        assert cache.pending_writes == 0
