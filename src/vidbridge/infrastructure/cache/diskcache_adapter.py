"""Diskcache adapter - SQLite-backed persistent cache tier."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

import structlog
from diskcache import Cache as DiskCache

from vidbridge.domain.exceptions import CacheStoreError
from vidbridge.domain.ports.cache import MISSING

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async wrapper for diskcache.Cache (sync-only library).

    Useful as the second tier for single-host deployments that want the
    cache to survive restarts without running Redis.

    - Uses ``asyncio.to_thread`` for I/O (no blocking of the event loop).
    - Semaphore prevents too many parallel disk writes (SQLite lock contention).

    Args:
        directory: SQLite DB path.
        ttl_seconds: Default TTL for ``set()`` without explicit value.
        max_concurrent: Max parallel disk ops.
    """

    name = "diskcache"

    def __init__(
        self,
        directory: str | Path = "./.cache/vidbridge",
        ttl_seconds: float = 3600,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

        log.info(
            "diskcache_adapter_init",
            directory=str(self.directory),
            default_ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )

    # --- Context Manager ---
    async def __aenter__(self) -> DiskcacheAdapter:
        """Open SQLite cache."""
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise CacheStoreError(
                "Cache not initialized. Use 'async with cache:' first."
            )
        return self._cache

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any:
        cache = self._require()
        async with self._semaphore:
            try:
                return await asyncio.to_thread(cache.get, key, default=MISSING)
            except (sqlite3.Error, OSError) as e:
                raise CacheStoreError(f"diskcache get failed: {e}") from e

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        cache = self._require()
        expire = ttl if ttl is not None else self.default_ttl
        async with self._semaphore:
            try:
                await asyncio.to_thread(cache.set, key, value, expire=expire)
            except (sqlite3.Error, OSError) as e:
                raise CacheStoreError(f"diskcache set failed: {e}") from e

    async def delete(self, key: str) -> bool:
        cache = self._require()
        async with self._semaphore:
            try:
                return await asyncio.to_thread(cache.delete, key)
            except (sqlite3.Error, OSError) as e:
                raise CacheStoreError(f"diskcache delete failed: {e}") from e

    async def exists(self, key: str) -> bool:
        cache = self._require()
        async with self._semaphore:
            # diskcache.Cache.__contains__ checks existence + expiry
            return await asyncio.to_thread(cache.__contains__, key)

    async def clear(self) -> None:
        cache = self._require()
        async with self._semaphore:
            await asyncio.to_thread(cache.clear)
        log.warning("cache_cleared", directory=str(self.directory))
