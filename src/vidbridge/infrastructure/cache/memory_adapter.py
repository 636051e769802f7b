"""In-process cache store - bounded TLRU with per-entry TTL."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, NamedTuple

import structlog
from cachetools import TLRUCache

from vidbridge.domain.ports.cache import MISSING

log = structlog.get_logger(__name__)


class _Entry(NamedTuple):
    value: Any
    ttl: float


class MemoryAdapter:
    """Async facade over ``cachetools.TLRUCache``.

    - Least-recently-used eviction once ``max_size`` entries are held.
    - Each entry expires after its own TTL (``set(..., ttl=...)``).
    - Pure in-memory, no I/O, so every operation completes without
      yielding to the event loop.

    Args:
        max_size: Maximum number of entries.
        ttl_seconds: Default TTL for ``set()`` without explicit value.
        timer: Monotonic clock (injectable for tests).
    """

    name = "memory"

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 3600,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_size = max_size
        self.default_ttl = ttl_seconds
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size,
            ttu=self._time_to_use,
            timer=timer,
        )

    @staticmethod
    def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
        return now + entry.ttl

    # --- Context Manager ---
    async def __aenter__(self) -> MemoryAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._cache.clear()

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any:
        entry = self._cache.get(key)
        if entry is None:
            return MISSING
        return entry.value

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        expire = ttl if ttl is not None else self.default_ttl
        if expire <= 0:
            return
        self._cache[key] = _Entry(value, expire)

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        self._cache.clear()
        log.info("memory_cache_cleared")

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)
