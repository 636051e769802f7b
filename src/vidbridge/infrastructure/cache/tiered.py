"""Two-level cache: synchronous local tier + optional write-back remote tier."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from vidbridge.domain.entities.lookup import is_cacheable
from vidbridge.domain.ports.cache import MISSING, CachePort

log = structlog.get_logger(__name__)

# Fixed seconds, or a function of the value returning seconds (None = local
# default, <= 0 = do not promote)
PromoteTtl = float | Callable[[Any], float | None] | None


class TieredCache:
    """Read-through cache over ``[local, remote?]`` stores.

    **Read:** local first; on a local miss the remote tier is asked and a
    remote hit is copied back into local in the background.

    **Write:** values failing ``is_cacheable`` are skipped. Otherwise the
    local write is awaited and the remote write runs in the background.

    Store errors never reach the caller: a failed read is a miss, a failed
    write is a no-op. With the remote tier down the cache keeps working
    local-only.

    Args:
        local: In-process store, always present.
        remote: Optional shared store (Redis, diskcache).
        name: Label used in log events.
    """

    def __init__(
        self,
        local: CachePort,
        remote: CachePort | None = None,
        *,
        name: str = "main",
    ) -> None:
        self.local = local
        self.remote = remote
        self.name = name
        self._background: set[asyncio.Task[None]] = set()

    @property
    def stores(self) -> list[CachePort]:
        return [self.local] if self.remote is None else [self.local, self.remote]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str, *, promote_ttl: PromoteTtl = None) -> Any:
        """Return the cached value, or ``MISSING``.

        *promote_ttl* is the TTL used when a remote hit is copied into the
        local tier (the local default applies when omitted). A callable is
        given the value; a result <= 0 skips the promotion.
        """
        value = await self._safe_get(self.local, key)
        if value is not MISSING:
            log.debug("cache_hit", cache=self.name, key=key, tier="local")
            return value

        if self.remote is None:
            return MISSING

        value = await self._safe_get(self.remote, key)
        if value is MISSING:
            return MISSING

        log.debug("cache_hit", cache=self.name, key=key, tier="remote")
        self._spawn(self._promote(key, value, promote_ttl))
        return value

    async def set(self, key: str, value: Any, ttl: float | None) -> None:
        """Store *value* under *key* for *ttl* seconds."""
        if not is_cacheable(value):
            log.debug("cache_skip_uncacheable", cache=self.name, key=key)
            return

        try:
            await self.local.set(key, value, ttl=ttl)
        except Exception as e:
            log.warning(
                "cache_set_failed",
                cache=self.name,
                key=key,
                store=self.local.name,
                error=str(e),
            )

        if self.remote is not None:
            self._spawn(self._remote_set(key, value, ttl))

    async def delete(self, key: str) -> None:
        """Remove *key* from every tier (errors logged, never raised)."""
        for store in self.stores:
            try:
                await store.delete(key)
            except Exception as e:
                log.warning(
                    "cache_delete_failed",
                    cache=self.name,
                    key=key,
                    store=store.name,
                    error=str(e),
                )

    async def drain(self) -> None:
        """Wait for all pending background writes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Drain pending writes, then close every store."""
        await self.drain()
        for store in self.stores:
            try:
                await store.aclose()
            except Exception as e:
                log.warning("cache_close_failed", store=store.name, error=str(e))

    @property
    def pending_writes(self) -> int:
        return len(self._background)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _safe_get(self, store: CachePort, key: str) -> Any:
        try:
            return await store.get(key)
        except Exception as e:
            log.warning(
                "cache_get_failed",
                cache=self.name,
                key=key,
                store=store.name,
                error=str(e),
            )
            return MISSING

    async def _promote(self, key: str, value: Any, promote_ttl: PromoteTtl) -> None:
        try:
            ttl = promote_ttl(value) if callable(promote_ttl) else promote_ttl
            if ttl is not None and ttl <= 0:
                log.debug("cache_promote_skipped", cache=self.name, key=key)
                return
            await self.local.set(key, value, ttl=ttl)
        except Exception as e:
            log.warning("cache_promote_failed", cache=self.name, key=key, error=str(e))

    async def _remote_set(self, key: str, value: Any, ttl: float | None) -> None:
        assert self.remote is not None
        try:
            await self.remote.set(key, value, ttl=ttl)
        except Exception as e:
            log.warning(
                "cache_remote_set_failed",
                cache=self.name,
                key=key,
                store=self.remote.name,
                error=str(e),
            )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
