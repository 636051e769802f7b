"""Redis adapter - remote cache tier via redis.asyncio."""

from __future__ import annotations

import asyncio
import math
import pickle
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from vidbridge.domain.exceptions import CacheStoreError
from vidbridge.domain.ports.cache import MISSING

log = structlog.get_logger(__name__)


def _redact(url: str) -> str:
    """Hide credentials in a connection URL (``redis://***@host``)."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


class RedisAdapter:
    """Async Redis store with a semaphore bounding parallel commands.

    - Serialization via pickle (binary-safe, same as DiskcacheAdapter).
    - Backend errors are raised as ``CacheStoreError``; the tiered cache
      decides how to absorb them.
    - The client is created lazily on first use, so a Redis outage at
      startup does not prevent the process from serving.

    Args:
        url: Redis URL (e.g. ``redis://localhost:6379/0``).
        ttl_seconds: Default TTL.
        max_concurrent: Max parallel Redis ops.
    """

    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: float = 3600,
        max_concurrent: int = 50,
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

        log.info(
            "redis_adapter_init",
            url=_redact(url),
            default_ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )

    # --- Context Manager ---
    async def __aenter__(self) -> RedisAdapter:
        """Create the client and PING it; a failed PING is logged, not raised."""
        client = self._ensure_client()
        try:
            await client.ping()
            log.info("redis_connected", url=_redact(self.url))
        except RedisError as e:
            log.warning(
                "redis_connection_failed",
                url=_redact(self.url),
                error=str(e),
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the Redis connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    def _ensure_client(self) -> Redis:
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=False)
        return self._client

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any:
        """GET with pickle deserialization."""
        client = self._ensure_client()
        async with self._semaphore:
            try:
                raw = await client.get(key)
            except RedisError as e:
                raise CacheStoreError(f"redis get failed: {e}") from e
        if raw is None:
            return MISSING
        try:
            return pickle.loads(raw)
        except (pickle.PickleError, EOFError, AttributeError, ImportError) as e:
            raise CacheStoreError(f"redis payload for {key!r} unreadable: {e}") from e

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        """SET with pickle serialization + TTL (rounded up to whole seconds)."""
        expire = ttl if ttl is not None else self.default_ttl
        try:
            packed = pickle.dumps(value)
        except (pickle.PickleError, TypeError, AttributeError) as e:
            raise CacheStoreError(f"value for {key!r} not serializable: {e}") from e

        client = self._ensure_client()
        async with self._semaphore:
            try:
                await client.setex(key, max(1, math.ceil(expire)), packed)
            except RedisError as e:
                raise CacheStoreError(f"redis set failed: {e}") from e
        log.debug("redis_set", key=key, ttl=expire, size_bytes=len(packed))

    async def delete(self, key: str) -> bool:
        client = self._ensure_client()
        async with self._semaphore:
            try:
                deleted = await client.delete(key)
            except RedisError as e:
                raise CacheStoreError(f"redis delete failed: {e}") from e
        return deleted > 0

    async def exists(self, key: str) -> bool:
        client = self._ensure_client()
        async with self._semaphore:
            try:
                return await client.exists(key) > 0
            except RedisError as e:
                raise CacheStoreError(f"redis exists failed: {e}") from e

    async def clear(self) -> None:
        """FLUSHDB (delete ALL keys in current DB)."""
        client = self._ensure_client()
        async with self._semaphore:
            try:
                await client.flushdb()
            except RedisError as e:
                raise CacheStoreError(f"redis flush failed: {e}") from e
        log.warning("redis_flushed")
