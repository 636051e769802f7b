"""Cache factory - builds stores and tiered caches from config."""

from __future__ import annotations

from typing import Literal

import structlog

from vidbridge.domain.ports.cache import CachePort
from vidbridge.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from vidbridge.infrastructure.cache.memory_adapter import MemoryAdapter
from vidbridge.infrastructure.cache.redis_adapter import RedisAdapter, _redact
from vidbridge.infrastructure.cache.tiered import TieredCache
from vidbridge.infrastructure.config.schema import CacheConfig

log = structlog.get_logger(__name__)

CacheBackend = Literal["none", "diskcache", "redis"]


def create_remote_store(
    backend: CacheBackend = "none",
    *,
    directory: str = "./.cache/vidbridge",
    redis_url: str | None = None,
    ttl_seconds: float = 3600,
    max_concurrent: int = 50,
) -> CachePort | None:
    """Factory function: create the remote tier for the configured backend.

    Args:
        backend: "none", "diskcache" (SQLite) or "redis".
        directory: Diskcache path.
        redis_url: Redis connection string (required for "redis").
        ttl_seconds: Default TTL for the store.
        max_concurrent: Semaphore limit (diskcache is capped at 10).

    Returns:
        A ``CachePort`` implementation, or ``None`` for "none".

    Raises:
        ValueError: If ``backend`` is unknown or redis has no URL.
    """
    if backend == "none":
        return None
    if backend == "diskcache":
        limit = min(max_concurrent, 10)
        log.info(
            "cache_factory_create",
            backend=backend,
            directory=directory,
            ttl=ttl_seconds,
            max_concurrent=limit,
        )
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=limit,
        )
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis backend requires a redis_url")
        log.info(
            "cache_factory_create",
            backend=backend,
            url=_redact(redis_url),
            ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )
        return RedisAdapter(
            url=redis_url,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'none', 'diskcache' or 'redis'."
    )


def create_main_cache(
    config: CacheConfig,
    remote: CachePort | None = None,
) -> TieredCache | None:
    """Catalog/meta/stream cache: local TLRU plus the shared remote tier.

    Returns ``None`` when caching is disabled.
    """
    if not config.enabled:
        log.info("cache_disabled")
        return None

    local = MemoryAdapter(
        max_size=config.max_size,
        ttl_seconds=config.meta_ttl_seconds,
    )
    return TieredCache(local, remote, name="main")


def create_image_cache(config: CacheConfig) -> TieredCache | None:
    """Image bytes are short-lived and large: local tier only."""
    if not config.enabled:
        return None
    local = MemoryAdapter(
        max_size=config.max_size,
        ttl_seconds=config.image_ttl_seconds,
    )
    return TieredCache(local, None, name="images")


def create_session_cache(
    config: CacheConfig,
    remote: CachePort | None = None,
) -> TieredCache | None:
    """User-session cache: own local tier, shares the remote tier."""
    if not config.enabled:
        return None
    local = MemoryAdapter(
        max_size=config.max_size,
        ttl_seconds=config.session_ttl_seconds,
    )
    return TieredCache(local, remote, name="sessions")
