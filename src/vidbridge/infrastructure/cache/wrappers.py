"""Per-category cache facades (catalog, meta, stream, image)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from vidbridge.domain.entities.lookup import TransientError, unwrap
from vidbridge.domain.ports.cache import MISSING
from vidbridge.infrastructure.cache.tiered import TieredCache

log = structlog.get_logger(__name__)

GLOBAL_KEY_PREFIX = "vidbridge"

ComputeFn = Callable[[], Awaitable[Any]]


class CacheFacade:
    """Fixed key prefix + TTL over a ``TieredCache``.

    ``wrap()`` returns the cached value on a hit; on a miss it awaits
    *compute*, unwraps tagged results and writes the value back. Uncacheable
    results (``None``, empty, ``NotFound``, ``TransientError``) are returned
    but never stored. Exceptions from *compute* propagate untouched.

    With ``cache`` set to ``None`` caching is disabled and every call
    computes.
    """

    def __init__(
        self,
        cache: TieredCache | None,
        *,
        prefix: str,
        ttl_seconds: float,
    ) -> None:
        self._cache = cache
        self.prefix = prefix
        self.ttl = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    def key_for(self, identifier: str) -> str:
        return f"{GLOBAL_KEY_PREFIX}|{self.prefix}:{identifier}"

    async def wrap(self, identifier: str, compute: ComputeFn) -> Any:
        if self._cache is None:
            return unwrap(await compute())

        key = self.key_for(identifier)
        cached = await self._cache.get(key, promote_ttl=self.ttl)
        if cached is not MISSING:
            return cached

        result = await compute()
        if isinstance(result, TransientError):
            log.warning(
                "cache_compute_transient_error",
                key=key,
                error=result.message,
            )

        value = unwrap(result)
        await self._cache.set(key, value, self.ttl)
        return value

    async def peek(self, identifier: str) -> Any:
        """Cached value or ``MISSING``; never computes."""
        if self._cache is None:
            return MISSING
        return await self._cache.get(self.key_for(identifier), promote_ttl=self.ttl)


@dataclass(frozen=True)
class CacheWrappers:
    """The four facades, built once by the composition root."""

    catalog: CacheFacade
    meta: CacheFacade
    stream: CacheFacade
    image: CacheFacade


def build_cache_wrappers(
    *,
    main: TieredCache | None,
    images: TieredCache | None,
    catalog_ttl: float,
    meta_ttl: float,
    stream_ttl: float,
    image_ttl: float,
) -> CacheWrappers:
    """Create the facades. ``None`` caches disable caching for that group."""
    return CacheWrappers(
        catalog=CacheFacade(main, prefix="catalog", ttl_seconds=catalog_ttl),
        meta=CacheFacade(main, prefix="meta", ttl_seconds=meta_ttl),
        stream=CacheFacade(main, prefix="stream", ttl_seconds=stream_ttl),
        image=CacheFacade(images, prefix="binary-images", ttl_seconds=image_ttl),
    )
