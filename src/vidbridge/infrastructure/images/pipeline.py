"""Image proxy pipeline: cache, then dedup ledger, then queue or direct fetch."""

from __future__ import annotations

from typing import Any

import structlog

from vidbridge.domain.entities.images import ImagePayload
from vidbridge.domain.exceptions import InvalidInputError
from vidbridge.domain.ports.upstream import ImageFetcherPort
from vidbridge.infrastructure.cache.wrappers import CacheFacade
from vidbridge.infrastructure.common.single_flight import SingleFlight
from vidbridge.infrastructure.images.queue import ImageQueue

log = structlog.get_logger(__name__)


class ImageProxyPipeline:
    """Serves image bytes for ``(resource_key, url)``.

    1. Image cache hit returns immediately.
    2. Concurrent requests for the same URL share one in-flight fetch
       (the ledger entry is registered before the fetch is awaited and
       dropped when it settles).
    3. With a queue the fetch waits its turn; without one it runs directly.

    Each URL has at most one ledger entry, so a queued item can never race
    another fetch of the same URL; the queue worker only re-checks the cache.
    """

    def __init__(
        self,
        fetcher: ImageFetcherPort,
        cache: CacheFacade,
        *,
        queue: ImageQueue | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._queue = queue
        self._inflight: SingleFlight[ImagePayload] = SingleFlight("image_fetch")

    async def fetch(self, resource_key: str, url: str) -> ImagePayload:
        if not resource_key or not url:
            raise InvalidInputError("resource_key and url are required")
        return await self._cache.wrap(
            resource_key, lambda: self._deduplicated(resource_key, url)
        )

    async def _deduplicated(self, resource_key: str, url: str) -> ImagePayload:
        if url in self._inflight:
            log.debug("image_fetch_joined", key=resource_key, url=url)
        return await self._inflight.run(url, lambda: self._load(resource_key, url))

    async def _load(self, resource_key: str, url: str) -> ImagePayload:
        if self._queue is not None:
            return await self._queue.submit(resource_key, url)
        return await self._fetcher.fetch(url)

    async def aclose(self) -> None:
        if self._queue is not None:
            await self._queue.aclose()
        await self._inflight.cancel_all()

    def stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "queue_enabled": self._queue is not None,
            "in_flight": len(self._inflight),
        }
        if self._queue is not None:
            stats["queue"] = self._queue.stats()
        fetcher_stats = getattr(self._fetcher, "stats", None)
        if callable(fetcher_stats):
            stats["fetcher"] = fetcher_stats()
        return stats
