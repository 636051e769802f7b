"""Sequential image fetch queue with a fixed pause between items."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from vidbridge.domain.entities.images import ImagePayload
from vidbridge.domain.ports.cache import MISSING
from vidbridge.domain.ports.upstream import ImageFetcherPort

log = structlog.get_logger(__name__)

PeekFn = Callable[[str], Awaitable[Any]]


@dataclass
class _QueueItem:
    key: str
    url: str
    future: asyncio.Future[ImagePayload]


class ImageQueue:
    """Single worker draining fetch requests one at a time.

    Before fetching an item the worker looks at the image cache again
    (*peek*), since the image may have been stored while the item waited.
    After every item except the last, including failed ones, the worker
    sleeps *delay_seconds* so the CDN sees spaced-out requests.

    The worker task is started on demand and exits when the queue is empty.
    """

    def __init__(
        self,
        fetcher: ImageFetcherPort,
        *,
        delay_seconds: float = 0.1,
        peek: PeekFn | None = None,
    ) -> None:
        self._fetcher = fetcher
        self.delay = delay_seconds
        self._peek = peek
        self._items: deque[_QueueItem] = deque()
        self._worker: asyncio.Task[None] | None = None

    @property
    def is_processing(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def __len__(self) -> int:
        return len(self._items)

    async def submit(self, key: str, url: str) -> ImagePayload:
        future: asyncio.Future[ImagePayload] = (
            asyncio.get_running_loop().create_future()
        )
        self._items.append(_QueueItem(key=key, url=url, future=future))
        log.debug("image_queued", key=key, queue_size=len(self._items))

        if not self.is_processing:
            self._worker = asyncio.create_task(self._drain())
        return await future

    async def _drain(self) -> None:
        log.debug("image_queue_started", queue_size=len(self._items))
        while self._items:
            item = self._items.popleft()
            if item.future.done():
                continue

            if self._peek is not None:
                cached = await self._peek(item.key)
                if cached is not MISSING:
                    log.debug("image_cached_while_queued", key=item.key)
                    item.future.set_result(cached)
                    continue

            try:
                result = await self._fetcher.fetch(item.url)
            except asyncio.CancelledError:
                item.future.cancel()
                raise
            except Exception as e:
                if not item.future.done():
                    item.future.set_exception(e)
            else:
                if not item.future.done():
                    item.future.set_result(result)

            if self._items:
                await asyncio.sleep(self.delay)
        log.debug("image_queue_idle")

    async def aclose(self) -> None:
        """Stop the worker and cancel everything still waiting."""
        while self._items:
            self._items.popleft().future.cancel()
        if self._worker is not None:
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None

    def stats(self) -> dict[str, Any]:
        return {
            "queue_size": len(self._items),
            "is_processing": self.is_processing,
            "delay_ms": round(self.delay * 1000),
        }
