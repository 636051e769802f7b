"""In-flight request ledger: one running task per key, shared by all callers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Collapse concurrent calls for the same key into one execution.

    The first caller for a key starts ``factory()`` as a task and registers
    it; later callers await the same task. The entry is removed once the
    task settles (success, failure or cancellation), so the next call after
    that starts a fresh execution.

    Waiters are shielded: a caller that gets cancelled does not cancel the
    shared task for everyone else.
    """

    def __init__(self, name: str = "single_flight") -> None:
        self.name = name
        self._inflight: dict[str, asyncio.Task[T]] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._execute(key, factory))
            self._inflight[key] = task
        else:
            log.debug("single_flight_joined", ledger=self.name, key=key)
        return await asyncio.shield(task)

    async def _execute(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            self._inflight.pop(key, None)

    def get(self, key: str) -> asyncio.Task[T] | None:
        return self._inflight.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)

    def keys(self) -> list[str]:
        return list(self._inflight)

    async def cancel_all(self) -> None:
        """Cancel every running task and wait for them to settle."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
