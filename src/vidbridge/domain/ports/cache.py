"""Cache Port - Interface for backend-agnostic cache stores."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Final, Protocol


class _Missing:
    """Sentinel type for "key absent" (distinct from any stored value)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


class CachePort(Protocol):
    """Port for an async key-value store with per-entry TTL.

    Implementations:
      - MemoryAdapter (in-process TLRU, local tier)
      - RedisAdapter (redis.asyncio, remote tier)
      - DiskcacheAdapter (SQLite, persistent tier)

    ``get`` returns ``MISSING`` for absent/expired keys. Backend failures
    raise ``CacheStoreError``.
    """

    name: str

    async def get(self, key: str) -> Any:
        """Retrieve value. ``MISSING`` = not found / expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        """Set value with optional TTL (seconds)."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if key exists (not expired)."""
        ...

    async def clear(self) -> None:
        """Delete ALL keys."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook (e.g. close Redis connection)."""
        ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...


class CacheWrapperPort(Protocol):
    """A cache facade with a fixed key prefix and TTL."""

    async def wrap(
        self, identifier: str, compute: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Cached value, or the unwrapped result of ``compute()`` on a miss."""
        ...

    async def peek(self, identifier: str) -> Any:
        """Cached value or ``MISSING``; never computes."""
        ...
