"""Cache infrastructure - stores, tiered cache and per-category facades."""

from .cache_factory import (
    CacheBackend,
    create_image_cache,
    create_main_cache,
    create_remote_store,
    create_session_cache,
)
from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import MemoryAdapter
from .redis_adapter import RedisAdapter
from .tiered import TieredCache
from .wrappers import CacheFacade, CacheWrappers, build_cache_wrappers

__all__ = [
    "CacheBackend",
    "CacheFacade",
    "CacheWrappers",
    "DiskcacheAdapter",
    "MemoryAdapter",
    "RedisAdapter",
    "TieredCache",
    "build_cache_wrappers",
    "create_image_cache",
    "create_main_cache",
    "create_remote_store",
    "create_session_cache",
]
