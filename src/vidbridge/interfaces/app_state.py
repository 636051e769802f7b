"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from vidbridge.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from vidbridge.application.use_cases import (
        CatalogUseCase,
        MetaUseCase,
        StreamUseCase,
    )
    from vidbridge.domain.ports import CachePort, UpstreamClientPort
    from vidbridge.infrastructure.cache import CacheWrappers, TieredCache
    from vidbridge.infrastructure.images import CdnUrlResolver, ImageProxyPipeline
    from vidbridge.infrastructure.sessions import SessionStore


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Cache tiers (None = caching disabled)
    remote_store: CachePort | None
    main_cache: TieredCache | None
    image_cache: TieredCache | None
    session_cache: TieredCache | None
    caches: CacheWrappers

    # Upstream
    http_client: httpx.AsyncClient
    image_http_client: httpx.AsyncClient
    upstream: UpstreamClientPort
    sessions: SessionStore

    # Application Services
    catalog_uc: CatalogUseCase
    meta_uc: MetaUseCase
    stream_uc: StreamUseCase

    # Image proxy
    image_pipeline: ImageProxyPipeline
    cdn_resolver: CdnUrlResolver
