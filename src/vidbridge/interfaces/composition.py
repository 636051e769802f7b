"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from vidbridge.application.use_cases import (
    CatalogUseCase,
    MetaUseCase,
    StreamUseCase,
)
from vidbridge.domain.ports import CachePort
from vidbridge.infrastructure.cache import (
    TieredCache,
    build_cache_wrappers,
    create_image_cache,
    create_main_cache,
    create_remote_store,
    create_session_cache,
)
from vidbridge.infrastructure.config.schema import AppConfig
from vidbridge.infrastructure.images import (
    CdnUrlResolver,
    HttpxImageFetcher,
    ImageProxyPipeline,
    ImageQueue,
)
from vidbridge.infrastructure.sessions import SessionStore
from vidbridge.infrastructure.stremio.manifest import CATALOG_ORDERING, CATALOG_SERIES
from vidbridge.infrastructure.stremio.transform import StremioTransformer
from vidbridge.infrastructure.upstream import HttpxUpstreamClient, build_http_client
from vidbridge.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


async def _open_remote_store(config: AppConfig) -> CachePort | None:
    """Create and open the remote tier; on failure run local-only."""
    if not config.cache.enabled:
        return None

    remote = create_remote_store(
        config.cache.remote_backend or "none",
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.cache.meta_ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    if remote is None:
        return None

    try:
        await remote.__aenter__()
    except Exception as e:
        log.warning(
            "remote_cache_unavailable",
            backend=config.cache.remote_backend,
            error=str(e),
        )
        return None
    return remote


def _build_image_pipeline(
    state: AppState, config: AppConfig
) -> tuple[ImageProxyPipeline, httpx.AsyncClient]:
    image_http = httpx.AsyncClient(follow_redirects=True)
    fetcher = HttpxImageFetcher(
        image_http,
        origin=config.upstream.origin,
        user_agent=config.upstream.user_agent,
        timeout_seconds=config.images.fetch_timeout_seconds,
        max_retries=config.images.max_retries,
        schedule=config.images.backoff_schedule_seconds,
        jitter=config.images.backoff_jitter_seconds,
        cooldown_seconds=config.images.block_cooldown_seconds,
    )
    queue = None
    if config.images.queue_enabled:
        queue = ImageQueue(
            fetcher,
            delay_seconds=config.images.queue_delay_ms / 1000,
            peek=state.caches.image.peek,
        )
    return ImageProxyPipeline(fetcher, state.caches.image, queue=queue), image_http


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache tiers (remote store shared by main + session caches)
        2. Upstream HTTP client
        3. Session store
        4. Use cases
        5. Image proxy pipeline (needs meta use case for CDN URLs)
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Caches
    state.remote_store = await _open_remote_store(config)
    state.main_cache = create_main_cache(config.cache, state.remote_store)
    state.image_cache = create_image_cache(config.cache)
    state.session_cache = create_session_cache(config.cache, state.remote_store)
    state.caches = build_cache_wrappers(
        main=state.main_cache,
        images=state.image_cache,
        catalog_ttl=config.cache.catalog_ttl_seconds,
        meta_ttl=config.cache.meta_ttl_seconds,
        stream_ttl=config.cache.stream_ttl_seconds,
        image_ttl=config.cache.image_ttl_seconds,
    )
    log.info(
        "cache_initialized",
        enabled=config.cache.enabled,
        remote=state.remote_store.name if state.remote_store else None,
    )

    # 2) Upstream client (403 backoff lives in the transport)
    state.http_client = build_http_client(config.upstream)
    state.upstream = HttpxUpstreamClient(
        http_client=state.http_client, config=config.upstream
    )

    # 3) Sessions
    state.sessions = SessionStore(
        state.upstream,
        state.session_cache,
        refresh_buffer_seconds=config.session.refresh_buffer_seconds,
        cache_safety_seconds=config.session.cache_safety_seconds,
    )

    # 4) Use cases
    transformer = StremioTransformer(
        base_url=config.addon.public_url, addon_name=config.addon.name
    )
    state.catalog_uc = CatalogUseCase(
        upstream=state.upstream,
        cache=state.caches.catalog,
        transformer=transformer,
        ordering=CATALOG_ORDERING,
        series_catalog_id=CATALOG_SERIES,
        items_per_page=config.addon.items_per_page,
    )
    state.meta_uc = MetaUseCase(
        upstream=state.upstream, cache=state.caches.meta, transformer=transformer
    )
    state.stream_uc = StreamUseCase(
        upstream=state.upstream,
        cache=state.caches.stream,
        transformer=transformer,
        sessions=state.sessions,
    )

    # 5) Image proxy
    state.image_pipeline, state.image_http_client = _build_image_pipeline(
        state, config
    )
    state.cdn_resolver = CdnUrlResolver(state.meta_uc.execute)

    log.info("app_startup_complete", public_url=config.addon.public_url)

    try:
        yield
    finally:
        await state.image_pipeline.aclose()
        await state.sessions.aclose()

        await state.image_http_client.aclose()
        await state.http_client.aclose()
        log.info("http_clients_closed")

        caches: list[TieredCache] = [
            c
            for c in (state.main_cache, state.session_cache, state.image_cache)
            if c is not None
        ]
        # Drain every tier before closing: main and sessions share the remote store
        for cache in caches:
            await cache.drain()
        for cache in caches:
            await cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
