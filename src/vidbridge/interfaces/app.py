"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from vidbridge import __version__
from vidbridge.infrastructure.config import AppConfig
from vidbridge.interfaces.app_state import AppState
from vidbridge.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app - configuration ONLY, NO resource initialization.

    Resources (HTTP clients, caches, sessions) are created in lifespan().
    """
    app = FastAPI(
        title=config.addon.name,
        description=config.addon.description,
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from vidbridge.interfaces.api.images import router as images_router
    from vidbridge.interfaces.api.stremio import router as stremio_router

    app.include_router(images_router)
    app.include_router(stremio_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        """Liveness probe plus cache/session/image-proxy stats."""
        state = app.state
        sessions = getattr(state, "sessions", None)
        pipeline = getattr(state, "image_pipeline", None)
        main_cache = getattr(state, "main_cache", None)
        return {
            "status": "ok",
            "version": __version__,
            "cache": {
                "enabled": main_cache is not None,
                "pending_writes": main_cache.pending_writes if main_cache else 0,
            },
            "sessions": sessions.stats() if sessions else {},
            "images": pipeline.stats() if pipeline else {},
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                # Path may carry the base64 user config; log the route only
                route=_route_template(request),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "<unmatched>"
