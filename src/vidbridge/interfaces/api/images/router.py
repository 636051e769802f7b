"""Image proxy endpoint: serves upstream CDN artwork through the addon."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from vidbridge.domain.exceptions import UpstreamError
from vidbridge.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["images"])

IMAGE_TYPES = frozenset({"poster", "cover", "background"})

_NO_STORE = "no-store, no-cache, must-revalidate, proxy-revalidate"


def _cache_headers(enabled: bool, max_age: int) -> dict[str, str]:
    if enabled:
        return {
            "Cache-Control": f"public, max-age={max_age}, stale-while-revalidate=3600"
        }
    return {"Cache-Control": _NO_STORE, "Pragma": "no-cache", "Expires": "0"}


@router.get("/proxy/image/{entity_id}/{image_type}")
async def proxy_image(request: Request, entity_id: str, image_type: str) -> Response:
    """Resolve the CDN URL from metadata, then fetch through the pipeline."""
    state = cast(AppState, request.app.state)

    if not entity_id or image_type not in IMAGE_TYPES:
        log.warning("image_proxy_bad_request", entity_id=entity_id, type=image_type)
        return PlainTextResponse("Invalid request", status_code=400)

    cdn_url = await state.cdn_resolver.resolve(entity_id, image_type)
    if not cdn_url:
        log.debug("image_proxy_no_url", entity_id=entity_id, type=image_type)
        return PlainTextResponse("Image not found", status_code=404)

    try:
        payload = await state.image_pipeline.fetch(f"{entity_id}:{image_type}", cdn_url)
    except UpstreamError as e:
        status = e.status or 502
        if status == 403:
            log.debug("image_proxy_blocked", entity_id=entity_id, type=image_type)
        else:
            log.warning(
                "image_proxy_failed",
                entity_id=entity_id,
                type=image_type,
                status=status,
                error=str(e),
            )
        return PlainTextResponse("Image fetch failed", status_code=status)

    images = state.config.images
    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers=_cache_headers(images.browser_cache, images.browser_cache_max_age),
    )
