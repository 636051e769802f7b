"""Stremio addon API endpoints (manifest, catalog, meta, stream)."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, cast
from urllib.parse import parse_qsl

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from vidbridge.domain.entities.stremio import (
    CatalogRequest,
    StremioMetaPreview,
    StremioStream,
    UserConfig,
)
from vidbridge.domain.exceptions import InvalidInputError
from vidbridge.infrastructure.stremio.manifest import build_manifest
from vidbridge.interfaces.api.stremio.user_config import decode_user_config
from vidbridge.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["stremio"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

# Seconds a client may serve a catalog response while revalidating
_CATALOG_STALE_REVALIDATE = 600


def _json(content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(content=content, headers=_CORS_HEADERS)


def _parse_extra(extra: str) -> dict[str, str]:
    """``genre=Action&skip=48`` (as sent in the path) -> dict."""
    if not extra:
        return {}
    return dict(parse_qsl(extra, keep_blank_values=False))


def _catalog_request(catalog_id: str, extra: str) -> CatalogRequest:
    params = _parse_extra(extra)
    try:
        skip = max(int(params.get("skip", 0)), 0)
    except ValueError:
        skip = 0
    return CatalogRequest(
        catalog_id=catalog_id,
        search=params.get("search", "").strip(),
        genre=params.get("genre", "").strip(),
        skip=skip,
    )


def _format_preview(item: StremioMetaPreview) -> dict[str, Any]:
    data = asdict(item)
    data["releaseInfo"] = data.pop("release_info")
    return data


def _format_stream(stream: StremioStream) -> dict[str, str]:
    """Convert a StremioStream dataclass to Stremio JSON format."""
    return {"name": stream.name, "title": stream.title, "url": stream.url}


def _user_config(segment: str | None) -> UserConfig | None:
    """Decode the config segment; a malformed one is treated as anonymous."""
    if segment is None:
        return None
    try:
        return decode_user_config(segment)
    except InvalidInputError:
        log.warning("stremio_user_config_invalid")
        return None


# ------------------------------------------------------------------
# Manifest
# ------------------------------------------------------------------


def _manifest(request: Request, configured: bool) -> JSONResponse:
    state = cast(AppState, request.app.state)
    return _json(build_manifest(state.config.addon, configured=configured))


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    return _manifest(request, configured=False)


@router.get("/{config}/manifest.json")
async def stremio_manifest_configured(request: Request, config: str) -> JSONResponse:
    user = _user_config(config)
    return _manifest(request, configured=bool(user and user.has_credentials))


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


async def _catalog(
    request: Request, content_type: str, catalog_id: str, extra: str
) -> JSONResponse:
    state = cast(AppState, request.app.state)
    catalog_request = _catalog_request(catalog_id, extra)
    try:
        metas = await state.catalog_uc.execute(catalog_request)
    except Exception:
        log.warning(
            "stremio_catalog_failed",
            content_type=content_type,
            catalog_id=catalog_id,
            exc_info=True,
        )
        return _json({"metas": []})

    return _json(
        {
            "metas": [_format_preview(m) for m in metas],
            "cacheMaxAge": state.config.cache.catalog_ttl_seconds,
            "staleRevalidate": _CATALOG_STALE_REVALIDATE,
        }
    )


@router.get("/catalog/{content_type}/{catalog_id}.json")
async def stremio_catalog(
    request: Request, content_type: str, catalog_id: str
) -> JSONResponse:
    """Serve a catalog page without extra params."""
    return await _catalog(request, content_type, catalog_id, "")


@router.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
async def stremio_catalog_extra(
    request: Request, content_type: str, catalog_id: str, extra: str
) -> JSONResponse:
    """Serve a catalog page with search/genre/skip extras."""
    return await _catalog(request, content_type, catalog_id, extra)


@router.get("/{config}/catalog/{content_type}/{catalog_id}.json")
async def stremio_catalog_configured(
    request: Request, config: str, content_type: str, catalog_id: str
) -> JSONResponse:
    return await _catalog(request, content_type, catalog_id, "")


@router.get("/{config}/catalog/{content_type}/{catalog_id}/{extra}.json")
async def stremio_catalog_extra_configured(
    request: Request, config: str, content_type: str, catalog_id: str, extra: str
) -> JSONResponse:
    return await _catalog(request, content_type, catalog_id, extra)


# ------------------------------------------------------------------
# Meta
# ------------------------------------------------------------------


async def _meta(request: Request, content_type: str, entity_id: str) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        meta = await state.meta_uc.execute(entity_id)
    except Exception:
        log.warning(
            "stremio_meta_failed",
            content_type=content_type,
            entity_id=entity_id,
            exc_info=True,
        )
        return _json({"meta": None})

    if meta is None:
        return _json({"meta": None})
    return _json(
        {
            "meta": meta.to_stremio(),
            "cacheMaxAge": state.config.cache.meta_ttl_seconds,
        }
    )


@router.get("/meta/{content_type}/{entity_id}.json")
async def stremio_meta(
    request: Request, content_type: str, entity_id: str
) -> JSONResponse:
    """Serve full metadata for a video or series."""
    return await _meta(request, content_type, entity_id)


@router.get("/{config}/meta/{content_type}/{entity_id}.json")
async def stremio_meta_configured(
    request: Request, config: str, content_type: str, entity_id: str
) -> JSONResponse:
    return await _meta(request, content_type, entity_id)


# ------------------------------------------------------------------
# Stream
# ------------------------------------------------------------------


async def _stream(
    request: Request,
    content_type: str,
    entity_id: str,
    user: UserConfig | None,
) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        streams = await state.stream_uc.execute(entity_id, user)
    except Exception:
        log.warning(
            "stremio_stream_failed",
            content_type=content_type,
            entity_id=entity_id,
            authenticated=bool(user and user.has_credentials),
            exc_info=True,
        )
        return _json({"streams": []})

    log.info(
        "stremio_stream_complete",
        entity_id=entity_id,
        authenticated=bool(user and user.has_credentials),
        results=len(streams),
    )
    return _json(
        {
            "streams": [_format_stream(s) for s in streams],
            "cacheMaxAge": state.config.cache.stream_ttl_seconds,
        }
    )


@router.get("/stream/{content_type}/{entity_id}.json")
async def stremio_stream(
    request: Request, content_type: str, entity_id: str
) -> JSONResponse:
    """Serve public streams for a video or episode."""
    return await _stream(request, content_type, entity_id, None)


@router.get("/{config}/stream/{content_type}/{entity_id}.json")
async def stremio_stream_configured(
    request: Request, config: str, content_type: str, entity_id: str
) -> JSONResponse:
    """Serve streams through the user's authenticated session."""
    return await _stream(request, content_type, entity_id, _user_config(config))
