"""Resolve (entity id, image type) to the upstream CDN URL."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from vidbridge.domain.entities.stremio import ImageUrls, StremioMeta
from vidbridge.domain.exceptions import UpstreamError

log = structlog.get_logger(__name__)

MetaLookup = Callable[[str], Awaitable[StremioMeta | None]]

_POSTER_TYPES = frozenset({"poster", "cover"})
_BACKGROUND_TYPES = frozenset({"background"})


def _pick(urls: ImageUrls | None, image_type: str) -> str:
    if urls is None:
        return ""
    if image_type in _POSTER_TYPES:
        return urls.poster
    if image_type in _BACKGROUND_TYPES:
        return urls.background
    return ""


def series_id_of(entity_id: str) -> str | None:
    """``<prefix>:series:<base>:<episode>`` -> ``<prefix>:series:<base>``."""
    parts = entity_id.split(":")
    if len(parts) >= 4 and parts[1] == "series":
        return ":".join(parts[:3])
    return None


class CdnUrlResolver:
    """Looks up CDN URLs in (cached) metadata.

    Episode ids resolve through their series meta's per-episode URL map.
    An unknown id, image type or failed lookup resolves to ``""``.
    """

    def __init__(self, meta_lookup: MetaLookup) -> None:
        self._meta_lookup = meta_lookup

    async def resolve(self, entity_id: str, image_type: str) -> str:
        series_id = series_id_of(entity_id)
        try:
            if series_id is not None:
                meta = await self._meta_lookup(series_id)
                urls = meta.episode_cdn_urls.get(entity_id) if meta else None
            else:
                meta = await self._meta_lookup(entity_id)
                urls = meta.cdn_urls if meta else None
        except UpstreamError as e:
            log.warning(
                "cdn_url_lookup_failed",
                entity_id=entity_id,
                error=str(e),
            )
            return ""
        return _pick(urls, image_type)
