"""Meta use case - video and series metadata, cached per entity id."""

from __future__ import annotations

import structlog

from vidbridge.domain.entities.lookup import Found, Lookup, NotFound, TransientError
from vidbridge.domain.entities.stremio import EntityRef, StremioMeta
from vidbridge.domain.exceptions import UpstreamError
from vidbridge.domain.ports.cache import CacheWrapperPort
from vidbridge.domain.ports.stremio import StremioTransformerPort
from vidbridge.domain.ports.upstream import UpstreamClientPort

log = structlog.get_logger(__name__)


class MetaUseCase:
    """Builds ``StremioMeta`` for a video or a series.

    A series has no upstream object of its own: its episodes are found by
    searching for the series name and grouping the hits.
    """

    def __init__(
        self,
        *,
        upstream: UpstreamClientPort,
        cache: CacheWrapperPort,
        transformer: StremioTransformerPort,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._transformer = transformer

    async def execute(self, entity_id: str) -> StremioMeta | None:
        ref = EntityRef.parse(entity_id)
        if ref is None or ref.kind == "episode":
            log.debug("meta_unsupported_id", entity_id=entity_id)
            return None
        return await self._cache.wrap(entity_id, lambda: self._load(ref))

    async def _load(self, ref: EntityRef) -> Lookup:
        try:
            if ref.kind == "series":
                meta = await self._series_meta(ref.slug)
            else:
                meta = await self._video_meta(ref.slug)
        except UpstreamError as e:
            log.warning(
                "meta_lookup_failed",
                kind=ref.kind,
                slug=ref.slug,
                status=e.status,
                error=str(e),
            )
            return TransientError(e)

        if meta is None:
            return NotFound(f"no {ref.kind} {ref.slug!r}")
        return Found(meta)

    async def _video_meta(self, slug: str) -> StremioMeta | None:
        video = await self._upstream.get_video_data(slug)
        if video is None:
            return None
        return self._transformer.meta(video)

    async def _series_meta(self, series_slug: str) -> StremioMeta | None:
        videos = await self._upstream.search(
            query=series_slug.replace("-", " "),
            order_by="created_at_unix",
            ordering="desc",
        )
        if not videos:
            log.warning("series_meta_no_videos", series=series_slug)
            return None

        meta = self._transformer.series_meta(series_slug, videos)
        if meta is None:
            log.warning(
                "series_meta_no_episodes",
                series=series_slug,
                search_results=len(videos),
            )
            return None

        log.info("series_meta_created", series=series_slug, episodes=len(meta.videos))
        return meta
