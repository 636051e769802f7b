"""Catalog use case - upstream search, cached per catalog + extras."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import structlog

from vidbridge.domain.entities.lookup import Found, Lookup, NotFound, TransientError
from vidbridge.domain.entities.stremio import CatalogRequest, StremioMetaPreview
from vidbridge.domain.exceptions import UpstreamError
from vidbridge.domain.ports.cache import CacheWrapperPort
from vidbridge.domain.ports.stremio import StremioTransformerPort
from vidbridge.domain.ports.upstream import UpstreamClientPort

log = structlog.get_logger(__name__)


class CatalogUseCase:
    """Serves catalog pages.

    The raw upstream hits are cached (not the converted previews), keyed by
    catalog id plus the JSON of the genre, search and upstream page, so each
    distinct upstream query gets one slot (``skip`` values landing on the
    same page share it).

    Args:
        upstream: Search API.
        cache: Catalog cache facade.
        transformer: Upstream -> Stremio converter.
        ordering: Catalog id -> upstream ``order_by`` (``None`` = default).
        series_catalog_id: Catalog that groups episodes into series.
        items_per_page: Upstream page size (``page = skip // items_per_page``).
    """

    def __init__(
        self,
        *,
        upstream: UpstreamClientPort,
        cache: CacheWrapperPort,
        transformer: StremioTransformerPort,
        ordering: Mapping[str, str | None],
        series_catalog_id: str,
        items_per_page: int = 48,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._transformer = transformer
        self._ordering = ordering
        self._series_catalog_id = series_catalog_id
        self._items_per_page = items_per_page

    def page_of(self, request: CatalogRequest) -> int:
        return request.skip // self._items_per_page if request.skip else 0

    def cache_identifier(self, request: CatalogRequest) -> str:
        extra = request.extra_dict()
        extra.pop("skip", None)
        page = self.page_of(request)
        if page:
            extra["page"] = page
        encoded = json.dumps(extra, separators=(",", ":"))
        return f"{request.catalog_id}:{encoded}"

    def search_params(self, request: CatalogRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "query": request.search,
            "tags": [request.genre] if request.genre else [],
            "page": self.page_of(request),
        }
        order_by = self._ordering.get(request.catalog_id)
        if order_by:
            params["order_by"] = order_by
            params["ordering"] = "desc"
        return params

    async def execute(self, request: CatalogRequest) -> list[StremioMetaPreview]:
        if request.catalog_id not in self._ordering:
            log.debug("catalog_unknown", catalog_id=request.catalog_id)
            return []

        hits = await self._cache.wrap(
            self.cache_identifier(request), lambda: self._search(request)
        )
        if not hits:
            log.warning("catalog_no_results", catalog_id=request.catalog_id)
            return []

        if request.catalog_id == self._series_catalog_id:
            return self._transformer.series_catalog(hits)
        return self._transformer.catalog(hits)

    async def _search(self, request: CatalogRequest) -> Lookup:
        try:
            hits = await self._upstream.search(**self.search_params(request))
        except UpstreamError as e:
            log.warning(
                "catalog_search_failed",
                catalog_id=request.catalog_id,
                status=e.status,
                error=str(e),
            )
            return TransientError(e)

        if not hits:
            return NotFound("empty search result")
        return Found(hits)
