"""Stremio Port - converts upstream payloads into protocol objects."""

from __future__ import annotations

from typing import Any, Protocol

from vidbridge.domain.entities.stremio import (
    StremioMeta,
    StremioMetaPreview,
    StremioStream,
)


class StremioTransformerPort(Protocol):
    """Pure conversions, no I/O."""

    def catalog(self, videos: list[dict[str, Any]]) -> list[StremioMetaPreview]: ...

    def series_catalog(
        self, videos: list[dict[str, Any]]
    ) -> list[StremioMetaPreview]: ...

    def meta(self, video: dict[str, Any]) -> StremioMeta | None: ...

    def series_meta(
        self, series_slug: str, videos: list[dict[str, Any]]
    ) -> StremioMeta | None: ...

    def streams(self, raw_streams: list[dict[str, Any]]) -> list[StremioStream]: ...
