"""Domain entities for the Stremio addon protocol.

Pure value objects, no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

StremioContentType = Literal["movie", "series", "anime"]
EntityKind = Literal["video", "series", "episode"]

ADDON_PREFIX = "vidbridge"


@dataclass(frozen=True)
class ImageUrls:
    """Upstream CDN URLs for an entity's artwork (never sent to clients)."""

    poster: str = ""
    background: str = ""


@dataclass(frozen=True)
class StremioMetaPreview:
    """Stremio catalog item (MetaPreview object)."""

    id: str  # "vidbridge:<slug>" or "vidbridge:series:<slug>"
    type: StremioContentType
    name: str
    poster: str = ""
    description: str = ""
    release_info: str = ""
    genres: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StremioVideo:
    """A single episode inside a series meta."""

    id: str
    title: str
    season: int = 1
    episode: int = 1
    released: str = ""
    thumbnail: str = ""


@dataclass(frozen=True)
class StremioMeta:
    """Full Stremio meta object plus the CDN URLs the image proxy needs."""

    id: str
    type: StremioContentType
    name: str
    poster: str = ""
    background: str = ""
    description: str = ""
    release_info: str = ""
    runtime: str = ""
    genres: list[str] = field(default_factory=list)
    videos: list[StremioVideo] = field(default_factory=list)
    cdn_urls: ImageUrls = field(default_factory=ImageUrls)
    episode_cdn_urls: dict[str, ImageUrls] = field(default_factory=dict)

    def to_stremio(self) -> dict[str, Any]:
        """Protocol JSON, without the private CDN URL fields."""
        data = asdict(self)
        data.pop("cdn_urls")
        data.pop("episode_cdn_urls")
        data["releaseInfo"] = data.pop("release_info")
        if not self.videos:
            data.pop("videos")
        return data


@dataclass(frozen=True)
class StremioStream:
    """Stremio protocol Stream object (JSON-serializable)."""

    name: str  # e.g. "Vidbridge\n1080p"
    title: str  # e.g. "Episode Name\n 💾 120 MB ⌚ 24 min"
    url: str


@dataclass(frozen=True)
class CatalogRequest:
    """Parsed catalog request: catalog id plus Stremio ``extra`` params."""

    catalog_id: str
    search: str = ""
    genre: str = ""
    skip: int = 0

    def extra_dict(self) -> dict[str, Any]:
        """Only the extras that were set, in a stable order."""
        extra: dict[str, Any] = {}
        if self.genre:
            extra["genre"] = self.genre
        if self.search:
            extra["search"] = self.search
        if self.skip:
            extra["skip"] = self.skip
        return extra


@dataclass(frozen=True)
class UserConfig:
    """Per-install addon configuration carried in the request URL."""

    email: str = ""
    password: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)


@dataclass(frozen=True)
class EntityRef:
    """Parsed addon id.

    - ``vidbridge:<slug>`` -> video
    - ``vidbridge:series:<series>`` -> series
    - ``vidbridge:series:<series>:<slug>`` -> episode
    """

    kind: EntityKind
    slug: str
    series_slug: str = ""

    @classmethod
    def parse(cls, entity_id: str) -> EntityRef | None:
        """``None`` for foreign or malformed ids."""
        prefix = f"{ADDON_PREFIX}:"
        if not entity_id or not entity_id.startswith(prefix):
            return None
        rest = entity_id[len(prefix) :]
        if not rest:
            return None

        parts = rest.split(":")
        if parts[0] != "series":
            return cls(kind="video", slug=rest)
        if len(parts) == 2 and parts[1]:
            return cls(kind="series", slug=parts[1], series_slug=parts[1])
        if len(parts) == 3 and parts[1] and parts[2]:
            return cls(kind="episode", slug=parts[2], series_slug=parts[1])
        return None

    @property
    def video_slug(self) -> str | None:
        """Slug of the playable video; a series itself has none."""
        return None if self.kind == "series" else self.slug
