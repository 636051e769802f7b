"""Upstream payloads -> Stremio catalog, meta and stream objects.

Pure transformation logic - no I/O, no framework dependencies.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from vidbridge.domain.entities.stremio import (
    ADDON_PREFIX,
    ImageUrls,
    StremioMeta,
    StremioMetaPreview,
    StremioStream,
    StremioVideo,
)
from vidbridge.infrastructure.stremio.series import (
    Series,
    detect_series,
    parse_episode_info,
    series_episodes,
)

DEFAULT_TYPE = "anime"

_HTML_TAG = re.compile(r"<[^>]*>")


# ------------------------------------------------------------------
# Formatters
# ------------------------------------------------------------------


def capitalize_genres(tags: Any) -> list[str]:
    if not isinstance(tags, list):
        return []
    genres = []
    for tag in tags:
        if isinstance(tag, dict):
            tag = tag.get("text")
        if tag and isinstance(tag, str):
            genres.append(tag[:1].upper() + tag[1:].lower())
    return genres


def clean_description(description: str | None) -> str:
    if not description:
        return ""
    return _HTML_TAG.sub("", description).replace("\n", " ").strip()


def format_runtime(duration_ms: int | None) -> str:
    if not duration_ms:
        return ""
    return f"{round(duration_ms / 60_000)} min"


def extract_year(released: int | str | None) -> str:
    if not released:
        return ""
    if isinstance(released, (int, float)):
        return str(datetime.fromtimestamp(released, tz=timezone.utc).year)
    try:
        return str(datetime.fromisoformat(released.replace("Z", "+00:00")).year)
    except ValueError:
        return ""


def titleize(text: str, separator: str = " ") -> str:
    return separator.join(w[:1].upper() + w[1:].lower() for w in text.split(separator))


def image_urls(video: dict[str, Any] | None) -> ImageUrls:
    """Cover is the preferred poster; the wide poster is the background."""
    if not video:
        return ImageUrls()
    cover = video.get("cover_url") or ""
    poster = video.get("poster_url") or ""
    return ImageUrls(poster=cover or poster, background=poster or cover)


def prefixed_id(raw_id: str) -> str:
    if raw_id.startswith(f"{ADDON_PREFIX}:"):
        return raw_id
    return f"{ADDON_PREFIX}:{raw_id}"


def proxy_image_url(base_url: str, entity_id: str, image_type: str) -> str:
    """``<base>/proxy/image/<quoted id>/<type>``."""
    if not entity_id or not image_type:
        return ""
    encoded = quote(entity_id, safe="")
    return f"{base_url.rstrip('/')}/proxy/image/{encoded}/{image_type}"


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


def to_catalog_item(video: dict[str, Any], base_url: str) -> StremioMetaPreview | None:
    slug = video.get("slug")
    if not slug:
        return None
    item_id = prefixed_id(slug)
    return StremioMetaPreview(
        id=item_id,
        type=DEFAULT_TYPE,
        name=video.get("name", ""),
        poster=proxy_image_url(base_url, item_id, "poster"),
        description=clean_description(video.get("description")),
        genres=capitalize_genres(video.get("tags")),
    )


def to_series_catalog_item(series: Series, base_url: str) -> StremioMetaPreview:
    first = series.episodes[0]
    item_id = prefixed_id(series.id)
    description = clean_description(first.get("description"))
    return StremioMetaPreview(
        id=item_id,
        type="series",
        name=series.base_name,
        poster=proxy_image_url(base_url, item_id, "poster"),
        description=f"{len(series.episodes)} Episodes\n\n{description}",
        genres=capitalize_genres(first.get("tags")),
    )


# ------------------------------------------------------------------
# Meta
# ------------------------------------------------------------------


def to_meta(video: dict[str, Any], base_url: str) -> StremioMeta | None:
    slug = video.get("slug")
    if not slug:
        return None
    meta_id = prefixed_id(slug)
    return StremioMeta(
        id=meta_id,
        type=DEFAULT_TYPE,
        name=video.get("name", ""),
        poster=proxy_image_url(base_url, meta_id, "poster"),
        background=proxy_image_url(base_url, meta_id, "background"),
        description=clean_description(video.get("description")),
        release_info=extract_year(
            video.get("released_at_unix") or video.get("released_at")
        ),
        runtime=format_runtime(video.get("duration_in_ms")),
        genres=capitalize_genres(video.get("tags")),
        cdn_urls=image_urls(video),
    )


def to_series_meta(
    series_id: str,
    series_name: str,
    episodes: list[dict[str, Any]],
    base_url: str,
) -> StremioMeta | None:
    if not episodes:
        return None
    meta_id = prefixed_id(series_id)
    first = episodes[0]

    videos: list[StremioVideo] = []
    episode_urls: dict[str, ImageUrls] = {}
    for index, ep in enumerate(episodes, start=1):
        episode_id = f"{meta_id}:{ep.get('slug', '')}"
        number = ep.get("episode_number") or index
        released = ep.get("released_at_unix")
        videos.append(
            StremioVideo(
                id=episode_id,
                title=ep.get("name") or f"Episode {number}",
                season=1,
                episode=number,
                released=(
                    datetime.fromtimestamp(released, tz=timezone.utc).isoformat()
                    if released
                    else ""
                ),
                thumbnail=proxy_image_url(base_url, episode_id, "poster"),
            )
        )
        episode_urls[episode_id] = image_urls(ep)

    return StremioMeta(
        id=meta_id,
        type="series",
        name=series_name,
        poster=proxy_image_url(base_url, meta_id, "poster"),
        background=proxy_image_url(base_url, meta_id, "background"),
        description=clean_description(first.get("description")),
        release_info=extract_year(
            first.get("released_at_unix") or first.get("released_at")
        ),
        genres=capitalize_genres(first.get("tags")),
        videos=videos,
        cdn_urls=image_urls(first),
        episode_cdn_urls=episode_urls,
    )


# ------------------------------------------------------------------
# Streams
# ------------------------------------------------------------------


def to_stream(stream: dict[str, Any], addon_name: str) -> StremioStream | None:
    url = (stream.get("url") or "").strip()
    if not url:
        return None
    group = titleize((stream.get("video_stream_group_id") or "").replace("-", " "))
    duration_min = round((stream.get("duration_in_ms") or 0) / 60_000)
    size = stream.get("filesize_mbs") or 0
    return StremioStream(
        name=f"{addon_name}\n{stream.get('height') or 0}p",
        title=f"{group}\n \U0001f4be {size} MB ⌚ {duration_min} min".lstrip(),
        url=url,
    )


def to_streams(streams: list[dict[str, Any]], addon_name: str) -> list[StremioStream]:
    result = []
    for stream in streams:
        converted = to_stream(stream, addon_name)
        if converted is not None:
            result.append(converted)
    return result


class StremioTransformer:
    """Binds the converters to a public base URL and addon name.

    Implements ``StremioTransformerPort`` from domain.ports.stremio.
    """

    def __init__(self, *, base_url: str, addon_name: str) -> None:
        self.base_url = base_url
        self.addon_name = addon_name

    def catalog(self, videos: list[dict[str, Any]]) -> list[StremioMetaPreview]:
        items = (to_catalog_item(v, self.base_url) for v in videos)
        return [item for item in items if item is not None]

    def series_catalog(
        self, videos: list[dict[str, Any]]
    ) -> list[StremioMetaPreview]:
        return [
            to_series_catalog_item(series, self.base_url)
            for series in detect_series(videos)
        ]

    def meta(self, video: dict[str, Any]) -> StremioMeta | None:
        return to_meta(video, self.base_url)

    def series_meta(
        self, series_slug: str, videos: list[dict[str, Any]]
    ) -> StremioMeta | None:
        episodes = series_episodes(videos, series_slug)
        if not episodes:
            return None
        info = parse_episode_info(episodes[0].get("name"))
        name = info.base_name if info else episodes[0].get("name", "")
        return to_series_meta(f"series:{series_slug}", name, episodes, self.base_url)

    def streams(self, raw_streams: list[dict[str, Any]]) -> list[StremioStream]:
        return to_streams(raw_streams, self.addon_name)
