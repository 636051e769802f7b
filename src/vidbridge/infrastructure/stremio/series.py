"""Group episodic uploads into series.

Pure functions, no I/O. Upstream lists every episode as its own video
("Title 1", "Title 2", ...); these helpers detect the pattern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_TRAILING_NUMBER = re.compile(r"^(.+?)\s+(\d+)$")
_EPISODE_WORD = re.compile(r"^(.+?)\s+(?:episode|ep\.?|e)\s*(\d+)$", re.IGNORECASE)
_DASH_NUMBER = re.compile(r"^(.+?)\s*[-–—]\s*(?:episode\s*)?(\d+)$", re.IGNORECASE)

SERIES_PREFIX = "series:"


@dataclass(frozen=True)
class EpisodeInfo:
    base_name: str
    episode_number: int


@dataclass
class Series:
    id: str  # "series:<slug>"
    base_name: str
    episodes: list[dict[str, Any]] = field(default_factory=list)


def parse_episode_info(name: str | None) -> EpisodeInfo | None:
    """Split ``"Title 2"``, ``"Title Episode 2"`` or ``"Title - 2"``.

    Returns ``None`` when the name carries no episode number.
    """
    if not name:
        return None
    # Most specific first: "Title - Episode 2" must keep base "Title"
    for pattern in (_DASH_NUMBER, _EPISODE_WORD, _TRAILING_NUMBER):
        match = pattern.match(name)
        if match:
            return EpisodeInfo(
                base_name=match.group(1).strip(),
                episode_number=int(match.group(2)),
            )
    return None


def series_slug(base_name: str) -> str:
    """``"Some Show!"`` -> ``"some-show"``."""
    slug = re.sub(r"[^a-z0-9\s-]", "", base_name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip()


def detect_series(videos: list[dict[str, Any]]) -> list[Series]:
    """Group videos by base name; keep groups with 2+ episodes, sorted."""
    groups: dict[str, Series] = {}
    for video in videos:
        info = parse_episode_info(video.get("name"))
        if info is None:
            continue
        group = groups.get(info.base_name)
        if group is None:
            group = Series(
                id=f"{SERIES_PREFIX}{series_slug(info.base_name)}",
                base_name=info.base_name,
            )
            groups[info.base_name] = group
        group.episodes.append({**video, "episode_number": info.episode_number})

    result: list[Series] = []
    for group in groups.values():
        if len(group.episodes) < 2:
            continue
        group.episodes.sort(key=lambda ep: ep["episode_number"])
        result.append(group)
    return result


def series_episodes(
    videos: list[dict[str, Any]], series_id: str
) -> list[dict[str, Any]]:
    """Episodes of *series_id* (with or without the ``series:`` prefix)."""
    wanted = f"{SERIES_PREFIX}{series_id.removeprefix(SERIES_PREFIX)}"
    for series in detect_series(videos):
        if series.id == wanted:
            return series.episodes
    return []
