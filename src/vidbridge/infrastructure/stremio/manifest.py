"""Stremio addon manifest and catalog definitions."""

from __future__ import annotations

from typing import Any

from vidbridge.domain.entities.stremio import ADDON_PREFIX
from vidbridge.infrastructure.config.schema import AddonConfig
from vidbridge.infrastructure.stremio.transform import DEFAULT_TYPE

CATALOG_ALL = f"{ADDON_PREFIX}-all"
CATALOG_SERIES = f"{ADDON_PREFIX}-series"
CATALOG_RECENT = f"{ADDON_PREFIX}-recent"
CATALOG_MOST_LIKES = f"{ADDON_PREFIX}-most-likes"
CATALOG_MOST_VIEWS = f"{ADDON_PREFIX}-most-views"
CATALOG_NEWEST = f"{ADDON_PREFIX}-newest"

# catalog id -> upstream order_by (None = upstream default ordering)
CATALOG_ORDERING: dict[str, str | None] = {
    CATALOG_ALL: None,
    CATALOG_SERIES: None,
    CATALOG_RECENT: "created_at_unix",
    CATALOG_MOST_LIKES: "likes",
    CATALOG_MOST_VIEWS: "views",
    CATALOG_NEWEST: "released_at_unix",
}

_CATALOG_NAMES = {
    CATALOG_ALL: "All",
    CATALOG_SERIES: "Series",
    CATALOG_RECENT: "Recently Added",
    CATALOG_MOST_LIKES: "Most Liked",
    CATALOG_MOST_VIEWS: "Most Viewed",
    CATALOG_NEWEST: "Newest Releases",
}

GENRES: tuple[str, ...] = (
    "3d",
    "action",
    "comedy",
    "drama",
    "fantasy",
    "hd",
    "horror",
    "mystery",
    "romance",
    "school",
    "sci-fi",
    "slice of life",
    "sports",
    "supernatural",
    "uncensored",
)


def is_valid_catalog(catalog_id: str) -> bool:
    return catalog_id in CATALOG_ORDERING


def _catalog(catalog_id: str) -> dict[str, Any]:
    return {
        "id": catalog_id,
        "type": "series" if catalog_id == CATALOG_SERIES else DEFAULT_TYPE,
        "name": _CATALOG_NAMES[catalog_id],
        "extra": [
            {"name": "search", "isRequired": False},
            {"name": "skip", "isRequired": False},
            {"name": "genre", "options": list(GENRES), "isRequired": False},
        ],
    }


def build_manifest(addon: AddonConfig, *, configured: bool = False) -> dict[str, Any]:
    """Manifest JSON. *configured* marks an install that carries user config."""
    return {
        "id": addon.id,
        "version": addon.version,
        "name": addon.name,
        "description": addon.description,
        "resources": ["catalog", "meta", "stream"],
        "types": [DEFAULT_TYPE, "movie", "series"],
        "idPrefixes": [f"{ADDON_PREFIX}:"],
        "catalogs": [_catalog(cid) for cid in CATALOG_ORDERING],
        "behaviorHints": {
            "configurable": True,
            "configurationRequired": False,
            "configured": configured,
        },
    }
