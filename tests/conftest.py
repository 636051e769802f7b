"""Shared test fixtures for the vidbridge test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from vidbridge.domain.entities.session import LoginResult, UpstreamUser
from vidbridge.infrastructure.cache.memory_adapter import MemoryAdapter
from vidbridge.infrastructure.cache.tiered import TieredCache
from vidbridge.infrastructure.stremio.transform import StremioTransformer

BASE_URL = "http://addon.test"

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------


def make_video(
    slug: str = "some-video-1",
    *,
    name: str = "Some Video 1",
    video_id: int = 101,
    **extra: Any,
) -> dict[str, Any]:
    """Minimal upstream video payload."""
    video = {
        "id": video_id,
        "slug": slug,
        "name": name,
        "description": "<p>A description</p>",
        "tags": ["comedy", "Drama"],
        "cover_url": f"https://cdn.test/covers/{slug}.jpg",
        "poster_url": f"https://cdn.test/posters/{slug}.png",
        "released_at_unix": 1_600_000_000,
        "duration_in_ms": 1_440_000,
    }
    video.update(extra)
    return video


def make_stream(height: int = 1080, url: str = "https://cdn.test/v.m3u8") -> dict:
    return {
        "url": url,
        "height": height,
        "filesize_mbs": 120,
        "duration_in_ms": 1_440_000,
        "video_stream_group_id": "some-video-group",
    }


def make_login(
    token: str = "tok-1",
    *,
    expires_at_unix: int = 1_700_003_600,
    premium: bool = False,
) -> LoginResult:
    return LoginResult(
        session_token=token,
        expires_at_unix=expires_at_unix,
        user=UpstreamUser(id=1, email="user@example.com", is_premium=premium),
    )


@pytest.fixture()
def video_factory():
    return make_video


@pytest.fixture()
def stream_factory():
    return make_stream


@pytest.fixture()
def login_factory():
    return make_login


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_upstream() -> AsyncMock:
    """UpstreamClientPort with every coroutine mocked."""
    upstream = AsyncMock()
    upstream.search = AsyncMock(return_value=[])
    upstream.get_video_data = AsyncMock(return_value=None)
    upstream.get_video_streams = AsyncMock(return_value=[])
    upstream.get_authenticated_stream_details = AsyncMock(
        return_value={"streams": []}
    )
    upstream.login = AsyncMock(return_value=make_login())
    return upstream


@pytest.fixture()
def local_cache() -> TieredCache:
    """Local-only tiered cache (no remote tier)."""
    return TieredCache(MemoryAdapter(max_size=100, ttl_seconds=3600), name="test")


@pytest.fixture()
def transformer() -> StremioTransformer:
    return StremioTransformer(base_url=BASE_URL, addon_name="Vidbridge")
