"""Upstream Port - operations the core consumes from the video platform."""

from __future__ import annotations

from typing import Any, Protocol

from vidbridge.domain.entities.images import ImagePayload
from vidbridge.domain.entities.session import LoginResult


class UpstreamClientPort(Protocol):
    """Stateless HTTP operations against the upstream platform.

    All methods may raise ``UpstreamError``; ``UpstreamBlockedError`` (403)
    is retried with backoff before it surfaces.
    """

    async def search(
        self,
        *,
        query: str = "",
        tags: list[str] | None = None,
        order_by: str | None = "created_at_unix",
        ordering: str | None = "desc",
        page: int = 0,
    ) -> list[dict[str, Any]]: ...

    async def get_video_data(self, slug: str) -> dict[str, Any] | None: ...

    async def get_video_streams(self, slug: str) -> list[dict[str, Any]]: ...

    async def get_authenticated_stream_details(
        self, video_id: str, *, session_token: str
    ) -> dict[str, Any]: ...

    async def login(self, email: str, password: str) -> LoginResult: ...


class ImageFetcherPort(Protocol):
    """Fetches raw image bytes from the CDN."""

    async def fetch(self, url: str) -> ImagePayload: ...
