"""Stream use case - anonymous manifest or authenticated session path."""

from __future__ import annotations

import structlog

from vidbridge.domain.entities.lookup import Found, Lookup, NotFound, TransientError
from vidbridge.domain.entities.session import credentials_hash, mask_email
from vidbridge.domain.entities.stremio import EntityRef, StremioStream, UserConfig
from vidbridge.domain.exceptions import UpstreamError
from vidbridge.domain.ports.cache import CacheWrapperPort
from vidbridge.domain.ports.sessions import SessionProviderPort
from vidbridge.domain.ports.stremio import StremioTransformerPort
from vidbridge.domain.ports.upstream import UpstreamClientPort

log = structlog.get_logger(__name__)


class StreamUseCase:
    """Resolves playable streams for a video or an episode.

    Without credentials the public manifest is used and cached under
    ``stream:<id>``. With credentials the request goes through the session
    store and is cached under ``stream:<id>:user:<credentials hash>`` so one
    account's streams are never served to another.

    A series id has no streams of its own (its episodes do).
    """

    def __init__(
        self,
        *,
        upstream: UpstreamClientPort,
        cache: CacheWrapperPort,
        transformer: StremioTransformerPort,
        sessions: SessionProviderPort | None = None,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._transformer = transformer
        self._sessions = sessions

    async def execute(
        self,
        entity_id: str,
        user: UserConfig | None = None,
    ) -> list[StremioStream]:
        ref = EntityRef.parse(entity_id)
        if ref is None:
            log.debug("stream_foreign_id", entity_id=entity_id)
            return []

        slug = ref.video_slug
        if slug is None:
            log.info("stream_series_parent", entity_id=entity_id)
            return []

        if user is not None and user.has_credentials and self._sessions is not None:
            identifier = (
                f"{entity_id}:user:{credentials_hash(user.email, user.password)}"
            )
            streams = await self._cache.wrap(
                identifier, lambda: self._authenticated(slug, user)
            )
        else:
            streams = await self._cache.wrap(entity_id, lambda: self._anonymous(slug))
        return streams or []

    async def _anonymous(self, slug: str) -> Lookup:
        try:
            raw = await self._upstream.get_video_streams(slug)
        except UpstreamError as e:
            log.warning(
                "stream_lookup_failed", slug=slug, status=e.status, error=str(e)
            )
            return TransientError(e)
        return self._to_result(slug, raw)

    async def _authenticated(self, slug: str, user: UserConfig) -> Lookup:
        assert self._sessions is not None
        try:
            session = await self._sessions.get_session(user.email, user.password)
            video = await self._upstream.get_video_data(slug)
            if not video or video.get("id") is None:
                return NotFound(f"no video {slug!r}")
            details = await session.get_video_details(str(video["id"]))
        except UpstreamError as e:
            log.warning(
                "stream_authenticated_failed",
                slug=slug,
                email=mask_email(user.email),
                status=e.status,
                error=str(e),
            )
            return TransientError(e)
        return self._to_result(slug, details.get("streams") or [])

    def _to_result(self, slug: str, raw: list) -> Lookup:
        streams = self._transformer.streams(raw)
        if not streams:
            log.debug("stream_none_playable", slug=slug, raw=len(raw))
            return NotFound(f"no playable streams for {slug!r}")
        return Found(streams)
