"""Upstream API client - async httpx implementation."""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from vidbridge.domain.entities.session import LoginResult, UpstreamUser, mask_email
from vidbridge.domain.exceptions import (
    AuthenticationError,
    InvalidInputError,
    UpstreamBlockedError,
    UpstreamError,
    UpstreamUnavailableError,
)
from vidbridge.infrastructure.common.retry_transport import BlockRetryTransport
from vidbridge.infrastructure.config.schema import UpstreamConfig

log = structlog.get_logger(__name__)

_SESSION_HEADER = "X-Session-Token"


def build_http_client(config: UpstreamConfig) -> httpx.AsyncClient:
    """Shared AsyncClient: browser-like headers + 403 backoff transport."""
    transport = BlockRetryTransport(
        httpx.AsyncHTTPTransport(),
        max_retries=config.max_retries,
        schedule=config.backoff_schedule_seconds,
        jitter=config.backoff_jitter_seconds,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.timeout_seconds),
        follow_redirects=True,
        headers={
            "accept": "application/json, text/plain, */*",
            "origin": config.origin,
            "referer": f"{config.origin.rstrip('/')}/",
            "user-agent": config.user_agent,
        },
    )


class HttpxUpstreamClient:
    """Stateless operations against the upstream platform.

    Implements ``UpstreamClientPort`` from domain.ports.upstream.

    Retrying 403 responses is the transport's job; by the time a response
    reaches this class the retry budget is spent, so a 403 here is raised as
    ``UpstreamBlockedError``. Network errors, timeouts and 5xx become
    ``UpstreamUnavailableError``. Nothing is retried at this level.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        config: UpstreamConfig,
    ) -> None:
        self._http = http_client
        self._api_url = config.api_url.rstrip("/")
        self._search_url = config.search_url
        self._auth_url = config.auth_url.rstrip("/")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            log.error("upstream_timeout", operation=operation, url=url)
            raise UpstreamUnavailableError(f"{operation}: timeout") from e
        except httpx.HTTPError as e:
            log.error(
                "upstream_network_error",
                operation=operation,
                url=url,
                error=str(e),
            )
            raise UpstreamUnavailableError(f"{operation}: {e}") from e

        if resp.status_code == 403:
            log.debug("upstream_blocked", operation=operation, url=url)
            raise UpstreamBlockedError(f"{operation}: blocked (403)")
        if resp.status_code >= 500:
            log.error(
                "upstream_server_error",
                operation=operation,
                url=url,
                status=resp.status_code,
            )
            raise UpstreamUnavailableError(
                f"{operation}: HTTP {resp.status_code}",
                status=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(operation: str, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                f"{operation}: invalid JSON", status=resp.status_code
            ) from e

    @staticmethod
    def _parse_hits(raw: Any) -> list[dict[str, Any]]:
        """``hits`` is a JSON document inside a string field."""
        if isinstance(raw, list):
            return raw
        if not raw:
            return []
        try:
            hits = json.loads(raw)
        except (TypeError, ValueError):
            log.warning("upstream_search_bad_hits")
            return []
        return hits if isinstance(hits, list) else []

    async def _fetch_video(self, slug: str) -> dict[str, Any] | None:
        resp = await self._request(
            "video",
            "GET",
            f"{self._api_url}/api/v8/video",
            params={"id": slug},
        )
        if resp.status_code == 404:
            log.debug("upstream_video_not_found", slug=slug)
            return None
        if resp.status_code != 200:
            raise UpstreamError(
                f"video: HTTP {resp.status_code}", status=resp.status_code
            )
        data = self._json("video", resp)
        return data if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # Public API (UpstreamClientPort)
    # ------------------------------------------------------------------

    async def search(
        self,
        *,
        query: str = "",
        tags: list[str] | None = None,
        order_by: str | None = "created_at_unix",
        ordering: str | None = "desc",
        page: int = 0,
    ) -> list[dict[str, Any]]:
        body = {
            "search_text": query,
            "tags": tags or [],
            "tags_mode": "AND",
            "brands": [],
            "blacklist": [],
            "order_by": order_by,
            "ordering": ordering,
            "page": page,
        }
        resp = await self._request("search", "POST", self._search_url, json=body)
        if resp.status_code != 200:
            log.warning("upstream_search_non_200", status=resp.status_code)
            return []

        data = self._json("search", resp)
        hits = self._parse_hits(data.get("hits") if isinstance(data, dict) else None)
        log.debug("upstream_search_ok", query=query, page=page, results=len(hits))
        return hits

    async def get_video_data(self, slug: str) -> dict[str, Any] | None:
        if not slug:
            raise InvalidInputError("slug is required")

        data = await self._fetch_video(slug)
        video = data.get("video") if data else None
        if not video:
            log.warning("upstream_video_no_payload", slug=slug)
            return None
        return video

    async def get_video_streams(self, slug: str) -> list[dict[str, Any]]:
        if not slug:
            raise InvalidInputError("slug is required")

        data = await self._fetch_video(slug)
        servers = ((data or {}).get("videos_manifest") or {}).get("servers") or []
        if not servers:
            log.warning("upstream_manifest_invalid", slug=slug)
            return []

        streams = servers[0].get("streams") or []
        log.info(
            "upstream_streams_ok",
            slug=slug,
            total=len(streams),
            valid=sum(1 for s in streams if (s.get("url") or "").strip()),
        )
        return streams

    async def get_authenticated_stream_details(
        self, video_id: str, *, session_token: str
    ) -> dict[str, Any]:
        """Video info plus the streams of every server, as seen by the account."""
        if not video_id:
            raise InvalidInputError("video_id is required")

        resp = await self._request(
            "video_details",
            "GET",
            f"{self._auth_url}/api/v8/videos/{video_id}",
            headers={_SESSION_HEADER: session_token},
        )
        if resp.status_code == 401:
            raise AuthenticationError("session rejected", status=401)
        if resp.status_code != 200:
            raise UpstreamError(
                f"video_details: HTTP {resp.status_code}",
                status=resp.status_code,
            )

        data = self._json("video_details", resp) or {}
        video = data.get("video") or {}
        streams: list[dict[str, Any]] = []
        for server in (data.get("videos_manifest") or {}).get("servers") or []:
            for stream in server.get("streams") or []:
                streams.append(
                    {
                        **stream,
                        "server_name": server.get("name"),
                        "server_id": server.get("id"),
                    }
                )

        return {
            "video_id": video_id,
            "video_info": {
                "name": video.get("name", ""),
                "slug": video.get("slug", ""),
                "duration_in_ms": video.get("duration_in_ms"),
            },
            "streams": streams,
        }

    async def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise InvalidInputError("email and password are required")

        resp = await self._request(
            "login",
            "POST",
            f"{self._auth_url}/api/v8/sessions",
            json={"email": email, "password": password},
        )
        if resp.status_code in (400, 401, 422):
            log.warning("upstream_login_rejected", email=mask_email(email))
            raise AuthenticationError("login rejected", status=resp.status_code)
        if resp.status_code != 200:
            raise UpstreamError(
                f"login: HTTP {resp.status_code}", status=resp.status_code
            )

        data = self._json("login", resp) or {}
        token = data.get("session_token")
        expires = data.get("session_token_expire_time_unix")
        if not token or not expires:
            raise AuthenticationError("login response without session token")

        raw_user = data.get("user") or {}
        user = UpstreamUser(
            id=raw_user.get("id"),
            email=raw_user.get("email", email),
            name=raw_user.get("name", ""),
            is_premium=bool(raw_user.get("is_able_to_access_premium", False)),
            raw=raw_user,
        )
        return LoginResult(session_token=token, expires_at_unix=int(expires), user=user)
