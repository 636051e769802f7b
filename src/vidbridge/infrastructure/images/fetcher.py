"""CDN image fetcher with 403 backoff and per-URL cooldown."""

from __future__ import annotations

import asyncio
import mimetypes
import random
import time
from collections.abc import Callable, Sequence

import httpx
import structlog

from vidbridge.domain.entities.images import ImagePayload
from vidbridge.domain.exceptions import (
    UpstreamBlockedError,
    UpstreamError,
    UpstreamUnavailableError,
)
from vidbridge.infrastructure.common.backoff import schedule_delay

log = structlog.get_logger(__name__)

_DEFAULT_CONTENT_TYPE = "image/jpeg"

_IMAGE_HEADERS = {
    "Accept": "image/avif,image/webp,image/png,image/svg+xml,image/*;q=0.8,*/*;q=0.5",
    "Accept-Language": "en-US,en;q=0.5",
    "Sec-Fetch-Dest": "image",
    "Sec-Fetch-Mode": "no-cors",
    "Sec-Fetch-Site": "cross-site",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}


def guess_content_type(url: str, header: str | None) -> str:
    """Response header, else a guess from the URL, else ``image/jpeg``."""
    if header:
        return header
    guessed, _ = mimetypes.guess_type(url)
    return guessed or _DEFAULT_CONTENT_TYPE


class HttpxImageFetcher:
    """Fetches image bytes from the CDN.

    Implements ``ImageFetcherPort`` from domain.ports.upstream.

    - On 403 the URL is marked as blocked and retried after
      ``schedule[attempt] + uniform(0, jitter)`` seconds, at most
      *max_retries* times.
    - A URL that was blocked within the last *cooldown* seconds waits
      2-5 s before each attempt, also on a fresh call.
    - Other HTTP errors are not retried.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        origin: str = "",
        user_agent: str = "",
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        schedule: Sequence[float] = (5.0, 15.0, 30.0),
        jitter: float = 2.0,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http_client
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._schedule = tuple(schedule)
        self._jitter = jitter
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._blocked: dict[str, float] = {}  # url -> time of last 403

        self._headers = dict(_IMAGE_HEADERS)
        if user_agent:
            self._headers["User-Agent"] = user_agent
        if origin:
            self._headers["Origin"] = origin
            self._headers["Referer"] = f"{origin.rstrip('/')}/"

    def recently_blocked(self, url: str) -> bool:
        last = self._blocked.get(url)
        return last is not None and self._clock() - last < self._cooldown

    async def fetch(self, url: str) -> ImagePayload:
        for attempt in range(1 + self._max_retries):
            if self.recently_blocked(url):
                wait = random.uniform(2.0, 5.0)  # noqa: S311
                log.debug("image_cooldown_wait", url=url, wait=round(wait, 2))
                await asyncio.sleep(wait)

            log.debug(
                "image_fetch",
                url=url,
                attempt=attempt + 1,
                max_attempts=self._max_retries + 1,
            )
            try:
                resp = await self._http.get(
                    url, headers=self._headers, timeout=self._timeout
                )
            except httpx.TimeoutException as e:
                raise UpstreamUnavailableError(f"image fetch timed out: {url}") from e
            except httpx.HTTPError as e:
                raise UpstreamUnavailableError(f"image fetch failed: {e}") from e

            if resp.status_code == 403:
                self._blocked[url] = self._clock()
                if attempt == self._max_retries:
                    log.debug("image_blocked", url=url, attempts=attempt + 1)
                    raise UpstreamBlockedError(f"image blocked: {url}")

                delay = schedule_delay(self._schedule, attempt, self._jitter)
                log.debug(
                    "image_blocked_retry",
                    url=url,
                    attempt=attempt + 1,
                    delay=round(delay, 2),
                )
                await asyncio.sleep(delay)
                continue

            if resp.status_code >= 400:
                raise UpstreamError(
                    f"image fetch HTTP {resp.status_code}: {url}",
                    status=resp.status_code,
                )

            self._blocked.pop(url, None)
            return ImagePayload(
                content=resp.content,
                content_type=guess_content_type(
                    url, resp.headers.get("content-type")
                ),
            )

        # Unreachable, but satisfies type checker
        raise UpstreamBlockedError(f"image blocked: {url}")  # pragma: no cover

    def stats(self) -> dict[str, int]:
        return {"failed_requests": len(self._blocked)}
