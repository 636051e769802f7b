"""httpx transport that backs off and retries when the upstream blocks (403)."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
import structlog

from vidbridge.infrastructure.common.backoff import schedule_delay

log = structlog.get_logger(__name__)

_DEFAULT_RETRYABLE = frozenset({403})


class BlockRetryTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx transport with retry on anti-bot blocks.

    The upstream answers bursts with 403 instead of 429, so 403 is the
    retryable status. Delays follow a fixed *schedule* (seconds per attempt)
    plus ``uniform(0, jitter)``; after *max_retries* retries the last
    response is returned as-is and the caller decides what a 403 means.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        *,
        max_retries: int = 2,
        schedule: Sequence[float] = (2.0, 5.0, 10.0),
        jitter: float = 1.0,
        retryable_status_codes: frozenset[int] = _DEFAULT_RETRYABLE,
    ) -> None:
        self._wrapped = wrapped
        self._max_retries = max_retries
        self._schedule = tuple(schedule)
        self._jitter = jitter
        self._retryable = retryable_status_codes

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request* through the wrapped transport, retrying blocks."""
        last_response: httpx.Response | None = None

        for attempt in range(1 + self._max_retries):
            response = await self._wrapped.handle_async_request(request)

            if response.status_code not in self._retryable:
                return response

            # Last attempt - return whatever we got
            if attempt == self._max_retries:
                return response

            # Read + close the blocked response before retrying
            last_response = response
            await last_response.aread()
            await last_response.aclose()

            delay = schedule_delay(self._schedule, attempt, self._jitter)
            log.debug(
                "upstream_blocked_retry",
                url=str(request.url),
                status=response.status_code,
                attempt=attempt + 1,
                max_retries=self._max_retries,
                delay=round(delay, 2),
            )
            await asyncio.sleep(delay)

        # Unreachable, but satisfies type checker
        assert last_response is not None
        return last_response  # pragma: no cover

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self._wrapped.aclose()
