"""Tests for MetaUseCase."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from vidbridge.application.use_cases.meta import MetaUseCase
from vidbridge.domain.exceptions import UpstreamUnavailableError
from vidbridge.domain.ports.cache import MISSING
from vidbridge.infrastructure.cache.tiered import TieredCache
from vidbridge.infrastructure.cache.wrappers import CacheFacade
from vidbridge.infrastructure.stremio.transform import StremioTransformer


@pytest.fixture()
def meta_cache(local_cache: TieredCache) -> CacheFacade:
    return CacheFacade(local_cache, prefix="meta", ttl_seconds=60)


@pytest.fixture()
def use_case(
    mock_upstream: AsyncMock, meta_cache: CacheFacade, transformer: StremioTransformer
) -> MetaUseCase:
    return MetaUseCase(
        upstream=mock_upstream, cache=meta_cache, transformer=transformer
    )


class TestMetaUseCase:
    async def test_video_meta_cached(
        self, use_case: MetaUseCase, mock_upstream: AsyncMock, video_factory
    ) -> None:
        mock_upstream.get_video_data.return_value = video_factory()

        meta = await use_case.execute("vidbridge:some-video-1")
        again = await use_case.execute("vidbridge:some-video-1")

        assert meta is not None
        assert meta.name == "Some Video 1"
        assert again == meta
        mock_upstream.get_video_data.assert_awaited_once_with("some-video-1")

    async def test_series_meta_searches_by_name(
        self, use_case: MetaUseCase, mock_upstream: AsyncMock, video_factory
    ) -> None:
        mock_upstream.search.return_value = [
            video_factory("my-show-1", name="My Show 1"),
            video_factory("my-show-2", name="My Show 2"),
        ]

        meta = await use_case.execute("vidbridge:series:my-show")

        assert meta is not None
        assert len(meta.videos) == 2
        assert mock_upstream.search.await_args.kwargs["query"] == "my show"

    async def test_missing_video_not_cached(
        self, use_case: MetaUseCase, mock_upstream: AsyncMock, meta_cache: CacheFacade
    ) -> None:
        assert await use_case.execute("vidbridge:gone") is None
        assert await meta_cache.peek("vidbridge:gone") is MISSING

    async def test_upstream_failure_returns_none(
        self, use_case: MetaUseCase, mock_upstream: AsyncMock
    ) -> None:
        mock_upstream.get_video_data.side_effect = UpstreamUnavailableError("down")
        assert await use_case.execute("vidbridge:x") is None

    @pytest.mark.parametrize(
        "entity_id", ["tt123", "vidbridge:series:show:show-1", "vidbridge:"]
    )
    async def test_unsupported_ids(
        self, use_case: MetaUseCase, mock_upstream: AsyncMock, entity_id: str
    ) -> None:
        assert await use_case.execute(entity_id) is None
        mock_upstream.get_video_data.assert_not_awaited()
        mock_upstream.search.assert_not_awaited()
