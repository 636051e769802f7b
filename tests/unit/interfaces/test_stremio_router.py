"""Tests for Stremio addon router endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from vidbridge.domain.entities.stremio import (
    CatalogRequest,
    StremioMeta,
    StremioMetaPreview,
    StremioStream,
    UserConfig,
)
from vidbridge.infrastructure.config.schema import AppConfig
from vidbridge.interfaces.api.stremio.router import _parse_extra, router
from vidbridge.interfaces.api.stremio.user_config import encode_user_config

_PREVIEW = StremioMetaPreview(
    id="vidbridge:a-1", type="anime", name="A 1", release_info="2020"
)
_META = StremioMeta(id="vidbridge:a-1", type="anime", name="A 1")
_STREAM = StremioStream(name="Vidbridge\n1080p", title="t", url="https://cdn.test/s")


def _make_app(
    *,
    catalog_uc: AsyncMock | None = None,
    meta_uc: AsyncMock | None = None,
    stream_uc: AsyncMock | None = None,
) -> FastAPI:
    """Create a minimal FastAPI app with the stremio router."""
    app = FastAPI()
    app.include_router(router)
    app.state.config = AppConfig()
    app.state.catalog_uc = catalog_uc or AsyncMock()
    app.state.meta_uc = meta_uc or AsyncMock()
    app.state.stream_uc = stream_uc or AsyncMock()
    return app


class TestParseExtra:
    def test_parses_query_style_segment(self) -> None:
        assert _parse_extra("genre=Action&skip=48") == {"genre": "Action", "skip": "48"}

    def test_empty(self) -> None:
        assert _parse_extra("") == {}


class TestManifest:
    def test_manifest(self) -> None:
        client = TestClient(_make_app())
        resp = client.get("/manifest.json")

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        body = resp.json()
        assert body["id"] == "community.vidbridge"
        assert body["behaviorHints"]["configured"] is False

    def test_configured_manifest(self) -> None:
        segment = encode_user_config(UserConfig(email="a@b.c", password="pw"))
        client = TestClient(_make_app())
        body = client.get(f"/{segment}/manifest.json").json()
        assert body["behaviorHints"]["configured"] is True


class TestCatalog:
    def test_catalog(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[_PREVIEW])
        client = TestClient(_make_app(catalog_uc=uc))

        body = client.get("/catalog/anime/vidbridge-all.json").json()

        assert body["metas"][0]["id"] == "vidbridge:a-1"
        assert body["metas"][0]["releaseInfo"] == "2020"
        assert body["cacheMaxAge"] == 7200
        uc.execute.assert_awaited_once_with(CatalogRequest(catalog_id="vidbridge-all"))

    def test_catalog_with_extra(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[])
        client = TestClient(_make_app(catalog_uc=uc))

        client.get("/catalog/anime/vidbridge-all/genre=comedy&skip=48.json")

        uc.execute.assert_awaited_once_with(
            CatalogRequest(catalog_id="vidbridge-all", genre="comedy", skip=48)
        )

    def test_catalog_bad_skip(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[])
        client = TestClient(_make_app(catalog_uc=uc))

        client.get("/catalog/anime/vidbridge-all/skip=abc.json")

        assert uc.execute.await_args.args[0].skip == 0

    def test_catalog_error_returns_empty(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(side_effect=RuntimeError("boom"))
        client = TestClient(_make_app(catalog_uc=uc))

        assert client.get("/catalog/anime/vidbridge-all.json").json() == {"metas": []}


class TestMeta:
    def test_meta(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=_META)
        client = TestClient(_make_app(meta_uc=uc))

        body = client.get("/meta/anime/vidbridge:a-1.json").json()

        assert body["meta"]["id"] == "vidbridge:a-1"
        assert "cdn_urls" not in body["meta"]
        uc.execute.assert_awaited_once_with("vidbridge:a-1")

    def test_meta_not_found(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=None)
        client = TestClient(_make_app(meta_uc=uc))
        assert client.get("/meta/anime/vidbridge:x.json").json() == {"meta": None}


class TestStream:
    def test_anonymous(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[_STREAM])
        client = TestClient(_make_app(stream_uc=uc))

        body = client.get("/stream/anime/vidbridge:a-1.json").json()

        assert body["streams"] == [
            {"name": "Vidbridge\n1080p", "title": "t", "url": "https://cdn.test/s"}
        ]
        uc.execute.assert_awaited_once_with("vidbridge:a-1", None)

    def test_configured_passes_user(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[])
        user = UserConfig(email="a@b.c", password="pw")
        client = TestClient(_make_app(stream_uc=uc))

        client.get(f"/{encode_user_config(user)}/stream/anime/vidbridge:a-1.json")

        uc.execute.assert_awaited_once_with("vidbridge:a-1", user)

    def test_malformed_config_is_anonymous(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(return_value=[])
        client = TestClient(_make_app(stream_uc=uc))

        client.get("/garbage!/stream/anime/vidbridge:a-1.json")

        uc.execute.assert_awaited_once_with("vidbridge:a-1", None)

    @pytest.mark.parametrize("exc", [RuntimeError("x"), ValueError("y")])
    def test_error_returns_empty(self, exc: Exception) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(side_effect=exc)
        client = TestClient(_make_app(stream_uc=uc))
        assert client.get("/stream/anime/vidbridge:a-1.json").json() == {
            "streams": []
        }
