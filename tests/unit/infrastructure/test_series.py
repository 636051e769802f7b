"""Tests for episode parsing and series grouping."""

from __future__ import annotations

import pytest

from vidbridge.infrastructure.stremio.series import (
    EpisodeInfo,
    detect_series,
    parse_episode_info,
    series_episodes,
    series_slug,
)


class TestParseEpisodeInfo:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Some Title 2", EpisodeInfo("Some Title", 2)),
            ("Some Title Episode 3", EpisodeInfo("Some Title", 3)),
            ("Some Title ep. 4", EpisodeInfo("Some Title", 4)),
            ("Some Title - 5", EpisodeInfo("Some Title", 5)),
            ("Some Title – Episode 6", EpisodeInfo("Some Title", 6)),
        ],
    )
    def test_patterns(self, name: str, expected: EpisodeInfo) -> None:
        assert parse_episode_info(name) == expected

    @pytest.mark.parametrize("name", [None, "", "Standalone Title"])
    def test_no_episode_number(self, name: str | None) -> None:
        assert parse_episode_info(name) is None


class TestSeriesSlug:
    def test_slugify(self) -> None:
        assert series_slug("Some  Show!") == "some-show"


class TestDetectSeries:
    def test_groups_two_or_more_sorted(self) -> None:
        videos = [
            {"slug": "b-2", "name": "Show B 2"},
            {"slug": "single", "name": "Lonely 1"},
            {"slug": "b-1", "name": "Show B 1"},
            {"slug": "plain", "name": "Plain"},
        ]

        series = detect_series(videos)

        assert len(series) == 1
        assert series[0].id == "series:show-b"
        assert series[0].base_name == "Show B"
        assert [ep["slug"] for ep in series[0].episodes] == ["b-1", "b-2"]
        assert series[0].episodes[0]["episode_number"] == 1

    def test_series_episodes_accepts_prefixed_and_bare_ids(self) -> None:
        videos = [{"slug": "x-1", "name": "X 1"}, {"slug": "x-2", "name": "X 2"}]
        assert len(series_episodes(videos, "x")) == 2
        assert len(series_episodes(videos, "series:x")) == 2
        assert series_episodes(videos, "y") == []
