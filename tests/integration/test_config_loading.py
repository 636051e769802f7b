"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from vidbridge.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "VIDBRIDGE_LOG_LEVEL",
        "VIDBRIDGE_CACHE_ENABLED",
        "VIDBRIDGE_REDIS_URL",
        "VIDBRIDGE_PUBLIC_URL",
        "VIDBRIDGE_IMAGE_PROXY_QUEUE_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "environment": "test",
        "logging": {"level": "DEBUG"},
        "cache": {"max_size": 50, "catalog_ttl_seconds": 60},
        "images": {"queue_delay_ms": 250},
        "addon": {"public_url": "https://yaml.test"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "vidbridge"
        assert config.environment == "dev"
        assert config.log_format == "console"
        assert config.cache.enabled is True
        assert config.cache.remote_backend == "none"
        assert config.cache.catalog_ttl_seconds == 7200
        assert config.cache.meta_ttl_seconds == 129_600
        assert config.cache.image_ttl_seconds == 30
        assert config.images.queue_delay_ms == 100
        assert config.session.refresh_buffer_seconds == 300
        assert config.upstream.backoff_schedule_seconds == [2.0, 5.0, 10.0]
        assert config.addon.items_per_page == 48


class TestYamlOverrides:
    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.environment == "test"
        assert config.log_level == "DEBUG"
        assert config.cache.max_size == 50
        assert config.cache.catalog_ttl_seconds == 60
        # untouched keys in the same section keep their defaults
        assert config.cache.meta_ttl_seconds == 129_600
        assert config.images.queue_delay_ms == 250

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)


class TestEnvOverrides:
    def test_env_beats_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VIDBRIDGE_PUBLIC_URL", "https://env.test")
        monkeypatch.setenv("VIDBRIDGE_IMAGE_PROXY_QUEUE_DELAY", "500")
        config = load_config(config_path=yaml_config)
        assert config.addon.public_url == "https://env.test"
        assert config.images.queue_delay_ms == 500

    def test_redis_url_selects_redis_backend(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("VIDBRIDGE_REDIS_URL", "redis://cache:6379/0")
        config = load_config()
        assert config.cache.remote_backend == "redis"
        assert config.cache.redis_url == "redis://cache:6379/0"

    def test_cache_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VIDBRIDGE_CACHE_ENABLED", "false")
        assert load_config().cache.enabled is False

    def test_dotenv_file(self, tmp_path: Path) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("VIDBRIDGE_LOG_LEVEL=ERROR\n", encoding="utf-8")
        try:
            assert load_config(dotenv_path=dotenv).log_level == "ERROR"
        finally:
            os.environ.pop("VIDBRIDGE_LOG_LEVEL", None)

    def test_dotenv_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    def test_cli_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VIDBRIDGE_LOG_LEVEL", "ERROR")
        config = load_config(cli_overrides={"log_level": "WARNING"})
        assert config.log_level == "WARNING"

    def test_cli_public_url(self) -> None:
        config = load_config(cli_overrides={"public_url": "https://cli.test"})
        assert config.addon.public_url == "https://cli.test"


class TestValidation:
    def test_redis_backend_without_url(self) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides={"cache_remote_backend": "redis"})

    def test_negative_ttl_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"cache": {"meta_ttl_seconds": -1}}), "utf-8")
        with pytest.raises(ValidationError):
            load_config(config_path=path)
