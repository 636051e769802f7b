from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {"logging", "cache", "images", "session", "upstream", "addon"}

# Flat keys (env vars / CLI) -> (section, key)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_enabled": ("cache", "enabled"),
    "cache_max_size": ("cache", "max_size"),
    "cache_remote_backend": ("cache", "remote_backend"),
    "cache_dir": ("cache", "directory"),
    "redis_url": ("cache", "redis_url"),
    "image_proxy_queue": ("images", "queue_enabled"),
    "image_proxy_queue_delay": ("images", "queue_delay_ms"),
    "browser_cache": ("images", "browser_cache"),
    "session_refresh_buffer_seconds": ("session", "refresh_buffer_seconds"),
    "upstream_api_url": ("upstream", "api_url"),
    "upstream_search_url": ("upstream", "search_url"),
    "upstream_auth_url": ("upstream", "auth_url"),
    "upstream_origin": ("upstream", "origin"),
    "public_url": ("addon", "public_url"),
    "addon_id": ("addon", "id"),
    "addon_name": ("addon", "name"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge `override` into `base` and return `base`.

    Rules:
    - dict + dict => deep merge
    - otherwise => override wins
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, Mapping)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a layer (defaults/YAML/ENV/CLI) into the canonical *sectioned* shape.

    Canonical top-level keys: app_name, environment and the sections in
    ``_SECTION_KEYS``. Flat keys from ``_FLAT_MAP`` are moved into their
    section.
    """
    out: dict[str, Any] = {}

    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = dict(data[section])

    if "app_name" in data:
        out["app_name"] = data["app_name"]
    if "environment" in data:
        out["environment"] = data["environment"]

    for flat_key, (section, section_key) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})
            out[section][section_key] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    raw = config_path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration with strict precedence:
    defaults < YAML file < env vars < cli overrides

    This function MUST NOT create files or directories (no filesystem side-effects).
    """
    cli_overrides = cli_overrides or {}

    # Load .env first so it participates as "env vars" layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    base = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(base, _normalize_layer(_read_yaml_config(config_path)))

    _deep_merge(base, _normalize_layer(EnvOverrides().to_update_dict()))
    _deep_merge(base, _normalize_layer(cli_overrides))

    # Validate final merged config (single source of truth).
    return AppConfig.model_validate(base)
