"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "vidbridge",
    "environment": "dev",
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "enabled": True,
        "max_size": 1000,
        "remote_backend": None,  # Derived from redis_url in schema.py
        "catalog_ttl_seconds": 2 * 60 * 60,
        "meta_ttl_seconds": 36 * 60 * 60,
        "stream_ttl_seconds": 36 * 60 * 60,
        "image_ttl_seconds": 30,
    },
    "images": {
        "queue_enabled": True,
        "queue_delay_ms": 100,
        "fetch_timeout_seconds": 10.0,
    },
    "session": {
        "refresh_buffer_seconds": 300,
        "cache_safety_seconds": 300,
    },
    "upstream": {
        "timeout_seconds": 30.0,
        "max_retries": 2,
    },
    "addon": {
        "items_per_page": 48,
    },
}
