"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
RemoteBackend = Literal["none", "redis", "diskcache"]

_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseModel):
    """Tiered cache configuration (local TLRU + optional remote tier)."""

    enabled: bool = Field(
        default=True,
        description="Master switch. False = every lookup hits upstream.",
    )
    max_size: int = Field(
        default=1000,
        description="Maximum number of entries in each in-process cache.",
    )
    remote_backend: Optional[RemoteBackend] = Field(
        default=None,
        description=(
            "Second cache tier: 'redis', 'diskcache' or 'none'. "
            "If unset, 'redis' when redis_url is given, else 'none'."
        ),
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (remote_backend=redis).",
    )
    directory: Path = Field(
        default=Path("./.cache/vidbridge"),
        description="Diskcache SQLite path (remote_backend=diskcache).",
    )
    max_concurrent: int = Field(
        default=50,
        description="Max parallel remote-store operations (semaphore limit).",
    )

    catalog_ttl_seconds: int = Field(default=7200, description="Catalog pages.")
    meta_ttl_seconds: int = Field(default=129_600, description="Item metadata.")
    stream_ttl_seconds: int = Field(default=129_600, description="Stream lists.")
    image_ttl_seconds: int = Field(default=30, description="Proxied image bytes.")
    session_ttl_seconds: int = Field(
        default=43_200,
        description="Default local TTL of the user-session cache.",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("max_size", "max_concurrent")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator(
        "catalog_ttl_seconds",
        "meta_ttl_seconds",
        "stream_ttl_seconds",
        "image_ttl_seconds",
        "session_ttl_seconds",
    )
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("TTL must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_backend(self) -> "CacheConfig":
        if self.remote_backend is None:
            self.remote_backend = "redis" if self.redis_url else "none"
        if self.remote_backend == "redis" and not self.redis_url:
            raise ValueError("cache.redis_url is required when remote_backend=redis")
        return self


class ImageProxyConfig(BaseModel):
    """Image proxy pipeline: queue, fetch retry and browser caching."""

    queue_enabled: bool = Field(
        default=True,
        description="Serialize CDN fetches through a single worker queue.",
    )
    queue_delay_ms: int = Field(
        default=100,
        description="Pause between queued fetches (milliseconds).",
    )
    fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout for CDN image fetches.",
    )
    max_retries: int = Field(default=2, description="Retries after a 403.")
    backoff_schedule_seconds: list[float] = Field(
        default=[5.0, 15.0, 30.0],
        description="Base delay per retry attempt (last value repeats).",
    )
    backoff_jitter_seconds: float = Field(
        default=2.0,
        description="Uniform random jitter added to each backoff delay.",
    )
    block_cooldown_seconds: float = Field(
        default=60.0,
        description="Window after a 403 during which a URL gets a pre-fetch pause.",
    )
    browser_cache: bool = Field(
        default=True,
        description="Send long-lived Cache-Control headers on proxied images.",
    )
    browser_cache_max_age: int = Field(default=86_400, description="Seconds.")

    @field_validator("queue_delay_ms", "max_retries")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("fetch_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        return v


class SessionConfig(BaseModel):
    """Authenticated-session handling."""

    refresh_buffer_seconds: int = Field(
        default=300,
        description="Re-login when the token expires within this many seconds.",
    )
    cache_safety_seconds: int = Field(
        default=300,
        description="Session cache TTL = token expiry minus this margin.",
    )


class UpstreamConfig(BaseModel):
    """Upstream video platform endpoints and retry policy."""

    api_url: str = Field(
        default="https://video.example.com",
        description="Base URL of the video/metadata API.",
    )
    search_url: str = Field(
        default="https://search.video.example.com/",
        description="Search endpoint (POST).",
    )
    auth_url: str = Field(
        default="https://auth.video.example.com",
        description="Base URL of the login / authenticated API.",
    )
    origin: str = Field(
        default="https://video.example.com",
        description="Origin/Referer sent with API and CDN requests.",
    )
    user_agent: str = Field(default=_BROWSER_UA)
    timeout_seconds: float = Field(default=30.0)
    max_retries: int = Field(default=2, description="Retries after a 403.")
    backoff_schedule_seconds: list[float] = Field(default=[2.0, 5.0, 10.0])
    backoff_jitter_seconds: float = Field(default=1.0)

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v


class AddonConfig(BaseModel):
    """Stremio manifest fields."""

    id: str = Field(default="community.vidbridge")
    name: str = Field(default="Vidbridge")
    version: str = Field(default="0.1.0")
    description: str = Field(
        default="Browse and stream the upstream video catalog.",
    )
    public_url: str = Field(
        default="http://127.0.0.1:7000",
        description="Externally reachable base URL (image proxy links).",
    )
    items_per_page: int = Field(default=48)


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (logging/cache/images/session/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="vidbridge", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    images: ImageProxyConfig = Field(default_factory=ImageProxyConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    addon: AddonConfig = Field(default_factory=AddonConfig)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        cache = self.cache.model_dump()
        cache["directory"] = str(self.cache.directory)
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": cache,
            "images": self.images.model_dump(),
            "session": self.session.model_dump(),
            "upstream": self.upstream.model_dump(),
            "addon": self.addon.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read VIDBRIDGE_* variables, converts
    them to a dict of set values and merges that over YAML/defaults.

    Supported env var examples (flat, explicit):
    - VIDBRIDGE_LOG_LEVEL
    - VIDBRIDGE_CACHE_ENABLED, VIDBRIDGE_CACHE_MAX_SIZE, VIDBRIDGE_REDIS_URL
    - VIDBRIDGE_IMAGE_PROXY_QUEUE, VIDBRIDGE_IMAGE_PROXY_QUEUE_DELAY
    - VIDBRIDGE_PUBLIC_URL
    """

    model_config = SettingsConfigDict(
        env_prefix="VIDBRIDGE_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_enabled: Optional[bool] = None
    cache_max_size: Optional[int] = None
    cache_remote_backend: Optional[RemoteBackend] = None
    cache_dir: Optional[Path] = None
    redis_url: Optional[str] = None

    image_proxy_queue: Optional[bool] = None
    image_proxy_queue_delay: Optional[int] = None
    browser_cache: Optional[bool] = None

    session_refresh_buffer_seconds: Optional[int] = None

    upstream_api_url: Optional[str] = None
    upstream_search_url: Optional[str] = None
    upstream_auth_url: Optional[str] = None
    upstream_origin: Optional[str] = None

    public_url: Optional[str] = None
    addon_id: Optional[str] = None
    addon_name: Optional[str] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
