from .images import ImagePayload
from .lookup import Found, Lookup, NotFound, TransientError, is_cacheable, unwrap
from .session import CachedSession, LoginResult, UpstreamUser, credentials_hash
from .stremio import (
    ADDON_PREFIX,
    CatalogRequest,
    EntityRef,
    ImageUrls,
    StremioContentType,
    StremioMeta,
    StremioMetaPreview,
    StremioStream,
    StremioVideo,
    UserConfig,
)

__all__ = [
    "ADDON_PREFIX",
    "CachedSession",
    "CatalogRequest",
    "EntityRef",
    "Found",
    "ImagePayload",
    "ImageUrls",
    "LoginResult",
    "Lookup",
    "NotFound",
    "StremioContentType",
    "StremioMeta",
    "StremioMetaPreview",
    "StremioStream",
    "StremioVideo",
    "TransientError",
    "UpstreamUser",
    "UserConfig",
    "credentials_hash",
    "is_cacheable",
    "unwrap",
]
