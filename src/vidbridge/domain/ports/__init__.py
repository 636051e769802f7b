from .cache import MISSING, CachePort, CacheWrapperPort
from .sessions import AuthenticatedSessionPort, SessionProviderPort
from .stremio import StremioTransformerPort
from .upstream import ImageFetcherPort, UpstreamClientPort

__all__ = [
    "MISSING",
    "AuthenticatedSessionPort",
    "CachePort",
    "CacheWrapperPort",
    "ImageFetcherPort",
    "SessionProviderPort",
    "StremioTransformerPort",
    "UpstreamClientPort",
]
