"""Image proxy: CDN fetch with backoff, dedup ledger, fetch queue."""

from .cdn_resolver import CdnUrlResolver
from .fetcher import HttpxImageFetcher
from .pipeline import ImageProxyPipeline
from .queue import ImageQueue

__all__ = [
    "CdnUrlResolver",
    "HttpxImageFetcher",
    "ImageProxyPipeline",
    "ImageQueue",
]
