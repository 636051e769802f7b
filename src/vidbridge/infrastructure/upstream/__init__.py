"""Upstream platform HTTP client."""

from .client import HttpxUpstreamClient, build_http_client

__all__ = ["HttpxUpstreamClient", "build_http_client"]
