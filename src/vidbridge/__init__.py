"""vidbridge - Stremio addon adapter with tiered caching and session reuse."""

__version__ = "0.1.0"
