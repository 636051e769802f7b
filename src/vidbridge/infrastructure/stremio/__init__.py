"""Pure transforms between upstream payloads and the Stremio protocol."""

from .manifest import build_manifest, is_valid_catalog
from .transform import StremioTransformer

__all__ = ["StremioTransformer", "build_manifest", "is_valid_catalog"]
