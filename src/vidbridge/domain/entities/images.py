"""Binary image payloads served by the image proxy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus their MIME type."""

    content: bytes
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.content)
