"""Decode the per-install user configuration segment of addon URLs."""

from __future__ import annotations

import base64
import binascii
import json

from vidbridge.domain.entities.stremio import UserConfig
from vidbridge.domain.exceptions import InvalidInputError


def decode_user_config(segment: str) -> UserConfig:
    """URL-safe base64 JSON ``{"email": ..., "password": ...}`` -> UserConfig.

    Missing padding is tolerated. Unknown keys are ignored.

    Raises:
        InvalidInputError: If the segment is not base64 JSON of an object.
    """
    if not segment:
        return UserConfig()

    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw)
    except (UnicodeError, binascii.Error, ValueError) as e:
        raise InvalidInputError("malformed user config") from e

    if not isinstance(data, dict):
        raise InvalidInputError("user config must be a JSON object")

    email = data.get("email") or ""
    password = data.get("password") or ""
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidInputError("user config email/password must be strings")
    return UserConfig(email=email.strip(), password=password)


def encode_user_config(config: UserConfig) -> str:
    """Inverse of ``decode_user_config`` (unpadded)."""
    raw = json.dumps({"email": config.email, "password": config.password})
    return base64.urlsafe_b64encode(raw.encode()).decode("ascii").rstrip("=")
