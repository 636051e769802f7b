"""Credential-scoped authenticated sessions."""

from .session_store import SESSION_KEY_PREFIX, SessionStore
from .user_session import UserSession

__all__ = ["SESSION_KEY_PREFIX", "SessionStore", "UserSession"]
