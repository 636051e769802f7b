"""Tagged results returned by cache compute functions.

A compute function tells the cache layer *why* it has nothing to store
instead of returning ``None`` and leaving the cache to guess.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """The upstream returned a usable payload."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """The upstream has no such entity (never cached)."""

    reason: str = ""


@dataclass(frozen=True)
class TransientError:
    """The lookup failed for a reason that may clear up (never cached)."""

    error: BaseException | None = None

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""


Lookup = Union[Found[T], NotFound, TransientError]


def unwrap(result: Any) -> Any:
    """Return the payload of a ``Found``, ``None`` for the other tags.

    Untagged values pass through unchanged.
    """
    if isinstance(result, Found):
        return result.value
    if isinstance(result, (NotFound, TransientError)):
        return None
    return result


def is_cacheable(value: Any) -> bool:
    """Decide whether *value* may be written to a cache.

    Rejects ``None``, the ``NotFound``/``TransientError`` tags and
    structurally empty containers.
    """
    if value is None:
        return False
    if isinstance(value, (NotFound, TransientError)):
        return False
    if isinstance(value, Found):
        return is_cacheable(value.value)
    if isinstance(value, (dict, list, tuple, set, frozenset)) and len(value) == 0:
        return False
    return True
