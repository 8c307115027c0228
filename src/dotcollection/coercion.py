"""
Normalization of arbitrary inputs into the ordered ``dict`` a collection holds.

Both list-like inputs (``[a, b]``) and map-like inputs (``{"x": a}``) end up as
a ``dict``; lists become ``{0: a, 1: b}`` so that integer and string keys are
handled by the same code paths.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

Items = dict[Any, Any]


class Arrayable(ABC):
    """Interface for objects that can flatten themselves into plain data."""

    @abstractmethod
    def to_array(self) -> Mapping[Any, Any] | Iterable[Any]:
        """Return the object as plain nested dicts/lists."""

    def to_items(self) -> Any:
        """Source used when the object is coerced into collection items."""
        return self.to_array()


def is_arrayable(value: Any) -> bool:
    return isinstance(value, (Arrayable, BaseModel))


def arrayable_items(value: Arrayable) -> Any:
    """Source data of an arrayable.

    Classes added with ``Arrayable.register`` do not inherit ``to_items`` and
    only promise ``to_array``.
    """
    if Arrayable in type(value).__mro__:
        return value.to_items()
    return value.to_array()


def coerce(value: Any) -> Items:
    """Turn ``value`` into an ordered ``dict`` of items.

    ``None`` becomes empty, collections and arrayables are unwrapped, mappings
    are copied, other iterables are indexed from zero and scalars end up as
    the single item under key ``0``.
    """
    if value is None:
        return {}
    if isinstance(value, Arrayable):
        value = arrayable_items(value)
    elif isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (str, bytes, bytearray)):
        return {0: value}
    if isinstance(value, Iterable):
        return dict(enumerate(value))
    return {0: value}


def to_plain(value: Any) -> Any:
    """Recursively replace collections, arrayables and models with dicts/lists."""
    if isinstance(value, Arrayable):
        return to_plain(value.to_array())
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def is_list_like(items: Mapping[Any, Any]) -> bool:
    """True when the keys are exactly ``0..n-1`` in insertion order."""
    for expected, key in enumerate(items):
        if isinstance(key, bool) or key != expected or not isinstance(key, int):
            return False
    return True


def next_index(items: Mapping[Any, Any]) -> int:
    """Key an appended value receives: one past the largest integer key."""
    keys = [key for key in items if isinstance(key, int) and not isinstance(key, bool)]
    return max(keys) + 1 if keys and max(keys) >= 0 else 0
