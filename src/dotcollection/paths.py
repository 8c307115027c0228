"""
Dotted-path access to nested data.

A path such as ``"users.0.name"`` is split on the separator and resolved one
segment at a time. Reads descend through mappings, sequences, objects that
support ``in``/``[]`` and plain attributes. Writes and deletes only descend
through ``dict``/``list`` containers and rebuild every container along the
path, so the input structure is never modified in place.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, Callable, Iterable

from .utils import is_scalar

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "."
INTEGER_KEY_PATTERN = re.compile(r"^-?(0|[1-9]\d*)$")


class _Missing:
    """Outcome of a lookup that could not be resolved."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def value_of(default: Any) -> Any:
    """Evaluate a lazy default: callables are invoked, other values returned as-is."""
    return default() if callable(default) else default


def normalize_key(segment: Any) -> Any:
    """Integer-looking string segments address integer keys."""
    if isinstance(segment, str) and INTEGER_KEY_PATTERN.match(segment):
        return int(segment)
    return segment


def split_path(path: Any, separator: str = DEFAULT_SEPARATOR) -> list[Any]:
    if isinstance(path, str):
        return path.split(separator)
    return [path]


def is_empty_path(path: Any) -> bool:
    return path is None or path == ""


# Reading -----------------------------------------------------------------
def lookup(target: Any, path: Any, separator: str = DEFAULT_SEPARATOR) -> Any:
    """Resolve ``path`` inside ``target``; returns :data:`MISSING` on failure."""
    for segment in split_path(path, separator):
        target = child(target, segment)
        if target is MISSING:
            return MISSING
    return target


def child(node: Any, segment: Any) -> Any:
    """Value stored under one path segment of ``node``, or :data:`MISSING`."""
    if isinstance(node, Mapping):
        key = _existing_key(node, segment)
        return MISSING if key is MISSING else node[key]
    if _is_sequence(node):
        index = normalize_key(segment)
        if isinstance(index, int) and 0 <= index < len(node):
            return node[index]
        return MISSING
    if _is_array_accessible(node):
        return node[segment] if segment in node else MISSING
    if is_scalar(node) or not isinstance(segment, str) or segment.startswith("_"):
        return MISSING
    found = getattr(node, segment, MISSING)
    # attributes only, never methods
    return MISSING if callable(found) else found


def data_get(
    target: Any,
    path: Any,
    default: Any = None,
    separator: str = DEFAULT_SEPARATOR,
) -> Any:
    """Read ``path`` from ``target``, falling back to the (lazy) ``default``."""
    if path is None:
        return target
    found = lookup(target, path, separator)
    if found is MISSING:
        return value_of(default)
    return found


def data_has(target: Any, path: Any, separator: str = DEFAULT_SEPARATOR) -> bool:
    return lookup(target, path, separator) is not MISSING


def value_retriever(path: Any, separator: str = DEFAULT_SEPARATOR) -> Callable[[Any], Any]:
    """Callback reading ``path`` from each value it receives."""

    def _retrieve(item: Any) -> Any:
        return data_get(item, path, separator=separator)

    return _retrieve


# Writing -----------------------------------------------------------------
def data_set(target: Any, path: Any, value: Any, separator: str = DEFAULT_SEPARATOR) -> Any:
    """Return a copy of ``target`` with ``value`` stored at ``path``.

    Missing intermediate levels are created as dicts. An intermediate value
    that is not a ``dict``/``list`` is replaced by an empty dict.
    """
    return _set_in(target, split_path(path, separator), value)


def _set_in(node: Any, segments: list[Any], value: Any) -> Any:
    head, rest = segments[0], segments[1:]
    if not rest:
        return _assign(node, head, value)
    current = child(node, head)
    if not _is_container(current):
        if current is not MISSING:
            logger.debug("Replacing %s value at segment %r with a mapping", type(current).__name__, head)
        current = {}
    return _assign(node, head, _set_in(current, rest, value))


def _assign(node: Any, segment: Any, value: Any) -> Any:
    if isinstance(node, MutableMapping):
        updated = dict(node)
        key = _existing_key(node, segment)
        updated[normalize_key(segment) if key is MISSING else key] = value
        return updated
    index = normalize_key(segment)
    updated_list = list(node)
    if isinstance(index, int) and 0 <= index < len(updated_list):
        updated_list[index] = value
        return updated_list
    if index == len(updated_list):
        updated_list.append(value)
        return updated_list
    rebuilt = dict(enumerate(updated_list))
    rebuilt[index] = value
    return rebuilt


def data_forget(target: Any, paths: Any, separator: str = DEFAULT_SEPARATOR) -> Any:
    """Return a copy of ``target`` without the given path(s).

    Paths that do not resolve are skipped.
    """
    for path in _as_paths(paths):
        target = _forget_in(target, split_path(path, separator))
    return target


def _forget_in(node: Any, segments: list[Any]) -> Any:
    head, rest = segments[0], segments[1:]
    if not rest:
        return _remove(node, head)
    current = child(node, head)
    if not _is_container(current):
        logger.debug("Nothing to forget below segment %r", head)
        return node
    return _assign(node, head, _forget_in(current, rest))


def _remove(node: Any, segment: Any) -> Any:
    if isinstance(node, MutableMapping):
        key = _existing_key(node, segment)
        if key is MISSING:
            return node
        updated = dict(node)
        del updated[key]
        return updated
    index = normalize_key(segment)
    if isinstance(index, int) and 0 <= index < len(node):
        # keep the remaining indexes stable, as deleting from an array does
        return {position: item for position, item in enumerate(node) if position != index}
    return node


# Helpers -----------------------------------------------------------------
def _as_paths(paths: Any) -> Iterable[Any]:
    if isinstance(paths, (list, tuple, set)):
        return paths
    return (paths,)


def _existing_key(node: Mapping[Any, Any], segment: Any) -> Any:
    try:
        if segment in node:
            return segment
    except TypeError:
        return MISSING
    key = normalize_key(segment)
    if key is not segment and key in node:
        return key
    return MISSING


def _is_sequence(node: Any) -> bool:
    return isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray))


def _is_array_accessible(node: Any) -> bool:
    if is_scalar(node) or isinstance(node, (bytes, bytearray)):
        return False
    return hasattr(node, "__getitem__") and hasattr(node, "__contains__")


def _is_container(node: Any) -> bool:
    return isinstance(node, MutableMapping) or (
        isinstance(node, MutableSequence) and not isinstance(node, bytearray)
    )
