from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Iterator

from .coercion import Arrayable, Items, arrayable_items
from .paths import normalize_key

Pair = tuple[Any, Any]


def is_index(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def array_key(value: Any) -> Any:
    """Key a derived value is stored under when used to group or index items."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float):
        return int(value)
    return normalize_key(value)


def reindex(pairs: Iterable[Pair]) -> Items:
    """Renumber integer keys from zero; string keys are kept."""
    result: Items = {}
    index = 0
    for key, value in pairs:
        if is_index(key):
            result[index] = value
            index += 1
        else:
            result[key] = value
    return result


def array_merge(*sources: Mapping[Any, Any]) -> Items:
    """Later string keys overwrite earlier ones; integer keys are appended."""
    return reindex(pair for source in sources for pair in source.items())


def array_slice(
    items: Mapping[Any, Any],
    offset: int,
    length: int | None = None,
    preserve_keys: bool = False,
) -> Items:
    pairs = list(items.items())
    start, end = _bounds(len(pairs), offset, length)
    selected = pairs[start:end]
    return dict(selected) if preserve_keys else reindex(selected)


def array_splice(
    items: Mapping[Any, Any],
    offset: int,
    length: int | None = None,
    replacement: Iterable[Any] = (),
) -> tuple[Items, Items]:
    """Return ``(remaining, removed)`` for the portion cut out of ``items``."""
    pairs = list(items.items())
    start, end = _bounds(len(pairs), offset, length)
    inserted = [(index, value) for index, value in enumerate(replacement)]
    remaining = reindex(pairs[:start] + inserted + pairs[end:])
    return remaining, reindex(pairs[start:end])


def array_chunk(items: Mapping[Any, Any], size: int, preserve_keys: bool = False) -> list[Items]:
    if size < 1:
        raise ValueError("chunk size must be a positive integer")
    pairs = list(items.items())
    chunks: list[Items] = []
    for start in range(0, len(pairs), size):
        chunk = pairs[start : start + size]
        chunks.append(dict(chunk) if preserve_keys else dict(enumerate(value for _, value in chunk)))
    return chunks


def array_flip(items: Mapping[Any, Any]) -> Items:
    # only string and integer values can become keys
    return {
        value: key
        for key, value in items.items()
        if isinstance(value, str) or is_index(value)
    }


def walk_leaves(value: Any) -> Iterator[Any]:
    """Depth-first scalar leaves of nested dicts, lists and collections."""
    if isinstance(value, Arrayable):
        value = arrayable_items(value)
    if isinstance(value, Mapping):
        for item in value.values():
            yield from walk_leaves(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from walk_leaves(item)
    else:
        yield value


def _bounds(count: int, offset: int, length: int | None) -> tuple[int, int]:
    start = offset if offset >= 0 else max(count + offset, 0)
    start = min(start, count)
    if length is None:
        end = count
    elif length < 0:
        end = count + length
    else:
        end = start + length
    return start, max(min(end, count), start)
