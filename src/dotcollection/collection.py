from __future__ import annotations

import logging
import random as _random
from collections.abc import Mapping
from enum import IntFlag
from functools import cmp_to_key
from typing import Any, Callable, Iterator

from .arrays import (
    array_chunk,
    array_flip,
    array_key,
    array_merge,
    array_slice,
    array_splice,
    reindex,
    walk_leaves,
)
from .coercion import Arrayable, Items, coerce, is_arrayable, next_index, to_plain
from .paths import (
    DEFAULT_SEPARATOR,
    MISSING,
    child,
    data_forget,
    data_get,
    data_has,
    data_set,
    is_empty_path,
    split_path,
    value_of,
    value_retriever,
)
from .serializers import locate, qualified_name, register_yaml_type, resolve_serializer
from .utils import (
    adapt_callback,
    is_numeric,
    is_scalar,
    loose_equals,
    natural_key,
    strict_equals,
    to_number,
    to_text,
    truthy,
    use_as_callable,
)

logger = logging.getLogger(__name__)

COLLECTION_TAG = "!collection"


class SortFlag(IntFlag):
    """How :meth:`Collection.sort_by` compares derived values."""

    REGULAR = 0
    NUMERIC = 1
    STRING = 2
    NATURAL = 6
    FLAG_CASE = 8


class Collection(Arrayable):
    """Ordered, mutable key/value container with a fluent API.

    Parameters
    ----------
    items:
        Anything :func:`~dotcollection.coercion.coerce` accepts: a mapping, a
        list or other iterable, another collection, an :class:`Arrayable`, a
        pydantic model, a scalar or ``None``.
    separator:
        String splitting paths given to :meth:`get`, :meth:`set`, :meth:`has`,
        :meth:`rm` and every method accepting a path instead of a callback.
        Collections derived from this one inherit it.

    Items live in a ``dict`` keyed by integers and/or strings; a list input
    becomes ``{0: ..., 1: ...}``. Methods that change the items in place
    (``sort``, ``sort_by``, ``transform``, ``shuffle``, ``push``, ``prepend``,
    ``clean``) return the same instance. ``pop``, ``shift`` and ``splice``
    change the instance and return what they removed. Everything else
    returns a new collection.
    """

    def __init__(self, items: Any = None, *, separator: str = DEFAULT_SEPARATOR) -> None:
        self._items: Items = coerce(items)
        self.separator = separator

    @classmethod
    def make(cls, items: Any = None, *, separator: str = DEFAULT_SEPARATOR) -> "Collection":
        return cls(items, separator=separator)

    @classmethod
    def from_json(cls, text: str | bytes, *, separator: str = DEFAULT_SEPARATOR) -> "Collection":
        """Decode JSON text; object keys that look like integers become integers."""
        return cls(resolve_serializer("json").loads(text), separator=separator)

    # Basic access ------------------------------------------------------
    def all(self) -> Items:
        return dict(self._items)

    def to_list(self) -> list[Any]:
        return list(self._items.values())

    def count(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def keys(self) -> "Collection":
        return self._new(list(self._items))

    def values(self) -> "Collection":
        return self._new(self.to_list())

    def first(self, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
        if callback is None:
            return next(iter(self._items.values())) if self._items else value_of(default)
        fn = adapt_callback(callback)
        for key, value in self._items.items():
            if fn(value, key):
                return value
        return value_of(default)

    def last(self, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
        if callback is None:
            return next(reversed(self._items.values())) if self._items else value_of(default)
        fn = adapt_callback(callback)
        for key, value in reversed(self._items.items()):
            if fn(value, key):
                return value
        return value_of(default)

    # Dotted paths ------------------------------------------------------
    def get(self, key: Any = None, default: Any = None) -> Any:
        """Read a value by key or dotted path.

        An empty path returns all items. A top-level key equal to the whole
        path wins over dotted resolution. ``default`` is returned when the
        path does not resolve; a callable default is called first.
        """
        if is_empty_path(key):
            return self.all()
        if self._has_exact(key):
            return self._items[key]
        return data_get(self._items, key, default, self.separator)

    def set(self, key: Any, value: Any) -> "Collection":
        """Store ``value`` at a dotted path, creating missing levels.

        Intermediate values that are not dicts or lists are replaced. An empty
        path replaces every item. Returns a new collection over the updated
        items.
        """
        if is_empty_path(key):
            self._items = coerce(value)
        else:
            self._items = data_set(self._items, key, value, self.separator)
        return self._new(self._items)

    def put(self, key: Any, value: Any) -> "Collection":
        return self.set(key, value)

    def has(self, key: Any) -> bool:
        if not self._items or key is None:
            return False
        if self._has_exact(key):
            return True
        return data_has(self._items, key, self.separator)

    def rm(self, keys: Any) -> None:
        """Remove one path or a list of paths; paths that do not exist are ignored."""
        paths = keys if isinstance(keys, (list, tuple, set)) else [keys]
        for path in paths:
            if self._has_exact(path):
                updated = dict(self._items)
                del updated[path]
                self._items = updated
            else:
                self._items = data_forget(self._items, path, self.separator)

    def forget(self, keys: Any) -> None:
        self.rm(keys)

    def pull(self, key: Any, default: Any = None) -> "Collection":
        """Read a path, remove it, and return the value wrapped in a collection."""
        value = self.get(key, default)
        self.rm(key)
        return self._new(value)

    def get_array(self, key: Any) -> Any:
        return self.get(key, dict)

    def get_string(self, key: Any) -> Any:
        return self.get(key, "")

    get_str = get_string

    def get_integer(self, key: Any) -> Any:
        return self.get(key, 0)

    get_int = get_integer

    def get_boolean(self, key: Any) -> Any:
        return self.get(key, False)

    get_bool = get_boolean

    def equals(self, key: Any, value: Any) -> bool:
        return strict_equals(self.get(key), value)

    def equals_loose(self, key: Any, value: Any) -> bool:
        return loose_equals(self.get(key), value)

    def not_equals(self, key: Any, value: Any) -> bool:
        return not self.equals(key, value)

    def not_equals_loose(self, key: Any, value: Any) -> bool:
        return not self.equals_loose(key, value)

    # Transformations ---------------------------------------------------
    def map(self, callback: Callable[..., Any]) -> "Collection":
        """Apply ``callback(value, key)`` to every item; the result is re-indexed."""
        fn = adapt_callback(callback)
        return self._new([fn(value, key) for key, value in self._items.items()])

    def transform(self, callback: Callable[..., Any]) -> "Collection":
        fn = adapt_callback(callback)
        self._items = {key: fn(value, key) for key, value in self._items.items()}
        return self

    def each(self, callback: Callable[..., Any]) -> "Collection":
        fn = adapt_callback(callback)
        for key, value in list(self._items.items()):
            fn(value, key)
        return self

    def filter(self, callback: Callable[..., Any] | None = None) -> "Collection":
        """Keep the items ``callback(value, key)`` accepts, with their original keys.

        Without a callback, falsy values (including ``"0"``) are dropped.
        """
        if callback is None:
            return self._new({key: value for key, value in self._items.items() if truthy(value)})
        fn = adapt_callback(callback)
        return self._new({key: value for key, value in self._items.items() if fn(value, key)})

    def reject(self, callback: Any) -> "Collection":
        if use_as_callable(callback):
            fn = adapt_callback(callback)
            return self.filter(lambda value, key: not fn(value, key))
        return self.filter(lambda value: not loose_equals(value, callback))

    def where(self, key: Any, value: Any, strict: bool = True) -> "Collection":
        compare = strict_equals if strict else loose_equals
        retrieve = value_retriever(key, self.separator)
        return self.filter(lambda item: compare(retrieve(item), value))

    def where_loose(self, key: Any, value: Any) -> "Collection":
        return self.where(key, value, strict=False)

    def reduce(self, callback: Callable[..., Any], initial: Any = None) -> "Collection":
        """Left fold with ``callback(carry, value, key)``; the result is wrapped."""
        fn = adapt_callback(callback)
        carry = initial
        for key, value in self._items.items():
            carry = fn(carry, value, key)
        return self._new(carry)

    def sum(self, callback: Any = None) -> int | float:
        if callback is None:
            return sum(to_number(value) for value in self._items.values())
        fn = self._retriever(callback)
        return sum(to_number(fn(value, key)) for key, value in self._items.items())

    def group_by(self, group_by: Any) -> "Collection":
        """Bucket values into lists keyed by ``group_by(value, key)`` or a path."""
        fn = self._retriever(group_by)
        results: Items = {}
        for key, value in self._items.items():
            results.setdefault(array_key(fn(value, key)), []).append(value)
        return self._new(results)

    def key_by(self, key_by: Any) -> "Collection":
        fn = self._retriever(key_by)
        return self._new({array_key(fn(value, key)): value for key, value in self._items.items()})

    def lists(self, value: Any, key: Any = None) -> "Collection":
        """Values at ``value`` for every item, optionally keyed by the values at ``key``."""
        retrieve = value_retriever(value, self.separator)
        if key is None:
            return self._new([retrieve(item) for item in self._items.values()])
        retrieve_key = value_retriever(key, self.separator)
        return self._new({array_key(retrieve_key(item)): retrieve(item) for item in self._items.values()})

    pluck = lists

    def fetch(self, key: Any) -> "Collection":
        results = list(self._items.values())
        for segment in split_path(key, self.separator):
            results = [
                found
                for found in (child(coerce(value), segment) for value in results)
                if found is not MISSING
            ]
        return self._new(results)

    def collapse(self) -> "Collection":
        nested = [
            coerce(values)
            for values in self._items.values()
            if isinstance(values, (Mapping, list, tuple)) or is_arrayable(values)
        ]
        return self._new(array_merge(*nested))

    def flatten(self) -> "Collection":
        return self._new(list(walk_leaves(self._items)))

    def flip(self) -> "Collection":
        return self._new(array_flip(self._items))

    def reverse(self) -> "Collection":
        return self._new(reindex(reversed(self._items.items())))

    # Sorting -----------------------------------------------------------
    def sort(self, callback: Callable[[Any, Any], int] | None = None) -> "Collection":
        """Sort values in place with a ``(a, b) -> int`` comparator, keeping keys."""
        if callback is None:
            ordered = sorted(self._items.items(), key=lambda pair: _regular_key(pair[1]))
        else:
            compare = adapt_callback(callback)
            ordered = sorted(
                self._items.items(),
                key=cmp_to_key(lambda left, right: compare(left[1], right[1])),
            )
        self._items = dict(ordered)
        return self

    def sort_by(
        self,
        callback: Any,
        options: int = SortFlag.REGULAR,
        descending: bool = False,
    ) -> "Collection":
        """Stable in-place sort on ``callback(value, key)`` (or a path), keeping keys.

        Only the derived values are compared, never the items themselves.
        """
        fn = self._retriever(callback)
        sort_key = _sort_key(options)
        derived = {key: sort_key(fn(value, key)) for key, value in self._items.items()}
        ordered = sorted(derived, key=derived.__getitem__, reverse=descending)
        self._items = {key: self._items[key] for key in ordered}
        return self

    def sort_by_desc(self, callback: Any, options: int = SortFlag.REGULAR) -> "Collection":
        return self.sort_by(callback, options, descending=True)

    def shuffle(self) -> "Collection":
        values = self.to_list()
        _random.shuffle(values)
        self._items = dict(enumerate(values))
        return self

    # Set operations ----------------------------------------------------
    def diff(self, items: Any) -> "Collection":
        others = list(coerce(items).values())
        return self.filter(lambda value: not _loosely_in(value, others))

    def intersect(self, items: Any) -> "Collection":
        others = list(coerce(items).values())
        return self.filter(lambda value: _loosely_in(value, others))

    def merge(self, items: Any) -> "Collection":
        return self._new(array_merge(self._items, coerce(items)))

    def unique(self) -> "Collection":
        seen: list[Any] = []
        results: Items = {}
        for key, value in self._items.items():
            if not _loosely_in(value, seen):
                seen.append(value)
                results[key] = value
        return self._new(results)

    def contains(self, key: Any, value: Any = MISSING) -> bool:
        if value is not MISSING:
            retrieve = value_retriever(key, self.separator)
            return self.contains(lambda item: loose_equals(retrieve(item), value))
        if use_as_callable(key):
            fn = adapt_callback(key)
            return any(fn(item, item_key) for item_key, item in self._items.items())
        return _loosely_in(key, self._items.values())

    def search(self, value: Any, strict: bool = False) -> Any:
        """Key of the first matching item, or ``None``."""
        if use_as_callable(value):
            fn = adapt_callback(value)
            matches = (key for key, item in self._items.items() if fn(item, key))
        else:
            compare = strict_equals if strict else loose_equals
            matches = (key for key, item in self._items.items() if compare(item, value))
        return next(matches, None)

    # Slicing -----------------------------------------------------------
    def slice(self, offset: int, length: int | None = None, preserve_keys: bool = False) -> "Collection":
        return self._new(array_slice(self._items, offset, length, preserve_keys))

    def take(self, limit: int | None = None) -> "Collection":
        if limit is not None and limit < 0:
            return self.slice(limit, abs(limit))
        return self.slice(0, limit)

    def for_page(self, page: int, per_page: int) -> "Collection":
        return self.slice((page - 1) * per_page, per_page)

    def chunk(self, size: int, preserve_keys: bool = False) -> "Collection":
        return self._new([self._new(chunk) for chunk in array_chunk(self._items, size, preserve_keys)])

    def splice(self, offset: int, length: int | None = 0, replacement: Any = None) -> "Collection":
        """Cut ``length`` items out at ``offset``, inserting ``replacement`` values.

        The removed items are returned as a new collection.
        """
        remaining, removed = array_splice(self._items, offset, length, coerce(replacement).values())
        self._items = remaining
        return self._new(removed)

    def random(self, amount: int = 1) -> "Collection":
        """``amount`` randomly chosen items, keeping their keys and relative order."""
        if not self._items:
            return self._new(None)
        if amount < 1 or amount > len(self._items):
            raise ValueError(
                f"You requested {amount} items, but there are only {len(self._items)} items available."
            )
        chosen = set(_random.sample(list(self._items), amount))
        return self._new({key: value for key, value in self._items.items() if key in chosen})

    # Stack operations --------------------------------------------------
    def push(self, value: Any) -> "Collection":
        self._items[next_index(self._items)] = value
        return self

    def prepend(self, value: Any) -> "Collection":
        self._items = reindex([(0, value), *self._items.items()])
        return self

    def pop(self) -> Any:
        if not self._items:
            return None
        return self._items.pop(next(reversed(self._items)))

    def shift(self) -> Any:
        if not self._items:
            return None
        value = self._items.pop(next(iter(self._items)))
        self._items = reindex(self._items.items())
        return value

    # Cleaning ----------------------------------------------------------
    def clean(self, to_delete: Any = None, case_sensitive: bool = False) -> "Collection":
        """Recursively drop empty values in place.

        When ``to_delete`` is given, values whose text contains it are dropped
        instead.
        """
        self._items = _clean(self._items, to_delete, case_sensitive)
        return self

    def implode(self, value: Any, glue: str | None = None) -> str:
        first = self.first()
        if first is not None and not is_scalar(first):
            return (glue or "").join(to_text(item) for item in self.lists(value).to_list())
        return to_text(value).join(to_text(item) for item in self._items.values())

    # Serialization -----------------------------------------------------
    def to_array(self) -> Items:
        return {key: to_plain(value) for key, value in self._items.items()}

    def to_items(self) -> Items:
        return dict(self._items)

    def json_serialize(self) -> Items:
        return self.to_array()

    def to_json(self, options: int = 0) -> str:
        return resolve_serializer("json").dumps(self._items, options=options)

    def serialize(self, format: str = "yaml") -> str:
        logger.debug("Serializing %d items as %s", len(self._items), format)
        return resolve_serializer(format).dumps(self._items)

    def unserialize(self, serialized: str | bytes, format: str = "yaml") -> None:
        self._items = coerce(resolve_serializer(format).loads(serialized))
        logger.debug("Restored %d items from %s", len(self._items), format)

    def cursor(self) -> "Cursor":
        return Cursor(self)

    # Python protocols --------------------------------------------------
    def __getitem__(self, key: Any) -> Any:
        return self.get(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        self.rm(key)

    def __contains__(self, key: Any) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self._items)

    def __str__(self) -> str:
        return self.to_json()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"

    # Internal helpers --------------------------------------------------
    def _new(self, items: Any) -> "Collection":
        return self.__class__(items, separator=self.separator)

    def _has_exact(self, key: Any) -> bool:
        try:
            return key in self._items
        except TypeError:
            return False

    def _retriever(self, callback: Any) -> Callable[..., Any]:
        if use_as_callable(callback):
            return adapt_callback(callback)
        return adapt_callback(value_retriever(callback, self.separator))


class Cursor:
    """Forward-only cursor over one traversal of a collection.

    The keys are captured when the cursor is created (and again on
    :meth:`rewind`); values are read from the collection as the cursor
    moves. Every cursor is independent, so iterating the collection in any
    other way never moves it.
    """

    def __init__(self, collection: Collection) -> None:
        self._collection = collection
        self._keys: list[Any] = []
        self._position = 0
        self.rewind()

    def current(self) -> Collection | None:
        """Current value wrapped in a collection, or ``None`` when it is empty."""
        if not self.valid():
            return None
        value = self._collection._items.get(self._keys[self._position], MISSING)
        if value is MISSING or not coerce(value):
            return None
        return self._collection._new(value)

    def key(self) -> Any:
        return self._keys[self._position] if self.valid() else None

    def next(self) -> None:
        self._position += 1

    def valid(self) -> bool:
        return self._position < len(self._keys)

    def rewind(self) -> None:
        self._keys = list(self._collection._items)
        self._position = 0


def collect(items: Any = None) -> Collection:
    """Create a collection instance."""
    return Collection.make(items)


def _loosely_in(value: Any, candidates: Any) -> bool:
    return any(loose_equals(value, candidate) for candidate in candidates)


def _clean(container: Any, to_delete: Any, case_sensitive: bool) -> Any:
    pairs = container.items() if isinstance(container, Mapping) else enumerate(container)
    kept: Items = {}
    for key, value in pairs:
        if isinstance(value, (Mapping, list)):
            kept[key] = _clean(value, to_delete, case_sensitive)
        elif isinstance(value, Collection):
            kept[key] = value._new(value).clean(to_delete, case_sensitive)
        elif truthy(to_delete):
            if not _contains_text(value, to_delete, case_sensitive):
                kept[key] = value
        elif truthy(value):
            kept[key] = value
    return kept if isinstance(container, Mapping) else list(kept.values())


def _contains_text(value: Any, needle: Any, case_sensitive: bool) -> bool:
    haystack, fragment = to_text(value), to_text(needle)
    if not case_sensitive:
        haystack, fragment = haystack.casefold(), fragment.casefold()
    return fragment in haystack


def _regular_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, 0)
    if isinstance(value, bool) or is_numeric(value):
        return (1, float(value))
    if isinstance(value, str):
        return (2, value)
    return (3, to_text(value))


def _sort_key(options: int) -> Callable[[Any], Any]:
    case_insensitive = bool(options & SortFlag.FLAG_CASE)
    base = int(options) & ~int(SortFlag.FLAG_CASE)

    def _text(value: Any) -> str:
        text = to_text(value)
        return text.casefold() if case_insensitive else text

    if base == SortFlag.NUMERIC:
        return lambda value: to_number(value) if is_numeric(value) or isinstance(value, bool) else 0
    if base == SortFlag.STRING:
        return _text
    if base == SortFlag.NATURAL:
        return lambda value: natural_key(_text(value))
    return _regular_key


def _collection_state(collection: Collection) -> dict[str, Any]:
    return {
        "type": qualified_name(type(collection)),
        "separator": collection.separator,
        "items": collection.to_items(),
    }


def _restore_collection(state: dict[str, Any]) -> Collection:
    cls = locate(state["type"], Collection)
    return cls(state["items"], separator=state.get("separator", DEFAULT_SEPARATOR))


register_yaml_type(Collection, COLLECTION_TAG, _collection_state, _restore_collection)
