"""
Ordered key/value collections with dotted-path access.

The public API centers around :class:`Collection`, a mutable ordered container
that treats list-like and map-like data the same way and offers a fluent set
of transformations (map, filter, group, sort...) plus JSON and YAML
(de)serialization.
"""

from .coercion import Arrayable
from .collection import Collection, Cursor, SortFlag, collect
from .paths import MISSING

__all__ = (
    "Arrayable",
    "Collection",
    "Cursor",
    "MISSING",
    "SortFlag",
    "collect",
)
