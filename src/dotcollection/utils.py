from __future__ import annotations

import inspect
import re
from typing import Any, Callable

from .exceptions import InvalidCallbackError

NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
NATURAL_CHUNK_PATTERN = re.compile(r"(\d+)")

_SCALARS = (str, int, float, bool, type(None))
_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def use_as_callable(value: Any) -> bool:
    """Strings are dotted paths, never callbacks."""
    return not isinstance(value, str) and callable(value)


def adapt_callback(callback: Any, *, name: str = "callback") -> Callable[..., Any]:
    """Return ``callback`` wrapped so it only receives the positional arguments it accepts.

    Collection callbacks are always invoked with ``(value, key)`` (or
    ``(carry, value, key)`` for reductions); a one-argument lambda simply
    never sees the key. Only required parameters count, so ``round`` or
    ``int`` are called with the value alone.
    """
    if not callable(callback):
        raise InvalidCallbackError(f"{name} must be callable, got {type(callback).__name__}")
    arity = _positional_arity(callback)
    if arity is None:
        return callback
    return lambda *args: callback(*args[:arity])


def _positional_arity(callback: Callable[..., Any]) -> int | None:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        # builtins without introspectable signatures take the value only
        return 1
    required = optional = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind not in _POSITIONAL:
            continue
        if parameter.default is inspect.Parameter.empty:
            required += 1
        else:
            optional += 1
    # optional parameters (round's ndigits, int's base...) never receive the key
    if required == 0 and optional:
        return 1
    return required


def is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALARS)


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and NUMERIC_PATTERN.match(value) is not None


def truthy(value: Any) -> bool:
    """Truthiness where the string ``"0"`` is false."""
    if isinstance(value, str) and value == "0":
        return False
    return bool(value)


def loose_equals(left: Any, right: Any) -> bool:
    """Loose comparison of two values.

    Scalars are compared after type juggling: booleans and ``None`` compare by
    truthiness, numbers and numeric strings compare numerically. Anything else
    falls back to ``==``.
    """
    if left is right:
        return True
    if not (is_scalar(left) and is_scalar(right)):
        return left == right
    if left is None or right is None:
        other = right if left is None else left
        if isinstance(other, str):
            return other == ""
        return not truthy(other)
    if isinstance(left, bool) or isinstance(right, bool):
        return truthy(left) == truthy(right)
    if is_numeric(left) and is_numeric(right):
        return float(left) == float(right)
    return left == right


def strict_equals(left: Any, right: Any) -> bool:
    """Identical type and equal value."""
    return type(left) is type(right) and left == right


def to_text(value: Any) -> str:
    """String conversion used when joining or searching values."""
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    return str(value)


def natural_key(value: Any) -> tuple[Any, ...]:
    """Sort key that orders ``"item2"`` before ``"item10"``."""
    parts = NATURAL_CHUNK_PATTERN.split(to_text(value))
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts if part)


def to_number(value: Any) -> int | float:
    """Numeric value used when summing; non-numeric values count as zero."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and is_numeric(value):
        try:
            return int(value)
        except ValueError:
            return float(value)
    return 0
