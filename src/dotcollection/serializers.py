from __future__ import annotations

import base64
import importlib
import pickle
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Callable

import orjson
import yaml
from pydantic import BaseModel

from .coercion import is_list_like, to_plain
from .exceptions import SerializationError, UnknownFormatError
from .paths import normalize_key

TUPLE_TAG = "!tuple"
MODEL_TAG = "!model"
PICKLE_TAG = "!pickle"


class Serializer(ABC):
    """Abstract interface for translating between collection items and text."""

    name: str

    @abstractmethod
    def dumps(self, data: Mapping[Any, Any], *, options: int = 0) -> str:
        """Encode ``data`` as text."""

    @abstractmethod
    def loads(self, text: str | bytes) -> Any:
        """Decode text produced by :meth:`dumps`."""


class JsonSerializer(Serializer):
    """JSON via orjson.

    Non-string keys are always allowed, non-ASCII characters are written as
    UTF-8 rather than escaped, and ``options`` is OR-ed into the orjson flags
    (``orjson.OPT_INDENT_2``, ``orjson.OPT_SORT_KEYS``...).
    """

    name = "json"

    def dumps(self, data: Mapping[Any, Any], *, options: int = 0) -> str:
        try:
            encoded = orjson.dumps(to_jsonable(data), option=orjson.OPT_NON_STR_KEYS | options)
        except orjson.JSONEncodeError as exc:
            raise SerializationError(f"Cannot encode items as JSON: {exc}") from exc
        return encoded.decode("utf-8")

    def loads(self, text: str | bytes) -> Any:
        try:
            payload = orjson.loads(text)
        except orjson.JSONDecodeError as exc:
            raise SerializationError(f"Invalid JSON: {exc}") from exc
        return _normalize_keys(payload)


class _Dumper(yaml.SafeDumper):
    pass


class _Loader(yaml.SafeLoader):
    pass


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}:{cls.__qualname__}"


def locate(name: str, base: type) -> type:
    """Class stored under ``name`` by :func:`qualified_name`; must subclass ``base``."""
    module_name, _, qualname = name.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
        for attribute in qualname.split("."):
            target = getattr(target, attribute)
    except (ImportError, AttributeError, ValueError) as exc:
        raise SerializationError(f"Cannot locate class '{name}'") from exc
    if not (isinstance(target, type) and issubclass(target, base)):
        raise SerializationError(f"'{name}' is not a {base.__name__} subclass")
    return target


def _represent_tuple(dumper: yaml.SafeDumper, data: tuple[Any, ...]) -> yaml.Node:
    return dumper.represent_sequence(TUPLE_TAG, list(data))


def _construct_tuple(loader: yaml.SafeLoader, node: yaml.Node) -> tuple[Any, ...]:
    return tuple(loader.construct_sequence(node, deep=True))


def _represent_model(dumper: yaml.SafeDumper, model: BaseModel) -> yaml.Node:
    return dumper.represent_mapping(
        MODEL_TAG,
        {"type": qualified_name(type(model)), "data": model.model_dump()},
    )


def _construct_model(loader: yaml.SafeLoader, node: yaml.Node) -> BaseModel:
    state = loader.construct_mapping(node, deep=True)
    return locate(state["type"], BaseModel).model_validate(state["data"])


def _represent_opaque(dumper: yaml.SafeDumper, obj: Any) -> yaml.Node:
    try:
        payload = pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as exc:
        raise SerializationError(f"Cannot serialize {type(obj).__name__} value: {exc}") from exc
    return dumper.represent_scalar(PICKLE_TAG, base64.b64encode(payload).decode("ascii"))


def _construct_opaque(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
    payload = base64.b64decode(loader.construct_scalar(node))
    # blobs are only ever produced by serialize(); never feed untrusted text here
    return pickle.loads(payload)  # noqa: S301


_Dumper.add_representer(tuple, _represent_tuple)
_Loader.add_constructor(TUPLE_TAG, _construct_tuple)
_Dumper.add_multi_representer(BaseModel, _represent_model)
_Loader.add_constructor(MODEL_TAG, _construct_model)
# anything without a more specific representer
_Dumper.add_multi_representer(object, _represent_opaque)
_Loader.add_constructor(PICKLE_TAG, _construct_opaque)


class YamlSerializer(Serializer):
    """YAML blob that restores the exact items: key types, order and nesting.

    Tuples, pydantic models and types registered with
    :func:`register_yaml_type` get their own tags; any other object that is
    not plain YAML data is pickled into a ``!pickle`` scalar. Like pickle
    itself, :meth:`loads` must only be given blobs from a trusted source.
    """

    name = "yaml"

    def dumps(self, data: Mapping[Any, Any], *, options: int = 0) -> str:
        try:
            return yaml.dump(dict(data), Dumper=_Dumper, allow_unicode=True, sort_keys=False)
        except yaml.YAMLError as exc:
            raise SerializationError(f"Cannot serialize items: {exc}") from exc

    def loads(self, text: str | bytes) -> Any:
        try:
            payload = yaml.load(text, Loader=_Loader)
        except yaml.YAMLError as exc:
            raise SerializationError(f"Cannot unserialize blob: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise SerializationError("Serialized blob did not produce a mapping")
        return payload


def register_yaml_type(
    cls: type,
    tag: str,
    to_data: Callable[[Any], Mapping[Any, Any]],
    from_data: Callable[[dict[Any, Any]], Any],
) -> None:
    """Teach the YAML serializer to round-trip instances of ``cls`` under ``tag``."""

    def _represent(dumper: yaml.SafeDumper, obj: Any) -> yaml.Node:
        return dumper.represent_mapping(tag, to_data(obj))

    def _construct(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
        return from_data(loader.construct_mapping(node, deep=True))

    _Dumper.add_multi_representer(cls, _represent)
    _Loader.add_constructor(tag, _construct)


SERIALIZER_REGISTRY: Mapping[str, type[Serializer]] = {
    "json": JsonSerializer,
    "yaml": YamlSerializer,
    "yml": YamlSerializer,
}


def resolve_serializer(name: str) -> Serializer:
    try:
        serializer_cls = SERIALIZER_REGISTRY[name.lower()]
    except KeyError as exc:
        raise UnknownFormatError(f"Unsupported format '{name}'") from exc
    return serializer_cls()


def to_jsonable(value: Any) -> Any:
    """Plain data where list-like mappings become JSON arrays."""
    return _arrays_for_lists(to_plain(value))


def _arrays_for_lists(value: Any) -> Any:
    if isinstance(value, Mapping):
        if is_list_like(value):
            return [_arrays_for_lists(item) for item in value.values()]
        return {key: _arrays_for_lists(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_arrays_for_lists(item) for item in value]
    return value


def _normalize_keys(value: Any) -> Any:
    # decoded object keys that look like integers become integers again
    if isinstance(value, dict):
        return {normalize_key(key): _normalize_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value
