from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

import orjson
import pytest
import yaml
from pydantic import BaseModel

from dotcollection import Collection
from dotcollection.exceptions import SerializationError, UnknownFormatError
from dotcollection.serializers import SERIALIZER_REGISTRY, JsonSerializer, YamlSerializer, resolve_serializer


class Point(BaseModel):
    x: int
    y: int


class Box:
    def __init__(self, label: str) -> None:
        self.label = label


class Settings(Collection):
    pass


def test_to_json_encodes_list_like_items_as_arrays() -> None:
    assert Collection([1, 2, 3]).to_json() == "[1,2,3]"
    assert Collection().to_json() == "[]"
    assert Collection({1: "a", 3: "b"}).to_json() == '{"1":"a","3":"b"}'
    assert Collection({"inner": Collection([1, 2])}).to_json() == '{"inner":[1,2]}'


def test_to_json_keeps_unicode_unescaped() -> None:
    items = Collection({"name": "Ünïcode ✓"})

    assert items.to_json() == '{"name":"Ünïcode ✓"}'
    assert str(items) == items.to_json()


def test_to_json_accepts_orjson_options() -> None:
    assert Collection({"a": 1}).to_json(orjson.OPT_INDENT_2) == '{\n  "a": 1\n}'


def test_to_json_flattens_models() -> None:
    items = Collection({"point": Point(x=1, y=2)})

    assert items.to_array() == {"point": {"x": 1, "y": 2}}
    assert items.json_serialize() == items.to_array()
    assert items.to_json() == '{"point":{"x":1,"y":2}}'


def test_json_round_trip() -> None:
    data = {
        "name": "x",
        "tags": ["a", "b"],
        "meta": {"n": 1.5, "ok": True, "none": None},
    }

    restored = Collection.from_json(Collection(data).to_json())

    assert restored.all() == data


def test_from_json_restores_integer_keys() -> None:
    assert Collection.from_json('{"0": "a", "x": 1}').all() == {0: "a", "x": 1}
    assert Collection.from_json("[1, 2]").all() == {0: 1, 1: 2}


def test_from_json_rejects_invalid_text() -> None:
    with pytest.raises(SerializationError):
        Collection.from_json("{not json")


def test_serialize_round_trip_is_exact() -> None:
    items = Collection(
        {
            "b": 1,
            0: "zero",
            "nested": {"x": [1, (2, 3)], 5: None},
            "inner": Collection({"k": "v"}),
            "ü": "ß",
        }
    )

    blob = items.serialize()
    restored = Collection()
    restored.unserialize(blob)

    assert list(restored.all()) == ["b", 0, "nested", "inner", "ü"]
    assert restored.get("nested") == {"x": [1, (2, 3)], 5: None}
    assert restored.get("0") == "zero"
    assert restored.get("ü") == "ß"
    inner = restored.get("inner")
    assert isinstance(inner, Collection)
    assert inner.all() == {"k": "v"}


def test_serialize_blob_is_plain_yaml() -> None:
    blob = Collection({"a": {"b": 1}}).serialize()

    assert yaml.safe_load(blob) == {"a": {"b": 1}}


def test_serialize_round_trips_models() -> None:
    items = Collection({"p": Point(x=1, y=2), "points": [Point(x=3, y=4)]})

    blob = items.serialize()
    restored = Collection()
    restored.unserialize(blob)

    assert "!model" in blob
    assert restored.get("p") == Point(x=1, y=2)
    assert restored.get("points") == [Point(x=3, y=4)]


def test_serialize_round_trips_opaque_values() -> None:
    items = Collection({"price": Decimal("9.99"), "ratio": Fraction(1, 3), "box": Box("x")})

    restored = Collection()
    restored.unserialize(items.serialize())

    assert restored.get("price") == Decimal("9.99")
    assert restored.get("ratio") == Fraction(1, 3)
    assert restored.get("box.label") == "x"
    assert isinstance(restored.get("box"), Box)


def test_serialize_rejects_unpicklable_values() -> None:
    with pytest.raises(SerializationError):
        Collection({"fn": lambda: 1}).serialize()


def test_serialize_keeps_subclass_and_separator() -> None:
    items = Collection({"settings": Settings({"a": {"b": 1}}, separator="/")})

    restored = Collection()
    restored.unserialize(items.serialize())

    settings = restored.get("settings")
    assert isinstance(settings, Settings)
    assert settings.separator == "/"
    assert settings.get("a/b") == 1


def test_unserialize_refuses_foreign_classes() -> None:
    blob = "inner: !collection\n  type: 'builtins:dict'\n  separator: .\n  items: {}\n"

    with pytest.raises(SerializationError):
        Collection().unserialize(blob)


def test_unserialize_rejects_non_mapping_blob() -> None:
    with pytest.raises(SerializationError):
        Collection().unserialize("- just\n- a list\n")


def test_serialize_with_json_format() -> None:
    restored = Collection()
    restored.unserialize(Collection({"a": [1, 2]}).serialize("json"), format="json")

    assert restored.all() == {"a": [1, 2]}


def test_unknown_format() -> None:
    with pytest.raises(UnknownFormatError):
        Collection().serialize("xml")
    with pytest.raises(UnknownFormatError):
        resolve_serializer("toml")


def test_registry() -> None:
    assert SERIALIZER_REGISTRY["json"] is JsonSerializer
    assert isinstance(resolve_serializer("YML"), YamlSerializer)
