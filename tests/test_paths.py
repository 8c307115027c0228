from __future__ import annotations

import logging

import pytest

from dotcollection import Collection
from dotcollection.paths import MISSING, data_forget, data_get, data_set, lookup


class Point:
    def __init__(self, x: int) -> None:
        self.x = x


def test_get_nested_value() -> None:
    items = Collection({"a": {"b": 1}})

    assert items.get("a.b") == 1
    assert items.get("a.x", "fallback") == "fallback"
    assert items.get("a.b.c") is None


def test_get_empty_path_returns_all_items() -> None:
    items = Collection({"a": {"b": 1}})

    assert items.get() == {"a": {"b": 1}}
    assert items.get("") == {"a": {"b": 1}}


def test_get_prefers_exact_top_level_key() -> None:
    items = Collection({"a.b": "literal", "a": {"b": "nested"}})

    assert items.get("a.b") == "literal"
    assert items.has("a.b")


def test_lazy_default_only_evaluated_on_miss() -> None:
    calls: list[str] = []
    items = Collection({"a": {"b": 1}})

    def fallback() -> str:
        calls.append("called")
        return "computed"

    assert items.get("a.b", fallback) == 1
    assert calls == []
    assert items.get("missing", fallback) == "computed"
    assert calls == ["called"]


def test_set_get_and_remove_example() -> None:
    items = Collection({"a": {"b": 1}})

    assert items.get("a.b") == 1
    assert items.set("a.c", 2).get("a") == {"b": 1, "c": 2}

    items.rm("a.b")
    assert not items.has("a.b")
    assert items.get("a") == {"c": 2}


@pytest.mark.parametrize(
    "path, value",
    [
        ("a", 1),
        ("a.b.c", "deep"),
        ("list.0", [1, 2]),
        ("mixed.x.0.y", {"z": None}),
    ],
)
def test_set_then_get_round_trip(path: str, value: object) -> None:
    items = Collection({"a": "scalar", "mixed": {"x": "overwritten"}})

    items.set(path, value)

    assert items.get(path) == value


def test_set_creates_levels_and_overwrites_scalars() -> None:
    assert Collection().set("x.y.z", 1).all() == {"x": {"y": {"z": 1}}}
    assert Collection({"a": "scalar"}).set("a.b", 1).all() == {"a": {"b": 1}}


def test_set_empty_path_replaces_items() -> None:
    items = Collection({"a": 1})

    items.set(None, [1, 2])

    assert items.all() == {0: 1, 1: 2}


def test_set_does_not_modify_source_data() -> None:
    source = {"a": {"b": 1}}
    items = Collection(source)

    items.set("a.c", 2)

    assert source == {"a": {"b": 1}}


def test_set_logs_replaced_intermediate(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="dotcollection.paths"):
        Collection({"a": 1}).set("a.b", 2)

    assert "Replacing int value at segment 'a'" in caplog.text


def test_list_segments() -> None:
    items = Collection({"users": [{"name": "ann"}, {"name": "bob"}]})

    assert items.get("users.1.name") == "bob"

    items.set("users.0.name", "amy")
    items.set("users.2.name", "cy")
    assert items.get("users.0.name") == "amy"
    assert items.get("users.2.name") == "cy"
    assert isinstance(items.get("users"), list)

    items.set("users.5", "far")
    assert isinstance(items.get("users"), dict)
    assert items.get("users.5") == "far"


def test_numeric_segments_address_integer_keys() -> None:
    items = Collection(["a", "b"])

    assert items.get("1") == "b"
    assert items.get(1) == "b"
    assert items.has("0")
    assert not items.has("2")


def test_has_on_empty_items_or_none_path() -> None:
    assert not Collection().has("a")
    assert not Collection({"a": 1}).has(None)


def test_rm_is_idempotent() -> None:
    items = Collection({"a": {"b": 1, "c": 2}})

    items.rm("a.b")
    items.rm("a.b")

    assert items.all() == {"a": {"c": 2}}
    assert not items.has("a.b")


def test_rm_missing_intermediate_is_noop() -> None:
    items = Collection({"a": {"b": 1}})

    items.rm("x.y.z")
    items.forget(["a.b.c", "a.q"])

    assert items.all() == {"a": {"b": 1}}


def test_rm_from_nested_list_keeps_indexes() -> None:
    items = Collection({"values": [1, 2, 3]})

    items.rm("values.1")
    items.rm("values.1")

    assert items.get("values") == {0: 1, 2: 3}


def test_pull_reads_then_removes() -> None:
    items = Collection({"a": {"b": 1}})

    pulled = items.pull("a.b")

    assert pulled.all() == {0: 1}
    assert not items.has("a.b")
    assert items.pull("missing", "default").all() == {0: "default"}


def test_object_attributes_and_nested_collections() -> None:
    items = Collection(
        {
            "point": Point(3),
            "inner": Collection({"k": {"v": 5}}),
        }
    )

    assert items.get("point.x") == 3
    assert items.get("point.y", "none") == "none"
    assert items.get("inner.k.v") == 5
    assert items.has("inner.k")


def test_custom_separator_is_inherited() -> None:
    items = Collection({"a": {"b": 1}}, separator="/")

    assert items.get("a/b") == 1
    assert items.set("a/c", 2).get("a/c") == 2

    derived = items.filter()
    assert derived.separator == "/"
    assert derived.get("a/b") == 1


def test_path_functions_return_copies() -> None:
    data = {"a": [10, 20]}

    assert lookup(data, "a.1") == 20
    assert lookup(data, "a.-1") is MISSING
    assert lookup(data, "a.x") is MISSING
    assert data_get(data, "a.9", lambda: "lazy") == "lazy"

    updated = data_set(data, "a.0", 11)
    assert updated == {"a": [11, 20]}
    assert data == {"a": [10, 20]}

    assert data_forget(data, ["a.1", "b.c"]) == {"a": {0: 10}}
    assert data == {"a": [10, 20]}


def test_methods_are_not_readable_as_attributes() -> None:
    items = Collection({"s": {1}, "point": Point(3)})

    assert items.get("s.pop", "default") == "default"
    assert items.get("point.__init__", "default") == "default"
    assert not items.has("s.pop")
    assert items.get("point.x") == 3
