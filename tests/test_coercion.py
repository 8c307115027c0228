from __future__ import annotations

from pydantic import BaseModel

from dotcollection import Arrayable, Collection
from dotcollection.coercion import coerce, is_list_like, next_index, to_plain


class Point(BaseModel):
    x: int
    y: int


class Bag(Arrayable):
    def __init__(self, *contents: str) -> None:
        self.contents = contents

    def to_array(self) -> list[str]:
        return list(self.contents)


def test_coerce_inputs() -> None:
    assert coerce(None) == {}
    assert coerce([1, 2]) == {0: 1, 1: 2}
    assert coerce((1,)) == {0: 1}
    assert coerce({"a": 1}) == {"a": 1}
    assert coerce("text") == {0: "text"}
    assert coerce(5) == {0: 5}
    assert coerce(x for x in "ab") == {0: "a", 1: "b"}


def test_coerce_collections_arrayables_and_models() -> None:
    source = Collection({"a": {"b": 1}})

    copied = coerce(source)
    copied["c"] = 2

    assert copied == {"a": {"b": 1}, "c": 2}
    assert source.all() == {"a": {"b": 1}}
    assert Collection(Bag("a", "b")).all() == {0: "a", 1: "b"}
    assert Collection(Point(x=1, y=2)).all() == {"x": 1, "y": 2}


def test_to_plain_is_recursive() -> None:
    nested = {"bag": Bag("z"), "items": [Collection({"p": Point(x=0, y=1)})]}

    assert to_plain(nested) == {"bag": ["z"], "items": [{"p": {"x": 0, "y": 1}}]}
    assert Collection(nested).to_array() == to_plain(nested)


def test_list_like_and_next_index() -> None:
    assert is_list_like({})
    assert is_list_like({0: "a", 1: "b"})
    assert not is_list_like({1: "a"})
    assert not is_list_like({0: "a", "x": "b"})
    assert next_index({}) == 0
    assert next_index({"a": 1, 4: 2}) == 5


class Pair:
    def __init__(self, left: int, right: int) -> None:
        self.left = left
        self.right = right

    def to_array(self) -> dict[str, int]:
        return {"left": self.left, "right": self.right}


Arrayable.register(Pair)


def test_registered_arrayables_use_to_array() -> None:
    pair = Pair(1, 2)

    assert isinstance(pair, Arrayable)
    assert coerce(pair) == {"left": 1, "right": 2}
    assert Collection(pair).all() == {"left": 1, "right": 2}
    assert Collection([pair, Pair(3, 4)]).flatten().to_list() == [1, 2, 3, 4]
    assert to_plain({"p": pair}) == {"p": {"left": 1, "right": 2}}
