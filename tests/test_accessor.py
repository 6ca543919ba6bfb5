from collections import namedtuple
from dataclasses import dataclass, field
from types import MappingProxyType, SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from unison_patch.accessor import PathAccessor
from unison_patch.errors import (
    InvalidArgumentDescriptor,
    NoSuchProperty,
    OperationNotAllowed,
    OutOfBounds,
    UnexpectedType,
)

Pair = namedtuple("Pair", "left right")


@dataclass
class Settings:
    data: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    owner: Optional[Any] = None


class Box:
    def __init__(self):
        self._meta = {"a": 1}

    def get_meta(self):
        return dict(self._meta)

    def set_meta(self, meta):
        self._meta = meta


class Basket:
    def __init__(self, items=()):
        self._items = list(items)

    def get_items(self):
        return list(self._items)

    def add_item(self, item):
        self._items.append(item)

    def remove_item(self, item):
        self._items.remove(item)


class Stream:
    """Exposes its items only as an iterator."""

    def __init__(self):
        self._items = []

    def get_items(self):
        return iter(self._items)

    def add_item(self, item):
        self._items.append(item)

    def remove_item(self, item):
        self._items.remove(item)


class Catalog:
    def __init__(self, entries):
        self._entries = dict(entries)
        self.calls = []

    def get_entries(self):
        return dict(self._entries)

    def add_entry(self, entry):
        self.calls.append(("add", entry))
        self._entries[max(self._entries, default=0) + 1] = entry

    def remove_entry(self, entry):
        self.calls.append(("remove", entry))
        for key, value in list(self._entries.items()):
            if value == entry:
                del self._entries[key]


class Locked:
    def get_state(self):
        return "open"

    def set_state(self, value):
        raise OperationNotAllowed("state is locked")


class Readonly:
    @property
    def total(self):
        return 3


class Grid:
    """Item-access object that is not a Mapping."""

    def __init__(self):
        self.cells = {}

    def __getitem__(self, key):
        return self.cells[key]

    def __setitem__(self, key, value):
        self.cells[key] = value


@pytest.fixture
def accessor():
    return PathAccessor()


def test_get_nested_values(accessor):
    host = {"a": {"b": [10, {"c": "foo"}]}}
    assert accessor.get_value(host, "/a/b/0") == 10
    assert accessor.get_value(host, "/a/b/1/c") == "foo"
    assert accessor.get_value(host, "") is host


def test_missing_members_read_as_none(accessor):
    host = {"a": {}, "l": [1]}
    assert accessor.get_value(host, "/a/missing") is None
    assert accessor.get_value(host, "/a/x/y") is None
    assert accessor.get_value(host, "/l/5") is None


def test_integer_keys_match_decimal_tokens(accessor):
    host = {1: "one", "2": "two"}
    assert accessor.get_value(host, "/1") == "one"
    assert accessor.get_value(host, "/2") == "two"
    host = accessor.set_value(host, "/1", "uno")
    assert host == {1: "uno", "2": "two"}


def test_descending_through_scalars_fails(accessor):
    with pytest.raises(UnexpectedType):
        accessor.get_value({"a": 1}, "/a/b")
    with pytest.raises(UnexpectedType):
        accessor.get_value(5, "/a")
    with pytest.raises(TypeError):
        accessor.set_value({"a": "text"}, "/a/b", 1)


def test_set_edits_mutable_containers_in_place(accessor):
    host = {"a": {"b": {"c": "foo"}}}
    inner = host["a"]["b"]
    result = accessor.set_value(host, "/a/b/d", 1)
    assert result is host
    assert inner == {"c": "foo", "d": 1}


def test_set_creates_missing_intermediates(accessor):
    host = {}
    accessor.set_value(host, "/x/y", 1)
    accessor.set_value(host, "/list/-", "first")
    assert host == {"x": {"y": 1}, "list": ["first"]}


def test_sequence_writes(accessor):
    host = {"l": [1, 2]}
    accessor.set_value(host, "/l/0", 9)
    accessor.set_value(host, "/l/2", 3)
    accessor.set_value(host, "/l/-", 4)
    assert host == {"l": [9, 2, 3, 4]}

    with pytest.raises(OutOfBounds):
        accessor.set_value(host, "/l/9", 0)
    with pytest.raises(OutOfBounds):
        accessor.set_value(host, "/l/x", 0)


def test_append_to_mapping_is_rejected(accessor):
    with pytest.raises(InvalidArgumentDescriptor):
        accessor.set_value({"m": {}}, "/m/-", 1)


def test_root_path_replaces_the_document(accessor):
    assert accessor.set_value({"a": 1}, "", [1, 2]) == [1, 2]


def test_immutable_containers_are_rebuilt_up_the_chain(accessor):
    host = {"t": (1, 2), "p": Pair(1, 2), "m": MappingProxyType({"a": 1})}
    accessor.set_value(host, "/t/0", 9)
    accessor.set_value(host, "/p/1", 5)
    accessor.set_value(host, "/m/b", 2)
    assert host["t"] == (9, 2)
    assert host["p"] == Pair(1, 5) and isinstance(host["p"], Pair)
    assert host["m"] == {"a": 1, "b": 2}


def test_immutable_root_is_returned_rebuilt(accessor):
    host = ({"a": 1}, 2)
    result = accessor.set_value(host, "/1", 3)
    assert result == ({"a": 1}, 3)
    assert host == ({"a": 1}, 2)

    result = accessor.set_value(result, "/0/b", 2)
    assert result[0] == {"a": 1, "b": 2}


def test_container_from_getter_is_written_back_through_setter(accessor):
    box = Box()
    accessor.set_value(box, "/meta/b", 2)
    assert box.get_meta() == {"a": 1, "b": 2}


def test_container_field_is_edited_in_place(accessor):
    settings = Settings(data={"x": 1})
    data = settings.data
    accessor.set_value(settings, "/data/y", 2)
    accessor.set_value(settings, "/tags/-", "new")
    assert data == {"x": 1, "y": 2}
    assert settings.tags == ["new"]


def test_records_inside_containers_are_shared(accessor):
    settings = Settings()
    host = {"items": [settings]}
    accessor.set_value(host, "/items/0/owner", "ada")
    assert host["items"][0] is settings
    assert settings.owner == "ada"


def test_dynamic_instance_attributes(accessor):
    ns = SimpleNamespace(name="a", nested={"k": 1})
    assert accessor.get_value(ns, "/name") == "a"
    accessor.set_value(ns, "/name", "b")
    accessor.set_value(ns, "/nested/j", 2)
    assert ns.name == "b"
    assert ns.nested == {"k": 1, "j": 2}


def test_unknown_record_property(accessor):
    with pytest.raises(NoSuchProperty) as exc:
        accessor.get_value(Box(), "/unknown")
    assert isinstance(exc.value, AttributeError)

    with pytest.raises(NoSuchProperty, match='Could not determine access type for property "total"'):
        accessor.set_value(Readonly(), "/total", 4)


def test_append_through_adder_on_copied_collection(accessor):
    basket = Basket(["pear"])
    accessor.set_value(basket, "/items/-", "apple")
    assert basket.get_items() == ["pear", "apple"]


def test_append_through_adder_on_iterator_property(accessor):
    stream = Stream()
    accessor.set_value(stream, "/items/-", "apple")
    assert list(stream.get_items()) == ["apple"]


def test_append_to_record_root_is_rejected(accessor):
    with pytest.raises(InvalidArgumentDescriptor):
        accessor.set_value(Settings(), "/-", 1)


def test_collection_write_only_touches_changed_items(accessor):
    catalog = Catalog({1: "second", 3: "fourth", 4: "fifth"})
    accessor.set_value(catalog, "/entries", {1: "first", 2: "second", 3: "third"})

    assert catalog.calls == [
        ("remove", "fourth"),
        ("remove", "fifth"),
        ("add", "first"),
        ("add", "third"),
    ]
    assert sorted(catalog.get_entries().values()) == ["first", "second", "third"]


def test_collection_write_then_empty_removes_everything(accessor):
    basket = Basket(["a", "b"])
    accessor.set_value(basket, "/items", [])
    assert basket.get_items() == []


def test_host_veto_propagates_unchanged(accessor):
    with pytest.raises(OperationNotAllowed, match="locked"):
        accessor.set_value(Locked(), "/state", "closed")


def test_item_access_objects_are_keyed_containers(accessor):
    grid = Grid()
    host = {"grid": grid}
    accessor.set_value(host, "/grid/a1", "x")
    assert host["grid"] is grid
    assert grid.cells == {"a1": "x"}
    assert accessor.get_value(host, "/grid/a1") == "x"


def test_is_readable(accessor):
    host = {"a": {"b": 1}, "box": Box()}
    assert accessor.is_readable(host, "/a/b")
    assert accessor.is_readable(host, "/box/meta")
    assert not accessor.is_readable(host, "/a/b/c")
    assert not accessor.is_readable(host, "/box/nothing")
    assert accessor.probe(host, "/a/b") == (True, 1)


def test_is_writable(accessor):
    host = {"a": {"b": 1}, "box": Box(), "ro": Readonly()}
    assert accessor.is_writable(host, "/a/new")
    assert accessor.is_writable(host, "/box/meta")
    assert not accessor.is_writable(host, "/ro/total")
    assert not accessor.is_writable(host, "/a/b/c")
    assert accessor.is_writable(host, "")


def test_parsed_paths_are_memoized(accessor):
    assert accessor.path("/a/b") is accessor.path("/a/b")
