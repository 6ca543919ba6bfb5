"""
Traversal value handles.

Every step of a pointer traversal wraps the value it lands on in a
``ValueHandle`` that records what kind of value it is and, when the value's
storage can be written in place, a ``Slot`` pointing at that storage.

Mutable containers reached through an unbroken chain of slots are edited in
place. Containers without a slot (a dict returned by a getter, a tuple, a
mapping proxy) are copied on write and the new value is handed back to the
parent level. Records are always shared by identity.
"""

from __future__ import annotations

import copy
import decimal
import enum
import re
from collections.abc import Iterator, Mapping, MappingView, MutableMapping, MutableSequence, Sequence, Set
from typing import Any, Optional

from .errors import InvalidArgumentDescriptor, OutOfBounds

SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes, bytearray, decimal.Decimal, enum.Enum)

_INDEX_RE = re.compile(r"^(0|[1-9][0-9]*)$")


class Kind(str, enum.Enum):
    SCALAR = "scalar"
    KEYED = "keyed"
    INDEXABLE = "indexable"
    RECORD = "record"


class Slot:
    """A place a value can be assigned back to."""

    def assign(self, value: Any) -> None:
        raise NotImplementedError


class RootSlot(Slot):
    def __init__(self, value: Any):
        self.value = value

    def assign(self, value: Any) -> None:
        self.value = value


class ItemSlot(Slot):
    def __init__(self, container: Any, key: Any):
        self.container = container
        self.key = key

    def assign(self, value: Any) -> None:
        self.container[self.key] = value


class AttributeSlot(Slot):
    def __init__(self, obj: Any, name: str):
        self.obj = obj
        self.name = name

    def assign(self, value: Any) -> None:
        setattr(self.obj, self.name, value)


class IdentitySlot(Slot):
    """Reference to a shared object; shared objects are never reassigned."""

    def __init__(self, obj: Any):
        self.obj = obj

    def assign(self, value: Any) -> None:
        if value is not self.obj:
            raise TypeError("shared objects cannot be replaced through their identity")


def is_item_access_object(value: Any) -> bool:
    if isinstance(value, type):
        return False
    cls = type(value)
    return hasattr(cls, "__getitem__") and hasattr(cls, "__setitem__")


def classify(value: Any) -> Kind:
    if isinstance(value, SCALAR_TYPES):
        return Kind.SCALAR
    if isinstance(value, Mapping):
        return Kind.KEYED
    if isinstance(value, Sequence):
        return Kind.INDEXABLE
    if is_item_access_object(value):
        return Kind.KEYED
    return Kind.RECORD


def is_collection_value(value: Any) -> bool:
    """Whether a value can feed an adder/remover pair."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (Mapping, Sequence, Set, MappingView, Iterator))


def collection_items(value: Any) -> list:
    if isinstance(value, Mapping):
        return list(value.values())
    return list(value)


def sequence_index(token: str) -> Optional[int]:
    if _INDEX_RE.match(token):
        return int(token)
    return None


def mapping_key(mapping: Mapping, token: str) -> Any:
    if token in mapping:
        return token
    index = sequence_index(token)
    if index is not None and index in mapping:
        return index
    return token


class ValueHandle:
    __slots__ = ("value", "kind", "reference", "is_ref_chained")

    def __init__(self, value: Any, kind: Kind, reference: Optional[Slot] = None):
        self.value = value
        self.kind = kind
        self.reference = reference
        self.is_ref_chained = False

    @classmethod
    def create(cls, value: Any) -> "ValueHandle":
        return cls(value, classify(value))

    @property
    def is_container(self) -> bool:
        return self.kind in (Kind.KEYED, Kind.INDEXABLE)

    @property
    def is_record(self) -> bool:
        return self.kind is Kind.RECORD

    @property
    def shared(self) -> bool:
        """Records and item-access objects are shared by identity."""
        if self.kind is Kind.RECORD:
            return True
        return self.kind is Kind.KEYED and not isinstance(self.value, Mapping)

    @property
    def writes_in_place(self) -> bool:
        if self.shared:
            return True
        return self.reference is not None and isinstance(self.value, (MutableMapping, MutableSequence))

    def attach(self, slot: Optional[Slot]) -> "ValueHandle":
        if self.shared:
            self.reference = IdentitySlot(self.value)
        elif self.is_container and slot is not None:
            self.reference = slot
        return self

    def has_item(self, token: str) -> bool:
        value = self.value
        if isinstance(value, Mapping):
            return mapping_key(value, token) in value
        if isinstance(value, Sequence):
            index = sequence_index(token)
            return index is not None and index < len(value)
        try:
            value[token]
        except (KeyError, IndexError, TypeError):
            return False
        return True

    def item_key(self, token: str) -> Any:
        value = self.value
        if isinstance(value, Mapping):
            return mapping_key(value, token)
        if isinstance(value, Sequence):
            index = sequence_index(token)
            if index is None:
                raise OutOfBounds(f"Invalid list index {token!r}")
            return index
        return token

    def get_item(self, token: str) -> Any:
        return self.value[self.item_key(token)]

    def child_slot(self, token: str) -> Optional[Slot]:
        """Slot for a child item, if this container is editable in place."""
        if self.reference is None or not self.writes_in_place:
            return None
        return ItemSlot(self.value, self.item_key(token))

    def working_copy(self) -> Any:
        value = self.value
        if isinstance(value, (MutableMapping, MutableSequence)):
            return copy.copy(value)
        if isinstance(value, Mapping):
            return dict(value)
        return list(value)

    def rebuild(self, working: Any) -> Any:
        """Turn a working copy back into the original container type."""
        original = self.value
        if isinstance(original, tuple):
            if hasattr(original, "_make"):
                return original._make(working)
            if type(original) is tuple:
                return tuple(working)
            return type(original)(working)
        if isinstance(original, Sequence) and not isinstance(original, MutableSequence):
            return tuple(working)
        return working

    def write_item(self, token: str, value: Any, append: bool = False) -> None:
        if self.writes_in_place:
            set_item(self.value, token, value, append)
            return
        working = self.working_copy()
        set_item(working, token, value, append)
        self.value = self.rebuild(working)
        if self.reference is not None:
            self.reference.assign(self.value)

    def __repr__(self) -> str:
        return f"ValueHandle({self.kind.value}, {self.value!r}, ref={self.reference is not None})"


def set_item(container: Any, token: str, value: Any, append: bool = False) -> None:
    if append and not isinstance(container, MutableSequence):
        if hasattr(container, "append") and not isinstance(container, Mapping):
            container.append(value)
            return
        raise InvalidArgumentDescriptor(f"Cannot append to {type(container).__name__}")
    if isinstance(container, Mapping):
        container[mapping_key(container, token)] = value
        return
    if isinstance(container, MutableSequence):
        if append:
            container.append(value)
            return
        index = sequence_index(token)
        if index is None:
            raise OutOfBounds(f"Invalid list index {token!r}")
        if index == len(container):
            container.append(value)
        elif index < len(container):
            container[index] = value
        else:
            raise OutOfBounds(f"Index {index} is out of range for a list of length {len(container)}")
        return
    container[token] = value


def delete_item(container: Any, token: str) -> None:
    if isinstance(container, Mapping):
        container.pop(mapping_key(container, token), None)
        return
    if isinstance(container, MutableSequence):
        index = sequence_index(token)
        if index is not None and index < len(container):
            del container[index]
        return
    try:
        del container[token]
    except KeyError:
        pass


def detached(value: Any) -> Any:
    """Copy nested mappings and sequences; records stay shared."""
    handle = ValueHandle.create(value)
    if not handle.is_container or handle.shared:
        return value
    if isinstance(value, Mapping):
        working = handle.working_copy()
        for key in list(working.keys()):
            working[key] = detached(working[key])
        return working
    working = [detached(item) for item in value]
    if isinstance(value, MutableSequence):
        out = copy.copy(value)
        out[:] = working
        return out
    return handle.rebuild(working)
