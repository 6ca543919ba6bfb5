"""
Pointer-path traversal over mixed container/record graphs.

``PathAccessor`` reads and writes values addressed by JSON Pointers. Mappings
and sequences are indexed directly; any other object is treated as a record
whose properties are reached through the accessor chosen by
``CapabilityResolver``.

Writes read the path down to the parent of the target, then walk the visited
handles backwards writing the new value into each level until a level is
reached whose storage is already shared with its ancestors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Dict, List, Optional, Tuple, Union

from .capabilities import AccessDecision, AccessKind, CapabilityResolver, camelize
from .errors import InvalidArgumentDescriptor, NoSuchProperty, PatchError, UnexpectedType
from .pointer import APPEND_TOKEN, PointerPath
from .values import (
    AttributeSlot,
    RootSlot,
    ValueHandle,
    collection_items,
    is_collection_value,
    set_item,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, PointerPath]


class PathAccessor:
    """
    Reads and writes values by JSON Pointer.

    Args:
        cache: optional external ``DecisionCache`` for resolved accessors
        resolver: a preconfigured ``CapabilityResolver`` (takes precedence over ``cache``)
        singularizer: singular-form provider for adder/remover lookup
    """

    def __init__(self, cache=None, resolver: Optional[CapabilityResolver] = None, singularizer=None):
        self.resolver = resolver or CapabilityResolver(cache=cache, singularizer=singularizer)
        self._paths: Dict[str, PointerPath] = {}

    def path(self, path: PathLike) -> PointerPath:
        if isinstance(path, PointerPath):
            return path
        parsed = self._paths.get(path)
        if parsed is None:
            parsed = PointerPath.parse(path)
            self._paths[path] = parsed
        return parsed

    def get_value(self, host: Any, path: PathLike) -> Any:
        path = self.path(path)
        if not len(path):
            return host
        handles = self._read_until(ValueHandle.create(host), path, len(path))
        return handles[-1].value

    def set_value(self, host: Any, path: PathLike, value: Any) -> Any:
        """Write ``value`` at ``path`` and return the (possibly replaced) root."""
        path = self.path(path)
        if not len(path):
            return value

        append = path.appends
        root = ValueHandle.create(host)
        root_slot = RootSlot(host)
        root.reference = root_slot
        root.is_ref_chained = True

        handles = self._read_until(root, path, len(path) - 1, vivify=True)
        count = len(handles)

        for i in range(count - 1, -1, -1):
            handle = handles[i]
            token = path.element(i)

            if handle.is_container:
                if append and i == count - 1:
                    handle.write_item(token, value, append=True)
                    append = False
                elif append and i == count - 2:
                    raise InvalidArgumentDescriptor("Cannot append to a non-array object")
                else:
                    handle.write_item(token, value)
            else:
                if append and i == count - 1:
                    if i == 0:
                        raise InvalidArgumentDescriptor("Cannot append to a non-array object")
                    continue
                if append and i == count - 2:
                    self._append_with_adder(handle, token, value)
                    append = False
                else:
                    self._write_property(handle, token, value)

            # Shared objects and unbroken reference chains already expose the
            # change to every ancestor.
            if handle.shared or handle.is_ref_chained:
                break

            value = handle.value

        return root_slot.value

    def handle(self, host: Any, path: PathLike) -> ValueHandle:
        """Read ``path`` and return its handle, including whether it is live storage."""
        path = self.path(path)
        root = ValueHandle.create(host)
        root.reference = RootSlot(host)
        root.is_ref_chained = True
        if not len(path):
            return root
        return self._read_until(root, path, len(path))[-1]

    def is_readable(self, host: Any, path: PathLike) -> bool:
        readable, _ = self.probe(host, path)
        return readable

    def probe(self, host: Any, path: PathLike) -> Tuple[bool, Any]:
        """Read ``path`` and report ``(found, value)`` instead of raising on a miss."""
        path = self.path(path)
        if not len(path):
            return True, host
        try:
            handles = self._read_until(ValueHandle.create(host), path, len(path))
        except (UnexpectedType, NoSuchProperty):
            return False, None
        return True, handles[-1].value

    def is_writable(self, host: Any, path: PathLike) -> bool:
        path = self.path(path)
        if not len(path):
            return True
        try:
            handles = self._read_until(ValueHandle.create(host), path, len(path) - 1)
        except (UnexpectedType, NoSuchProperty):
            return False

        parent = handles[-1]
        if parent.is_container:
            return True
        if not parent.is_record:
            return False
        return self._is_property_writable(parent.value, path.last)

    def _read_until(self, handle: ValueHandle, path: PointerPath, last_index: int, vivify: bool = False) -> List[ValueHandle]:
        if not (handle.is_container or handle.is_record):
            raise UnexpectedType(
                f'Expected argument of type "object or array", "{type(handle.value).__name__}" given '
                f'at property path "{path}"'
            )

        handles = [handle]
        length = len(path)
        for i in range(last_index):
            token = path.element(i)
            more = i + 1 < length

            if handle.is_container:
                next_token = path.element(i + 1) if more else None
                child = self._read_index(handle, token, next_token, vivify)
            else:
                child = self._read_property(handle, token)

            # The final value of the path may be anything.
            if more and not (child.is_container or child.is_record):
                raise UnexpectedType(
                    f'Expected argument of type "object or array", "{type(child.value).__name__}" given '
                    f'at property path "{path}" (token {i + 1})'
                )

            child.is_ref_chained = child.reference is not None and handle.is_ref_chained
            handles.append(child)
            handle = child

        return handles

    def _read_index(self, handle: ValueHandle, token: str, next_token: Optional[str], vivify: bool) -> ValueHandle:
        if handle.has_item(token):
            return ValueHandle.create(handle.get_item(token)).attach(handle.child_slot(token))

        if next_token is None:
            return ValueHandle.create(None)

        # Missing intermediate containers are created on demand.
        empty: Any = [] if next_token == APPEND_TOKEN else {}
        if vivify and handle.reference is not None and handle.writes_in_place:
            set_item(handle.value, token, empty)
            return ValueHandle.create(empty).attach(handle.child_slot(token))
        return ValueHandle.create(empty)

    def _read_property(self, handle: ValueHandle, prop: str) -> ValueHandle:
        obj = handle.value
        decision = self.resolver.read_access(type(obj), prop)
        by_reference = decision.by_reference

        if decision.kind is AccessKind.NOT_FOUND:
            name = self._instance_attribute(obj, prop, decision)
            if name is None:
                raise NoSuchProperty(decision.message)
            by_reference = True
        else:
            name = decision.name

        try:
            if decision.kind is AccessKind.METHOD:
                value = getattr(obj, name)()
            else:
                value = getattr(obj, name)
        except PatchError:
            raise
        except (AttributeError, TypeError) as exc:
            raise NoSuchProperty(f'Property "{prop}" is not accessible on "{type(obj).__qualname__}": {exc}') from exc

        slot = None
        if by_reference and decision.kind is not AccessKind.METHOD and handle.reference is not None:
            slot = AttributeSlot(obj, name)
        return ValueHandle.create(value).attach(slot)

    def _instance_attribute(self, obj: Any, prop: str, decision: AccessDecision) -> Optional[str]:
        """Dynamic instance attributes, for objects without declared fields."""
        if decision.has_explicit_field:
            return None
        attributes = getattr(obj, "__dict__", None)
        if not isinstance(attributes, dict):
            return None
        if prop in attributes:
            return prop
        camelized = camelize(prop)
        if camelized in attributes:
            return camelized
        return None

    def _write_property(self, handle: ValueHandle, prop: str, value: Any) -> None:
        obj = handle.value
        decision = self.resolver.write_access(type(obj), prop, value)

        if decision.kind is AccessKind.NOT_FOUND:
            name = self._instance_attribute(obj, prop, decision)
            if name is None:
                raise NoSuchProperty(f'Could not determine access type for property "{prop}". {decision.message}')
        else:
            name = decision.name

        try:
            if decision.kind is AccessKind.ADDER_REMOVER:
                self._write_collection(handle, prop, value, decision.adder, decision.remover)
            elif decision.kind is AccessKind.METHOD:
                getattr(obj, name)(value)
            else:
                setattr(obj, name, value)
        except PatchError:
            raise
        except (AttributeError, TypeError) as exc:
            raise NoSuchProperty(f'Property "{prop}" cannot be written on "{type(obj).__qualname__}": {exc}') from exc

    def _append_with_adder(self, handle: ValueHandle, prop: str, value: Any) -> None:
        obj = handle.value
        decision = self.resolver.write_access(type(obj), prop, [value])
        if decision.kind is not AccessKind.ADDER_REMOVER:
            raise InvalidArgumentDescriptor("Cannot append to a non-array object")
        getattr(obj, decision.adder)(value)

    def _write_collection(self, handle: ValueHandle, prop: str, collection: Any, adder: str, remover: str) -> None:
        """Sync a collection property through its adder and remover.

        Items present in both the current and the new collection are left
        alone, so neither method is called for them.
        """
        obj = handle.value
        previous = self._read_property(handle, prop).value
        if isinstance(previous, Iterator) or is_collection_value(previous):
            previous_items = collection_items(previous)
        else:
            previous_items = []

        items = collection_items(collection)

        kept = []
        for item in previous_items:
            if _strictly_contains(items, item):
                kept.append(item)
                continue
            getattr(obj, remover)(item)

        for item in items:
            if _strictly_contains(kept, item):
                continue
            getattr(obj, adder)(item)

    def _is_property_writable(self, obj: Any, prop: str) -> bool:
        decision = self.resolver.write_access(type(obj), prop, [])
        if decision.found:
            return True
        return self._instance_attribute(obj, prop, decision) is not None


def _strictly_contains(items: List[Any], item: Any) -> bool:
    shared = ValueHandle.create(item).shared
    for candidate in items:
        if candidate is item:
            return True
        if not shared and type(candidate) is type(item) and candidate == item:
            return True
    return False
