"""
RFC 6902 patch operations built on ``PathAccessor``.

Every operation takes the subject and a descriptor and returns the subject,
which differs from the one passed in only when the root itself was replaced
(e.g. an immutable root container was rebuilt).
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from collections.abc import Iterator, Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Type

from .accessor import PathAccessor
from .errors import InvalidPatchDocument, NoSuchProperty, UnknownOperation
from .values import ValueHandle, delete_item, detached

logger = logging.getLogger(__name__)

_NUMERIC_STRING = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


@dataclass
class PatchOperation:
    op: str
    path: str
    value: Any = None
    from_: Optional[str] = None

    @classmethod
    def coerce(cls, data: Any) -> "PatchOperation":
        if isinstance(data, cls):
            return data
        if isinstance(data, Mapping):
            return cls(op=data.get("op"), path=data.get("path"), value=data.get("value"), from_=data.get("from"))
        return cls(
            op=getattr(data, "op", None),
            path=getattr(data, "path", None),
            value=getattr(data, "value", None),
            from_=getattr(data, "from_", None) or getattr(data, "from", None),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"op": self.op, "path": self.path}
        if self.from_ is not None:
            data["from"] = self.from_
        if self.op in ("add", "replace", "test"):
            data["value"] = self.value
        return data


class Operation:
    name: ClassVar[str]

    def __init__(self, accessor: PathAccessor):
        self.accessor = accessor

    def execute(self, subject: Any, operation: Any) -> Any:
        raise NotImplementedError


class AddOperation(Operation):
    name = "add"

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        return self.accessor.set_value(subject, operation.path, operation.value)


class RemoveOperation(Operation):
    name = "remove"

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        path = self.accessor.path(operation.path)
        if not len(path):
            raise InvalidPatchDocument("Cannot remove the document root.")

        element = path.last
        parent = path.parent()
        handle = self.accessor.handle(subject, parent if parent is not None else "")
        value = handle.value

        if value is None:
            return subject

        if handle.is_container:
            # Delete in place only from storage reached through a live slot.
            if handle.shared or (handle.is_ref_chained and isinstance(value, (MutableMapping, MutableSequence))):
                delete_item(value, element)
            else:
                working = handle.working_copy()
                delete_item(working, element)
                value = handle.rebuild(working)
        elif isinstance(value, Iterator):
            value = list(value)
            delete_item(value, element)
        elif self.accessor.is_writable(subject, path):
            return self.accessor.set_value(subject, path, None)
        else:
            raise InvalidPatchDocument(f'Cannot remove "{element}": path does not represent a collection.')

        if parent is None:
            return value
        return self.accessor.set_value(subject, parent, value)


class ReplaceOperation(Operation):
    name = "replace"

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        path = self.accessor.path(operation.path)
        try:
            current = self.accessor.get_value(subject, path)
        except NoSuchProperty:
            current = None

        if current is None:
            raise InvalidPatchDocument(f'Element at path "{path}" does not exist.')

        return self.accessor.set_value(subject, path, operation.value)


class CopyOperation(Operation):
    name = "copy"

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        try:
            value = self.accessor.get_value(subject, operation.from_)
        except NoSuchProperty as exc:
            raise InvalidPatchDocument(f'Element at path "{operation.from_}" does not exist') from exc

        return self.accessor.set_value(subject, operation.path, detached(value))


class MoveOperation(Operation):
    name = "move"

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        subject = CopyOperation(self.accessor).execute(subject, operation)
        removal = dataclasses.replace(operation, path=operation.from_)
        return RemoveOperation(self.accessor).execute(subject, removal)


class TestOperation(Operation):
    name = "test"
    __test__ = False

    def execute(self, subject, operation):
        operation = PatchOperation.coerce(operation)
        value = self.accessor.get_value(subject, operation.path)
        if not is_equal(value, operation.value):
            raise InvalidPatchDocument(f'Test operation on "{operation.path}" failed.')
        return subject


def is_equal(host_value: Any, document_value: Any) -> bool:
    """Compare a value read from the host with one from the patch document."""
    if document_value == "true" and isinstance(document_value, str):
        document_value = True
    elif document_value == "false" and isinstance(document_value, str):
        document_value = False

    if isinstance(document_value, bool):
        return isinstance(host_value, bool) and host_value is document_value

    if loosely_equal(host_value, document_value):
        return True

    document_value = normalize(document_value)
    if isinstance(document_value, (dict, list)):
        return strictly_equal(sort_keys(document_value), sort_keys(normalize(host_value)))

    return False


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and _NUMERIC_STRING.match(value):
        return float(value)
    return None


def loosely_equal(left: Any, right: Any) -> bool:
    """Scalar comparison where numeric strings equal the numbers they spell."""
    if isinstance(left, bool) or isinstance(right, bool):
        return left == right
    if left is None or right is None:
        return left is right
    if isinstance(left, (int, float, str)) and isinstance(right, (int, float, str)):
        if isinstance(left, str) and isinstance(right, str):
            if left == right:
                return True
        left_number, right_number = _number(left), _number(right)
        if left_number is not None and right_number is not None:
            return left_number == right_number
        return False
    if ValueHandle.create(left).is_container or ValueHandle.create(right).is_container:
        return False
    return left == right


def normalize(value: Any) -> Any:
    """Project a value onto plain dicts, lists and scalars."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(k): normalize(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [normalize(v) for v in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return normalize(dataclasses.asdict(value))
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return normalize(model_dump())
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        return {k: normalize(v) for k, v in attributes.items() if not k.startswith("_")}
    return json.loads(json.dumps(value, default=str))


def sort_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: sort_keys(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [sort_keys(v) for v in value]
    return value


def strictly_equal(left: Any, right: Any) -> bool:
    if type(left) is not type(right):
        return False
    if isinstance(left, dict):
        return list(left) == list(right) and all(strictly_equal(left[k], right[k]) for k in left)
    if isinstance(left, list):
        return len(left) == len(right) and all(strictly_equal(a, b) for a, b in zip(left, right))
    return left == right


class OperationDispatcher:
    """Maps operation names to operations sharing one accessor."""

    OPERATION_MAP: ClassVar[Dict[str, Type[Operation]]] = {
        TestOperation.name: TestOperation,
        RemoveOperation.name: RemoveOperation,
        AddOperation.name: AddOperation,
        ReplaceOperation.name: ReplaceOperation,
        CopyOperation.name: CopyOperation,
        MoveOperation.name: MoveOperation,
    }

    def __init__(self, accessor: Optional[PathAccessor] = None):
        self.accessor = accessor or PathAccessor()
        self._operations: Dict[str, Operation] = {}

    def resolve(self, name: str) -> Operation:
        if not isinstance(name, str) or name not in self.OPERATION_MAP:
            raise UnknownOperation(f'Unknown operation "{name}" has been requested.')
        operation = self._operations.get(name)
        if operation is not None:
            return operation
        operation = self.OPERATION_MAP[name](self.accessor)
        self._operations[name] = operation
        return operation

    def execute(self, subject: Any, operation: Any) -> Any:
        operation = PatchOperation.coerce(operation)
        logger.debug("Applying %s at %s", operation.op, operation.path)
        return self.resolve(operation.op).execute(subject, operation)
