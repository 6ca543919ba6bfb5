"""
JSON Merge Patch (RFC 7386) over the same host model as JSON Patch.

Records are patched member by member through ``PathAccessor`` so setters,
adder/remover pairs and catch-all accessors are honoured.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .accessor import PathAccessor
from .operations import RemoveOperation
from .pointer import escape_token
from .values import Kind, ValueHandle, detached

logger = logging.getLogger(__name__)


def _has_member(accessor: PathAccessor, target: Any, key: str, pointer: str) -> bool:
    handle = ValueHandle.create(target)
    if handle.is_container:
        return handle.has_item(key)
    found, _ = accessor.probe(target, pointer)
    return found


def apply_merge_patch(accessor: PathAccessor, target: Any, patch: Any) -> Any:
    """Merge ``patch`` into ``target`` and return the (possibly replaced) target."""
    if not isinstance(patch, Mapping):
        return detached(patch)

    handle = ValueHandle.create(target)
    if handle.kind not in (Kind.KEYED, Kind.RECORD):
        target = {}

    remover = RemoveOperation(accessor)
    for key, value in patch.items():
        key = str(key)
        pointer = "/" + escape_token(key)

        if value is None:
            if _has_member(accessor, target, key, pointer):
                target = remover.execute(target, {"op": "remove", "path": pointer})
            continue

        if isinstance(value, Mapping):
            found, current = accessor.probe(target, pointer)
            current_handle = ValueHandle.create(current)
            if not found or current_handle.kind not in (Kind.KEYED, Kind.RECORD):
                current = {}
            merged = apply_merge_patch(accessor, current, value)
            if current_handle.shared and merged is current:
                continue
            value = merged
        else:
            value = detached(value)

        logger.debug("Merging member %s", pointer)
        target = accessor.set_value(target, pointer, value)

    return target
