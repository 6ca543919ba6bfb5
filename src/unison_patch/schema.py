from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from jsonschema import Draft7Validator

from .operations import PatchOperation

PATCH_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "JSON Patch document (RFC 6902)",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["op", "path"],
        "properties": {
            "op": {"enum": ["add", "remove", "replace", "move", "copy", "test"]},
            "path": {"type": "string"},
            "from": {"type": "string"},
        },
        "allOf": [
            {
                "if": {"required": ["op"], "properties": {"op": {"enum": ["add", "replace", "test"]}}},
                "then": {"required": ["value"]},
            },
            {
                "if": {"required": ["op"], "properties": {"op": {"enum": ["move", "copy"]}}},
                "then": {"required": ["from"]},
            },
        ],
    },
}

_validator = Draft7Validator(PATCH_DOCUMENT_SCHEMA)


@dataclass(frozen=True)
class SchemaValidationResult:
    ok: bool
    errors: List[str]


def _plain(operation: Any) -> Any:
    if isinstance(operation, PatchOperation):
        return operation.to_dict()
    return operation


def validate_patch_document(document: Any) -> SchemaValidationResult:
    """Check that a patch document is an array of well-formed operations."""
    if isinstance(document, (list, tuple)):
        document = [_plain(op) for op in document]
    errors = sorted(_validator.iter_errors(document), key=lambda e: list(e.path))
    if errors:
        rendered = []
        for e in errors:
            path = "/" + "/".join(str(p) for p in e.path) if e.path else "/"
            rendered.append(f"{path}: {e.message}")
        return SchemaValidationResult(ok=False, errors=rendered)
    return SchemaValidationResult(ok=True, errors=[])
