"""
Patch orchestration.

``PatchManager`` validates a patch document, applies each operation in order,
runs an optional domain validator and finally commits the patched subject.
Operations applied before a failure stay applied.
"""

from __future__ import annotations

import contextlib
import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .accessor import PathAccessor
from .config import PatchConfig
from .errors import (
    InvalidArgumentDescriptor,
    InvalidPatchDocument,
    InvalidPointerSyntax,
    NoSuchProperty,
    OperationNotAllowed,
    OutOfBounds,
    UnexpectedType,
    UnknownOperation,
    UnmergeablePatch,
    ValidationFailed,
)
from .logging import log_json
from .merge import apply_merge_patch
from .operations import OperationDispatcher, PatchOperation
from .pointer import PointerPath
from .schema import validate_patch_document

logger = logging.getLogger(__name__)

MERGE_PATCH_CONTENT_TYPE = re.compile(r"^application/merge-patch\+", re.IGNORECASE)

_TRANSLATED_ERRORS = (
    InvalidPointerSyntax,
    UnknownOperation,
    OperationNotAllowed,
    NoSuchProperty,
    UnexpectedType,
    OutOfBounds,
    InvalidArgumentDescriptor,
)

_VIOLATION_TOKEN_RE = re.compile(r"[/.\[\]]")

Validator = Callable[[Any, List[PatchOperation]], Iterable[Any]]


@runtime_checkable
class Patchable(Protocol):
    def commit(self) -> None:
        ...


@runtime_checkable
class MergePatchable(Patchable, Protocol):
    def get_data_mapper(self) -> Any:
        ...


def violation_path(violation: Any) -> str:
    if isinstance(violation, Mapping):
        path = violation.get("path")
    else:
        path = getattr(violation, "path", None) or getattr(violation, "property_path", None)
    return "" if path is None else str(path)


def first_token(path: str) -> Optional[str]:
    """First element of a pointer, dotted or bracketed property path."""
    for part in _VIOLATION_TOKEN_RE.split(path):
        if part:
            return part
    return None


class PatchManager:
    """
    Applies JSON Patch and JSON Merge Patch documents to a subject.

    Args:
        accessor: shared ``PathAccessor``; a fresh one is built if omitted
        factory: ``OperationDispatcher`` resolving operation names
        validator: optional ``validator(subject, operations)`` returning violations
        config: ``PatchConfig``; controls tracing
        tracer: OpenTelemetry tracer; the global provider's is used if omitted
    """

    def __init__(
        self,
        accessor: Optional[PathAccessor] = None,
        factory: Optional[OperationDispatcher] = None,
        validator: Optional[Validator] = None,
        config: Optional[PatchConfig] = None,
        tracer=None,
    ):
        self.accessor = accessor or (factory.accessor if factory is not None else PathAccessor())
        self.factory = factory or OperationDispatcher(self.accessor)
        self.validator = validator
        self.config = config or PatchConfig()
        self.tracer = tracer or trace.get_tracer(__name__)

    def _span(self, name: str):
        if not self.config.tracing_enabled:
            return contextlib.nullcontext(trace.INVALID_SPAN)
        return self.tracer.start_as_current_span(name)

    def patch(self, patchable: Any, operations: Sequence[Any]) -> Any:
        """Apply a JSON Patch document and return the (possibly replaced) subject."""
        result = validate_patch_document(operations)
        if not result.ok:
            log_json(logging.WARNING, "patch_document_invalid", errors=result.errors)
            raise ValidationFailed("Invalid document.", violations=result.errors)

        operations = [PatchOperation.coerce(op) for op in operations]

        with self._span("unison_patch.patch") as span:
            span.set_attribute("patch.operation_count", len(operations))
            try:
                for operation in operations:
                    patchable = self._apply(patchable, operation)
                self._validate(patchable, operations)
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise
            self._commit(patchable)
            span.set_status(Status(StatusCode.OK))

        return patchable

    def _apply(self, subject: Any, operation: PatchOperation) -> Any:
        with self._span("unison_patch.operation") as span:
            span.set_attribute("patch.op", operation.op)
            span.set_attribute("patch.path", operation.path)
            try:
                return self.factory.execute(subject, operation)
            except _TRANSLATED_ERRORS as e:
                log_json(
                    logging.WARNING,
                    "patch_operation_failed",
                    op=operation.op,
                    path=operation.path,
                    error=type(e).__name__,
                    message=str(e),
                )
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise InvalidPatchDocument(f'Operation failed at path "{operation.path}"') from e
            except InvalidPatchDocument as e:
                log_json(logging.WARNING, "patch_operation_rejected", op=operation.op, path=operation.path, message=str(e))
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

    def _validate(self, subject: Any, operations: List[PatchOperation]) -> None:
        if self.validator is None:
            return

        touched = set()
        for operation in operations:
            path = PointerPath.parse(operation.path)
            if len(path):
                touched.add(path.element(0))

        violations = []
        for violation in self.validator(subject, operations) or []:
            token = first_token(violation_path(violation))
            # Violations without a path apply to the whole subject.
            if token is None or token in touched:
                violations.append(violation)
        if violations:
            log_json(logging.WARNING, "patch_validation_failed", violations=len(violations))
            raise ValidationFailed("Patched subject failed validation.", violations=violations)

    def _commit(self, subject: Any) -> None:
        commit = getattr(subject, "commit", None)
        if callable(commit):
            commit()

    def merge_patch(self, patchable: Any, document: Any) -> Any:
        """Apply a JSON Merge Patch document to a merge-patchable subject."""
        mapper_factory = getattr(patchable, "get_data_mapper", None)
        if not getattr(patchable, "merge_patch_supported", False) and not callable(mapper_factory):
            raise UnmergeablePatch(f'"{type(patchable).__qualname__}" does not support merge patches.')

        with self._span("unison_patch.merge_patch") as span:
            try:
                mapper = mapper_factory() if callable(mapper_factory) else None
                if mapper is not None:
                    mapper.map(document)
                else:
                    patchable = apply_merge_patch(self.accessor, patchable, document)
            except _TRANSLATED_ERRORS as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                log_json(logging.WARNING, "merge_patch_failed", error=type(e).__name__, message=str(e))
                raise InvalidPatchDocument("Merge patch failed.") from e
            self._commit(patchable)

        return patchable

    def patch_request(self, patchable: Any, content_type: Optional[str], document: Any) -> Any:
        if content_type and MERGE_PATCH_CONTENT_TYPE.match(content_type):
            return self.merge_patch(patchable, document)
        return self.patch(patchable, document)
