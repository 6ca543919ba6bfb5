"""
unison-patch - JSON Patch (RFC 6902) and JSON Merge Patch for Python object graphs
"""

__version__ = "0.1.0"

from .errors import (
    PatchError,
    InvalidPointerSyntax,
    OutOfBounds,
    UnexpectedType,
    NoSuchProperty,
    InvalidArgumentDescriptor,
    InvalidPatchDocument,
    ValidationFailed,
    UnknownOperation,
    OperationNotAllowed,
    UnmergeablePatch,
)

from .pointer import PointerPath, escape_token, unescape_token

from .values import Kind, ValueHandle

from .capabilities import (
    AccessKind,
    AccessDecision,
    CapabilityResolver,
    InflectionSingularizer,
    Singularizer,
    camelize,
)

from .cache import DecisionCache, MemoryDecisionCache, RedisDecisionCache

from .accessor import PathAccessor

from .operations import (
    PatchOperation,
    Operation,
    AddOperation,
    RemoveOperation,
    ReplaceOperation,
    MoveOperation,
    CopyOperation,
    TestOperation,
    OperationDispatcher,
    is_equal,
)

from .schema import SchemaValidationResult, validate_patch_document

from .merge import apply_merge_patch

from .manager import PatchManager, Patchable, MergePatchable

from .config import PatchConfig

from .logging import log_json, configure_logging

__all__ = [
    "__version__",
    "PatchError",
    "InvalidPointerSyntax",
    "OutOfBounds",
    "UnexpectedType",
    "NoSuchProperty",
    "InvalidArgumentDescriptor",
    "InvalidPatchDocument",
    "ValidationFailed",
    "UnknownOperation",
    "OperationNotAllowed",
    "UnmergeablePatch",
    "PointerPath",
    "escape_token",
    "unescape_token",
    "Kind",
    "ValueHandle",
    "AccessKind",
    "AccessDecision",
    "CapabilityResolver",
    "InflectionSingularizer",
    "Singularizer",
    "camelize",
    "DecisionCache",
    "MemoryDecisionCache",
    "RedisDecisionCache",
    "PathAccessor",
    "PatchOperation",
    "Operation",
    "AddOperation",
    "RemoveOperation",
    "ReplaceOperation",
    "MoveOperation",
    "CopyOperation",
    "TestOperation",
    "OperationDispatcher",
    "is_equal",
    "SchemaValidationResult",
    "validate_patch_document",
    "apply_merge_patch",
    "PatchManager",
    "Patchable",
    "MergePatchable",
    "PatchConfig",
    "log_json",
    "configure_logging",
]
