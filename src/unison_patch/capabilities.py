"""
Capability resolution for record objects.

For a ``(type, property)`` pair the resolver decides how a property is read or
written and memoizes the decision:

- read: ``get<Camel>()``, ``<camel>()``, ``is<Camel>()``, ``has<Camel>()``
  (then the snake_case ``get_``/``is_``/``has_`` forms), a class-level
  ``__getattr__``, then a public field named ``property`` or ``<camel>``
- write: an ``add<Singular>``/``remove<Singular>`` pair when the value is a
  collection, ``set<Camel>(v)``/``<camel>(v)``/``set_<snake>(v)``, an overridden
  ``__setattr__``, then a public field

Decisions are immutable. They are cached in process and, optionally, in an
external ``DecisionCache`` as plain dicts.
"""

from __future__ import annotations

import dataclasses
import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple
from urllib.parse import quote

import inflection

from .values import is_collection_value

logger = logging.getLogger(__name__)

_MISSING = object()

CACHE_PREFIX_READ = "r"
CACHE_PREFIX_WRITE = "w"


class AccessKind(str, enum.Enum):
    METHOD = "method"
    CATCH_ALL = "catch_all"
    FIELD = "field"
    ADDER_REMOVER = "adder_remover"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AccessDecision:
    """Resolved way to read or write one property of one type"""
    kind: AccessKind
    has_explicit_field: bool = False
    name: Optional[str] = None
    by_reference: bool = False
    adder: Optional[str] = None
    remover: Optional[str] = None
    message: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.kind is not AccessKind.NOT_FOUND

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        data = dataclasses.asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessDecision":
        """Create from dictionary from storage"""
        data = dict(data)
        data["kind"] = AccessKind(data["kind"])
        return cls(**data)


def camelize(value: str) -> str:
    """``foo_bar`` and ``foo bar`` both become ``fooBar``."""
    words = value.replace("_", " ").split(" ")
    joined = "".join(w[:1].upper() + w[1:] for w in words)
    return joined[:1].lower() + joined[1:]


def _upper_first(value: str) -> str:
    return value[:1].upper() + value[1:]


class Singularizer(Protocol):
    def singularize(self, word: str) -> List[str]:
        ...


class InflectionSingularizer:
    """Singular candidates for a camelized plural, most likely first."""

    def singularize(self, word: str) -> List[str]:
        candidates = [inflection.singularize(word)]
        if word.endswith("es"):
            candidates.extend([word[:-1], word[:-2]])
        elif word.endswith("s"):
            candidates.append(word[:-1])
        out: List[str] = []
        for candidate in candidates:
            if candidate and candidate not in out:
                out.append(candidate)
        return out


def type_identity(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def cache_key(prefix: str, cls: type, prop: str, *suffix: str) -> str:
    key = f"{prefix}.{quote(type_identity(cls), safe='')}..{quote(prop, safe='')}"
    if suffix:
        key += "." + ".".join(suffix)
    return key


class TypeIntrospector:
    """Narrow view of a class used to probe methods and fields."""

    def __init__(self, cls: type):
        self.cls = cls

    def _raw(self, name: str) -> Any:
        return inspect.getattr_static(self.cls, name, _MISSING)

    def parameter_counts(self, name: str) -> Optional[Tuple[int, float]]:
        """(required, total) positional parameters of a public method, or None."""
        if name.startswith("_"):
            return None
        raw = self._raw(name)
        if isinstance(raw, (staticmethod, classmethod)):
            func = getattr(self.cls, name)
            drop_first = False
        elif inspect.isfunction(raw):
            func = raw
            drop_first = True
        else:
            return None
        try:
            params = list(inspect.signature(func).parameters.values())
        except (TypeError, ValueError):
            return None
        if drop_first and params:
            params = params[1:]
        required = 0
        total: float = 0
        for param in params:
            if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
                total += 1
                if param.default is param.empty:
                    required += 1
            elif param.kind is param.VAR_POSITIONAL:
                total = float("inf")
            elif param.kind is param.KEYWORD_ONLY and param.default is param.empty:
                return None
        return required, total

    def is_method_accessible(self, name: str, parameters: int) -> bool:
        counts = self.parameter_counts(name)
        if counts is None:
            return False
        required, total = counts
        return required <= parameters and total >= parameters

    def overrides(self, name: str) -> bool:
        for klass in self.cls.__mro__:
            if klass is object:
                continue
            if name in vars(klass):
                return True
        return False

    def _annotated(self, name: str) -> bool:
        for klass in self.cls.__mro__:
            if name in vars(klass).get("__annotations__", {}):
                return True
        return False

    def field(self, name: str) -> Tuple[bool, bool, bool]:
        """(declared, readable, writable) for a class-level field declaration."""
        raw = self._raw(name)
        if isinstance(raw, property):
            return True, raw.fget is not None, raw.fset is not None
        if raw is not _MISSING and inspect.isdatadescriptor(raw):
            return True, True, hasattr(raw, "__set__")
        if self._annotated(name):
            return True, True, True
        if raw is not _MISSING and not inspect.isroutine(raw) and not isinstance(raw, (staticmethod, classmethod, type)):
            return True, True, True
        return False, False, False


class CapabilityResolver:
    """
    Decides, per property and direction, which accessor mechanism applies.

    Args:
        cache: optional external decision cache (``get``/``put`` of dicts)
        singularizer: produces singular candidates for adder/remover lookup
    """

    def __init__(self, cache=None, singularizer: Optional[Singularizer] = None):
        self.cache = cache
        self.singularizer = singularizer or InflectionSingularizer()
        self._read_decisions: Dict[Tuple[type, str], AccessDecision] = {}
        self._write_decisions: Dict[Tuple[type, str, bool], AccessDecision] = {}

    def read_access(self, cls: type, prop: str) -> AccessDecision:
        local_key = (cls, prop)
        decision = self._read_decisions.get(local_key)
        if decision is not None:
            return decision
        decision = self._cached(cache_key(CACHE_PREFIX_READ, cls, prop), lambda: self._resolve_read(cls, prop))
        self._read_decisions[local_key] = decision
        return decision

    def write_access(self, cls: type, prop: str, value: Any) -> AccessDecision:
        iterable = is_collection_value(value)
        local_key = (cls, prop, iterable)
        decision = self._write_decisions.get(local_key)
        if decision is not None:
            return decision
        key = cache_key(CACHE_PREFIX_WRITE, cls, prop, "i" if iterable else "s")
        decision = self._cached(key, lambda: self._resolve_write(cls, prop, value))
        self._write_decisions[local_key] = decision
        return decision

    def clear(self) -> None:
        self._read_decisions.clear()
        self._write_decisions.clear()

    def _cached(self, key: str, compute) -> AccessDecision:
        if self.cache is not None:
            stored = self.cache.get(key)
            if stored is not None:
                return AccessDecision.from_dict(stored)
        decision = compute()
        logger.debug("Resolved %s -> %s %s", key, decision.kind.value, decision.name or decision.adder or "")
        if self.cache is not None:
            self.cache.put(key, decision.to_dict())
        return decision

    def _resolve_read(self, cls: type, prop: str) -> AccessDecision:
        info = TypeIntrospector(cls)
        camel = camelize(prop)
        upper = _upper_first(camel)
        snake = inflection.underscore(camel)
        has_property = info.field(prop)[0] or info.field(camel)[0]

        methods = _unique([f"get{upper}", camel, f"is{upper}", f"has{upper}", f"get_{snake}", f"is_{snake}", f"has_{snake}"])
        for method in methods:
            if info.is_method_accessible(method, 0):
                return AccessDecision(AccessKind.METHOD, has_property, method)

        if info.overrides("__getattr__"):
            return AccessDecision(AccessKind.CATCH_ALL, has_property, prop)

        for name in _unique([prop, camel]):
            declared, readable, writable = info.field(name)
            if declared and readable and not name.startswith("_"):
                return AccessDecision(AccessKind.FIELD, True, name, by_reference=writable)

        tried = '()", "'.join(methods)
        return AccessDecision(
            AccessKind.NOT_FOUND,
            has_property,
            message=(
                f'Neither the property "{prop}" nor one of the methods "{tried}()" '
                f'exist and have public access in class "{cls.__qualname__}".'
            ),
        )

    def _resolve_write(self, cls: type, prop: str, value: Any) -> AccessDecision:
        info = TypeIntrospector(cls)
        camel = camelize(prop)
        upper = _upper_first(camel)
        snake = inflection.underscore(camel)
        has_property = info.field(prop)[0] or info.field(camel)[0]

        if is_collection_value(value):
            pair = self._find_adder_and_remover(info, camel)
            if pair is not None:
                return AccessDecision(AccessKind.ADDER_REMOVER, has_property, adder=pair[0], remover=pair[1])

        methods = _unique([f"set{upper}", camel, f"set_{snake}"])
        for method in methods:
            if info.is_method_accessible(method, 1):
                return AccessDecision(AccessKind.METHOD, has_property, method)

        if info.overrides("__setattr__"):
            return AccessDecision(AccessKind.CATCH_ALL, has_property, prop)

        for name in _unique([prop, camel]):
            declared, _, writable = info.field(name)
            if declared and writable and not name.startswith("_"):
                return AccessDecision(AccessKind.FIELD, True, name, by_reference=True)

        pair = self._find_adder_and_remover(info, camel)
        if pair is not None:
            return AccessDecision(
                AccessKind.NOT_FOUND,
                has_property,
                message=(
                    f'The property "{prop}" in class "{cls.__qualname__}" can be defined with the methods '
                    f'"{pair[0]}()", "{pair[1]}()" but the new value must be iterable, '
                    f'"{type(value).__name__}" given.'
                ),
            )

        pairs = "".join(
            f'"{adder}()"/"{remover}()", ' for adder, remover in self._adder_remover_candidates(camel)
        )
        tried = '()", "'.join(methods)
        return AccessDecision(
            AccessKind.NOT_FOUND,
            has_property,
            message=(
                f'Neither the property "{prop}" nor one of the methods {pairs}"{tried}()", '
                f'"__setattr__()" exist and have public access in class "{cls.__qualname__}".'
            ),
        )

    def _adder_remover_candidates(self, camel: str) -> List[Tuple[str, str]]:
        candidates = []
        for singular in self.singularizer.singularize(camel):
            candidates.append((f"add{_upper_first(singular)}", f"remove{_upper_first(singular)}"))
            snake = inflection.underscore(singular)
            candidates.append((f"add_{snake}", f"remove_{snake}"))
        return _unique(candidates)

    def _find_adder_and_remover(self, info: TypeIntrospector, camel: str) -> Optional[Tuple[str, str]]:
        for adder, remover in self._adder_remover_candidates(camel):
            if info.is_method_accessible(adder, 1) and info.is_method_accessible(remover, 1):
                return adder, remover
        return None


def _unique(items):
    out = []
    for item in items:
        if item not in out:
            out.append(item)
    return out
