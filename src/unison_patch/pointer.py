"""JSON Pointer paths.

Paths follow the RFC 6901 grammar used by RFC 6902 patch documents:

- ``""`` addresses the whole document (no tokens)
- ``"/a/b"`` addresses member ``b`` of member ``a``
- ``~0`` and ``~1`` escape ``~`` and ``/`` inside a token
- ``"#/a%20b"`` is the URI fragment form; it is percent-decoded first

The token ``-`` is the append marker; it only has that meaning as the last
token of a path written to.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Tuple
from urllib.parse import unquote

from .errors import InvalidPointerSyntax, OutOfBounds

APPEND_TOKEN = "-"

_BAD_ESCAPE = re.compile(r"~(?![01])")


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    if _BAD_ESCAPE.search(token):
        raise InvalidPointerSyntax(f"Invalid path syntax: bad escape in token {token!r}")
    return token.replace("~1", "/").replace("~0", "~")


class PointerPath:
    """Immutable sequence of unescaped pointer tokens."""

    __slots__ = ("_tokens",)

    def __init__(self, tokens: Iterable[str] = ()):
        self._tokens: Tuple[str, ...] = tuple(str(t) for t in tokens)

    @classmethod
    def parse(cls, text: str) -> "PointerPath":
        if not isinstance(text, str):
            raise InvalidPointerSyntax(f"Invalid path syntax: expected a string, got {type(text).__name__}")
        path = text
        if path.startswith("#"):
            path = unquote(path[1:])
        if not path:
            return cls()
        if path[0] != "/":
            raise InvalidPointerSyntax(f"Invalid path syntax: {text!r} must start with '/'")
        return cls(unescape_token(part) for part in path[1:].split("/"))

    @property
    def tokens(self) -> Tuple[str, ...]:
        return self._tokens

    def element(self, index: int) -> str:
        if not isinstance(index, int) or index < 0 or index >= len(self._tokens):
            raise OutOfBounds(f"The index {index} is not within the property path {self.serialize()!r}")
        return self._tokens[index]

    @property
    def last(self) -> str:
        return self.element(len(self._tokens) - 1)

    def parent(self) -> Optional["PointerPath"]:
        if len(self._tokens) <= 1:
            return None
        return PointerPath(self._tokens[:-1])

    def child(self, token) -> "PointerPath":
        return PointerPath(self._tokens + (str(token),))

    @property
    def appends(self) -> bool:
        return bool(self._tokens) and self._tokens[-1] == APPEND_TOKEN

    def serialize(self) -> str:
        if not self._tokens:
            return ""
        return "/" + "/".join(escape_token(t) for t in self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __eq__(self, other) -> bool:
        if isinstance(other, PointerPath):
            return self._tokens == other._tokens
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._tokens)

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"PointerPath({self.serialize()!r})"
