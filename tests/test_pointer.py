import pytest

from unison_patch.errors import InvalidPointerSyntax, OutOfBounds
from unison_patch.pointer import PointerPath, escape_token, unescape_token


@pytest.mark.parametrize("text", ["/a/b/c", "/a~1b/c~0d", "/", "/foo/0/-", "/ spaced /x"])
def test_serialize_round_trips_token_sequence(text):
    path = PointerPath.parse(text)
    assert PointerPath.parse(path.serialize()).tokens == path.tokens
    assert path.serialize() == text


def test_parse_unescapes_tokens():
    path = PointerPath.parse("/a~1b/c~0d/~01")
    assert path.tokens == ("a/b", "c~d", "~1")


def test_empty_text_is_the_root():
    path = PointerPath.parse("")
    assert len(path) == 0
    assert path.serialize() == ""
    assert path.parent() is None


def test_single_slash_is_the_empty_key():
    assert PointerPath.parse("/").tokens == ("",)


def test_fragment_form_is_percent_decoded():
    path = PointerPath.parse("#/a%20b/c%25d")
    assert path.tokens == ("a b", "c%d")
    assert PointerPath.parse("#").tokens == ()


@pytest.mark.parametrize("text", ["/a~2b", "/a~", "/~a", "/ok/bad~x"])
def test_rejects_bad_escapes(text):
    with pytest.raises(InvalidPointerSyntax):
        PointerPath.parse(text)


def test_rejects_relative_paths():
    with pytest.raises(InvalidPointerSyntax):
        PointerPath.parse("a/b")


def test_rejects_non_string():
    with pytest.raises(InvalidPointerSyntax):
        PointerPath.parse(None)


def test_element_bounds():
    path = PointerPath.parse("/a/b")
    assert path.element(0) == "a"
    assert path.element(1) == "b"
    assert path.last == "b"
    with pytest.raises(OutOfBounds):
        path.element(2)
    with pytest.raises(IndexError):
        path.element(-1)


def test_parent_and_child():
    path = PointerPath.parse("/a/b/c")
    assert path.parent() == PointerPath.parse("/a/b")
    assert PointerPath.parse("/a").parent() is None
    assert path.parent().child("x/y").serialize() == "/a/b/x~1y"


def test_append_marker_only_counts_at_the_end():
    assert PointerPath.parse("/list/-").appends is True
    assert PointerPath.parse("/-/x").appends is False
    assert PointerPath.parse("").appends is False


def test_escape_helpers():
    assert escape_token("a/b~c") == "a~1b~0c"
    assert unescape_token("a~1b~0c") == "a/b~c"


def test_paths_are_hashable_values():
    assert hash(PointerPath.parse("/a")) == hash(PointerPath(["a"]))
    assert {PointerPath.parse("/a"): 1}[PointerPath(["a"])] == 1
    assert str(PointerPath.parse("/a/b")) == "/a/b"
    assert repr(PointerPath.parse("/a")) == "PointerPath('/a')"
