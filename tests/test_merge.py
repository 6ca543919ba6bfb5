from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from unison_patch.accessor import PathAccessor
from unison_patch.merge import apply_merge_patch


@dataclass
class Author:
    given_name: str
    family_name: Optional[str] = None


@dataclass
class Article:
    title: str
    author: Author
    tags: List[str] = field(default_factory=list)


@pytest.fixture
def accessor():
    return PathAccessor()


def test_rfc_7386_example(accessor):
    target = {
        "title": "Goodbye!",
        "author": {"givenName": "John", "familyName": "Doe"},
        "tags": ["example", "sample"],
        "content": "This will be unchanged",
    }
    patch = {
        "title": "Hello!",
        "phoneNumber": "+01-123-456-7890",
        "author": {"familyName": None},
        "tags": ["example"],
    }
    result = apply_merge_patch(accessor, target, patch)

    assert result is target
    assert target == {
        "title": "Hello!",
        "author": {"givenName": "John"},
        "tags": ["example"],
        "content": "This will be unchanged",
        "phoneNumber": "+01-123-456-7890",
    }


@pytest.mark.parametrize(
    "target, patch, expected",
    [
        ({"a": "b"}, {"a": "c"}, {"a": "c"}),
        ({"a": "b"}, {"b": "c"}, {"a": "b", "b": "c"}),
        ({"a": "b"}, {"a": None}, {}),
        ({"a": "b", "b": "c"}, {"a": None}, {"b": "c"}),
        ({"a": ["b"]}, {"a": "c"}, {"a": "c"}),
        ({"a": "c"}, {"a": ["b"]}, {"a": ["b"]}),
        ({"a": {"b": "c"}}, {"a": {"b": "d", "c": None}}, {"a": {"b": "d"}}),
        ({"a": [{"b": "c"}]}, {"a": [1]}, {"a": [1]}),
        ({"e": None}, {"a": 1}, {"e": None, "a": 1}),
        ({}, {"a": {"bb": {"ccc": None}}}, {"a": {"bb": {}}}),
        ({"a": [1]}, {"a": {"b": 1}}, {"a": {"b": 1}}),
    ],
)
def test_merge_cases(accessor, target, patch, expected):
    assert apply_merge_patch(accessor, target, patch) == expected


def test_non_mapping_patch_replaces_target(accessor):
    assert apply_merge_patch(accessor, {"a": "foo"}, ["c"]) == ["c"]
    assert apply_merge_patch(accessor, {"a": "foo"}, None) is None
    assert apply_merge_patch(accessor, ["a"], {"a": "b"}) == {"a": "b"}


def test_merge_patch_values_are_copied(accessor):
    patch = {"list": [1, 2]}
    target = apply_merge_patch(accessor, {}, patch)
    target["list"].append(3)
    assert patch == {"list": [1, 2]}


def test_merge_into_records(accessor):
    author = Author(given_name="John", family_name="Doe")
    article = Article(title="Goodbye!", author=author, tags=["a"])

    result = apply_merge_patch(
        accessor,
        article,
        {"title": "Hello!", "author": {"family_name": None, "given_name": "Jane"}, "tags": ["b"]},
    )

    assert result is article
    assert article.title == "Hello!"
    assert article.author is author
    assert author.given_name == "Jane"
    assert author.family_name is None
    assert article.tags == ["b"]


def test_merge_escapes_member_names(accessor):
    target = {"a/b": 1, "c~d": 2}
    apply_merge_patch(accessor, target, {"a/b": None, "c~d": 3})
    assert target == {"c~d": 3}
