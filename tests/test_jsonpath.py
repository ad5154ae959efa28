from __future__ import annotations

import pytest

from queuetap.errors import MalformedPathError
from queuetap.jsonpath import (
    PathSegment,
    collect_json_paths,
    extract_json_paths,
    parse_json_path,
    replace_all,
)


def test_parse_json_path_splits_keys_and_indexes() -> None:
    segments = parse_json_path("a.b[2].c")
    assert [s.kind for s in segments] == ["key", "key", "index", "key"]
    assert [s.value for s in segments] == ["a", "b", 2, "c"]


def test_parse_json_path_accepts_leading_index() -> None:
    assert parse_json_path("[0].email") == [
        PathSegment(kind="index", value=0),
        PathSegment(kind="key", value="email"),
    ]


def test_parse_json_path_drops_empty_tokens() -> None:
    assert [s.value for s in parse_json_path(".user..email")] == ["user", "email"]


def test_parse_json_path_only_reads_first_bracket_pair() -> None:
    assert parse_json_path("items[0][1]") == [
        PathSegment(kind="key", value="items"),
        PathSegment(kind="index", value=0),
    ]


def test_parse_json_path_keeps_non_numeric_brackets_as_keys() -> None:
    assert parse_json_path("[x]") == [PathSegment(kind="key", value="[x]")]
    assert parse_json_path("a[-1]") == [
        PathSegment(kind="key", value="a"),
        PathSegment(kind="key", value="[-1]"),
    ]


@pytest.mark.parametrize("path", ["", "...", "a]b[0"])
def test_parse_json_path_rejects_impossible_paths(path: str) -> None:
    with pytest.raises(MalformedPathError):
        parse_json_path(path)


def test_replace_all_matches_every_array_element() -> None:
    data = [
        {"person": {"id": "123", "employedAt": "456"}},
        {"person": {"id": "124", "employedAt": "456"}},
    ]

    count = replace_all(data, parse_json_path("person.employedAt"), "{employed_at_id}")

    assert count == 2
    assert data == [
        {"person": {"id": "123", "employedAt": "{employed_at_id}"}},
        {"person": {"id": "124", "employedAt": "{employed_at_id}"}},
    ]


def test_replace_all_with_index_only_touches_that_element() -> None:
    data = {"items": [{"price": 9.99}, {"price": 5}]}

    count = replace_all(data, parse_json_path("items[0].price"), "{price}")

    assert count == 1
    assert data == {"items": [{"price": "{price}"}, {"price": 5}]}


def test_replace_all_anchors_under_nested_objects() -> None:
    data = {"envelope": {"user": {"email": "a@example.com"}}, "x": 2, "meta": {"x": 1}}

    assert replace_all(data, parse_json_path("user.email"), "[EMAIL]") == 1
    assert data["envelope"]["user"]["email"] == "[EMAIL]"

    assert replace_all(data, parse_json_path("x"), "[X]") == 2
    assert data["x"] == "[X]"
    assert data["meta"] == {"x": "[X]"}


def test_replace_all_does_not_search_inside_replaced_subtree() -> None:
    data = {"x": {"x": 1}}

    assert replace_all(data, parse_json_path("x"), "P") == 1
    assert data == {"x": "P"}


def test_replace_all_turns_any_value_into_a_string() -> None:
    data = {"n": 42, "b": True, "obj": {"k": [1, 2]}, "nil": None}

    for key in ("n", "b", "obj", "nil"):
        assert replace_all(data, parse_json_path(key), f"<{key}>") == 1

    assert data == {"n": "<n>", "b": "<b>", "obj": "<obj>", "nil": "<nil>"}


def test_replace_all_treats_unresolvable_segments_as_no_match() -> None:
    data = {"users": [{"email": "first@example.com"}], "tags": ["a", "b"], "name": "x"}
    before = {"users": [{"email": "first@example.com"}], "tags": ["a", "b"], "name": "x"}

    assert replace_all(data, parse_json_path("users[10].email"), "P") == 0
    assert replace_all(data, parse_json_path("tags.email"), "P") == 0
    assert replace_all(data, parse_json_path("users.email[0]"), "P") == 0
    assert replace_all(data, parse_json_path("name.first"), "P") == 0
    assert replace_all(data, parse_json_path("missing"), "P") == 0
    assert data == before


def test_replace_all_on_scalar_root_is_a_no_op() -> None:
    assert replace_all("text", parse_json_path("a"), "P") == 0
    assert replace_all(None, parse_json_path("[0]"), "P") == 0


def test_replace_all_direct_array_index() -> None:
    data = {"emails": ["first@example.com", "second@example.com", "third@example.com"]}

    assert replace_all(data, parse_json_path("emails[1]"), "[EMAIL]") == 1
    assert data["emails"] == ["first@example.com", "[EMAIL]", "third@example.com"]


def test_collect_json_paths_for_empty_containers() -> None:
    assert collect_json_paths({}) == []
    assert collect_json_paths([]) == []
    assert collect_json_paths({"items": []}) == ["items"]


def test_collect_json_paths_qualifies_keys_and_indexes() -> None:
    assert collect_json_paths({"a": {"b": 1}}) == ["a", "a.b"]
    assert collect_json_paths({"users": [{"name": "John"}, {"name": "Jane"}]}) == [
        "users",
        "users[0]",
        "users[0].name",
        "users[1]",
        "users[1].name",
    ]
    assert collect_json_paths([{"a": 1}]) == ["[0]", "[0].a"]


def test_extract_json_paths_sorts_and_handles_invalid_json() -> None:
    assert extract_json_paths('{"z": "value", "a": "value", "m": "value"}') == ["a", "m", "z"]
    assert extract_json_paths('{"user": {"name": "John"}') == []
    assert extract_json_paths("") == []


def test_extract_json_paths_returns_empty_for_deeply_nested_input() -> None:
    assert extract_json_paths("[" * 100000 + "]" * 100000) == []
