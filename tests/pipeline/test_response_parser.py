from __future__ import annotations

from reviewprep.services.response_parser import parse_json_response, strip_code_fences


def test_fenced_and_plain_json_parse_the_same() -> None:
    fenced = "```json\n[1, 2, 3]\n```"
    plain = "[1, 2, 3]"

    assert parse_json_response(fenced) == parse_json_response(plain) == [1, 2, 3]


def test_bare_fence_without_language_tag() -> None:
    assert strip_code_fences("```\n{\"a\": 1}\n```") == '{"a": 1}'


def test_invalid_json_returns_empty_list() -> None:
    assert parse_json_response("not json") == []
    assert parse_json_response("") == []


def test_invalid_json_returns_custom_default() -> None:
    assert parse_json_response("{oops", default={}) == {}


def test_null_answer_returns_the_empty_result() -> None:
    assert parse_json_response("null") == []
    assert parse_json_response("```json\nnull\n```", default={}) == {}


def test_explicit_none_default_is_honored() -> None:
    assert parse_json_response("not json", default=None) is None
