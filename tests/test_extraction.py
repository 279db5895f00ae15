"""Tests for tolerant structured output extraction."""

import pytest

from generation_dispatch.extraction import (
    ExtractionKind,
    extract,
    parse_json_array,
    parse_json_object,
    parse_string_array,
)
from generation_dispatch.models import (
    NO_MATCH,
    Boolean,
    Decision,
    Failure,
    FailureKind,
    ResponseDecision,
    StringArray,
    StructuredObject,
    Text,
)


def test_json_object_inside_fenced_block_with_prose():
    outcome = extract('Sure! ```json\n{"a":1}\n```', ExtractionKind.JSON_OBJECT)
    assert outcome == StructuredObject({"a": 1})


def test_json_object_absent_is_no_match():
    outcome = extract("no json here", ExtractionKind.JSON_OBJECT)
    assert outcome == NO_MATCH
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.NO_MATCH
    assert outcome.ok is False


def test_json_object_without_fence():
    text = 'Here you go: {"user": "agent", "text": "hi {there}"} hope it helps'
    assert parse_json_object(text) == {"user": "agent", "text": "hi {there}"}


def test_json_object_skips_malformed_candidates():
    text = 'first {broken: json} then {"ok": true}'
    assert parse_json_object(text) == {"ok": True}


def test_json_object_malformed_only_is_no_match():
    assert extract('```json\n{"a": 1,\n```', ExtractionKind.JSON_OBJECT) == NO_MATCH


def test_json_array_mode_requires_array():
    assert extract('{"a": 1}', ExtractionKind.JSON_ARRAY) == NO_MATCH
    assert extract('```\n[1, {"b": 2}]\n```', ExtractionKind.JSON_ARRAY) == StructuredObject([1, {"b": 2}])


def test_json_array_prefers_fenced_block():
    text = 'ignore [9] and use\n```json\n["x", "y"]\n```'
    assert parse_json_array(text) == ["x", "y"]


def test_string_array_requires_strings():
    assert extract('["a", "b"]', ExtractionKind.STRING_ARRAY) == StringArray(("a", "b"))
    assert extract('["a", 2]', ExtractionKind.STRING_ARRAY) == NO_MATCH


@pytest.mark.parametrize("text", ["RESPOND", "yes", "True", " [respond] ", "Y.", "enable"])
def test_boolean_affirmative(text):
    assert extract(text, ExtractionKind.BOOLEAN) == Boolean(True)


@pytest.mark.parametrize("text", ["IGNORE", "STOP", "no", "FALSE", "off!", '"No"'])
def test_boolean_negative(text):
    assert extract(text, ExtractionKind.BOOLEAN) == Boolean(False)


@pytest.mark.parametrize("text", ["", "maybe", "the weather is nice", "no json here"])
def test_boolean_unrelated_is_no_match(text):
    assert extract(text, ExtractionKind.BOOLEAN) == NO_MATCH


def test_should_respond_first_line():
    outcome = extract("[IGNORE]\nbecause nobody asked", ExtractionKind.SHOULD_RESPOND)
    assert outcome == Decision(ResponseDecision.IGNORE)


def test_should_respond_contained_word():
    outcome = extract("I think the agent should STOP now.", ExtractionKind.SHOULD_RESPOND)
    assert outcome == Decision(ResponseDecision.STOP)


def test_should_respond_no_match():
    assert extract("unclear", ExtractionKind.SHOULD_RESPOND) == NO_MATCH


def test_extract_accepts_none():
    assert extract(None, ExtractionKind.JSON_OBJECT) == NO_MATCH


def test_extract_is_deterministic():
    text = 'noise {"a": [1, 2]} more {"b": 3}'
    results = {repr(extract(text, ExtractionKind.JSON_OBJECT)) for _ in range(5)}
    assert results == {repr(StructuredObject({"a": [1, 2]}))}


def test_string_array_skips_non_string_arrays():
    text = 'Scores: [1, 2]. Answer: ["a", "b"]'
    assert extract(text, ExtractionKind.STRING_ARRAY) == StringArray(("a", "b"))
    assert parse_string_array(text) == ["a", "b"]


def test_string_array_without_strings_is_no_match():
    assert extract("[1, 2] and [true]", ExtractionKind.STRING_ARRAY) == NO_MATCH


def test_text_kind_wraps_raw_text():
    assert extract("  as is\n", ExtractionKind.TEXT) == Text("  as is\n")
    assert extract(None, ExtractionKind.TEXT) == Text("")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("I should STOP responding here", ResponseDecision.STOP),
        ("[IGNORE] the user does not need a respond", ResponseDecision.IGNORE),
        ("[STOP] - the conversation is over, do not RESPOND", ResponseDecision.STOP),
        ("Ignore this one, nobody asked", ResponseDecision.IGNORE),
        ("the agent should probably stop here", ResponseDecision.STOP),
        ("Responding would be rude. IGNORE", ResponseDecision.IGNORE),
        ("I would respond, not IGNORE it", ResponseDecision.IGNORE),
    ],
)
def test_should_respond_picks_the_stated_decision(text, expected):
    assert extract(text, ExtractionKind.SHOULD_RESPOND) == Decision(expected)


def test_should_respond_ignores_embedded_words():
    assert extract("responding, stopped, ignored", ExtractionKind.SHOULD_RESPOND) == NO_MATCH
