"""Tolerant parsing of raw model text into structured outcomes.

Every function here is total: malformed input yields ``NO_MATCH`` rather than
an exception, and the same input always yields the same outcome.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Tuple

from .models import (
    NO_MATCH,
    Boolean,
    Decision,
    GenerationOutcome,
    ResponseDecision,
    StringArray,
    StructuredObject,
    Text,
)


class ExtractionKind(str, Enum):
    TEXT = "text"
    JSON_OBJECT = "json_object"
    JSON_ARRAY = "json_array"
    STRING_ARRAY = "string_array"
    BOOLEAN = "boolean"
    SHOULD_RESPOND = "should_respond"


AFFIRMATIVE = frozenset({"YES", "Y", "TRUE", "T", "1", "ON", "ENABLE", "RESPOND"})
NEGATIVE = frozenset({"NO", "N", "FALSE", "F", "0", "OFF", "DISABLE", "IGNORE", "STOP"})

_FENCE = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_DECODER = json.JSONDecoder()
_STRIP_CHARS = " \t\r\n\"'`[](){}<>*.!,;:"
_DECISION_LEAD = re.compile(r"^[\s\[\(\*\"'`]*(RESPOND|IGNORE|STOP)\b", re.IGNORECASE)
_DECISION_LABEL = re.compile(r"\b(RESPOND|IGNORE|STOP)\b")
_DECISION_WORD = re.compile(r"\b(RESPOND|IGNORE|STOP)\b", re.IGNORECASE)


def _fenced_blocks(text: str) -> Iterator[str]:
    for match in _FENCE.finditer(text):
        language = match.group(1).lower()
        if language in ("", "json", "json5", "javascript"):
            yield match.group(2)


def _scan(text: str, opener: str, accept: Callable[[Any], bool]) -> Optional[Any]:
    index = text.find(opener)
    while index != -1:
        try:
            value, _ = _DECODER.raw_decode(text, index)
        except ValueError:
            value = None
        if value is not None and accept(value):
            return value
        index = text.find(opener, index + 1)
    return None


def _find_json(text: str, opener: str, accept: Callable[[Any], bool]) -> Optional[Any]:
    for block in _fenced_blocks(text):
        value = _scan(block.strip(), opener, accept)
        if value is not None:
            return value
    return _scan(text, opener, accept)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def parse_json_object(text: str) -> Optional[dict]:
    """First JSON object in ``text``, fenced blocks first; ``None`` when absent."""
    if not text:
        return None
    return _find_json(text, "{", lambda value: isinstance(value, dict))


def parse_json_array(text: str) -> Optional[list]:
    if not text:
        return None
    return _find_json(text, "[", lambda value: isinstance(value, list))


def parse_string_array(text: str) -> Optional[List[str]]:
    """First array whose elements are all strings; other arrays are skipped."""
    if not text:
        return None
    return _find_json(text, "[", _is_string_list)


def parse_boolean(text: str) -> Optional[bool]:
    if not text:
        return None
    normalized = text.strip(_STRIP_CHARS).upper()
    if normalized in AFFIRMATIVE:
        return True
    if normalized in NEGATIVE:
        return False
    return None


def parse_should_respond(text: str) -> Optional[ResponseDecision]:
    """RESPOND, IGNORE or STOP, read from the start of the first line if possible.

    Otherwise the earliest whole-word occurrence wins, upper-case labels before
    prose. Words embedded in longer words ("responding") never count.
    """
    if not text:
        return None
    first_line = text.strip().split("\n", 1)[0]
    match = _DECISION_LEAD.match(first_line)
    if match is None:
        match = _DECISION_LABEL.search(text) or _DECISION_WORD.search(text)
    if match is None:
        return None
    return ResponseDecision(match.group(1).upper())


def extract(raw_text: Optional[str], kind: ExtractionKind) -> GenerationOutcome:
    """Interpret ``raw_text`` as ``kind``; returns ``NO_MATCH`` on any miss."""
    text = raw_text if isinstance(raw_text, str) else ""
    kind = ExtractionKind(kind)

    if kind is ExtractionKind.TEXT:
        return Text(text)

    if kind is ExtractionKind.JSON_OBJECT:
        obj = parse_json_object(text)
        return NO_MATCH if obj is None else StructuredObject(obj)

    if kind is ExtractionKind.JSON_ARRAY:
        array = parse_json_array(text)
        return NO_MATCH if array is None else StructuredObject(array)

    if kind is ExtractionKind.STRING_ARRAY:
        strings = parse_string_array(text)
        if strings is None:
            return NO_MATCH
        values: Tuple[str, ...] = tuple(strings)
        return StringArray(values)

    if kind is ExtractionKind.BOOLEAN:
        flag = parse_boolean(text.strip())
        return NO_MATCH if flag is None else Boolean(flag)

    decision = parse_should_respond(text)
    return NO_MATCH if decision is None else Decision(decision)
