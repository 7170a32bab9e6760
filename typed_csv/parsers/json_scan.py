"""
Offset-based JSON scanning helpers.

These functions find where a JSON value ends without decoding it, so an
outer parser can hand the exact span of a nested value to the nested
type's own parser. Commas, colons and braces inside strings or nested
objects never end a value early.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

from typed_csv.exceptions import FieldParseError
from typed_csv.parsers.base import FieldParser, ParseErrorState

T = TypeVar("T")
_WHITESPACE = " \t\r\n"
_LITERAL_STOP = ",]}:" + _WHITESPACE


class JsonSyntaxError(ValueError):
    """Malformed JSON at a known offset."""

    def __init__(self, message: str, position: int) -> None:
        self.position = position
        super().__init__(f"{message} at offset {position}")


def skip_whitespace(buffer: str, pos: int, end: int) -> int:
    while pos < end and buffer[pos] in _WHITESPACE:
        pos += 1
    return pos


def scan_string(buffer: str, pos: int, end: int) -> int:
    """Return the offset just past the string literal starting at *pos*."""
    if pos >= end or buffer[pos] != '"':
        raise JsonSyntaxError("Expected '\"'", pos)
    i = pos + 1
    while i < end:
        ch = buffer[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    raise JsonSyntaxError("Unterminated string", pos)


def _scan_container(buffer: str, pos: int, end: int) -> int:
    closers = {"{": "}", "[": "]"}
    stack = [closers[buffer[pos]]]
    i = pos + 1
    while i < end:
        ch = buffer[i]
        if ch == '"':
            i = scan_string(buffer, i, end)
            continue
        if ch in closers:
            stack.append(closers[ch])
        elif ch in "}]":
            if ch != stack.pop():
                raise JsonSyntaxError(f"Unexpected {ch!r}", i)
            if not stack:
                return i + 1
        i += 1
    raise JsonSyntaxError(f"Unterminated {buffer[pos]!r}", pos)


def scan_value(buffer: str, pos: int, end: int) -> int:
    """Return the offset just past the JSON value starting at *pos*.

    Raises:
        JsonSyntaxError: If no complete value starts at *pos*.
    """
    if pos >= end:
        raise JsonSyntaxError("Expected a value", pos)
    ch = buffer[pos]
    if ch in "{[":
        return _scan_container(buffer, pos, end)
    if ch == '"':
        return scan_string(buffer, pos, end)
    if ch in _LITERAL_STOP:
        raise JsonSyntaxError(f"Unexpected {ch!r}", pos)
    # number, true, false, null: validated later by json.loads
    i = pos
    while i < end and buffer[i] not in _LITERAL_STOP:
        i += 1
    return i


class JsonPayloadParser(FieldParser[T]):
    """Base for parsers of JSON-shaped payloads (objects, arrays).

    Provides span scanning, punctuation checks and delegation of a nested
    span to another field parser, all reporting ``FieldParseError``.
    """

    def _scan(self, buffer: str, pos: int, end: int) -> int:
        try:
            return scan_value(buffer, pos, end)
        except JsonSyntaxError as exc:
            raise self.fail(ParseErrorState.INVALID_PAYLOAD, str(exc), exc.position) from exc

    def _expect(self, buffer: str, pos: int, end: int, chars: str) -> tuple[str, int]:
        """Skip whitespace, require one of *chars*, return it and the next offset."""
        pos = skip_whitespace(buffer, pos, end)
        if pos >= end or buffer[pos] not in chars:
            found = repr(buffer[pos]) if pos < end else "end of field"
            raise self.fail(
                ParseErrorState.INVALID_PAYLOAD,
                f"expected one of {chars!r}, found {found} at offset {pos}",
                pos,
            )
        return buffer[pos], pos + 1

    def _decode(self, buffer: str, start: int, end: int) -> Any:
        try:
            return json.loads(buffer[start:end])
        except json.JSONDecodeError as exc:
            raise self.fail(ParseErrorState.INVALID_PAYLOAD, str(exc), start) from exc

    def _delegate(
        self, parser: FieldParser, buffer: str, start: int, end: int, label: str
    ) -> Any:
        """Decode ``buffer[start:end]`` with *parser*, which must consume all of it."""
        try:
            consumed = parser.parse(buffer, start, end)
        except FieldParseError as exc:
            raise self.fail(ParseErrorState.NESTED_VALUE, f"{label}: {exc}", start) from exc
        if consumed != end - start:
            raise self.fail(
                ParseErrorState.NESTED_VALUE,
                f"{label}: unexpected characters at offset {start + consumed}",
                start + consumed,
            )
        return parser.last_result
