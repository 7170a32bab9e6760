"""
Field parser contract for typed-csv.

All field parsers implement this interface. The contract is:
1. ``parse(buffer, start, end)`` decodes the value that begins at
   ``start`` without reading at or past ``end``.
2. On success the decoded value is kept in ``last_result`` and the number
   of characters consumed is returned. Callers compare it with the span
   length to detect trailing garbage, or use it to step over a nested
   value embedded in a larger payload.
3. On failure ``error_state`` is set and ``FieldParseError`` is raised.

Why offsets instead of substrings:
- A nested parser can decode its value in place inside the outer
  payload, without slicing and copying.
- The consumed length tells an outer parser exactly where a nested value
  ends, so commas and braces inside it are never mistaken for structure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Generic, TypeVar

from typed_csv.exceptions import FieldParseError

T = TypeVar("T")


class ParseErrorState(str, Enum):
    """Reasons a field parser can fail."""

    NONE = "none"
    EMPTY_COLUMN = "empty_column"
    NUMERIC_VALUE_ORPHAN_SIGN = "numeric_value_orphan_sign"
    NUMERIC_VALUE_ILLEGAL_CHARACTER = "numeric_value_illegal_character"
    NUMERIC_VALUE_OVERFLOW_UNDERFLOW = "numeric_value_overflow_underflow"
    BOOLEAN_INVALID = "boolean_invalid"
    ILLEGAL_VALUE = "illegal_value"
    UNTERMINATED_QUOTED_STRING = "unterminated_quoted_string"
    UNQUOTED_CHARS_AFTER_QUOTED_STRING = "unquoted_chars_after_quoted_string"
    TRAILING_CHARACTERS = "trailing_characters"
    INVALID_PAYLOAD = "invalid_payload"
    NESTED_VALUE = "nested_value"


class FieldParser(ABC, Generic[T]):
    """Abstract base class for field parsers.

    Subclasses implement ``_parse()``, returning the decoded value and the
    offset just past it, and call ``self.fail()`` on malformed input.
    """

    def __init__(self) -> None:
        self._last_result: T | None = None
        self._error_state = ParseErrorState.NONE

    @property
    def last_result(self) -> T | None:
        return self._last_result

    @property
    def error_state(self) -> ParseErrorState:
        return self._error_state

    def parse(self, buffer: str, start: int = 0, end: int | None = None) -> int:
        """Decode the value at *start* and return the characters consumed.

        Raises:
            FieldParseError: If the text at *start* is not a valid value.
        """
        if end is None:
            end = len(buffer)
        self._error_state = ParseErrorState.NONE
        try:
            value, stop = self._parse(buffer, start, end)
        except FieldParseError as exc:
            self._error_state = exc.reason
            raise
        self._last_result = value
        return stop - start

    @abstractmethod
    def _parse(self, buffer: str, start: int, end: int) -> tuple[T, int]:
        """Return ``(value, stop)`` where *stop* is the offset after the value."""

    def fail(
        self, reason: ParseErrorState, detail: str = "", position: int | None = None
    ) -> FieldParseError:
        """Build the error for *reason*; use as ``raise self.fail(...)``."""
        self._error_state = reason
        return FieldParseError(reason, detail, position=position)

    @staticmethod
    def register_custom_parser(raw_type: type, factory: Any) -> None:
        """Register *factory* for *raw_type* in the default registry."""
        from typed_csv.registry import register_custom_parser

        register_custom_parser(raw_type, factory)
