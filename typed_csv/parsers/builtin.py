"""
Built-in field parsers for typed-csv.

These parsers are registered implicitly for the primitive types and can
only be shadowed, never removed (see ``ParserRegistry``).

Numeric parsers consume the longest valid prefix of their span and report
how much they consumed; the RowBuilder rejects the field if anything is
left over. Fixed-width numpy scalars (``np.int32`` etc.) are range-checked
so an out-of-range literal is an overflow error, not a silent wrap.
"""

from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from typing import Any

import numpy as np
import pandas as pd

from typed_csv.parsers.base import FieldParser, ParseErrorState

_INT_RE = re.compile(r"[+-]?\d+")
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_FLOAT_RE = re.compile(
    r"[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_BOOL_RE = re.compile(r"true|false|1|0", re.IGNORECASE)
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_TIME_RE = re.compile(r"\d{2}:\d{2}(?::\d{2}(?:\.(?:\d{6}|\d{3}))?)?")
_DATETIME_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}(?:[ T]\d{2}:\d{2}(?::\d{2}(?:\.(?:\d{6}|\d{3}))?)?)?"
)
_TIMESTAMP_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}(?:[ T]\d{2}:\d{2}(?::\d{2}(?:\.\d{1,9})?)?(?:Z|[+-]\d{2}:?\d{2})?)?"
)


class StrParser(FieldParser[str]):
    """Takes the whole span verbatim. Empty fields are empty strings."""

    def _parse(self, buffer: str, start: int, end: int) -> tuple[str, int]:
        return buffer[start:end], end


class _PatternParser(FieldParser[Any]):
    """Shared prefix matching for the lexical built-ins."""

    pattern: re.Pattern[str]
    invalid_reason = ParseErrorState.NUMERIC_VALUE_ILLEGAL_CHARACTER

    def _match(self, buffer: str, start: int, end: int) -> tuple[str, int]:
        if start >= end:
            raise self.fail(ParseErrorState.EMPTY_COLUMN, position=start)
        m = self.pattern.match(buffer, start, end)
        if m is None:
            numeric = self.invalid_reason is ParseErrorState.NUMERIC_VALUE_ILLEGAL_CHARACTER
            if numeric and buffer[start] in "+-":
                raise self.fail(ParseErrorState.NUMERIC_VALUE_ORPHAN_SIGN, position=start)
            raise self.fail(self.invalid_reason, position=start)
        return m.group(), m.end()


class IntParser(_PatternParser):
    pattern = _INT_RE

    def _parse(self, buffer: str, start: int, end: int) -> tuple[int, int]:
        text, stop = self._match(buffer, start, end)
        return self._to_int(text, start), stop

    def _to_int(self, text: str, start: int) -> int:
        try:
            return int(text)
        except ValueError as exc:
            # more digits than sys.get_int_max_str_digits() allows
            raise self.fail(
                ParseErrorState.NUMERIC_VALUE_OVERFLOW_UNDERFLOW, str(exc), position=start
            ) from exc


class BoundedIntParser(IntParser):
    """Integer parser for a fixed-width numpy integer type."""

    def __init__(self, dtype: type[np.integer]) -> None:
        super().__init__()
        self.dtype = dtype
        self._info = np.iinfo(dtype)

    def _parse(self, buffer: str, start: int, end: int) -> tuple[np.integer, int]:
        text, stop = self._match(buffer, start, end)
        value = self._to_int(text, start)
        if not self._info.min <= value <= self._info.max:
            raise self.fail(
                ParseErrorState.NUMERIC_VALUE_OVERFLOW_UNDERFLOW,
                f"{value} outside [{self._info.min}, {self._info.max}]",
                position=start,
            )
        return self.dtype(value), stop


class FloatParser(_PatternParser):
    pattern = _FLOAT_RE

    def _parse(self, buffer: str, start: int, end: int) -> tuple[float, int]:
        text, stop = self._match(buffer, start, end)
        return float(text), stop


class NumpyFloatParser(_PatternParser):
    """Float parser for a fixed-width numpy float type."""

    pattern = _FLOAT_RE

    def __init__(self, dtype: type[np.floating]) -> None:
        super().__init__()
        self.dtype = dtype
        self._max = float(np.finfo(dtype).max)

    def _parse(self, buffer: str, start: int, end: int) -> tuple[np.floating, int]:
        text, stop = self._match(buffer, start, end)
        value = float(text)
        if np.isfinite(value) and abs(value) > self._max:
            raise self.fail(
                ParseErrorState.NUMERIC_VALUE_OVERFLOW_UNDERFLOW,
                f"{text} does not fit {np.dtype(self.dtype).name}",
                position=start,
            )
        return self.dtype(value), stop


class DecimalParser(_PatternParser):
    pattern = _DECIMAL_RE

    def _parse(self, buffer: str, start: int, end: int) -> tuple[Decimal, int]:
        text, stop = self._match(buffer, start, end)
        try:
            return Decimal(text), stop
        except InvalidOperation as exc:
            raise self.fail(ParseErrorState.NUMERIC_VALUE_ILLEGAL_CHARACTER, str(exc)) from exc


class BoolParser(_PatternParser):
    """Accepts ``true``/``false`` (any case) and ``1``/``0``."""

    pattern = _BOOL_RE
    invalid_reason = ParseErrorState.BOOLEAN_INVALID

    def _parse(self, buffer: str, start: int, end: int) -> tuple[bool, int]:
        text, stop = self._match(buffer, start, end)
        return text.lower() in ("true", "1"), stop


class _TemporalParser(_PatternParser):
    invalid_reason = ParseErrorState.ILLEGAL_VALUE

    def _convert(self, text: str) -> Any:
        raise NotImplementedError

    def _parse(self, buffer: str, start: int, end: int) -> tuple[Any, int]:
        text, stop = self._match(buffer, start, end)
        try:
            return self._convert(text), stop
        except ValueError as exc:
            raise self.fail(ParseErrorState.ILLEGAL_VALUE, str(exc), position=start) from exc


class DateParser(_TemporalParser):
    pattern = _DATE_RE

    def _convert(self, text: str) -> dt.date:
        return dt.date.fromisoformat(text)


class TimeParser(_TemporalParser):
    pattern = _TIME_RE

    def _convert(self, text: str) -> dt.time:
        return dt.time.fromisoformat(text)


class DateTimeParser(_TemporalParser):
    pattern = _DATETIME_RE

    def _convert(self, text: str) -> dt.datetime:
        return dt.datetime.fromisoformat(text)


class TimestampParser(_TemporalParser):
    """ISO timestamps decoded as ``pandas.Timestamp`` (nanosecond precision)."""

    pattern = _TIMESTAMP_RE

    def _convert(self, text: str) -> pd.Timestamp:
        return pd.Timestamp(text)


def builtin_factories() -> dict[type, Any]:
    """Build the implicit raw type -> factory map."""
    from typed_csv.parsers.containers import ListParserFactory
    from typed_csv.registry import ParserClassFactory

    factories: dict[type, Any] = {
        str: ParserClassFactory(StrParser),
        int: ParserClassFactory(IntParser),
        float: ParserClassFactory(FloatParser),
        bool: ParserClassFactory(BoolParser),
        Decimal: ParserClassFactory(DecimalParser),
        dt.date: ParserClassFactory(DateParser),
        dt.time: ParserClassFactory(TimeParser),
        dt.datetime: ParserClassFactory(DateTimeParser),
        pd.Timestamp: ParserClassFactory(TimestampParser),
        list: ListParserFactory(),
    }
    for dtype in (np.int8, np.int16, np.int32, np.int64,
                  np.uint8, np.uint16, np.uint32, np.uint64):
        factories[dtype] = ParserClassFactory(BoundedIntParser, dtype)
    for dtype in (np.float32, np.float64):
        factories[dtype] = ParserClassFactory(NumpyFloatParser, dtype)
    return factories
