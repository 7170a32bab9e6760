"""
Quote-aware record tokenizer for typed-csv.

Splits one record into field spans. Spans index into the original line,
so field parsers can decode in place. For a quoted field the span covers
the text between the quotes; the quotes themselves are stripped.

Quoting rules:
- Quoting is only recognized when the field starts with the quote char.
- Inside quotes the delimiter has no meaning, and a backslash before the
  quote char keeps the field open (the backslash stays in the text).
- After the closing quote only the delimiter or the end of the record may
  follow.
"""

from __future__ import annotations

from typing import NamedTuple

from typed_csv.exceptions import FieldParseError
from typed_csv.parsers.base import ParseErrorState


class FieldSpan(NamedTuple):
    """Location of one field inside a record."""

    start: int
    end: int
    quoted: bool = False

    def text(self, line: str) -> str:
        return line[self.start:self.end]


def _closing_quote(line: str, pos: int, quote_char: str) -> int:
    """Return the index of the quote that closes the field opened before *pos*."""
    i = pos
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == "\\" and i + 1 < n and line[i + 1] == quote_char:
            i += 2
            continue
        if ch == quote_char:
            return i
        i += 1
    return -1


def split_record(
    line: str,
    delimiter: str = ",",
    quote_char: str | None = None,
) -> list[FieldSpan]:
    """Split *line* into field spans.

    Args:
        line: One record without its line terminator.
        delimiter: Single-character field delimiter.
        quote_char: Quote character, or ``None`` to disable quoting.

    Returns:
        One ``FieldSpan`` per field, in order. An empty line is one empty
        field.

    Raises:
        FieldParseError: For an unterminated quoted field or characters
            between a closing quote and the next delimiter. ``column`` is
            the index of the offending field.
    """
    spans: list[FieldSpan] = []
    pos = 0
    n = len(line)
    while True:
        column = len(spans)
        if quote_char is not None and pos < n and line[pos] == quote_char:
            close = _closing_quote(line, pos + 1, quote_char)
            if close < 0:
                raise FieldParseError(
                    ParseErrorState.UNTERMINATED_QUOTED_STRING,
                    column=column, text=line[pos:], position=pos,
                )
            spans.append(FieldSpan(pos + 1, close, quoted=True))
            pos = close + 1
            if pos < n and line[pos] != delimiter:
                raise FieldParseError(
                    ParseErrorState.UNQUOTED_CHARS_AFTER_QUOTED_STRING,
                    column=column, text=line[spans[-1].start - 1:], position=pos,
                )
        else:
            stop = line.find(delimiter, pos)
            if stop < 0:
                stop = n
            spans.append(FieldSpan(pos, stop))
            pos = stop
        if pos >= n:
            return spans
        # skip the delimiter; a trailing delimiter yields a final empty field
        pos += 1
        if pos == n:
            spans.append(FieldSpan(n, n))
            return spans


def split_fields(
    line: str,
    delimiter: str = ",",
    quote_char: str | None = None,
) -> list[str]:
    """Like ``split_record()`` but returns the field texts."""
    return [span.text(line) for span in split_record(line, delimiter, quote_char)]
