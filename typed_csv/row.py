"""
Row type and RowBuilder for typed-csv.

The RowBuilder turns one tokenized record into a ``Row``. It is built from
a row type (one ``TypeDescriptor`` per column) and resolves one parser
per column up front, so per-record work is only decoding.

Failure semantics:
- Wrong field count -> ``RecordShapeError``.
- First column that fails -> ``FieldParseError`` naming the column, the
  raw field text and the reason. No partial row is produced.
- A parser that stops before the end of its field -> ``FieldParseError``
  with reason ``TRAILING_CHARACTERS``.

RowBuilders hold stateful parsers and must not be shared between
threads; create one per partition.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from typed_csv.exceptions import FieldParseError, RecordShapeError, ResolutionError
from typed_csv.parsers.base import FieldParser, ParseErrorState
from typed_csv.registry import ParserRegistry, get_default_registry
from typed_csv.tokenizer import FieldSpan, split_record
from typed_csv.types import TypeDescriptor, resolve_type

logger = logging.getLogger(__name__)


class Row(tuple):
    """A decoded record. ``str(row)`` joins the field texts with commas."""

    __slots__ = ()

    @property
    def arity(self) -> int:
        return len(self)

    def __str__(self) -> str:
        return ",".join(str(value) for value in self)

    def __repr__(self) -> str:
        return f"Row{tuple.__repr__(self)}"


class RowBuilder:
    """Decodes records into rows of a fixed row type.

    Args:
        row_type: One descriptor per column.
        registry: Registry to resolve parsers from. Defaults to the
            process-wide registry.

    Raises:
        ResolutionError: If a column type (or one of its type arguments)
            has no registered parser. ``column`` names the column.
    """

    def __init__(
        self,
        row_type: Sequence[TypeDescriptor],
        registry: ParserRegistry | None = None,
    ) -> None:
        if not row_type:
            raise ResolutionError("A row type needs at least one column")
        registry = registry or get_default_registry()
        self.row_type: tuple[TypeDescriptor, ...] = tuple(row_type)
        self._parsers: list[FieldParser] = []
        for column, descriptor in enumerate(self.row_type):
            try:
                self._parsers.append(registry.create_parser(descriptor))
            except ResolutionError as exc:
                raise ResolutionError(str(exc), column=column) from exc
        logger.debug("RowBuilder ready for (%s)", ", ".join(str(d) for d in self.row_type))

    @classmethod
    def from_classes(
        cls, *classes: type, registry: ParserRegistry | None = None
    ) -> RowBuilder:
        """Build from raw classes; generic classes resolve erased."""
        return cls([resolve_type(c) for c in classes], registry=registry)

    @classmethod
    def from_descriptors(
        cls, *types: Any, registry: ParserRegistry | None = None
    ) -> RowBuilder:
        """Build from precise types (descriptors or parametrized annotations)."""
        return cls([TypeDescriptor.of(t) for t in types], registry=registry)

    @property
    def arity(self) -> int:
        return len(self.row_type)

    def parse_record(self, fields: Sequence[str]) -> Row:
        """Decode a record given as one string per column."""
        self._check_shape(len(fields))
        return Row(
            self._parse_field(column, text, 0, len(text))
            for column, text in enumerate(fields)
        )

    def parse_spans(self, line: str, spans: Sequence[FieldSpan]) -> Row:
        """Decode a record given as spans into *line*, without copying fields."""
        self._check_shape(len(spans))
        return Row(
            self._parse_field(column, line, span.start, span.end)
            for column, span in enumerate(spans)
        )

    def parse_line(
        self, line: str, delimiter: str = ",", quote_char: str | None = None
    ) -> Row:
        """Tokenize *line* and decode it."""
        return self.parse_spans(line, split_record(line, delimiter, quote_char))

    def parse_records(self, records: Iterable[Sequence[str]]) -> list[Row]:
        return [self.parse_record(fields) for fields in records]

    def _check_shape(self, count: int) -> None:
        if count != self.arity:
            raise RecordShapeError(self.arity, count)

    def _parse_field(self, column: int, buffer: str, start: int, end: int) -> Any:
        parser = self._parsers[column]
        try:
            consumed = parser.parse(buffer, start, end)
        except FieldParseError as exc:
            exc.in_column(column, buffer[start:end])
            raise
        if consumed != end - start:
            raise FieldParseError(
                ParseErrorState.TRAILING_CHARACTERS,
                f"value ends at offset {consumed}",
                column=column,
                text=buffer[start:end],
                position=start + consumed,
            )
        return parser.last_result
