"""
Custom exception hierarchy for typed-csv.

Two families of errors exist:
- Setup errors (ResolutionError, RegistrationError, ConfigValidationError)
  are configuration bugs. They surface while a RowBuilder or reader is
  being built, before any record is read.
- Record errors (FieldParseError, RecordShapeError) describe bad data in
  a single record. They carry the column index, the raw field text and
  the reason so callers can log or skip the record precisely.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typed_csv.parsers.base import ParseErrorState


class TypedCsvError(Exception):
    """Base exception for all typed-csv errors."""


class ResolutionError(TypedCsvError):
    """Raised when a type cannot be turned into an executable parser.

    This happens if:
    - No parser factory is registered for the raw type.
    - The number of type-argument hints does not match the type's arity.
    - A generic type reaches a factory without type arguments and the
      factory has no default type hint to fall back on.
    """

    def __init__(self, message: str, column: int | None = None) -> None:
        self.column = column
        if column is not None:
            message = f"Column {column}: {message}"
        super().__init__(message)


class RegistrationError(TypedCsvError):
    """Raised when a parser registration is rejected."""


class ConfigValidationError(TypedCsvError):
    """Raised when a ReaderConfig does not fit the requested row type."""


class RecordParseError(TypedCsvError):
    """Base class for errors local to one record.

    Attributes:
        line_number: 1-based line of the record in its source, when known.
    """

    line_number: int | None = None

    def at_line(self, line_number: int) -> RecordParseError:
        self.line_number = line_number
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.line_number is not None:
            return f"Line {self.line_number}: {message}"
        return message


class FieldParseError(RecordParseError):
    """Raised when a single field does not match its type's lexical structure.

    Attributes:
        reason: A ``ParseErrorState`` describing the failure.
        column: Index of the failing column, filled in by the RowBuilder.
        text: Raw text of the failing field.
        position: Offset in the parsed buffer where the failure was found.
    """

    def __init__(
        self,
        reason: ParseErrorState,
        detail: str = "",
        *,
        column: int | None = None,
        text: str | None = None,
        position: int | None = None,
    ) -> None:
        self.reason = reason
        self.detail = detail
        self.column = column
        self.text = text
        self.position = position
        super().__init__(self._format())

    def _format(self) -> str:
        reason = getattr(self.reason, "value", self.reason)
        parts = []
        if self.column is not None:
            parts.append(f"column {self.column}")
        parts.append(str(reason))
        message = ": ".join(parts)
        if self.detail:
            message = f"{message} ({self.detail})"
        if self.text is not None:
            message = f"{message} in field {self.text!r}"
        return message

    def in_column(self, column: int, text: str) -> FieldParseError:
        """Attach the column index and raw field text, keeping the reason."""
        self.column = column
        self.text = text
        self.args = (self._format(),)
        return self


class RecordShapeError(RecordParseError):
    """Raised when a record's field count does not match the row type."""

    def __init__(self, expected: int, actual: int, at_least: bool = False) -> None:
        self.expected = expected
        self.actual = actual
        qualifier = "at least " if at_least else ""
        super().__init__(
            f"Expected {qualifier}{expected} field(s) but the record has {actual}"
        )
