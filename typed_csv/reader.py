"""
CSV reader front-end for typed-csv.

``CsvReader`` holds the input (a file path or in-memory text) and a
``ReaderConfig``. Declaring the row type returns a ``DataSource``:

- ``row_type(int, str, GenericsAware)`` takes raw classes. Generic
  classes resolve erased; their factory must supply the type arguments.
- ``precise_row_type(int, str, GenericsAware[Nested])`` takes precise
  types. Required when a factory has no default type hint.

Both build the same ``RowBuilder`` and so decode identically. A builder
is created when the ``DataSource`` is created, so a missing parser is
reported before any input is read.

``DataSource.collect()`` can split the records into contiguous partitions
and parse them in a thread pool; rows come back in input order. Every
iteration and every partition gets a fresh RowBuilder, so concurrent
``collect()`` calls on one ``DataSource`` never share parser state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Sequence

import pandas as pd

from typed_csv.config import ReaderConfig, validate_config_against_row_type
from typed_csv.exceptions import RecordParseError, RecordShapeError
from typed_csv.registry import ParserRegistry, get_default_registry
from typed_csv.row import Row, RowBuilder
from typed_csv.tokenizer import split_record
from typed_csv.types import TypeDescriptor, resolve_type

logger = logging.getLogger(__name__)

# (1-based line number, record text)
Record = tuple[int, str]


@dataclass
class PartitionResult:
    """Output of parsing one partition.

    Attributes:
        rows: Decoded rows in input order.
        errors: Record errors that were skipped because
            ``ignore_invalid_lines`` is set.
    """

    rows: list[Row] = field(default_factory=list)
    errors: list[RecordParseError] = field(default_factory=list)


def _split_lines(text: str, line_delimiter: str) -> list[str]:
    lines = text.split(line_delimiter)
    if lines and lines[-1] == "":
        lines.pop()
    if line_delimiter == "\n":
        lines = [line[:-1] if line.endswith("\r") else line for line in lines]
    return lines


def split_partitions(records: Sequence[Record], parallelism: int) -> list[Sequence[Record]]:
    """Split *records* into at most *parallelism* contiguous, non-empty chunks."""
    if not records:
        return [records]
    size, extra = divmod(len(records), parallelism)
    partitions: list[Sequence[Record]] = []
    start = 0
    for i in range(parallelism):
        stop = start + size + (1 if i < extra else 0)
        if stop > start:
            partitions.append(records[start:stop])
        start = stop
    return partitions


def parse_partition(
    records: Sequence[Record] | Iterator[Record],
    builder: RowBuilder,
    config: ReaderConfig,
) -> PartitionResult:
    """Tokenize and decode records with one builder.

    Raises:
        RecordParseError: On the first bad record, unless
            ``config.ignore_invalid_lines`` is set.
    """
    result = PartitionResult()
    for line_number, line in records:
        row = _parse_one(line_number, line, builder, config, result)
        if row is not None:
            result.rows.append(row)
    return result


def _parse_one(
    line_number: int,
    line: str,
    builder: RowBuilder,
    config: ReaderConfig,
    result: PartitionResult,
) -> Row | None:
    try:
        spans = split_record(line, config.field_delimiter, config.quote_char)
        mask = config.include_fields
        if mask is not None:
            if len(spans) < len(mask):
                raise RecordShapeError(len(mask), len(spans), at_least=True)
            spans = [spans[i] for i in config.selected_columns]
        return builder.parse_spans(line, spans)
    except RecordParseError as exc:
        exc.at_line(line_number)
        if not config.ignore_invalid_lines:
            raise
        logger.warning("Skipping invalid record: %s", exc)
        result.errors.append(exc)
        return None


class DataSource:
    """Rows of a fixed row type read from a ``CsvReader``'s input."""

    def __init__(self, reader: CsvReader, row_type: Sequence[TypeDescriptor]) -> None:
        validate_config_against_row_type(reader.config, len(row_type))
        self._reader = reader
        self._builder = RowBuilder(row_type, registry=reader.registry)
        self.errors: list[RecordParseError] = []
        logger.info(
            "DataSource created for %s with row type (%s)",
            reader.source_name,
            ", ".join(str(d) for d in self.row_type),
        )

    @property
    def row_type(self) -> tuple[TypeDescriptor, ...]:
        return self._builder.row_type

    @property
    def config(self) -> ReaderConfig:
        return self._reader.config

    def _new_builder(self) -> RowBuilder:
        return RowBuilder(self.row_type, registry=self._reader.registry)

    def __iter__(self) -> Iterator[Row]:
        """Stream rows with a single builder. Skipped errors land in ``errors``."""
        self.errors = []
        result = PartitionResult(errors=self.errors)
        builder = self._new_builder()
        for line_number, line in self._reader.records():
            row = _parse_one(line_number, line, builder, self.config, result)
            if row is not None:
                yield row

    def collect(self, parallelism: int | None = None) -> list[Row]:
        """Parse all records and return the rows in input order.

        Args:
            parallelism: Number of partitions parsed concurrently.
                Defaults to ``config.parallelism``.
        """
        parallelism = parallelism or self.config.parallelism
        records = list(self._reader.records())
        partitions = split_partitions(records, parallelism)

        builders = [self._new_builder() for _ in partitions]
        if len(partitions) == 1:
            results = [parse_partition(partitions[0], builders[0], self.config)]
        else:
            with ThreadPoolExecutor(max_workers=len(partitions)) as pool:
                futures = [
                    pool.submit(parse_partition, part, builder, self.config)
                    for part, builder in zip(partitions, builders)
                ]
                results = [f.result() for f in futures]

        rows = [row for result in results for row in result.rows]
        self.errors = [err for result in results for err in result.errors]
        logger.info(
            "Collected %d row(s) from %d record(s) in %d partition(s), %d skipped",
            len(rows), len(records), len(partitions), len(self.errors),
        )
        return rows

    def to_pandas(
        self, columns: Sequence[str] | None = None, parallelism: int | None = None
    ) -> pd.DataFrame:
        """Collect the rows into a DataFrame (columns ``f0``, ``f1``, ... by default)."""
        if columns is None:
            columns = [f"f{i}" for i in range(len(self.row_type))]
        elif len(columns) != len(self.row_type):
            raise ValueError(
                f"Expected {len(self.row_type)} column names, got {len(columns)}"
            )
        rows = self.collect(parallelism=parallelism)
        frame = pd.DataFrame.from_records(
            [tuple(row) for row in rows], columns=list(columns)
        )
        return frame


class CsvReader:
    """Reads delimited text into typed rows.

    Args:
        path: Input file. Use ``CsvReader.from_text()`` for in-memory data.
        config: Reader settings; defaults to ``ReaderConfig()``.
        registry: Parser registry; defaults to the process-wide registry.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        config: ReaderConfig | None = None,
        registry: ParserRegistry | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.config = config or ReaderConfig()
        self.registry = registry or get_default_registry()
        self._text: str | None = None

    @classmethod
    def from_text(
        cls,
        text: str,
        config: ReaderConfig | None = None,
        registry: ParserRegistry | None = None,
    ) -> CsvReader:
        reader = cls(config=config, registry=registry)
        reader._text = text
        return reader

    @property
    def source_name(self) -> str:
        return str(self.path) if self.path is not None else "<text>"

    # -- Fluent configuration ------------------------------------------

    def _update(self, **changes: Any) -> CsvReader:
        self.config = ReaderConfig.model_validate({**self.config.model_dump(), **changes})
        return self

    def field_delimiter(self, delimiter: str) -> CsvReader:
        return self._update(field_delimiter=delimiter)

    def line_delimiter(self, delimiter: str) -> CsvReader:
        return self._update(line_delimiter=delimiter)

    def parse_quoted_strings(self, quote_char: str) -> CsvReader:
        return self._update(quote_char=quote_char)

    def ignore_first_line(self) -> CsvReader:
        return self._update(ignore_first_line=True)

    def ignore_comments(self, prefix: str) -> CsvReader:
        return self._update(comment_prefix=prefix)

    def ignore_invalid_lines(self) -> CsvReader:
        return self._update(ignore_invalid_lines=True)

    def include_fields(self, *mask: bool | str) -> CsvReader:
        """Select input columns, e.g. ``include_fields(True, False, True)``
        or ``include_fields("101")``."""
        if len(mask) == 1 and isinstance(mask[0], str):
            flags = []
            for ch in mask[0]:
                if ch not in "10TFtf":
                    raise ValueError(f"Invalid include_fields mask character {ch!r}")
                flags.append(ch in "1Tt")
        else:
            flags = [bool(m) for m in mask]
        return self._update(include_fields=flags)

    # -- Row types -----------------------------------------------------

    def row_type(self, *classes: type) -> DataSource:
        """Declare the row type from raw classes."""
        return DataSource(self, [resolve_type(c) for c in classes])

    def precise_row_type(self, *types: Any) -> DataSource:
        """Declare the row type from precise types (descriptors or annotations)."""
        return DataSource(self, [TypeDescriptor.of(t) for t in types])

    # -- Input -----------------------------------------------------------

    def lines(self) -> Iterator[str]:
        """Yield raw lines without their terminators."""
        delimiter = self.config.line_delimiter
        if self._text is not None:
            yield from _split_lines(self._text, delimiter)
            return
        if self.path is None:
            raise ValueError("CsvReader has neither a path nor text")
        if delimiter != "\n":
            # newline="" keeps "\r\n" and "\r" as written
            with open(self.path, "r", encoding=self.config.encoding, newline="") as f:
                text = f.read()
            yield from _split_lines(text, delimiter)
            return
        with open(self.path, "r", encoding=self.config.encoding, newline="\n") as f:
            for line in f:
                yield line.rstrip("\n").removesuffix("\r")

    def records(self) -> Iterator[Record]:
        """Yield ``(line_number, line)`` for every line that holds a record.

        Skips the header line (if configured), comment lines and blank lines.
        """
        prefix = self.config.comment_prefix
        for line_number, line in enumerate(self.lines(), start=1):
            if line_number == 1 and self.config.ignore_first_line:
                continue
            if not line:
                continue
            if prefix is not None and line.startswith(prefix):
                continue
            yield line_number, line
