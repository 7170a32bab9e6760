"""
typed-csv: decode delimited text into typed rows with pluggable field parsers.

Public API surface:

- ``CsvReader`` -- front-end. ``row_type(*classes)`` and
  ``precise_row_type(*types)`` return a ``DataSource`` of ``Row``s.
- ``register_custom_parser(type, factory)`` -- add a parser for a custom
  type to the process-wide registry. Call it before building readers.
- ``JsonModelParserFactory`` -- ready-made factory for pydantic models
  written as JSON, including generic models.
- ``read_csv(path, *types)`` -- one-call convenience.

Example::

    register_custom_parser(Nested, JsonModelParserFactory())
    register_custom_parser(
        GenericsAware, JsonModelParserFactory(GenericsAware[Nested])
    )
    rows = (
        CsvReader("data.csv")
        .parse_quoted_strings("'")
        .row_type(int, str, GenericsAware)
        .collect()
    )
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from typed_csv.config import ReaderConfig, load_config, save_config
from typed_csv.exceptions import (
    ConfigValidationError,
    FieldParseError,
    RecordParseError,
    RecordShapeError,
    RegistrationError,
    ResolutionError,
    TypedCsvError,
)
from typed_csv.parsers.base import FieldParser, ParseErrorState
from typed_csv.parsers.model import JsonModelParserFactory
from typed_csv.reader import CsvReader, DataSource
from typed_csv.registry import (
    ParserClassFactory,
    ParserFactory,
    ParserRegistry,
    get_default_registry,
    register_custom_parser,
)
from typed_csv.row import Row, RowBuilder
from typed_csv.types import TypeDescriptor, resolve_type

__all__ = [
    "ConfigValidationError",
    "CsvReader",
    "DataSource",
    "FieldParseError",
    "FieldParser",
    "JsonModelParserFactory",
    "ParseErrorState",
    "ParserClassFactory",
    "ParserFactory",
    "ParserRegistry",
    "ReaderConfig",
    "RecordParseError",
    "RecordShapeError",
    "RegistrationError",
    "ResolutionError",
    "Row",
    "RowBuilder",
    "TypeDescriptor",
    "TypedCsvError",
    "get_default_registry",
    "load_config",
    "read_csv",
    "register_custom_parser",
    "resolve_type",
    "save_config",
]

logger = logging.getLogger(__name__)


def read_csv(
    path: str | Path,
    *column_types: Any,
    config: ReaderConfig | str | Path | None = None,
    registry: ParserRegistry | None = None,
) -> list[Row]:
    """Read *path* into rows of the given column types.

    Args:
        path: Input CSV file.
        *column_types: One type per column. Classes and parametrized
            annotations are both accepted (precise resolution).
        config: A ``ReaderConfig``, or a path to a YAML reader config.
        registry: Parser registry; defaults to the process-wide one.

    Returns:
        The decoded rows, in input order.

    Raises:
        ResolutionError: If a column type has no registered parser.
        RecordParseError: On the first bad record, unless the config
            ignores invalid lines.
    """
    if isinstance(config, (str, Path)):
        config = load_config(config)
    reader = CsvReader(path, config=config, registry=registry)
    logger.info("read_csv() -- path=%s, %d column(s)", path, len(column_types))
    return reader.precise_row_type(*column_types).collect()
