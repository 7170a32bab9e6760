"""
Unit tests for the CSV reader front-end (typed_csv.reader).

Most tests use in-memory text via ``CsvReader.from_text()``; line
delimiters on real files are checked against small ``tmp_path`` files.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pandas as pd
import pytest
from pydantic import ValidationError

from typed_csv.config import ReaderConfig
from typed_csv.exceptions import (
    ConfigValidationError,
    FieldParseError,
    RecordShapeError,
    ResolutionError,
)
from typed_csv.parsers.base import ParseErrorState
from typed_csv.parsers.model import JsonModelParserFactory
from typed_csv.reader import CsvReader, split_partitions
from typed_csv.row import Row
from tests.custom_types import CountingFactory, NotRegistered, Point


def _reader(text: str, registry, **config) -> CsvReader:
    return CsvReader.from_text(text, config=ReaderConfig(**config), registry=registry)


class TestSplitPartitions:
    def test_contiguous_and_balanced(self):
        records = [(i, str(i)) for i in range(1, 8)]
        parts = split_partitions(records, 3)
        assert [len(p) for p in parts] == [3, 2, 2]
        assert [r for p in parts for r in p] == records

    def test_more_partitions_than_records(self):
        records = [(1, "a"), (2, "b")]
        assert len(split_partitions(records, 5)) == 2

    def test_empty(self):
        assert split_partitions([], 4) == [[]]


class TestFluentConfiguration:
    def test_methods_update_config(self, registry):
        reader = (
            CsvReader.from_text("", registry=registry)
            .field_delimiter(";")
            .line_delimiter("\r\n")
            .parse_quoted_strings('"')
            .ignore_first_line()
            .ignore_comments("//")
            .ignore_invalid_lines()
            .include_fields(True, False, True)
        )
        config = reader.config
        assert config.field_delimiter == ";"
        assert config.line_delimiter == "\r\n"
        assert config.quote_char == '"'
        assert config.ignore_first_line is True
        assert config.comment_prefix == "//"
        assert config.ignore_invalid_lines is True
        assert config.include_fields == [True, False, True]

    def test_mask_string(self, registry):
        reader = CsvReader.from_text("", registry=registry).include_fields("1T0f")
        assert reader.config.include_fields == [True, True, False, False]

    def test_bad_mask_string(self, registry):
        with pytest.raises(ValueError, match="mask character"):
            CsvReader.from_text("", registry=registry).include_fields("1x")

    def test_invalid_setting_rejected(self, registry):
        reader = CsvReader.from_text("", registry=registry)
        with pytest.raises(ValidationError):
            reader.field_delimiter("ab")


class TestRecords:
    def test_skips_header_comments_and_blank_lines(self, registry):
        text = "id,name\n1,a\n\n# note\n2,b\n"
        reader = _reader(text, registry, ignore_first_line=True, comment_prefix="#")
        assert list(reader.records()) == [(2, "1,a"), (5, "2,b")]

    def test_crlf_lines(self, registry):
        reader = _reader("1,a\r\n2,b\r\n", registry)
        assert list(reader.lines()) == ["1,a", "2,b"]

    def test_custom_line_delimiter(self, registry):
        reader = _reader("1,a|2,b", registry, line_delimiter="|")
        assert list(reader.lines()) == ["1,a", "2,b"]

    def test_no_input(self, registry):
        with pytest.raises(ValueError, match="neither a path nor text"):
            list(CsvReader(registry=registry).lines())


class TestDataSource:
    def test_iterate(self, registry):
        source = _reader("1,a\n2,b\n", registry).row_type(int, str)
        rows = list(source)
        assert rows == [(1, "a"), (2, "b")]
        assert all(isinstance(r, Row) for r in rows)

    def test_resolution_fails_before_reading(self, registry):
        reader = _reader("not,even,parsed\n", registry)
        with pytest.raises(ResolutionError):
            reader.row_type(int, NotRegistered)

    def test_mask_must_match_row_type(self, registry):
        reader = _reader("1,a\n", registry, include_fields=[True, True, True])
        with pytest.raises(ConfigValidationError):
            reader.row_type(int, str)

    def test_include_fields(self, registry):
        reader = _reader("1,skip,a,extra\n2,skip,b,extra\n", registry)
        rows = reader.include_fields(True, False, True).row_type(int, str).collect()
        assert rows == [(1, "a"), (2, "b")]

    def test_include_fields_record_too_short(self, registry):
        reader = _reader("1,skip\n", registry).include_fields("101")
        with pytest.raises(RecordShapeError) as exc_info:
            reader.row_type(int, str).collect()
        assert exc_info.value.line_number == 1
        assert "at least 3" in str(exc_info.value)

    def test_first_error_raises_with_line(self, registry):
        source = _reader("1,a\nx,b\n", registry).row_type(int, str)
        with pytest.raises(FieldParseError) as exc_info:
            source.collect()
        error = exc_info.value
        assert error.line_number == 2
        assert error.column == 0
        assert str(error).startswith("Line 2: column 0")

    def test_ignore_invalid_lines(self, registry, caplog):
        source = (
            _reader("1,a\nx,b\n3\n4,d\n", registry)
            .ignore_invalid_lines()
            .row_type(int, str)
        )
        with caplog.at_level(logging.WARNING, logger="typed_csv.reader"):
            rows = source.collect()
        assert rows == [(1, "a"), (4, "d")]
        assert [e.line_number for e in source.errors] == [2, 3]
        assert source.errors[0].reason is ParseErrorState.NUMERIC_VALUE_ILLEGAL_CHARACTER
        assert isinstance(source.errors[1], RecordShapeError)
        assert "Skipping invalid record" in caplog.text

    def test_iteration_records_skipped_errors(self, registry):
        source = _reader("x\n2\n", registry).ignore_invalid_lines().row_type(int)
        assert list(source) == [(2,)]
        assert len(source.errors) == 1

    def test_parallel_collect_keeps_order(self, registry):
        text = "".join(f"{i},v{i}\n" for i in range(50))
        source = _reader(text, registry).row_type(int, str)
        assert source.collect(parallelism=4) == source.collect(parallelism=1)
        assert [r[0] for r in source.collect(parallelism=7)] == list(range(50))

    def test_parallel_collect_isolates_failures(self, registry):
        text = "".join(f"{i}\n" if i != 23 else "bad\n" for i in range(40))
        source = _reader(text, registry, parallelism=3).ignore_invalid_lines().row_type(int)
        rows = source.collect()
        assert len(rows) == 39
        assert [e.line_number for e in source.errors] == [24]

    def test_empty_input(self, registry):
        assert _reader("", registry).row_type(int).collect() == []


class TestToPandas:
    def test_default_columns(self, registry):
        frame = _reader("1,a\n2,b\n", registry).row_type(int, str).to_pandas()
        expected = pd.DataFrame({"f0": [1, 2], "f1": ["a", "b"]})
        pd.testing.assert_frame_equal(frame, expected)

    def test_named_columns(self, registry):
        frame = _reader("1,a\n", registry).row_type(int, str).to_pandas(columns=["id", "name"])
        assert list(frame.columns) == ["id", "name"]

    def test_wrong_column_count(self, registry):
        source = _reader("1,a\n", registry).row_type(int, str)
        with pytest.raises(ValueError, match="Expected 2 column names"):
            source.to_pandas(columns=["only"])


class TestFileInput:
    """Reading from a file honours the configured line delimiter byte for byte."""

    @pytest.mark.parametrize("delimiter", ["\r\n", "\r", ";"])
    def test_custom_line_delimiter(self, registry, tmp_path, delimiter):
        path = tmp_path / "data.csv"
        path.write_bytes(f"1,a{delimiter}2,b{delimiter}".encode("utf-8"))
        rows = CsvReader(path, registry=registry).line_delimiter(delimiter).row_type(int, str).collect()
        assert rows == [(1, "a"), (2, "b")]

    def test_default_delimiter_tolerates_crlf(self, registry, tmp_path):
        path = tmp_path / "data.csv"
        path.write_bytes(b"1,a\r\n2,b\n")
        rows = CsvReader(path, registry=registry).row_type(int, str).collect()
        assert rows == [(1, "a"), (2, "b")]

    def test_oversized_integer_skipped(self, registry, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("1\n" + "9" * 5000 + "\n3\n", encoding="utf-8")
        source = CsvReader(path, registry=registry).ignore_invalid_lines().row_type(int)
        assert source.collect() == [(1,), (3,)]
        assert source.errors[0].reason is ParseErrorState.NUMERIC_VALUE_OVERFLOW_UNDERFLOW
        assert source.errors[0].line_number == 2


class TestBuilderOwnership:
    """Each iteration and each partition decodes with its own RowBuilder."""

    def _source(self, registry, spy, count):
        registry.register(Point, spy)
        text = "".join(f"{i},'{{\"x\": {i}, \"y\": 0}}'\n" for i in range(count))
        return _reader(text, registry, quote_char="'").row_type(int, Point)

    def test_collect_builds_one_builder_per_partition(self, registry):
        spy = CountingFactory(JsonModelParserFactory())
        source = self._source(registry, spy, 6)
        assert len(spy.parsers) == 1

        source.collect(parallelism=3)
        assert len(spy.parsers) == 4
        # the builder made at construction never decodes records
        assert spy.parsers[0].calls == 0
        assert [p.calls for p in spy.parsers[1:]] == [2, 2, 2]

    def test_iteration_uses_fresh_builder(self, registry):
        spy = CountingFactory(JsonModelParserFactory())
        source = self._source(registry, spy, 2)
        assert [r[1].x for r in source] == [0, 1]
        assert spy.parsers[0].calls == 0
        assert spy.parsers[1].calls == 2

    def test_concurrent_collects(self, registry):
        text = "".join(f"{i},v{i}\n" for i in range(200))
        source = _reader(text, registry).row_type(int, str)
        expected = source.collect(parallelism=1)
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: source.collect(parallelism=3), range(8)))
        assert all(rows == expected for rows in results)
