"""
Built-in parser for ``list[T]`` fields written as JSON arrays.

The element type comes from the descriptor (``list[Nested]``); a bare
``list`` column is rejected at construction. Elements of a custom
registered type are decoded in place by that type's parser; any other
element type is validated by pydantic after JSON decoding.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from typed_csv.exceptions import ResolutionError
from typed_csv.parsers.base import FieldParser, ParseErrorState
from typed_csv.parsers.json_scan import JsonPayloadParser, skip_whitespace
from typed_csv.registry import ParserFactory, ParserRegistry
from typed_csv.types import TypeDescriptor

logger = logging.getLogger(__name__)


class ListParser(JsonPayloadParser[list]):
    def __init__(
        self,
        element_parser: FieldParser | None = None,
        adapter: TypeAdapter | None = None,
    ) -> None:
        super().__init__()
        self.element_parser = element_parser
        self.adapter = adapter

    def _parse(self, buffer: str, start: int, end: int) -> tuple[list, int]:
        _, pos = self._expect(buffer, start, end, "[")
        items: list[Any] = []
        pos = skip_whitespace(buffer, pos, end)
        if pos < end and buffer[pos] == "]":
            return items, pos + 1

        while True:
            pos = skip_whitespace(buffer, pos, end)
            value_end = self._scan(buffer, pos, end)
            if self.element_parser is not None:
                label = f"element {len(items)}"
                items.append(self._delegate(self.element_parser, buffer, pos, value_end, label))
            else:
                items.append(self._decode(buffer, pos, value_end))
            ch, pos = self._expect(buffer, value_end, end, ",]")
            if ch == "]":
                break

        if self.adapter is not None:
            try:
                items = self.adapter.validate_python(items)
            except ValidationError as exc:
                raise self.fail(ParseErrorState.INVALID_PAYLOAD, str(exc), start) from exc
        return items, pos


class ListParserFactory(ParserFactory):
    """Factory for ``list[T]``; the element type must be registered."""

    def create(self, descriptor: TypeDescriptor, registry: ParserRegistry) -> ListParser:
        if len(descriptor.args) != 1:
            raise ResolutionError(
                f"list columns need exactly one element type, got {descriptor}"
            )
        element = descriptor.args[0]
        # Fails fast for unregistered element types, nested ones included
        registry.require_registered(element)
        if registry.is_custom(element.raw):
            logger.debug("list elements of %s delegated to their registered parser", element)
            return ListParser(element_parser=registry.create_parser(element))
        return ListParser(adapter=TypeAdapter(list[element.to_annotation()]))

    def __repr__(self) -> str:
        return "ListParserFactory()"
