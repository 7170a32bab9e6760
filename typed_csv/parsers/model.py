"""
Parser for pydantic models encoded as JSON objects.

``JsonModelParserFactory`` serves plain and generic ``BaseModel`` types:

- For ``Model[Inner]`` the descriptor's type arguments (and theirs, at
  every depth) are checked against the registry first, so an unregistered
  ``Inner`` fails at construction, not on the first record.
- A model field whose type has a custom registration (directly, or as the
  element of a registered container such as ``list[Inner]``) gets its own
  delegate parser. While walking the object, the span of that field's
  value is handed to the delegate in place.
- Every other field is JSON-decoded and left to pydantic validation.

Because ``Model`` alone (the raw-class path) carries no type arguments,
the factory can be registered with a default type hint::

    register_custom_parser(
        GenericsAware, JsonModelParserFactory(GenericsAware[Nested])
    )
"""

from __future__ import annotations

import logging
import threading
import types
import typing
from typing import Any

from pydantic import BaseModel, ValidationError

from typed_csv.exceptions import ResolutionError
from typed_csv.parsers.base import FieldParser, ParseErrorState
from typed_csv.parsers.json_scan import JsonPayloadParser, skip_whitespace
from typed_csv.registry import ParserFactory, ParserRegistry
from typed_csv.types import TypeDescriptor, resolve_type

logger = logging.getLogger(__name__)

_UNION_TYPES = (typing.Union, types.UnionType)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """``Optional[X]`` -> ``(X, True)``; anything else is returned as is."""
    if typing.get_origin(annotation) in _UNION_TYPES:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


def _needs_registry(descriptor: TypeDescriptor, registry: ParserRegistry) -> bool:
    if registry.is_custom(descriptor.raw):
        return True
    if registry.find(descriptor.raw) is None:
        return False
    return any(_needs_registry(a, registry) for a in descriptor.args)


class _DeferredParser(FieldParser[Any]):
    """Stands in for a parser of a type that is still being built (recursive models)."""

    def __init__(self, registry: ParserRegistry, descriptor: TypeDescriptor) -> None:
        super().__init__()
        self._registry = registry
        self._descriptor = descriptor
        self._target: FieldParser | None = None

    def _parse(self, buffer: str, start: int, end: int) -> tuple[Any, int]:
        if self._target is None:
            self._target = self._registry.create_parser(self._descriptor)
        consumed = self._target.parse(buffer, start, end)
        return self._target.last_result, start + consumed


class JsonModelParser(JsonPayloadParser[BaseModel]):
    """Decodes one JSON object into *model_cls*.

    Args:
        model_cls: The (parametrized) pydantic model class to validate with.
        field_parsers: JSON key -> ``(parser, nullable)`` for delegated fields.
    """

    def __init__(
        self,
        model_cls: type[BaseModel],
        field_parsers: dict[str, tuple[FieldParser, bool]],
    ) -> None:
        super().__init__()
        self.model_cls = model_cls
        self.field_parsers = field_parsers

    def _parse(self, buffer: str, start: int, end: int) -> tuple[BaseModel, int]:
        _, pos = self._expect(buffer, start, end, "{")
        data: dict[str, Any] = {}
        pos = skip_whitespace(buffer, pos, end)
        if pos < end and buffer[pos] == "}":
            pos += 1
        else:
            while True:
                _, key_start = self._expect(buffer, pos, end, '"')
                key_start -= 1
                key_end = self._scan(buffer, key_start, end)
                key = self._decode(buffer, key_start, key_end)

                _, pos = self._expect(buffer, key_end, end, ":")
                pos = skip_whitespace(buffer, pos, end)
                value_end = self._scan(buffer, pos, end)
                data[key] = self._field_value(key, buffer, pos, value_end)

                ch, pos = self._expect(buffer, value_end, end, ",}")
                if ch == "}":
                    break

        try:
            model = self.model_cls.model_validate(data)
        except ValidationError as exc:
            raise self.fail(ParseErrorState.INVALID_PAYLOAD, str(exc), start) from exc
        return model, pos

    def _field_value(self, key: str, buffer: str, start: int, end: int) -> Any:
        delegate = self.field_parsers.get(key)
        if delegate is None:
            return self._decode(buffer, start, end)
        parser, nullable = delegate
        if nullable and buffer[start:end] == "null":
            return None
        return self._delegate(parser, buffer, start, end, f"field {key!r}")


class JsonModelParserFactory(ParserFactory):
    """Factory for pydantic models, generic or not.

    Args:
        type_hint: Optional fully parametrized annotation (``Model[Inner]``)
            used when the factory receives an erased descriptor.
    """

    def __init__(self, type_hint: Any = None) -> None:
        self.type_hint = resolve_type(type_hint) if type_hint is not None else None
        self._building = threading.local()

    def create(self, descriptor: TypeDescriptor, registry: ParserRegistry) -> FieldParser:
        if not issubclass(descriptor.raw, BaseModel):
            raise ResolutionError(f"{descriptor} is not a pydantic model")
        if descriptor.is_erased:
            if self.type_hint is None or self.type_hint.raw is not descriptor.raw:
                raise ResolutionError(
                    f"{descriptor} is generic but no type arguments were given; "
                    "use a precise row type or register the factory with a type hint"
                )
            descriptor = self.type_hint

        in_progress: set[TypeDescriptor] = getattr(self._building, "descriptors", set())
        if descriptor in in_progress:
            return _DeferredParser(registry, descriptor)
        self._building.descriptors = in_progress | {descriptor}
        try:
            return self._build(descriptor, registry)
        finally:
            self._building.descriptors = in_progress

    def _build(self, descriptor: TypeDescriptor, registry: ParserRegistry) -> JsonModelParser:
        for arg in descriptor.args:
            registry.require_registered(arg)

        model_cls = descriptor.to_annotation()
        field_parsers: dict[str, tuple[FieldParser, bool]] = {}
        for name, info in model_cls.model_fields.items():
            annotation, nullable = _unwrap_optional(info.annotation)
            try:
                field_type = TypeDescriptor.of(annotation)
            except ResolutionError:
                # Any, unions, literals: left to pydantic
                continue
            if _needs_registry(field_type, registry):
                field_parsers[info.alias or name] = (registry.create_parser(field_type), nullable)

        logger.debug(
            "Built parser for %s (delegated fields: %s)",
            descriptor, sorted(field_parsers) or "none",
        )
        return JsonModelParser(model_cls, field_parsers)

    def __repr__(self) -> str:
        hint = f"{self.type_hint}" if self.type_hint is not None else ""
        return f"JsonModelParserFactory({hint})"
