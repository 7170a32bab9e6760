"""
Parser registry for typed-csv.

Maps a raw type to the ``ParserFactory`` that builds field parsers for it.
Lookup is by exact raw type only; type arguments are handled by the
factory, which receives the full ``TypeDescriptor``.

Lifecycle:
- **Setup phase**: ``register()`` calls, typically once at start-up.
  Writers are serialized and each write publishes a fresh read-only
  mapping, so a reader never sees a half-applied update.
- **Parse phase**: ``lookup()`` reads the published mapping without
  locking. RowBuilders resolve their parsers once at construction and
  never touch the registry afterwards.

Built-in parsers sit in a separate layer that cannot be removed; a custom
registration for the same raw type shadows the built-in one.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Mapping

from typed_csv.exceptions import RegistrationError, ResolutionError
from typed_csv.parsers.base import FieldParser
from typed_csv.types import TypeDescriptor

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Builds a ``FieldParser`` for a resolved type descriptor."""

    @abstractmethod
    def create(self, descriptor: TypeDescriptor, registry: ParserRegistry) -> FieldParser:
        """Return a new parser for *descriptor*.

        Factories for generic types resolve parsers for their type
        arguments through *registry*.

        Raises:
            ResolutionError: If the descriptor cannot be served.
        """


class ParserClassFactory(ParserFactory):
    """Factory for non-generic types: instantiates a parser class."""

    def __init__(self, parser_cls: type[FieldParser], *args: Any, **kwargs: Any) -> None:
        self.parser_cls = parser_cls
        self.args = args
        self.kwargs = kwargs

    def create(self, descriptor: TypeDescriptor, registry: ParserRegistry) -> FieldParser:
        if descriptor.args:
            raise ResolutionError(
                f"{self.parser_cls.__name__} does not accept type arguments "
                f"(requested {descriptor})"
            )
        return self.parser_cls(*self.args, **self.kwargs)

    def __repr__(self) -> str:
        return f"ParserClassFactory({self.parser_cls.__name__})"


def _as_factory(factory: Any) -> ParserFactory:
    if isinstance(factory, ParserFactory):
        return factory
    if isinstance(factory, type) and issubclass(factory, FieldParser):
        return ParserClassFactory(factory)
    raise RegistrationError(
        f"Expected a ParserFactory or FieldParser subclass, got {factory!r}"
    )


class ParserRegistry:
    """Raw type -> ParserFactory mapping with an implicit built-in layer.

    Args:
        strict: If True, registering a raw type twice raises
            ``RegistrationError`` instead of replacing the first factory.
    """

    def __init__(self, strict: bool = False) -> None:
        from typed_csv.parsers.builtin import builtin_factories

        self.strict = strict
        self._builtins: Mapping[type, ParserFactory] = MappingProxyType(builtin_factories())
        self._custom: Mapping[type, ParserFactory] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def register(self, raw_type: type, factory: ParserFactory | type[FieldParser]) -> None:
        """Associate *raw_type* with *factory* (last writer wins)."""
        if not isinstance(raw_type, type):
            raise RegistrationError(f"Parsers are registered for classes, got {raw_type!r}")
        factory = _as_factory(factory)
        with self._write_lock:
            previous = self._custom.get(raw_type)
            if previous is not None:
                if self.strict:
                    raise RegistrationError(
                        f"A parser is already registered for {raw_type.__qualname__}"
                    )
                logger.warning(
                    "Replacing parser for %s: %r -> %r",
                    raw_type.__qualname__, previous, factory,
                )
            updated = dict(self._custom)
            updated[raw_type] = factory
            self._custom = MappingProxyType(updated)
        logger.debug("Registered %r for %s", factory, raw_type.__qualname__)

    def find(self, raw_type: type) -> ParserFactory | None:
        factory = self._custom.get(raw_type)
        if factory is None:
            factory = self._builtins.get(raw_type)
        return factory

    def lookup(self, raw_type: type) -> ParserFactory:
        """Return the factory for *raw_type*.

        Raises:
            ResolutionError: If no factory is registered.
        """
        factory = self.find(raw_type)
        if factory is None:
            name = getattr(raw_type, "__qualname__", repr(raw_type))
            raise ResolutionError(f"No parser registered for type {name}")
        return factory

    def require_registered(self, descriptor: TypeDescriptor) -> None:
        """Check *descriptor* and its type arguments, at every depth.

        Raises:
            ResolutionError: For the first type without a factory.
        """
        self.lookup(descriptor.raw)
        for arg in descriptor.args:
            self.require_registered(arg)

    def is_custom(self, raw_type: type) -> bool:
        """True if *raw_type* has an explicit (non built-in) registration."""
        return raw_type in self._custom

    def create_parser(self, descriptor: TypeDescriptor) -> FieldParser:
        """Resolve and construct a parser for *descriptor*."""
        return self.lookup(descriptor.raw).create(descriptor, self)

    def registered_types(self) -> list[type]:
        return list(self._custom)


_DEFAULT_REGISTRY: ParserRegistry | None = None
_DEFAULT_LOCK = threading.Lock()


def get_default_registry() -> ParserRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        with _DEFAULT_LOCK:
            if _DEFAULT_REGISTRY is None:
                _DEFAULT_REGISTRY = ParserRegistry()
    return _DEFAULT_REGISTRY


def register_custom_parser(raw_type: type, factory: ParserFactory | type[FieldParser]) -> None:
    """Register *factory* for *raw_type* in the process-wide registry.

    Must be called before any reader or RowBuilder is constructed.
    """
    get_default_registry().register(raw_type, factory)
