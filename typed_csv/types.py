"""
Type descriptors and the type resolver for typed-csv.

A ``TypeDescriptor`` names a target type plus, for generic types, the
descriptors of its type arguments. It is what the parser registry is
queried with and what parser factories receive when they build a parser.

Two ways lead to a descriptor:

- **Raw class** (``resolve_type(GenericsAware)``): only the class is known.
  For a generic class the descriptor is *erased* (no arguments) unless
  explicit hints are passed (``resolve_type(GenericsAware, Nested)``).
- **Precise annotation** (``TypeDescriptor.of(GenericsAware[Nested])``):
  the arguments are read from the ``typing`` alias or from pydantic's
  generic metadata, recursively.

Only the raw type takes part in registry lookup; specialization by type
argument is done by the factories.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from typing import Any

from typed_csv.exceptions import ResolutionError

# Builtin generics carry no __parameters__, so their arity is declared here
_BUILTIN_ARITY: dict[type, int] = {
    list: 1,
    set: 1,
    frozenset: 1,
    dict: 2,
}


def _pydantic_metadata(tp: Any) -> dict[str, Any] | None:
    return getattr(tp, "__pydantic_generic_metadata__", None)


def declared_arity(raw: type) -> int:
    """Return the number of type parameters *raw* declares."""
    if raw in _BUILTIN_ARITY:
        return _BUILTIN_ARITY[raw]
    meta = _pydantic_metadata(raw)
    if meta is not None and meta.get("origin") is None:
        return len(meta.get("parameters", ()))
    return len(getattr(raw, "__parameters__", ()))


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or getattr(tp, "__name__", None) or repr(tp)


@dataclass(frozen=True)
class TypeDescriptor:
    """A resolved type: raw class plus resolved type arguments."""

    raw: type
    args: tuple[TypeDescriptor, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.raw, type):
            raise ResolutionError(f"Raw type must be a class, got {self.raw!r}")
        if not all(isinstance(a, TypeDescriptor) for a in self.args):
            raise ResolutionError(
                f"Type arguments of {_type_name(self.raw)} must be TypeDescriptors"
            )

    @property
    def arity(self) -> int:
        return declared_arity(self.raw)

    @property
    def is_generic(self) -> bool:
        return self.arity > 0

    @property
    def is_erased(self) -> bool:
        """True for a generic type whose arguments are unknown."""
        return self.is_generic and not self.args

    def to_annotation(self) -> Any:
        """Rebuild the Python annotation, e.g. ``GenericsAware[Nested]``."""
        if not self.args:
            return self.raw
        params = tuple(a.to_annotation() for a in self.args)
        return self.raw[params if len(params) > 1 else params[0]]

    def __str__(self) -> str:
        name = _type_name(self.raw)
        if not self.args:
            return name
        return f"{name}[{', '.join(str(a) for a in self.args)}]"

    @classmethod
    def of(cls, annotation: Any) -> TypeDescriptor:
        """Build a descriptor from a class or a parametrized annotation.

        Raises:
            ResolutionError: For unbound type variables, unsupported forms
                (``Union``, ``Any``, ...) or a wrong number of arguments.
        """
        if isinstance(annotation, TypeDescriptor):
            return annotation
        if isinstance(annotation, typing.TypeVar):
            raise ResolutionError(f"Unbound type variable {annotation}")

        # pydantic parametrized models are real classes: Model[Inner]
        meta = _pydantic_metadata(annotation)
        if meta is not None and meta.get("origin") is not None:
            return cls._parametrized(meta["origin"], meta.get("args", ()))

        origin = typing.get_origin(annotation)
        if origin is not None:
            if not isinstance(origin, type):
                raise ResolutionError(f"Unsupported type form: {annotation!r}")
            return cls._parametrized(origin, typing.get_args(annotation))

        if isinstance(annotation, type):
            return cls(annotation)
        raise ResolutionError(f"Unsupported type form: {annotation!r}")

    @classmethod
    def _parametrized(cls, origin: type, args: tuple[Any, ...]) -> TypeDescriptor:
        arity = declared_arity(origin)
        if arity != len(args):
            raise ResolutionError(
                f"{_type_name(origin)} declares {arity} type parameter(s) "
                f"but {len(args)} argument(s) were given"
            )
        return cls(origin, tuple(cls.of(a) for a in args))


def resolve_type(type_ref: Any, *hints: Any) -> TypeDescriptor:
    """Resolve a type reference plus optional type-argument hints.

    Args:
        type_ref: A class, a parametrized annotation, or a descriptor.
        *hints: Type arguments for a bare generic class. Each hint may
            itself be generic and is resolved recursively.

    Returns:
        A ``TypeDescriptor``. Without hints a bare generic class yields an
        erased descriptor.

    Raises:
        ResolutionError: If the hint count does not match the declared
            arity, or hints are given for an already parametrized type.
    """
    if not hints:
        return TypeDescriptor.of(type_ref)

    if not isinstance(type_ref, type) or TypeDescriptor.of(type_ref).args:
        raise ResolutionError(
            f"Type hints can only be applied to a bare class, got {type_ref!r}"
        )
    arity = declared_arity(type_ref)
    if arity != len(hints):
        raise ResolutionError(
            f"{_type_name(type_ref)} declares {arity} type parameter(s) "
            f"but {len(hints)} hint(s) were supplied"
        )
    return TypeDescriptor(type_ref, tuple(resolve_type(h) for h in hints))
