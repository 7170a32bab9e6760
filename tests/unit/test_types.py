"""
Unit tests for type descriptors and the resolver (typed_csv.types).

Covers descriptor equality, precise resolution from typing aliases and
pydantic parametrized models, hint-driven resolution of raw classes, and
the arity checks that raise ResolutionError.
"""

from __future__ import annotations

from typing import Optional

import pytest

from tests.custom_types import Box, GenericsAware, Nested, Pair, Point, T
from typed_csv.exceptions import ResolutionError
from typed_csv.types import TypeDescriptor, declared_arity, resolve_type


class TestDeclaredArity:
    """Tests for declared_arity()."""

    def test_plain_class(self):
        assert declared_arity(int) == 0
        assert declared_arity(Point) == 0

    def test_pydantic_generic(self):
        assert declared_arity(GenericsAware) == 1
        assert declared_arity(Pair) == 2

    def test_typing_generic(self):
        assert declared_arity(Box) == 1

    def test_builtin_containers(self):
        assert declared_arity(list) == 1
        assert declared_arity(dict) == 2


class TestTypeDescriptor:
    """Tests for TypeDescriptor construction, equality and rendering."""

    def test_equality_is_recursive(self):
        a = TypeDescriptor(GenericsAware, (TypeDescriptor(Nested),))
        b = TypeDescriptor(GenericsAware, (TypeDescriptor(Nested),))
        c = TypeDescriptor(GenericsAware, (TypeDescriptor(Point),))
        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_raw_class_is_erased(self):
        desc = TypeDescriptor.of(GenericsAware)
        assert desc.args == ()
        assert desc.is_generic
        assert desc.is_erased

    def test_non_generic_is_not_erased(self):
        desc = TypeDescriptor.of(int)
        assert not desc.is_generic
        assert not desc.is_erased

    def test_of_pydantic_parametrized(self):
        desc = TypeDescriptor.of(GenericsAware[Nested])
        assert desc == TypeDescriptor(GenericsAware, (TypeDescriptor(Nested),))
        assert not desc.is_erased

    def test_of_nested_parametrization(self):
        desc = TypeDescriptor.of(GenericsAware[GenericsAware[Nested]])
        inner = TypeDescriptor(GenericsAware, (TypeDescriptor(Nested),))
        assert desc == TypeDescriptor(GenericsAware, (inner,))

    def test_of_typing_alias(self):
        assert TypeDescriptor.of(list[int]) == TypeDescriptor(list, (TypeDescriptor(int),))
        assert TypeDescriptor.of(Box[str]) == TypeDescriptor(Box, (TypeDescriptor(str),))

    def test_of_two_parameters(self):
        desc = TypeDescriptor.of(Pair[str, Nested])
        assert [a.raw for a in desc.args] == [str, Nested]

    def test_of_descriptor_is_identity(self):
        desc = TypeDescriptor.of(Nested)
        assert TypeDescriptor.of(desc) is desc

    def test_to_annotation_round_trip(self):
        desc = TypeDescriptor.of(GenericsAware[Nested])
        annotation = desc.to_annotation()
        assert annotation.__pydantic_generic_metadata__["origin"] is GenericsAware
        assert TypeDescriptor.of(annotation) == desc
        assert TypeDescriptor.of(list[Point]).to_annotation() == list[Point]

    def test_str(self):
        assert str(TypeDescriptor.of(GenericsAware[Nested])) == "GenericsAware[Nested]"
        assert str(TypeDescriptor.of(int)) == "int"

    def test_unbound_type_variable_rejected(self):
        with pytest.raises(ResolutionError, match="Unbound type variable"):
            TypeDescriptor.of(T)

    def test_union_rejected(self):
        with pytest.raises(ResolutionError, match="Unsupported type form"):
            TypeDescriptor.of(Optional[int])

    def test_wrong_argument_count_rejected(self):
        with pytest.raises(ResolutionError, match="declares 1 type parameter"):
            TypeDescriptor.of(list[int, str])

    def test_raw_must_be_class(self):
        with pytest.raises(ResolutionError, match="must be a class"):
            TypeDescriptor("int")


class TestResolveType:
    """Tests for resolve_type() with and without hints."""

    def test_no_hints_same_as_of(self):
        assert resolve_type(GenericsAware[Nested]) == TypeDescriptor.of(GenericsAware[Nested])
        assert resolve_type(int) == TypeDescriptor(int)

    def test_hints_fill_arguments(self):
        desc = resolve_type(GenericsAware, Nested)
        assert desc == TypeDescriptor.of(GenericsAware[Nested])

    def test_generic_hint_resolved_recursively(self):
        desc = resolve_type(GenericsAware, GenericsAware[Nested])
        assert desc.args[0].args == (TypeDescriptor(Nested),)

    def test_hints_may_be_descriptors(self):
        desc = resolve_type(Pair, TypeDescriptor(str), Point)
        assert desc == TypeDescriptor.of(Pair[str, Point])

    def test_too_few_hints(self):
        with pytest.raises(ResolutionError, match="2 type parameter"):
            resolve_type(Pair, str)

    def test_hints_on_non_generic(self):
        with pytest.raises(ResolutionError, match="0 type parameter"):
            resolve_type(Point, int)

    def test_hints_on_parametrized_type(self):
        with pytest.raises(ResolutionError, match="bare class"):
            resolve_type(GenericsAware[Nested], Nested)
