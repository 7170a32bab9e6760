"""
Shared test fixtures and constants for typed-csv tests.

The example record below is the reference end-to-end case: an int, a
quoted string, and a quoted JSON payload holding a generic model whose
fields are themselves custom-typed objects.
"""

import pytest

from tests.custom_types import register_example_parsers
from typed_csv.registry import ParserRegistry

# ---------------------------------------------------------------------------
# Reference data -- edit here if the example record changes
# ---------------------------------------------------------------------------
EXAMPLE_RECORD = (
    "1,'column2','{\"f1\":5, \"f2\": {\"f21\":\"nested_simple_f21\"}, "
    "\"f3\": {\"f21\":\"nested_generic_f31\"}}'"
)
EXAMPLE_EXPECTED = (
    "1,column2,GenericsAware{f1='5', f2=Nested{f21='nested_simple_f21'}, "
    "f3=Nested{f21='nested_generic_f31'}}"
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def registry() -> ParserRegistry:
    """A fresh registry holding only the built-in parsers."""
    return ParserRegistry()


@pytest.fixture()
def example_registry() -> ParserRegistry:
    """A fresh registry with Nested and GenericsAware registered."""
    return register_example_parsers(ParserRegistry())


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (reads CSV input end to end)",
    )
