"""
Parsers sub-package for typed-csv.

Contains the field parser contract and the parsers that ship with the
library.

Design: Strategy Pattern
- base.py defines the FieldParser ABC and ParseErrorState.
- builtin.py implements parsers for primitive, temporal and numpy types.
- json_scan.py finds JSON value spans and hosts the JsonPayloadParser base.
- containers.py implements the list[T] parser.
- model.py implements JsonModelParserFactory for (generic) pydantic models.

The ParserRegistry (registry.py) selects a parser per column type at
RowBuilder construction.
"""
