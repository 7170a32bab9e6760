"""
Demo script: read a CSV file whose third column holds a generic JSON model.

Usage:
    python scripts/run_example.py                 # writes and reads a sample file
    python scripts/run_example.py path/to/data.csv
    python scripts/run_example.py --precise       # declare GenericsAware[Nested]

Each record is ``int,'str','{json}'`` where the JSON object decodes into
``GenericsAware[Nested]``. Both custom types are registered once at start-up,
then every row is printed in its textual form.
"""

from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, field_validator

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SAMPLE_LINES = [
    "1,'column2','{\"f1\":5, \"f2\": {\"f21\":\"nested_simple_f21\"}, "
    "\"f3\": {\"f21\":\"nested_generic_f31\"}}'",
    "2,'a,b','{\"f1\":\"x\", \"f2\": {\"f21\":\"p\"}, \"f3\": {\"f21\":\"q\"}}'",
]

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_example")


# ---------------------------------------------------------------------------
# Column types
# ---------------------------------------------------------------------------

T = TypeVar("T")


class Nested(BaseModel):
    f21: str

    def __str__(self) -> str:
        return f"Nested{{f21='{self.f21}'}}"


class GenericsAware(BaseModel, Generic[T]):
    f1: str
    f2: Nested
    f3: T

    @field_validator("f1", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def __str__(self) -> str:
        return f"GenericsAware{{f1='{self.f1}', f2={self.f2}, f3={self.f3}}}"


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    import typed_csv

    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    precise = "--precise" in sys.argv

    typed_csv.register_custom_parser(Nested, typed_csv.JsonModelParserFactory())
    typed_csv.register_custom_parser(
        GenericsAware, typed_csv.JsonModelParserFactory(GenericsAware[Nested])
    )

    with tempfile.TemporaryDirectory() as tmp:
        if args:
            input_path = Path(args[0])
        else:
            input_path = Path(tmp) / "generics_aware.csv"
            input_path.write_text("\n".join(SAMPLE_LINES) + "\n", encoding="utf-8")

        log.info("=" * 70)
        log.info("Reading: %s (%s row type)", input_path, "precise" if precise else "raw")
        log.info("=" * 70)

        reader = typed_csv.CsvReader(input_path).parse_quoted_strings("'")
        if precise:
            source = reader.precise_row_type(int, str, GenericsAware[Nested])
        else:
            source = reader.row_type(int, str, GenericsAware)

        for row in source.collect():
            print(row)

    log.info("Done.")


if __name__ == "__main__":
    main()
