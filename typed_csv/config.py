"""
Reader configuration models and YAML I/O for typed-csv.

``ReaderConfig`` collects the options that control how text is split into
records and fields before the RowBuilder sees them. It maps 1:1 to a YAML
file so reader settings can live next to the data they describe.

Key functions:
- load_config(path) -> ReaderConfig: Load and validate from YAML.
- save_config(config, path): Serialize to YAML.
- validate_config_against_row_type(config, arity): Cross-check the
  include-field mask against the number of row columns.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from typed_csv.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)


class ReaderConfig(BaseModel):
    """How records and fields are recognized in the input text."""

    field_delimiter: str = Field(",", description="Single-character field delimiter")
    line_delimiter: str = Field("\n", description="Record terminator")
    quote_char: str | None = Field(
        None, description="Quote character for fields; None disables quoting"
    )
    ignore_first_line: bool = Field(False, description="Skip a header line")
    comment_prefix: str | None = Field(
        None, description="Lines starting with this prefix are skipped"
    )
    ignore_invalid_lines: bool = Field(
        False,
        description="If True, records that fail to parse are logged and skipped",
    )
    include_fields: list[bool] | None = Field(
        None,
        description=(
            "Mask over the input columns; only columns marked True are parsed. "
            "Columns past the end of the mask are ignored."
        ),
    )
    encoding: str = Field("utf-8-sig", description="Encoding of input files")
    parallelism: int = Field(1, ge=1, description="Partitions parsed concurrently")

    @field_validator("field_delimiter")
    @classmethod
    def _single_char_delimiter(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError(f"field_delimiter must be one character, got {value!r}")
        return value

    @field_validator("quote_char")
    @classmethod
    def _single_char_quote(cls, value: str | None) -> str | None:
        if value is not None and len(value) != 1:
            raise ValueError(f"quote_char must be one character, got {value!r}")
        return value

    @field_validator("line_delimiter", "comment_prefix")
    @classmethod
    def _not_empty(cls, value: str | None) -> str | None:
        if value is not None and not value:
            raise ValueError("must not be an empty string")
        return value

    @model_validator(mode="after")
    def _check_delimiters_distinct(self) -> ReaderConfig:
        if self.quote_char is not None and self.quote_char == self.field_delimiter:
            raise ValueError("quote_char and field_delimiter must differ")
        if self.field_delimiter in self.line_delimiter:
            raise ValueError("field_delimiter must not be part of line_delimiter")
        return self

    @property
    def selected_columns(self) -> list[int] | None:
        """Indices of the input columns to parse, or None for all."""
        if self.include_fields is None:
            return None
        return [i for i, keep in enumerate(self.include_fields) if keep]


def load_config(path: str | Path) -> ReaderConfig:
    """Load and validate a reader config YAML file.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If the YAML content fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    logger.info("Loaded reader config from %s", path)
    return ReaderConfig.model_validate(raw)


def save_config(config: ReaderConfig, path: str | Path) -> None:
    """Serialize a ReaderConfig to YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        f.write("# typed-csv reader configuration\n\n")
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved reader config to %s", path)


def validate_config_against_row_type(config: ReaderConfig, arity: int) -> None:
    """Check that the include-field mask selects exactly *arity* columns.

    Raises:
        ConfigValidationError: If the mask selects a different number of
            columns than the row type has.
    """
    selected = config.selected_columns
    if selected is None:
        return
    if len(selected) != arity:
        raise ConfigValidationError(
            f"include_fields selects {len(selected)} column(s) "
            f"but the row type has {arity}: {config.include_fields}"
        )
