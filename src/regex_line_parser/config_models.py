"""
Pydantic models for strongly-typed table configuration.

A table is configured either from Hive-style table properties
(``columns``, ``columns.types``, ``input.regex`` ...) or from a JSON file
using the field names of TableConfig.
"""

import codecs
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from regex_line_parser.binder import bind, make_columns
from regex_line_parser.column_types import split_type_list
from regex_line_parser.line_parser import RegexLineParser

logger = logging.getLogger(__name__)

# Table property keys
LIST_COLUMNS = "columns"
LIST_COLUMN_TYPES = "columns.types"
LIST_COLUMN_COMMENTS = "columns.comments"
INPUT_REGEX = "input.regex"
INPUT_REGEX_CASE_INSENSITIVE = "input.regex.case.insensitive"
SERIALIZATION_ENCODING = "serialization.encoding"
OUTPUT_FORMAT_STRING = "output.format.string"


class OutputConfig(BaseModel):
    """Output file settings."""
    flush_every: Optional[int] = Field(
        1000,
        description="Flush CSV to disk every N rows (None=every row, 0=on close only)",
        ge=0
    )
    include_rejected: bool = Field(True, description="Write unmatched lines to a separate file")
    csv_encoding: str = Field("utf-8", description="Output CSV encoding")


class TableConfig(BaseModel):
    """Regex table configuration."""
    name: str = Field("records", min_length=1, description="Table name, used for output file names")
    columns: List[str] = Field(..., min_length=1, description="Ordered column names")
    column_types: List[str] = Field(..., min_length=1, description="Ordered column type strings")
    column_comments: List[Optional[str]] = Field(default_factory=list, description="Ordered column comments")
    input_regex: Optional[str] = Field(None, description="Regex with one capture group per column")
    input_regex_case_insensitive: bool = Field(False, description="Match the regex case-insensitively")
    serialization_encoding: str = Field("utf-8", description="Character set of the input text")
    output_format_string: Optional[str] = Field(
        None,
        description="Deprecated, has no effect"
    )

    skip_blank_lines: bool = Field(False, description="Skip empty lines instead of parsing them")
    progress_interval: int = Field(10000, description="Log progress every N lines", gt=0)

    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Output file configuration"
    )

    @field_validator('columns')
    @classmethod
    def validate_unique_column_names(cls, columns):
        """Ensure column names are non-empty and unique (case-insensitive)."""
        if any(not c or not c.strip() for c in columns):
            raise ValueError("Column names must not be empty")
        lowered = [c.lower() for c in columns]
        duplicates = [name for name in set(lowered) if lowered.count(name) > 1]
        if duplicates:
            raise ValueError(f"Duplicate column names: {', '.join(sorted(duplicates))}")
        return columns

    @field_validator('serialization_encoding')
    @classmethod
    def validate_encoding(cls, encoding):
        """Ensure the encoding names a known codec."""
        try:
            codecs.lookup(encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding '{encoding}'")  # noqa: B904
        return encoding

    @model_validator(mode='after')
    def validate_column_lists(self):
        """Ensure names, types and comments line up."""
        if len(self.columns) != len(self.column_types):
            raise ValueError(
                f"{len(self.columns)} column name(s) but {len(self.column_types)} column type(s)"
            )
        if len(self.column_comments) > len(self.columns):
            raise ValueError(
                f"{len(self.column_comments)} column comment(s) for {len(self.columns)} column(s)"
            )
        return self

    @classmethod
    def from_properties(cls, properties: Dict[str, str], name: str = "records") -> "TableConfig":
        """
        Create TableConfig from Hive-style table properties.

        Args:
            properties: Table property mapping (string keys and values)
            name: Table name

        Returns:
            Validated TableConfig instance

        Raises:
            ValidationError: If configuration is invalid
        """
        columns = [c.strip() for c in properties.get(LIST_COLUMNS, "").split(",") if c.strip()]
        column_types = split_type_list(properties.get(LIST_COLUMN_TYPES, ""))
        comments_prop = properties.get(LIST_COLUMN_COMMENTS)
        column_comments = comments_prop.split("\0") if comments_prop else []

        config = {
            "name": name,
            "columns": columns,
            "column_types": column_types,
            "column_comments": column_comments,
            "input_regex": properties.get(INPUT_REGEX),
            "input_regex_case_insensitive": (
                str(properties.get(INPUT_REGEX_CASE_INSENSITIVE, "")).lower() == "true"
            ),
            "output_format_string": properties.get(OUTPUT_FORMAT_STRING),
        }
        if properties.get(SERIALIZATION_ENCODING):
            config["serialization_encoding"] = properties[SERIALIZATION_ENCODING]
        return cls.model_validate(config)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "TableConfig":
        """
        Create TableConfig from dictionary with comprehensive validation.

        Args:
            config_dict: Configuration dictionary (loaded from JSON)

        Returns:
            Validated TableConfig instance

        Raises:
            ValidationError: If configuration is invalid
        """
        return cls.model_validate(config_dict)

    @classmethod
    def from_json_file(cls, config_path: str) -> "TableConfig":
        """
        Load and validate configuration from JSON file.

        Args:
            config_path: Path to JSON configuration file

        Returns:
            Validated TableConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If file doesn't exist
        """
        import json
        from pathlib import Path

        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(path, encoding='utf-8') as f:
            config_dict = json.load(f)

        return cls.from_dict(config_dict)

    def build_parser(self) -> RegexLineParser:
        """Bind the configured schema and pattern and return a parser.

        Raises:
            ConfigError: If the pattern or column types cannot be bound
        """
        if self.output_format_string is not None:
            logger.warning(f"{OUTPUT_FORMAT_STRING} has been deprecated")

        columns = make_columns(self.columns, self.column_types, self.column_comments)
        plan = bind(columns, self.input_regex, self.input_regex_case_insensitive)
        return RegexLineParser(plan, encoding=self.serialization_encoding, table_name=self.name)
