"""
Regex Line Parser package.
"""

__version__ = "1.0.0"

from regex_line_parser.binder import bind, make_columns
from regex_line_parser.column_types import CharValue, PrimitiveKind, TypeDescriptor, VarcharValue, parse_type
from regex_line_parser.config_models import TableConfig
from regex_line_parser.csv_writer import CSVWriter
from regex_line_parser.exceptions import ConfigError, RegexParserError, StructuralError, UnsupportedOperation
from regex_line_parser.line_parser import RegexLineParser
from regex_line_parser.models import AnomalyCounters, ColumnSpec, ParsePlan, ParsingStats, RowSchema

__all__ = [
    "TableConfig",
    "RegexLineParser",
    "CSVWriter",
    "ColumnSpec",
    "ParsePlan",
    "RowSchema",
    "AnomalyCounters",
    "ParsingStats",
    "PrimitiveKind",
    "TypeDescriptor",
    "CharValue",
    "VarcharValue",
    "RegexParserError",
    "ConfigError",
    "StructuralError",
    "UnsupportedOperation",
    "bind",
    "make_columns",
    "parse_type",
]
