"""
Schema binding: validates the declared columns and compiles the input regex
into an immutable parse plan.
"""

import logging
import re
from typing import Optional, Sequence, Tuple

from regex_line_parser.column_types import TypeDescriptor, parse_type
from regex_line_parser.exceptions import ConfigError
from regex_line_parser.models import ColumnSpec, ParsePlan

logger = logging.getLogger(__name__)


def make_columns(names: Sequence[str], types: Sequence, comments: Optional[Sequence[Optional[str]]] = None) -> Tuple[ColumnSpec, ...]:
    """Build column specs from parallel name/type/comment lists.

    Args:
        names: Ordered column names
        types: Ordered type strings or TypeDescriptor objects
        comments: Optional ordered comments (may be shorter than names)

    Returns:
        Tuple of ColumnSpec

    Raises:
        ConfigError: If the lists disagree in length or a type string is invalid
    """
    if len(names) != len(types):
        raise ConfigError(
            f"{len(names)} column name(s) but {len(types)} column type(s) declared"
        )

    comments = list(comments or [])
    columns = []
    for idx, (name, typ) in enumerate(zip(names, types)):
        descriptor = typ if isinstance(typ, TypeDescriptor) else parse_type(typ)
        comment = comments[idx] if idx < len(comments) else None
        columns.append(ColumnSpec(name=name, type=descriptor, comment=comment or None))
    return tuple(columns)


def bind(columns: Sequence[ColumnSpec], raw_pattern: Optional[str], case_insensitive: bool = False) -> ParsePlan:
    """Validate columns and compile the pattern into a ParsePlan.

    The pattern is always compiled with DOTALL so a logical record spanning
    embedded newlines still matches end to end.

    Args:
        columns: Ordered column declarations
        raw_pattern: Regular expression with one capture group per column
        case_insensitive: Compile with IGNORECASE

    Returns:
        Immutable ParsePlan

    Raises:
        ConfigError: Missing or malformed pattern, unsupported column type,
            invalid column names, or group count not equal to column count
    """
    if not raw_pattern:
        raise ConfigError("missing pattern: table has no 'input.regex' property")

    seen = set()
    for idx, col in enumerate(columns):
        if not col.name or not col.name.strip():
            raise ConfigError(f"column [{idx}] has an empty name")
        key = col.name.lower()
        if key in seen:
            raise ConfigError(f"duplicate column name '{col.name}' at column [{idx}]")
        seen.add(key)
        if not col.type.is_primitive:
            raise ConfigError(
                f"unsupported column type: column [{idx}] named {col.name} "
                f"has type {col.type}; only primitive types are allowed"
            )

    flags = re.DOTALL
    if case_insensitive:
        flags |= re.IGNORECASE

    try:
        pattern = re.compile(raw_pattern, flags)
    except re.error as e:
        raise ConfigError(f"invalid input regex {raw_pattern!r}: {e}") from e

    if pattern.groups != len(columns):
        raise ConfigError(
            f"input regex has {pattern.groups} capture group(s) "
            f"but {len(columns)} column(s) are declared"
        )

    logger.debug(f"Bound {len(columns)} column(s) to pattern {raw_pattern!r}")
    return ParsePlan(columns=tuple(columns), pattern=pattern, case_insensitive=case_insensitive)
