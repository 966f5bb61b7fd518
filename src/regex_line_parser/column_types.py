"""
Column type descriptors and text-to-value coercion.

This module parses Hive-style column type strings (``int``, ``varchar(20)``,
``decimal(10,2)``, ``array<string>`` ...) into descriptors and converts the
text captured by a regex group into the typed value for a column.
"""

import math
import re
import struct
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum
from typing import Any, List, Optional

from regex_line_parser.exceptions import ConfigError

MAX_CHAR_LENGTH = 255
MAX_VARCHAR_LENGTH = 65535
MAX_DECIMAL_PRECISION = 38


class PrimitiveKind(str, Enum):
    """Supported primitive column kinds."""
    STRING = "string"
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    DATE = "date"
    DECIMAL = "decimal"
    CHAR = "char"
    VARCHAR = "varchar"


_KIND_BY_NAME = {
    "string": PrimitiveKind.STRING,
    "tinyint": PrimitiveKind.BYTE,
    "byte": PrimitiveKind.BYTE,
    "smallint": PrimitiveKind.SHORT,
    "short": PrimitiveKind.SHORT,
    "int": PrimitiveKind.INT,
    "integer": PrimitiveKind.INT,
    "bigint": PrimitiveKind.LONG,
    "long": PrimitiveKind.LONG,
    "float": PrimitiveKind.FLOAT,
    "double": PrimitiveKind.DOUBLE,
    "double precision": PrimitiveKind.DOUBLE,
    "boolean": PrimitiveKind.BOOLEAN,
    "timestamp": PrimitiveKind.TIMESTAMP,
    "date": PrimitiveKind.DATE,
    "decimal": PrimitiveKind.DECIMAL,
    "char": PrimitiveKind.CHAR,
    "varchar": PrimitiveKind.VARCHAR,
}

# Canonical (Hive) spelling used when rendering a descriptor
_CANONICAL_NAME = {
    PrimitiveKind.STRING: "string",
    PrimitiveKind.BYTE: "tinyint",
    PrimitiveKind.SHORT: "smallint",
    PrimitiveKind.INT: "int",
    PrimitiveKind.LONG: "bigint",
    PrimitiveKind.FLOAT: "float",
    PrimitiveKind.DOUBLE: "double",
    PrimitiveKind.BOOLEAN: "boolean",
    PrimitiveKind.TIMESTAMP: "timestamp",
    PrimitiveKind.DATE: "date",
    PrimitiveKind.DECIMAL: "decimal",
    PrimitiveKind.CHAR: "char",
    PrimitiveKind.VARCHAR: "varchar",
}

_TYPE_RE = re.compile(
    r'^([a-z][a-z ]*?)\s*(?:\(\s*([0-9]+)\s*(?:,\s*([0-9]+)\s*)?\))?$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TypeDescriptor:
    """Parsed column type.

    ``kind`` is None for structured, collection, union and unknown types,
    which the binder rejects.
    """
    type_name: str
    kind: Optional[PrimitiveKind] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    @property
    def is_primitive(self) -> bool:
        return self.kind is not None

    def __str__(self) -> str:
        if self.kind is None:
            return self.type_name
        name = _CANONICAL_NAME[self.kind]
        if self.kind in (PrimitiveKind.CHAR, PrimitiveKind.VARCHAR):
            return f"{name}({self.length})"
        if self.kind == PrimitiveKind.DECIMAL and self.precision is not None:
            return f"{name}({self.precision},{self.scale})"
        return name


def parse_type(type_string: str) -> TypeDescriptor:
    """Parse a single column type string.

    Raises:
        ConfigError: When a parameterized type has invalid parameters
    """
    text = (type_string or "").strip()
    if not text:
        raise ConfigError("column type must not be empty")

    if "<" in text:
        return TypeDescriptor(type_name=text.lower())

    match = _TYPE_RE.match(text)
    if not match:
        return TypeDescriptor(type_name=text.lower())

    name = " ".join(match.group(1).lower().split())
    kind = _KIND_BY_NAME.get(name)
    if kind is None:
        return TypeDescriptor(type_name=text.lower())

    first = int(match.group(2)) if match.group(2) is not None else None
    second = int(match.group(3)) if match.group(3) is not None else None

    if kind in (PrimitiveKind.CHAR, PrimitiveKind.VARCHAR):
        limit = MAX_CHAR_LENGTH if kind == PrimitiveKind.CHAR else MAX_VARCHAR_LENGTH
        if first is None or second is not None:
            raise ConfigError(f"{name} type requires a single length parameter: '{type_string}'")
        if not 1 <= first <= limit:
            raise ConfigError(f"{name} length must be between 1 and {limit}: '{type_string}'")
        return TypeDescriptor(type_name=f"{name}({first})", kind=kind, length=first)

    if kind == PrimitiveKind.DECIMAL:
        if first is None:
            return TypeDescriptor(type_name="decimal", kind=kind)
        scale = second if second is not None else 0
        if not 1 <= first <= MAX_DECIMAL_PRECISION:
            raise ConfigError(
                f"decimal precision must be between 1 and {MAX_DECIMAL_PRECISION}: '{type_string}'"
            )
        if scale > first:
            raise ConfigError(f"decimal scale must not exceed precision: '{type_string}'")
        return TypeDescriptor(
            type_name=f"decimal({first},{scale})", kind=kind, precision=first, scale=scale
        )

    if first is not None:
        raise ConfigError(f"type '{name}' does not take parameters: '{type_string}'")
    return TypeDescriptor(type_name=name, kind=kind)


def split_type_list(types: str) -> List[str]:
    """Split a colon-separated column type list.

    Colons nested inside ``<...>`` or ``(...)`` belong to the enclosing type,
    e.g. ``int:struct<a:int,b:string>:decimal(10,2)`` yields three entries.
    """
    if not types:
        return []

    parts = []
    depth = 0
    current = []
    for ch in types:
        if ch in "<(":
            depth += 1
        elif ch in ">)":
            depth -= 1
        if ch == ":" and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return parts


@dataclass(frozen=True)
class CharValue:
    """Fixed-width character value, blank padded or truncated to ``max_length``."""
    value: str
    max_length: int

    @classmethod
    def of(cls, text: str, max_length: int) -> "CharValue":
        return cls(text[:max_length].ljust(max_length), max_length)

    @property
    def stripped_value(self) -> str:
        """Value without the trailing pad blanks."""
        return self.value.rstrip(" ")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VarcharValue:
    """Length-bounded character value, truncated to ``max_length``."""
    value: str
    max_length: int

    @classmethod
    def of(cls, text: str, max_length: int) -> "VarcharValue":
        return cls(text[:max_length], max_length)

    def __str__(self) -> str:
        return self.value


_INTEGER_RE = re.compile(r'[+-]?[0-9]+')
_FLOAT_RE = re.compile(r'[+-]?(?:NaN|Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)')
_DECIMAL_RE = re.compile(r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?')
_DATE_RE = re.compile(r'([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})')
_TIMESTAMP_RE = re.compile(
    r'([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})'
    r'(?:[ T]([0-9]{1,2}):([0-9]{2})(?::([0-9]{2})(?:\.([0-9]{1,9}))?)?)?'
)

_INTEGER_RANGES = {
    PrimitiveKind.BYTE: (-(2 ** 7), 2 ** 7 - 1),
    PrimitiveKind.SHORT: (-(2 ** 15), 2 ** 15 - 1),
    PrimitiveKind.INT: (-(2 ** 31), 2 ** 31 - 1),
    PrimitiveKind.LONG: (-(2 ** 63), 2 ** 63 - 1),
}

_DECIMAL_CONTEXT = Context(prec=2 * MAX_DECIMAL_PRECISION + 4)


def _parse_integer(text: str, kind: PrimitiveKind) -> int:
    if not _INTEGER_RE.fullmatch(text):
        raise ValueError(f"invalid {kind.value} value {text!r}")
    value = int(text)
    low, high = _INTEGER_RANGES[kind]
    if not low <= value <= high:
        raise ValueError(f"{kind.value} value out of range [{low}, {high}]: {text!r}")
    return value


def _parse_double(text: str) -> float:
    s = text.strip()
    if not _FLOAT_RE.fullmatch(s):
        raise ValueError(f"invalid floating point value {text!r}")
    return float(s.replace("Infinity", "inf"))


def _to_single_precision(value: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _parse_decimal(text: str, descriptor: TypeDescriptor) -> Decimal:
    s = text.strip()
    if not _DECIMAL_RE.fullmatch(s):
        raise ValueError(f"invalid decimal value {text!r}")
    value = Decimal(s)
    if descriptor.precision is None:
        return _bound_decimal(value, text)

    quantized = value.quantize(
        Decimal(1).scaleb(-descriptor.scale), rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT
    )
    integer_digits = descriptor.precision - descriptor.scale
    if quantized != 0 and quantized.adjusted() + 1 > integer_digits:
        raise ValueError(f"decimal value {text!r} exceeds {descriptor}")
    return quantized


def _bound_decimal(value: Decimal, text: str) -> Decimal:
    """Fit an unparameterized decimal into MAX_DECIMAL_PRECISION digits.

    Values with more integer digits than that are rejected; excess fraction
    digits are rounded HALF_UP.
    """
    integer_digits = max(value.adjusted() + 1, 1) if value else 1
    if integer_digits > MAX_DECIMAL_PRECISION:
        raise ValueError(f"decimal value {text!r} exceeds {MAX_DECIMAL_PRECISION} digits")
    scale = min(max(-value.as_tuple().exponent, 0), MAX_DECIMAL_PRECISION - integer_digits)
    bounded = value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT)
    if len(bounded.as_tuple().digits) > MAX_DECIMAL_PRECISION:
        # rounding carried into a new integer digit, e.g. 9.99...9 -> 10.00...0
        if scale == 0:
            raise ValueError(f"decimal value {text!r} exceeds {MAX_DECIMAL_PRECISION} digits")
        bounded = bounded.quantize(Decimal(1).scaleb(1 - scale), context=_DECIMAL_CONTEXT)
    return bounded


def _parse_date(text: str) -> date:
    match = _DATE_RE.fullmatch(text.strip())
    if not match:
        raise ValueError(f"invalid date (expected yyyy-mm-dd): {text!r}")
    year, month, day = (int(g) for g in match.groups())
    return date(year, month, day)


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP_RE.fullmatch(text.strip())
    if not match:
        raise ValueError(f"invalid timestamp (expected yyyy-mm-dd hh:mm:ss[.fffffffff]): {text!r}")
    year, month, day, hour, minute, second, fraction = match.groups()
    # nanosecond digits beyond microseconds are dropped
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    return datetime(
        int(year), int(month), int(day),
        int(hour or 0), int(minute or 0), int(second or 0), microsecond,
    )


def coerce_value(text: str, descriptor: TypeDescriptor) -> Any:
    """Convert captured text into the typed value for a column.

    Surrounding whitespace is ignored by the floating point, decimal, date and
    timestamp conversions. Integer columns reject it, and STRING, CHAR and
    VARCHAR keep the captured text as is.

    Args:
        text: Text captured by the column's regex group
        descriptor: Declared column type (must be primitive)

    Returns:
        Typed value

    Raises:
        ValueError: When the text is malformed for the declared type
        ArithmeticError: When a decimal cannot be represented
        TypeError: When the column type is not a supported primitive
    """
    kind = descriptor.kind
    if kind == PrimitiveKind.STRING:
        return text
    if kind in _INTEGER_RANGES:
        return _parse_integer(text, kind)
    if kind == PrimitiveKind.FLOAT:
        return _to_single_precision(_parse_double(text))
    if kind == PrimitiveKind.DOUBLE:
        return _parse_double(text)
    if kind == PrimitiveKind.BOOLEAN:
        return text.lower() == "true"
    if kind == PrimitiveKind.TIMESTAMP:
        return _parse_timestamp(text)
    if kind == PrimitiveKind.DATE:
        return _parse_date(text)
    if kind == PrimitiveKind.DECIMAL:
        return _parse_decimal(text, descriptor)
    if kind == PrimitiveKind.CHAR:
        return CharValue.of(text, descriptor.length)
    if kind == PrimitiveKind.VARCHAR:
        return VarcharValue.of(text, descriptor.length)
    raise TypeError(f"unsupported column type {descriptor}")
