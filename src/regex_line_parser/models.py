"""
Data models and structures for the regex line parser.
"""

import re
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from regex_line_parser.column_types import TypeDescriptor


@dataclass(frozen=True)
class ColumnSpec:
    """Declared output column."""
    name: str
    type: TypeDescriptor
    comment: Optional[str] = None


@dataclass(frozen=True)
class ParsePlan:
    """Compiled, immutable parse plan produced by the binder.

    Safe to share across threads; nothing mutates it after binding.
    """
    columns: Tuple[ColumnSpec, ...]
    pattern: re.Pattern
    case_insensitive: bool = False

    @property
    def group_count(self) -> int:
        """Number of capture groups reported by the compiled pattern."""
        return self.pattern.groups


@dataclass
class AnomalyCounters:
    """Row-level anomaly counters for one parser instance."""
    unmatched_count: int = 0
    partial_count: int = 0
    logged_unmatched_once: bool = False
    logged_partial_once: bool = False


@dataclass(frozen=True)
class RowSchema:
    """Schema metadata exposed to host systems."""
    column_names: List[str]
    column_types: List[TypeDescriptor]
    column_comments: List[Optional[str]]

    @classmethod
    def from_columns(cls, columns) -> "RowSchema":
        return cls(
            column_names=[c.name for c in columns],
            column_types=[c.type for c in columns],
            column_comments=[c.comment for c in columns],
        )

    def type_strings(self) -> List[str]:
        """Column types in their canonical spelling."""
        return [str(t) for t in self.column_types]


@dataclass
class ParsingStats:
    """Parsing statistics."""
    total_rows: int = 0
    success_rows: int = 0
    failed_rows: int = 0  # Lines that did not match the pattern
    partial_rows: int = 0  # Matched lines with at least one column that failed coercion
    skipped_rows: int = 0  # Blank lines skipped by configuration
    file_parse_failures: int = 0
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    @property
    def duration(self) -> float:
        """Get parsing duration in seconds."""
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def rows_per_second(self) -> float:
        """Get processing throughput."""
        duration = self.duration
        return self.success_rows / duration if duration > 0 else 0
