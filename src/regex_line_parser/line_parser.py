"""
Regex line parser engine.

Turns one decoded line of text into a typed record using the capture groups of
a bound ParsePlan. Lines that do not match are reported as ``None``; columns
whose captured text cannot be coerced are set to ``None``. Both anomalies are
counted, and each kind is logged only on its first occurrence.
"""

import logging
import threading
from dataclasses import replace
from typing import Any, List, Optional

from regex_line_parser.column_types import coerce_value
from regex_line_parser.exceptions import StructuralError, UnsupportedOperation
from regex_line_parser.models import AnomalyCounters, ParsePlan, RowSchema

logger = logging.getLogger(__name__)


class RegexLineParser:
    """Deserialize text lines into records according to a ParsePlan.

    Each instance owns its anomaly counters. The plan may be shared between
    instances; counter updates are serialized with a lock so a single
    instance can also be used from several threads.

    Args:
        plan: Bound parse plan
        encoding: Character set of raw byte input for deserialize_bytes
        table_name: Optional name used in log messages
    """

    def __init__(self, plan: ParsePlan, encoding: str = "utf-8", table_name: Optional[str] = None):
        self.plan = plan
        self.encoding = encoding
        self.table_name = table_name
        self._counters = AnomalyCounters()
        self._lock = threading.Lock()
        self._schema = RowSchema.from_columns(plan.columns)

    @property
    def schema(self) -> RowSchema:
        """Ordered schema the parser was bound with."""
        return self._schema

    @property
    def serialized_class(self) -> type:
        """Representation of the serialized form: a single line of text."""
        return str

    @property
    def counters(self) -> AnomalyCounters:
        """Snapshot of the anomaly counters."""
        with self._lock:
            return replace(self._counters)

    @property
    def unmatched_count(self) -> int:
        """Number of lines that did not match the pattern."""
        return self._counters.unmatched_count

    @property
    def partial_count(self) -> int:
        """Number of columns whose captured text could not be converted."""
        return self._counters.partial_count

    def deserialize(self, line: str) -> Optional[List[Any]]:
        """Parse one line into a record.

        Args:
            line: One decoded line of text (without its line terminator)

        Returns:
            A new list with one value per column, or None if the line does not
            match the pattern

        Raises:
            StructuralError: If the pattern's group count differs from the
                number of columns
        """
        columns = self.plan.columns
        group_count = self.plan.pattern.groups
        if group_count != len(columns):
            raise StructuralError(group_count, len(columns))

        match = self.plan.pattern.fullmatch(line)
        if match is None:
            self._record_unmatched(line)
            return None

        row: List[Any] = [None] * len(columns)
        for c, column in enumerate(columns):
            text = match.group(c + 1)
            if text is None:
                # optional group that did not take part in the match
                continue
            try:
                row[c] = coerce_value(text, column.type)
            except (ValueError, ArithmeticError, TypeError) as e:
                self._record_partial(c, line, e)
        return row

    def deserialize_bytes(self, blob: bytes) -> Optional[List[Any]]:
        """Decode raw bytes with the configured encoding and deserialize them.

        Undecodable bytes are replaced with U+FFFD.
        """
        return self.deserialize(blob.decode(self.encoding, errors="replace"))

    def serialize(self, obj: Any, schema: Optional[RowSchema] = None) -> str:
        """Not supported: the regex line parser only deserializes."""
        raise UnsupportedOperation("regex line parser doesn't support the serialize() method")

    def _record_unmatched(self, line: str) -> None:
        with self._lock:
            self._counters.unmatched_count += 1
            if self._counters.logged_unmatched_once:
                return
            self._counters.logged_unmatched_once = True
            count = self._counters.unmatched_count
        logger.warning(f"{self._prefix()}{count} unmatched rows are found: {line}")

    def _record_partial(self, column_idx: int, line: str, error: Exception) -> None:
        with self._lock:
            self._counters.partial_count += 1
            if self._counters.logged_partial_once:
                return
            self._counters.logged_partial_once = True
            count = self._counters.partial_count
        logger.warning(
            f"{self._prefix()}{count} partially unmatched rows are found, "
            f"cannot convert group {column_idx} ({error}): {line}"
        )

    def _prefix(self) -> str:
        return f"[{self.table_name}] " if self.table_name else ""
