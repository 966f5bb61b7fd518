"""
CSV Writer with resource management and performance optimization.
"""

import csv
import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Sequence

from regex_line_parser.column_types import CharValue, VarcharValue

logger = logging.getLogger(__name__)

REJECTED_COLUMNS = ["_line_number", "_line", "_error_reason"]


def format_cell(value: Any) -> Any:
    """Render a typed record value as CSV cell text."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (CharValue, VarcharValue)):
        return str(value)
    return value


class CSVWriter:
    """Manages CSV output files with proper resource management.

    Args:
        out_dir: Output directory for CSV files
        flush_every: Flush to disk every N rows (0 = flush on close only, None = flush every row).
                     Default: 1000 for production performance.
        encoding: Output file encoding
    """

    def __init__(self, out_dir: Path, flush_every: Optional[int] = 1000, encoding: str = "utf-8"):
        self.out_dir = out_dir
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.encoding = encoding
        self._writers = {}
        self._row_counts = {}
        self._write_counts = {}  # Track writes per file for periodic flushing
        self._closed = False
        self.flush_every = flush_every  # None=every row, 0=on close only, N=every N rows

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures files are closed."""
        self.close()
        return False  # Don't suppress exceptions

    def _open(self, file_key: str, header: List[str]):
        if file_key not in self._writers:
            fp = None
            try:
                fp = (self.out_dir / f"{file_key}.csv").open("w", newline="", encoding=self.encoding)
                writer = csv.writer(fp)
                writer.writerow(header)
                fp.flush()
                self._writers[file_key] = (writer, fp, header)
                fp = None
            except Exception:
                if fp is not None:
                    try:
                        fp.close()
                    except Exception:
                        pass  # Ignore errors during cleanup
                raise
        return self._writers[file_key]

    def _write(self, file_key: str, header: List[str], cells: Sequence[Any]) -> None:
        if self._closed:
            raise RuntimeError("CSVWriter is closed")

        writer, fp, cols = self._open(file_key, header)
        if cols != header:
            raise RuntimeError(f"Schema mismatch for table '{file_key}'")

        writer.writerow(cells)

        self._row_counts[file_key] = self._row_counts.get(file_key, 0) + 1
        write_count = self._write_counts.get(file_key, 0) + 1
        self._write_counts[file_key] = write_count

        should_flush = (
            self.flush_every is None or
            (self.flush_every > 0 and write_count % self.flush_every == 0)
        )
        if should_flush:
            fp.flush()

    def write_record(self, table: str, columns: List[str], record: Sequence[Any]) -> None:
        """Write a parsed record to ``<table>.csv``."""
        if len(record) != len(columns):
            raise ValueError(
                f"Record has {len(record)} value(s) but table '{table}' has {len(columns)} column(s)"
            )
        self._write(table, list(columns), [format_cell(v) for v in record])

    def write_rejected_line(self, table: str, line_number: int, line: str, error: str) -> None:
        """Write an unmatched input line to ``<table>_rejected.csv`` with the reason."""
        self._write(f"{table}_rejected", REJECTED_COLUMNS, [line_number, line, error])

    def close(self):
        """Close all open files with error handling."""
        if self._closed:
            return

        errors = []

        for table, (writer, fp, _) in list(self._writers.items()):
            try:
                if fp and not fp.closed:
                    fp.flush()
                    fp.close()
            except Exception as e:
                errors.append(f"Error closing {table}.csv: {e}")

        self._closed = True
        self._writers.clear()

        if errors:
            logger.warning(f"Errors during CSVWriter.close(): {'; '.join(errors)}")

    def get_row_count(self, table: str) -> int:
        """Get row count for a table."""
        return self._row_counts.get(table, 0)
