"""
Orchestration logic for parsing text files with a regex table.

This module contains the batch processing logic, independent of CLI concerns:
it reads files line by line, feeds each line to a RegexLineParser and writes
matched records and unmatched lines to CSV.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from regex_line_parser.config_models import TableConfig
from regex_line_parser.csv_writer import CSVWriter
from regex_line_parser.line_parser import RegexLineParser
from regex_line_parser.models import ParsingStats
from regex_line_parser.observability import EventType, get_observability_manager

logger = logging.getLogger(__name__)


class FileProcessingError(Exception):
    """Exception raised when a file fails to process."""
    pass


def parse_lines(
    lines,
    parser: RegexLineParser,
    stats: ParsingStats,
    writer: Optional[CSVWriter] = None,
    config: Optional[TableConfig] = None,
) -> None:
    """Parse an iterable of text lines, updating stats and writing output.

    Trailing ``\\n`` / ``\\r\\n`` terminators are removed before parsing.

    Args:
        lines: Iterable of decoded text lines
        parser: Bound parser
        stats: Statistics to update in place
        writer: Optional CSV writer (None for dry runs)
        config: Table configuration (defaults used when None)
    """
    table = parser.table_name or "records"
    columns = parser.schema.column_names
    skip_blank = config.skip_blank_lines if config else False
    include_rejected = config.output.include_rejected if config else True
    progress_interval = config.progress_interval if config else 10000

    for line_num, line in enumerate(lines, start=1):
        if progress_interval > 0 and line_num % progress_interval == 0:
            logger.info(f"[{table}] Processed {line_num:,} lines ({stats.total_rows:,} total)")

        line = line.rstrip("\n")
        if line.endswith("\r"):
            line = line[:-1]

        if skip_blank and not line.strip():
            stats.skipped_rows += 1
            continue

        stats.total_rows += 1
        partial_before = parser.partial_count
        record = parser.deserialize(line)

        if record is None:
            stats.failed_rows += 1
            if writer and include_rejected:
                writer.write_rejected_line(table, line_num, line, "line does not match input regex")
            continue

        if parser.partial_count != partial_before:
            stats.partial_rows += 1
        stats.success_rows += 1
        if writer:
            writer.write_record(table, columns, record)


def parse_file(
    file_path: Path,
    parser: RegexLineParser,
    stats: ParsingStats,
    writer: Optional[CSVWriter] = None,
    config: Optional[TableConfig] = None,
) -> None:
    """Parse one text file.

    The file is decoded with the parser's encoding; undecodable bytes are
    replaced rather than failing the file.
    """
    with open(file_path, 'r', encoding=parser.encoding, errors='replace', newline='') as f:
        parse_lines(f, parser, stats, writer, config)


def parse_files(
    config_path: Path,
    input_files: List[Path],
    output_dir: Path,
    dry_run: bool = False,
    fail_fast: bool = False
) -> Tuple[Dict[str, int], Dict[str, ParsingStats], Dict[str, str]]:
    """Parse files according to configuration.

    Args:
        config_path: Path to configuration JSON file
        input_files: List of input files to process
        output_dir: Output directory for results
        dry_run: If True, parse but don't write outputs
        fail_fast: If True, stop on first file error (default: continue)

    Returns:
        Tuple: (stats dict, record_stats dict, file_errors dict)

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the configuration is invalid (ValidationError, ConfigError)
        FileProcessingError: On the first file error when fail_fast is set
    """
    start_time = time.time()
    file_errors: Dict[str, str] = {}
    observability = get_observability_manager()

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    config = TableConfig.from_json_file(config_path)
    parser = config.build_parser()
    table = config.name
    observability.emit_event(
        EventType.PARSER_BOUND,
        table=table,
        details={"columns": len(config.columns)}
    )
    logger.info(f"Table '{table}': {len(config.columns)} column(s), encoding {parser.encoding}")

    if dry_run:
        logger.info("DRY RUN MODE - Files will be parsed but no outputs will be written")

    record_stats: Dict[str, ParsingStats] = {table: ParsingStats()}
    table_stats = record_stats[table]
    successful_files = 0
    failed_files = 0

    writer: Optional[CSVWriter] = None
    if not dry_run:
        writer = CSVWriter(
            output_dir,
            flush_every=config.output.flush_every,
            encoding=config.output.csv_encoding
        )

    try:
        for file_idx, input_file in enumerate(input_files, 1):
            if not input_file.exists():
                error_msg = f"Input file not found: {input_file}"
                logger.error(f"[{file_idx}/{len(input_files)}] {error_msg}")
                file_errors[str(input_file)] = error_msg
                failed_files += 1
                observability.emit_event(EventType.FILE_ERROR, file_path=input_file, table=table)
                if fail_fast:
                    raise FileProcessingError(error_msg)
                continue

            logger.info(f"[{file_idx}/{len(input_files)}] Processing: {input_file.name}")
            observability.emit_event(EventType.FILE_START, file_path=input_file, table=table)
            observability.start_timer("file_duration")
            unmatched_before = parser.unmatched_count
            partial_before = parser.partial_count
            total_before = table_stats.total_rows

            try:
                parse_file(input_file, parser, table_stats, writer, config)
            except Exception as e:
                file_duration = observability.end_timer("file_duration", {"table": table})
                error_msg = f"{type(e).__name__}: {str(e)}"
                logger.error(f"Failed {input_file.name} after {file_duration:.2f}s: {error_msg}")
                file_errors[str(input_file)] = error_msg
                table_stats.file_parse_failures += 1
                failed_files += 1
                observability.emit_event(
                    EventType.FILE_ERROR, file_path=input_file, table=table, details={"error": error_msg}
                )
                if fail_fast:
                    raise FileProcessingError(f"File processing failed: {error_msg}") from e
                continue

            tags = {"table": table}
            file_duration = observability.end_timer("file_duration", tags)
            observability.counter("lines_total", table_stats.total_rows - total_before, tags)
            observability.counter("lines_unmatched", parser.unmatched_count - unmatched_before, tags)
            observability.counter("columns_unconvertible", parser.partial_count - partial_before, tags)
            observability.emit_event(
                EventType.FILE_COMPLETE,
                file_path=input_file,
                table=table,
                details={"duration": f"{file_duration:.2f}s"}
            )
            logger.info(f"Completed {input_file.name} in {file_duration:.2f}s")
            successful_files += 1

    finally:
        if writer:
            try:
                writer.close()
            except Exception as e:
                logger.error(f"Error closing writer: {e}")

    for stat in record_stats.values():
        if stat.end_time is None:
            stat.end_time = time.time()

    total_duration = time.time() - start_time
    logger.info(f"Total processing time: {total_duration:.2f}s")
    logger.info(f"Files: {successful_files} succeeded, {failed_files} failed")

    stats = {
        "processed": successful_files + failed_files,
        "succeeded": successful_files,
        "failed": failed_files,
        "duration": total_duration
    }

    return stats, record_stats, file_errors
