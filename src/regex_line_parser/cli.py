"""
Command-line interface for the regex line parser.

This module handles CLI argument parsing, logging configuration,
and user interaction.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from regex_line_parser.observability import LoggingHook, get_observability_manager
from regex_line_parser.orchestrator import FileProcessingError, parse_files

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Returns:
        Exit code: 0 = success, 1 = all files failed, 2 = partial failure
    """
    parser = argparse.ArgumentParser(
        description="Parse text lines into typed CSV records with a regular expression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse access logs
  regex-line-parser --config access_log.json --out ./output access.log

  # Dry run (parse and report only, no output)
  regex-line-parser --config access_log.json --out ./output --dry-run access.log
        """
    )
    parser.add_argument("--config", required=True, type=Path, help="Table config JSON file")
    parser.add_argument("--out", required=True, type=Path, help="Output directory")
    parser.add_argument("input_files", nargs="+", type=Path, help="Input text files")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                       help="Logging level")
    parser.add_argument("--dry-run", action="store_true",
                       help="Parse without writing outputs")
    parser.add_argument("--fail-fast", action="store_true",
                       help="Stop processing on first file error (default: continue)")
    parser.add_argument("--log-events", action="store_true",
                       help="Log file events and line counters")

    args = parser.parse_args(argv)
    logging.getLogger().setLevel(args.log_level)

    manager = get_observability_manager()
    if args.log_events and not any(isinstance(h, LoggingHook) for h in manager.hooks):
        manager.register_hook(LoggingHook())

    try:
        stats, record_stats, file_errors = parse_files(
            args.config,
            args.input_files,
            args.out,
            dry_run=args.dry_run,
            fail_fast=args.fail_fast
        )

        logger.info("="*80)
        logger.info("PARSING COMPLETE")
        logger.info("="*80)

        for table, pstats in sorted(record_stats.items()):
            match_rate = (pstats.success_rows / pstats.total_rows * 100) if pstats.total_rows > 0 else 0
            logger.info(f"  {table}:")
            logger.info(f"    Total lines: {pstats.total_rows:,}")
            logger.info(f"    Matched: {pstats.success_rows:,} ({match_rate:.1f}%)")
            logger.info(f"    Unmatched: {pstats.failed_rows:,}")
            if pstats.partial_rows > 0:
                logger.info(f"    Partially converted: {pstats.partial_rows:,}")
            if pstats.skipped_rows > 0:
                logger.info(f"    Skipped: {pstats.skipped_rows:,}")
            logger.info(f"    Duration: {pstats.duration:.2f}s")
            logger.info(f"    Throughput: {pstats.rows_per_second:.0f} rows/sec")

        total_unmatched = sum(s.failed_rows for s in record_stats.values())
        if total_unmatched > 0:
            logger.warning(f"Total Unmatched: {total_unmatched:,} lines (see *_rejected.csv files)")

        if not args.dry_run:
            logger.info(f"Output Location: {args.out.resolve()}")
        else:
            logger.info("DRY RUN - No outputs written")

        if file_errors:
            logger.error("="*80)
            logger.error(f"FILE PROCESSING ERRORS ({len(file_errors)} files failed):")
            for file_path, error_msg in file_errors.items():
                logger.error(f"  {file_path}: {error_msg}")
            logger.error("="*80)

        logger.info("="*80)

        failed_file_count = len(file_errors)
        successful_file_count = stats["processed"] - failed_file_count

        if failed_file_count == 0:
            return 0
        elif successful_file_count == 0:
            return 1
        else:
            return 2

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except FileProcessingError as e:
        logger.error(f"File processing error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
