"""Pytest configuration and shared fixtures."""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from regex_line_parser.binder import bind, make_columns
from regex_line_parser.line_parser import RegexLineParser
from regex_line_parser.observability import get_observability_manager

APP_LOG_PATTERN = r"(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) (\w+) \[([^\]]+)\] (.*?) in (\S+)ms"


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def make_parser():
    """Factory that binds columns and a pattern into a fresh parser."""
    def _make(names, types, pattern, case_insensitive=False, **kwargs):
        columns = make_columns(names, types)
        plan = bind(columns, pattern, case_insensitive)
        return RegexLineParser(plan, **kwargs)
    return _make


@pytest.fixture
def observability_manager():
    """Global observability manager, cleared of hooks after the test."""
    manager = get_observability_manager()
    manager.clear_hooks()
    yield manager
    manager.clear_hooks()


@pytest.fixture
def sample_log_file(tmp_path) -> Path:
    """Create a sample application log with one unmatched and one partial line."""
    content = """2024-01-15 10:30:45 INFO [api] request served in 12ms
2024-01-15 10:30:46 WARN [db] slow query in 950ms
garbage line
2024-01-15 10:30:47 INFO [api] request served in fastms
"""
    log_file = tmp_path / "app.log"
    log_file.write_text(content)
    return log_file


@pytest.fixture
def sample_log_config_dict() -> dict:
    """Table configuration matching sample_log_file."""
    return {
        "name": "AppLog",
        "columns": ["ts", "level", "module", "message", "elapsed_ms"],
        "column_types": ["timestamp", "string", "string", "string", "int"],
        "column_comments": ["event time", "", "", "", "request duration"],
        "input_regex": APP_LOG_PATTERN,
    }


@pytest.fixture
def sample_log_config(tmp_path, sample_log_config_dict) -> Path:
    """Write the sample table configuration to a JSON file."""
    config_file = tmp_path / "app_log_config.json"
    config_file.write_text(json.dumps(sample_log_config_dict, indent=2))
    return config_file
