"""Tests for schema binding and pattern compilation."""

import re

import pytest

from regex_line_parser.binder import bind, make_columns
from regex_line_parser.column_types import PrimitiveKind
from regex_line_parser.exceptions import ConfigError


def test_bind_compiles_plan():
    columns = make_columns(["id", "name"], ["int", "string"])
    plan = bind(columns, r"(\d+),(\w+)")

    assert plan.group_count == 2
    assert plan.columns == columns
    assert plan.pattern.flags & re.DOTALL
    assert not plan.pattern.flags & re.IGNORECASE
    assert plan.case_insensitive is False


def test_bind_case_insensitive():
    plan = bind(make_columns(["verb"], ["string"]), r"GET (\S+)", case_insensitive=True)
    assert plan.pattern.flags & re.IGNORECASE
    assert plan.case_insensitive is True


def test_dot_matches_newline():
    plan = bind(make_columns(["body"], ["string"]), r"(.*)")
    assert plan.pattern.fullmatch("first\nsecond").group(1) == "first\nsecond"


@pytest.mark.parametrize("pattern", [None, ""])
def test_missing_pattern(pattern):
    with pytest.raises(ConfigError, match="missing pattern"):
        bind(make_columns(["a"], ["int"]), pattern)


def test_unsupported_column_type_names_column():
    columns = make_columns(["id", "tags"], ["int", "array<string>"])
    with pytest.raises(ConfigError) as exc_info:
        bind(columns, r"(\d+) (.*)")

    message = str(exc_info.value)
    assert "unsupported column type" in message
    assert "[1]" in message
    assert "tags" in message


def test_malformed_pattern_is_config_error():
    with pytest.raises(ConfigError) as exc_info:
        bind(make_columns(["a"], ["int"]), r"(\d+")

    assert isinstance(exc_info.value.__cause__, re.error)
    assert "missing )" in str(exc_info.value)


def test_group_count_mismatch_rejected_at_bind():
    with pytest.raises(ConfigError, match="capture group"):
        bind(make_columns(["a", "b"], ["int", "int"]), r"(\d+)")


def test_non_capturing_groups_are_not_counted():
    plan = bind(make_columns(["a"], ["int"]), r"(?:id=)?(\d+)")
    assert plan.group_count == 1


def test_duplicate_column_names_rejected():
    with pytest.raises(ConfigError, match="duplicate"):
        bind(make_columns(["Host", "host"], ["string", "string"]), r"(\S+) (\S+)")


def test_make_columns_length_mismatch():
    with pytest.raises(ConfigError):
        make_columns(["a", "b"], ["int"])


def test_make_columns_comments():
    columns = make_columns(["a", "b"], ["int", "varchar(10)"], ["first column"])

    assert columns[0].comment == "first column"
    assert columns[1].comment is None
    assert columns[1].type.kind == PrimitiveKind.VARCHAR
    assert columns[1].type.length == 10
