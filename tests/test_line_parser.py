"""Tests for line deserialization, anomaly counters and first-occurrence logging.

These tests lock in the row-level contract: unmatched lines yield None,
unconvertible columns yield None without dropping the row, and each anomaly
kind is logged once per parser instance.
"""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from decimal import Decimal

import pytest

from regex_line_parser.binder import make_columns
from regex_line_parser.column_types import CharValue
from regex_line_parser.exceptions import StructuralError, UnsupportedOperation
from regex_line_parser.line_parser import RegexLineParser
from regex_line_parser.models import ParsePlan

LOGGER_NAME = "regex_line_parser.line_parser"


def _warnings_containing(caplog, text):
    return [r for r in caplog.records if r.levelno == logging.WARNING and text in r.getMessage()]


def test_matched_line_has_one_value_per_column(make_parser):
    parser = make_parser(
        ["ts", "level", "count", "ratio", "ok", "amount"],
        ["timestamp", "string", "bigint", "double", "boolean", "decimal(6,2)"],
        r"(\S+ \S+) (\w+) (-?\d+) (\S+) (\w+) (\S+)",
    )

    record = parser.deserialize("2024-01-15 10:30:45 INFO 42 0.5 TRUE 19.999")

    assert record == [
        datetime(2024, 1, 15, 10, 30, 45),
        "INFO",
        42,
        0.5,
        True,
        Decimal("20.00"),
    ]


def test_string_column_is_exact_capture(make_parser):
    parser = make_parser(["text", "n"], ["string", "int"], r"(.*),(\d+)")
    assert parser.deserialize("  padded  text ,7") == ["  padded  text ", 7]


@pytest.mark.parametrize("number", ["0", "-17", "2147483647", "-2147483648"])
def test_integer_round_trip(make_parser, number):
    parser = make_parser(["n"], ["int"], r"(.+)")
    assert parser.deserialize(number) == [int(number)]


@pytest.mark.parametrize("text,expected", [
    ("true", True), ("TRUE", True), ("True", True),
    ("false", False), ("", False), ("yes", False),
])
def test_boolean_never_fails(make_parser, text, expected):
    parser = make_parser(["flag"], ["boolean"], r"(.*)")
    assert parser.deserialize(text) == [expected]
    assert parser.partial_count == 0


def test_unmatched_line_counts_and_logs_once(make_parser, caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
    parser = make_parser(["id", "name"], ["int", "string"], r"^(\d+),(\w+)$")

    assert parser.deserialize("abc") is None
    assert parser.unmatched_count == 1
    assert len(_warnings_containing(caplog, "unmatched rows")) == 1
    assert "abc" in _warnings_containing(caplog, "unmatched rows")[0].getMessage()

    assert parser.deserialize("still wrong") is None
    assert parser.unmatched_count == 2
    assert len(_warnings_containing(caplog, "unmatched rows")) == 1


def test_match_must_cover_whole_line(make_parser):
    parser = make_parser(["a", "b"], ["int", "int"], r"(\d+),(\d+)")

    assert parser.deserialize("42,abc") is None
    assert parser.deserialize("42,7 trailing") is None
    assert parser.deserialize("42,7") == [42, 7]
    assert parser.unmatched_count == 2
    assert parser.partial_count == 0


def test_partial_match_keeps_record(make_parser, caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
    parser = make_parser(["a"], ["int"], r"^(.+)$")

    record = parser.deserialize("notanumber")

    assert record == [None]
    assert parser.partial_count == 1
    assert parser.unmatched_count == 0
    partial_logs = _warnings_containing(caplog, "partially unmatched")
    assert len(partial_logs) == 1
    assert "group 0" in partial_logs[0].getMessage()
    assert "notanumber" in partial_logs[0].getMessage()


def test_partial_failure_is_per_column(make_parser, caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
    parser = make_parser(["a", "b", "c"], ["int", "string", "date"], r"(.*),(.*),(.*)")

    assert parser.deserialize("x,keep,2024-99-99") == [None, "keep", None]
    assert parser.partial_count == 2
    assert parser.deserialize("y,again,2024-01-02") == [None, "again", date(2024, 1, 2)]
    assert parser.partial_count == 3
    assert len(_warnings_containing(caplog, "partially unmatched")) == 1


def test_optional_group_not_taking_part_is_null(make_parser):
    parser = make_parser(["id", "tag"], ["int", "string"], r"(\d+)(?:,(\w+))?")

    assert parser.deserialize("5") == [5, None]
    assert parser.deserialize("5,x") == [5, "x"]
    assert parser.partial_count == 0


def test_group_count_mismatch_fails_every_call():
    columns = make_columns(["a", "b"], ["int", "int"])
    plan = ParsePlan(columns=columns, pattern=re.compile(r"(\d+)", re.DOTALL))
    parser = RegexLineParser(plan)

    for line in ["1", "1,2", "", "anything at all"]:
        with pytest.raises(StructuralError, match="group count mismatch"):
            parser.deserialize(line)

    assert parser.unmatched_count == 0


def test_serialize_is_unsupported(make_parser):
    parser = make_parser(["a"], ["string"], r"(.*)")

    with pytest.raises(UnsupportedOperation):
        parser.serialize(["value"])
    with pytest.raises(NotImplementedError):
        parser.serialize(None)


def test_deserialize_is_idempotent_and_unaliased(make_parser):
    parser = make_parser(["id", "name"], ["int", "string"], r"(\d+),(\w+)")

    first = parser.deserialize("1,alpha")
    second = parser.deserialize("1,alpha")

    assert first == second
    assert first is not second
    first[1] = "changed"
    assert second == [1, "alpha"]


def test_char_column_is_padded_or_truncated(make_parser):
    parser = make_parser(["code"], ["char(5)"], r"(.*)")

    assert parser.deserialize("ab") == [CharValue("ab   ", 5)]
    assert str(parser.deserialize("abcdefg")[0]) == "abcde"


def test_varchar_column_is_truncated(make_parser):
    parser = make_parser(["code"], ["varchar(3)"], r"(.*)")
    assert str(parser.deserialize("abcdef")[0]) == "abc"


def test_case_insensitive_matching(make_parser):
    parser = make_parser(["path"], ["string"], r"GET (\S+)", case_insensitive=True)
    assert parser.deserialize("get /index.html") == ["/index.html"]


def test_deserialize_bytes_uses_encoding(make_parser):
    parser = make_parser(["word", "n"], ["string", "int"], r"(\w+),(\d+)", encoding="latin-1")
    assert parser.deserialize_bytes("café,1".encode("latin-1")) == ["café", 1]


def test_deserialize_bytes_replaces_undecodable(make_parser):
    parser = make_parser(["text"], ["string"], r"(.*)")
    assert parser.deserialize_bytes(b"ok\xff") == ["ok\ufffd"]


def test_schema_metadata(make_parser):
    parser = make_parser(["host", "size"], ["string", "BIGINT"], r"(\S+) (\d+)")

    assert parser.schema.column_names == ["host", "size"]
    assert parser.schema.type_strings() == ["string", "bigint"]
    assert parser.schema.column_comments == [None, None]
    assert parser.serialized_class is str


def test_counters_snapshot_is_a_copy(make_parser):
    parser = make_parser(["a"], ["int"], r"(\d+)")
    parser.deserialize("x")

    snapshot = parser.counters
    snapshot.unmatched_count = 99

    assert parser.counters.unmatched_count == 1
    assert parser.counters.logged_unmatched_once is True
    assert parser.counters.logged_partial_once is False


def test_counters_are_per_instance(make_parser, caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
    first = make_parser(["a"], ["int"], r"(\d+)")
    second = RegexLineParser(first.plan)

    first.deserialize("x")
    second.deserialize("y")

    assert first.unmatched_count == 1
    assert second.unmatched_count == 1
    assert len(_warnings_containing(caplog, "unmatched rows")) == 2


def test_concurrent_unmatched_lines_are_all_counted(make_parser):
    parser = make_parser(["a"], ["int"], r"(\d+)")
    barrier = threading.Barrier(4)

    def worker(_):
        barrier.wait()
        for _ in range(250):
            parser.deserialize("not a number")

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(worker, range(4)))

    assert parser.unmatched_count == 1000
