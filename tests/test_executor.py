"""Unit tests for statement execution and placeholder translation."""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from app.core.config import settings
from app.core.errors import ServerError
from app.modules.sql.compiler import compile_insert, compile_select
from app.modules.sql.executor import _jsonable, execute_statement, translate_placeholders


# ---------------------------------------------------------------------------
# translate_placeholders
# ---------------------------------------------------------------------------


def test_qmark_is_passthrough():
    sql = "SELECT * FROM t WHERE a = ? AND b LIKE '50%'"
    assert translate_placeholders(sql, "qmark") == sql


def test_format_replaces_question_marks():
    assert (
        translate_placeholders("UPDATE `users` SET age = ? WHERE id = ?", "format")
        == "UPDATE `users` SET age = %s WHERE id = %s"
    )


def test_format_escapes_percent_everywhere():
    assert (
        translate_placeholders("SELECT 5 % 2, 'a%' FROM t WHERE x LIKE ?", "format")
        == "SELECT 5 %% 2, 'a%%' FROM t WHERE x LIKE %s"
    )


def test_format_leaves_quoted_question_marks():
    sql = "SELECT '?' AS q, \"?\" AS r, `?` FROM t WHERE a = ?"
    assert translate_placeholders(sql, "format") == "SELECT '?' AS q, \"?\" AS r, `?` FROM t WHERE a = %s"


def test_format_handles_escaped_quotes():
    sql = "SELECT 'it''s ?', 'a\\'?' FROM t WHERE a = ?"
    assert translate_placeholders(sql, "format") == "SELECT 'it''s ?', 'a\\'?' FROM t WHERE a = %s"


def test_format_leaves_comment_question_marks():
    sql = "SELECT * FROM users -- why?\nWHERE id = ?"
    assert translate_placeholders(sql, "format") == "SELECT * FROM users -- why?\nWHERE id = %s"


def test_format_handles_hash_and_block_comments():
    sql = "SELECT /* which? */ name FROM users # really?\nWHERE age = ? /* 50% */"
    assert (
        translate_placeholders(sql, "format")
        == "SELECT /* which? */ name FROM users # really?\nWHERE age = %s /* 50%% */"
    )


def test_double_dash_without_space_is_not_a_comment():
    assert translate_placeholders("SELECT 3--?", "format") == "SELECT 3--%s"


def test_comment_markers_inside_quotes_are_literal():
    sql = "SELECT '-- ?', '/* ?' FROM t WHERE a = ?"
    assert translate_placeholders(sql, "format") == "SELECT '-- ?', '/* ?' FROM t WHERE a = %s"


def test_unknown_paramstyle_raises():
    with pytest.raises(ValueError):
        translate_placeholders("SELECT ?", "named")


# ---------------------------------------------------------------------------
# execute_statement (SQLite handle)
# ---------------------------------------------------------------------------


def test_select_returns_rows_as_objects(mcw):
    stmt = compile_select("users", None, {"age": "25", "sort_by": "name", "order": "desc"})
    result = execute_statement(mcw, stmt.sql, stmt.params)
    assert result["success"] is True
    assert [r["name"] for r in result["results"]] == ["Bob", "Alice"]
    assert result["meta"]["rows_read"] == 2
    assert result["meta"]["changes"] == 0


def test_insert_reports_changes_and_last_row_id(mcw):
    stmt = compile_insert("users", {"name": "John", "age": 30})
    result = execute_statement(mcw, stmt.sql, stmt.params)
    assert result["results"] == []
    assert result["meta"]["changes"] == 1
    new_id = result["meta"]["last_row_id"]
    assert mcw.rows("SELECT name, age FROM users WHERE id = ?", (new_id,)) == [("John", 30)]


def test_nested_values_are_stored_as_json(mcw):
    stmt = compile_insert("users", {"name": "Eve", "profile": {"tags": ["a", "b"]}})
    execute_statement(mcw, stmt.sql, stmt.params)
    (profile,) = mcw.rows("SELECT profile FROM users WHERE name = 'Eve'")[0]
    assert json.loads(profile) == {"tags": ["a", "b"]}


def test_driver_error_becomes_server_error_with_message(mcw):
    with pytest.raises(ServerError, match="no such table: missing"):
        execute_statement(mcw, "SELECT * FROM `missing`")


def test_execution_is_audited(mcw, event_log):
    execute_statement(mcw, "SELECT * FROM users WHERE id = ?", ["1"], trace_id="trace-1")
    with pytest.raises(ServerError):
        execute_statement(mcw, "SELECT * FROM nope", trace_id="trace-2")

    events = [json.loads(line) for line in event_log.read_text(encoding="utf-8").splitlines()]
    assert [e["trace_id"] for e in events] == ["trace-1", "trace-2"]
    assert events[0]["status"] == "SUCCESS"
    assert events[0]["param_count"] == 1
    assert events[0]["db_name"] == "mcw_db"
    assert events[1]["status"] == "ERROR"
    assert "nope" in events[1]["error"]


def test_jsonable_converts_driver_types():
    assert _jsonable(Decimal("1.50")) == 1.5
    assert _jsonable(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert _jsonable(date(2024, 1, 2)) == "2024-01-02"
    assert _jsonable(b"abc") == "abc"
    assert _jsonable(None) is None
    assert _jsonable(7) == 7


def test_bare_event_log_filename_is_written(mcw, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "EVENT_LOG_PATH", "events.jsonl")
    execute_statement(mcw, "SELECT 1 AS one", trace_id="bare")
    event = json.loads((tmp_path / "events.jsonl").read_text(encoding="utf-8"))
    assert event["trace_id"] == "bare"


def test_execution_logs_carry_db_name(mcw, caplog):
    caplog.set_level(logging.INFO, logger="sql_gateway")
    execute_statement(mcw, "SELECT 1 AS one")
    assert any(getattr(r, "db_name", None) == "mcw_db" for r in caplog.records)
