"""Unit tests for response formatting."""
import json
from datetime import datetime
from decimal import Decimal

from sql_mcp.models import QueryResult
from sql_mcp.utils.formatting import (
    MARKDOWN_ROW_CAP,
    ResponseFormat,
    format_query_results,
    format_success,
)


def _result(n_rows):
    return QueryResult(
        columns=["id", "name"],
        rows=[{"id": i, "name": f"user{i}"} for i in range(n_rows)],
        row_count=n_rows,
    )


class TestFormatSuccess:

    def test_envelope(self):
        data = json.loads(format_success({"message": "ok"}))
        assert data == {"success": True, "message": "ok"}

    def test_non_json_values_stringified(self):
        data = json.loads(
            format_success({"at": datetime(2024, 1, 2, 3, 4, 5), "total": Decimal("1.50")})
        )
        assert data["at"] == "2024-01-02 03:04:05"
        assert data["total"] == "1.50"


class TestJsonResults:

    def test_rows(self):
        data = json.loads(format_query_results(_result(2), query_mode="safe"))
        assert data["success"] is True
        assert data["columns"] == ["id", "name"]
        assert data["rows"][1] == {"id": 1, "name": "user1"}
        assert data["rowCount"] == 2
        assert data["queryMode"] == "safe"
        assert "affectedRows" not in data

    def test_affected_rows(self):
        result = QueryResult(affected_rows=4)
        data = json.loads(format_query_results(result, query_mode="write"))
        assert data["columns"] == []
        assert data["rows"] == []
        assert data["rowCount"] == 0
        assert data["affectedRows"] == 4


class TestMarkdownResults:

    def test_table(self):
        text = format_query_results(_result(2), "safe", ResponseFormat.MARKDOWN)
        assert "**2 row(s) returned**" in text
        assert "| id | name |" in text
        assert "| --- | --- |" in text
        assert "| 1 | user1 |" in text

    def test_capped(self):
        text = format_query_results(_result(60), "safe", ResponseFormat.MARKDOWN)
        assert f"| {MARKDOWN_ROW_CAP - 1} | user{MARKDOWN_ROW_CAP - 1} |" in text
        assert f"| {MARKDOWN_ROW_CAP} | user{MARKDOWN_ROW_CAP} |" not in text
        assert "and 10 more rows" in text

    def test_no_rows(self):
        result = QueryResult(columns=["id"], rows=[], row_count=0)
        text = format_query_results(result, "safe", ResponseFormat.MARKDOWN)
        assert text == "_No results returned._"

    def test_statement_without_rows(self):
        text = format_query_results(
            QueryResult(affected_rows=3), "write", ResponseFormat.MARKDOWN
        )
        assert "3 row(s) affected" in text

    def test_statement_without_rowcount(self):
        text = format_query_results(QueryResult(), "full", ResponseFormat.MARKDOWN)
        assert text == "_No results returned._"
