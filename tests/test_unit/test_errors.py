"""Unit tests for the error taxonomy and the request-boundary handler."""
import json

import psycopg
import pytest

from sql_mcp.utils.errors import (
    ConnectionError,
    NotConnectedError,
    PermissionError,
    QueryError,
    SqlMcpError,
    UnsupportedEngineError,
    ValidationError,
    handle_error,
)


class TestErrorClasses:

    @pytest.mark.parametrize("cls,code", [
        (ConnectionError, "CONNECTION_ERROR"),
        (QueryError, "QUERY_ERROR"),
        (ValidationError, "VALIDATION_ERROR"),
        (PermissionError, "PERMISSION_ERROR"),
    ])
    def test_codes(self, cls, code):
        error = cls("boom")
        assert error.code == code
        assert error.message == "boom"
        assert isinstance(error, SqlMcpError)

    def test_original_error_preserved(self):
        original = RuntimeError("socket closed")
        error = ConnectionError("Connection failed", original)
        assert error.original_error is original

    def test_not_connected_message(self):
        error = NotConnectedError()
        assert error.code == "NOT_CONNECTED"
        assert "connect-database" in error.message

    def test_unsupported_engine(self):
        error = UnsupportedEngineError("mysql")
        assert error.code == "UNSUPPORTED_ENGINE"
        assert "Unsupported database engine: mysql" == error.message

    def test_taxonomy_does_not_catch_builtins(self):
        """The domain ConnectionError is not the builtin one."""
        assert not issubclass(ConnectionError, OSError)


class TestHandleError:

    def test_domain_error_payload(self):
        data = json.loads(handle_error(PermissionError("Only SELECT queries are allowed")))
        assert data == {
            "success": False,
            "error": "Only SELECT queries are allowed",
            "code": "PERMISSION_ERROR",
        }

    def test_not_connected_payload(self):
        data = json.loads(handle_error(NotConnectedError()))
        assert data["success"] is False
        assert data["code"] == "NOT_CONNECTED"

    def test_unexpected_error(self):
        data = json.loads(handle_error(ValueError("test error")))
        assert data["code"] == "INTERNAL_ERROR"
        assert "ValueError" in data["error"]
        assert "test error" in data["error"]

    def test_undefined_table_hint(self):
        cause = psycopg.errors.UndefinedTable('relation "nope" does not exist')
        data = json.loads(handle_error(QueryError("Query execution failed", cause)))
        assert data["code"] == "QUERY_ERROR"
        assert "list-tables" in data["hint"]

    def test_statement_timeout_hint(self):
        cause = psycopg.errors.QueryCanceled("canceling statement due to statement timeout")
        data = json.loads(handle_error(QueryError("Query execution failed", cause)))
        assert "timeout" in data["hint"]

    def test_refused_connection_hint(self):
        cause = psycopg.OperationalError("connection refused")
        data = json.loads(handle_error(ConnectionError("Failed to connect", cause)))
        assert "port" in data["hint"]

    def test_odbc_sqlstate_hint(self):
        class FakeOdbcError(Exception):
            pass

        cause = FakeOdbcError("28000", "[28000] Login failed for user 'sa'.")
        data = json.loads(handle_error(ConnectionError("Failed to connect", cause)))
        assert "Login failed" in data["hint"]

    def test_chained_cause_used_when_no_original(self):
        try:
            try:
                raise TimeoutError("timed out")
            except TimeoutError as e:
                raise QueryError("Query execution failed") from e
        except QueryError as err:
            data = json.loads(handle_error(err))
        assert "30 seconds" in data["hint"]

    def test_no_hint_without_cause(self):
        data = json.loads(handle_error(ValidationError("Query cannot be empty")))
        assert "hint" not in data
