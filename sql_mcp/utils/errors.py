"""Error taxonomy and the request-boundary error handler.

Every error raised by the core carries a stable ``code``. ``handle_error``
turns any exception into the JSON failure payload returned to the client,
adding an actionable hint when the underlying driver error is recognised.
"""
import json
import logging
from typing import Optional

import psycopg

logger = logging.getLogger(__name__)


class SqlMcpError(Exception):
    """Base class for all errors raised by the server core."""

    code = "SQL_MCP_ERROR"

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConnectionError(SqlMcpError):  # noqa: A001
    """Connect, disconnect or reconnect failed."""

    code = "CONNECTION_ERROR"


class QueryError(SqlMcpError):
    """Statement execution or catalog query failed."""

    code = "QUERY_ERROR"


class ValidationError(SqlMcpError):
    """Malformed input: empty query, bad identifier, injection pattern."""

    code = "VALIDATION_ERROR"


class PermissionError(SqlMcpError):  # noqa: A001
    """Statement not allowed by the current query mode."""

    code = "PERMISSION_ERROR"


class NotConnectedError(SqlMcpError):
    code = "NOT_CONNECTED"

    def __init__(self):
        super().__init__("Not connected to database. Use connect-database first.")


class UnsupportedEngineError(SqlMcpError):
    code = "UNSUPPORTED_ENGINE"

    def __init__(self, engine: str):
        self.engine = engine
        super().__init__(f"Unsupported database engine: {engine}")


def _driver_hint(cause: Optional[BaseException]) -> Optional[str]:
    """Map a recognised driver error to a next step for the client."""
    if cause is None:
        return None

    if isinstance(cause, psycopg.errors.UndefinedTable):
        return "Use list-tables to discover available tables and their schemas."
    if isinstance(cause, psycopg.errors.InsufficientPrivilege):
        return (
            "The database user lacks the privilege for this operation. "
            "Database grants apply in addition to the query mode."
        )
    if isinstance(cause, psycopg.errors.SyntaxError):
        return "Check the SQL syntax for the PostgreSQL dialect."
    if isinstance(cause, psycopg.errors.QueryCanceled):
        return "The statement hit the 30 second timeout. Narrow the query or add a limit."
    if isinstance(cause, psycopg.OperationalError):
        msg = str(cause).lower()
        if "connection refused" in msg or "could not connect" in msg:
            return "Check the server address, port and that the server accepts TCP connections."
        if "password authentication failed" in msg:
            return "Check the user name and password."

    # pyodbc errors carry the SQLSTATE as the first argument
    args = getattr(cause, "args", ())
    sqlstate = args[0] if args and isinstance(args[0], str) else ""
    if sqlstate == "42S02":
        return "Use list-tables to discover available tables and their schemas."
    if sqlstate in ("HYT00", "HYT01"):
        return "The statement or login hit the 30 second timeout."
    if sqlstate == "28000":
        return "Login failed. Check the credentials or the windows_auth setting."
    if sqlstate in ("08001", "08S01"):
        return "Cannot reach the SQL Server instance. Check server, port and encryption settings."

    if isinstance(cause, TimeoutError):
        return "The operation timed out after 30 seconds."
    return None


def handle_error(e: Exception) -> str:
    """Return the JSON failure payload for an exception."""
    if isinstance(e, SqlMcpError):
        payload = {"success": False, "error": e.message, "code": e.code}
        hint = _driver_hint(e.original_error or e.__cause__)
        if hint:
            payload["hint"] = hint
    else:
        logger.exception("Unexpected error while handling a tool call")
        payload = {
            "success": False,
            "error": f"{type(e).__name__}: {e}",
            "code": "INTERNAL_ERROR",
        }
        hint = _driver_hint(e)
        if hint:
            payload["hint"] = hint
    return json.dumps(payload, indent=2, default=str)
