"""Shared test fixtures and driver fakes for SQL MCP tests."""
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from sql_mcp.adapters.base import DatabaseAdapter
from sql_mcp.config import ServerConfig
from sql_mcp.models import (
    ColumnInfo,
    DatabaseEngine,
    QueryMode,
    QueryResult,
    TableInfo,
    TableKind,
)
from sql_mcp.utils.errors import ConnectionError


# ── psycopg fakes ─────────────────────────────────────────────────────

class FakePgCursor:
    """Stands in for psycopg.AsyncCursor with dict rows."""

    def __init__(self, rows=None, columns=None, rowcount=-1, error=None):
        self.rows = rows or []
        self.description = (
            [SimpleNamespace(name=c) for c in columns] if columns is not None else None
        )
        self.rowcount = rowcount
        self.error = error
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.error:
            raise self.error

    async def fetchall(self):
        return self.rows


class FakePgConnection:
    def __init__(self, cursor: FakePgCursor):
        self._cursor = cursor

    def cursor(self):
        return self._cursor

    async def execute(self, sql):
        self._cursor.executed.append((sql, None))


def make_pg_pool(cursor: FakePgCursor):
    """Mock AsyncConnectionPool whose .connection() is an async context manager."""
    pool = MagicMock()

    @asynccontextmanager
    async def fake_connection():
        yield FakePgConnection(cursor)

    pool.connection = fake_connection
    pool.open = AsyncMock()
    pool.close = AsyncMock()
    return pool


# ── aioodbc fakes ─────────────────────────────────────────────────────

class FakeOdbcCursor:
    """Stands in for aioodbc.Cursor: tuple rows, pyodbc-style description."""

    def __init__(self, rows=None, columns=None, rowcount=-1, error=None):
        self.rows = rows or []
        self.description = (
            [(c, str, None, None, None, None, True) for c in columns]
            if columns is not None
            else None
        )
        self.rowcount = rowcount
        self.error = error
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, *params):
        self.executed.append((sql, params))
        if self.error:
            raise self.error

    async def fetchall(self):
        return self.rows


class FakeOdbcConnection:
    def __init__(self, cursor: FakeOdbcCursor):
        self._cursor = cursor

    def cursor(self):
        return self._cursor


def make_odbc_pool(cursor: FakeOdbcCursor):
    pool = MagicMock()

    @asynccontextmanager
    async def fake_acquire():
        yield FakeOdbcConnection(cursor)

    pool.acquire = fake_acquire
    pool.close = MagicMock()
    pool.wait_closed = AsyncMock()
    return pool


def make_aioodbc_module(pool):
    return SimpleNamespace(create_pool=AsyncMock(return_value=pool))


# ── adapter fake for manager and tool tests ───────────────────────────

class FakeAdapter(DatabaseAdapter):
    """In-memory adapter that records calls."""

    def __init__(
        self,
        engine: DatabaseEngine = DatabaseEngine.POSTGRES,
        fail_connect: Optional[Exception] = None,
        fail_disconnect: Optional[Exception] = None,
    ):
        super().__init__(ServerConfig())
        self.engine = engine
        self.fail_connect = fail_connect
        self.fail_disconnect = fail_disconnect
        self.calls = []
        self.tables = [
            TableInfo(schema="public", name="users", kind=TableKind.TABLE),
            TableInfo(schema="public", name="orders", kind=TableKind.TABLE),
            TableInfo(schema="public", name="active_users", kind=TableKind.VIEW),
        ]
        self.columns = [
            ColumnInfo(name="id", type="integer", nullable=False, is_primary_key=True),
            ColumnInfo(
                name="name", type="character varying", nullable=True, max_length=255
            ),
        ]
        self.result = QueryResult(
            columns=["id", "name"],
            rows=[{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
            row_count=2,
        )

    def default_port(self) -> int:
        return 5432

    def default_schema(self) -> str:
        return "public"

    def apply_row_limit(self, sql, limit):
        return sql

    async def connect(self, config):
        self.calls.append(("connect", config))
        if self.fail_connect:
            raise self.fail_connect
        self._is_connected = True
        self._current_database = config.database or "postgres"
        self._config = config

    async def disconnect(self):
        self.calls.append(("disconnect",))
        try:
            if self.fail_disconnect:
                raise self.fail_disconnect
        finally:
            self._reset_state()

    async def switch_database(self, database):
        self._require_connected()
        self.calls.append(("switch_database", database))
        self._current_database = database

    async def list_databases(self):
        self._require_connected()
        return ["app", "analytics"]

    async def list_tables(self):
        self._require_connected()
        return list(self.tables)

    async def describe_table(self, table_name, schema=None):
        self._require_connected()
        self.calls.append(("describe_table", table_name, schema))
        return list(self.columns)

    async def execute_query(self, sql, limit=100):
        self._require_connected()
        self.calls.append(("execute_query", sql, limit))
        return self.result


@pytest.fixture
def fake_adapter():
    return FakeAdapter()


@pytest.fixture
def server_config():
    def _make(mode: QueryMode = QueryMode.SAFE) -> ServerConfig:
        return ServerConfig(query_mode=mode, transport="stdio", pool_max_size=5)

    return _make


@pytest.fixture
def teardown_failure():
    return ConnectionError("pool close failed")


@pytest.fixture
def sample_columns():
    return [
        ColumnInfo(name="id", type="int", nullable=False, is_primary_key=True),
        ColumnInfo(name="email", type="nvarchar", nullable=True, max_length=320),
        ColumnInfo(
            name="created_at",
            type="datetime2",
            nullable=False,
            default_value="(sysutcdatetime())",
            comment="Row creation time",
        ),
    ]
