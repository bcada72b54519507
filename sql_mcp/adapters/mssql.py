"""SQL Server adapter: async ODBC connection pool via aioodbc."""
import re
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sql_mcp.adapters.base import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_ROW_LIMIT,
    REQUEST_TIMEOUT_SECONDS,
    DatabaseAdapter,
)
from sql_mcp.models import (
    ColumnInfo,
    ConnectionConfig,
    DatabaseEngine,
    QueryResult,
    TableInfo,
    TableKind,
)
from sql_mcp.utils.errors import ConnectionError, QueryError
from sql_mcp.utils.identifiers import escape_identifier

logger = logging.getLogger(__name__)

_SELECT = re.compile(r"^\s*SELECT\b", re.IGNORECASE)
_SELECT_HEAD = re.compile(r"^(\s*SELECT\s+)((?:DISTINCT|ALL)\s+)?", re.IGNORECASE)
_TOP_OR_OFFSET = re.compile(r"\b(?:TOP|OFFSET)\b", re.IGNORECASE)


def _odbc_value(value) -> str:
    """Brace-quote a connection string value so ';' and '}' survive."""
    return "{" + str(value).replace("}", "}}") + "}"


async def _apply_statement_timeout(raw_conn):
    # pyodbc query timeout, in seconds, for every statement on this connection
    raw_conn.timeout = REQUEST_TIMEOUT_SECONDS


class MssqlAdapter(DatabaseAdapter):
    """SQL Server implementation of the adapter contract.

    Supports integrated (Trusted_Connection) and SQL credential
    authentication. Switching databases keeps the session and issues
    ``USE [db]``.
    """

    engine = DatabaseEngine.MSSQL

    def __init__(self, config=None):
        super().__init__(config)
        self._pool = None
        self._database_switched = False

    def default_port(self) -> int:
        return 1433

    def default_schema(self) -> str:
        return "dbo"

    def build_dsn(self, config: ConnectionConfig, database: str) -> str:
        parts = [
            f"Driver={_odbc_value(self._settings.odbc_driver)}",
            f"Server={config.server},{config.port or self.default_port()}",
            f"Database={_odbc_value(database)}",
            f"Encrypt={'yes' if config.encrypt else 'no'}",
            f"TrustServerCertificate={'yes' if config.trust_server_certificate else 'no'}",
            "APP=sql_mcp",
        ]
        if config.windows_auth:
            parts.append("Trusted_Connection=yes")
        else:
            if config.user is not None:
                parts.append(f"UID={_odbc_value(config.user)}")
            if config.password is not None:
                parts.append(f"PWD={_odbc_value(config.password)}")
        return ";".join(parts)

    async def connect(self, config: ConnectionConfig) -> None:
        import aioodbc

        database = config.database or "master"
        pool = None
        try:
            pool = await aioodbc.create_pool(
                dsn=self.build_dsn(config, database),
                minsize=1,
                maxsize=self._settings.pool_max_size,
                autocommit=True,
                timeout=CONNECT_TIMEOUT_SECONDS,
                after_created=_apply_statement_timeout,
            )
            async with pool.acquire() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        except Exception as e:
            if pool is not None:
                pool.close()
                await pool.wait_closed()
            raise ConnectionError(f"Failed to connect to MSSQL server: {e}", e) from e

        self._pool = pool
        self._is_connected = True
        self._current_database = database
        self._database_switched = False
        self._config = config
        auth = "integrated" if config.windows_auth else "sql"
        logger.info(
            f"Connected to MSSQL at {config.server} (database={database}, auth={auth})"
        )

    async def disconnect(self) -> None:
        pool, self._pool = self._pool, None
        try:
            if pool is not None:
                pool.close()
                await pool.wait_closed()
                logger.info("MSSQL connection pool closed")
        except Exception as e:
            raise ConnectionError(f"Failed to close MSSQL pool: {e}", e) from e
        finally:
            self._database_switched = False
            self._reset_state()

    @asynccontextmanager
    async def _cursor(self) -> AsyncGenerator[Any, None]:
        """Acquire a pooled cursor pointed at the current database.

        ``USE`` only affects the connection it runs on, so once the session
        has switched databases every acquired connection is re-pointed.
        """
        async with self._pool.acquire() as conn:
            async with conn.cursor() as cur:
                if self._database_switched:
                    await cur.execute(
                        f"USE {escape_identifier(self._current_database, self.engine)}"
                    )
                yield cur

    async def _fetch(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        async with self._cursor() as cur:
            await cur.execute(sql, *params)
            columns = [column[0] for column in cur.description]
            rows = await cur.fetchall()
        return [dict(zip(columns, row)) for row in rows]

    async def switch_database(self, database: str) -> None:
        self._require_connected()
        statement = f"USE {escape_identifier(database, self.engine)}"
        try:
            async with self._pool.acquire() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(statement)
        except Exception as e:
            raise QueryError(f"Failed to switch to database '{database}': {e}", e) from e
        self._current_database = database
        self._database_switched = True
        logger.info(f"Switched MSSQL session to database '{database}'")

    async def list_databases(self) -> list[str]:
        self._require_connected()
        try:
            rows = await self._fetch(
                """SELECT name
                FROM sys.databases
                WHERE name NOT IN ('master', 'tempdb', 'model', 'msdb')
                  AND state_desc = 'ONLINE'
                ORDER BY name"""
            )
        except Exception as e:
            raise QueryError(f"Failed to list databases: {e}", e) from e
        return [row["name"] for row in rows]

    async def list_tables(self) -> list[TableInfo]:
        self._require_connected()
        try:
            rows = await self._fetch(
                """SELECT TABLE_SCHEMA AS [schema], TABLE_NAME AS name,
                       CASE TABLE_TYPE WHEN 'BASE TABLE' THEN 'TABLE' ELSE 'VIEW' END AS type
                FROM INFORMATION_SCHEMA.TABLES
                ORDER BY TABLE_SCHEMA, TABLE_NAME"""
            )
        except Exception as e:
            raise QueryError(f"Failed to list tables: {e}", e) from e
        return [
            TableInfo(schema=r["schema"], name=r["name"], kind=TableKind(r["type"]))
            for r in rows
        ]

    async def describe_table(
        self, table_name: str, schema: Optional[str] = None
    ) -> list[ColumnInfo]:
        self._require_connected()
        schema_name = schema or self.default_schema()
        try:
            rows = await self._fetch(
                """SELECT c.COLUMN_NAME AS name,
                       c.DATA_TYPE AS type,
                       CASE c.IS_NULLABLE WHEN 'YES' THEN 1 ELSE 0 END AS nullable,
                       c.CHARACTER_MAXIMUM_LENGTH AS max_length,
                       c.NUMERIC_PRECISION AS precision,
                       c.NUMERIC_SCALE AS scale,
                       c.COLUMN_DEFAULT AS default_value,
                       CASE WHEN pk.COLUMN_NAME IS NOT NULL THEN 1 ELSE 0 END AS is_primary_key,
                       CAST(ep.value AS NVARCHAR(4000)) AS comment
                FROM INFORMATION_SCHEMA.COLUMNS c
                LEFT JOIN (
                    SELECT ku.TABLE_SCHEMA, ku.TABLE_NAME, ku.COLUMN_NAME
                    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
                    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
                      ON tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
                     AND tc.TABLE_SCHEMA = ku.TABLE_SCHEMA
                    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
                ) pk ON c.TABLE_SCHEMA = pk.TABLE_SCHEMA
                    AND c.TABLE_NAME = pk.TABLE_NAME
                    AND c.COLUMN_NAME = pk.COLUMN_NAME
                LEFT JOIN sys.extended_properties ep
                  ON ep.class = 1
                 AND ep.major_id = OBJECT_ID(QUOTENAME(?) + '.' + QUOTENAME(?))
                 AND ep.minor_id = COLUMNPROPERTY(ep.major_id, c.COLUMN_NAME, 'ColumnId')
                 AND ep.name = 'MS_Description'
                WHERE c.TABLE_SCHEMA = ? AND c.TABLE_NAME = ?
                ORDER BY c.ORDINAL_POSITION""",
                (schema_name, table_name, schema_name, table_name),
            )
        except Exception as e:
            raise QueryError(
                f"Failed to describe table '{schema_name}.{table_name}': {e}", e
            ) from e
        return [
            ColumnInfo(
                name=r["name"],
                type=r["type"],
                nullable=bool(r["nullable"]),
                is_primary_key=bool(r["is_primary_key"]),
                max_length=r["max_length"],
                precision=r["precision"],
                scale=r["scale"],
                default_value=r["default_value"],
                comment=r["comment"],
            )
            for r in rows
        ]

    def apply_row_limit(self, sql: str, limit: int) -> str:
        if not _SELECT.match(sql) or _TOP_OR_OFFSET.search(sql):
            return sql
        return _SELECT_HEAD.sub(
            lambda m: f"{m.group(1)}{m.group(2) or ''}TOP {int(limit)} ", sql, count=1
        )

    async def execute_query(
        self, sql: str, limit: int = DEFAULT_ROW_LIMIT
    ) -> QueryResult:
        self._require_connected()
        statement = self.apply_row_limit(sql, limit)
        if statement != sql:
            logger.debug(f"Applied row limit {limit}: {statement[:200]}")

        try:
            async with self._cursor() as cur:
                await cur.execute(statement)
                if cur.description is None:
                    affected = cur.rowcount if cur.rowcount >= 0 else None
                    return QueryResult(affected_rows=affected)
                columns = [column[0] for column in cur.description]
                rows = await cur.fetchall()
        except Exception as e:
            raise QueryError(f"Query execution failed: {e}", e) from e

        return QueryResult(
            columns=columns,
            rows=[dict(zip(columns, row)) for row in rows],
            row_count=len(rows),
        )
