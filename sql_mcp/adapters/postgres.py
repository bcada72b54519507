"""PostgreSQL adapter: async connection pool via psycopg (v3) and psycopg_pool."""
import re
import logging
from dataclasses import replace
from typing import Any, Optional

from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

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
    SslConfig,
    TableInfo,
    TableKind,
)
from sql_mcp.utils.errors import ConnectionError, QueryError

logger = logging.getLogger(__name__)

_SELECT = re.compile(r"^\s*SELECT\b", re.IGNORECASE)
_LIMIT = re.compile(r"\bLIMIT\b", re.IGNORECASE)


def _ssl_params(ssl) -> dict[str, Any]:
    """Translate the ssl option into libpq parameters.

    - false / unset: TLS disabled
    - true: TLS required, certificate not verified
    - SslConfig: TLS required; verified against ``ca`` (or the system
      store) unless ``reject_unauthorized`` is false
    """
    if not ssl:
        return {"sslmode": "disable"}
    if not isinstance(ssl, SslConfig):
        return {"sslmode": "require"}

    params: dict[str, Any] = {
        "sslmode": "verify-full" if ssl.reject_unauthorized else "require",
        "sslcert": ssl.cert,
        "sslkey": ssl.key,
    }
    if ssl.ca:
        params["sslrootcert"] = ssl.ca
    elif ssl.reject_unauthorized:
        params["sslrootcert"] = "system"
    return params


class PostgresAdapter(DatabaseAdapter):
    """PostgreSQL implementation of the adapter contract.

    A PostgreSQL session is bound to one database for its lifetime, so
    ``switch_database`` reconnects rather than issuing a statement.
    """

    engine = DatabaseEngine.POSTGRES

    def __init__(self, config=None):
        super().__init__(config)
        self._pool: Optional[AsyncConnectionPool] = None

    def default_port(self) -> int:
        return 5432

    def default_schema(self) -> str:
        return "public"

    def _build_conninfo(self, config: ConnectionConfig, database: str) -> str:
        return make_conninfo(
            host=config.server,
            port=config.port or self.default_port(),
            dbname=database,
            user=config.user,
            password=config.password,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            options=f"-c statement_timeout={REQUEST_TIMEOUT_SECONDS * 1000}",
            application_name="sql_mcp",
            **_ssl_params(config.ssl),
        )

    async def connect(self, config: ConnectionConfig) -> None:
        database = config.database or "postgres"
        pool = AsyncConnectionPool(
            conninfo=self._build_conninfo(config, database),
            min_size=1,
            max_size=self._settings.pool_max_size,
            open=False,
            kwargs={"row_factory": dict_row, "autocommit": True},
            check=AsyncConnectionPool.check_connection,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        try:
            await pool.open(wait=True, timeout=CONNECT_TIMEOUT_SECONDS)
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            await pool.close()
            raise ConnectionError(
                f"Failed to connect to PostgreSQL server: {e}", e
            ) from e

        self._pool = pool
        self._is_connected = True
        self._current_database = database
        self._config = config
        logger.info(f"Connected to PostgreSQL at {config.server} (database={database})")

    async def disconnect(self) -> None:
        pool, self._pool = self._pool, None
        try:
            if pool is not None:
                await pool.close()
                logger.info("PostgreSQL connection pool closed")
        except Exception as e:
            raise ConnectionError(f"Failed to close PostgreSQL pool: {e}", e) from e
        finally:
            self._reset_state()

    async def switch_database(self, database: str) -> None:
        """Reconnect to ``database`` using the stored connection config.

        The current pool is closed first: the previous session handle becomes
        invalid and any server-side session state (temporary tables,
        prepared statements, SET values) is lost. If the new connection
        fails the adapter is left disconnected.
        """
        self._require_connected()
        if self._config is None:
            raise ConnectionError("No connection configuration available")

        config = replace(self._config, database=database)
        await self.disconnect()
        await self.connect(config)
        logger.info(f"Switched PostgreSQL session to database '{database}' (reconnected)")

    async def _fetch(self, sql: str, params: tuple = None) -> list[dict[str, Any]]:
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                return await cur.fetchall()

    async def list_databases(self) -> list[str]:
        self._require_connected()
        try:
            rows = await self._fetch(
                """SELECT datname AS name
                FROM pg_database
                WHERE datistemplate = false AND datallowconn = true
                ORDER BY datname"""
            )
        except Exception as e:
            raise QueryError(f"Failed to list databases: {e}", e) from e
        return [row["name"] for row in rows]

    async def list_tables(self) -> list[TableInfo]:
        self._require_connected()
        try:
            rows = await self._fetch(
                """SELECT table_schema AS schema, table_name AS name,
                       CASE table_type WHEN 'BASE TABLE' THEN 'TABLE' ELSE 'VIEW' END AS type
                FROM information_schema.tables
                WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
                ORDER BY table_schema, table_name"""
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
                """SELECT c.column_name AS name,
                       c.data_type AS type,
                       c.is_nullable = 'YES' AS nullable,
                       c.character_maximum_length AS max_length,
                       c.numeric_precision AS precision,
                       c.numeric_scale AS scale,
                       c.column_default AS default_value,
                       EXISTS (
                           SELECT 1
                           FROM information_schema.table_constraints tc
                           JOIN information_schema.key_column_usage kcu
                             ON tc.constraint_name = kcu.constraint_name
                            AND tc.table_schema = kcu.table_schema
                            AND tc.table_name = kcu.table_name
                           WHERE tc.constraint_type = 'PRIMARY KEY'
                             AND tc.table_schema = c.table_schema
                             AND tc.table_name = c.table_name
                             AND kcu.column_name = c.column_name
                       ) AS is_primary_key,
                       col_description(
                           (quote_ident(c.table_schema) || '.' || quote_ident(c.table_name))::regclass,
                           c.ordinal_position
                       ) AS comment
                FROM information_schema.columns c
                WHERE c.table_schema = %s AND c.table_name = %s
                ORDER BY c.ordinal_position""",
                (schema_name, table_name),
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
        if not _SELECT.match(sql) or _LIMIT.search(sql):
            return sql
        statement = sql.strip().rstrip(";").rstrip()
        # own line, so a trailing -- comment cannot swallow the clause
        return f"{statement}\nLIMIT {int(limit)}"

    async def execute_query(
        self, sql: str, limit: int = DEFAULT_ROW_LIMIT
    ) -> QueryResult:
        self._require_connected()
        statement = self.apply_row_limit(sql, limit)
        if statement != sql:
            logger.debug(f"Applied row limit {limit}: {statement[:200]}")

        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(statement)
                    if cur.description is None:
                        affected = cur.rowcount if cur.rowcount >= 0 else None
                        return QueryResult(affected_rows=affected)
                    columns = [column.name for column in cur.description]
                    rows = await cur.fetchall()
        except Exception as e:
            raise QueryError(f"Query execution failed: {e}", e) from e

        return QueryResult(
            columns=columns, rows=[dict(row) for row in rows], row_count=len(rows)
        )
