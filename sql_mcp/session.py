"""Connection lifecycle: at most one live database session per process."""
import logging
from typing import Optional

from sql_mcp.adapters import DatabaseAdapter, create_adapter
from sql_mcp.adapters.base import DEFAULT_ROW_LIMIT
from sql_mcp.config import ServerConfig
from sql_mcp.models import (
    ColumnInfo,
    ConnectionConfig,
    ConnectionState,
    QueryResult,
    TableInfo,
)
from sql_mcp.utils.errors import ConnectionError, NotConnectedError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the single active adapter and fronts every database operation.

    The adapter is never handed out to tools; they go through the methods
    below so the one-session invariant cannot be bypassed. Calls are not
    serialised: two overlapping ``connect`` calls race on the adapter
    reference, and callers that need mutual exclusion must provide it.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self._settings = config or ServerConfig()
        self._adapter: Optional[DatabaseAdapter] = None
        # Kept apart from the adapter: a reconnecting adapter may not retain it
        self._server: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._adapter is not None and self._adapter.is_connected

    def get_active_adapter(self) -> DatabaseAdapter:
        if self._adapter is None or not self._adapter.is_connected:
            raise NotConnectedError()
        return self._adapter

    def get_state(self) -> ConnectionState:
        if not self.is_connected:
            return ConnectionState()
        return ConnectionState(
            connected=True,
            engine=self._adapter.engine,
            database=self._adapter.current_database,
            server=self._server,
        )

    async def connect(self, config: ConnectionConfig) -> None:
        """Open a session, closing any existing one first.

        On failure the new adapter is discarded and no session is held.
        """
        if self._adapter is not None:
            await self.disconnect()

        adapter = create_adapter(config.engine, self._settings)
        await adapter.connect(config)
        self._adapter = adapter
        self._server = config.server

    async def disconnect(self) -> None:
        """Close the session. A no-op when nothing is connected.

        References are cleared even if the adapter's teardown fails; the
        failure is then re-raised as ``ConnectionError``.
        """
        adapter = self._adapter
        if adapter is None:
            return
        try:
            await adapter.disconnect()
        except ConnectionError:
            raise
        except Exception as e:
            raise ConnectionError(f"Failed to disconnect: {e}", e) from e
        finally:
            self._adapter = None
            self._server = None
            logger.info(f"Session to {adapter.engine.value} closed")

    async def switch_database(self, database: str) -> None:
        await self.get_active_adapter().switch_database(database)

    async def list_databases(self) -> list[str]:
        return await self.get_active_adapter().list_databases()

    async def list_tables(self) -> list[TableInfo]:
        return await self.get_active_adapter().list_tables()

    async def describe_table(
        self, table_name: str, schema: Optional[str] = None
    ) -> list[ColumnInfo]:
        return await self.get_active_adapter().describe_table(table_name, schema)

    async def execute_query(
        self, sql: str, limit: int = DEFAULT_ROW_LIMIT
    ) -> QueryResult:
        return await self.get_active_adapter().execute_query(sql, limit)
