"""Common contract for database engine adapters."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from sql_mcp.config import ServerConfig
from sql_mcp.models import (
    ColumnInfo,
    ConnectionConfig,
    DatabaseEngine,
    QueryResult,
    TableInfo,
)
from sql_mcp.utils.errors import NotConnectedError

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 30
REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_ROW_LIMIT = 100


class DatabaseAdapter(ABC):
    """Engine-specific implementation of the generic database operations.

    Every operation except ``connect`` and ``disconnect`` requires a live
    session and raises ``NotConnectedError`` otherwise. Driver failures are
    wrapped in ``ConnectionError`` (session lifecycle) or ``QueryError``
    (statements and catalog queries) with the driver error chained.
    """

    engine: DatabaseEngine

    def __init__(self, config: Optional[ServerConfig] = None):
        self._settings = config or ServerConfig()
        self._is_connected = False
        self._current_database: Optional[str] = None
        self._config: Optional[ConnectionConfig] = None

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def current_database(self) -> Optional[str]:
        return self._current_database

    def _require_connected(self):
        if not self._is_connected:
            raise NotConnectedError()

    def _reset_state(self):
        self._is_connected = False
        self._current_database = None
        self._config = None

    @abstractmethod
    def default_port(self) -> int:
        ...

    @abstractmethod
    def default_schema(self) -> str:
        ...

    @abstractmethod
    def apply_row_limit(self, sql: str, limit: int) -> str:
        """Cap an unbounded SELECT with the dialect's row-limiting clause.

        A pure string rewrite. Statements that are not SELECTs, or that
        already limit their rows, are returned unchanged.
        """

    @abstractmethod
    async def connect(self, config: ConnectionConfig) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release pooled resources. Safe to call repeatedly."""

    @abstractmethod
    async def switch_database(self, database: str) -> None:
        ...

    @abstractmethod
    async def list_databases(self) -> list[str]:
        ...

    @abstractmethod
    async def list_tables(self) -> list[TableInfo]:
        ...

    @abstractmethod
    async def describe_table(
        self, table_name: str, schema: Optional[str] = None
    ) -> list[ColumnInfo]:
        ...

    @abstractmethod
    async def execute_query(
        self, sql: str, limit: int = DEFAULT_ROW_LIMIT
    ) -> QueryResult:
        ...
