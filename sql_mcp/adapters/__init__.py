"""Database engine adapters and the engine -> adapter factory."""
from typing import Optional, Union

from sql_mcp.adapters.base import DatabaseAdapter
from sql_mcp.adapters.mssql import MssqlAdapter
from sql_mcp.adapters.postgres import PostgresAdapter
from sql_mcp.config import ServerConfig
from sql_mcp.models import DatabaseEngine
from sql_mcp.utils.errors import UnsupportedEngineError

_ADAPTERS: dict[DatabaseEngine, type[DatabaseAdapter]] = {
    DatabaseEngine.MSSQL: MssqlAdapter,
    DatabaseEngine.POSTGRES: PostgresAdapter,
}


def create_adapter(
    engine: Union[DatabaseEngine, str], config: Optional[ServerConfig] = None
) -> DatabaseAdapter:
    """Instantiate the adapter for ``engine``."""
    try:
        adapter_cls = _ADAPTERS[DatabaseEngine(engine)]
    except ValueError:
        raise UnsupportedEngineError(str(engine)) from None
    return adapter_cls(config)


__all__ = [
    "DatabaseAdapter",
    "MssqlAdapter",
    "PostgresAdapter",
    "create_adapter",
]
