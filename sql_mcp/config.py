"""Configuration for the SQL MCP Server.

All settings come from environment variables and are read once at startup.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from sql_mcp.models import QueryMode

_MODE_DESCRIPTIONS = {
    QueryMode.SAFE: "Read-only (SELECT, WITH, EXPLAIN)",
    QueryMode.WRITE: "Read/Write (SELECT, INSERT, UPDATE, DELETE)",
    QueryMode.FULL: "Full access (all SQL operations including DDL)",
}


def parse_query_mode(value: Optional[str]) -> QueryMode:
    """Parse SQL_MCP_MODE. Anything unrecognised falls back to safe."""
    try:
        return QueryMode((value or "").strip().lower())
    except ValueError:
        return QueryMode.SAFE


def mode_description(mode: QueryMode) -> str:
    return _MODE_DESCRIPTIONS[mode]


@dataclass
class ServerConfig:
    """Server configuration loaded from environment variables."""

    # Permission tier for execute-query
    query_mode: QueryMode = field(
        default_factory=lambda: parse_query_mode(os.environ.get("SQL_MCP_MODE"))
    )

    # MCP transport: stdio, sse or streamable-http. Under the HTTP transports
    # every client shares the one database session, which is closed only
    # when the process stops.
    transport: str = field(
        default_factory=lambda: os.environ.get("SQL_MCP_TRANSPORT", "stdio")
    )
    http_host: str = field(
        default_factory=lambda: os.environ.get("SQL_MCP_HOST", "127.0.0.1")
    )
    http_port: int = field(
        default_factory=lambda: int(os.environ.get("SQL_MCP_PORT", "8000"))
    )

    # Pool settings (both engines)
    pool_max_size: int = field(
        default_factory=lambda: int(os.environ.get("SQL_MCP_POOL_MAX", "10"))
    )

    # SQL Server ODBC driver name as registered in odbcinst.ini
    odbc_driver: str = field(
        default_factory=lambda: os.environ.get(
            "SQL_MCP_ODBC_DRIVER", "ODBC Driver 18 for SQL Server"
        )
    )

    log_level: str = field(
        default_factory=lambda: os.environ.get("SQL_MCP_LOG_LEVEL", "INFO").upper()
    )


def load_config() -> ServerConfig:
    """Build a fresh config from the current environment."""
    return ServerConfig()
