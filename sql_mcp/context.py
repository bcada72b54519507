"""Application context handed to every tool registration."""
from dataclasses import dataclass
from typing import Optional

from sql_mcp.config import ServerConfig, load_config
from sql_mcp.session import ConnectionManager


@dataclass
class AppContext:
    """Process-wide state: the startup config and the one connection manager."""

    config: ServerConfig
    connections: ConnectionManager


def build_context(config: Optional[ServerConfig] = None) -> AppContext:
    config = config or load_config()
    return AppContext(config=config, connections=ConnectionManager(config))
