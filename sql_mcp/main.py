"""SQL MCP Server entry point.

Exposes a single database session (MSSQL or PostgreSQL) to MCP clients,
with statement authorization by query mode (SQL_MCP_MODE).
"""
import logging
from typing import Optional

import anyio
from mcp.server.fastmcp import FastMCP

from sql_mcp import __version__
from sql_mcp.config import ServerConfig, load_config, mode_description
from sql_mcp.context import AppContext, build_context
from sql_mcp.tools.connection import register_connection_tools
from sql_mcp.tools.query import register_query_tools
from sql_mcp.tools.schema import register_schema_tools
from sql_mcp.utils.errors import ConnectionError

logger = logging.getLogger(__name__)

_TRANSPORT_RUNNERS = {
    "stdio": "run_stdio_async",
    "sse": "run_sse_async",
    "streamable-http": "run_streamable_http_async",
}


def create_server(ctx: Optional[AppContext] = None) -> FastMCP:
    """Build the FastMCP server with all tools bound to ``ctx``.

    No lifespan is registered: under the HTTP transports FastMCP enters the
    server lifespan once per client session, while the database session is
    process-wide. Teardown lives in ``serve``.
    """
    ctx = ctx or build_context()
    mcp = FastMCP(
        "sql_mcp",
        host=ctx.config.http_host,
        port=ctx.config.http_port,
    )
    register_connection_tools(mcp, ctx)
    register_schema_tools(mcp, ctx)
    register_query_tools(mcp, ctx)
    return mcp


async def serve(mcp: FastMCP, ctx: AppContext, transport: str) -> None:
    """Run ``transport`` until it stops, then tear down the active session."""
    if transport not in _TRANSPORT_RUNNERS:
        raise ValueError(f"Unknown transport: {transport}")
    runner = getattr(mcp, _TRANSPORT_RUNNERS[transport])

    mode = ctx.config.query_mode
    logger.info(
        f"SQL MCP Server v{__version__} started on {transport} "
        f"(query mode: {mode.value} - {mode_description(mode)})"
    )
    try:
        await runner()
    finally:
        try:
            await ctx.connections.disconnect()
        except ConnectionError as e:
            logger.warning(f"Session teardown failed during shutdown: {e}")
        logger.info("SQL MCP Server stopped")


def main(config: Optional[ServerConfig] = None):
    config = config or load_config()
    # stderr only: stdout carries the MCP stdio protocol
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    ctx = build_context(config)
    mcp = create_server(ctx)
    try:
        anyio.run(serve, mcp, ctx, config.transport)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception:
        logger.exception("Fatal error, shutting down")
        raise


if __name__ == "__main__":
    main()
