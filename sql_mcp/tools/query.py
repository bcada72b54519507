"""SQL query execution tool, gated by the server's query mode."""
from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from sql_mcp.adapters.base import DEFAULT_ROW_LIMIT
from sql_mcp.context import AppContext
from sql_mcp.governance.query_guard import validate_query
from sql_mcp.utils.errors import handle_error
from sql_mcp.utils.formatting import ResponseFormat, format_query_results


class ExecuteQueryInput(BaseModel):
    # query is passed through untouched; validate_query rejects empty input
    model_config = ConfigDict(str_strip_whitespace=False)
    query: str = Field(
        ...,
        description="SQL query to execute",
        max_length=50000,
    )
    limit: int = Field(
        default=DEFAULT_ROW_LIMIT,
        description="Maximum rows to return for SELECT queries (1-1000)",
        ge=1,
        le=1000,
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


def register_query_tools(mcp: FastMCP, ctx: AppContext):

    @mcp.tool(
        name="execute-query",
        annotations={
            "title": "Execute Query",
            "readOnlyHint": False,
            "destructiveHint": True,
            "idempotentHint": False,
            "openWorldHint": False,
        },
    )
    async def execute_query(params: ExecuteQueryInput) -> str:
        """Execute a SQL query against the connected database.

        Allowed statements depend on SQL_MCP_MODE: safe permits SELECT,
        WITH, EXPLAIN, SHOW and DESCRIBE; write adds INSERT, UPDATE, DELETE
        and MERGE; full permits everything. SELECTs without their own limit
        are capped at ``limit`` rows.
        """
        try:
            mode = ctx.config.query_mode
            validate_query(params.query, mode)
            result = await ctx.connections.execute_query(params.query, params.limit)
            return format_query_results(
                result, query_mode=mode.value, fmt=params.response_format
            )
        except Exception as e:
            return handle_error(e)
