"""Schema and metadata discovery tools."""
from typing import Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from sql_mcp.context import AppContext
from sql_mcp.models import TableKind
from sql_mcp.utils.errors import handle_error
from sql_mcp.utils.formatting import format_success


class DescribeTableInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table_name: str = Field(..., description="Table name to describe", min_length=1)
    schema_name: Optional[str] = Field(
        default=None,
        description="Schema name (default: dbo for MSSQL, public for PostgreSQL)",
    )


def register_schema_tools(mcp: FastMCP, ctx: AppContext):

    @mcp.tool(
        name="list-tables",
        annotations={
            "title": "List Tables",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_tables() -> str:
        """List all tables and views in the current database, with a count of each."""
        try:
            tables = await ctx.connections.list_tables()
            table_count = sum(1 for t in tables if t.kind == TableKind.TABLE)
            return format_success(
                {
                    "tables": [t.to_dict() for t in tables],
                    "summary": {
                        "total": len(tables),
                        "tables": table_count,
                        "views": len(tables) - table_count,
                    },
                }
            )
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="describe-table",
        annotations={
            "title": "Describe Table",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def describe_table(params: DescribeTableInput) -> str:
        """Get column names, types, nullability, defaults, comments and the
        primary key of a table. Essential before writing queries."""
        try:
            columns = await ctx.connections.describe_table(
                params.table_name, params.schema_name or None
            )
            return format_success(
                {
                    "tableName": params.table_name,
                    "schema": params.schema_name or "default",
                    "columns": [c.to_dict() for c in columns],
                    "primaryKeys": [c.name for c in columns if c.is_primary_key],
                    "columnCount": len(columns),
                }
            )
        except Exception as e:
            return handle_error(e)
