"""Session lifecycle tools: connect, disconnect, status, database switching."""
from typing import Annotated, Optional, Union

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from sql_mcp.config import mode_description
from sql_mcp.context import AppContext
from sql_mcp.models import ConnectionConfig, DatabaseEngine, SslConfig
from sql_mcp.utils.errors import handle_error
from sql_mcp.utils.formatting import format_success


class SslOptionsInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    reject_unauthorized: bool = Field(
        default=True, description="Verify the server certificate and host name"
    )
    cert: Optional[str] = Field(default=None, description="Client certificate file path")
    key: Optional[str] = Field(default=None, description="Client private key file path")
    ca: Optional[str] = Field(default=None, description="CA certificate file path")


# Credentials are sent to the driver byte for byte
RawStr = Annotated[str, StringConstraints(strip_whitespace=False)]


class ConnectDatabaseInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    engine: DatabaseEngine = Field(..., description="Database engine: mssql or postgres")
    server: str = Field(..., description="Server hostname or IP address", min_length=1)
    port: Optional[int] = Field(
        default=None, description="Port (default: 1433 for MSSQL, 5432 for PostgreSQL)", gt=0
    )
    database: Optional[str] = Field(default=None, description="Initial database")
    user: Optional[RawStr] = Field(default=None, description="Username for authentication")
    password: Optional[RawStr] = Field(default=None, description="Password for authentication")
    windows_auth: bool = Field(
        default=False, description="Use Windows integrated authentication (MSSQL only)"
    )
    encrypt: bool = Field(default=True, description="Encrypt the connection (MSSQL only)")
    trust_server_certificate: bool = Field(
        default=False, description="Trust the server certificate without validation (MSSQL only)"
    )
    ssl: Optional[Union[bool, SslOptionsInput]] = Field(
        default=None, description="SSL configuration (PostgreSQL only)"
    )

    def to_connection_config(self) -> ConnectionConfig:
        ssl = self.ssl
        if isinstance(ssl, SslOptionsInput):
            ssl = SslConfig(**ssl.model_dump())
        return ConnectionConfig(
            engine=self.engine,
            server=self.server,
            port=self.port,
            database=self.database or None,
            user=self.user,
            password=self.password,
            windows_auth=self.windows_auth,
            encrypt=self.encrypt,
            trust_server_certificate=self.trust_server_certificate,
            ssl=ssl,
        )


class SwitchDatabaseInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    database: str = Field(..., description="Database name to switch to", min_length=1)


def register_connection_tools(mcp: FastMCP, ctx: AppContext):

    @mcp.tool(
        name="connect-database",
        annotations={
            "title": "Connect Database",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True,
        },
    )
    async def connect_database(params: ConnectDatabaseInput) -> str:
        """Connect to a database server (MSSQL or PostgreSQL).

        Any existing connection is closed first; only one session is live
        at a time.
        """
        try:
            await ctx.connections.connect(params.to_connection_config())
            state = ctx.connections.get_state()
            return format_success(
                {
                    "message": f"Connected to {params.engine.value} server at {params.server}",
                    "database": state.database,
                }
            )
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="disconnect",
        annotations={
            "title": "Disconnect",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def disconnect() -> str:
        """Disconnect from the current database. Safe to call when not connected."""
        try:
            was_connected = ctx.connections.is_connected
            await ctx.connections.disconnect()
            return format_success(
                {
                    "message": "Disconnected from database"
                    if was_connected
                    else "No active connection to disconnect"
                }
            )
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="connection-status",
        annotations={
            "title": "Connection Status",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def connection_status() -> str:
        """Report the current connection and the server's query mode."""
        try:
            mode = ctx.config.query_mode
            return format_success(
                {
                    **ctx.connections.get_state().to_dict(),
                    "queryMode": mode.value,
                    "queryModeDescription": mode_description(mode),
                }
            )
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="list-databases",
        annotations={
            "title": "List Databases",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_databases() -> str:
        """List the user databases on the connected server."""
        try:
            databases = await ctx.connections.list_databases()
            return format_success({"databases": databases, "count": len(databases)})
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="switch-database",
        annotations={
            "title": "Switch Database",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def switch_database(params: SwitchDatabaseInput) -> str:
        """Switch to another database on the connected server.

        MSSQL switches in place with USE. PostgreSQL has to reconnect: the
        old session is closed and its temporary tables and session settings
        are lost.
        """
        try:
            await ctx.connections.switch_database(params.database)
            state = ctx.connections.get_state()
            return format_success(
                {
                    "message": f"Switched to database '{params.database}'",
                    "database": state.database,
                }
            )
        except Exception as e:
            return handle_error(e)
