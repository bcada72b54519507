"""Shared data records for connections, catalog metadata and query results.

Records are plain dataclasses; ``to_dict()`` produces the payload shape the
MCP tools return (camelCase keys, absent optional attributes omitted).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class DatabaseEngine(str, Enum):
    """Supported database engines."""

    MSSQL = "mssql"
    POSTGRES = "postgres"


class QueryMode(str, Enum):
    """Process-wide permission tier: safe ⊂ write ⊂ full."""

    SAFE = "safe"
    WRITE = "write"
    FULL = "full"


class TableKind(str, Enum):
    TABLE = "TABLE"
    VIEW = "VIEW"


@dataclass(frozen=True)
class SslConfig:
    """PostgreSQL TLS settings. Certificate fields are libpq file paths."""

    reject_unauthorized: bool = True
    cert: Optional[str] = None
    key: Optional[str] = None
    ca: Optional[str] = None


@dataclass(frozen=True)
class ConnectionConfig:
    """Everything needed to open a session.

    Immutable once handed to ``connect``; adapters keep it so that a
    reconnect can replay it with only ``database`` replaced.
    """

    engine: DatabaseEngine
    server: str
    port: Optional[int] = None
    database: Optional[str] = None

    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    # SQL Server
    windows_auth: bool = False
    encrypt: bool = True
    trust_server_certificate: bool = False

    # PostgreSQL
    ssl: Union[bool, SslConfig, None] = None


@dataclass(frozen=True)
class TableInfo:
    schema: str
    name: str
    kind: TableKind

    def to_dict(self) -> dict[str, Any]:
        return {"schema": self.schema, "name": self.name, "type": self.kind.value}


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type: str
    nullable: bool
    is_primary_key: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Optional[str] = None
    comment: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "isPrimaryKey": self.is_primary_key,
        }
        optional = {
            "maxLength": self.max_length,
            "precision": self.precision,
            "scale": self.scale,
            "defaultValue": self.default_value,
            "comment": self.comment,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class QueryResult:
    """Uniform result for row-returning and non-row-returning statements."""

    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    affected_rows: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "columns": self.columns,
            "rows": self.rows,
            "rowCount": self.row_count,
        }
        if self.affected_rows is not None:
            data["affectedRows"] = self.affected_rows
        return data


@dataclass(frozen=True)
class ConnectionState:
    """Projection of the connection manager; never stored on its own."""

    connected: bool = False
    engine: Optional[DatabaseEngine] = None
    database: Optional[str] = None
    server: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "engine": self.engine.value if self.engine else None,
            "server": self.server,
            "database": self.database,
        }
