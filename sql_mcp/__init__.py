"""MCP server for ad-hoc SQL against MSSQL and PostgreSQL with permission tiers."""

__version__ = "1.0.0"
