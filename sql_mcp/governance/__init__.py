"""Query governance for the SQL MCP Server.

Statements are authorized against the process-wide query mode
(safe / write / full) before they reach a database adapter.
"""
