"""SQL statement authorization by query mode.

A best-effort lexical gate: statements are classified by their leading
keyword using ordered regex rules, and a small set of injection indicators is
searched for anywhere in the text. There is no SQL parser here. The gate
cannot see into dynamic SQL inside string literals, commented-out tokens, or
second statements beyond the separator heuristic, so it complements database
grants rather than replacing them.
"""
import re
import logging
from enum import Enum
from typing import Optional

from sql_mcp.models import QueryMode
from sql_mcp.utils.errors import PermissionError, ValidationError

logger = logging.getLogger(__name__)


class StatementClass(str, Enum):
    READ = "read"
    WRITE = "write"
    DDL = "ddl"


_FLAGS = re.IGNORECASE

# Prefix rules, checked in order. Leading whitespace is tolerated and the
# keyword must be followed by whitespace.
_STATEMENT_RULES: list[tuple[re.Pattern, StatementClass]] = [
    (re.compile(r"^\s*SELECT\s+", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*WITH\s+[\w\s,]+\s+AS\s*\(", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*EXPLAIN\s+", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*SHOW\s+", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*DESCRIBE\s+", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*DESC\s+", _FLAGS), StatementClass.READ),
    (re.compile(r"^\s*INSERT\s+", _FLAGS), StatementClass.WRITE),
    (re.compile(r"^\s*UPDATE\s+", _FLAGS), StatementClass.WRITE),
    (re.compile(r"^\s*DELETE\s+", _FLAGS), StatementClass.WRITE),
    (re.compile(r"^\s*MERGE\s+", _FLAGS), StatementClass.WRITE),
    (re.compile(r"^\s*CREATE\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*ALTER\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*DROP\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*TRUNCATE\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*GRANT\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*REVOKE\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*EXEC\s+", _FLAGS), StatementClass.DDL),
    (re.compile(r"^\s*EXECUTE\s+", _FLAGS), StatementClass.DDL),
]

# Searched anywhere in the raw statement
_INJECTION_PATTERNS: list[re.Pattern] = [
    re.compile(r";\s*DROP\s+", _FLAGS),
    re.compile(r";\s*DELETE\s+", _FLAGS),
    re.compile(r";\s*TRUNCATE\s+", _FLAGS),
    re.compile(r";\s*UPDATE\s+", _FLAGS),
    re.compile(r";\s*INSERT\s+", _FLAGS),
    re.compile(r";\s*ALTER\s+", _FLAGS),
    re.compile(r";\s*CREATE\s+", _FLAGS),
    re.compile(r";\s*EXEC\s*\(", _FLAGS),
    re.compile(r"xp_cmdshell", _FLAGS),
    re.compile(r"sp_executesql", _FLAGS),
]


def classify_statement(sql: str) -> Optional[StatementClass]:
    """Classify a statement by its leading keyword, or None if unrecognised."""
    for pattern, statement_class in _STATEMENT_RULES:
        if pattern.search(sql):
            return statement_class
    return None


def has_injection_pattern(sql: str) -> bool:
    return any(pattern.search(sql) for pattern in _INJECTION_PATTERNS)


def validate_query(sql: str, mode: QueryMode) -> None:
    """Raise if ``sql`` is not allowed under ``mode``.

    Raises:
        ValidationError: empty query (any mode) or an injection indicator
            (safe and write modes).
        PermissionError: statement class not permitted by the mode.
    """
    mode = QueryMode(mode)
    trimmed = sql.strip()

    if not trimmed:
        raise ValidationError("Query cannot be empty")

    if mode != QueryMode.FULL and has_injection_pattern(sql):
        logger.warning(f"Rejected statement with injection pattern in {mode.value} mode")
        raise ValidationError(
            "Query contains potentially dangerous patterns. "
            "Multi-statement queries are not allowed in this mode."
        )

    if mode == QueryMode.FULL:
        return

    statement_class = classify_statement(trimmed)

    if mode == QueryMode.SAFE:
        if statement_class != StatementClass.READ:
            raise PermissionError(
                "Only SELECT queries are allowed in safe mode. "
                "Set SQL_MCP_MODE=write or SQL_MCP_MODE=full to allow data modifications."
            )
        return

    # write mode
    if statement_class in (StatementClass.READ, StatementClass.WRITE):
        return
    if statement_class == StatementClass.DDL:
        raise PermissionError(
            "DDL operations (CREATE, ALTER, DROP) are not allowed in write mode. "
            "Set SQL_MCP_MODE=full to allow schema modifications."
        )
    raise PermissionError(
        "This operation is not allowed in write mode. "
        "Only SELECT, INSERT, UPDATE, DELETE are permitted."
    )
