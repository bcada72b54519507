"""Identifier sanitizing and dialect quoting for generated SQL."""
import re

from sql_mcp.models import DatabaseEngine
from sql_mcp.utils.errors import ValidationError

# One leading/trailing bracket or quote, each side stripped independently
_WRAPPING = re.compile(r"^\[|\]$|^\"|\"$|^'|'$")
_IDENTIFIER = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.]*")


def sanitize_identifier(identifier: str) -> str:
    """Strip wrapping delimiters and allow only word characters and dots.

    Dots are kept so ``schema.table`` forms pass through.
    """
    cleaned = _WRAPPING.sub("", identifier)
    if not _IDENTIFIER.fullmatch(cleaned):
        raise ValidationError(f"Invalid identifier: {identifier}")
    return cleaned


def escape_identifier(identifier: str, engine: DatabaseEngine) -> str:
    """Sanitize, then quote each dot segment for the engine's dialect."""
    sanitized = sanitize_identifier(identifier)
    if DatabaseEngine(engine) == DatabaseEngine.MSSQL:
        return ".".join(f"[{part}]" for part in sanitized.split("."))
    return ".".join(f'"{part}"' for part in sanitized.split("."))
