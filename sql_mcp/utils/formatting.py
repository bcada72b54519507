"""Response formatting helpers."""
import json
from enum import Enum
from typing import Any

from sql_mcp.models import QueryResult

MARKDOWN_ROW_CAP = 50


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


def format_success(payload: dict[str, Any]) -> str:
    return json.dumps({"success": True, **payload}, indent=2, default=str)


def format_query_results(
    result: QueryResult,
    query_mode: str,
    fmt: ResponseFormat = ResponseFormat.JSON,
) -> str:
    if fmt == ResponseFormat.JSON:
        return format_success({**result.to_dict(), "queryMode": query_mode})

    if not result.columns:
        if result.affected_rows is not None:
            return f"_Statement executed. {result.affected_rows} row(s) affected._"
        return "_No results returned._"
    if not result.rows:
        return "_No results returned._"

    cols = result.columns
    lines = [f"**{result.row_count} row(s) returned**\n"]
    lines.append("| " + " | ".join(cols) + " |")
    lines.append("| " + " | ".join(["---"] * len(cols)) + " |")
    for row in result.rows[:MARKDOWN_ROW_CAP]:
        vals = [str(row.get(c, "")) for c in cols]
        lines.append("| " + " | ".join(vals) + " |")
    if result.row_count > MARKDOWN_ROW_CAP:
        lines.append(
            f"\n_...and {result.row_count - MARKDOWN_ROW_CAP} more rows (use limit to control)_"
        )
    return "\n".join(lines)
