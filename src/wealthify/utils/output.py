"""Output formatting for CLI results."""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from wealthify.models.api import ApiEnvelope

console = Console(stderr=True)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


def unwrap(body: Any) -> Any:
    """Strip the backend's ``{success, data, ...}`` envelope when present."""
    if not (isinstance(body, dict) and "data" in body and "success" in body):
        return body
    try:
        return ApiEnvelope.model_validate(body).data
    except ValidationError:
        return body


def print_output(data: Any, fmt: OutputFormat = OutputFormat.TABLE, title: str | None = None) -> None:
    """Print a response body as JSON on stdout, or as a Rich table on stderr."""
    if fmt == OutputFormat.JSON:
        json.dump(data, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
        return
    print_table(data, title)


def print_table(data: Any, title: str | None = None) -> None:
    """Render dicts and lists of dicts as a table; anything else as pretty JSON."""
    rows = [data] if isinstance(data, dict) else data
    if not rows:
        console.print("[dim]No results.[/dim]")
        return
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        console.print_json(json.dumps(data, default=str))
        return

    columns: list[str] = []
    for row in rows:
        columns.extend(k for k in row if k not in columns)

    table = Table(title=title)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*[_cell(row.get(col)) for col in columns])
    console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)
