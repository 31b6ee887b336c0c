"""CLI commands for raw API access: arbitrary requests, uploads, health."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from wealthify.client import create_client
from wealthify.config import get_config
from wealthify.errors import ApiError
from wealthify.utils.errors import handle_error, notify_session_expired
from wealthify.utils.output import OutputFormat, print_output, unwrap

console = Console(stderr=True)
app = typer.Typer(name="api", help="Call backend endpoints directly.")

_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


def parse_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` options into a dict."""
    result: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        result[key] = value
    return result


@app.command("request")
def request_cmd(
    method: Annotated[str, typer.Argument(help="HTTP method")],
    path: Annotated[str, typer.Argument(help="Path relative to the base URL, e.g. /transactions")],
    data: Annotated[str | None, typer.Option("--data", "-d", help="JSON request body")] = None,
    param: Annotated[list[str] | None, typer.Option("--param", "-q", help="Query parameter key=value")] = None,
    raw: Annotated[bool, typer.Option("--raw", help="Do not strip the response envelope")] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.JSON,
) -> None:
    """Send an authenticated request and print the response body."""
    method = method.upper()
    if method not in _METHODS:
        raise typer.BadParameter(f"Unsupported method '{method}'. Use one of: {', '.join(_METHODS)}")
    try:
        body = json.loads(data) if data else None
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--data is not valid JSON: {e}")
    params = parse_pairs(param)
    config = get_config()

    async def _send() -> Any:
        async with create_client(config, on_session_expired=notify_session_expired) as client:
            return await client.request(method, path, json=body, params=params or None)

    try:
        result = asyncio.run(_send())
        print_output(result if raw else unwrap(result), output, title=f"{method} {path}")
    except ApiError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def upload(
    path: Annotated[str, typer.Argument(help="Upload endpoint, e.g. /users/avatar")],
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="File to upload")],
    field: Annotated[list[str] | None, typer.Option("--field", "-f", help="Extra form field key=value")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.JSON,
) -> None:
    """Upload a file as multipart/form-data with a progress bar."""
    fields = parse_pairs(field)
    config = get_config()

    async def _upload(progress: Progress) -> Any:
        task = progress.add_task(f"Uploading {file.name}", total=1.0)

        def on_progress(fraction: float) -> None:
            progress.update(task, completed=fraction)

        async with create_client(config, on_session_expired=notify_session_expired) as client:
            return await client.upload_file(path, file, fields=fields, progress=on_progress)

    try:
        with Progress(
            TextColumn("{task.description}"), BarColumn(), TaskProgressColumn(), console=console,
        ) as progress:
            result = asyncio.run(_upload(progress))
        print_output(unwrap(result), output, title="Upload")
    except ApiError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def health(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Check that the backend is reachable."""
    config = get_config()

    async def _health() -> Any:
        async with create_client(config) as client:
            return await client.health_check()

    try:
        print_output(unwrap(asyncio.run(_health())), output, title="Health")
    except ApiError as e:
        handle_error(e)
        raise typer.Exit(1)
