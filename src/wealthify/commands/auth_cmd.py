"""CLI commands for session management."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from wealthify.auth import AuthManager
from wealthify.client import create_client
from wealthify.config import get_config
from wealthify.errors import ApiError
from wealthify.models.auth import SessionStatus
from wealthify.utils.errors import handle_error, notify_session_expired
from wealthify.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="auth", help="Log in, log out, and manage tokens.")


def _status_row(status: SessionStatus) -> dict[str, object]:
    profile = status.profile if isinstance(status.profile, dict) else {}
    return {
        "authenticated": status.authenticated,
        "user": profile.get("email") or profile.get("name") or "",
    }


@app.command()
def login(
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Account email")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Account password")],
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Log in and store the access/refresh token pair."""
    config = get_config()

    async def _login() -> SessionStatus:
        async with create_client(config) as client:
            auth = AuthManager(config, client)
            await auth.login(email, password)
            return auth.status()

    try:
        console.print(f"Logging in as [bold]{email}[/bold]...", style="yellow")
        status = asyncio.run(_login())
        print_output(_status_row(status), output, title="Authentication")
    except ApiError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def logout(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Log out and clear stored credentials."""
    config = get_config()

    async def _logout() -> SessionStatus:
        async with create_client(config) as client:
            auth = AuthManager(config, client)
            await auth.logout()
            return auth.status()

    status = asyncio.run(_logout())
    print_output(_status_row(status), output, title="Logged Out")


@app.command()
def status(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Show whether credentials are stored."""
    config = get_config()

    async def _status() -> SessionStatus:
        async with create_client(config) as client:
            return AuthManager(config, client).status()

    print_output(_status_row(asyncio.run(_status())), output, title="Session Status")


@app.command()
def refresh(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Force a refresh-token exchange."""
    config = get_config()

    async def _refresh() -> SessionStatus:
        async with create_client(config, on_session_expired=notify_session_expired) as client:
            return await AuthManager(config, client).refresh()

    try:
        console.print("Refreshing access token...", style="yellow")
        status = asyncio.run(_refresh())
        print_output(_status_row(status), output, title="Token Refreshed")
    except ApiError as e:
        handle_error(e)
        raise typer.Exit(1)
