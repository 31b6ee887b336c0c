"""Wealthify CLI entry point.

Thin command-line front end over the authenticated Wealthify API client.
"""

from __future__ import annotations

import logging

import typer

from wealthify.commands.api_cmd import app as api_app
from wealthify.commands.auth_cmd import app as auth_app

app = typer.Typer(
    name="wealthify",
    help="Command-line client for the Wealthify personal-finance API.",
    no_args_is_help=True,
)

app.add_typer(auth_app, name="auth")
app.add_typer(api_app, name="api")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Wealthify CLI: log in, then call the API with automatic token refresh."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


if __name__ == "__main__":
    app()
