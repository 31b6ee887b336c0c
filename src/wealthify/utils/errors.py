"""Structured error output for the CLI."""

from __future__ import annotations

import json
import sys

from rich.console import Console

from wealthify.errors import ApiError, ErrorKind, SessionExpiredError

console = Console(stderr=True)

_HINTS: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Backend unreachable or timed out. Check WEALTHIFY_BASE_URL and connectivity",
    ErrorKind.UNAUTHORIZED: "Not authenticated. Run `wealthify auth login`",
    ErrorKind.RATE_LIMITED: "Rate limited. Wait a moment and retry",
    ErrorKind.SERVER_ERROR: "The backend failed after retries. Try again later",
    ErrorKind.VALIDATION: "Fix the fields listed under `errors` and retry",
}

_CODES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "NETWORK_ERROR",
    ErrorKind.UNAUTHORIZED: "UNAUTHORIZED",
    ErrorKind.CLIENT_ERROR: "CLIENT_ERROR",
    ErrorKind.VALIDATION: "VALIDATION_ERROR",
    ErrorKind.RATE_LIMITED: "RATE_LIMITED",
    ErrorKind.SERVER_ERROR: "SERVER_ERROR",
    ErrorKind.UNKNOWN: "UNKNOWN_ERROR",
}


def error_code(error: Exception) -> str:
    if isinstance(error, SessionExpiredError):
        return "SESSION_EXPIRED"
    if isinstance(error, ApiError):
        return _CODES[error.kind]
    return "RUNTIME_ERROR"


def get_hint(error: Exception) -> str | None:
    if isinstance(error, SessionExpiredError):
        return "Session expired. Run `wealthify auth login`"
    if isinstance(error, ApiError):
        return _HINTS.get(error.kind)
    return None


def handle_error(error: Exception) -> None:
    """Write a JSON error object to stdout and a readable message to stderr.

    {"error": true, "code": "VALIDATION_ERROR", "message": "...", "status": 422,
     "errors": {"amount": ["must be positive"]}, "hint": "..."}
    """
    message = str(error)
    hint = get_hint(error)

    error_obj: dict[str, object] = {
        "error": True,
        "code": error_code(error),
        "message": message,
    }
    if isinstance(error, ApiError):
        error_obj["status"] = error.status_code
        if error.validation_details:
            error_obj["errors"] = error.validation_details
    if hint:
        error_obj["hint"] = hint

    json.dump(error_obj, sys.stdout)
    sys.stdout.write("\n")

    console.print(f"[red]Error:[/red] {message}")
    if isinstance(error, ApiError) and error.validation_details:
        for field, messages in error.validation_details.items():
            console.print(f"  [bold]{field}[/bold]: {'; '.join(messages)}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")


def notify_session_expired() -> None:
    """Session-expired callback for CLI clients: the CLI's unauthenticated entry point is `auth login`."""
    console.print("[yellow]Session expired; stored credentials were cleared.[/yellow]")
    console.print("[dim]Run `wealthify auth login` to sign in again.[/dim]")
