"""Credential stores: where access token, refresh token and profile live.

A store is a dumb key-value map with three well-known keys. It does not
validate token shape and does not navigate anywhere on ``clear()``; the
client signals session expiry separately.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from wealthify.models.auth import Credentials

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "wealthify_access_token"
REFRESH_TOKEN_KEY = "wealthify_refresh_token"
USER_PROFILE_KEY = "wealthify_user_profile"


class CredentialStore(Protocol):
    def get(self) -> Credentials | None: ...

    def set(self, credentials: Credentials) -> None: ...

    def clear(self) -> None: ...


def _from_entries(entries: dict[str, Any]) -> Credentials | None:
    """Build Credentials from raw entries, or None unless both tokens are present."""
    access = entries.get(ACCESS_TOKEN_KEY)
    refresh = entries.get(REFRESH_TOKEN_KEY)
    if not access or not refresh:
        return None
    return Credentials(
        access_token=access,
        refresh_token=refresh,
        profile=entries.get(USER_PROFILE_KEY),
    )


def _to_entries(credentials: Credentials) -> dict[str, Any]:
    return {
        ACCESS_TOKEN_KEY: credentials.access_token,
        REFRESH_TOKEN_KEY: credentials.refresh_token,
        USER_PROFILE_KEY: credentials.profile,
    }


class MemoryCredentialStore:
    """Process-local store, used by tests and short-lived scripts."""

    def __init__(self, credentials: Credentials | None = None) -> None:
        self._entries: dict[str, Any] = _to_entries(credentials) if credentials else {}

    def get(self) -> Credentials | None:
        return _from_entries(self._entries)

    def set(self, credentials: Credentials) -> None:
        self._entries = _to_entries(credentials)

    def clear(self) -> None:
        self._entries = {}


class FileCredentialStore:
    """Store persisted as a JSON object in a single file.

    The file holds the three entries side by side; ``clear()`` removes the
    file so all three disappear together.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Credentials | None:
        if not self._path.exists():
            return None
        try:
            entries = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self._path}: {e}")
            return None
        if not isinstance(entries, dict):
            return None
        return _from_entries(entries)

    def set(self, credentials: Credentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(_to_entries(credentials), indent=2, default=str))
        tmp.chmod(0o600)
        tmp.replace(self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
