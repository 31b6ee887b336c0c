"""Configuration management for the Wealthify client.

Loads settings from environment variables, an optional config/client.yaml,
and a .env file in the project root.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "http://localhost:3001/api"
DEFAULT_CREDENTIALS_PATH = "~/.wealthify/credentials.json"


class Settings(BaseModel):
    """Client settings. Field defaults mirror the backend's documented contract."""
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient failures")
    retry_delay: float = Field(default=1.0, ge=0, description="Base backoff delay in seconds")
    refresh_path: str = Field(default="/auth/refresh-token", description="Token refresh endpoint")
    login_path: str = Field(default="/auth/login", description="Login endpoint")
    logout_path: str = Field(default="/auth/logout", description="Logout endpoint")
    health_path: str = Field(default="/health", description="Health check endpoint")
    credentials_path: str = Field(
        default=DEFAULT_CREDENTIALS_PATH,
        description="JSON file backing the persisted credential store",
    )


class Config(BaseModel):
    """Full application configuration."""
    settings: Settings

    @property
    def credentials_file(self) -> Path:
        """Expanded path of the credentials file."""
        return Path(self.settings.credentials_path).expanduser()


def _find_project_root() -> Path:
    """Walk up from the cwd looking for a config/ directory or a .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / "config" / "client.yaml").exists() or (parent / ".env").exists():
            return parent
    return current


def _load_file_settings(project_root: Path) -> dict[str, Any]:
    """Load overrides from config/client.yaml, if present."""
    path = project_root / "config" / "client.yaml"
    if not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return dict(data.get("client", data))


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


# Settings field -> environment variable names, first match wins
_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "base_url": ("WEALTHIFY_BASE_URL", "VITE_API_BASE_URL"),
    "timeout": ("WEALTHIFY_TIMEOUT",),
    "max_retries": ("WEALTHIFY_MAX_RETRIES",),
    "retry_delay": ("WEALTHIFY_RETRY_DELAY",),
    "refresh_path": ("WEALTHIFY_REFRESH_PATH",),
    "login_path": ("WEALTHIFY_LOGIN_PATH",),
    "logout_path": ("WEALTHIFY_LOGOUT_PATH",),
    "health_path": ("WEALTHIFY_HEALTH_PATH",),
    "credentials_path": ("WEALTHIFY_CREDENTIALS_PATH",),
}


def _load_settings(file_settings: dict[str, Any] | None = None) -> Settings:
    """Merge file settings with environment overrides.

    Environment variables win over config/client.yaml; pydantic coerces
    the string values and rejects invalid ones.
    """
    values: dict[str, Any] = dict(file_settings or {})
    for field, keys in _ENV_KEYS.items():
        val = _env(*keys)
        if val:
            values[field] = val
    return Settings(**values)


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load and cache the full application configuration."""
    project_root = _find_project_root()

    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    settings = _load_settings(_load_file_settings(project_root))
    return Config(settings=settings)
