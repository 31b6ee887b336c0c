"""Auth-related data models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Tokens and cached user profile held by the credential store.

    Both tokens are required, so a Credentials value can never carry one
    token without the other.
    """
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    profile: Any = None


class TokenPair(BaseModel):
    """Token pair returned by the refresh and login endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class LoginResponse(TokenPair):
    """Login payload: a token pair plus the authenticated user."""
    user: Any = None


class SessionStatus(BaseModel):
    """Snapshot of what the credential store currently holds."""
    authenticated: bool
    has_profile: bool = False
    profile: Any = None
