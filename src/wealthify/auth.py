"""Session management: login, logout, status, and forced refresh."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from wealthify.client import WealthifyClient
from wealthify.config import Config
from wealthify.errors import ApiError, ClassifiedError, ErrorKind
from wealthify.models.auth import Credentials, LoginResponse, SessionStatus

logger = logging.getLogger(__name__)


class AuthManager:
    """Owns the login/logout writes to the credential store.

    Token refresh itself belongs to the client's refresh coordinator; this
    class only exposes a forced refresh for the CLI.
    """

    def __init__(self, config: Config, client: WealthifyClient) -> None:
        self._config = config
        self._client = client

    async def login(self, email: str, password: str) -> LoginResponse:
        """Exchange email/password for a token pair and persist it.

        Raises:
            ApiError: Bad credentials (401/400) or the backend is unreachable.
        """
        body = await self._client.post(
            self._config.settings.login_path,
            json={"email": email, "password": password},
            authenticate=False,
            retry=False,
        )
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]

        try:
            login = LoginResponse.model_validate(body)
        except ValidationError as e:
            raise ApiError(
                ClassifiedError(kind=ErrorKind.UNKNOWN, message=f"Malformed login response: {e}")
            ) from e

        self._client.store.set(
            Credentials(
                access_token=login.access_token,
                refresh_token=login.refresh_token,
                profile=login.user,
            )
        )
        logger.info("Logged in")
        return login

    async def logout(self) -> None:
        """Tell the backend to invalidate the refresh token, then clear local credentials.

        The local credentials are cleared even if the backend call fails.
        """
        credentials = self._client.store.get()
        if credentials is None:
            return
        try:
            await self._client.post(
                self._config.settings.logout_path,
                json={"refreshToken": credentials.refresh_token},
                retry=False,
            )
        except ApiError as e:
            logger.warning(f"Backend logout failed, clearing local session anyway: {e}")
        finally:
            self._client.store.clear()

    def status(self) -> SessionStatus:
        """Get the current session status."""
        credentials = self._client.store.get()
        if credentials is None:
            return SessionStatus(authenticated=False)
        return SessionStatus(
            authenticated=True,
            has_profile=credentials.profile is not None,
            profile=credentials.profile,
        )

    async def refresh(self) -> SessionStatus:
        """Force a token refresh and return the resulting status."""
        await self._client.refresh_token()
        return self.status()
