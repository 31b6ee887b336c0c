"""Single-flight token refresh.

When many requests discover an expired access token at once, only the first
one performs the refresh exchange. Everyone else waits on a future in a FIFO
queue and is released, in arrival order, with the new token (or with the
refresh failure).

All state lives on the coordinator instance and is only touched between
suspension points of a single event loop, so the check-then-set of
``_in_flight`` and the enqueue cannot interleave with another caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable

import httpx
from pydantic import ValidationError

from wealthify.credentials import CredentialStore
from wealthify.errors import SessionExpiredError, classify_response
from wealthify.models.auth import Credentials, TokenPair

logger = logging.getLogger(__name__)


def parse_token_pair(body: object) -> TokenPair:
    """Read a token pair from a refresh/login body, bare or wrapped in ``data``."""
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        body = body["data"]
    return TokenPair.model_validate(body)


class RefreshCoordinator:
    """Coordinates the refresh-token exchange across concurrent requests.

    States: idle (``in_flight`` False), refreshing (``in_flight`` True,
    queue may grow), and a synchronous drain on completion.
    """

    def __init__(
        self,
        store: CredentialStore,
        http: httpx.AsyncClient,
        refresh_path: str = "/auth/refresh-token",
        on_session_expired: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._http = http
        self._refresh_path = refresh_path
        self._on_session_expired = on_session_expired
        self._in_flight = False
        self._queue: deque[asyncio.Future[str]] = deque()
        self.refresh_count = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def queued(self) -> int:
        return len(self._queue)

    async def refresh(self, stale_token: str | None = None) -> str:
        """Return a fresh access token, joining an in-flight refresh if there is one.

        Args:
            stale_token: The token the failed request was sent with. If the store
                already holds a different token, a refresh has completed since
                that request went out and the stored token is returned as-is.

        Raises:
            SessionExpiredError: The refresh exchange failed. Credentials are
                cleared and, if a session was stored, the session-expired
                callback has been invoked.
        """
        if self._in_flight:
            future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            self._queue.append(future)
            logger.debug(f"Refresh in flight, queued request (position {len(self._queue)})")
            return await future

        credentials = self._store.get()
        if credentials is not None and credentials.access_token != stale_token:
            logger.debug("Access token already refreshed, reusing stored token")
            return credentials.access_token

        self._in_flight = True
        self.refresh_count += 1
        logger.info("Access token rejected, refreshing...")
        try:
            pair = await self._exchange(credentials)
            self._save(pair, credentials)
        except SessionExpiredError as e:
            self._fail(e, notify=credentials is not None)
            raise
        except BaseException:
            self._in_flight = False
            self._reject_waiters(SessionExpiredError("refresh interrupted"))
            raise

        self._succeed(pair.access_token)
        return pair.access_token

    async def _exchange(self, credentials: Credentials | None) -> TokenPair:
        """Perform the single refresh round-trip against the backend."""
        if credentials is None:
            raise SessionExpiredError("no refresh token available")

        try:
            response = await self._http.post(
                self._refresh_path,
                json={"refreshToken": credentials.refresh_token},
            )
        except httpx.TransportError as e:
            raise SessionExpiredError(f"refresh request failed: {e}") from e

        if not response.is_success:
            error = classify_response(response)
            raise SessionExpiredError(
                f"refresh rejected (HTTP {response.status_code}): {error.message}",
                http_status=response.status_code,
            )

        try:
            return parse_token_pair(response.json())
        except (ValueError, ValidationError) as e:
            raise SessionExpiredError("malformed refresh response") from e

    def _save(self, pair: TokenPair, previous: Credentials | None) -> None:
        try:
            self._store.set(
                Credentials(
                    access_token=pair.access_token,
                    refresh_token=pair.refresh_token,
                    profile=previous.profile if previous else None,
                )
            )
        except OSError as e:
            raise SessionExpiredError(f"could not store refreshed credentials: {e}") from e

    def _succeed(self, access_token: str) -> None:
        self._in_flight = False
        waiters, self._queue = self._queue, deque()
        logger.info(f"Token refreshed, releasing {len(waiters)} queued request(s)")
        for future in waiters:
            if not future.done():
                future.set_result(access_token)

    def _fail(self, error: SessionExpiredError, notify: bool = True) -> None:
        """End the session. Waiters are released before the store is touched.

        ``notify`` is False when nothing was stored before this attempt, so a
        late 401 after the session already ended does not signal it twice.
        """
        self._in_flight = False
        self._reject_waiters(error)
        try:
            self._store.clear()
        except OSError as e:
            logger.warning(f"Could not clear stored credentials: {e}")
        logger.warning(f"{error}. Credentials cleared.")
        if notify and self._on_session_expired is not None:
            self._on_session_expired()

    def _reject_waiters(self, error: BaseException) -> None:
        waiters, self._queue = self._queue, deque()
        for future in waiters:
            if not future.done():
                future.set_exception(error)
