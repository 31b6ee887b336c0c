"""Outgoing request interceptor: bearer token and request metadata."""

from __future__ import annotations

import logging

import httpx

from wealthify.credentials import CredentialStore
from wealthify.models.api import RequestContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestInterceptor:
    """Stamps outbound requests with the current access token and a RequestContext.

    Never blocks and never fails: without a stored token the request goes out
    unauthenticated and the backend's 401 is handled downstream.
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def current_token(self) -> str | None:
        credentials = self._store.get()
        return credentials.access_token if credentials else None

    def prepare(
        self,
        request: httpx.Request,
        context: RequestContext | None = None,
        token: str | None = None,
        authenticate: bool = True,
    ) -> tuple[httpx.Request, RequestContext]:
        """Attach auth and metadata headers to ``request``.

        Args:
            request: The request about to be sent. Mutated in place.
            context: Existing context for a reissued call; a fresh one is created if None.
            token: Explicit access token (e.g. from a refresh); defaults to the stored one.
            authenticate: Attach the bearer token. When False the request still gets
                its request id but never an Authorization header.

        Returns:
            The request and its context.
        """
        if context is None:
            context = RequestContext()

        token = (token or self.current_token()) if authenticate else None
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            request.headers.pop("Authorization", None)
        request.headers[REQUEST_ID_HEADER] = context.id

        logger.debug(
            f"[{context.id}] {request.method} {request.url} "
            f"(retry={context.retry_count}, after_auth={context.marked_for_retry_after_auth})"
        )
        return request, context

    @staticmethod
    def sent_token(request: httpx.Request) -> str | None:
        """Return the bearer token a request was sent with, if any."""
        value = request.headers.get("Authorization", "")
        if value.startswith("Bearer "):
            return value[len("Bearer "):]
        return None
