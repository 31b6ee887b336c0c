"""Async HTTP client for the Wealthify backend.

Composes the request interceptor, refresh coordinator and retry executor
into a single call path:

    caller -> interceptor -> transport -> classify
        -> 401: refresh coordinator, reissue once
        -> transient: retry executor with exponential backoff
        -> otherwise: ApiError to the caller
"""

from __future__ import annotations

import asyncio
import json as jsonlib
import logging
from pathlib import Path
from typing import IO, Any, Awaitable, Callable

import httpx

from wealthify.config import Config
from wealthify.credentials import CredentialStore, FileCredentialStore
from wealthify.errors import ApiError, ErrorKind, classify_response, classify_transport_error
from wealthify.interceptor import RequestInterceptor
from wealthify.models.api import RequestContext
from wealthify.refresh import RefreshCoordinator
from wealthify.retry import Outcome, RetryExecutor

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Accept": "application/json"}
UPLOAD_CHUNK_SIZE = 64 * 1024
DEFAULT_PAGE_SIZE = 20

RequestFactory = Callable[[], httpx.Request]


def _decode(response: httpx.Response) -> Any:
    """Return the JSON body, the text body, or None for an empty response."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _form_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return jsonlib.dumps(value, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _with_upload_progress(request: httpx.Request, progress: Callable[[float], None]) -> httpx.Request:
    """Re-wrap an encoded multipart request so its body reports progress as it streams."""
    body = request.read()
    total = len(body)

    async def chunks():
        if not total:
            progress(1.0)
            return
        sent = 0
        for start in range(0, total, UPLOAD_CHUNK_SIZE):
            chunk = body[start:start + UPLOAD_CHUNK_SIZE]
            sent += len(chunk)
            progress(sent / total)
            yield chunk

    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers.copy(),
        content=chunks(),
        extensions=request.extensions,
    )


class WealthifyClient:
    """Authenticated HTTP facade with single-flight refresh and retry handling."""

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        *,
        on_session_expired: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        settings = config.settings
        self._config = config
        self._store = store
        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout,
            headers=DEFAULT_HEADERS,
            transport=transport,
        )
        self._interceptor = RequestInterceptor(store)
        self._coordinator = RefreshCoordinator(
            store,
            self._http,
            refresh_path=settings.refresh_path,
            on_session_expired=on_session_expired,
        )
        self._retry = RetryExecutor(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay,
            sleep=sleep,
        )

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        progress: Callable[[float], None] | None = None,
        retry: bool = True,
        authenticate: bool = True,
    ) -> httpx.Response:
        """Make an API request through the full interceptor/refresh/retry pipeline.

        Args:
            method: HTTP method.
            path: Path relative to the configured base URL.
            json: JSON request body.
            params: Query parameters.
            headers: Additional headers.
            files: Multipart files (httpx ``files=`` form).
            data: Multipart form fields sent alongside ``files``.
            progress: Upload progress callback receiving a fraction in [0, 1].
            retry: Apply the retry executor to transient failures.
            authenticate: Attach the bearer token and handle 401 via refresh.
                Disabled for login, where a 401 means bad credentials.

        Returns:
            The successful httpx.Response.

        Raises:
            ApiError: The call failed with a non-retryable error or retries ran out.
            SessionExpiredError: A 401 could not be resolved by refreshing.
        """
        def build() -> httpx.Request:
            request = self._http.build_request(
                method.upper(), path, json=json, params=params, headers=headers, files=files, data=data,
            )
            if progress is not None:
                request = _with_upload_progress(request, progress)
            return request

        context = RequestContext()

        async def attempt() -> Outcome:
            if authenticate:
                return await self._dispatch(build, context)
            request, _ = self._interceptor.prepare(build(), context, authenticate=False)
            return await self._transmit(request, context)

        outcome = await self._retry.run(attempt, context) if retry else await attempt()
        if not outcome.ok:
            raise ApiError(outcome.error)
        return outcome.response

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Make a request and return the decoded body."""
        response = await self.send(method, path, **kwargs)
        return _decode(response)

    async def get(self, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """Convenience method for GET requests."""
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        """Convenience method for POST requests."""
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        """Convenience method for PUT requests."""
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        """Convenience method for PATCH requests."""
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        """Convenience method for DELETE requests."""
        return await self.request("DELETE", path, **kwargs)

    async def upload_file(
        self,
        path: str,
        file: str | Path | bytes | IO[bytes],
        *,
        filename: str | None = None,
        fields: dict[str, Any] | None = None,
        progress: Callable[[float], None] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Upload a file as multipart/form-data under the ``file`` field.

        The file is read into memory once so retries and post-refresh reissues
        resend identical bytes.

        Args:
            path: Upload endpoint.
            file: Filesystem path, raw bytes, or a binary file object.
            filename: Name reported to the server; inferred when possible.
            fields: Extra form fields. Nested values are sent as JSON strings.
            progress: Callback receiving the fraction of the body sent.
        """
        if isinstance(file, (str, Path)):
            file_path = Path(file)
            content = file_path.read_bytes()
            filename = filename or file_path.name
        elif isinstance(file, bytes):
            content = file
        else:
            content = file.read()
            filename = filename or Path(getattr(file, "name", "") or "upload").name
        filename = filename or "upload"

        data = {key: _form_value(value) for key, value in (fields or {}).items()}
        return await self.request(
            "POST",
            path,
            files={"file": (filename, content)},
            data=data or None,
            progress=progress,
            **kwargs,
        )

    async def get_paginated(
        self,
        path: str,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET a paginated collection using the backend's page/pageSize parameters."""
        query = {"page": page, "pageSize": page_size, **(params or {})}
        return await self.get(path, params=query)

    async def health_check(self) -> Any:
        """Query the backend health endpoint."""
        return await self.get(self._config.settings.health_path)

    async def refresh_token(self) -> str:
        """Force a refresh exchange (joining one already in flight)."""
        return await self._coordinator.refresh(self._interceptor.current_token())

    async def _dispatch(self, build: RequestFactory, context: RequestContext) -> Outcome:
        """Send once, resolving a first 401 through the refresh coordinator."""
        request, _ = self._interceptor.prepare(build(), context)
        outcome = await self._transmit(request, context)
        if outcome.ok or outcome.error.kind is not ErrorKind.UNAUTHORIZED:
            return outcome

        if context.marked_for_retry_after_auth:
            logger.warning(f"[{context.id}] Still unauthorized after token refresh")
            return outcome

        token = await self._coordinator.refresh(self._interceptor.sent_token(request))
        context.marked_for_retry_after_auth = True
        request, _ = self._interceptor.prepare(build(), context, token=token)
        return await self._transmit(request, context)

    async def _transmit(self, request: httpx.Request, context: RequestContext) -> Outcome:
        try:
            response = await self._http.send(request)
        except httpx.TransportError as e:
            logger.warning(f"[{context.id}] {request.method} {request.url.path} failed: {e!r}")
            return Outcome(error=classify_transport_error(e))

        logger.debug(
            f"[{context.id}] {response.status_code} {request.method} {request.url.path} "
            f"({context.elapsed_ms:.0f}ms)"
        )
        if response.is_success:
            return Outcome(response=response)
        return Outcome(response=response, error=classify_response(response))

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> WealthifyClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_client(
    config: Config,
    on_session_expired: Callable[[], None] | None = None,
) -> WealthifyClient:
    """Build a client backed by the configured credentials file."""
    store = FileCredentialStore(config.credentials_file)
    return WealthifyClient(config, store, on_session_expired=on_session_expired)
