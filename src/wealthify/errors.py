"""Error taxonomy and the transport-outcome classifier.

``classify`` is a pure function: the same status and payload always yield an
equal ``ClassifiedError``. The refresh coordinator and retry executor branch
on its ``kind`` and ``retryable`` fields; only the client facade turns a
final failure into an ``ApiError`` exception.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    NETWORK = "network"
    UNAUTHORIZED = "unauthorized"
    CLIENT_ERROR = "client_error"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


class ClassifiedError(BaseModel):
    """Typed, retry-aware description of a failed call. Never persisted."""
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    http_status: int | None = None
    retryable: bool = False
    validation_details: dict[str, list[str]] | None = None
    code: str | None = None


# Fallback messages when the backend payload carries none
_DEFAULT_MESSAGES: dict[int, str] = {
    400: "Invalid request. Please check your input.",
    401: "Authentication required. Please log in again.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    409: "A conflict occurred. The resource may already exist.",
    422: "Validation failed. Please check your input.",
    429: "Too many requests. Please try again later.",
    500: "An internal server error occurred. Please try again.",
}
_NETWORK_MESSAGE = "Network error. Please check your connection."
_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."

_CLIENT_ERROR_STATUSES = frozenset({400, 403, 404, 409})


def _payload_message(payload: Any) -> str | None:
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def _payload_code(payload: Any) -> str | None:
    if isinstance(payload, dict) and payload.get("code") is not None:
        return str(payload["code"])
    return None


def extract_validation_details(payload: Any) -> dict[str, list[str]] | None:
    """Pull a field -> messages map out of an error payload's ``errors`` entry.

    Single string values are wrapped in a list; anything that is not a
    mapping yields None.
    """
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if not isinstance(errors, dict) or not errors:
        return None

    details: dict[str, list[str]] = {}
    for field, messages in errors.items():
        if isinstance(messages, (list, tuple)):
            details[str(field)] = [str(m) for m in messages]
        elif messages is not None:
            details[str(field)] = [str(messages)]
    return details or None


def classify(status: int | None, payload: Any = None, *, message: str | None = None) -> ClassifiedError:
    """Map a transport outcome to a ClassifiedError.

    Args:
        status: HTTP status, or None when no response was received.
        payload: Decoded response body, if any.
        message: Transport-level message used when the payload has none.
    """
    if status is None:
        return ClassifiedError(
            kind=ErrorKind.NETWORK,
            message=message or _NETWORK_MESSAGE,
            http_status=None,
            retryable=True,
        )

    details = extract_validation_details(payload)
    text = _payload_message(payload) or _DEFAULT_MESSAGES.get(status)
    code = _payload_code(payload)

    if status == 401:
        kind, retryable = ErrorKind.UNAUTHORIZED, False
    elif status == 422 or (status == 400 and details):
        kind, retryable = ErrorKind.VALIDATION, False
    elif status in _CLIENT_ERROR_STATUSES:
        kind, retryable = ErrorKind.CLIENT_ERROR, False
    elif status == 429:
        kind, retryable = ErrorKind.RATE_LIMITED, True
    elif 500 <= status < 600:
        kind, retryable = ErrorKind.SERVER_ERROR, True
        if text is None and status in (502, 503, 504):
            text = _UNAVAILABLE_MESSAGE
    else:
        kind, retryable = ErrorKind.UNKNOWN, status >= 500

    return ClassifiedError(
        kind=kind,
        message=text or message or f"An error occurred ({status})",
        http_status=status,
        retryable=retryable,
        validation_details=details,
        code=code,
    )


def classify_response(response: httpx.Response) -> ClassifiedError:
    """Classify a non-2xx response, decoding its JSON body when possible."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    return classify(response.status_code, payload, message=response.text or None)


def classify_transport_error(error: httpx.TransportError) -> ClassifiedError:
    """Classify a request that never got a response (connect failure, timeout)."""
    if isinstance(error, httpx.TimeoutException):
        return classify(None, message=f"Request timed out: {error}")
    return classify(None)


class ApiError(Exception):
    """A classified failure surfaced to the caller."""

    def __init__(self, error: ClassifiedError) -> None:
        self.error = error
        status = f"HTTP {error.http_status}" if error.http_status is not None else "no response"
        super().__init__(f"API error ({status}): {error.message}")

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def status_code(self) -> int | None:
        return self.error.http_status

    @property
    def retryable(self) -> bool:
        return self.error.retryable

    @property
    def validation_details(self) -> dict[str, list[str]] | None:
        return self.error.validation_details


class SessionExpiredError(ApiError):
    """The refresh exchange failed; credentials have been cleared."""

    def __init__(self, reason: str, http_status: int | None = None) -> None:
        super().__init__(
            ClassifiedError(
                kind=ErrorKind.UNAUTHORIZED,
                message=f"Session expired: {reason}",
                http_status=http_status,
                retryable=False,
            )
        )
