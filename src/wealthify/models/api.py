"""Wire and bookkeeping models shared by the HTTP layer."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


class ApiEnvelope(BaseModel):
    """Standard success body: ``{success, message, data, pagination, timestamp}``."""
    success: bool = True
    message: str | None = None
    data: Any = None
    pagination: dict[str, Any] | None = None
    timestamp: str | None = None


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class RequestContext:
    """Per-call metadata attached to every outbound request.

    ``marked_for_retry_after_auth`` is set once a call has been reissued after
    a token refresh; a second 401 is then surfaced instead of refreshing again.
    """
    id: str = field(default_factory=_new_request_id)
    started_at: float = field(default_factory=time.monotonic)
    retry_count: int = 0
    marked_for_retry_after_auth: bool = False

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000
