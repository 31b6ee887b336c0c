"""Bounded retry with exponential backoff for transient failures."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from wealthify.errors import ClassifiedError
from wealthify.models.api import RequestContext

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """Result of one dispatch: a successful response or a classified error."""
    response: httpx.Response | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RetryExecutor:
    """Re-runs an operation while it fails with a retryable ClassifiedError.

    Attempts are strictly sequential. The delay before retry ``n`` (0-based)
    is ``base_delay * 2**n`` with no jitter, so the defaults wait 1s, 2s, 4s.
    Non-retryable errors (including 401, which the refresh coordinator owns)
    are returned after the first attempt.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def run(
        self,
        operation: Callable[[], Awaitable[Outcome]],
        context: RequestContext | None = None,
    ) -> Outcome:
        """Run ``operation`` until it succeeds, fails permanently, or retries run out.

        Returns:
            The last Outcome; its ``error`` is set if every attempt failed.
        """
        attempt = 0
        while True:
            if context is not None:
                context.retry_count = attempt
            outcome = await operation()
            if outcome.ok or not outcome.error.retryable:
                return outcome

            if attempt >= self._max_retries:
                logger.warning(
                    f"Giving up after {attempt + 1} attempts: {outcome.error.kind.value} "
                    f"({outcome.error.message})"
                )
                return outcome

            wait = self._backoff(attempt)
            status = outcome.error.http_status
            label = f"HTTP {status}" if status is not None else outcome.error.kind.value
            logger.warning(f"{label} on attempt {attempt + 1}. Retrying in {wait:.1f}s...")
            await self._sleep(wait)
            attempt += 1

    def _backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        return self._base_delay * (2 ** attempt)
