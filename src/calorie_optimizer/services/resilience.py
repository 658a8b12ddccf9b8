"""Retry with exponential backoff for upstream calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import httpx

from calorie_optimizer.domain.errors import (
    CompletionTimeoutError,
    MalformedOutputError,
    RateLimitError,
    UpstreamError,
)
from calorie_optimizer.services.events import EventBus

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_TOO_MANY_REQUESTS = 429
_SERVER_ERROR = 500


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth another attempt."""
    if isinstance(exc, UpstreamError):
        return exc.status == _TOO_MANY_REQUESTS or exc.status >= _SERVER_ERROR
    return isinstance(
        exc,
        httpx.TransportError
        | RateLimitError
        | CompletionTimeoutError
        | MalformedOutputError
        | asyncio.TimeoutError,
    )


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a call and how long to wait in between."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 60000
    is_retryable: Callable[[BaseException], bool] = field(default=is_transient)

    def delay_ms(self, retry_number: int) -> int:
        """Return the wait before retry ``retry_number`` (1-based)."""
        return min(self.base_delay_ms * 2 ** (retry_number - 1), self.max_delay_ms)


async def call_with_retry(
    func: Callable[[], Awaitable[_T]],
    *,
    action: str,
    policy: RetryPolicy,
    events: EventBus | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> _T:
    """Call an async function, retrying transient failures.

    The last error is re-raised unchanged once attempts run out or the error
    is not retryable.
    """
    attempt = 0
    while True:
        attempt += 1
        if events is not None:
            events.emit("attempt", action=action, attempt=attempt)
        try:
            result = await func()
        except Exception as exc:
            retryable = policy.is_retryable(exc)
            _logger.warning(
                "%s failed (attempt %s/%s): %s",
                action,
                attempt,
                policy.max_attempts,
                exc,
            )
            if not retryable or attempt >= policy.max_attempts:
                if events is not None:
                    events.emit(
                        "failure",
                        action=action,
                        attempt=attempt,
                        error=_short_error(exc),
                    )
                raise
            delay_ms = policy.delay_ms(attempt)
            if events is not None:
                events.emit(
                    "retry",
                    action=action,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    delay_ms=delay_ms,
                    error=_short_error(exc),
                )
            await sleep(delay_ms / 1000)
        else:
            if events is not None:
                events.emit("success", action=action, attempt=attempt)
            return result


def _short_error(exc: BaseException) -> str:
    """Collapse an error message to a single short line."""
    message = " ".join(str(exc).split()) or type(exc).__name__
    return message[:100]
