"""Retry policy for Discourse API calls: Tenacity-based exponential backoff.

Only rate limiting (429) and server errors (5xx) are retried. Everything else
is terminal for the call:

- other 4xx responses are caller mistakes and will not improve on retry
- timeouts abort the whole logical call
- network errors (DNS/TLS/connection) are surfaced immediately

Delays start at 250ms and double per retry (250, 500, 1000, ...).

Example:
    >>> policy = create_retry_policy(max_attempts=3)
    >>> async for attempt in policy:
    ...     with attempt:
    ...         data = await send()
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from discourse_mcp.http.errors import HttpStatusError
from discourse_mcp.utils.logger import http_logger

DEFAULT_MAX_ATTEMPTS = 3
INITIAL_DELAY_SECONDS = 0.25

Sleep = Callable[[float], Awaitable[None]]


def is_retryable(exc: BaseException) -> bool:
    """Retry on 429 (rate-limit) or 5xx (server error) only."""
    return isinstance(exc, HttpStatusError) and exc.retryable


def _log_retry(method: str, url: str, max_attempts: int):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        cause = getattr(exc, "status", None) or type(exc).__name__
        next_action = retry_state.next_action
        delay_ms = int((next_action.sleep if next_action else 0) * 1000)
        http_logger.info(
            f"Retrying {method} {url} (attempt {retry_state.attempt_number}/{max_attempts - 1}) "
            f"after {delay_ms}ms due to {cause}",
            method=method,
            url=url,
            attempt=retry_state.attempt_number,
            delay_ms=delay_ms,
            cause=cause,
        )

    return before_sleep


def create_retry_policy(
    method: str,
    url: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    sleep: Sleep | None = None,
) -> AsyncRetrying:
    """Create the Tenacity policy for one logical request.

    ``max_attempts`` counts the first try; ``1`` disables retries (multipart
    uploads, whose body cannot be replayed).
    """
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=INITIAL_DELAY_SECONDS, exp_base=2, min=0),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(method, url, max_attempts),
        # Re-raise the last HttpStatusError instead of wrapping it in RetryError
        reraise=True,
        **kwargs,
    )
