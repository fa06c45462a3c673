"""tenacity policy for feed requests.

Connection failures, timeouts, 429 and 5xx are retried; any other error
status surfaces immediately. LLM calls are not covered: a post whose
analysis fails stays pending until the next run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .logging_config import get_logger

logger = get_logger(__name__)

FEED_ATTEMPTS = 3
MAX_RETRY_AFTER = 60.0


class TransientHTTPError(Exception):
    """A feed response worth another attempt (429 or 5xx)."""

    def __init__(self, message: str, status_code: int, retry_after: float | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class RateLimitError(TransientHTTPError):
    """429 from the upstream, carrying its Retry-After when present."""


RETRYABLE = (httpx.TransportError, TransientHTTPError)


def retry_after_seconds(response: httpx.Response) -> float | None:
    """Read Retry-After as seconds; accepts delta-seconds or an HTTP date."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    if value.strip().isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def raise_for_feed_status(response: httpx.Response) -> None:
    """Turn a feed response into the matching retryable or terminal error."""
    status = response.status_code
    if status == 429:
        raise RateLimitError("Rate limited (429)", status, retry_after_seconds(response))
    if status >= 500:
        raise TransientHTTPError(f"Server error ({status})", status)
    response.raise_for_status()


_backoff = wait_exponential_jitter(initial=1, max=30, jitter=2)


def _wait(retry_state: RetryCallState) -> float:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(error, RateLimitError) and error.retry_after is not None:
        return min(error.retry_after, MAX_RETRY_AFTER)
    return _backoff(retry_state)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "feed_retry",
        fn=getattr(retry_state.fn, "__name__", None),
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else 0,
        error=str(error)[:100] if error else None,
    )


http_retry = retry(
    reraise=True,
    stop=stop_after_attempt(FEED_ATTEMPTS),
    wait=_wait,
    retry=retry_if_exception_type(RETRYABLE),
    before_sleep=_log_retry,
)
