# ABOUTME: Download retry policy using tenacity library
# ABOUTME: Classifies HTTP failures as transient or permanent and retries only the transient ones

import asyncio
from collections.abc import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lore_scribe.errors import NetworkError, NetworkPermanentError, NetworkTransientError
from lore_scribe.utils.logging import get_logger

logger = get_logger(__name__)

# Client errors that still deserve another attempt
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})

SleepFunc = Callable[[float], Awaitable[None]]


def classify_status(status_code: int, url: str = "") -> NetworkError:
    """Convert a failing HTTP status into the matching network error."""
    reason = httpx.codes.get_reason_phrase(status_code) or "Unknown"
    message = f"HTTP {status_code} ({reason}) for {url}" if url else f"HTTP {status_code} ({reason})"

    if status_code >= 500 or status_code in RETRYABLE_CLIENT_STATUSES:
        return NetworkTransientError(message, status_code=status_code)
    return NetworkPermanentError(message, status_code=status_code)


def convert_transport_error(e: httpx.TransportError, url: str = "") -> NetworkTransientError:
    """Timeouts and connection failures are always transient."""
    label = "Timeout" if isinstance(e, httpx.TimeoutException) else "Network"
    return NetworkTransientError(f"{label} error for {url}: {e}")


def convert_request_error(e: httpx.HTTPError | httpx.InvalidURL, url: str = "") -> NetworkPermanentError:
    """Redirect loops, undecodable bodies and malformed URLs fail the same way on every attempt."""
    return NetworkPermanentError(f"{type(e).__name__} for {url}: {e}")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Transient download failure, retrying",
        attempt=retry_state.attempt_number,
        delay_seconds=delay,
        error=str(exception) if exception else None,
    )


def download_retrying(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    sleep: SleepFunc = asyncio.sleep,
) -> AsyncRetrying:
    """Build the retry controller for one download.

    Delays double from ``base_delay`` (1s, 2s, 4s, ...) and only
    NetworkTransientError is retried; anything else is raised on first occurrence.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(NetworkTransientError),
        before_sleep=_log_before_sleep,
        sleep=sleep,
        reraise=True,
    )
