"""Retry logic for rate-limited requests.

Only rate-limit responses are retried; the delay comes from the server's
Retry-After header when present, otherwise from a fixed schedule.

Retryable:
- 429 Too Many Requests

Returned to the caller as-is (not retried):
- Every other status, 2xx through 5xx
- Network errors, timeouts and cancellation (raised, not retried)
"""

import logging
import threading
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Sequence

import httpx

from bunnystorage.errors import Cancelled
from bunnystorage.ratelimit import wait

logger = logging.getLogger(__name__)

# HTTP status codes that mean "slow down"
RATE_LIMIT_STATUS_CODES = {429}

# Used when the server does not advertise a delay
DEFAULT_DELAYS = (0.5, 1.0, 2.0)


def is_rate_limited(response: httpx.Response) -> bool:
    """Return True if the response asks the client to back off."""
    return response.status_code in RATE_LIMIT_STATUS_CODES


def parse_retry_after(
    value: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[float]:
    """Parse a Retry-After header value.

    Args:
        value: Either delta-seconds ("120") or an HTTP date.
        now: Reference time for HTTP dates (defaults to current UTC time).

    Returns:
        Seconds to wait (never negative), or None if the value is missing
        or unparseable.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        return max(float(value), 0.0)
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    if now is None:
        now = datetime.now(timezone.utc)
    return max((when - now).total_seconds(), 0.0)


def retry_delay(
    response: httpx.Response,
    retry_number: int,
    delays: Sequence[float] = DEFAULT_DELAYS,
) -> float:
    """Work out how long to wait before retrying ``response``.

    Args:
        response: The rate-limited response.
        retry_number: 1 for the first retry, 2 for the second, etc.
        delays: Fallback schedule when no Retry-After is advertised.
                delays[0] is used before the first retry, etc.
    """
    advertised = parse_retry_after(response.headers.get("Retry-After"))
    if advertised is not None:
        return advertised

    delay_index = min(retry_number - 1, len(delays) - 1)
    return delays[delay_index]


def retry_on_rate_limit(
    send: Callable[[], httpx.Response],
    max_retries: int,
    delays: Sequence[float] = DEFAULT_DELAYS,
    max_delay: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    can_retry: Callable[[], bool] = lambda: True,
) -> httpx.Response:
    """Send a request, retrying while the server rate-limits it.

    Args:
        send: Performs one attempt and returns its response.
        max_retries: Maximum number of retries after the first attempt.
        delays: Fallback delay schedule (see :func:`retry_delay`).
        max_delay: Give up instead of waiting longer than this.
        cancel: Event that aborts a retry wait when set.
        can_retry: Called before each retry; returning False stops retrying
                   (e.g. when the request body cannot be replayed).

    Returns:
        The first response that is not rate-limited, or the last
        rate-limited response once retrying stops.

    Raises:
        Cancelled: If ``cancel`` is set while waiting to retry. The
                   rate-limited response is attached to the error.
        Exception: Whatever ``send`` raises, immediately.
    """
    response = send()

    for retry_number in range(1, max_retries + 1):
        if not is_rate_limited(response):
            return response

        delay = retry_delay(response, retry_number, delays)
        if max_delay is not None and delay > max_delay:
            logger.debug(
                "Not retrying %s %s: Retry-After %.1fs exceeds %.1fs",
                response.request.method, response.request.url, delay, max_delay,
            )
            return response

        if not can_retry():
            logger.debug(
                "Not retrying %s %s: request body cannot be replayed",
                response.request.method, response.request.url,
            )
            return response

        logger.debug(
            "Rate limited on %s %s, retry %d/%d in %.2fs",
            response.request.method, response.request.url,
            retry_number, max_retries, delay,
        )
        response.close()
        try:
            wait(delay, cancel)
        except Cancelled as e:
            e.response = response
            raise
        response = send()

    return response
