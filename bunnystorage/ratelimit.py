"""Client-side token bucket rate limiter.

Every request attempt takes one token. Tokens refill continuously at
``rate`` per second up to ``burst``. When the bucket is empty a caller
reserves the next token and waits until it is due, so concurrent callers
are spaced out rather than all woken at once.
"""

import threading
import time
from typing import Callable, Optional

from bunnystorage.errors import Cancelled, RequestTimeout

DEFAULT_RATE = 50.0
DEFAULT_BURST = 100


def wait(delay: float, cancel: Optional[threading.Event] = None) -> None:
    """Sleep for ``delay`` seconds, waking early if ``cancel`` is set.

    Raises:
        Cancelled: If the cancel event is set before or during the wait.
    """
    if cancel is None:
        if delay > 0:
            time.sleep(delay)
        return

    if cancel.is_set() or cancel.wait(max(delay, 0.0)):
        raise Cancelled("operation cancelled")


class TokenBucket:
    """Thread-safe token bucket.

    Args:
        rate: Tokens added per second.
        burst: Bucket capacity; the bucket starts full.
        clock: Monotonic clock, in seconds.
    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        burst: int = DEFAULT_BURST,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")

        self.rate = float(rate)
        self.burst = burst
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = float(burst)
        self._updated = clock()

    def _refill(self, now: float) -> None:
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._updated = now

    def reserve(self) -> float:
        """Take one token and return how long to wait before using it.

        The token count may go negative; that debt is what spaces out
        callers waiting on an empty bucket.
        """
        with self._lock:
            now = self._clock()
            self._refill(now)
            self._tokens -= 1.0
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    def cancel_reservation(self) -> None:
        """Give back a token taken by :meth:`reserve` but never used."""
        with self._lock:
            self._refill(self._clock())
            self._tokens = min(float(self.burst), self._tokens + 1.0)

    def acquire(
        self,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> float:
        """Block until a token is available.

        Args:
            cancel: Event that aborts the wait when set.
            deadline: Monotonic time after which the wait is abandoned.

        Returns:
            Seconds spent waiting.

        Raises:
            Cancelled: If ``cancel`` is set before the token is due.
            RequestTimeout: If the token would only be due after ``deadline``.
        """
        if cancel is not None and cancel.is_set():
            raise Cancelled("operation cancelled")

        delay = self.reserve()
        if delay <= 0:
            return 0.0

        if deadline is not None and self._clock() + delay > deadline:
            self.cancel_reservation()
            raise RequestTimeout(
                f"rate limiter wait of {delay:.3f}s exceeds the request deadline"
            )

        try:
            wait(delay, cancel)
        except Cancelled:
            self.cancel_reservation()
            raise
        return delay
