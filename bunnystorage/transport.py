"""Transport policy wrapped around every request the client makes.

Handles the complete life of one logical request:
- Take a token from the shared rate limiter
- Send the attempt with a fresh deadline of ``config.timeout`` seconds
- Read the response body, checking for cancellation and the deadline
- Retry rate-limited responses (see bunnystorage.retry)
- Trace requests and responses when debugging
"""

import io
import logging
import threading
import time
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

import httpx

from bunnystorage.config import Config
from bunnystorage.errors import Cancelled, RequestTimeout, TransportError
from bunnystorage.ratelimit import TokenBucket
from bunnystorage.retry import DEFAULT_DELAYS, retry_on_rate_limit

logger = logging.getLogger(__name__)

# Upload bodies are streamed in chunks of this size
CHUNK_SIZE = 64 * 1024

# httpx timeout floor for an attempt whose window is already used up
MIN_TIMEOUT = 0.001

# Headers never written to the debug trace
REDACTED_HEADERS = {"accesskey"}


def _check(
    cancel: Optional[threading.Event],
    deadline: Optional[float],
    clock: Callable[[], float],
) -> None:
    if cancel is not None and cancel.is_set():
        raise Cancelled("operation cancelled")
    if deadline is not None and clock() > deadline:
        raise RequestTimeout("request deadline exceeded")


class GuardedStream(httpx.SyncByteStream):
    """Response stream that stops when the call is cancelled or times out."""

    def __init__(
        self,
        stream: Any,
        cancel: Optional[threading.Event],
        deadline: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._stream = stream
        self._cancel = cancel
        self._deadline = deadline
        self._clock = clock

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            _check(self._cancel, self._deadline, self._clock)
            yield chunk

    def close(self) -> None:
        self._stream.close()


class RequestBody:
    """An upload body that can be sent, and replayed when possible.

    ``bytes``, ``str`` and seekable binary files are replayable: files are
    rewound to where they were when the request started. Any other
    iterable of bytes is sent once.
    """

    def __init__(self, body: Any = None):
        self._iterable: Optional[Iterable[bytes]] = None
        self._stream: Optional[Any] = None
        self._start = 0
        self._length: Optional[int] = None
        self._sent = False

        if body is None:
            return

        if isinstance(body, str):
            body = body.encode("utf-8")
        if isinstance(body, (bytes, bytearray, memoryview)):
            body = io.BytesIO(bytes(body))

        if hasattr(body, "read"):
            self._stream = body
            if _seekable(body):
                self._start = body.tell()
                end = body.seek(0, io.SEEK_END)
                body.seek(self._start)
                self._length = end - self._start
        else:
            self._iterable = body

    @property
    def empty(self) -> bool:
        return self._stream is None and self._iterable is None

    def replayable(self) -> bool:
        """Return True if the body can be sent again."""
        if not self._sent or self.empty:
            return True
        return self._stream is not None and self._length is not None

    def rewind(self) -> None:
        if self._stream is not None and self._length is not None:
            self._stream.seek(self._start)

    def headers(self) -> dict[str, str]:
        if self._length is None:
            return {}
        return {"Content-Length": str(self._length)}

    def content(
        self,
        cancel: Optional[threading.Event],
        deadline: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ) -> Optional[Iterator[bytes]]:
        """Return a fresh chunk generator for one attempt."""
        if self.empty:
            return None

        if self._sent:
            self.rewind()
        self._sent = True

        if self._stream is not None:
            return self._read_chunks(self._stream, cancel, deadline, clock)
        return self._guard_chunks(self._iterable, cancel, deadline, clock)

    @staticmethod
    def _read_chunks(stream, cancel, deadline, clock) -> Iterator[bytes]:
        while True:
            _check(cancel, deadline, clock)
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    @staticmethod
    def _guard_chunks(chunks, cancel, deadline, clock) -> Iterator[bytes]:
        for chunk in chunks:
            _check(cancel, deadline, clock)
            yield chunk


def _seekable(stream: Any) -> bool:
    try:
        return bool(stream.seekable())
    except (AttributeError, OSError, ValueError):
        return False


def _redact(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: ("<redacted>" if name.lower() in REDACTED_HEADERS else value)
        for name, value in headers.items()
    }


class TransportPolicy:
    """Rate-limited, retrying request executor shared by a client's calls.

    Args:
        config: A prepared Config (see Config.prepare).
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        limiter: Token bucket to use (defaults to 50 req/s, burst 100).
        delays: Fallback retry delays when no Retry-After is advertised.
        clock: Monotonic clock used for deadlines.
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.BaseTransport] = None,
        limiter: Optional[TokenBucket] = None,
        delays: Sequence[float] = DEFAULT_DELAYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.limiter = limiter if limiter is not None else TokenBucket()
        self.delays = delays
        self._clock = clock
        self._logger = config.logger or logger

        event_hooks: dict[str, list] = {"request": [], "response": []}
        if config.debug:
            event_hooks["request"].append(self._trace_request)
            event_hooks["response"].append(self._trace_response)

        self.http_client = httpx.Client(
            headers={"User-Agent": config.user_agent},
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
            event_hooks=event_hooks,
        )

    def _trace_request(self, request: httpx.Request) -> None:
        self._logger.debug(
            "--> %s %s headers=%s",
            request.method, request.url, _redact(request.headers),
        )

    def _trace_response(self, response: httpx.Response) -> None:
        request = response.request
        self._logger.debug(
            "<-- %s %s %d %s headers=%s",
            request.method, request.url, response.status_code,
            response.reason_phrase, dict(response.headers),
        )

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        cancel: Optional[threading.Event] = None,
    ) -> httpx.Response:
        """Execute one logical request, retrying rate-limited attempts.

        Args:
            method: HTTP method.
            url: Absolute URL.
            headers: Request headers.
            body: Optional upload body (bytes, str, binary file or iterable).
            cancel: Event that aborts the call when set.

        Returns:
            The response of the final attempt, body already read.

        Raises:
            Cancelled: If ``cancel`` is set during the call.
            RequestTimeout: If an attempt runs past its deadline.
            TransportError: For any other failure to complete an attempt.
        """
        request_body = RequestBody(body)
        request_headers = dict(headers or {})

        def attempt() -> httpx.Response:
            return self._attempt(method, url, request_headers, request_body, cancel)

        return retry_on_rate_limit(
            attempt,
            max_retries=self.config.max_retries,
            delays=self.delays,
            max_delay=self.config.timeout,
            cancel=cancel,
            can_retry=request_body.replayable,
        )

    def _attempt(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: RequestBody,
        cancel: Optional[threading.Event],
    ) -> httpx.Response:
        started = self._clock()
        deadline = started + self.config.timeout
        self.limiter.acquire(cancel=cancel, deadline=deadline)

        content = body.content(cancel, deadline, self._clock)
        request = self.http_client.build_request(
            method,
            url,
            headers={**headers, **body.headers()},
            content=content,
            timeout=httpx.Timeout(max(deadline - self._clock(), MIN_TIMEOUT)),
        )

        try:
            response = self.http_client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise RequestTimeout(f"{method} {url}: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e}") from e

        response.stream = GuardedStream(response.stream, cancel, deadline, self._clock)
        try:
            # Headers may arrive late and the body may be empty
            _check(cancel, deadline, self._clock)
            response.read()
        except (Cancelled, RequestTimeout) as e:
            response.close()
            e.response = response
            raise
        except httpx.TimeoutException as e:
            response.close()
            raise RequestTimeout(f"{method} {url}: {e}", response=response) from e
        except httpx.HTTPError as e:
            response.close()
            raise TransportError(f"{method} {url}: {e}", response=response) from e
        response.close()

        if self.config.debug:
            self._logger.debug(
                "%s %s completed in %.3fs",
                method, url, self._clock() - started,
            )
        return response

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.http_client.close()
