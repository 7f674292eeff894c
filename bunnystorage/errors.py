"""Error hierarchy shared by the transport and client layers.

Configuration errors live in ``bunnystorage.config`` next to the validation
that raises them; everything that can happen once a request is in flight is
defined here.
"""

from typing import Optional

import httpx


class BunnyStorageError(Exception):
    """Base class for all bunnystorage errors.

    Args:
        message: Human-readable error description.
        response: Response of the last attempt, when one was received.
    """

    def __init__(self, message: str = "", response: Optional[httpx.Response] = None):
        super().__init__(message)
        self.response = response


class TransportError(BunnyStorageError):
    """Raised when a request could not be completed (network failure, etc)."""


class RequestTimeout(TransportError):
    """Raised when an attempt runs past its deadline."""


class Cancelled(TransportError):
    """Raised when the caller's cancel event is set during a call."""


class DecodeError(BunnyStorageError):
    """Raised when a response body cannot be decoded.

    The response is always attached so callers can inspect status and body.
    """
