"""bunny.net Edge Storage API client.

Every operation follows the same shape: normalize the path, build the URL
``{endpoint}/{zone}/{path}[/{filename}]``, pick the access key for the
operation, and send one logical request through the shared transport
policy. HTTP error statuses are not exceptions: the response is always
returned in the Result so callers can inspect it.
"""

import json
import posixpath
import threading
from typing import Any, Optional

import httpx

from bunnystorage.config import Config, ConfigRequired
from bunnystorage.errors import DecodeError
from bunnystorage.models import Object, Operation, Result
from bunnystorage.transport import TransportPolicy


def normalize_path(path: str) -> str:
    """Strip leading and trailing slashes from a directory path.

    Trailing slashes are dropped too, so "a/b/" and "a/b" name the same
    directory and the listing URL never ends in "//".
    """
    return path.strip("/")


def base_name(filename: str) -> str:
    """Return the last element of ``filename``.

    Directory components are dropped, so "/tmp/evil/../secret.txt" becomes
    "secret.txt". An empty name becomes ".".
    """
    name = posixpath.basename(filename.rstrip("/"))
    return name or "."


def decode_objects(response: httpx.Response) -> list[Object]:
    """Decode a listing response body into Objects.

    Raises:
        DecodeError: If the body is empty, not JSON, or not an array of
                    JSON objects.
    """
    body = response.content
    if not body:
        raise DecodeError("empty listing response", response=response)

    try:
        data = json.loads(body)
    except ValueError as e:
        raise DecodeError(f"invalid listing response: {e}", response=response) from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise DecodeError("listing response is not an array of objects", response=response)

    return [Object.from_dict(item) for item in data]


class Client:
    """Client for a single storage zone.

    Safe to share between threads. Can be used as a context manager to
    close the underlying HTTP client.

    Args:
        config: Client configuration. Defaults are applied to a copy and
                the copy is validated; the caller's Config is not modified.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Raises:
        ConfigRequired: If ``config`` is None.
        ConfigError: If the configuration is invalid.
    """

    def __init__(
        self,
        config: Optional[Config],
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if config is None:
            raise ConfigRequired("config is required")

        self.config = config.prepare()
        self.transport = TransportPolicy(self.config, transport=transport)

    def _url(self, path: str, filename: Optional[str] = None) -> str:
        parts = [str(self.config.endpoint), self.config.storage_zone]
        path = normalize_path(path)
        if path:
            parts.append(path)
        if filename is None:
            return "/".join(parts) + "/"
        parts.append(filename)
        return "/".join(parts)

    def _headers(self, operation: Operation, accept: Optional[str] = None) -> dict[str, str]:
        headers = {"AccessKey": self.config.access_key(operation)}
        if accept is not None:
            headers["Accept"] = accept
        return headers

    def list(self, path: str, cancel: Optional[threading.Event] = None) -> Result:
        """List the files in a directory of the storage zone.

        Args:
            path: Directory to list, relative to the zone root.
            cancel: Event that aborts the call when set.

        Returns:
            Result whose value is the list of Objects.

        Raises:
            DecodeError: If the body is not a JSON array (the response is
                        attached to the error).
            TransportError: If the request could not be completed.
        """
        response = self.transport.send(
            "GET",
            self._url(path),
            headers=self._headers(Operation.READ, accept="application/json"),
            cancel=cancel,
        )
        return Result(decode_objects(response), response)

    def download(
        self,
        path: str,
        filename: str,
        cancel: Optional[threading.Event] = None,
    ) -> Result:
        """Download a file from the storage zone.

        Only the last element of ``filename`` is used.

        Returns:
            Result whose value is the response body, verbatim.
        """
        response = self.transport.send(
            "GET",
            self._url(path, base_name(filename)),
            headers=self._headers(Operation.READ, accept="*/*"),
            cancel=cancel,
        )
        return Result(response.content, response)

    def upload(
        self,
        path: str,
        filename: str,
        body: Any,
        checksum: str = "",
        cancel: Optional[threading.Event] = None,
    ) -> Result:
        """Upload a file to the storage zone.

        Unlike download and delete, ``filename`` is used as given, so it
        may place the file in a sub-directory of ``path``.

        Args:
            path: Directory to upload into.
            filename: Name of the file, optionally with sub-directories.
            body: Content as bytes, str, a binary file or an iterable of bytes.
            checksum: Optional hex SHA-256 of the content; sent uppercased
                      so the service can verify the upload.
            cancel: Event that aborts the call when set.

        Returns:
            Result with no value.
        """
        headers = self._headers(Operation.WRITE)
        headers["Content-Type"] = "application/octet-stream"
        if checksum:
            headers["Checksum"] = checksum.upper()

        response = self.transport.send(
            "PUT",
            self._url(path, filename),
            headers=headers,
            body=body,
            cancel=cancel,
        )
        return Result(None, response)

    def delete(
        self,
        path: str,
        filename: str,
        cancel: Optional[threading.Event] = None,
    ) -> Result:
        """Delete a file from the storage zone.

        Only the last element of ``filename`` is used.
        """
        response = self.transport.send(
            "DELETE",
            self._url(path, base_name(filename)),
            headers=self._headers(Operation.WRITE),
            cancel=cancel,
        )
        return Result(None, response)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False  # Don't suppress exceptions
