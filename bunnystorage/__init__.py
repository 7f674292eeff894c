"""
bunny.net Edge Storage API client.

List, upload, download and delete files in a storage zone, with client-side
rate limiting and automatic retry of rate-limited requests.
"""

import logging

from bunnystorage.build import VERSION as __version__
from bunnystorage.checksum import compute_sha256
from bunnystorage.client import Client
from bunnystorage.config import (
    Config,
    ConfigError,
    ConfigRequired,
    EndpointRequired,
    InvalidEndpoint,
    KeyRequired,
    StorageZoneRequired,
    UserAgentRequired,
    load_config,
    load_from_env,
    load_from_json,
)
from bunnystorage.endpoint import Endpoint
from bunnystorage.errors import (
    BunnyStorageError,
    Cancelled,
    DecodeError,
    RequestTimeout,
    TransportError,
)
from bunnystorage.models import Object, Operation, Result

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "BunnyStorageError",
    "Cancelled",
    "Client",
    "Config",
    "ConfigError",
    "ConfigRequired",
    "DecodeError",
    "Endpoint",
    "EndpointRequired",
    "InvalidEndpoint",
    "KeyRequired",
    "Object",
    "Operation",
    "RequestTimeout",
    "Result",
    "StorageZoneRequired",
    "TransportError",
    "UserAgentRequired",
    "compute_sha256",
    "load_config",
    "load_from_env",
    "load_from_json",
]
