"""Client configuration: defaults, validation and loading.

A Config is built by the caller, then prepared once by the client:
defaults are applied to a copy and the copy is validated. The prepared
Config is immutable and shared by every request the client makes.

Supports two loading sources:
1. Environment variables (for CI/CD) - takes priority
2. A JSON file (for local development)

Environment Variable Format:
    BUNNY_STORAGE_ZONE=my-zone
    BUNNY_STORAGE_KEY=xxx
    BUNNY_STORAGE_READ_ONLY_KEY=xxx        (optional)
    BUNNY_STORAGE_ENDPOINT=ny              (region name, code or URL)
    BUNNY_STORAGE_TIMEOUT=30               (seconds, optional)
    BUNNY_STORAGE_MAX_RETRIES=5            (optional)
    BUNNY_STORAGE_DEBUG=true               (optional)
    BUNNY_STORAGE_USER_AGENT=myapp/1.0     (optional)
"""

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from bunnystorage import build
from bunnystorage.endpoint import Endpoint
from bunnystorage.errors import BunnyStorageError
from bunnystorage.log import default_logger
from bunnystorage.models import Operation

DEFAULT_MAX_RETRIES = 3

# Seconds
DEFAULT_TIMEOUT = 60.0

ENV_PREFIX = "BUNNY_STORAGE_"


class ConfigError(BunnyStorageError):
    """Raised when configuration is missing, malformed or invalid."""

    pass


class ConfigRequired(ConfigError):
    """Raised when a client is created without a Config."""


class UserAgentRequired(ConfigError):
    """Raised when no user agent is set."""


class StorageZoneRequired(ConfigError):
    """Raised when no storage zone is set."""


class KeyRequired(ConfigError):
    """Raised when no storage zone key is set."""


class EndpointRequired(ConfigError):
    """Raised when no endpoint is set."""


class InvalidEndpoint(ConfigError):
    """Raised when the endpoint is set but is not a known region."""


@dataclass(frozen=True)
class Config:
    """Configuration for the bunny.net Edge Storage API.

    Attributes:
        user_agent: User-Agent sent with every request.
        logger: Logger used for request tracing when ``debug`` is set.
        storage_zone: Name of the storage zone to connect to.
        key: API key of the storage zone (the zone password). Used for
             every operation unless a read-only key is configured.
        read_only_key: Optional key used for read operations only.
        endpoint: Storage region to talk to.
        max_retries: Maximum number of retries for rate-limited requests.
        timeout: Deadline, in seconds, for each request attempt.
        debug: Enable request/response tracing.
    """

    user_agent: str = ""
    logger: Optional[logging.Logger] = field(default=None, compare=False, repr=False)
    storage_zone: str = ""
    key: str = field(default="", repr=False)
    read_only_key: str = field(default="", repr=False)
    endpoint: Optional[Endpoint] = Endpoint.UNKNOWN
    max_retries: int = 0
    timeout: float = 0.0
    debug: bool = False

    def access_key(self, operation: Operation) -> str:
        """Return the API key to use for the given operation."""
        if operation is Operation.READ and self.read_only_key:
            return self.read_only_key

        if self.key:
            return self.key

        return ""

    def with_defaults(self) -> "Config":
        """Return a copy with missing optional fields set to their defaults."""
        changes: dict[str, Any] = {}

        if not self.user_agent:
            changes["user_agent"] = f"{build.NAME}/{build.VERSION} {build.URL}"

        if self.max_retries < 1:
            changes["max_retries"] = DEFAULT_MAX_RETRIES

        if self.timeout <= 0:
            changes["timeout"] = DEFAULT_TIMEOUT

        if self.logger is None and self.debug:
            changes["logger"] = default_logger()

        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """Check required fields, in priority order.

        Raises:
            ConfigError: The subclass naming the first problem found.
        """
        if not self.user_agent:
            raise UserAgentRequired("user agent required")

        if not self.storage_zone:
            raise StorageZoneRequired("storage zone required")

        if not self.key:
            raise KeyRequired("storage zone key required")

        if self.endpoint is None or self.endpoint is Endpoint.UNKNOWN:
            raise EndpointRequired("endpoint required")

        if not isinstance(self.endpoint, Endpoint) or not self.endpoint.is_valid():
            raise InvalidEndpoint(f"invalid endpoint: {self.endpoint!r}")

    def prepare(self) -> "Config":
        """Apply defaults and validate; the result is ready for a client."""
        config = self.with_defaults()
        config.validate()
        return config


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    raise ConfigError(f"Invalid value for '{name}': expected a boolean")


def _parse_number(value: Any, name: str, kind: type) -> Any:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid value for '{name}': expected a number")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for '{name}': {value!r}") from e


def _build_config(values: Mapping[str, Any]) -> Config:
    """Build a Config from already-extracted raw values."""
    kwargs: dict[str, Any] = {}

    for name in ("user_agent", "storage_zone", "key", "read_only_key"):
        if values.get(name) is not None:
            if not isinstance(values[name], str):
                raise ConfigError(f"Invalid value for '{name}': expected a string")
            kwargs[name] = values[name]

    if values.get("endpoint") is not None:
        kwargs["endpoint"] = Endpoint.parse(values["endpoint"])

    if values.get("timeout") is not None:
        kwargs["timeout"] = _parse_number(values["timeout"], "timeout", float)

    if values.get("max_retries") is not None:
        kwargs["max_retries"] = _parse_number(values["max_retries"], "max_retries", int)

    if values.get("debug") is not None:
        kwargs["debug"] = _parse_bool(values["debug"], "debug")

    return Config(**kwargs)


def load_from_json(config_path: str) -> Config:
    """Load a Config from a JSON file.

    Args:
        config_path: Path to the JSON file.

    Returns:
        The loaded Config, not yet validated.

    Raises:
        ConfigError: If the file doesn't exist, contains invalid JSON,
                    or holds values of the wrong type.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    return _build_config(data)


def load_from_env(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load a Config from BUNNY_STORAGE_* environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ).

    Returns:
        The loaded Config, not yet validated.
    """
    if environ is None:
        environ = os.environ

    values = {
        "storage_zone": environ.get(f"{ENV_PREFIX}ZONE"),
        "key": environ.get(f"{ENV_PREFIX}KEY"),
        "read_only_key": environ.get(f"{ENV_PREFIX}READ_ONLY_KEY"),
        "endpoint": environ.get(f"{ENV_PREFIX}ENDPOINT"),
        "timeout": environ.get(f"{ENV_PREFIX}TIMEOUT"),
        "max_retries": environ.get(f"{ENV_PREFIX}MAX_RETRIES"),
        "debug": environ.get(f"{ENV_PREFIX}DEBUG"),
        "user_agent": environ.get(f"{ENV_PREFIX}USER_AGENT"),
    }
    return _build_config(values)


def has_env_config(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if the storage zone is set in the environment."""
    if environ is None:
        environ = os.environ
    return bool(environ.get(f"{ENV_PREFIX}ZONE"))


def load_config(config_path: str = "bunnystorage.json") -> Config:
    """Load a Config with environment priority.

    Priority order:
    1. Environment variables (if BUNNY_STORAGE_ZONE is set)
    2. The JSON file at ``config_path``

    Raises:
        ConfigError: If neither source is available.
    """
    if has_env_config():
        return load_from_env()

    if Path(config_path).exists():
        return load_from_json(config_path)

    raise ConfigError(
        "No configuration found. Set BUNNY_STORAGE_* environment variables "
        f"or create {config_path}."
    )
