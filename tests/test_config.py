"""Tests for configuration defaults, validation and loading."""

import dataclasses
import json
import logging
import os
import typing
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from bunnystorage import build
from bunnystorage.client import Client
from bunnystorage.config import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
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
from bunnystorage.models import Operation


def valid_config(**overrides) -> Config:
    values = dict(
        user_agent="test/1.0",
        storage_zone="zone",
        key="key",
        endpoint=Endpoint.NEW_YORK,
    )
    values.update(overrides)
    return Config(**values)


def clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith("BUNNY_STORAGE_")}


class TestWithDefaults:
    """Tests for Config.with_defaults."""

    def test_fills_missing_fields(self):
        config = Config().with_defaults()

        assert config.user_agent == f"{build.NAME}/{build.VERSION} {build.URL}"
        assert config.max_retries == DEFAULT_MAX_RETRIES == 3
        assert config.timeout == DEFAULT_TIMEOUT == 60.0
        assert config.logger is None

    def test_keeps_explicit_values(self):
        config = valid_config(max_retries=5, timeout=2.5).with_defaults()

        assert config.user_agent == "test/1.0"
        assert config.max_retries == 5
        assert config.timeout == 2.5

    @pytest.mark.parametrize("retries", [0, -1])
    def test_non_positive_retries_use_default(self, retries: int):
        assert valid_config(max_retries=retries).with_defaults().max_retries == 3

    @pytest.mark.parametrize("timeout", [0, -5.0])
    def test_non_positive_timeout_uses_default(self, timeout: float):
        assert valid_config(timeout=timeout).with_defaults().timeout == 60.0

    def test_does_not_mutate_receiver(self):
        original = Config()
        original.with_defaults()

        assert original.user_agent == ""
        assert original.max_retries == 0

    def test_idempotent(self):
        once = Config(debug=True).with_defaults()
        twice = once.with_defaults()

        assert twice is once

    def test_debug_attaches_default_logger(self):
        config = Config(debug=True).with_defaults()

        assert isinstance(config.logger, logging.Logger)
        assert config.logger.name == "bunnystorage"

    def test_debug_keeps_supplied_logger(self):
        custom = logging.getLogger("custom")
        config = Config(debug=True, logger=custom).with_defaults()

        assert config.logger is custom

    def test_config_is_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Config().storage_zone = "other"

    def test_endpoint_field_is_typed(self):
        assert typing.get_type_hints(Config)["endpoint"] == typing.Optional[Endpoint]


class TestValidate:
    """Tests for Config.validate."""

    def test_valid_config_passes(self):
        valid_config().validate()

    @pytest.mark.parametrize(
        "field, value, error",
        [
            ("user_agent", "", UserAgentRequired),
            ("storage_zone", "", StorageZoneRequired),
            ("key", "", KeyRequired),
            ("endpoint", Endpoint.UNKNOWN, EndpointRequired),
            ("endpoint", None, EndpointRequired),
        ],
    )
    def test_missing_field_raises_its_error(self, field, value, error):
        """Each missing field raises its own error and nothing else."""
        with pytest.raises(error) as exc_info:
            valid_config(**{field: value}).validate()

        assert type(exc_info.value) is error
        assert isinstance(exc_info.value, ConfigError)

    @pytest.mark.parametrize("endpoint", ["ny", 42, "https://ny.storage.bunnycdn.com"])
    def test_non_member_endpoint_is_invalid(self, endpoint):
        """An endpoint that is set but not an Endpoint member is invalid."""
        with pytest.raises(InvalidEndpoint):
            valid_config(endpoint=endpoint).validate()

    def test_priority_order(self):
        """With everything missing, the user agent is reported first."""
        with pytest.raises(UserAgentRequired):
            Config().validate()

        with pytest.raises(StorageZoneRequired):
            Config(user_agent="x").validate()

        with pytest.raises(KeyRequired):
            Config(user_agent="x", storage_zone="z").validate()

        with pytest.raises(EndpointRequired):
            Config(user_agent="x", storage_zone="z", key="k").validate()

    def test_prepare_defaults_then_validates(self):
        """An empty user agent is defaulted, so prepare only needs the rest."""
        config = valid_config(user_agent="").prepare()

        assert config.user_agent.startswith(build.NAME)


class TestClientConstruction:
    """Configuration errors surface when the client is built."""

    def test_none_config(self):
        with pytest.raises(ConfigRequired):
            Client(None)

    @pytest.mark.parametrize(
        "field, value, error",
        [
            ("storage_zone", "", StorageZoneRequired),
            ("key", "", KeyRequired),
            ("endpoint", Endpoint.UNKNOWN, EndpointRequired),
            ("endpoint", "ny", InvalidEndpoint),
        ],
    )
    def test_invalid_config_fails_before_any_request(self, field, value, error):
        def handler(request):
            pytest.fail("no request expected")

        with pytest.raises(error):
            Client(valid_config(**{field: value}), transport=httpx.MockTransport(handler))

    def test_client_keeps_prepared_copy(self):
        config = valid_config(user_agent="")

        client = Client(config)
        try:
            assert client.config is not config
            assert client.config.user_agent
            assert config.user_agent == ""
        finally:
            client.close()


class TestAccessKey:
    """Tests for Config.access_key."""

    def test_read_uses_read_only_key(self):
        config = valid_config(read_only_key="ro")
        assert config.access_key(Operation.READ) == "ro"

    def test_read_falls_back_to_primary_key(self):
        config = valid_config()
        assert config.access_key(Operation.READ) == "key"

    def test_write_always_uses_primary_key(self):
        assert valid_config(read_only_key="ro").access_key(Operation.WRITE) == "key"
        assert valid_config().access_key(Operation.WRITE) == "key"

    def test_no_key_returns_empty(self):
        assert Config().access_key(Operation.WRITE) == ""
        assert Config(read_only_key="ro").access_key(Operation.WRITE) == ""


class TestLoadFromJson:
    """Tests for load_from_json function."""

    def test_valid_config_with_all_fields(self, tmp_path: Path):
        """Load a valid config file with all fields specified."""
        config_data = {
            "storage_zone": "my-zone",
            "key": "secret",
            "read_only_key": "ro-secret",
            "endpoint": "ny",
            "timeout": 30,
            "max_retries": 5,
            "debug": False,
            "user_agent": "app/2.0",
        }
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text(json.dumps(config_data))

        config = load_from_json(str(config_file))

        assert config.storage_zone == "my-zone"
        assert config.key == "secret"
        assert config.read_only_key == "ro-secret"
        assert config.endpoint is Endpoint.NEW_YORK
        assert config.timeout == 30.0
        assert config.max_retries == 5
        assert config.debug is False
        assert config.user_agent == "app/2.0"

    def test_missing_file_raises_error(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_from_json(str(tmp_path / "nonexistent.json"))

    def test_malformed_json_raises_error(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text("{ invalid json }")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_from_json(str(config_file))

    def test_non_object_raises_error(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text("[]")

        with pytest.raises(ConfigError, match="JSON object"):
            load_from_json(str(config_file))

    def test_wrong_type_raises_error(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text(json.dumps({"timeout": "soon"}))

        with pytest.raises(ConfigError, match="timeout"):
            load_from_json(str(config_file))

    def test_unknown_endpoint_is_left_for_validation(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text(json.dumps({"endpoint": "mars"}))

        config = load_from_json(str(config_file))

        assert config.endpoint is Endpoint.UNKNOWN


class TestLoadFromEnv:
    """Tests for load_from_env function."""

    def test_valid_env_vars_parsed_correctly(self):
        env_vars = {
            "BUNNY_STORAGE_ZONE": "env-zone",
            "BUNNY_STORAGE_KEY": "env-key",
            "BUNNY_STORAGE_READ_ONLY_KEY": "env-ro",
            "BUNNY_STORAGE_ENDPOINT": "Singapore",
            "BUNNY_STORAGE_TIMEOUT": "12.5",
            "BUNNY_STORAGE_MAX_RETRIES": "4",
            "BUNNY_STORAGE_DEBUG": "yes",
        }

        config = load_from_env(env_vars)

        assert config.storage_zone == "env-zone"
        assert config.key == "env-key"
        assert config.read_only_key == "env-ro"
        assert config.endpoint is Endpoint.SINGAPORE
        assert config.timeout == 12.5
        assert config.max_retries == 4
        assert config.debug is True

    def test_reads_os_environ_by_default(self):
        env_vars = {"BUNNY_STORAGE_ZONE": "from-os"}

        with patch.dict(os.environ, env_vars, clear=False):
            config = load_from_env()

        assert config.storage_zone == "from-os"

    def test_empty_environment_gives_empty_config(self):
        config = load_from_env({})

        assert config == Config()

    def test_bad_number_raises_error(self):
        with pytest.raises(ConfigError, match="max_retries"):
            load_from_env({"BUNNY_STORAGE_MAX_RETRIES": "many"})


class TestLoadConfig:
    """Tests for load_config function."""

    def test_env_vars_take_priority(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text(json.dumps({"storage_zone": "from-json"}))
        env_vars = {"BUNNY_STORAGE_ZONE": "from-env"}

        with patch.dict(os.environ, env_vars, clear=False):
            config = load_config(config_path=str(config_file))

        assert config.storage_zone == "from-env"

    def test_falls_back_to_json(self, tmp_path: Path):
        config_file = tmp_path / "bunnystorage.json"
        config_file.write_text(json.dumps({"storage_zone": "from-json"}))

        with patch.dict(os.environ, clean_env(), clear=True):
            config = load_config(config_path=str(config_file))

        assert config.storage_zone == "from-json"

    def test_raises_error_when_neither_exists(self, tmp_path: Path):
        with patch.dict(os.environ, clean_env(), clear=True):
            with pytest.raises(ConfigError, match="No configuration found"):
                load_config(config_path=str(tmp_path / "nonexistent.json"))
