"""Shared fixtures: an in-memory storage service behind httpx.MockTransport."""

import json

import httpx
import pytest

from bunnystorage import Client, Config, Endpoint

ZONE = "test-zone"
WRITE_KEY = "write-key"
READ_ONLY_KEY = "read-only-key"


class FakeStorage:
    """Mock handler that simulates the storage API.

    Files are kept in a dict keyed by URL path ("/zone/dir/name"). Every
    request is recorded. Set ``rate_limit_responses`` to answer that many
    requests with 429 before serving normally.
    """

    def __init__(self, zone: str = ZONE):
        self.zone = zone
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.rate_limit_responses = 0
        self.retry_after = "0"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.rate_limit_responses > 0:
            self.rate_limit_responses -= 1
            headers = {}
            if self.retry_after is not None:
                headers["Retry-After"] = self.retry_after
            return httpx.Response(429, headers=headers)

        access_key = request.headers.get("AccessKey")
        if access_key == READ_ONLY_KEY and request.method != "GET":
            return httpx.Response(401, json={"HttpCode": 401, "Message": "Unauthorized"})
        if access_key not in (WRITE_KEY, READ_ONLY_KEY):
            return httpx.Response(401, json={"HttpCode": 401, "Message": "Unauthorized"})

        path = request.url.path
        if not path.startswith(f"/{self.zone}/"):
            return httpx.Response(404, json={"HttpCode": 404, "Message": "Zone not found"})

        if request.method == "GET" and path.endswith("/"):
            return self._list(path)
        if request.method == "GET":
            if path not in self.files:
                return httpx.Response(404, json={"HttpCode": 404, "Message": "Object Not Found"})
            return httpx.Response(200, content=self.files[path])
        if request.method == "PUT":
            self.files[path] = request.content
            return httpx.Response(201, json={"HttpCode": 201, "Message": "File uploaded."})
        if request.method == "DELETE":
            if self.files.pop(path, None) is None:
                return httpx.Response(404, json={"HttpCode": 404, "Message": "Object Not Found"})
            return httpx.Response(200, json={"HttpCode": 200, "Message": "File deleted successfuly."})

        return httpx.Response(405)

    def _list(self, path: str) -> httpx.Response:
        entries = []
        for key, data in sorted(self.files.items()):
            directory, name = key.rsplit("/", 1)
            if directory + "/" != path:
                continue
            entries.append({
                "Guid": f"guid-{name}",
                "StorageZoneName": self.zone,
                "Path": directory + "/",
                "ObjectName": name,
                "Length": len(data),
                "LastChanged": "2024-01-01T00:00:00.000",
                "IsDirectory": False,
                "ServerId": 1,
                "ArrayNumber": 0,
                "DateCreated": "2024-01-01T00:00:00.000",
                "StorageZoneId": 42,
                "Checksum": None,
                "ReplicatedZones": "",
            })
        return httpx.Response(200, content=json.dumps(entries).encode())


@pytest.fixture
def storage() -> FakeStorage:
    """Fresh fake storage service."""
    return FakeStorage()


@pytest.fixture
def config() -> Config:
    """Minimal valid configuration."""
    return Config(
        storage_zone=ZONE,
        key=WRITE_KEY,
        endpoint=Endpoint.FALKENSTEIN,
        timeout=5.0,
    )


@pytest.fixture
def client(storage: FakeStorage, config: Config):
    """Client wired to the fake storage service."""
    with Client(config, transport=httpx.MockTransport(storage)) as c:
        yield c
