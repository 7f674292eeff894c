"""Data models for the storage client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import httpx


class Operation(Enum):
    """Kind of operation, used to pick which access key applies."""

    READ = "read"
    WRITE = "write"


# Listing JSON keys mapped to Object attribute names
_OBJECT_FIELDS = {
    "Guid": "guid",
    "StorageZoneName": "storage_zone_name",
    "Path": "path",
    "ObjectName": "object_name",
    "Length": "length",
    "LastChanged": "last_changed",
    "ServerId": "server_id",
    "ArrayNumber": "array_number",
    "IsDirectory": "is_directory",
    "UserId": "user_id",
    "ContentType": "content_type",
    "DateCreated": "date_created",
    "StorageZoneId": "storage_zone_id",
    "Checksum": "checksum",
    "ReplicatedZones": "replicated_zones",
}


@dataclass(frozen=True)
class Object:
    """A file or directory entry returned by a listing."""

    guid: Optional[str] = None
    storage_zone_name: Optional[str] = None
    path: Optional[str] = None
    object_name: Optional[str] = None
    length: Optional[int] = None
    last_changed: Optional[str] = None
    server_id: Optional[int] = None
    array_number: Optional[int] = None
    is_directory: Optional[bool] = None
    user_id: Optional[str] = None
    content_type: Optional[str] = None
    date_created: Optional[str] = None
    storage_zone_id: Optional[int] = None
    checksum: Optional[str] = None
    replicated_zones: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Object":
        """Build an Object from one element of the listing array.

        Unknown keys are ignored but kept in ``raw``.
        """
        values = {
            attr: data[key] for key, attr in _OBJECT_FIELDS.items() if key in data
        }
        return cls(raw=dict(data), **values)


@dataclass
class Result:
    """Outcome of a client operation.

    ``response`` is the response of the final attempt and is set whatever its
    status; a 404 on download is a Result, not an exception.
    """

    value: Any
    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return self.response.is_success
