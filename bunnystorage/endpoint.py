"""Storage regions of the bunny.net Edge Storage API."""

from enum import Enum
from urllib.parse import urlsplit


class Endpoint(Enum):
    """A storage region and its base URL.

    ``Endpoint.UNKNOWN`` is the zero value returned by :meth:`parse` for
    input it does not recognise. It is never a valid endpoint; the client
    rejects it when validating its configuration.
    """

    UNKNOWN = 0
    FALKENSTEIN = 1
    LONDON = 2
    NEW_YORK = 3
    LOS_ANGELES = 4
    SINGAPORE = 5
    STOCKHOLM = 6
    SAO_PAULO = 7
    JOHANNESBURG = 8
    SYDNEY = 9

    @classmethod
    def parse(cls, value: str) -> "Endpoint":
        """Map a region name, code, hostname or base URL to an Endpoint.

        Args:
            value: e.g. "ny", "New York", "ny.storage.bunnycdn.com" or
                   "https://ny.storage.bunnycdn.com/".

        Returns:
            The matching member, or ``Endpoint.UNKNOWN``.
        """
        if not isinstance(value, str):
            return cls.UNKNOWN

        key = value.strip().lower()
        if "://" in key:
            key = urlsplit(key).hostname or ""
        key = key.rstrip("/")

        return _LOOKUP.get(key, cls.UNKNOWN)

    def is_valid(self) -> bool:
        """Return True if this is a real storage region."""
        return self is not Endpoint.UNKNOWN

    @property
    def url(self) -> str:
        """Base URL of the region, without a trailing slash."""
        host = _HOSTS.get(self)
        if host is None:
            return ""
        return f"https://{host}"

    def __str__(self) -> str:
        return self.url


_HOSTS = {
    Endpoint.FALKENSTEIN: "storage.bunnycdn.com",
    Endpoint.LONDON: "uk.storage.bunnycdn.com",
    Endpoint.NEW_YORK: "ny.storage.bunnycdn.com",
    Endpoint.LOS_ANGELES: "la.storage.bunnycdn.com",
    Endpoint.SINGAPORE: "sg.storage.bunnycdn.com",
    Endpoint.STOCKHOLM: "se.storage.bunnycdn.com",
    Endpoint.SAO_PAULO: "br.storage.bunnycdn.com",
    Endpoint.JOHANNESBURG: "jh.storage.bunnycdn.com",
    Endpoint.SYDNEY: "syd.storage.bunnycdn.com",
}

_ALIASES = {
    Endpoint.FALKENSTEIN: ("falkenstein", "de", "germany"),
    Endpoint.LONDON: ("london", "uk"),
    Endpoint.NEW_YORK: ("new york", "newyork", "ny"),
    Endpoint.LOS_ANGELES: ("los angeles", "losangeles", "la"),
    Endpoint.SINGAPORE: ("singapore", "sg"),
    Endpoint.STOCKHOLM: ("stockholm", "se"),
    Endpoint.SAO_PAULO: ("sao paulo", "saopaulo", "br"),
    Endpoint.JOHANNESBURG: ("johannesburg", "jh"),
    Endpoint.SYDNEY: ("sydney", "syd"),
}

_LOOKUP: dict[str, Endpoint] = {}
for _member, _names in _ALIASES.items():
    _LOOKUP[_member.name.lower()] = _member
    _LOOKUP[_HOSTS[_member]] = _member
    for _name in _names:
        _LOOKUP[_name] = _member
