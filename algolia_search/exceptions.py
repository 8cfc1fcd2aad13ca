"""
Error taxonomy for the search client.

Every unsuccessful call ends in exactly one `SearchError` subclass:

- `ConfigurationError`: invalid client setup (never retried)
- `ClientRequestError`: the service rejected the request with a 4xx status
- `MalformedResponseError`: a 2xx response whose body is not valid JSON
- `AllHostsUnreachableError`: every host failed with a transport error or 5xx

Per-host transport errors and 5xx responses are not exceptions. They are
absorbed by the failover loop and only surface in aggregate.
"""

__all__ = [
    "SearchError",
    "ConfigurationError",
    "ClientRequestError",
    "MalformedResponseError",
    "AllHostsUnreachableError",
]


class SearchError(Exception):
    """Base class for all errors raised by the search client."""

    def __init__(self, message, status_code=None):
        # type: (str, int|None) -> None
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(SearchError, ValueError):
    """Client configured with missing identity, hosts or invalid options."""


class ClientRequestError(SearchError):
    """The request was rejected by the service (HTTP 4xx)."""

    def __init__(self, status_code, message):
        # type: (int, str) -> None
        super().__init__(message, status_code=status_code)

    def __str__(self):
        # type: () -> str
        return f"HTTP {self.status_code}: {self.message}"


class MalformedResponseError(SearchError):
    """A successful response carried a body that could not be decoded."""


class AllHostsUnreachableError(SearchError):
    """
    No host produced a usable response.

    :ivar errors: Mapping of host name to failure reason, in host-list order
    """

    def __init__(self, errors):
        # type: (dict[str, str]) -> None
        self.errors = dict(errors)
        details = ", ".join(f"{host}={reason}" for host, reason in self.errors.items())
        super().__init__(f"Hosts unreachable: {details}")
