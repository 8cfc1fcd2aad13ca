"""
# Types shared by the request-dispatch core

## Terms and Definitions

- **Build call** - Mutating operation (writes, index management), routed to build hosts
- **Search call** - Latency-sensitive read, subject to the shorter search socket timeout
- **Soft failure** - Per-host error (transport error, 5xx); failover continues with the next host
- **Terminal failure** - Error that ends the call immediately (4xx, malformed success body)
- **Forwarding context** - Rate-limit delegation: admin key authenticates while the end-user IP
    and rate-limited key are forwarded to the service
"""

from enum import Enum
import msgspec


__all__ = [
    "Method",
    "LogType",
    "ApiRequest",
    "ClientIdentity",
    "ForwardingContext",
    "TimeoutProfile",
    "ClientConfig",
    "Success",
    "SoftFailure",
    "TerminalFailure",
    "RequestOutcome",
    "FailoverResult",
]


class Method(str, Enum):
    """HTTP methods supported by the service API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def carries_body(self):
        # type: () -> bool
        """Whether requests with this method may enclose a JSON entity."""
        return self in (Method.POST, Method.PUT)

    @classmethod
    def parse(cls, value):
        # type: (str|Method) -> Method
        """
        Coerce a method name into a `Method`.

        :param value: Method name (case-insensitive) or `Method` member
        :return: Matching `Method`
        :raises ValueError: If the method is not supported
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Method {value} is not supported") from None


class LogType(str, Enum):
    """Log categories accepted by the logs endpoint."""

    QUERY = "query"
    BUILD = "build"
    ERROR = "error"
    ALL = "all"


class ApiRequest(msgspec.Struct, frozen=True):
    """
    One logical API call, independent of the host it is sent to.

    Construction fails for combinations that cannot be sent, so a body is never
    silently dropped.

    :ivar method: HTTP method
    :ivar path: Request path including query string (e.g. "/1/indexes/")
    :ivar body: Optional JSON body (pre-serialized string or JSON-serializable object)
    :ivar build: Route to build hosts (mutating call) instead of query hosts
    :ivar search: Apply the search socket timeout instead of the general one
    """

    method: Method
    path: str
    body: object = None
    build: bool = False
    search: bool = False

    def __post_init__(self):
        if not isinstance(self.method, Method):
            raise ValueError(f"Method {self.method} is not supported")
        if self.body is not None and not self.method.carries_body:
            raise ValueError(f"Method {self.method.value} cannot enclose entity")
        if not self.path.startswith("/"):
            raise ValueError(f"Request path must start with '/', got: '{self.path}'")

    def encoded_body(self):
        # type: () -> bytes|None
        """
        Serialize the body as UTF-8 JSON.

        :return: Encoded body or None when the request has no body
        """
        if self.body is None:
            return None
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return msgspec.json.encode(self.body)


class ClientIdentity(msgspec.Struct, frozen=True):
    """Application ID and API key the client authenticates with."""

    application_id: str
    api_key: str


class ForwardingContext(msgspec.Struct, frozen=True):
    """Rate-limit delegation triple; applied to requests as a unit."""

    admin_api_key: str
    end_user_ip: str
    rate_limit_api_key: str


class TimeoutProfile(msgspec.Struct, frozen=True):
    """Timeouts in milliseconds."""

    connect_timeout_ms: int = 2000
    socket_timeout_ms: int = 30000
    search_timeout_ms: int = 5000

    def read_timeout_ms(self, search):
        # type: (bool) -> int
        """Socket timeout for a call of the given class."""
        return self.search_timeout_ms if search else self.socket_timeout_ms


class ClientConfig(msgspec.Struct, frozen=True):
    """
    Immutable snapshot of everything a request attempt reads from the client.

    The client swaps in a new snapshot on every configuration change; a call
    uses the snapshot it captured at start for all of its host attempts.
    """

    identity: ClientIdentity
    timeouts: TimeoutProfile
    user_agent: str
    forwarding: ForwardingContext | None = None
    extra_headers: dict[str, str] = {}


class Success(msgspec.Struct, frozen=True, tag=True):
    """Host answered 2xx with a valid JSON body."""

    body: object


class SoftFailure(msgspec.Struct, frozen=True, tag=True):
    """Host could not serve the call; the next host should be tried."""

    host: str
    reason: str


class TerminalFailure(msgspec.Struct, frozen=True, tag=True):
    """Call failed in a way another host cannot fix."""

    status_code: int
    message: str
    malformed: bool = False


RequestOutcome = Success | SoftFailure | TerminalFailure


class FailoverResult(msgspec.Struct, frozen=True):
    """
    Successful result of a failover run.

    :ivar body: Parsed JSON body returned by the host that succeeded
    :ivar host: Host that served the call
    :ivar errors: Soft failures recorded for earlier hosts, in host-list order
    """

    body: object
    host: str
    errors: dict[str, str] = {}
