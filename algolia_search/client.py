"""
Search client implementation.

Entry point of the library: holds client identity, host lists and mutable request
configuration, and exposes the API operations. Every operation is a thin caller of
`SearchClient.execute`, which routes the call through the failover loop.
"""

import threading
from typing import TYPE_CHECKING
from urllib.parse import quote

import msgspec.structs
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

import algolia_search
from algolia_search.dispatch import RequestDispatcher
from algolia_search.exceptions import ConfigurationError
from algolia_search.failover import FailoverController
from algolia_search.hosts import HostSet, default_host_set, probe_legacy_tls
from algolia_search.models import (
    ApiRequest,
    ClientConfig,
    ClientIdentity,
    ForwardingContext,
    LogType,
    Method,
    TimeoutProfile,
)
from algolia_search.query import Query, encode_query
from algolia_search.settings import client_settings
from algolia_search.signing import generate_secured_api_key
from algolia_search.utils import timer

if TYPE_CHECKING:
    import httpx  # noqa: F401
    from algolia_search.models import FailoverResult  # noqa: F401
    from algolia_search.settings import ClientSettings  # noqa: F401


__all__ = ["SearchClient"]


console = Console()


def _quote(segment):
    # type: (str) -> str
    return quote(segment, safe="")


class SearchClient:
    """
    Client for the hosted search API.

    Identity and host lists are fixed at construction. Forwarding context,
    timeouts, extra headers and user agent may change at any time; each call uses
    the configuration that was current when it started.

    Thread-safe: configuration changes and concurrent calls may interleave freely.
    """

    def __init__(
        self,
        application_id=None,
        api_key=None,
        build_hosts=None,
        query_hosts=None,
        settings=None,
        transport=None,
        legacy_tls=None,
    ):
        # type: (str|None, str|None, list[str]|None, list[str]|None, ClientSettings|None, httpx.BaseTransport|None, bool|None) -> None
        """
        Initialize search client.

        Without explicit hosts, the default hosts for the application are used.
        With `build_hosts` only, the same list serves build and query calls.

        :param application_id: Application ID (default: ALGOLIA_APPLICATION_ID)
        :param api_key: API key (default: ALGOLIA_API_KEY)
        :param build_hosts: Hosts for mutating calls, in priority order
        :param query_hosts: Hosts for read calls, in priority order
        :param settings: Settings instance (default: module-level `client_settings`)
        :param transport: Optional httpx transport (e.g. for testing)
        :param legacy_tls: Result of the TLS capability probe; probed when None
        :raises ConfigurationError: If application ID, API key or hosts are missing
        """
        self.settings = settings or client_settings
        application_id = application_id or self.settings.application_id
        api_key = api_key or self.settings.api_key
        if not application_id:
            raise ConfigurationError("An application ID is required")
        if not api_key:
            raise ConfigurationError("An API key is required")

        if build_hosts is None and query_hosts is None:
            if legacy_tls is None:
                legacy_tls = probe_legacy_tls()
            self.hosts = default_host_set(application_id, legacy_tls)
        else:
            self.hosts = HostSet.from_lists(build_hosts if build_hosts is not None else query_hosts, query_hosts)

        self._lock = threading.Lock()
        self._config = ClientConfig(
            identity=ClientIdentity(application_id=application_id, api_key=api_key),
            timeouts=TimeoutProfile(
                connect_timeout_ms=self.settings.connect_timeout_ms,
                socket_timeout_ms=self.settings.socket_timeout_ms,
                search_timeout_ms=self.settings.search_timeout_ms,
            ),
            user_agent=f"Algolia for Python {algolia_search.__version__}",
        )
        self.dispatcher = RequestDispatcher(transport=transport)
        self.failover = FailoverController(self.dispatcher, verbose=self.settings.verbose)
        logger.debug(
            f"Search client for {application_id}: build hosts {list(self.hosts.build_hosts)}, "
            f"query hosts {list(self.hosts.query_hosts)}"
        )

    @property
    def application_id(self):
        # type: () -> str
        return self._config.identity.application_id

    @property
    def config(self):
        # type: () -> ClientConfig
        """Snapshot of the current request configuration."""
        with self._lock:
            return self._config

    def _update(self, **changes):
        # type: (...) -> None
        with self._lock:
            self._config = msgspec.structs.replace(self._config, **changes)

    # Configuration

    def set_user_agent_suffix(self, name, version):
        # type: (str, str) -> None
        """
        Identify an integration in the user agent.

        :param name: Integration name
        :param version: Integration version
        """
        self._update(user_agent=f"Algolia for Python {algolia_search.__version__} {name} ({version})")

    def enable_request_forwarding(self, admin_api_key, end_user_ip, rate_limit_api_key):
        # type: (str, str, str) -> None
        """
        Apply rate limits per end user when requests go through a proxy.

        Subsequent requests authenticate with `admin_api_key` and forward the end
        user IP (X-Forwarded-For) and the rate-limited key (X-Forwarded-API-Key).

        :param admin_api_key: Admin API key
        :param end_user_ip: End user IP (IPv4 or IPv6)
        :param rate_limit_api_key: API key carrying the rate limit
        :raises ConfigurationError: If any of the three values is empty
        """
        if not (admin_api_key and end_user_ip and rate_limit_api_key):
            raise ConfigurationError("Request forwarding requires admin key, end user IP and rate limit key")
        self._update(
            forwarding=ForwardingContext(
                admin_api_key=admin_api_key,
                end_user_ip=end_user_ip,
                rate_limit_api_key=rate_limit_api_key,
            )
        )

    def disable_request_forwarding(self):
        # type: () -> None
        """Return to authenticating with the client's own API key."""
        self._update(forwarding=None)

    def set_extra_header(self, name, value):
        # type: (str, str) -> None
        """
        Send a custom header with every request; replaces any previous value
        whose name matches regardless of case.

        :param name: Header name
        :param value: Header value
        """
        with self._lock:
            headers = {k: v for k, v in self._config.extra_headers.items() if k.lower() != name.lower()}
            headers[name] = value
            self._config = msgspec.structs.replace(self._config, extra_headers=headers)

    def set_timeouts(self, connect_ms, socket_ms, search_ms=None):
        # type: (int, int, int|None) -> None
        """
        Change request timeouts.

        :param connect_ms: Connection timeout in milliseconds
        :param socket_ms: Socket timeout in milliseconds for non-search calls
        :param search_ms: Socket timeout for search calls (unchanged when None)
        :raises ConfigurationError: If a timeout is not positive
        """
        if connect_ms <= 0 or socket_ms <= 0 or (search_ms is not None and search_ms <= 0):
            raise ConfigurationError("Timeouts must be positive")
        with self._lock:
            timeouts = TimeoutProfile(
                connect_timeout_ms=connect_ms,
                socket_timeout_ms=socket_ms,
                search_timeout_ms=self._config.timeouts.search_timeout_ms if search_ms is None else search_ms,
            )
            self._config = msgspec.structs.replace(self._config, timeouts=timeouts)

    # Core

    def execute_request(self, request):
        # type: (ApiRequest) -> FailoverResult
        """
        Run a request through host failover.

        :param request: Request to send
        :return: Result with parsed body, serving host and earlier soft failures
        :raises ClientRequestError: If the service rejected the request (4xx)
        :raises MalformedResponseError: If a success response could not be decoded
        :raises AllHostsUnreachableError: If no host could serve the request
        """
        config = self.config
        with timer(f"{request.method.value} {request.path}", level="DEBUG"):
            return self.failover.execute(self.hosts.hosts_for(request.build), request, config)

    def execute(self, method, path, body=None, build=False, search=False):
        # type: (str|Method, str, object, bool, bool) -> object
        """
        Send an API call and return the parsed JSON response.

        :param method: GET, POST, PUT or DELETE
        :param path: Request path including query string
        :param body: Optional JSON body (string or JSON-serializable object)
        :param build: Mutating call, routed to build hosts
        :param search: Latency-sensitive call, uses the search socket timeout
        :return: Parsed JSON response
        :raises ValueError: If the method is unsupported or cannot carry a body
        """
        request = ApiRequest(Method.parse(method), path, body=body, build=build, search=search)
        return self.execute_request(request).body

    def generate_secured_api_key(self, private_api_key, query, user_token=None):
        # type: (str, Query|dict|str, str|None) -> str
        """See `algolia_search.signing.generate_secured_api_key`."""
        return generate_secured_api_key(private_api_key, query, user_token)

    # Indexes

    def list_indexes(self):
        # type: () -> dict
        """
        List all existing indexes.

        :return: Response with an "items" list of index descriptions
        """
        return self.execute(Method.GET, "/1/indexes/")

    def delete_index(self, index_name):
        # type: (str) -> dict
        """
        Delete an index.

        :param index_name: Name of the index to delete
        :return: Response containing "deletedAt"
        """
        return self.execute(Method.DELETE, f"/1/indexes/{_quote(index_name)}", build=True)

    def move_index(self, src_index_name, dst_index_name):
        # type: (str, str) -> dict
        """
        Rename an index; the destination is overwritten if it exists.

        :param src_index_name: Index to move
        :param dst_index_name: New name
        :return: Task response
        """
        return self._index_operation("move", src_index_name, dst_index_name)

    def copy_index(self, src_index_name, dst_index_name):
        # type: (str, str) -> dict
        """
        Copy an index; the destination is overwritten if it exists.

        :param src_index_name: Index to copy
        :param dst_index_name: Name of the copy
        :return: Task response
        """
        return self._index_operation("copy", src_index_name, dst_index_name)

    def _index_operation(self, operation, src_index_name, dst_index_name):
        # type: (str, str, str) -> dict
        body = {"operation": operation, "destination": dst_index_name}
        return self.execute(Method.POST, f"/1/indexes/{_quote(src_index_name)}/operation", body, build=True)

    # Logs

    def get_logs(self, offset=None, length=None, log_type=None, only_errors=False):
        # type: (int|None, int|None, LogType|str|None, bool) -> dict
        """
        Retrieve the latest API calls.

        Without arguments the service defaults apply. Otherwise `offset` defaults
        to 0, `length` to 10 and the log type to all logs (errors only with
        `only_errors`).

        :param offset: Position of the first entry (0 is the most recent)
        :param length: Number of entries to retrieve (max 1000)
        :param log_type: One of LogType (query, build, error, all)
        :param only_errors: Shortcut for `log_type=LogType.ERROR`
        :return: Response with a "logs" list
        """
        if offset is None and length is None and log_type is None and not only_errors:
            return self.execute(Method.GET, "/1/logs")
        if log_type is None:
            log_type = LogType.ERROR if only_errors else LogType.ALL
        params = {
            "offset": 0 if offset is None else offset,
            "length": 10 if length is None else length,
            "type": LogType(log_type).value,
        }
        return self.execute(Method.GET, f"/1/logs?{encode_query(params)}")

    # User keys

    def list_user_keys(self):
        # type: () -> dict
        """List all user keys with their rights."""
        return self.execute(Method.GET, "/1/keys")

    def get_user_key_acl(self, key):
        # type: (str) -> dict
        """Get rights of a user key."""
        return self.execute(Method.GET, f"/1/keys/{_quote(key)}")

    def delete_user_key(self, key):
        # type: (str) -> dict
        """Delete a user key."""
        return self.execute(Method.DELETE, f"/1/keys/{_quote(key)}", build=True)

    def add_user_key(self, acl_or_params, validity=0, max_queries_per_ip_per_hour=0, max_hits_per_query=0, indexes=None):
        # type: (list[str]|dict, int, int, int, list[str]|None) -> dict
        """
        Create a user key.

        :param acl_or_params: Full key parameters, or list of ACL rights
            ("search", "browse", "addObject", "deleteObject", "deleteIndex",
            "settings", "editSettings", "analytics", "listIndexes")
        :param validity: Seconds until the key expires (0 for no expiry)
        :param max_queries_per_ip_per_hour: Rate limit per IP (0 for none)
        :param max_hits_per_query: Max hits per query (0 for unlimited)
        :param indexes: Restrict the key to these indexes (prefix*/*suffix allowed)
        :return: Response containing the new "key"
        """
        params = self._user_key_params(acl_or_params, validity, max_queries_per_ip_per_hour, max_hits_per_query, indexes)
        return self.execute(Method.POST, "/1/keys", params, build=True)

    def update_user_key(
        self, key, acl_or_params, validity=0, max_queries_per_ip_per_hour=0, max_hits_per_query=0, indexes=None
    ):
        # type: (str, list[str]|dict, int, int, int, list[str]|None) -> dict
        """
        Update a user key; see `add_user_key` for parameters.

        :param key: Key to update
        :return: Response containing the updated "key"
        """
        params = self._user_key_params(acl_or_params, validity, max_queries_per_ip_per_hour, max_hits_per_query, indexes)
        return self.execute(Method.PUT, f"/1/keys/{_quote(key)}", params, build=True)

    @staticmethod
    def _user_key_params(acl_or_params, validity, max_queries_per_ip_per_hour, max_hits_per_query, indexes):
        # type: (list[str]|dict, int, int, int, list[str]|None) -> dict
        if isinstance(acl_or_params, dict):
            return acl_or_params
        params = {
            "acl": list(acl_or_params),
            "validity": validity,
            "maxQueriesPerIPPerHour": max_queries_per_ip_per_hour,
            "maxHitsPerQuery": max_hits_per_query,
        }
        if indexes is not None:
            params["indexes"] = list(indexes)
        return params

    # Multi-index operations

    def multiple_queries(self, queries, strategy="none"):
        # type: (list[tuple[str, Query|dict]], str) -> dict
        """
        Run several queries in one call.

        :param queries: (index name, query) pairs
        :param strategy: "none" runs all queries; "stopIfEnoughMatches" stops once
            hitsPerPage results are reached
        :return: Response with a "results" list in query order
        """
        requests = []
        for index_name, query in queries:
            query = query if isinstance(query, Query) else Query(query)
            requests.append({"indexName": index_name, "params": query.get_query_string()})
        path = f"/1/indexes/*/queries?{encode_query({'strategy': strategy})}"
        return self.execute(Method.POST, path, {"requests": requests}, search=True)

    def batch(self, actions):
        # type: (list[dict]) -> dict
        """
        Send write operations on one or several indexes in one call.

        :param actions: Operations, each with "action", "indexName" and "body"
        :return: Response with "taskID" and "objectIDs"
        """
        return self.execute(Method.POST, "/1/indexes/*/batch", {"requests": list(actions)}, build=True)

    def batch_chunked(self, actions, chunk_size=None):
        # type: (list[dict], int|None) -> list[dict]
        """
        Send a large list of write operations as consecutive batches.

        Shows progress bar when more than one batch is needed.

        :param actions: Operations as accepted by `batch`
        :param chunk_size: Operations per batch (default: settings.batch_chunk_size)
        :return: One batch response per chunk, in order
        """
        if not actions:
            return []

        chunk_size = chunk_size or self.settings.batch_chunk_size
        if len(actions) <= chunk_size:
            return [self.batch(actions)]

        results = []  # type: list[dict]
        chunks = [actions[i : i + chunk_size] for i in range(0, len(actions), chunk_size)]

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Sending batches", total=len(chunks))

            for chunk in chunks:
                results.append(self.batch(chunk))
                progress.update(task, advance=1)

        return results

    # Lifecycle

    def close(self):
        # type: () -> None
        """
        Close HTTP client and cleanup resources.

        Idempotent - safe to call multiple times.
        """
        self.dispatcher.close()

    def __enter__(self):
        # type: () -> SearchClient
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __repr__(self):
        # type: () -> str
        return f"SearchClient(application_id={self.application_id!r})"

