"""
Single-host request execution.

`RequestDispatcher.attempt` sends one `ApiRequest` to one host and classifies the
result as `Success`, `SoftFailure` (try the next host) or `TerminalFailure` (stop).
It never raises for network problems or HTTP status codes.
"""

import threading

import httpx
import simdjson
from loguru import logger

from algolia_search.models import (
    ApiRequest,
    ClientConfig,
    RequestOutcome,
    SoftFailure,
    Success,
    TerminalFailure,
)


__all__ = [
    "RequestDispatcher",
    "build_headers",
    "build_timeout",
    "DEFAULT_ERROR_MESSAGES",
]


DEFAULT_ERROR_MESSAGES = {
    400: "Bad request",
    403: "Invalid Application-ID or API-Key",
    404: "Resource does not exist",
}


def build_headers(config):
    # type: (ClientConfig) -> httpx.Headers
    """
    Assemble request headers from a configuration snapshot.

    Extra headers are applied after the authentication headers and may replace
    them; the user agent is applied last.

    Header names are case-insensitive: a later value replaces an earlier one
    whose name differs only in case.

    :param config: Client configuration snapshot
    :return: Headers for one request
    """
    headers = httpx.Headers()
    headers["Accept-Encoding"] = "gzip"
    headers["X-Algolia-Application-Id"] = config.identity.application_id
    if config.forwarding is None:
        headers["X-Algolia-API-Key"] = config.identity.api_key
    else:
        headers["X-Algolia-API-Key"] = config.forwarding.admin_api_key
        headers["X-Forwarded-For"] = config.forwarding.end_user_ip
        headers["X-Forwarded-API-Key"] = config.forwarding.rate_limit_api_key
    for name, value in config.extra_headers.items():
        headers[name] = value
    headers["User-Agent"] = config.user_agent
    return headers


def build_timeout(config, search):
    # type: (ClientConfig, bool) -> httpx.Timeout
    """
    Translate the timeout profile into an httpx timeout for one request.

    :param config: Client configuration snapshot
    :param search: Whether the call is latency-sensitive
    :return: httpx.Timeout in seconds
    """
    connect = config.timeouts.connect_timeout_ms / 1000
    read = config.timeouts.read_timeout_ms(search) / 1000
    return httpx.Timeout(connect=connect, read=read, write=read, pool=connect)


class RequestDispatcher:
    """
    Executes requests against individual hosts over HTTPS.

    Owns a lazily created `httpx.Client`. Pass `transport` to route requests
    through a custom `httpx.BaseTransport` (e.g. `httpx.MockTransport` in tests).
    """

    def __init__(self, transport=None, scheme="https"):
        # type: (httpx.BaseTransport|None, str) -> None
        self.transport = transport
        self.scheme = scheme
        self._client = None  # type: httpx.Client|None
        self._lock = threading.Lock()

    @property
    def client(self):
        # type: () -> httpx.Client
        """
        Get or create HTTP client.

        Redirects are not followed and no retries happen below this layer;
        failover between hosts is the only retry mechanism.

        :return: httpx.Client instance
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = httpx.Client(transport=self.transport, follow_redirects=False)
        return self._client

    def attempt(self, host, request, config):
        # type: (str, ApiRequest, ClientConfig) -> RequestOutcome
        """
        Send a request to a single host and classify the outcome.

        - unusable host names, transport errors, 5xx and other non-2xx statuses: `SoftFailure`
        - 4xx: `TerminalFailure` with the response text or a default message
        - 2xx with undecodable body: `TerminalFailure` marked as malformed
        - 2xx with JSON body: `Success`

        :param host: Host name to send the request to
        :param request: Request to send
        :param config: Configuration snapshot for this call
        :return: Classified outcome
        """
        try:
            http_request = self.client.build_request(
                request.method.value,
                f"{self.scheme}://{host}{request.path}",
                headers=build_headers(config),
                content=request.encoded_body(),
                timeout=build_timeout(config, request.search),
            )
            if request.body is not None:
                http_request.headers["Content-Type"] = "application/json"
            response = self.client.send(http_request)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            return SoftFailure(host=host, reason=f"{type(e).__name__}={e}")

        try:
            return self._classify(host, response)
        finally:
            response.close()

    def _classify(self, host, response):
        # type: (str, httpx.Response) -> RequestOutcome
        code = response.status_code
        if 400 <= code < 500:
            message = response.text or DEFAULT_ERROR_MESSAGES.get(code, "Error")
            return TerminalFailure(status_code=code, message=message)

        if not response.is_success:
            return SoftFailure(host=host, reason=response.text or str(code))

        # httpx has already removed any gzip content-encoding at this point
        try:
            body = simdjson.loads(response.content.decode("utf-8"))
        except ValueError as e:
            logger.debug(f"{host}: undecodable response body ({e})")
            return TerminalFailure(status_code=code, message=f"JSON decode error: {e}", malformed=True)
        return Success(body=body)

    def close(self):
        # type: () -> None
        """
        Close HTTP client and cleanup resources.

        Idempotent - safe to call multiple times.
        """
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Closed search client HTTP session")
