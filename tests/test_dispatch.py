"""Tests for single-host request dispatch."""

import threading
import time

import httpx
import pytest

from algolia_search.dispatch import RequestDispatcher, build_headers, build_timeout
from algolia_search.models import (
    ApiRequest,
    ClientConfig,
    ClientIdentity,
    ForwardingContext,
    Method,
    SoftFailure,
    Success,
    TerminalFailure,
    TimeoutProfile,
)


@pytest.fixture
def config():
    # type: () -> ClientConfig
    """Configuration snapshot with distinct timeout values."""
    return ClientConfig(
        identity=ClientIdentity("APPID", "apikey"),
        timeouts=TimeoutProfile(connect_timeout_ms=1000, socket_timeout_ms=30000, search_timeout_ms=5000),
        user_agent="Algolia for Python test",
    )


@pytest.fixture
def dispatch(route):
    # type: (callable) -> callable
    """Send one request to host "h" answered by the given route handler."""
    dispatchers = []

    def factory(handler):
        transport = route({"h": handler})
        dispatcher = RequestDispatcher(transport=transport)
        dispatchers.append(dispatcher)
        return dispatcher, transport

    yield factory

    for dispatcher in dispatchers:
        dispatcher.close()


GET_INDEXES = ApiRequest(Method.GET, "/1/indexes/")


def test_build_headers_plain_key(config):
    # type: (ClientConfig) -> None
    """Test plain API key authentication headers."""
    headers = build_headers(config)
    assert headers == {
        "Accept-Encoding": "gzip",
        "X-Algolia-Application-Id": "APPID",
        "X-Algolia-API-Key": "apikey",
        "User-Agent": "Algolia for Python test",
    }


def test_build_headers_forwarding(config):
    # type: (ClientConfig) -> None
    """Test forwarding replaces the API key and adds forwarded headers."""
    forwarded = ClientConfig(
        identity=config.identity,
        timeouts=config.timeouts,
        user_agent=config.user_agent,
        forwarding=ForwardingContext("admin", "1.2.3.4", "limited"),
    )
    headers = build_headers(forwarded)
    assert headers["X-Algolia-API-Key"] == "admin"
    assert headers["X-Forwarded-For"] == "1.2.3.4"
    assert headers["X-Forwarded-API-Key"] == "limited"


def test_build_headers_extra_headers_precede_user_agent(config):
    # type: (ClientConfig) -> None
    """Test extra headers are merged and user agent is applied last."""
    custom = ClientConfig(
        identity=config.identity,
        timeouts=config.timeouts,
        user_agent=config.user_agent,
        extra_headers={"X-Custom": "1", "User-Agent": "ignored"},
    )
    headers = build_headers(custom)
    assert headers["X-Custom"] == "1"
    assert headers["User-Agent"] == "Algolia for Python test"


@pytest.mark.parametrize("name", ["user-agent", "x-algolia-api-key", "X-ALGOLIA-APPLICATION-ID"])
def test_build_headers_names_are_case_insensitive(config, name):
    # type: (ClientConfig, str) -> None
    """Test an extra header replaces a built-in header whose name differs only in case."""
    custom = ClientConfig(
        identity=config.identity,
        timeouts=config.timeouts,
        user_agent=config.user_agent,
        extra_headers={name: "mine"},
    )
    headers = build_headers(custom)
    assert len(headers.get_list(name)) == 1
    assert len(headers) == 4


def test_build_timeout_search_and_regular(config):
    # type: (ClientConfig) -> None
    """Test search calls get the search socket timeout."""
    search = build_timeout(config, search=True)
    regular = build_timeout(config, search=False)
    assert search.connect == regular.connect == 1.0
    assert search.read == 5.0
    assert regular.read == 30.0
    assert regular.pool == 1.0


def test_attempt_success(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test 2xx JSON response is a success with parsed body."""
    dispatcher, transport = dispatch(respond(200, {"items": []}))
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert outcome == Success(body={"items": []})
    request = transport.calls[0]
    assert str(request.url) == "https://h/1/indexes/"
    assert request.method == "GET"
    assert request.headers["X-Algolia-Application-Id"] == "APPID"
    assert request.headers["X-Algolia-API-Key"] == "apikey"
    assert request.headers["Accept-Encoding"] == "gzip"
    assert request.headers["User-Agent"] == "Algolia for Python test"
    assert "Content-Type" not in request.headers


def test_attempt_gzip_response(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test gzip-encoded responses are decompressed before parsing."""
    dispatcher, _ = dispatch(respond(200, {"compressed": True}, compress=True))
    assert dispatcher.attempt("h", GET_INDEXES, config) == Success(body={"compressed": True})


def test_attempt_sends_json_body(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test request bodies are sent as UTF-8 JSON with content type."""
    dispatcher, transport = dispatch(respond(201, {"key": "k"}))
    request = ApiRequest(Method.POST, "/1/keys", body={"acl": ["search"], "description": "né"}, build=True)
    assert dispatcher.attempt("h", request, config) == Success(body={"key": "k"})
    sent = transport.calls[0]
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.content == '{"acl":["search"],"description":"né"}'.encode("utf-8")


def test_attempt_sends_prebuilt_json_string(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test string bodies are sent verbatim."""
    dispatcher, transport = dispatch(respond(200, {}))
    request = ApiRequest(Method.PUT, "/1/keys/k", body='{"acl": []}')
    dispatcher.attempt("h", request, config)
    assert transport.calls[0].content == b'{"acl": []}'


def test_attempt_applies_timeouts(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test per-request timeout reflects the call class."""
    dispatcher, transport = dispatch(respond(200, {}))
    dispatcher.attempt("h", ApiRequest(Method.POST, "/1/indexes/*/queries", body={}, search=True), config)
    dispatcher.attempt("h", GET_INDEXES, config)
    search_timeout, regular_timeout = (r.extensions["timeout"] for r in transport.calls)
    assert search_timeout["read"] == 5.0
    assert regular_timeout["read"] == 30.0
    assert search_timeout["connect"] == regular_timeout["connect"] == 1.0


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("Connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.ConnectTimeout("timed out"),
    ],
)
def test_attempt_transport_error_is_soft(dispatch, config, error):
    # type: (callable, ClientConfig, Exception) -> None
    """Test network errors become soft failures with class and message."""
    dispatcher, _ = dispatch(error)
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert isinstance(outcome, SoftFailure)
    assert outcome.host == "h"
    assert outcome.reason == f"{type(error).__name__}={error}"


@pytest.mark.parametrize(
    "code, message",
    [
        (400, "Bad request"),
        (403, "Invalid Application-ID or API-Key"),
        (404, "Resource does not exist"),
        (429, "Error"),
    ],
)
def test_attempt_4xx_default_messages(dispatch, respond, config, code, message):
    # type: (callable, callable, ClientConfig, int, str) -> None
    """Test 4xx without body uses the default message for the status."""
    dispatcher, _ = dispatch(respond(code))
    assert dispatcher.attempt("h", GET_INDEXES, config) == TerminalFailure(status_code=code, message=message)


def test_attempt_4xx_prefers_body(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test 4xx response text is used as message when present."""
    dispatcher, _ = dispatch(respond(404, text='{"message":"Index does not exist"}'))
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert outcome == TerminalFailure(status_code=404, message='{"message":"Index does not exist"}')


def test_attempt_5xx_is_soft(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test server errors are soft failures carrying the body."""
    dispatcher, _ = dispatch(respond(503, text="Service Unavailable"))
    assert dispatcher.attempt("h", GET_INDEXES, config) == SoftFailure(host="h", reason="Service Unavailable")


def test_attempt_5xx_without_body_reports_status(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test server errors without body report the status code."""
    dispatcher, _ = dispatch(respond(500))
    assert dispatcher.attempt("h", GET_INDEXES, config) == SoftFailure(host="h", reason="500")


def test_attempt_redirect_is_soft(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test redirects are not followed and count as soft failures."""
    dispatcher, transport = dispatch(respond(302, headers={"Location": "https://elsewhere/"}))
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert outcome == SoftFailure(host="h", reason="302")
    assert len(transport.calls) == 1


@pytest.mark.parametrize("text", ["not json", "", "{\"truncated\": "])
def test_attempt_malformed_success_is_terminal(dispatch, respond, config, text):
    # type: (callable, callable, ClientConfig, str) -> None
    """Test undecodable 2xx body is a terminal malformed failure."""
    dispatcher, _ = dispatch(respond(200, text=text))
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert isinstance(outcome, TerminalFailure)
    assert outcome.malformed is True
    assert outcome.status_code == 200
    assert outcome.message.startswith("JSON decode error: ")


def test_attempt_invalid_utf8_is_terminal(dispatch, config):
    # type: (callable, ClientConfig) -> None
    """Test a 2xx body that is not UTF-8 is a terminal malformed failure."""
    dispatcher, _ = dispatch(lambda request: httpx.Response(200, content=b'{"a": "\xff"}'))
    outcome = dispatcher.attempt("h", GET_INDEXES, config)
    assert isinstance(outcome, TerminalFailure)
    assert outcome.malformed is True


def test_dispatcher_lazy_client_and_close():
    # type: () -> None
    """Test HTTP client is created lazily and close is idempotent."""
    dispatcher = RequestDispatcher()
    assert dispatcher._client is None
    client = dispatcher.client
    assert dispatcher._client is client
    dispatcher.close()
    assert dispatcher._client is None
    dispatcher.close()
    assert dispatcher._client is None


def test_dispatcher_creates_one_client_under_concurrency(monkeypatch):
    # type: (pytest.MonkeyPatch) -> None
    """Test concurrent first access to the lazy client creates a single httpx.Client."""
    created = []
    original_init = httpx.Client.__init__

    def slow_init(self, *args, **kwargs):
        created.append(self)
        time.sleep(0.05)
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(httpx.Client, "__init__", slow_init)
    dispatcher = RequestDispatcher()
    barrier = threading.Barrier(4)
    seen = []

    def read_client():
        barrier.wait()
        seen.append(dispatcher.client)

    threads = [threading.Thread(target=read_client) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    try:
        assert len(created) == 1
        assert all(client is seen[0] for client in seen)
    finally:
        dispatcher.close()


def test_attempt_invalid_host_is_soft(dispatch, respond, config):
    # type: (callable, callable, ClientConfig) -> None
    """Test a host name httpx cannot build a URL from becomes a soft failure."""
    dispatcher, transport = dispatch(respond(200, {}))
    outcome = dispatcher.attempt("bad\nhost", GET_INDEXES, config)
    assert isinstance(outcome, SoftFailure)
    assert outcome.host == "bad\nhost"
    assert outcome.reason.startswith("InvalidURL=")
    assert transport.calls == []
