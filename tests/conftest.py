"""Test fixtures for search client testing."""

import gzip
import json

import httpx
import pytest


def _respond(status_code=200, data=None, text=None, headers=None, compress=False):
    # type: (int, object, str|None, dict|None, bool) -> callable
    """
    Build a route handler returning a fresh response for every request.

    :param status_code: HTTP status code
    :param data: JSON-serializable body
    :param text: Raw text body (used when data is None)
    :param headers: Extra response headers
    :param compress: Gzip the body and declare Content-Encoding: gzip
    """

    def handler(request):
        # type: (httpx.Request) -> httpx.Response
        body = json.dumps(data) if data is not None else (text or "")
        content = body.encode("utf-8")
        response_headers = dict(headers or {})
        if compress:
            content = gzip.compress(content)
            response_headers["Content-Encoding"] = "gzip"
        return httpx.Response(status_code, headers=response_headers, content=content)

    return handler


@pytest.fixture
def route():
    # type: () -> callable
    """
    Build an httpx.MockTransport that dispatches requests by host name.

    Each route value is either an exception instance to raise or a callable taking
    the request and returning a response. Every request seen by the transport is
    recorded in `transport.calls`.
    """

    def factory(routes):
        # type: (dict) -> httpx.MockTransport
        calls = []

        def handler(request):
            # type: (httpx.Request) -> httpx.Response
            calls.append(request)
            target = routes[request.url.host]
            if isinstance(target, Exception):
                raise target
            return target(request)

        transport = httpx.MockTransport(handler)
        transport.calls = calls
        return transport

    return factory


@pytest.fixture
def make_client(route):
    # type: (callable) -> callable
    """Create SearchClient instances backed by a routed mock transport."""
    from algolia_search.client import SearchClient

    clients = []

    def factory(routes, build_hosts=None, query_hosts=None, **kwargs):
        transport = route(routes)
        if build_hosts is None:
            build_hosts = list(routes)
        client = SearchClient("APPID", "apikey", build_hosts, query_hosts, transport=transport, **kwargs)
        clients.append(client)
        return client, transport

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def respond():
    # type: () -> callable
    """Factory for route handlers; see `_respond`."""
    return _respond
