"""Client-side access layer for the Algolia hosted search API."""

from importlib import metadata

__package_name__ = "algolia-search-client"
__author__ = "algolia"
__version__ = metadata.version(__package_name__)

from algolia_search.settings import ClientSettings, client_settings  # noqa: E402
from algolia_search.exceptions import (  # noqa: E402
    SearchError,
    ConfigurationError,
    ClientRequestError,
    MalformedResponseError,
    AllHostsUnreachableError,
)
from algolia_search.query import Query  # noqa: E402
from algolia_search.signing import generate_secured_api_key, sign  # noqa: E402
from algolia_search.client import SearchClient  # noqa: E402

__all__ = [
    "SearchClient",
    "Query",
    "ClientSettings",
    "client_settings",
    "generate_secured_api_key",
    "sign",
    "SearchError",
    "ConfigurationError",
    "ClientRequestError",
    "MalformedResponseError",
    "AllHostsUnreachableError",
]
