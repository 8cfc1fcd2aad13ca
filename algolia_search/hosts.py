"""
Host lists for build (mutating) and query (read) calls.

Order defines failover priority. Default lists start with the dedicated primary
endpoint and continue with three numbered fallback hosts on a shared domain.
"""

import ssl
from typing import Sequence

import msgspec

from algolia_search.exceptions import ConfigurationError


__all__ = [
    "HostSet",
    "probe_legacy_tls",
    "default_host_set",
    "PRIMARY_DOMAIN",
    "LEGACY_FALLBACK_DOMAIN",
    "FALLBACK_DOMAIN",
]


PRIMARY_DOMAIN = "algolia.net"
# Fallback domain reachable without SNI
LEGACY_FALLBACK_DOMAIN = "algolia.net"
FALLBACK_DOMAIN = "algolianet.com"


class HostSet(msgspec.Struct, frozen=True):
    """
    Ordered build and query host lists.

    :ivar build_hosts: Hosts for mutating operations, in priority order
    :ivar query_hosts: Hosts for read operations, in priority order
    """

    build_hosts: tuple[str, ...]
    query_hosts: tuple[str, ...]

    def __post_init__(self):
        if not self.build_hosts or not self.query_hosts:
            raise ConfigurationError("A list of hostnames is required")

    @classmethod
    def from_lists(cls, build_hosts, query_hosts=None):
        # type: (Sequence[str], Sequence[str]|None) -> HostSet
        """
        Create a host set from explicit lists.

        :param build_hosts: Build hosts; also used for queries when `query_hosts` is None
        :param query_hosts: Optional separate query hosts
        :return: New HostSet
        :raises ConfigurationError: If either list is empty
        """
        if query_hosts is None:
            query_hosts = build_hosts
        return cls(tuple(build_hosts or ()), tuple(query_hosts or ()))

    def hosts_for(self, build):
        # type: (bool) -> tuple[str, ...]
        """
        Hosts to try for a call, in order.

        :param build: True for mutating calls, False for reads
        :return: Build hosts or query hosts
        """
        return self.build_hosts if build else self.query_hosts


def probe_legacy_tls():
    # type: () -> bool
    """
    Detect whether the runtime TLS stack lacks SNI support.

    Evaluated once when a client is constructed; the result selects the default
    fallback domain.

    :return: True if SNI is not available
    """
    return not ssl.HAS_SNI


def default_host_set(application_id, legacy_tls=False):
    # type: (str, bool) -> HostSet
    """
    Build the default host lists for an application.

    :param application_id: Application ID used as host name prefix
    :param legacy_tls: Use the fallback domain that works without SNI
    :return: HostSet with primary hosts followed by fallbacks 1, 2, 3
    """
    fallback_domain = LEGACY_FALLBACK_DOMAIN if legacy_tls else FALLBACK_DOMAIN
    fallbacks = tuple(f"{application_id}-{i}.{fallback_domain}" for i in (1, 2, 3))
    return HostSet(
        build_hosts=(f"{application_id}.{PRIMARY_DOMAIN}",) + fallbacks,
        query_hosts=(f"{application_id}-dsn.{PRIMARY_DOMAIN}",) + fallbacks,
    )
