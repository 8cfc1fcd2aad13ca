"""
Host failover.

Tries the hosts of a call's class strictly in order. Soft failures are recorded and
the next host is tried; a terminal failure or a success ends the loop immediately.
No state is kept between calls, so every call starts again with the first host.
"""

from typing import Sequence

from loguru import logger

from algolia_search.dispatch import RequestDispatcher
from algolia_search.exceptions import (
    AllHostsUnreachableError,
    ClientRequestError,
    MalformedResponseError,
    SearchError,
)
from algolia_search.models import (
    ApiRequest,
    ClientConfig,
    FailoverResult,
    SoftFailure,
    Success,
    TerminalFailure,
)


__all__ = ["FailoverController", "terminal_error"]


def terminal_error(outcome):
    # type: (TerminalFailure) -> SearchError
    """
    Convert a terminal outcome into the exception surfaced to the caller.

    :param outcome: Terminal failure returned by the dispatcher
    :return: MalformedResponseError or ClientRequestError
    """
    if outcome.malformed:
        return MalformedResponseError(outcome.message, status_code=outcome.status_code)
    return ClientRequestError(outcome.status_code, outcome.message)


class FailoverController:
    """Runs one call across an ordered host list."""

    def __init__(self, dispatcher, verbose=False):
        # type: (RequestDispatcher, bool) -> None
        self.dispatcher = dispatcher
        self.verbose = verbose

    def execute(self, hosts, request, config):
        # type: (Sequence[str], ApiRequest, ClientConfig) -> FailoverResult
        """
        Send a request to each host in turn until one answers.

        :param hosts: Hosts in priority order
        :param request: Request to send
        :param config: Configuration snapshot used for every attempt
        :return: Result of the first successful host with earlier soft failures
        :raises ClientRequestError: On the first 4xx response
        :raises MalformedResponseError: If a 2xx response body cannot be decoded
        :raises AllHostsUnreachableError: If every host failed softly
        """
        errors = {}  # type: dict[str, str]
        level = "INFO" if self.verbose else "DEBUG"

        for host in hosts:
            outcome = self.dispatcher.attempt(host, request, config)
            if isinstance(outcome, Success):
                return FailoverResult(body=outcome.body, host=host, errors=errors)
            if isinstance(outcome, TerminalFailure):
                logger.warning(
                    f"{request.method.value} {request.path} failed on {host}: "
                    f"{outcome.status_code} {outcome.message}"
                )
                raise terminal_error(outcome)
            if isinstance(outcome, SoftFailure):
                logger.log(level, f"{outcome.host}: {outcome.reason}")
                errors[outcome.host] = outcome.reason

        error = AllHostsUnreachableError(errors)
        logger.error(f"{request.method.value} {request.path}: {error.message}")
        raise error
