from __future__ import annotations

from typing import Any, Self
from urllib.parse import urlparse

import requests

from virgo.holdings.core.exceptions import HoldingsValueError, IntegrationException


class RemoteIntegrationException(IntegrationException):
    """An exception that happens when we try and fail to communicate
    with a third-party service over HTTP.
    """

    internal_message = "Error accessing %s: %s"

    def __init__(
        self, url_or_service: str, message: str, debug_message: str | None = None
    ) -> None:
        """Indicate that a remote integration has failed.

        `param url_or_service` The name of the service that failed
           (e.g. "Firehose"), or the specific URL that had the problem.
        """
        if url_or_service and any(
            url_or_service.startswith(x) for x in ("http:", "https:")
        ):
            self.url = url_or_service
            self.service = urlparse(url_or_service).netloc
        else:
            self.url = self.service = url_or_service

        super().__init__(message, debug_message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.debug_message:
            message += "\n\n" + self.debug_message
        return self.internal_message % (self.url, message)


class BadResponseException(RemoteIntegrationException):
    """The request seemingly went okay, but we got a bad response."""

    internal_message = "Bad response from %s: %s"

    BAD_STATUS_CODE_MESSAGE = (
        "Got status code %s from external server, cannot continue."
    )

    def __init__(
        self,
        url_or_service: str,
        message: str,
        response: requests.Response,
        debug_message: str | None = None,
    ):
        """Indicate that a remote integration has failed.

        :param url_or_service: The name of the service that failed
           (e.g. "Firehose"), or the specific URL that had the problem.
        :param message: The error message
        :param response: The HTTP response object
        :param debug_message: Optional debug message
        """
        if debug_message is None:
            debug_message = (
                f"Status code: {response.status_code}\nContent: {response.text}"
            )

        super().__init__(url_or_service, message, debug_message)
        self.response = response

    @classmethod
    def bad_status_code(cls, url: str, response: requests.Response) -> Self:
        """The response is bad because the status code is wrong."""
        message = cls.BAD_STATUS_CODE_MESSAGE % response.status_code
        return cls(
            url,
            message,
            response,
        )

    def __getstate__(self) -> dict[str, Any]:
        return {"dict": self.__dict__, "args": self.args}

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            raise HoldingsValueError(
                "Cannot deserialize BadResponseException with no state"
            )

        self.__dict__.update(state["dict"])
        self.args = state["args"]


class RequestNetworkException(RemoteIntegrationException):
    """The connection to a third-party service failed before a complete
    response was received (connection refused or reset, premature end of
    stream, failed proxy transport).
    """

    internal_message = "Network error contacting %s: %s"


class RequestTimedOut(RequestNetworkException):
    """A request to a third-party service timed out."""

    internal_message = "Timeout accessing %s: %s"
