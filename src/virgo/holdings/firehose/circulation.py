from __future__ import annotations

import re
from collections.abc import Mapping

from virgo.holdings.firehose.api import CacheOptions, FirehoseApi, FirehoseResponse
from virgo.holdings.firehose.codes import ckey_converter
from virgo.holdings.firehose.exceptions import (
    FirehoseRequestError,
    HoldError,
    RenewError,
)
from virgo.holdings.firehose.models import (
    DocumentResolver,
    LibraryList,
    LocationList,
    User,
)
from virgo.holdings.firehose.parser import (
    parse_library_list,
    parse_location_list,
    parse_user,
    parse_violation,
)
from virgo.holdings.util.http.base import is_success_or_redirect
from virgo.holdings.util.log import LoggerMixin

type MessageTable = Mapping[str, tuple[str | re.Pattern[str] | None, str]]


class FirehoseCirculation(LoggerMixin):
    """Patron lookups and circulation requests against the ILS.

    Lookups share the gateway's failure policy: network errors are raised,
    anything else gives None. Requests are never cached or retried, and a
    refused request raises HoldError or RenewError with a message that can
    be shown to the patron.
    """

    # Key -> (what the ILS says, what the patron is told). The first
    # entry whose pattern appears in the ILS message wins; None matches
    # anything.
    HOLD_MESSAGES: MessageTable = {
        "no_items": ("no items", "There were no items to request"),
        "not_cataloged": (
            "does not exist",
            "This item is not available for requests yet",
        ),
        "failed": (None, "Unable to request items right now"),
    }

    RENEW_MESSAGES: MessageTable = {
        "no_items": (re.compile("no items", re.I), "There were no items to renew"),
        "failed": (None, "Unable to renew all items right now"),
    }

    def __init__(
        self, api: FirehoseApi, document_resolver: DocumentResolver | None = None
    ) -> None:
        self.api = api
        self.document_resolver = document_resolver

    # Lookups

    def _user(
        self, *path: str, operation: str, cache_options: CacheOptions | None
    ) -> User | None:
        return self.api.lookup(
            *path,
            parse=lambda xml: parse_user(xml, self.document_resolver),
            cache_options=cache_options,
            operation=operation,
        )

    def get_patron(
        self, computing_id: str | None, cache_options: CacheOptions | None = None
    ) -> User | None:
        computing_id = (computing_id or "").strip()
        if not computing_id:
            return None
        return self._user(
            "users", computing_id, operation="get_patron", cache_options=cache_options
        )

    @staticmethod
    def check_pin(patron: User | None, pin: str | None) -> bool:
        if not isinstance(patron, User):
            return False
        return patron.pin == (pin or "").strip()

    def get_checkouts(
        self, computing_id: str | None, cache_options: CacheOptions | None = None
    ) -> User | None:
        if not computing_id:
            return None
        return self._user(
            "users",
            computing_id,
            "checkouts",
            operation="get_checkouts",
            cache_options=cache_options,
        )

    def get_holds(
        self, computing_id: str | None, cache_options: CacheOptions | None = None
    ) -> User | None:
        if not computing_id:
            return None
        return self._user(
            "users",
            computing_id,
            "holds",
            operation="get_holds",
            cache_options=cache_options,
        )

    def get_reserves(
        self, computing_id: str | None, cache_options: CacheOptions | None = None
    ) -> User | None:
        if not computing_id:
            return None
        return self._user(
            "users",
            computing_id,
            "reserves",
            operation="get_reserves",
            cache_options=cache_options,
        )

    def get_library_list(
        self, cache_options: CacheOptions | None = None
    ) -> LibraryList | None:
        return self.api.lookup(
            "list",
            "libraries",
            parse=parse_library_list,
            cache_options=cache_options,
            operation="get_library_list",
        )

    def get_location_list(
        self, cache_options: CacheOptions | None = None
    ) -> LocationList | None:
        return self.api.lookup(
            "list",
            "locations",
            parse=parse_location_list,
            cache_options=cache_options,
            operation="get_location_list",
        )

    # Requests

    def place_hold(
        self,
        computing_id: str | None,
        document_id: str,
        library_id: str,
        call_number: str | None = None,
    ) -> str | None:
        if not computing_id:
            return None
        data = {
            "computingId": computing_id,
            "catalogId": ckey_converter(document_id),
            "pickupLibraryId": library_id,
        }
        if call_number:
            data["callNumber"] = call_number
        response = self.api.post("request", "hold", data=data)
        return self._check_response(
            response, "place_hold", HoldError, self.HOLD_MESSAGES
        )

    def renew(
        self, computing_id: str | None, checkout_key: str | None = None
    ) -> str | None:
        if not computing_id:
            return None
        response = self.api.post(
            "request",
            "renew",
            data={"computingId": computing_id, "checkoutKey": checkout_key},
        )
        return self._check_response(response, "renew", RenewError, self.RENEW_MESSAGES)

    def renew_all(self, computing_id: str | None) -> str | None:
        if not computing_id:
            return None
        response = self.api.post(
            "request", "renewAll", data={"computingId": computing_id}
        )
        return self._check_response(
            response, "renew_all", RenewError, self.RENEW_MESSAGES
        )

    def _check_response(
        self,
        response: FirehoseResponse,
        operation: str,
        error_class: type[FirehoseRequestError],
        messages: MessageTable,
    ) -> str:
        """Return the response body, or raise if the ILS refused the request.

        A successful status whose body is a FirehoseViolation is a refusal.
        """
        if is_success_or_redirect(response.status_code) and (
            parse_violation(response.text) is None
        ):
            return response.text
        message = self.error_message(response, operation)
        raise error_class(self.patron_message(message, messages))

    @staticmethod
    def patron_message(message: str, messages: MessageTable) -> str:
        for pattern, patron_message in messages.values():
            if pattern is None:
                return patron_message
            if isinstance(pattern, re.Pattern):
                if pattern.search(message):
                    return patron_message
            elif pattern in message:
                return patron_message
        return message

    def error_message(
        self, response: FirehoseResponse | None, operation: str | None = None
    ) -> str:
        """The ILS's explanation of a failed request."""
        body = response.text if response is not None else None
        violation = parse_violation(body) if body else None
        code = violation.code if violation else None
        message = violation.message if violation else None

        if message:
            log = [f"FIREHOSE {operation}: {message}", f"code {code!r}"]
            if body:
                log.append(f"body {body}")
            self.log.info("; ".join(log))
            return message

        if response is None:
            message = "no HTTP result"
        elif not body:
            message = "empty HTTP result body"
        elif "Exception" in body:
            message = "Firehose internal server error"
        else:
            message = "unknown failure"
        self.log.warning(f"FIREHOSE {operation}: {message}; code {code!r}")
        return message
