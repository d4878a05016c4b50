from virgo.holdings.core.exceptions import BaseHoldingsException


class FirehoseParseError(BaseHoldingsException):
    """A Firehose response body could not be turned into the expected document."""


class FirehoseRequestError(BaseHoldingsException):
    """The ILS refused a write request (hold or renewal)."""


class HoldError(FirehoseRequestError):
    """A hold could not be placed. The message is suitable for patrons."""


class RenewError(FirehoseRequestError):
    """One or more items could not be renewed. The message is suitable for patrons."""
