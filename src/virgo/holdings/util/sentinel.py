from __future__ import annotations

from enum import Enum


class SentinelType(Enum):
    """
    Sentinel values used throughout the holdings codebase.

    If https://peps.python.org/pep-0661/ is accepted, we should update this is use
    a proper sentinel value. For now, we use this enum, since we can type check it.

    It can be type hinted as: Literal[SentinelType.NotGiven]
    """

    NotGiven = "NotGiven"
    """
    We use this so we can differentiate between a variable that is not given
    and a variable that is given as None.
    """
