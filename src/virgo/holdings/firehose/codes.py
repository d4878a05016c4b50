"""Location and library code classification.

Every predicate here is a pure function of a code string. Codes are
normalized (upper-cased, underscores and whitespace turned into dashes)
and then searched for any of the patterns in a table. A code that matches
no table is treated as an ordinary shelf location, which makes it visible
and available.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

type Pattern = re.Pattern[str]
type PatternSource = str | re.Pattern[str]


def codes(*args: PatternSource | Iterable[PatternSource]) -> tuple[Pattern, ...]:
    """Build an immutable pattern table.

    Strings are searched for as-is, compiled patterns are recompiled to
    ignore case. Nested tables are flattened and blank entries dropped.
    """
    patterns: list[Pattern] = []
    for arg in args:
        if isinstance(arg, (str, re.Pattern)):
            items: Iterable[PatternSource] = (arg,)
        else:
            items = arg
        for item in items:
            if isinstance(item, re.Pattern):
                patterns.append(re.compile(item.pattern, re.IGNORECASE))
            elif item.strip():
                patterns.append(re.compile(re.escape(item.strip()), re.IGNORECASE))
    return tuple(patterns)


def normalize(code: str | None) -> str:
    """Canonical form of a code: "mt_lake" and "Mt Lake" both become "MT-LAKE"."""
    if code is None:
        return ""
    return re.sub(r"[_\s]+", "-", str(code).strip()).upper()


def matches(code: str | None, *args: PatternSource | Iterable[PatternSource]) -> bool:
    normalized = normalize(code)
    if not normalized:
        return False
    return any(pattern.search(normalized) for pattern in codes(*args))


HOLD_LOCATIONS = codes(re.compile("HOLD"))
RESERVE_LOCATIONS = codes(re.compile("RESV"), re.compile("RSRV"), re.compile("RESERVE"))
REFERENCE_LOCATIONS = codes(re.compile("REF"), "FA-SLIDERF")
DESK_LOCATIONS = codes(re.compile("DESK"), "SERV-DSK")
NON_CIRC_LOCATIONS = REFERENCE_LOCATIONS + DESK_LOCATIONS

HIDDEN_LOCATIONS = codes(
    re.compile("LOST"),
    """
    UNKNOWN
    MISSING
    DISCARD
    WITHDRAWN
    BARRED
    BURSARED
    INTERNET
    ORD-CANCLD
    """.split(),
)

UNAVAILABLE_LOCATIONS = codes(
    HOLD_LOCATIONS,
    HIDDEN_LOCATIONS,
    """
    CHECKEDOUT
    ON-ORDER
    BINDERY
    INTRANSIT
    ILL
    CATALOGING
    PRESERVATN
    EXHIBIT
    GBP
    """.split(),
)

REMOTE_LIBRARIES = codes("SPEC-COLL", "BLANDY", "MT-LAKE", "AT-SEA", "INTERNET")

IN_PROCESS = "IN-PROCESS"


class HoldLibrary(Enum):
    """Libraries whose holdings are listed after all others, in this order."""

    ivy = "Ivy Stacks"
    blandy = "Blandy Experimental Farm"
    mt_lake = "Mountain Lake"
    at_sea = "Semester at Sea"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def ordered(cls) -> list[HoldLibrary]:
        return list(cls)


def hold_library(name_or_code: str | None) -> HoldLibrary | None:
    """The hold library a library code or display name refers to, if any."""
    for library in HoldLibrary:
        if matches(name_or_code, normalize(library.name), normalize(library.value)):
            return library
    return None


def ckey_converter(doc_id: str) -> str:
    """Turn a catalog document id ("u12345", "pdau12345") into an ILS item key."""
    return doc_id.removeprefix("pda")[1:]


class LocationMethods:
    """Classification of a location code. Mixed into anything with a `code`."""

    code: str | None

    @property
    def lost(self) -> bool:
        return matches(self.code, re.compile("LOST"))

    @property
    def missing(self) -> bool:
        return matches(self.code, "MISSING")

    @property
    def suppressed(self) -> bool:
        return matches(self.code, "BARRED")

    @property
    def hidden(self) -> bool:
        return matches(self.code, HIDDEN_LOCATIONS)

    @property
    def by_request(self) -> bool:
        return matches(self.code, "BY-REQUEST")

    @property
    def is_ivy(self) -> bool:
        return matches(self.code, re.compile("IVY"))

    @property
    def in_ivy(self) -> bool:
        return self.is_ivy or self.by_request

    @property
    def sc_ivy(self) -> bool:
        return matches(self.code, "SC-IVY")

    @property
    def not_ordered(self) -> bool:
        return matches(self.code, "NOTORDERED")

    @property
    def on_reserve(self) -> bool:
        return matches(self.code, RESERVE_LOCATIONS)

    @property
    def on_hold(self) -> bool:
        return matches(self.code, HOLD_LOCATIONS)

    @property
    def non_circulating(self) -> bool:
        return matches(self.code, NON_CIRC_LOCATIONS)

    @property
    def pending(self) -> bool:
        return matches(self.code, "ON-ORDER", IN_PROCESS)

    @property
    def in_process(self) -> bool:
        return matches(self.code, "SC-IN-PROC", IN_PROCESS)

    @property
    def in_transit(self) -> bool:
        return matches(self.code, "INTRANSIT")

    @property
    def sc_exhibit(self) -> bool:
        return matches(self.code, "DEC-IND-RM")


class LibraryMethods:
    """Classification of a library code."""

    code: str | None

    @property
    def leoable(self) -> bool:
        return not matches(self.code, REMOTE_LIBRARIES)

    @property
    def is_sas(self) -> bool:
        return matches(self.code, "AT-SEA")

    @property
    def is_special_collections(self) -> bool:
        return matches(self.code, "SPEC-COLL")

    @property
    def is_ivy(self) -> bool:
        return matches(self.code, re.compile("IVY"))
