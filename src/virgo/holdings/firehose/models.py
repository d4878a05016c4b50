from __future__ import annotations

import dataclasses
import datetime
import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from virgo.holdings.core.exceptions import HoldingsValueError
from virgo.holdings.firehose.codes import (
    IN_PROCESS,
    UNAVAILABLE_LOCATIONS,
    LibraryMethods,
    LocationMethods,
    codes,
    matches,
)
from virgo.holdings.util.datetime_helpers import display_date

if TYPE_CHECKING:
    from virgo.holdings.firehose.document import BibliographicDocument

type DocumentResolver = Callable[[str], BibliographicDocument | None]

# IN-PROCESS copies are unavailable unless they belong to the Special
# Collections Ivy location.
UNAVAILABLE_UNLESS_SC_IVY = UNAVAILABLE_LOCATIONS + codes(IN_PROCESS)

UNKNOWN_TITLE = "???"


@dataclasses.dataclass(kw_only=True)
class Library(LibraryMethods):
    id: str | None = None
    code: str | None = None
    name: str | None = None
    deliverable: bool = False
    holdable: bool = False


@dataclasses.dataclass(kw_only=True)
class HomeLibrary(Library):
    """The library that owns a holding.

    When built from a record's summary holdings it also collects the
    summary locations seen for it, in the order they were first seen.
    """

    summary_locations: list[HomeLocation] = dataclasses.field(default_factory=list)

    def summary_location(self, name: str | None) -> HomeLocation:
        """Find the summary location with this name, adding it if needed."""
        for location in self.summary_locations:
            if location.name == name:
                return location
        location = HomeLocation(name=name)
        self.summary_locations.append(location)
        return location


@dataclasses.dataclass(kw_only=True)
class LibraryList:
    libraries: list[Library] = dataclasses.field(default_factory=list)

    def names_and_ids(self) -> list[tuple[str, str]]:
        """(name, id) for every library that can receive deliveries, by name."""
        ordered = sorted(self.libraries, key=lambda library: library.name or "")
        return [
            (library.name or "", library.id or "")
            for library in ordered
            if library.deliverable
        ]


@dataclasses.dataclass(kw_only=True)
class Summary:
    text: str = ""
    note: str | None = None
    call_number_information: str | None = None

    def __post_init__(self) -> None:
        self.text = self.text.removesuffix(",")


@dataclasses.dataclass(kw_only=True)
class Location(LocationMethods):
    id: str | None = None
    code: str | None = None
    name: str | None = None


@dataclasses.dataclass(kw_only=True)
class HomeLocation(Location):
    summaries: list[Summary] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(kw_only=True)
class CurrentLocation(Location):
    pass


@dataclasses.dataclass(kw_only=True)
class LocationList:
    locations: list[Location] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(kw_only=True)
class ItemType:
    code: str | None = None


@dataclasses.dataclass(kw_only=True)
class Copy(LocationMethods):
    """A single physical item.

    All location predicates of a copy are answered by its current location.
    """

    copy_number: int | None = None
    barcode: str | None = None
    shadowed: bool = False
    current_periodical: bool = False
    last_checkout: datetime.date | None = None
    circulate: str | None = None
    current_location: CurrentLocation = dataclasses.field(
        default_factory=CurrentLocation
    )
    home_location: HomeLocation = dataclasses.field(default_factory=HomeLocation)
    item_type: ItemType | None = None

    @property
    def code(self) -> str | None:  # type: ignore[override]
        return self.current_location.code

    @property
    def exists(self) -> bool:
        return not (self.shadowed or self.not_ordered or self.pending)

    @property
    def available(self) -> bool:
        if self.shadowed:
            return False
        if self.home_location.sc_ivy:
            unavailable = UNAVAILABLE_LOCATIONS
        else:
            unavailable = UNAVAILABLE_UNLESS_SC_IVY
        return not matches(self.current_location.code, unavailable)

    @property
    def circulates(self) -> bool:
        return bool(re.search("[YM]", self.circulate or ""))

    @property
    def sc_requestable(self) -> bool:
        return not self.current_location.sc_ivy and not (
            self.home_location.sc_ivy and self.in_process
        )

    @property
    def last_checkout_display(self) -> str:
        return display_date(self.last_checkout)


@dataclasses.dataclass(kw_only=True)
class Holding:
    """A call number at a library, with the copies shelved under it."""

    call_sequence: int | None = None
    call_number: str | None = None
    holdable: bool = False
    shadowed: bool = False
    shelving_key: str | None = None
    copies: list[Copy] = dataclasses.field(default_factory=list)
    library: HomeLibrary = dataclasses.field(default_factory=HomeLibrary)

    @property
    def voided(self) -> bool:
        return "VOID" in (self.call_number or "").upper()

    @property
    def leoable(self) -> bool:
        return self.library.leoable

    @property
    def is_special_collections(self) -> bool:
        return self.library.is_special_collections

    @property
    def has_ivy_holdings(self) -> bool:
        if self.library.is_ivy:
            return bool(self.copies)
        return any(copy.in_ivy for copy in self.copies)

    @property
    def available_copies(self) -> int:
        # Only existing copies count, so this never exceeds existing_copies.
        return sum(1 for copy in self.copies if copy.available and copy.exists)

    @property
    def reserve_copies(self) -> int:
        return sum(1 for copy in self.copies if copy.on_reserve)

    @property
    def circulating_copies(self) -> int:
        return sum(1 for copy in self.copies if copy.circulates)

    @property
    def special_collections_copies(self) -> int:
        return self.existing_copies if self.is_special_collections else 0

    @property
    def existing_copies(self) -> int:
        return sum(1 for copy in self.copies if copy.exists)


@dataclasses.dataclass(kw_only=True)
class Holdability:
    value: str | None = None
    message: str | None = None

    @property
    def holdable(self) -> bool:
        return (self.value or "").lower() in ("yes", "maybe")


@dataclasses.dataclass(kw_only=True)
class PickupLibrary:
    id: str | None = None
    code: str | None = None
    name: str | None = None


@dataclasses.dataclass(kw_only=True)
class CatalogItem:
    """The ILS view of a catalog record: its holdings and whether it can be
    requested.

    The catalog record itself is looked up through `document_resolver` the
    first time it is needed, unless it was assigned before that.
    """

    key: str | None = None
    status: int | None = None
    holdings: list[Holding] = dataclasses.field(default_factory=list)
    holdability: Holdability = dataclasses.field(default_factory=Holdability)
    document_resolver: DocumentResolver | None = dataclasses.field(
        default=None, repr=False, compare=False
    )
    _document: BibliographicDocument | None = dataclasses.field(
        default=None, init=False, repr=False, compare=False
    )
    _document_resolved: bool = dataclasses.field(
        default=False, init=False, repr=False, compare=False
    )

    @property
    def document(self) -> BibliographicDocument | None:
        if not self._document_resolved:
            self._document_resolved = True
            if self.document_resolver is not None and self.key:
                self._document = self.document_resolver(f"u{self.key}")
        return self._document

    @document.setter
    def document(self, document: BibliographicDocument) -> None:
        if self._document is not None:
            raise HoldingsValueError("document should only be assigned once")
        self._document = document
        self._document_resolved = True

    @property
    def title(self) -> str:
        document = self.document
        return (document.title if document else None) or UNKNOWN_TITLE

    @property
    def authors(self) -> str:
        document = self.document
        if document is None:
            return UNKNOWN_TITLE
        return document.authors or ""

    @property
    def available_copies(self) -> int:
        return sum(holding.available_copies for holding in self.holdings)

    @property
    def reserve_copies(self) -> int:
        return sum(holding.reserve_copies for holding in self.holdings)

    @property
    def circulating_copies(self) -> int:
        return sum(holding.circulating_copies for holding in self.holdings)

    @property
    def special_collections_copies(self) -> int:
        return sum(holding.special_collections_copies for holding in self.holdings)

    @property
    def existing_copies(self) -> int:
        return sum(holding.existing_copies for holding in self.holdings)

    @property
    def has_ivy_holdings(self) -> bool:
        return any(holding.has_ivy_holdings for holding in self.holdings)

    @property
    def leoable(self) -> bool:
        return any(holding.leoable for holding in self.holdings)

    @property
    def holdable(self) -> bool:
        return self.holdability.holdable

    @property
    def holdability_error(self) -> str | None:
        return self.holdability.message

    def has_holdable_holding(self, call_number: str | None) -> bool:
        if not call_number:
            return False
        return call_number in self.holdable_call_numbers

    @property
    def holdable_call_numbers(self) -> list[str]:
        call_numbers = (
            holding.call_number
            for holding in self.holdings
            if holding.holdable and holding.call_number
        )
        return list(dict.fromkeys(call_numbers))


@dataclasses.dataclass(kw_only=True)
class Hold:
    type: str | None = None
    level: str | None = None
    active: bool = False
    key: str | None = None
    priority: int | None = None
    date_placed: datetime.date | None = None
    date_notified: datetime.date | None = None
    date_recalled: datetime.date | None = None
    inactive_reason: str | None = None
    catalog_item: CatalogItem = dataclasses.field(default_factory=CatalogItem)
    pickup_library: PickupLibrary | None = None

    @property
    def date_placed_display(self) -> str:
        return display_date(self.date_placed)

    @property
    def date_notified_display(self) -> str:
        return display_date(self.date_notified)

    @property
    def date_recalled_display(self) -> str:
        return display_date(self.date_recalled)


@dataclasses.dataclass(kw_only=True)
class Reserve:
    key: str | None = None
    active: str | None = None
    status: str | None = None
    number_of_reserves: int | None = None
    keep_copies_at_desk: bool = False
    automatically_select_copies: bool = False
    catalog_item: CatalogItem = dataclasses.field(default_factory=CatalogItem)


@dataclasses.dataclass(kw_only=True)
class Course:
    key: str | None = None
    code: str | None = None
    name: str | None = None
    number_of_reserves: int | None = None
    number_of_students: int | None = None
    terms_offered: int | None = None
    reserves: list[Reserve] = dataclasses.field(default_factory=list)

    @property
    def sorted_reserves(self) -> list[Reserve]:
        return sorted(self.reserves, key=lambda reserve: reserve.catalog_item.title)


@dataclasses.dataclass(kw_only=True)
class Renewability:
    code: str | None = None
    value: str | None = None
    message: str | None = None


@dataclasses.dataclass(kw_only=True)
class Checkout:
    key: str | None = None
    status: int | None = None
    overdue: bool = False
    circulation_rule: int | None = None
    date_charged: datetime.date | None = None
    date_due: datetime.date | None = None
    date_renewed: datetime.date | None = None
    date_recalled: datetime.date | None = None
    number_overdue_notices: int | None = None
    number_recall_notices: int | None = None
    number_renewals: int | None = None
    catalog_item: CatalogItem = dataclasses.field(default_factory=CatalogItem)
    renewability: Renewability = dataclasses.field(default_factory=Renewability)

    @property
    def renewable(self) -> bool:
        return self.renewability.value == "yes"

    @property
    def recalled(self) -> bool:
        return self.date_recalled_display != "Never"

    @property
    def date_charged_display(self) -> str:
        return display_date(self.date_charged)

    @property
    def date_due_display(self) -> str:
        return display_date(self.date_due)

    @property
    def date_recalled_display(self) -> str:
        return display_date(self.date_recalled)

    @property
    def date_renewed_display(self) -> str:
        return display_date(self.date_renewed)


def _same(value: str | None, expected: str) -> bool:
    return (value or "").casefold() == expected.casefold()


_VIRGINIA_BORROWER = re.compile("Virginia Borrower|Other VA Faculty|Alumn", re.I)
_EARLIEST = datetime.date.min


@dataclasses.dataclass(kw_only=True)
class User:
    """A patron, as known to the ILS.

    `profile` comes from the ILS and `description` from the campus
    directory; either one can grant a role.
    """

    key: str | None = None
    sirsi_id: str | None = None
    computing_id: str | None = None
    barred: bool = False
    bursarred: bool = False
    delinquent: bool = False
    display_name: str | None = None
    email: str | None = None
    library_group: int | None = None
    organizational_unit: str | None = None
    preferred_language: int | None = None
    profile: str | None = None
    checkout_count: int | None = None
    hold_count: int | None = None
    overdue_count: int | None = None
    reserve_count: int | None = None
    recalled_count: int | None = None
    physical_delivery: str | None = None
    description: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    status_id: int | None = None
    telephone: str | None = None
    title: str | None = None
    pin: str | None = None
    groups: list[str] = dataclasses.field(default_factory=list)
    holds: list[Hold] = dataclasses.field(default_factory=list)
    courses: list[Course] = dataclasses.field(default_factory=list)
    checkouts: list[Checkout] = dataclasses.field(default_factory=list)

    @property
    def sorted_holds(self) -> list[Hold]:
        return sorted(
            self.holds,
            key=lambda hold: (hold.date_placed or _EARLIEST, hold.catalog_item.title),
        )

    @property
    def sorted_courses(self) -> list[Course]:
        return sorted(self.courses, key=lambda course: course.code or "")

    @property
    def sorted_checkouts(self) -> list[Checkout]:
        return sorted(
            self.checkouts,
            key=lambda checkout: (
                checkout.date_charged or _EARLIEST,
                checkout.catalog_item.title,
            ),
        )

    @property
    def faculty(self) -> bool:
        return _same(self.profile, "Faculty") or _same(self.description, "Faculty")

    @property
    def instructor(self) -> bool:
        return _same(self.profile, "Instructor") or _same(
            self.description, "Instructor"
        )

    @property
    def staff(self) -> bool:
        return _same(self.profile, "Staff") or _same(self.description, "Staff")

    @property
    def graduate(self) -> bool:
        return _same(self.profile, "Graduate") or _same(
            self.description, "Graduate Student"
        )

    @property
    def undergraduate(self) -> bool:
        return _same(self.profile, "Undergraduate") or _same(
            self.description, "Undergraduate Student"
        )

    @property
    def continuing_ed(self) -> bool:
        return _same(self.profile, "Continuing Education") or _same(
            self.description, "Continuing Education"
        )

    @property
    def virginia_borrower(self) -> bool:
        if not self.profile or not self.profile.strip():
            return True
        return bool(_VIRGINIA_BORROWER.search(self.profile))

    @property
    def can_use_leo(self) -> bool:
        return self.faculty

    @property
    def can_use_ill(self) -> bool:
        return not self.virginia_borrower

    @property
    def can_make_reserves(self) -> bool:
        return not self.undergraduate and not self.virginia_borrower

    @property
    def can_request_purchase(self) -> bool:
        return True

    @property
    def can_request_scanning(self) -> bool:
        return True


@dataclasses.dataclass(kw_only=True)
class Violation:
    """An error report from the ILS."""

    code: str | None = None
    message: str | None = None

    def __str__(self) -> str:
        return f"{self.code!r}: {self.message!r}"
