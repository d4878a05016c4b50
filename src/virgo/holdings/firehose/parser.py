from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from lxml import etree

from virgo.holdings.firehose.exceptions import FirehoseParseError
from virgo.holdings.firehose.models import (
    CatalogItem,
    Checkout,
    Copy,
    Course,
    CurrentLocation,
    DocumentResolver,
    Holdability,
    Holding,
    HomeLibrary,
    HomeLocation,
    Hold,
    ItemType,
    Library,
    LibraryList,
    Location,
    LocationList,
    PickupLibrary,
    Renewability,
    Reserve,
    User,
    Violation,
)
from virgo.holdings.util.log import LoggerMixin
from virgo.holdings.util.xmlparser import XMLParser

if TYPE_CHECKING:
    from lxml.etree import _Element


class FirehoseParser(XMLParser, LoggerMixin):
    """Turn Firehose XML documents into model objects.

    Documents are parsed strictly: a body that is empty, malformed, or
    whose root is not the expected element raises FirehoseParseError.
    Elements and attributes that are not mapped are ignored.
    """

    def __init__(self, document_resolver: DocumentResolver | None = None) -> None:
        self.document_resolver = document_resolver

    def root(self, xml: str | bytes | None, tag: str) -> _Element:
        if xml is None:
            raise FirehoseParseError(f"No {tag} document to parse")
        if isinstance(xml, str):
            xml = xml.encode("utf8")
        if not xml.strip():
            raise FirehoseParseError(f"Empty {tag} document")
        try:
            root = self._load_xml(xml, recover=False).getroot()
        except etree.XMLSyntaxError as e:
            raise FirehoseParseError(f"Malformed {tag} document: {e}") from e
        if root is None or root.tag != tag:
            found = None if root is None else root.tag
            raise FirehoseParseError(f"Expected a {tag} document, got {found}")
        return root

    def _one[T](
        self, tag: _Element, name: str, handler: Callable[[_Element], T]
    ) -> T | None:
        child = self._xpath1(tag, name)
        if child is None:
            return None
        return handler(child)

    def _many[T](
        self, tag: _Element, name: str, handler: Callable[[_Element], T]
    ) -> list[T]:
        return [handler(child) for child in self._xpath(tag, name)]

    # Libraries and locations

    def library(self, tag: _Element) -> Library:
        return Library(**self._library_fields(tag))

    def home_library(self, tag: _Element) -> HomeLibrary:
        return HomeLibrary(**self._library_fields(tag))

    def _library_fields(self, tag: _Element) -> dict[str, str | bool | None]:
        return dict(
            id=self.attribute(tag, "id"),
            code=self.attribute(tag, "code"),
            name=self.text_of_optional_subtag(tag, "name"),
            deliverable=self.bool_of_optional_subtag(tag, "deliverable"),
            holdable=self.bool_of_optional_subtag(tag, "holdable"),
        )

    def library_list(self, tag: _Element) -> LibraryList:
        return LibraryList(libraries=self._many(tag, "library", self.library))

    def _location_fields(self, tag: _Element) -> dict[str, str | None]:
        return dict(
            id=self.attribute(tag, "id"),
            code=self.attribute(tag, "code"),
            name=self.text_of_optional_subtag(tag, "name"),
        )

    def location(self, tag: _Element) -> Location:
        return Location(**self._location_fields(tag))

    def home_location(self, tag: _Element) -> HomeLocation:
        return HomeLocation(**self._location_fields(tag))

    def current_location(self, tag: _Element) -> CurrentLocation:
        return CurrentLocation(**self._location_fields(tag))

    def location_list(self, tag: _Element) -> LocationList:
        return LocationList(locations=self._many(tag, "location", self.location))

    def pickup_library(self, tag: _Element) -> PickupLibrary:
        return PickupLibrary(**self._location_fields(tag))

    # Items

    def item_type(self, tag: _Element) -> ItemType:
        return ItemType(code=self.attribute(tag, "code"))

    def copy(self, tag: _Element) -> Copy:
        return Copy(
            copy_number=self.int_of_optional_attribute(tag, "copyNumber"),
            barcode=self.attribute(tag, "barCode"),
            shadowed=self.bool_of_optional_attribute(tag, "shadowed"),
            current_periodical=self.bool_of_optional_attribute(
                tag, "currentPeriodical"
            ),
            last_checkout=self.date_of_optional_subtag(tag, "lastCheckout"),
            circulate=self.text_of_optional_subtag(tag, "circulate"),
            current_location=self._one(tag, "currentLocation", self.current_location)
            or CurrentLocation(),
            home_location=self._one(tag, "homeLocation", self.home_location)
            or HomeLocation(),
            item_type=self._one(tag, "itemType", self.item_type),
        )

    def holding(self, tag: _Element) -> Holding:
        return Holding(
            call_sequence=self.int_of_optional_attribute(tag, "callSequence"),
            call_number=self.attribute(tag, "callNumber"),
            holdable=self.bool_of_optional_attribute(tag, "holdable"),
            shadowed=self.bool_of_optional_attribute(tag, "shadowed"),
            shelving_key=self.text_of_optional_subtag(tag, "shelvingKey"),
            copies=self._many(tag, "copy", self.copy),
            library=self._one(tag, "library", self.home_library) or HomeLibrary(),
        )

    def holdability(self, tag: _Element) -> Holdability:
        return Holdability(
            value=self.attribute(tag, "value"),
            message=self.text_of_optional_subtag(tag, "message"),
        )

    def catalog_item(self, tag: _Element) -> CatalogItem:
        return CatalogItem(
            key=self.attribute(tag, "key"),
            status=self.int_of_optional_subtag(tag, "status"),
            holdings=self._many(tag, "holding", self.holding),
            holdability=self._one(tag, "canHold", self.holdability) or Holdability(),
            document_resolver=self.document_resolver,
        )

    def _catalog_item_of(self, tag: _Element) -> CatalogItem:
        return self._one(tag, "catalogItem", self.catalog_item) or CatalogItem(
            document_resolver=self.document_resolver
        )

    # Patrons

    def hold(self, tag: _Element) -> Hold:
        return Hold(
            type=self.attribute(tag, "type"),
            level=self.attribute(tag, "level"),
            active=self.bool_of_optional_attribute(tag, "active"),
            key=self.text_of_optional_subtag(tag, "key"),
            priority=self.int_of_optional_subtag(tag, "priority"),
            date_placed=self.date_of_optional_subtag(tag, "datePlaced"),
            date_notified=self.date_of_optional_subtag(tag, "dateNotified"),
            date_recalled=self.date_of_optional_subtag(tag, "dateRecalled"),
            inactive_reason=self.text_of_optional_subtag(tag, "inactiveReason"),
            catalog_item=self._catalog_item_of(tag),
            pickup_library=self._one(tag, "pickupLibrary", self.pickup_library),
        )

    def reserve(self, tag: _Element) -> Reserve:
        return Reserve(
            key=self.attribute(tag, "key"),
            active=self.text_of_optional_subtag(tag, "active"),
            status=self.text_of_optional_subtag(tag, "status"),
            number_of_reserves=self.int_of_optional_subtag(tag, "numberOfReserves"),
            keep_copies_at_desk=self.bool_of_optional_subtag(tag, "keepCopiesAtDesk"),
            automatically_select_copies=self.bool_of_optional_subtag(
                tag, "automaticallySelectCopies"
            ),
            catalog_item=self._catalog_item_of(tag),
        )

    def course(self, tag: _Element) -> Course:
        return Course(
            key=self.attribute(tag, "key"),
            code=self.text_of_optional_subtag(tag, "code"),
            name=self.text_of_optional_subtag(tag, "name"),
            number_of_reserves=self.int_of_optional_subtag(tag, "numberOfReserves"),
            number_of_students=self.int_of_optional_subtag(tag, "numberOfStudents"),
            terms_offered=self.int_of_optional_subtag(tag, "termsOffered"),
            reserves=self._many(tag, "reserve", self.reserve),
        )

    def renewability(self, tag: _Element) -> Renewability:
        return Renewability(
            code=self.attribute(tag, "code"),
            value=self.attribute(tag, "value"),
            message=self.text_of_optional_subtag(tag, "message"),
        )

    def checkout(self, tag: _Element) -> Checkout:
        return Checkout(
            key=self.text_of_optional_subtag(tag, "key"),
            status=self.int_of_optional_subtag(tag, "status"),
            overdue=self.bool_of_optional_subtag(tag, "isOverdue"),
            circulation_rule=self.int_of_optional_subtag(tag, "circulationRule"),
            date_charged=self.date_of_optional_subtag(tag, "dateCharged"),
            date_due=self.date_of_optional_subtag(tag, "dateDue"),
            date_renewed=self.date_of_optional_subtag(tag, "dateRenewed"),
            date_recalled=self.date_of_optional_subtag(tag, "dateRecalled"),
            number_overdue_notices=self.int_of_optional_subtag(
                tag, "numberOverdueNotices"
            ),
            number_recall_notices=self.int_of_optional_subtag(
                tag, "numberRecallNotices"
            ),
            number_renewals=self.int_of_optional_subtag(tag, "numberRenewals"),
            catalog_item=self._catalog_item_of(tag),
            renewability=self._one(tag, "canRenew", self.renewability)
            or Renewability(),
        )

    def user(self, tag: _Element) -> User:
        # Circulation lists may be wrapped (<holds><hold/></holds>) or not.
        return User(
            key=self.attribute(tag, "key"),
            sirsi_id=self.attribute(tag, "sirsiId"),
            computing_id=self.attribute(tag, "computingId"),
            barred=self.bool_of_optional_subtag(tag, "barred"),
            bursarred=self.bool_of_optional_subtag(tag, "bursarred"),
            delinquent=self.bool_of_optional_subtag(tag, "delinquent"),
            display_name=self.text_of_optional_subtag(tag, "displayName"),
            email=self.text_of_optional_subtag(tag, "email"),
            library_group=self.int_of_optional_subtag(tag, "libraryGroup"),
            organizational_unit=self.text_of_optional_subtag(
                tag, "organizationalUnit"
            ),
            preferred_language=self.int_of_optional_subtag(tag, "preferredlanguage"),
            profile=self.text_of_optional_subtag(tag, "profile"),
            checkout_count=self.int_of_optional_subtag(tag, "totalCheckouts"),
            hold_count=self.int_of_optional_subtag(tag, "totalHolds"),
            overdue_count=self.int_of_optional_subtag(tag, "totalOverdue"),
            reserve_count=self.int_of_optional_subtag(tag, "totalReserves"),
            recalled_count=self.int_of_optional_subtag(tag, "totalRecalls"),
            physical_delivery=self.text_of_optional_subtag(tag, "physicalDelivery"),
            description=self.text_of_optional_subtag(tag, "description"),
            first_name=self.text_of_optional_subtag(tag, "givenName"),
            middle_name=self.text_of_optional_subtag(tag, "initials"),
            last_name=self.text_of_optional_subtag(tag, "surName"),
            status_id=self.int_of_optional_subtag(tag, "statusId"),
            telephone=self.text_of_optional_subtag(tag, "telephone"),
            title=self.text_of_optional_subtag(tag, "title"),
            pin=self.text_of_optional_subtag(tag, "pin"),
            groups=[
                str(group.text)
                for group in self._xpath(tag, "group | groups/group")
                if group.text
            ],
            holds=self._many(tag, "hold | holds/hold", self.hold),
            courses=self._many(tag, "course | courses/course", self.course),
            checkouts=self._many(tag, "checkout | checkouts/checkout", self.checkout),
        )

    def violation(self, tag: _Element) -> Violation:
        return Violation(
            code=self.text_of_optional_subtag(tag, "code"),
            message=self.text_of_optional_subtag(tag, "message"),
        )


def parse_catalog_item(
    xml: str | bytes | None, document_resolver: DocumentResolver | None = None
) -> CatalogItem:
    parser = FirehoseParser(document_resolver)
    return parser.catalog_item(parser.root(xml, "catalogItem"))


def parse_user(
    xml: str | bytes | None, document_resolver: DocumentResolver | None = None
) -> User:
    parser = FirehoseParser(document_resolver)
    return parser.user(parser.root(xml, "user"))


def parse_library_list(xml: str | bytes | None) -> LibraryList:
    parser = FirehoseParser()
    return parser.library_list(parser.root(xml, "libraries"))


def parse_location_list(xml: str | bytes | None) -> LocationList:
    parser = FirehoseParser()
    return parser.location_list(parser.root(xml, "locations"))


def parse_violation(xml: str | bytes | None) -> Violation | None:
    """Read a FirehoseViolation body, or None if the body is not one."""
    parser = FirehoseParser()
    try:
        return parser.violation(parser.root(xml, "FirehoseViolation"))
    except FirehoseParseError as e:
        parser.log.debug(f"Not a FirehoseViolation: {e}")
        return None
