from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from functools import cached_property
from typing import TYPE_CHECKING, Any, Self

from virgo.holdings.firehose.codes import HoldLibrary, ckey_converter, hold_library
from virgo.holdings.firehose.document import BibliographicDocument
from virgo.holdings.firehose.models import (
    CatalogItem,
    Copy,
    CurrentLocation,
    Holding,
    HomeLibrary,
    Summary,
    User,
)
from virgo.holdings.firehose.parser import parse_catalog_item
from virgo.holdings.util.log import LoggerMixin

if TYPE_CHECKING:
    from virgo.holdings.firehose.api import CacheOptions, FirehoseApi


def lost_note(missing: int, lost: int) -> str | None:
    """Describe the missing and lost copies of one library."""
    if missing > 0 and lost > 0:
        return f"{missing} missing; {lost} lost"
    if missing > 1:
        return f"{missing} missing"
    if lost > 1:
        return f"{lost} lost"
    if missing == 1:
        return "missing"
    if lost == 1:
        return "lost"
    return None


def group_by_hold_library[T](
    items: Iterable[T], name_or_code: Callable[[T], str | None]
) -> tuple[list[T], dict[HoldLibrary, list[T]]]:
    """Split items into those at ordinary libraries and per-hold-library buckets."""
    normal: list[T] = []
    buckets: dict[HoldLibrary, list[T]] = {library: [] for library in HoldLibrary}
    for item in items:
        library = hold_library(name_or_code(item))
        if library is None:
            normal.append(item)
        else:
            buckets[library].append(item)
    return normal, buckets


def with_hold_libraries_last[T](
    normal: list[T], buckets: dict[HoldLibrary, list[T]]
) -> list[T]:
    result = list(normal)
    for library in HoldLibrary.ordered():
        result.extend(buckets[library])
    return result


def summary_libraries_from(rows: Iterable[str]) -> list[HomeLibrary]:
    """Build libraries, locations and summaries from summary holdings rows.

    Each row is ``library|location|text|note|label|call number information``.
    A library or location seen before is reused.
    """
    libraries: list[HomeLibrary] = []
    for row in rows:
        fields = row.split("|")
        fields += [""] * (6 - len(fields))
        name, location_name, text, note, _label, call_number_info = fields[:6]
        library = next((lib for lib in libraries if lib.name == name), None)
        if library is None:
            library = HomeLibrary(name=name)
            libraries.append(library)
        location = library.summary_location(location_name)
        location.summaries.append(
            Summary(
                text=text,
                note=note or None,
                call_number_information=call_number_info or None,
            )
        )
    return libraries


def _library_name(holding: Holding) -> str:
    return holding.library.name or ""


def _shelving_key(holding: Holding) -> str:
    return holding.shelving_key or ""


class BaseAvailability(LoggerMixin, ABC):
    """Holdings of one catalog record, ready for display.

    Subclasses decide where the holdings come from. Everything else is
    answered from the catalog item once its holdings are in place.
    """

    def __init__(
        self,
        document: BibliographicDocument,
        catalog_item: CatalogItem,
        raw_xml: str | None = None,
    ) -> None:
        self.document = document
        self.catalog_item = catalog_item
        self.raw_xml = raw_xml or ""
        self.lost: dict[str, str] = {}
        self._summary_libraries = summary_libraries_from(document.summary_holdings)
        catalog_item.document = document

    @cached_property
    def holdings(self) -> list[Holding]:
        """Holdings in display order."""
        return self._display_holdings()

    @abstractmethod
    def _display_holdings(self) -> list[Holding]: ...

    def to_xml(self) -> str:
        return self.raw_xml

    @property
    def linkable_to_ilink(self) -> bool:
        return not self.document.pda

    @cached_property
    def summary_libraries(self) -> list[HomeLibrary]:
        normal, buckets = group_by_hold_library(
            self._summary_libraries, lambda library: library.name
        )
        normal.sort(key=lambda library: library.name or "")
        return with_hold_libraries_last(normal, buckets)

    @property
    def special_collections_holdings(self) -> list[Holding]:
        return [
            holding for holding in self.holdings if holding.is_special_collections
        ]

    @cached_property
    def holdings_by_library(self) -> dict[str | None, int]:
        result: dict[str | None, int] = {}
        for holding in self.holdings:
            code = holding.library.code
            result[code] = result.get(code, 0) + len(holding.copies)
        return result

    @cached_property
    def available_by_library(self) -> dict[str | None, int]:
        result: dict[str | None, int] = {}
        for holding in self.holdings:
            code = holding.library.code
            result[code] = result.get(code, 0) + holding.available_copies
        return result

    @property
    def available_copies(self) -> int:
        return self.catalog_item.available_copies

    @property
    def reserve_copies(self) -> int:
        return self.catalog_item.reserve_copies

    @property
    def circulating_copies(self) -> int:
        return self.catalog_item.circulating_copies

    @property
    def special_collections_copies(self) -> int:
        return self.catalog_item.special_collections_copies

    @property
    def existing_copies(self) -> int:
        return self.catalog_item.existing_copies

    @property
    def has_ivy_holdings(self) -> bool:
        return self.catalog_item.has_ivy_holdings

    @property
    def leoable(self) -> bool:
        return self.catalog_item.leoable

    @property
    def might_be_holdable(self) -> bool:
        return self.catalog_item.holdable

    @property
    def holdability_error(self) -> str | None:
        return self.catalog_item.holdability_error

    def has_holdable_holding(self, call_number: str | None) -> bool:
        return self.catalog_item.has_holdable_holding(call_number)

    @property
    def holdable_call_numbers(self) -> list[str]:
        return self.catalog_item.holdable_call_numbers

    def user_has_checked_out(self, user: User, call_number: str | None = None) -> bool:
        """Whether `user` has this record checked out under `call_number`.

        Without a call number, the record's only holdable call number is
        used, if it has exactly one.
        """
        if not call_number:
            call_numbers = self.holdable_call_numbers
            if len(call_numbers) == 1:
                call_number = call_numbers[0]
        for checkout in user.checkouts:
            if checkout.catalog_item.key != self.catalog_item.key:
                continue
            if any(
                holding.call_number == call_number
                for holding in checkout.catalog_item.holdings
            ):
                return True
        return False


class Availability(BaseAvailability):
    """Availability built from the ILS item document.

    Copies patrons must not see are removed when the object is built, and
    lost or missing copies are noted per library in `lost`.
    """

    def __init__(
        self,
        document: BibliographicDocument,
        catalog_item: CatalogItem,
        raw_xml: str | None = None,
        barcodes: Sequence[str] | None = None,
    ) -> None:
        super().__init__(document, catalog_item, raw_xml)
        self.barcodes = list(barcodes if barcodes is not None else document.barcodes)
        self._weed_holdings()

    @classmethod
    def find(
        cls,
        document: BibliographicDocument,
        barcodes: Sequence[str] | None = None,
        cache_options: CacheOptions | None = None,
        api: FirehoseApi | None = None,
    ) -> Self | None:
        """Look up the ILS holdings of a catalog record.

        Returns None if the ILS answer could not be used. Network errors
        are raised.
        """
        if api is None:
            from virgo.holdings.service.container import container_instance

            api = container_instance().firehose.api()

        def build(xml: str | None) -> Self:
            return cls(document, parse_catalog_item(xml), xml, barcodes)

        return api.lookup(
            "items",
            ckey_converter(document.doc_id),
            parse=build,
            cache_options=cache_options,
            operation="find",
        )

    def _weed_holdings(self) -> None:
        allowed = set(self.barcodes) if self.barcodes else None
        missing_or_lost: dict[str, list[Copy]] = {}

        holdings = self.catalog_item.holdings
        holdings[:] = [
            holding
            for holding in holdings
            if not (holding.shadowed or holding.voided)
        ]
        for holding in holdings:
            library = holding.library.name or ""
            copies = holding.copies
            copies[:] = [copy for copy in copies if not copy.shadowed]
            for copy in copies:
                if copy.missing or copy.lost:
                    missing_or_lost.setdefault(library, []).append(copy)
            copies[:] = [copy for copy in copies if not (copy.missing or copy.lost)]
            copies[:] = [copy for copy in copies if not copy.hidden]
            if allowed is not None:
                copies[:] = [copy for copy in copies if copy.barcode in allowed]
        holdings[:] = [holding for holding in holdings if holding.copies]

        for library, copies in missing_or_lost.items():
            missing = sum(1 for copy in copies if copy.missing)
            note = lost_note(missing, len(copies) - missing)
            if note is not None:
                self.lost[library] = note

    def _display_holdings(self) -> list[Holding]:
        normal, buckets = group_by_hold_library(
            self.catalog_item.holdings, lambda holding: holding.library.code
        )
        if self.document.journal:
            # Newest volumes first within each library.
            normal.sort(key=_shelving_key, reverse=True)
            normal.sort(key=_library_name)
            for bucket in buckets.values():
                bucket.sort(key=_shelving_key, reverse=True)
        else:
            normal.sort(
                key=lambda holding: (_library_name(holding), _shelving_key(holding))
            )
        return with_hold_libraries_last(normal, buckets)


class JsonAvailability(BaseAvailability):
    """Availability for records whose holdings are described in the record
    itself (special collections material with no ILS item).
    """

    LIBRARY_CODE = "SPEC-COLL"
    LOCATION_CODE = "STACKS"

    @classmethod
    def from_document(cls, document: BibliographicDocument) -> Self:
        holdings = cls.holdings_from_json(
            document.special_collections_holdings, doc_id=document.doc_id
        )
        return cls(document, CatalogItem(holdings=holdings))

    @classmethod
    def holdings_from_json(cls, source: str | None, doc_id: str = "") -> list[Holding]:
        entries = cls._load_entries(source, doc_id)
        libraries: dict[str | None, HomeLibrary] = {}
        holdings = []
        for entry in entries:
            name = entry.get("library")
            library = libraries.get(name)
            if library is None:
                library = libraries[name] = HomeLibrary(
                    name=name, code=cls.LIBRARY_CODE
                )
            location = library.summary_location(entry.get("location"))
            if location.code is None:
                location.code = cls.LOCATION_CODE
            call_number = entry.get("call_number")
            copy = Copy(
                barcode=entry.get("barcode") or call_number,
                circulate="Y",
                current_location=CurrentLocation(
                    code=location.code, name=location.name
                ),
                home_location=location,
            )
            holdings.append(
                Holding(call_number=call_number, copies=[copy], library=library)
            )
        return holdings

    @classmethod
    def _load_entries(cls, source: str | None, doc_id: str) -> list[dict[str, Any]]:
        try:
            entries = json.loads(source or "")
        except ValueError:
            entries = None
        if not isinstance(entries, list) or not entries:
            cls.logger().warning(f"holdings_from_json: bad JSON: {doc_id}: {source!r}")
            return []
        return [entry for entry in entries if isinstance(entry, dict)]

    def _display_holdings(self) -> list[Holding]:
        return list(self.catalog_item.holdings)


def availability_for(
    document: BibliographicDocument,
    barcodes: Sequence[str] | None = None,
    cache_options: CacheOptions | None = None,
    api: FirehoseApi | None = None,
) -> BaseAvailability | None:
    """The availability of a record, from the record itself or from the ILS."""
    if document.has_special_collections_json:
        return JsonAvailability.from_document(document)
    return Availability.find(
        document, barcodes=barcodes, cache_options=cache_options, api=api
    )
