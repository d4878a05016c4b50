from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class BibliographicDocument(Protocol):
    """What the availability engine needs to know about a catalog record.

    `summary_holdings` rows are pipe-delimited:
    ``library|location|text|note|label|call number information``.
    `barcodes` are the patron-visible barcodes taken from the record's
    holdings data, if the record carries any. `special_collections_holdings`
    is a JSON list of holdings for records that have no ILS item.
    """

    @property
    def doc_id(self) -> str: ...

    @property
    def pda(self) -> bool: ...

    @property
    def journal(self) -> bool: ...

    @property
    def summary_holdings(self) -> Sequence[str]: ...

    @property
    def barcodes(self) -> Sequence[str]: ...

    @property
    def special_collections_holdings(self) -> str | None: ...

    @property
    def has_special_collections_json(self) -> bool: ...

    @property
    def title(self) -> str | None: ...

    @property
    def authors(self) -> str | None: ...


@dataclasses.dataclass(kw_only=True)
class CatalogDocument:
    """A plain BibliographicDocument."""

    doc_id: str
    pda: bool = False
    journal: bool = False
    summary_holdings: Sequence[str] = ()
    barcodes: Sequence[str] = ()
    special_collections_holdings: str | None = None
    title: str | None = None
    authors: str | None = None

    @property
    def has_special_collections_json(self) -> bool:
        return bool(self.special_collections_holdings)
