from __future__ import annotations

import datetime
from io import BytesIO
from typing import TYPE_CHECKING

from lxml import etree

if TYPE_CHECKING:
    from lxml.etree import _Element, _ElementTree


class XMLParser:

    """Helper functions to process XML data."""

    NAMESPACES: dict[str, str] = {}

    TRUE_VALUES = frozenset({"true", "yes", "y", "1"})
    DATE_FORMAT = "%Y-%m-%d"

    @classmethod
    def _xpath(
        cls, tag: _Element, expression: str, namespaces: dict[str, str] | None = None
    ) -> list[_Element]:
        """Wrapper to do a namespaced XPath expression."""
        if not namespaces:
            namespaces = cls.NAMESPACES
        return tag.xpath(expression, namespaces=namespaces)  # type: ignore[no-any-return]

    @classmethod
    def _xpath1(
        cls, tag: _Element, expression: str, namespaces: dict[str, str] | None = None
    ) -> _Element | None:
        """Wrapper to do a namespaced XPath expression."""
        values = cls._xpath(tag, expression, namespaces=namespaces)
        if not values:
            return None
        return values[0]

    def text_of_optional_subtag(
        self, tag: _Element, name: str, namespaces: dict[str, str] | None = None
    ) -> str | None:
        tag = self._xpath1(tag, name, namespaces=namespaces)
        if tag is None or tag.text is None:
            return None
        else:
            return str(tag.text)

    def int_of_optional_subtag(
        self, tag: _Element, name: str, namespaces: dict[str, str] | None = None
    ) -> int | None:
        v = self.text_of_optional_subtag(tag, name, namespaces=namespaces)
        if not v:
            return None
        return int(v)

    def bool_of_optional_subtag(
        self,
        tag: _Element,
        name: str,
        default: bool = False,
        namespaces: dict[str, str] | None = None,
    ) -> bool:
        return self.parse_bool(
            self.text_of_optional_subtag(tag, name, namespaces=namespaces), default
        )

    def date_of_optional_subtag(
        self, tag: _Element, name: str, namespaces: dict[str, str] | None = None
    ) -> datetime.date | None:
        return self.parse_date(
            self.text_of_optional_subtag(tag, name, namespaces=namespaces)
        )

    @staticmethod
    def attribute(tag: _Element, name: str) -> str | None:
        value = tag.get(name)
        if value is None:
            return None
        return str(value)

    def int_of_optional_attribute(self, tag: _Element, name: str) -> int | None:
        v = self.attribute(tag, name)
        if not v:
            return None
        return int(v)

    def bool_of_optional_attribute(
        self, tag: _Element, name: str, default: bool = False
    ) -> bool:
        return self.parse_bool(self.attribute(tag, name), default)

    @classmethod
    def parse_bool(cls, value: str | None, default: bool = False) -> bool:
        if value is None or not value.strip():
            return default
        return value.strip().lower() in cls.TRUE_VALUES

    @classmethod
    def parse_date(cls, value: str | None) -> datetime.date | None:
        """Parse a date value, ignoring any time part that follows it."""
        if not value or not value.strip():
            return None
        value = value.strip()[:10]
        return datetime.datetime.strptime(value, cls.DATE_FORMAT).date()

    @staticmethod
    def _load_xml(
        xml: str | bytes | _ElementTree,
        recover: bool = True,
    ) -> _ElementTree:
        """
        Load an XML document from string or bytes and handle the case where
        the document has already been parsed.

        With `recover` set to False, malformed documents raise
        `lxml.etree.XMLSyntaxError` instead of being patched up.
        """
        if isinstance(xml, str):
            xml = xml.encode("utf8")

        if isinstance(xml, bytes):
            # XMLParser can handle most characters and entities that are
            # invalid in XML but it will stop processing a document if it
            # encounters the null character. Remove that character
            # immediately and XMLParser will handle the rest.
            xml = xml.replace(b"\x00", b"")
            parser = etree.XMLParser(recover=recover, resolve_entities=False)
            return etree.parse(BytesIO(xml), parser)

        else:
            return xml

