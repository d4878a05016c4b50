import json
import logging

import pytest

from tests.fixtures.firehose import FirehoseFixture
from virgo.holdings.firehose.availability import JsonAvailability

ENTRIES = [
    {
        "library": "Special Collections",
        "location": "Manuscripts",
        "call_number": "MSS 1",
        "barcode": "B0001",
    },
    {
        "library": "Special Collections",
        "location": "Manuscripts",
        "call_number": "MSS 2",
    },
    {
        "library": "Special Collections",
        "location": "Vault",
        "call_number": "MSS 3",
    },
    {
        "library": "Fine Arts",
        "location": "Rare Books",
        "call_number": "N 7",
    },
]


class TestJsonAvailability:
    def test_holdings_from_json(self):
        holdings = JsonAvailability.holdings_from_json(json.dumps(ENTRIES), "u1")

        # One holding per entry, in the order given.
        assert [holding.call_number for holding in holdings] == [
            "MSS 1",
            "MSS 2",
            "MSS 3",
            "N 7",
        ]
        # Entries for the same library share one library.
        assert holdings[0].library is holdings[1].library is holdings[2].library
        assert holdings[3].library is not holdings[0].library
        assert {holding.library.code for holding in holdings} == {"SPEC-COLL"}

        library = holdings[0].library
        assert [location.name for location in library.summary_locations] == [
            "Manuscripts",
            "Vault",
        ]
        assert holdings[0].copies[0].home_location is holdings[1].copies[0].home_location

        [first] = holdings[0].copies
        assert first.barcode == "B0001"
        assert first.circulate == "Y"
        assert first.current_location.code == "STACKS"
        assert first.current_location.name == "Manuscripts"
        assert first.home_location.code == "STACKS"

        # The call number stands in for a missing barcode.
        assert holdings[1].copies[0].barcode == "MSS 2"

    def test_from_document(self, firehose_fixture: FirehoseFixture):
        document = firehose_fixture.document(
            special_collections_holdings=json.dumps(ENTRIES)
        )
        availability = JsonAvailability.from_document(document)

        assert availability.catalog_item.document is document
        assert [holding.call_number for holding in availability.holdings] == [
            "MSS 1",
            "MSS 2",
            "MSS 3",
            "N 7",
        ]
        assert availability.lost == {}
        assert availability.available_copies == 4
        assert availability.existing_copies == 4
        assert availability.special_collections_copies == 4
        assert availability.circulating_copies == 4
        assert len(availability.special_collections_holdings) == 4
        assert availability.holdings_by_library == {"SPEC-COLL": 4}
        assert not availability.leoable
        assert not availability.has_ivy_holdings
        assert not availability.might_be_holdable
        assert availability.to_xml() == ""

    @pytest.mark.parametrize(
        "source",
        [
            pytest.param(None, id="none"),
            pytest.param("", id="empty"),
            pytest.param("not json", id="not-json"),
            pytest.param("[]", id="empty-list"),
            pytest.param('{"library": "Special Collections"}', id="not-a-list"),
        ],
    )
    def test_bad_json(self, source: str | None, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.WARNING)
        assert JsonAvailability.holdings_from_json(source, "u42") == []
        assert f"holdings_from_json: bad JSON: u42: {source!r}" in caplog.text

    def test_entries_that_are_not_objects(self):
        holdings = JsonAvailability.holdings_from_json(
            '[1, "two", {"library": "Special Collections", "call_number": "MSS 9"}]'
        )
        assert [holding.call_number for holding in holdings] == ["MSS 9"]
