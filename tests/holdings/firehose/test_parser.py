import datetime
import logging

import pytest

from tests.fixtures.files import FirehoseFilesFixture
from virgo.holdings.firehose.document import CatalogDocument
from virgo.holdings.firehose.exceptions import FirehoseParseError
from virgo.holdings.firehose.parser import (
    parse_catalog_item,
    parse_library_list,
    parse_location_list,
    parse_user,
    parse_violation,
)


class TestParseCatalogItem:
    def test_parse(self, firehose_files_fixture: FirehoseFilesFixture):
        item = parse_catalog_item(firehose_files_fixture.sample_data("catalog_item.xml"))

        assert item.key == "12345"
        assert item.status == 1
        assert item.holdable
        assert item.holdability_error == "Request this item"

        # Nothing is weeded by the parser.
        assert len(item.holdings) == 6
        [alderman, ivy, clemons, void, shadowed, spec_coll] = item.holdings

        assert alderman.call_number == "PS3545 .H16 A6 1990"
        assert alderman.call_sequence == 1
        assert alderman.holdable
        assert not alderman.shadowed
        assert alderman.shelving_key == "PS 003545 .H16 A6 1990"
        assert alderman.library.id == "1"
        assert alderman.library.code == "ALDERMAN"
        assert alderman.library.name == "Alderman"
        assert alderman.library.deliverable
        assert alderman.library.holdable

        [stacks, lost] = alderman.copies
        assert stacks.copy_number == 1
        assert stacks.barcode == "X000001"
        assert not stacks.shadowed
        assert not stacks.current_periodical
        assert stacks.last_checkout == datetime.date(2019, 3, 4)
        assert stacks.circulate == "Y"
        assert stacks.current_location.code == "STACKS"
        assert stacks.current_location.name == "Stacks"
        assert stacks.home_location.code == "STACKS"
        assert stacks.item_type is not None
        assert stacks.item_type.code == "BOOK"
        assert lost.code == "LOST-1"
        assert lost.last_checkout_display == "Never"

        assert ivy.library.code == "IVY"
        assert not ivy.library.deliverable
        assert not clemons.holdable
        assert void.voided
        assert shadowed.shadowed

        assert spec_coll.library.name == "Special Collections"
        assert [copy.barcode for copy in spec_coll.copies] == [
            "X000008",
            "X000009",
            "X000010",
            "X000011",
            "X000012",
        ]
        assert spec_coll.copies[0].home_location.code == "SC-IVY"
        assert spec_coll.copies[2].shadowed
        # A copy with no itemType element.
        assert spec_coll.copies[0].item_type is None

    def test_document_resolver(self, firehose_files_fixture: FirehoseFilesFixture):
        document = CatalogDocument(doc_id="u12345", title="Collected Poems")
        requested = []

        def resolver(doc_id: str) -> CatalogDocument:
            requested.append(doc_id)
            return document

        item = parse_catalog_item(
            firehose_files_fixture.sample_data("catalog_item.xml"), resolver
        )
        assert requested == []
        assert item.title == "Collected Poems"
        assert requested == ["u12345"]

    @pytest.mark.parametrize(
        "xml, message",
        [
            pytest.param(None, "No catalogItem document", id="none"),
            pytest.param("", "Empty catalogItem document", id="empty"),
            pytest.param("   \n", "Empty catalogItem document", id="blank"),
            pytest.param(
                "<user key='1'/>",
                "Expected a catalogItem document, got user",
                id="wrong-root",
            ),
            pytest.param(
                "<catalogItem><holding></catalogItem>",
                "Malformed catalogItem document",
                id="malformed",
            ),
        ],
    )
    def test_parse_errors(self, xml: str | None, message: str):
        with pytest.raises(FirehoseParseError, match=message):
            parse_catalog_item(xml)

    def test_parse_malformed_file(self, firehose_files_fixture: FirehoseFilesFixture):
        with pytest.raises(FirehoseParseError, match="Malformed"):
            parse_catalog_item(firehose_files_fixture.sample_data("malformed.xml"))

    def test_empty_item(self):
        item = parse_catalog_item("<catalogItem key='999'/>")
        assert item.key == "999"
        assert item.status is None
        assert item.holdings == []
        assert not item.holdable


class TestParseUser:
    def test_parse(self, firehose_files_fixture: FirehoseFilesFixture):
        user = parse_user(firehose_files_fixture.sample_data("user.xml"))

        assert user.key == "100"
        assert user.sirsi_id == "2000123"
        assert user.computing_id == "abc1d"
        assert not user.barred
        assert not user.bursarred
        assert user.delinquent
        assert user.display_name == "Alex Doe"
        assert user.email == "abc1d@virginia.edu"
        assert user.library_group == 1
        assert user.organizational_unit == "Arts and Sciences"
        assert user.preferred_language == 1
        assert user.profile == "Graduate"
        assert user.checkout_count == 2
        assert user.hold_count == 1
        assert user.overdue_count == 1
        assert user.reserve_count == 0
        assert user.recalled_count == 1
        assert user.physical_delivery == "Alderman"
        assert user.description == "Graduate Student"
        assert user.first_name == "Alex"
        assert user.middle_name == "Q"
        assert user.last_name == "Doe"
        assert user.status_id == 3
        assert user.telephone == "434-555-0100"
        assert user.title == "Student"
        assert user.pin == "1234"
        assert user.groups == ["grad", "library-users"]
        assert user.graduate

        [hold] = user.holds
        assert hold.type == "SYSTEM"
        assert hold.level == "TITLE"
        assert hold.active
        assert hold.key == "hold-1"
        assert hold.priority == 2
        assert hold.date_placed == datetime.date(2019, 2, 1)
        assert hold.date_notified_display == "Never"
        assert hold.inactive_reason is None
        assert hold.catalog_item.key == "555"
        assert hold.pickup_library is not None
        assert hold.pickup_library.code == "ALDERMAN"
        assert hold.pickup_library.name == "Alderman"

        [overdue, recalled] = user.checkouts
        assert overdue.key == "checkout-2"
        assert overdue.overdue
        assert overdue.circulation_rule == 7
        assert overdue.date_due == datetime.date(2019, 2, 15)
        assert overdue.number_overdue_notices == 1
        assert overdue.number_recall_notices == 0
        assert overdue.number_renewals == 1
        assert overdue.renewable
        assert overdue.renewability.code == "OK"
        assert overdue.renewability.message == "Renewable"
        assert not overdue.recalled
        assert overdue.catalog_item.key == "12345"
        assert overdue.catalog_item.holdings[0].call_number == "PS3545 .H16 A6 1990"
        assert not recalled.renewable
        assert recalled.recalled
        assert [checkout.key for checkout in user.sorted_checkouts] == [
            "checkout-1",
            "checkout-2",
        ]

        [writing, art] = user.courses
        assert writing.key == "course-1"
        assert writing.code == "ENGL 1010"
        assert writing.number_of_students == 18
        assert writing.terms_offered == 2
        [reserve] = writing.reserves
        assert reserve.key == "reserve-1"
        assert reserve.active == "Y"
        assert reserve.status == "ACTIVE"
        assert reserve.keep_copies_at_desk
        assert not reserve.automatically_select_copies
        assert reserve.catalog_item.key == "888"
        assert art.reserves == []
        assert [course.code for course in user.sorted_courses] == [
            "ARTH 1000",
            "ENGL 1010",
        ]

    def test_wrapped_lists(self):
        user = parse_user(
            """<user computingId="abc1d">
                <groups><group>staff</group></groups>
                <holds><hold><key>h</key></hold></holds>
                <checkouts><checkout><key>c</key></checkout></checkouts>
                <courses><course key="k"/></courses>
            </user>"""
        )
        assert user.groups == ["staff"]
        assert [hold.key for hold in user.holds] == ["h"]
        assert [checkout.key for checkout in user.checkouts] == ["c"]
        assert [course.key for course in user.courses] == ["k"]
        # A hold without a catalogItem element still has an empty one.
        assert user.holds[0].catalog_item.key is None

    def test_document_resolver_reaches_nested_items(
        self, firehose_files_fixture: FirehoseFilesFixture
    ):
        titles = {"u555": "Held", "u12345": "Checked out"}
        user = parse_user(
            firehose_files_fixture.sample_data("user.xml"),
            lambda doc_id: CatalogDocument(doc_id=doc_id, title=titles.get(doc_id)),
        )
        assert user.holds[0].catalog_item.title == "Held"
        assert user.checkouts[0].catalog_item.title == "Checked out"
        assert user.checkouts[1].catalog_item.title == "???"


class TestParseLists:
    def test_library_list(self, firehose_files_fixture: FirehoseFilesFixture):
        libraries = parse_library_list(
            firehose_files_fixture.sample_data("libraries.xml")
        )
        assert [library.code for library in libraries.libraries] == [
            "CLEMONS",
            "SPEC-COLL",
            "ALDERMAN",
        ]
        assert libraries.names_and_ids() == [("Alderman", "1"), ("Clemons", "2")]

    def test_location_list(self, firehose_files_fixture: FirehoseFilesFixture):
        locations = parse_location_list(
            firehose_files_fixture.sample_data("locations.xml")
        )
        assert [(l.id, l.code, l.name) for l in locations.locations] == [
            ("1", "STACKS", "Stacks"),
            ("3", "RESV-DESK", "Course Reserve"),
        ]
        assert locations.locations[1].on_reserve


class TestParseViolation:
    def test_violation(self, firehose_files_fixture: FirehoseFilesFixture):
        violation = parse_violation(firehose_files_fixture.sample_text("violation.xml"))
        assert violation is not None
        assert violation.code == "HOLD_FAILED"
        assert violation.message == "There are no items available to hold"

    @pytest.mark.parametrize(
        "body",
        [
            pytest.param(None, id="none"),
            pytest.param("", id="empty"),
            pytest.param("OK", id="text"),
            pytest.param("<user/>", id="other-document"),
        ],
    )
    def test_not_a_violation(self, body: str | None, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.DEBUG)
        assert parse_violation(body) is None
        assert "Not a FirehoseViolation" in caplog.text
