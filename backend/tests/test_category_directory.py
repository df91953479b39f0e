"""
Catalog Backend — Category Directory Unit Tests
================================================

What:  Token/type/id lookups and CategoryNode resolution over in-memory rows.
How:   Transient ORM objects only; no database.
"""

import uuid

from app.services.category_directory import (
    CategoryDirectory,
    StoredCategory,
    SyntheticCategory,
    fold,
)


class TestLookups:

    def test_find_by_token_matches_slug_and_external_id_case_insensitively(self, make_category):
        gst = make_category("gst-registration", external_id="GST")
        directory = CategoryDirectory([gst])

        assert directory.find_by_token("GST-Registration") is gst
        assert directory.find_by_token(" gst ") is gst
        assert directory.find_by_token("income-tax") is None
        assert directory.find_by_token(None) is None

    def test_find_by_type_preserves_input_order(self, make_category):
        first = make_category("sme-ipo", "ipo")
        second = make_category("main-board-ipo", "ipo")
        directory = CategoryDirectory([first, make_category("gst"), second])

        assert directory.find_by_type("IPO") == [first, second]
        assert directory.find_by_type("legal") == []

    def test_find_by_reference_accepts_uuid_text_and_token(self, make_category):
        gst = make_category("gst")
        directory = CategoryDirectory([gst])

        assert directory.find_by_reference(gst.id) is gst
        assert directory.find_by_reference(str(gst.id)) is gst
        assert directory.find_by_reference(f"  {str(gst.id).upper()} ") is gst
        assert directory.find_by_reference("gst") is gst
        assert directory.find_by_reference(uuid.uuid4()) is None
        assert directory.find_by_reference("") is None

    def test_resolve_category_reference_falls_back_to_unique_type(self, make_category):
        trademark = make_category("trademark-registration", "trademark")
        directory = CategoryDirectory([trademark])

        assert directory.resolve_category_reference("Trademark") is trademark
        assert directory.resolve_category_reference("nothing") is None

    def test_shared_type_resolves_to_no_category(self, make_category):
        directory = CategoryDirectory([
            make_category("loans", "banking-finance"),
            make_category("cma-reports", "banking-finance"),
        ])
        assert directory.resolve_category_reference("banking-finance") is None

    def test_shared_type_with_anchor_resolves_to_anchor(self, make_category):
        anchor = make_category("ipo", "ipo")
        directory = CategoryDirectory([make_category("sme-ipo", "ipo"), anchor])
        assert directory.resolve_category_reference("ipo") is anchor

    def test_token_collision_keeps_first_category(self, make_category):
        first = make_category("gst", external_id="tax")
        second = make_category("tax", external_id="tax-filing")
        directory = CategoryDirectory([first, second])

        assert directory.find_by_token("tax") is first
        assert directory.find_by_token("tax-filing") is second


class TestNodeResolution:

    def test_plain_category_is_stored_node(self, make_category):
        gst = make_category("gst")
        node = CategoryDirectory([gst]).resolve_node("gst")

        assert node == StoredCategory(gst)
        assert node.type_token == "simple"

    def test_type_token_becomes_virtual_parent(self, make_category):
        members = [
            make_category("loans", "banking-finance"),
            make_category("project-finance", "banking-finance"),
            make_category("cma-reports", "banking-finance"),
        ]
        node = CategoryDirectory(members).resolve_node("Banking-Finance")

        assert isinstance(node, SyntheticCategory)
        assert node.type_token == "banking-finance"
        assert node.members == tuple(members)
        assert node.anchor is None

    def test_single_category_of_a_type_still_forms_virtual_parent(self, make_category):
        only = make_category("trademark", "legal")
        node = CategoryDirectory([only]).resolve_node("legal")

        assert isinstance(node, SyntheticCategory)
        assert node.members == (only,)

    def test_category_named_after_its_type_anchors_the_group(self, make_category):
        anchor = make_category("ipo", "ipo")
        due_diligence = make_category("financial-due-diligence", "ipo")
        directory = CategoryDirectory([anchor, due_diligence])

        node = directory.resolve_node("ipo")

        assert node == SyntheticCategory("ipo", (due_diligence,), anchor)
        assert directory.fuzzy_siblings("ipo") == [due_diligence]

    def test_type_named_category_alone_is_not_an_anchor(self, make_category):
        lonely = make_category("ipo", "ipo")
        directory = CategoryDirectory([lonely])

        assert directory.resolve_node("ipo") == StoredCategory(lonely)
        assert directory.fuzzy_siblings("ipo") == [lonely]

    def test_type_named_category_with_sub_items_is_not_an_anchor(
        self, make_category, make_service, link_sub_items
    ):
        parent = link_sub_items(make_category("ipo", "ipo"), make_service("sme-ipo-advisory"))
        directory = CategoryDirectory([parent, make_category("financial-due-diligence", "ipo")])

        assert directory.resolve_node("ipo") == StoredCategory(parent)

    def test_unknown_token_resolves_to_none(self, make_category):
        assert CategoryDirectory([make_category("gst")]).resolve_node("payroll") is None


def test_fold_normalizes_any_value():
    value = uuid.UUID("0f3c6e52-0d0c-4b8e-9e1c-2b5f1d8a7c10")
    assert fold(None) == ""
    assert fold("  IPO ") == "ipo"
    assert fold(value) == str(value)
