"""
Catalog Backend — Projector Unit Tests
=======================================

What:  DTO shaping: canonical references, virtual parent presentation,
       items_count derivation and pagination math.
"""

from app.services import projector
from app.services.category_directory import CategoryDirectory, StoredCategory, SyntheticCategory


class TestServiceProjection:

    def test_references_are_canonicalized_to_category_ids(self, make_category, make_service):
        gst = make_category("gst")
        directory = CategoryDirectory([gst])
        service = make_service("gst-registration", category_ref="GST", subcategory_ref="  ")

        summary = projector.project_service(service, directory)

        assert summary.category == str(gst.id)
        assert summary.subcategory is None
        assert summary.status == "published"
        assert summary.features == []

    def test_unresolvable_reference_is_kept_raw(self, make_service):
        summary = projector.project_service(
            make_service("orphan", category_ref="retired-category"), CategoryDirectory([])
        )
        assert summary.category == "retired-category"

    def test_shared_type_reference_is_kept_raw(self, make_category, make_service):
        directory = CategoryDirectory([
            make_category("loans", "banking-finance"),
            make_category("cma-reports", "banking-finance"),
        ])

        summary = projector.project_service(
            make_service("cma-report-prep", category_ref="banking-finance"), directory
        )

        assert summary.category == "banking-finance"

    def test_type_reference_to_anchor_uses_anchor_id(self, make_category, make_service):
        anchor = make_category("ipo", "ipo")
        directory = CategoryDirectory([make_category("sme-ipo", "ipo"), anchor])

        summary = projector.project_service(make_service("x", category_ref="ipo"), directory)

        assert summary.category == str(anchor.id)

    def test_price_and_content_fields(self, make_service):
        service = make_service(
            "trademark-registration",
            price_min=4999,
            price_max=9999,
            currency="INR",
            process=[{"step": 1, "title": "Search"}],
            faqs=[{"id": "q1", "question": "How long?", "answer": "6 months"}],
        )
        summary = projector.project_service(service, CategoryDirectory([]))

        assert summary.price.min == 4999
        assert summary.price.max == 9999
        assert summary.process[0].title == "Search"
        assert summary.faqs[0].answer == "6 months"


class TestCategoryProjection:

    def test_synthesized_virtual_parent(self, make_category):
        members = (make_category("loans", "banking-finance"), make_category("cma", "banking-finance"))
        info = projector.project_virtual_parent(SyntheticCategory("banking-finance", members), 2)

        assert info.id is None
        assert info.is_virtual
        assert info.slug == "banking-finance"
        assert info.title == "Banking finance"
        assert info.description == "All banking-finance services"
        assert info.hero_title == "Banking finance Services"
        assert info.hero_description == "Comprehensive banking-finance services"
        assert info.items_count == 2

    def test_anchor_supplies_presentation(self, make_category):
        anchor = make_category("ipo", "ipo", title="IPO Advisory", description="Go public")
        node = SyntheticCategory("ipo", (make_category("sme-ipo", "ipo"),), anchor)

        info = projector.project_virtual_parent(node, 1)

        assert info.id is None
        assert info.title == "IPO Advisory"
        assert info.description == "Go public"
        assert info.hero_title == "IPO Advisory Services"

    def test_category_record_lists_sub_services(self, make_category, make_service, link_sub_items):
        first, second = make_service("roc-filing"), make_service("annual-return")
        category = link_sub_items(make_category("compliance"), first, second)

        record = projector.category_record(category)

        assert [ref.slug for ref in record.sub_services] == ["roc-filing", "annual-return"]


class TestItemsCount:

    def test_flat_listing_counts_services(self, make_category, make_service):
        gst = make_category("gst")
        services = [make_service("a"), make_service("b")]

        listing = projector.category_listing(StoredCategory(gst), services, [], CategoryDirectory([gst]))

        assert listing.items_count == 2
        assert listing.category.items_count == 2
        assert not listing.category.has_subcategories

    def test_listing_with_rows_counts_rows_not_services(self, make_category, make_service):
        gst = make_category("gst")
        rows = [projector.service_row(make_service("sub"), 4)]
        services = [make_service("a"), make_service("b"), make_service("c")]

        listing = projector.category_listing(StoredCategory(gst), services, rows, CategoryDirectory([gst]))

        assert listing.items_count == 1
        assert listing.category.has_subcategories

    def test_virtual_parent_without_rows_counts_zero(self):
        node = SyntheticCategory("legal", ())
        listing = projector.category_listing(node, [], [], CategoryDirectory([]))
        assert listing.items_count == 0
        assert listing.category.is_virtual

    def test_free_text_listing_has_no_category(self, make_service):
        listing = projector.category_listing(None, [make_service("a")], [], CategoryDirectory([]))
        assert listing.category is None
        assert listing.items_count == 1


class TestServiceList:

    def test_total_pages(self):
        result = projector.service_list([], 21, 3, 10, CategoryDirectory([]))
        assert result.total_pages == 3
        assert result.page == 3

    def test_empty_listing_has_no_pages(self):
        assert projector.service_list([], 0, 1, 10, CategoryDirectory([])).total_pages == 0
