"""
Catalog Backend — Membership Matcher Unit Tests
================================================

What:  Rule ordering, rule 5 guards and ownership, and strategy tiers.
How:   Transient ORM objects and a CategoryDirectory; no database.

What we test:
    ✅ A structured link wins over a fuzzy match (rule 1 before rule 5)
    ✅ A service with a subcategory is never fuzzy-matched elsewhere
    ✅ Short category title words never trigger rule 5
    ✅ '-' and '_' are interchangeable in slug containment
    ✅ Fuzzy ties go to the first sibling and are recorded
"""

import uuid

import pytest

from app.services.category_directory import CategoryDirectory
from app.services.membership import (
    FallbackStrategy,
    MatchRule,
    MembershipMatcher,
    has_subcategory,
    same_identifier,
    slug_contains,
)


@pytest.fixture
def ipo_categories(make_category):
    return {
        "anchor": make_category("ipo", "ipo"),
        "due_diligence": make_category("financial-due-diligence", "ipo"),
        "sme": make_category("sme-ipo", "ipo", title="SME IPO"),
    }


@pytest.fixture
def matcher(ipo_categories):
    return MembershipMatcher(CategoryDirectory(ipo_categories.values()), min_keyword_length=3)


class TestRuleOrder:

    def test_structured_subcategory_link_beats_fuzzy_match(self, matcher, ipo_categories, make_service):
        due_diligence = ipo_categories["due_diligence"]
        sme = ipo_categories["sme"]
        service = make_service(
            "sme-ipo-due-diligence",
            category_ref="ipo",
            subcategory_ref=str(due_diligence.id),
        )

        assert matcher.match(service, due_diligence) is MatchRule.SUBCATEGORY_ID
        assert matcher.match(service, sme) is None

    def test_category_id_match(self, matcher, ipo_categories, make_service):
        sme = ipo_categories["sme"]
        service = make_service("listing-support", category_ref=sme.id)

        assert matcher.match(service, sme) is MatchRule.CATEGORY_ID

    def test_textual_identity_on_slug_or_external_id(self, make_category, make_service):
        gst = make_category("gst-services", external_id="gst")
        matcher = MembershipMatcher(CategoryDirectory([gst]))

        assert matcher.match(make_service("a", category_ref="GST"), gst) is MatchRule.TEXTUAL_IDENTITY
        assert matcher.match(make_service("b", subcategory_ref="gst-services"), gst) is MatchRule.TEXTUAL_IDENTITY

    def test_legacy_category_name_contains_title(self, make_category, make_service):
        gst = make_category("gst", title="GST")
        matcher = MembershipMatcher(CategoryDirectory([gst]))
        service = make_service("gst-return-filing", category_name="Taxation > GST Returns")

        assert matcher.match(service, gst) is MatchRule.LEGACY_NAME

    def test_unrelated_service_matches_nothing(self, matcher, ipo_categories, make_service):
        service = make_service("payroll", category_ref="simple")
        assert all(matcher.match(service, c) is None for c in ipo_categories.values())


class TestFuzzyRule:

    def test_slug_containment_matches(self, matcher, ipo_categories, make_service):
        service = make_service("financial-due-diligence-report", category_ref="ipo", subcategory_ref="")
        assert matcher.match(service, ipo_categories["due_diligence"]) is MatchRule.TYPE_FUZZY

    def test_no_shared_keyword_does_not_match(self, matcher, ipo_categories, make_service):
        service = make_service("peer-comparison-analysis", category_ref="ipo")
        assert matcher.match(service, ipo_categories["due_diligence"]) is None

    def test_title_keyword_matches(self, matcher, ipo_categories, make_service):
        service = make_service("valuation-memo", title="Financial Valuation Memo", category_ref="ipo")
        assert matcher.fuzzy_evidence(service, ipo_categories["due_diligence"]) == "title"

    def test_short_title_words_are_ignored(self, make_category, make_service):
        rights = make_category("rights", "legal", title="IP & Rights")
        other = make_category("contracts", "legal")
        matcher = MembershipMatcher(CategoryDirectory([rights, other]), min_keyword_length=3)
        service = make_service("ip-audit", title="IP Audit", category_ref="legal")

        assert matcher.fuzzy_evidence(service, rights) is None

    def test_service_with_subcategory_is_never_fuzzy_matched(self, matcher, ipo_categories, make_service):
        service = make_service(
            "financial-due-diligence-report",
            category_ref="ipo",
            subcategory_ref=str(ipo_categories["sme"].id),
        )

        assert matcher.match(service, ipo_categories["due_diligence"]) is None
        assert matcher.match(service, ipo_categories["sme"]) is MatchRule.SUBCATEGORY_ID

    def test_type_must_match(self, matcher, ipo_categories, make_service):
        service = make_service("financial-due-diligence-report", category_ref="legal")
        assert matcher.match(service, ipo_categories["due_diligence"]) is None

    def test_separators_are_interchangeable(self):
        assert slug_contains("financial_due_diligence_pack", "financial-due-diligence")
        assert slug_contains("financialduediligence", "financial-due-diligence")
        assert not slug_contains("financial-review", "financial-due-diligence")
        assert not slug_contains("anything", "")

    def test_ambiguous_match_goes_to_first_sibling_and_is_recorded(
        self, matcher, ipo_categories, make_service
    ):
        service = make_service("sme-ipo-financial-due-diligence", category_ref="ipo")

        assert matcher.match(service, ipo_categories["due_diligence"]) is MatchRule.TYPE_FUZZY
        assert matcher.match(service, ipo_categories["sme"]) is None
        assert len(matcher.ambiguities) == 1
        ambiguity = matcher.ambiguities[0]
        assert ambiguity.service_slug == "sme-ipo-financial-due-diligence"
        assert ambiguity.candidates == ("financial-due-diligence", "sme-ipo")
        assert ambiguity.chosen == "financial-due-diligence"


class TestStrategies:

    def test_strategy_limits_accepted_rules(self, matcher, ipo_categories, make_service):
        due_diligence = ipo_categories["due_diligence"]
        fuzzy = make_service("financial-due-diligence-report", category_ref="ipo")

        assert not matcher.accepts(fuzzy, due_diligence, FallbackStrategy.STRUCTURED)
        assert matcher.accepts(fuzzy, due_diligence, FallbackStrategy.FUZZY)
        assert matcher.accepts(fuzzy, due_diligence, FallbackStrategy.FULL_SCAN)

    def test_full_scan_tolerates_untrimmed_uppercase_ids(self, matcher, ipo_categories, make_service):
        sme = ipo_categories["sme"]
        service = make_service("listing", category_ref=f" {str(sme.id).upper()} ")

        assert not matcher.accepts(service, sme, FallbackStrategy.STRUCTURED)
        assert matcher.accepts(service, sme, FallbackStrategy.FULL_SCAN)
        assert matcher.belongs(service, sme)

    def test_tiers_are_ordered(self):
        assert [s.value for s in FallbackStrategy] == [
            "structured", "textual", "legacy", "fuzzy", "full_scan",
        ]
        assert FallbackStrategy.FULL_SCAN.rules == frozenset(MatchRule)


def test_same_identifier_is_type_aware():
    target = uuid.uuid4()
    assert same_identifier(target, target)
    assert same_identifier(str(target), target)
    assert not same_identifier(str(target).upper(), target)
    assert not same_identifier(None, target)


def test_blank_subcategory_counts_as_none(make_service):
    assert not has_subcategory(make_service("a", subcategory_ref="   "))
    assert not has_subcategory(make_service("b"))
    assert has_subcategory(make_service("c", subcategory_ref="x"))
