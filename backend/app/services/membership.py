"""
Catalog Backend — Membership Matcher
=====================================

What:  Decides whether a service belongs to a category.
Why:   A service's category link can be encoded five ways (category UUID,
       UUID as text, slug/external id, legacy category name, bare type value).
       All call sites need one ordering of those encodings.
How:   Ordered rules; the first rule that succeeds is the answer:

    1. SUBCATEGORY_ID    subcategory_ref == category id (UUID or its text)
    2. CATEGORY_ID       category_ref == category id (UUID or its text)
    3. TEXTUAL_IDENTITY  category_ref (or subcategory_ref) == slug / external id,
                         case-insensitive
    4. LEGACY_NAME       category_name contains the category title,
                         case-insensitive
    5. TYPE_FUZZY        only for services without a subcategory_ref:
                         category_ref == category type AND (slug contains the
                         category slug/external id with '-'/'_' interchangeable,
                         OR title contains a title word of the category)

    Rule 5 ownership: a legacy service may fuzzy-match several sibling
    categories. The first sibling in directory order owns it and the others
    reject it. Each such case is recorded as an AmbiguousMatch and logged.

FallbackStrategy groups the rules into the tiers used to gather services:
STRUCTURED → TEXTUAL → LEGACY → FUZZY → FULL_SCAN. FULL_SCAN re-applies every
rule with lowercase/trimmed string equality over the whole service set.
"""

import enum
import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, FrozenSet, List, Optional, Pattern, Set, Tuple

from app.config import settings
from app.models.catalog import Category, Service
from app.services.category_directory import CategoryDirectory, fold

logger = logging.getLogger(__name__)


class MatchRule(enum.IntEnum):
    SUBCATEGORY_ID = 1
    CATEGORY_ID = 2
    TEXTUAL_IDENTITY = 3
    LEGACY_NAME = 4
    TYPE_FUZZY = 5


class FallbackStrategy(enum.Enum):
    """Service-gathering tiers, in the order they are tried."""

    STRUCTURED = "structured"
    TEXTUAL = "textual"
    LEGACY = "legacy"
    FUZZY = "fuzzy"
    FULL_SCAN = "full_scan"

    @property
    def rules(self) -> FrozenSet[MatchRule]:
        return _STRATEGY_RULES[self]

    @property
    def normalized(self) -> bool:
        return self is FallbackStrategy.FULL_SCAN


_STRATEGY_RULES = {
    FallbackStrategy.STRUCTURED: frozenset({MatchRule.SUBCATEGORY_ID, MatchRule.CATEGORY_ID}),
    FallbackStrategy.TEXTUAL: frozenset({MatchRule.TEXTUAL_IDENTITY}),
    FallbackStrategy.LEGACY: frozenset({MatchRule.LEGACY_NAME}),
    FallbackStrategy.FUZZY: frozenset({MatchRule.TYPE_FUZZY}),
    FallbackStrategy.FULL_SCAN: frozenset(MatchRule),
}


@dataclass(frozen=True)
class AmbiguousMatch:
    """A legacy service that fuzzy-matched more than one sibling category."""

    service_slug: str
    candidates: Tuple[str, ...]
    chosen: str


# ══════════════════════════════════════════════════════════════════════════
# Reference comparison helpers
# ══════════════════════════════════════════════════════════════════════════


def same_identifier(value: Any, target_id: Optional[uuid.UUID]) -> bool:
    """Type-aware equality: a UUID compares as a UUID, text as the canonical string."""
    if value is None or target_id is None:
        return False
    if isinstance(value, uuid.UUID):
        return value == target_id
    return isinstance(value, str) and value == str(target_id)


def loosely_same_identifier(value: Any, target_id: Optional[uuid.UUID]) -> bool:
    """String equality after lowercasing and trimming both sides."""
    if value is None or target_id is None:
        return False
    return fold(value) == fold(target_id)


def references(value: Any, target_id: Optional[uuid.UUID]) -> bool:
    return same_identifier(value, target_id) or loosely_same_identifier(value, target_id)


def has_subcategory(service: Service) -> bool:
    """None, '' and whitespace all mean "no subcategory"."""
    return fold(service.subcategory_ref) != ""


@lru_cache(maxsize=512)
def _separator_tolerant(token: str) -> Optional[Pattern[str]]:
    parts = [re.escape(part) for part in re.split(r"[-_]+", token) if part]
    if not parts:
        return None
    return re.compile("[-_]?".join(parts))


def slug_contains(slug: Optional[str], token: Optional[str]) -> bool:
    """`slug` contains `token`, treating '-' and '_' as interchangeable or absent."""
    pattern = _separator_tolerant(fold(token))
    return pattern is not None and pattern.search(fold(slug)) is not None


# ══════════════════════════════════════════════════════════════════════════
# Matcher
# ══════════════════════════════════════════════════════════════════════════


class MembershipMatcher:
    """
    Applies the membership rules against categories from one directory.

    One instance per request: `ambiguities` collects every tie-break taken
    while answering that request.
    """

    def __init__(self, directory: CategoryDirectory, min_keyword_length: Optional[int] = None):
        self.directory = directory
        self.min_keyword_length = min_keyword_length or settings.catalog_fuzzy_min_keyword_length
        self.ambiguities: List[AmbiguousMatch] = []
        self._reported: Set[str] = set()

    def match(
        self,
        service: Service,
        category: Category,
        normalized: bool = False,
    ) -> Optional[MatchRule]:
        """Return the first rule under which `service` belongs to `category`."""
        same_id = loosely_same_identifier if normalized else same_identifier
        if same_id(service.subcategory_ref, category.id):
            return MatchRule.SUBCATEGORY_ID
        if same_id(service.category_ref, category.id):
            return MatchRule.CATEGORY_ID
        if self._textual_identity(service, category, normalized):
            return MatchRule.TEXTUAL_IDENTITY
        if self._legacy_name(service, category):
            return MatchRule.LEGACY_NAME
        if self._owns_fuzzy(service, category):
            return MatchRule.TYPE_FUZZY
        return None

    def accepts(self, service: Service, category: Category, strategy: FallbackStrategy) -> bool:
        """True when `service` belongs to `category` under one of the strategy's rules."""
        rule = self.match(service, category, normalized=strategy.normalized)
        return rule is not None and rule in strategy.rules

    def belongs(self, service: Service, category: Category) -> bool:
        return (
            self.match(service, category) is not None
            or self.match(service, category, normalized=True) is not None
        )

    # ── Rule 5 ────────────────────────────────────────────────────────────

    def title_keywords(self, title: Optional[str]) -> List[str]:
        return [word for word in fold(title).split() if len(word) >= self.min_keyword_length]

    def fuzzy_evidence(self, service: Service, category: Category) -> Optional[str]:
        """
        Rule 5 without the ownership tie-break.

        Returns "slug" or "title" naming what matched, or None.
        """
        type_token = fold(category.category_type)
        if not type_token or has_subcategory(service):
            return None
        if fold(service.category_ref) != type_token:
            return None
        if slug_contains(service.slug, category.slug) or slug_contains(
            service.slug, category.external_id
        ):
            return "slug"
        service_title = fold(service.title)
        if any(word in service_title for word in self.title_keywords(category.title)):
            return "title"
        return None

    def fuzzy_owner(self, service: Service, type_token: Optional[str]) -> Optional[Category]:
        """First sibling of the type that rule 5 matches, in directory order."""
        candidates = [
            category
            for category in self.directory.fuzzy_siblings(type_token)
            if self.fuzzy_evidence(service, category) is not None
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            self._record_ambiguity(service, candidates)
        return candidates[0]

    # ── Internals ─────────────────────────────────────────────────────────

    def _textual_identity(self, service: Service, category: Category, normalized: bool) -> bool:
        tokens = {fold(category.slug), fold(category.external_id)} - {""}
        for value in (service.category_ref, service.subcategory_ref):
            if value is None:
                continue
            text = fold(value) if normalized else str(value).lower()
            if text in tokens:
                return True
        return False

    def _legacy_name(self, service: Service, category: Category) -> bool:
        title = fold(category.title)
        return bool(title) and title in fold(service.category_name)

    def _owns_fuzzy(self, service: Service, category: Category) -> bool:
        if self.fuzzy_evidence(service, category) is None:
            return False
        owner = self.fuzzy_owner(service, category.category_type)
        return owner is not None and owner.id == category.id

    def _record_ambiguity(self, service: Service, candidates: List[Category]) -> None:
        if service.slug in self._reported:
            return
        self._reported.add(service.slug)
        ambiguity = AmbiguousMatch(
            service_slug=service.slug,
            candidates=tuple(c.slug for c in candidates),
            chosen=candidates[0].slug,
        )
        self.ambiguities.append(ambiguity)
        logger.warning(
            "Ambiguous fuzzy match: service '%s' fits %s; assigning to '%s'",
            ambiguity.service_slug,
            ", ".join(ambiguity.candidates),
            ambiguity.chosen,
        )
