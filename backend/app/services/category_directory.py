"""
Catalog Backend — Category Directory
=====================================

What:  Per-request, read-only index over a snapshot of category rows.
Why:   Every resolution step asks "which category does this token mean?"
       many times. Answering from in-memory maps keeps it to one store
       round-trip per request.
How:   Built once from `CatalogStore.load_categories()`; exposes lookups by
       token (slug or external id), by type, and by internal id, plus the
       tagged CategoryNode variant used by the resolver.

Lookups return None or [] on a miss and never raise. Absence is an expected
outcome that the resolver's fallback chain handles.

CategoryNode:
    StoredCategory(category)
        A persisted category addressed directly.
    SyntheticCategory(type_token, members, anchor)
        A virtual parent for "all categories of this type". It has no stored
        identity. `anchor` is set when a stored category whose slug equals its
        own type stands in for the group (e.g. slug "ipo" of type "ipo").
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from app.models.catalog import Category

logger = logging.getLogger(__name__)


def fold(value: Any) -> str:
    """Lowercase, trimmed string form of a token or reference ('' for None)."""
    if value is None:
        return ""
    return str(value).strip().lower()


# ══════════════════════════════════════════════════════════════════════════
# Category Nodes
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoredCategory:
    category: Category

    @property
    def type_token(self) -> str:
        return fold(self.category.category_type)


@dataclass(frozen=True)
class SyntheticCategory:
    type_token: str
    members: Tuple[Category, ...]
    anchor: Optional[Category] = None


CategoryNode = Union[StoredCategory, SyntheticCategory]


# ══════════════════════════════════════════════════════════════════════════
# Directory
# ══════════════════════════════════════════════════════════════════════════


class CategoryDirectory:
    """
    Token, type and id indexes over one category snapshot.

    Input order is preserved everywhere. The store loads categories by
    creation time then slug, so `find_by_type` and the fuzzy sibling order are
    stable across identical requests.
    """

    def __init__(self, categories: Iterable[Category]):
        self._categories: List[Category] = list(categories)
        self._by_id: Dict[uuid.UUID, Category] = {}
        self._by_token: Dict[str, Category] = {}
        self._by_type: Dict[str, List[Category]] = {}

        for category in self._categories:
            self._by_id[category.id] = category
            for token in (category.slug, category.external_id):
                key = fold(token)
                if not key:
                    continue
                existing = self._by_token.get(key)
                if existing is not None and existing is not category:
                    # Slug of one category equal to the external id of another.
                    logger.warning(
                        "Category token '%s' is claimed by '%s' and '%s'; keeping '%s'",
                        key, existing.slug, category.slug, existing.slug,
                    )
                    continue
                self._by_token[key] = category
            self._by_type.setdefault(fold(category.category_type), []).append(category)

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    # ── Basic lookups ─────────────────────────────────────────────────────

    def find_by_token(self, token: Optional[str]) -> Optional[Category]:
        """Case-insensitive match against slug OR external id."""
        return self._by_token.get(fold(token))

    def find_by_type(self, type_token: Optional[str]) -> List[Category]:
        """All categories whose type equals the token, case-insensitively."""
        return list(self._by_type.get(fold(type_token), []))

    def get(self, category_id: uuid.UUID) -> Optional[Category]:
        return self._by_id.get(category_id)

    def find_by_reference(self, value: Any) -> Optional[Category]:
        """Resolve an internal id (UUID or its text form), slug or external id."""
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return self._by_id.get(value)
        text = str(value).strip()
        if not text:
            return None
        try:
            category = self._by_id.get(uuid.UUID(text))
        except ValueError:
            category = None
        return category or self.find_by_token(text)

    def resolve_category_reference(self, value: Any) -> Optional[Category]:
        """
        Canonical category for a union-typed reference.

        Tried as a structured id, then slug/external id, then as a type token.
        A type token only resolves when exactly one category carries that
        type; a shared type names no single category and stays unresolved.
        """
        category = self.find_by_reference(value)
        if category is not None:
            return category
        members = self.find_by_type(value)
        return members[0] if len(members) == 1 else None

    # ── Type grouping ─────────────────────────────────────────────────────

    def is_grouping_type(self, type_token: Optional[str]) -> bool:
        return len(self._by_type.get(fold(type_token), [])) >= 2

    def is_type_anchor(self, category: Category) -> bool:
        """A category that is addressed by its own type and fronts its siblings."""
        type_token = fold(category.category_type)
        return (
            bool(type_token)
            and not category.sub_service_links
            and type_token in (fold(category.slug), fold(category.external_id))
            and self.is_grouping_type(type_token)
        )

    def fuzzy_siblings(self, type_token: Optional[str]) -> List[Category]:
        """Categories of a type that compete for legacy type-tagged services."""
        return [c for c in self.find_by_type(type_token) if not self.is_type_anchor(c)]

    # ── Node resolution ───────────────────────────────────────────────────

    def resolve_node(self, token: Optional[str]) -> Optional["CategoryNode"]:
        """
        Resolve a first-level path token.

        Stored category by token first. A type anchor becomes the virtual
        parent of the other categories of its type. Otherwise the token is
        tried as a type, and N>=1 categories of that type form a virtual
        parent.
        """
        category = self.find_by_token(token)
        if category is not None:
            if self.is_type_anchor(category):
                members = tuple(
                    c for c in self.find_by_type(category.category_type)
                    if c.id != category.id
                )
                return SyntheticCategory(
                    type_token=fold(category.category_type),
                    members=members,
                    anchor=category,
                )
            return StoredCategory(category)

        members = self.find_by_type(token)
        if members:
            return SyntheticCategory(type_token=fold(token), members=tuple(members))
        return None
