"""
Catalog Backend — Catalog Resolver
===================================

What:  Turns 1–3 path tokens (category[/subcategory[/slug]]) into a category
       listing, a subcategory listing or a single service.
How:   Per call, loads one category snapshot into a CategoryDirectory, builds
       a MembershipMatcher over it and queries services through CatalogStore,
       escalating through FallbackStrategy tiers until one returns something.
Who:   Called by the /api/services route handlers.

Resolution Flow:
    /{category}
        stored category ─┬─ explicit sub-items → one row per sub-item
                         └─ none               → matched services
        type anchor / type token               → virtual parent, one row per member
        nothing                                → free-text service search (category = null)

    /{category}/{sub}
        sub is a category of the same type     → services matched to it
        sub is an explicit sub-item service    → services nested under it
        neither, flat context                  → treated as /{category}/-/{sub} detail
        neither, otherwise                     → NotFoundError

    /{category}/{sub}/{slug}
        exact slug, else longest in-context hyphen prefix, then membership check

Design Decision:
    CatalogResolver is stateless. Each public call builds its own lookup
    context, so nothing is shared across requests and repeating a call against
    an unchanged store gives the same answer.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError
from app.models.catalog import Category, Service
from app.schemas.catalog import (
    CategoryIndexResponse,
    CategoryInfo,
    CategoryListing,
    CategoryRecord,
    ServiceDetail,
    ServiceListResponse,
    SubcategoryInfo,
    SubcategoryListing,
)
from app.services import projector
from app.services.catalog_store import CatalogStore
from app.services.category_directory import (
    CategoryDirectory,
    CategoryNode,
    StoredCategory,
    SyntheticCategory,
    fold,
)
from app.services.membership import (
    FallbackStrategy,
    MembershipMatcher,
    has_subcategory,
    references,
)

logger = logging.getLogger(__name__)

Subcategory = Union[Category, Service]


@dataclass
class _Lookup:
    """Everything one resolver call works against."""

    store: CatalogStore
    directory: CategoryDirectory
    matcher: MembershipMatcher
    include_drafts: bool


class CatalogResolver:
    """
    Public resolution operations.

    Error Handling Strategy:
        Directory and matcher misses are plain None / [] values. Only these
        public methods raise NotFoundError, once every fallback is exhausted.
        StoreUnavailableError from CatalogStore propagates untouched.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Public operations
    # ══════════════════════════════════════════════════════════════════════

    async def resolve_category_level(
        self,
        db: AsyncSession,
        token: str,
        include_drafts: bool = False,
    ) -> CategoryListing:
        """
        Resolve a single category token.

        Raises:
            NotFoundError: no category, no type and no free-text match
        """
        lookup = await self._open(db, include_drafts)
        node = lookup.directory.resolve_node(token)

        if node is None:
            services = await lookup.store.search_services_by_token(token, include_drafts)
            if not services:
                raise NotFoundError(resource="category", token=token)
            logger.info("Category '%s' unresolved; %d services from free-text search", token, len(services))
            return projector.category_listing(None, services, [], lookup.directory)

        if isinstance(node, SyntheticCategory):
            rows = []
            for member in node.members:
                matched = await self._gather_services(lookup, member)
                rows.append(projector.category_row(member, len(matched)))
            services = await lookup.store.services_tagged_with_type(node.type_token, include_drafts)
            logger.debug("Type '%s' resolved as virtual parent of %d categories", node.type_token, len(rows))
            return projector.category_listing(node, services, rows, lookup.directory)

        category = node.category
        rows = []
        for item in self._visible_sub_items(lookup, category):
            nested = await lookup.store.count_services_nested_under(item.id, include_drafts)
            rows.append(projector.service_row(item, nested))
        services = await self._gather_services(lookup, category)
        return projector.category_listing(node, services, rows, lookup.directory)

    async def resolve_subcategory_level(
        self,
        db: AsyncSession,
        category_token: str,
        sub_token: str,
        include_drafts: bool = False,
    ) -> Union[SubcategoryListing, ServiceDetail]:
        """
        Resolve a category/subcategory pair.

        Returns a ServiceDetail instead of a listing when the category context
        is flat and `sub_token` turns out to be a service slug.

        Raises:
            NotFoundError: category or subcategory could not be resolved
        """
        lookup = await self._open(db, include_drafts)
        node = self._require_node(lookup, category_token)

        sub_category = self._match_sub_category(lookup, node, category_token, sub_token)
        if sub_category is not None:
            services = await self._gather_services(lookup, sub_category)
            parent = await self._describe_node(lookup, node)
            return projector.subcategory_listing(parent, sub_category, services, lookup.directory)

        found = self._find_sub_item(lookup, node, sub_token)
        if found is not None:
            owner, sub_service = found
            children = await lookup.store.services_nested_under(sub_service.id, include_drafts)
            parent = await self._describe_node(lookup, StoredCategory(owner))
            return projector.subcategory_listing(parent, sub_service, children, lookup.directory)

        if not self._has_sub_items(lookup, node):
            logger.debug(
                "'%s' has no subcategories; resolving '%s' as a service slug",
                category_token, sub_token,
            )
            return await self._service_detail(lookup, node, category_token, None, sub_token)

        raise NotFoundError(resource="subcategory", token=sub_token)

    async def resolve_service_detail(
        self,
        db: AsyncSession,
        category_token: str,
        sub_token: Optional[str],
        slug: str,
        include_drafts: bool = False,
    ) -> ServiceDetail:
        """
        Resolve one service inside a category (and optional subcategory) context.

        Raises:
            NotFoundError: unknown context, unknown slug, or a service that
                           exists but belongs elsewhere
        """
        lookup = await self._open(db, include_drafts)
        node = self._require_node(lookup, category_token)
        return await self._service_detail(lookup, node, category_token, sub_token, slug)

    async def list_services(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        search: Optional[str] = None,
        include_drafts: bool = False,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> ServiceListResponse:
        """
        Paginated service listing with optional category filter and text search.

        The category filter accepts anything `/{category}` accepts; a virtual
        parent lists the union of its members' services.
        """
        limit = limit or settings.catalog_default_page_size
        lookup = await self._open(db, include_drafts)

        if category:
            node = lookup.directory.resolve_node(category)
            if node is None:
                services = await lookup.store.search_services_by_token(category, include_drafts)
            elif isinstance(node, SyntheticCategory):
                services = []
                for member in node.members:
                    services.extend(await self._gather_services(lookup, member))
                services.extend(
                    await lookup.store.services_tagged_with_type(node.type_token, include_drafts)
                )
            else:
                services = await self._gather_services(lookup, node.category)
        else:
            services = await lookup.store.list_services(include_drafts)

        services = _newest_first(_unique(services))
        if search and search.strip():
            needle = fold(search)
            services = [
                service for service in services
                if needle in fold(service.title)
                or needle in fold(service.short_description)
                or needle in fold(service.long_description)
            ]

        start = (page - 1) * limit
        return projector.service_list(
            services[start:start + limit], len(services), page, limit, lookup.directory
        )

    async def list_categories(self, db: AsyncSession) -> CategoryIndexResponse:
        categories = await CatalogStore(db).load_categories()
        return projector.category_index(categories)

    async def get_category(self, db: AsyncSession, reference: str) -> CategoryRecord:
        """
        Stored category by UUID, slug or external id.

        Raises:
            NotFoundError: no stored category has that reference
        """
        directory = CategoryDirectory(await CatalogStore(db).load_categories())
        category = directory.find_by_reference(reference)
        if category is None:
            raise NotFoundError(resource="category", token=reference)
        return projector.category_record(category)

    # ══════════════════════════════════════════════════════════════════════
    # Context
    # ══════════════════════════════════════════════════════════════════════

    async def _open(self, db: AsyncSession, include_drafts: bool) -> _Lookup:
        store = CatalogStore(db)
        directory = CategoryDirectory(await store.load_categories())
        return _Lookup(
            store=store,
            directory=directory,
            matcher=MembershipMatcher(directory),
            include_drafts=include_drafts,
        )

    def _require_node(self, lookup: _Lookup, category_token: str) -> CategoryNode:
        node = lookup.directory.resolve_node(category_token)
        if node is None:
            raise NotFoundError(resource="category", token=category_token)
        return node

    # ══════════════════════════════════════════════════════════════════════
    # Service gathering
    # ══════════════════════════════════════════════════════════════════════

    async def _gather_services(self, lookup: _Lookup, category: Category) -> List[Service]:
        """Services of one category from the first fallback tier that yields any."""
        for strategy in FallbackStrategy:
            if strategy is FallbackStrategy.FULL_SCAN and not settings.catalog_full_scan_enabled:
                break
            candidates = await lookup.store.services_for_strategy(
                strategy, category, lookup.include_drafts
            )
            matched = [s for s in candidates if lookup.matcher.accepts(s, category, strategy)]
            if matched:
                logger.debug(
                    "Category '%s': %d services via %s",
                    category.slug, len(matched), strategy.value,
                )
                return matched
        return []

    def _visible_sub_items(self, lookup: _Lookup, category: Category) -> List[Service]:
        return [
            item for item in category.explicit_sub_items
            if lookup.include_drafts or not item.is_draft
        ]

    def _has_sub_items(self, lookup: _Lookup, node: CategoryNode) -> bool:
        if isinstance(node, SyntheticCategory):
            return any(self._visible_sub_items(lookup, member) for member in node.members)
        return bool(self._visible_sub_items(lookup, node.category))

    # ══════════════════════════════════════════════════════════════════════
    # Subcategory resolution
    # ══════════════════════════════════════════════════════════════════════

    def _match_sub_category(
        self,
        lookup: _Lookup,
        node: CategoryNode,
        category_token: str,
        sub_token: str,
    ) -> Optional[Category]:
        """A category addressed as a subcategory, if its type fits the parent."""
        candidate = lookup.directory.find_by_token(sub_token)
        if candidate is None:
            return None

        parent = node.anchor if isinstance(node, SyntheticCategory) else node.category
        if parent is not None and candidate.id == parent.id:
            return None

        candidate_type = fold(candidate.category_type)
        if candidate_type in (node.type_token, fold(category_token)):
            return candidate

        logger.debug(
            "Discarding subcategory '%s': type '%s' does not fit parent type '%s'",
            sub_token, candidate_type, node.type_token,
        )
        return None

    def _find_sub_item(
        self,
        lookup: _Lookup,
        node: CategoryNode,
        sub_token: str,
    ) -> Optional[Tuple[Category, Service]]:
        """(owning category, sub-item service) for an explicit sub-item slug."""
        owners = node.members if isinstance(node, SyntheticCategory) else (node.category,)
        wanted = fold(sub_token)
        for owner in owners:
            for item in self._visible_sub_items(lookup, owner):
                if item.slug == wanted:
                    return owner, item
        return None

    async def _describe_node(self, lookup: _Lookup, node: CategoryNode) -> CategoryInfo:
        if isinstance(node, SyntheticCategory):
            return projector.project_virtual_parent(node, len(node.members))
        sub_items = self._visible_sub_items(lookup, node.category)
        if sub_items:
            return projector.project_category(node.category, len(sub_items), True)
        services = await self._gather_services(lookup, node.category)
        return projector.project_category(node.category, len(services), False)

    async def _describe_subcategory(
        self,
        lookup: _Lookup,
        subcategory: Optional[Subcategory],
        service: Service,
    ) -> Optional[SubcategoryInfo]:
        if subcategory is None and has_subcategory(service):
            subcategory = lookup.directory.resolve_category_reference(service.subcategory_ref)
        if isinstance(subcategory, Category):
            services = await self._gather_services(lookup, subcategory)
            return projector.subcategory_info(subcategory, len(services))
        if isinstance(subcategory, Service):
            nested = await lookup.store.count_services_nested_under(
                subcategory.id, lookup.include_drafts
            )
            return projector.subcategory_info(subcategory, nested)
        return None

    # ══════════════════════════════════════════════════════════════════════
    # Service detail
    # ══════════════════════════════════════════════════════════════════════

    async def _service_detail(
        self,
        lookup: _Lookup,
        node: CategoryNode,
        category_token: str,
        sub_token: Optional[str],
        slug: str,
    ) -> ServiceDetail:
        subcategory: Optional[Subcategory] = None
        if sub_token:
            subcategory = self._match_sub_category(lookup, node, category_token, sub_token)
            if subcategory is None:
                found = self._find_sub_item(lookup, node, sub_token)
                if found is None:
                    raise NotFoundError(resource="subcategory", token=sub_token)
                owner, subcategory = found
                node = StoredCategory(owner)

        def belongs(candidate: Service) -> bool:
            return self._belongs(lookup, candidate, node, subcategory)

        service = await lookup.store.find_service_by_slug(slug, lookup.include_drafts)
        if service is None:
            service = await self._prefix_match(lookup, slug, belongs)
            if service is not None:
                logger.info("Service '%s' resolved by prefix to '%s'", slug, service.slug)

        if service is None or not belongs(service):
            raise NotFoundError(resource="service", token=slug)

        category_info = await self._describe_node(lookup, node)
        subcategory_info = await self._describe_subcategory(lookup, subcategory, service)
        nested = await lookup.store.count_services_nested_under(service.id, lookup.include_drafts)
        return projector.service_detail(
            service, category_info, subcategory_info, nested, lookup.directory
        )

    async def _prefix_match(
        self,
        lookup: _Lookup,
        slug: str,
        belongs: Callable[[Service], bool],
    ) -> Optional[Service]:
        """Longest in-context stored slug that is a strict hyphen-delimited prefix of `slug`."""
        parts = fold(slug).split("-")
        prefixes = ["-".join(parts[:size]) for size in range(1, len(parts))]
        candidates = await lookup.store.find_services_by_slugs(prefixes, lookup.include_drafts)
        in_context = [candidate for candidate in candidates if belongs(candidate)]
        if not in_context:
            return None
        return max(in_context, key=lambda candidate: len(candidate.slug))

    def _belongs(
        self,
        lookup: _Lookup,
        service: Service,
        node: CategoryNode,
        subcategory: Optional[Subcategory],
    ) -> bool:
        matcher = lookup.matcher
        if isinstance(subcategory, Category):
            return matcher.belongs(service, subcategory)
        if isinstance(subcategory, Service):
            return service.id == subcategory.id or references(service.subcategory_ref, subcategory.id)

        if isinstance(node, SyntheticCategory):
            if fold(service.category_ref) == node.type_token:
                return True
            if node.anchor is not None and matcher.belongs(service, node.anchor):
                return True
            return any(matcher.belongs(service, member) for member in node.members)

        category = node.category
        if matcher.belongs(service, category):
            return True
        return any(
            service.id == item.id or references(service.subcategory_ref, item.id)
            for item in category.explicit_sub_items
        )


def _unique(services: List[Service]) -> List[Service]:
    seen: Dict[uuid.UUID, Service] = {}
    for service in services:
        seen.setdefault(service.id, service)
    return list(seen.values())


def _newest_first(services: List[Service]) -> List[Service]:
    by_slug = sorted(services, key=lambda service: service.slug)
    return sorted(by_slug, key=lambda service: service.created_at, reverse=True)


# ── Singleton Instance ────────────────────────────────────────────────────
catalog_resolver = CatalogResolver()
