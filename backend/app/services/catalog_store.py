"""
Catalog Backend — Catalog Store
================================

What:  The only module that talks SQL. It turns catalog questions into
       SQLAlchemy queries over the categories and services tables.
How:   Wraps one AsyncSession. Each FallbackStrategy maps to a WHERE clause
       that narrows candidates; the MembershipMatcher confirms membership on
       the rows that come back.
Who:   Instantiated per call by CatalogResolver and by the link command.

Error Handling:
    Any SQLAlchemyError is logged and re-raised as StoreUnavailableError.
    The resolver does not retry; the request fails with HTTP 500.

Ordering:
    Categories: created_at ASC, slug ASC.
    Services:   created_at DESC, slug ASC (newest first, deterministic ties).
"""

import logging
import uuid
from typing import Any, Iterable, List, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import StoreUnavailableError
from app.models.catalog import Category, Service, ServiceStatus
from app.services.category_directory import fold
from app.services.membership import FallbackStrategy

logger = logging.getLogger(__name__)


class CatalogStore:
    """Read access to catalog rows for one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Categories ────────────────────────────────────────────────────────

    async def load_categories(self) -> List[Category]:
        """Full category snapshot (with explicit sub-items eagerly loaded)."""
        query = select(Category).order_by(Category.created_at.asc(), Category.slug.asc())
        return await self._all(query, "load_categories")

    # ── Services by slug ──────────────────────────────────────────────────

    async def find_service_by_slug(self, slug: str, include_drafts: bool) -> Optional[Service]:
        query = self._services(include_drafts).where(func.lower(Service.slug) == fold(slug)).limit(1)
        rows = await self._all(query, "find_service_by_slug")
        return rows[0] if rows else None

    async def find_services_by_slugs(
        self, slugs: Iterable[str], include_drafts: bool
    ) -> List[Service]:
        wanted = sorted({fold(slug) for slug in slugs} - {""})
        if not wanted:
            return []
        query = self._services(include_drafts).where(func.lower(Service.slug).in_(wanted))
        return await self._all(query, "find_services_by_slugs")

    # ── Services by category ──────────────────────────────────────────────

    async def services_for_strategy(
        self,
        strategy: FallbackStrategy,
        category: Category,
        include_drafts: bool,
    ) -> List[Service]:
        """Candidate services for one fallback tier; may over-select, never under-select."""
        query = self._services(include_drafts)

        if strategy is FallbackStrategy.STRUCTURED:
            category_id = str(category.id)
            query = query.where(
                or_(Service.subcategory_ref == category_id, Service.category_ref == category_id)
            )
        elif strategy is FallbackStrategy.TEXTUAL:
            tokens = sorted({fold(category.slug), fold(category.external_id)} - {""})
            if not tokens:
                return []
            query = query.where(
                or_(
                    func.lower(Service.category_ref).in_(tokens),
                    func.lower(Service.subcategory_ref).in_(tokens),
                )
            )
        elif strategy is FallbackStrategy.LEGACY:
            if not fold(category.title):
                return []
            query = query.where(Service.category_name.icontains(category.title.strip(), autoescape=True))
        elif strategy is FallbackStrategy.FUZZY:
            if not fold(category.category_type):
                return []
            query = query.where(
                and_(
                    func.lower(func.trim(Service.category_ref)) == fold(category.category_type),
                    self._without_subcategory(),
                )
            )
        # FULL_SCAN: every visible service

        return await self._all(query, f"services_for_strategy:{strategy.value}")

    async def services_tagged_with_type(self, type_token: str, include_drafts: bool) -> List[Service]:
        """Services whose category_ref is the bare type value."""
        query = self._services(include_drafts).where(
            func.lower(func.trim(Service.category_ref)) == fold(type_token)
        )
        return await self._all(query, "services_tagged_with_type")

    async def services_nested_under(self, service_id: uuid.UUID, include_drafts: bool) -> List[Service]:
        """Services whose subcategory_ref points at another service."""
        query = self._services(include_drafts).where(self._nested_under(service_id))
        return await self._all(query, "services_nested_under")

    async def count_services_nested_under(self, service_id: uuid.UUID, include_drafts: bool) -> int:
        query = select(func.count(Service.id)).where(self._nested_under(service_id))
        if not include_drafts:
            query = query.where(self._published())
        return await self._scalar(query, "count_services_nested_under")

    async def search_services_by_token(self, token: str, include_drafts: bool) -> List[Service]:
        """Free-text fallback: category_ref equals the token or category_name contains it."""
        query = self._services(include_drafts).where(
            or_(
                Service.category_ref == token,
                Service.category_name.icontains(token.strip(), autoescape=True),
            )
        )
        return await self._all(query, "search_services_by_token")

    async def list_services(self, include_drafts: bool) -> List[Service]:
        return await self._all(self._services(include_drafts), "list_services")

    # ── Query building ────────────────────────────────────────────────────

    def _services(self, include_drafts: bool) -> Select:
        query = select(Service)
        if not include_drafts:
            query = query.where(self._published())
        return query.order_by(Service.created_at.desc(), Service.slug.asc())

    @staticmethod
    def _published() -> Any:
        # NULL status predates drafts and counts as published
        return or_(Service.status.is_(None), Service.status == ServiceStatus.PUBLISHED.value)

    @staticmethod
    def _without_subcategory() -> Any:
        return or_(Service.subcategory_ref.is_(None), func.trim(Service.subcategory_ref) == "")

    @staticmethod
    def _nested_under(service_id: uuid.UUID) -> Any:
        return func.lower(func.trim(Service.subcategory_ref)) == str(service_id).lower()

    # ── Execution ─────────────────────────────────────────────────────────

    async def _all(self, query: Select, operation: str) -> List[Any]:
        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Catalog store query '%s' failed: %s", operation, str(e))
            raise StoreUnavailableError(
                context={"operation": operation, "error_type": type(e).__name__}
            ) from e

    async def _scalar(self, query: Select, operation: str) -> int:
        try:
            result = await self.db.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Catalog store query '%s' failed: %s", operation, str(e))
            raise StoreUnavailableError(
                context={"operation": operation, "error_type": type(e).__name__}
            ) from e
