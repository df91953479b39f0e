"""
Catalog Backend — Service Catalog Route Handlers
=================================================

What:  GET endpoints under /api/services: the paginated listing, the category
       index, and the three hierarchical resolution levels.
How:   Extracts path tokens and query parameters, delegates to CatalogResolver,
       returns the DTO it built.
Who:   Called by the marketing site's catalog and service pages.

Route Order:
    The /categories routes are declared before /{category} so that
    "categories" is never read as a category token.

Caching:
    Catalog content changes rarely but is edited without deploys, so listings
    get a short shared cache (60s).
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.schemas.catalog import (
    CategoryIndexResponse,
    CategoryListing,
    CategoryRecord,
    ErrorResponse,
    ServiceDetail,
    ServiceListResponse,
    SubcategoryListing,
)
from app.services.catalog_resolver import catalog_resolver

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/services", tags=["Service Catalog"])

CACHE_CONTROL = "public, max-age=60"

_ERRORS = {
    404: {"description": "Nothing resolved for the given tokens", "model": ErrorResponse},
    500: {"description": "Catalog store unavailable", "model": ErrorResponse},
}


# ══════════════════════════════════════════════════════════════════════════
# Listing & Category Index
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=ServiceListResponse,
    responses={500: _ERRORS[500]},
    summary="List services",
    description=(
        "Paginated service listing, newest first. `category` accepts any token "
        "the category route accepts (slug, external id, type); `search` filters "
        "on title and descriptions."
    ),
)
async def list_services(
    response: Response,
    category: Optional[str] = Query(default=None, description="Category token to filter by"),
    search: Optional[str] = Query(default=None, description="Case-insensitive text filter"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(
        default=settings.catalog_default_page_size,
        ge=1,
        le=settings.catalog_max_page_size,
        description="Services per page",
    ),
    include_drafts: bool = Query(default=False, description="Also return draft services (preview mode)"),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceListResponse:
    result = await catalog_resolver.list_services(
        db=db,
        category=category,
        search=search,
        include_drafts=include_drafts,
        page=page,
        limit=limit,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/categories",
    response_model=CategoryIndexResponse,
    responses={500: _ERRORS[500]},
    summary="List stored categories",
)
async def list_categories(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> CategoryIndexResponse:
    result = await catalog_resolver.list_categories(db=db)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result


@router.get(
    "/categories/{reference}",
    response_model=CategoryRecord,
    responses=_ERRORS,
    summary="Get a stored category by id, slug or external id",
)
async def get_category(
    response: Response,
    reference: str = Path(description="Category UUID, slug or external id"),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryRecord:
    result = await catalog_resolver.get_category(db=db, reference=reference)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result


# ══════════════════════════════════════════════════════════════════════════
# Hierarchical Resolution
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/{category}",
    response_model=CategoryListing,
    responses=_ERRORS,
    summary="Resolve a category",
    description=(
        "Resolves a slug, external id or category type. A type (or a category "
        "whose slug is its own type) yields a virtual parent listing each "
        "category of that type as a subcategory row."
    ),
)
async def resolve_category(
    response: Response,
    category: str = Path(description="Category slug, external id or type"),
    include_drafts: bool = Query(default=False, description="Also return draft services (preview mode)"),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryListing:
    result = await catalog_resolver.resolve_category_level(
        db=db, token=category, include_drafts=include_drafts
    )
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result


@router.get(
    "/{category}/{subcategory}",
    response_model=Union[SubcategoryListing, ServiceDetail],
    responses=_ERRORS,
    summary="Resolve a subcategory",
    description=(
        "Lists the services of a subcategory. When the category has no "
        "subcategories the second segment is read as a service slug and a "
        "service detail (`kind = service_detail`) is returned instead."
    ),
)
async def resolve_subcategory(
    response: Response,
    category: str = Path(description="Category slug, external id or type"),
    subcategory: str = Path(description="Subcategory slug / external id, or sub-item service slug"),
    include_drafts: bool = Query(default=False, description="Also return draft services (preview mode)"),
    db: AsyncSession = Depends(get_db_session),
) -> Union[SubcategoryListing, ServiceDetail]:
    result = await catalog_resolver.resolve_subcategory_level(
        db=db,
        category_token=category,
        sub_token=subcategory,
        include_drafts=include_drafts,
    )
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result


@router.get(
    "/{category}/{subcategory}/{slug}",
    response_model=ServiceDetail,
    responses=_ERRORS,
    summary="Resolve a service inside a category context",
    description=(
        "Exact slug first; otherwise the longest stored slug that is a "
        "hyphen-delimited prefix of `slug` and belongs to the context."
    ),
)
async def resolve_service(
    response: Response,
    category: str = Path(description="Category slug, external id or type"),
    subcategory: str = Path(description="Subcategory slug / external id, or sub-item service slug"),
    slug: str = Path(description="Service slug"),
    include_drafts: bool = Query(default=False, description="Also return draft services (preview mode)"),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceDetail:
    result = await catalog_resolver.resolve_service_detail(
        db=db,
        category_token=category,
        sub_token=subcategory,
        slug=slug,
        include_drafts=include_drafts,
    )
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result
