"""
Catalog Backend — Response Projector
=====================================

What:  Pure functions turning ORM rows and category nodes into response DTOs.
Why:   Stored rows mix UUIDs, text references, JSON blobs and legacy labels.
       Clients get one stable shape per result kind.

items_count rule (re-derived on every call, never read from storage):
    - a listing that presents subcategory rows counts the rows;
    - otherwise it counts the services it returns.
"""

import math
from typing import Any, List, Optional, Sequence, Union

from app.models.catalog import Category, Service, ServiceStatus
from app.schemas.catalog import (
    CategoryIndexResponse,
    CategoryInfo,
    CategoryListing,
    CategoryRecord,
    PriceRange,
    ServiceDetail,
    ServiceListResponse,
    ServiceSummary,
    SubcategoryInfo,
    SubcategoryListing,
    SubcategoryRow,
    SubServiceRef,
)
from app.services.category_directory import (
    CategoryDirectory,
    CategoryNode,
    SyntheticCategory,
)
from app.services.membership import has_subcategory


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def humanize_type(type_token: str) -> str:
    """'banking-finance' -> 'Banking finance'."""
    text = type_token.replace("-", " ")
    return text[:1].upper() + text[1:]


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════


def canonical_reference(value: Any, directory: CategoryDirectory) -> Optional[str]:
    """Category id as text when the reference resolves, else the raw value."""
    category = directory.resolve_category_reference(value)
    if category is not None:
        return str(category.id)
    return _text(value)


def project_service(service: Service, directory: CategoryDirectory) -> ServiceSummary:
    subcategory = None
    if has_subcategory(service):
        subcategory = canonical_reference(service.subcategory_ref, directory)
    return ServiceSummary(
        id=service.id,
        slug=service.slug,
        title=service.title,
        short_description=service.short_description or "",
        long_description=service.long_description or "",
        icon_name=service.icon_name or "",
        category=canonical_reference(service.category_ref, directory),
        subcategory=subcategory,
        category_name=service.category_name,
        price=PriceRange(
            min=service.price_min or 0,
            max=service.price_max or 0,
            currency=service.currency or "INR",
        ),
        duration=service.duration or "",
        features=list(service.features or []),
        benefits=list(service.benefits or []),
        requirements=list(service.requirements or []),
        process=list(service.process or []),
        faqs=list(service.faqs or []),
        related_services=[str(ref) for ref in (service.related_services or [])],
        status=service.status or ServiceStatus.PUBLISHED.value,
        created_at=service.created_at,
        updated_at=service.updated_at,
    )


def project_services(services: Sequence[Service], directory: CategoryDirectory) -> List[ServiceSummary]:
    return [project_service(service, directory) for service in services]


# ══════════════════════════════════════════════════════════════════════════
# Categories
# ══════════════════════════════════════════════════════════════════════════


def project_category(category: Category, items_count: int, has_subcategories: bool) -> CategoryInfo:
    return CategoryInfo(
        id=category.id,
        external_id=category.external_id,
        slug=category.slug,
        title=category.title,
        description=category.description or "",
        icon_name=category.icon_name or "",
        hero_title=category.hero_title or "",
        hero_description=category.hero_description or "",
        category_type=category.category_type,
        is_virtual=False,
        has_subcategories=has_subcategories,
        items_count=items_count,
    )


def project_virtual_parent(node: SyntheticCategory, items_count: int) -> CategoryInfo:
    """
    Category-shaped view of "all categories of this type".

    Presentation fields come from the anchor category when there is one,
    otherwise they are synthesized from the type token.
    """
    anchor = node.anchor
    title = anchor.title if anchor is not None else humanize_type(node.type_token)
    return CategoryInfo(
        id=None,
        external_id=node.type_token,
        slug=node.type_token,
        title=title,
        description=(anchor.description if anchor is not None and anchor.description
                     else f"All {node.type_token} services"),
        icon_name=(anchor.icon_name or "") if anchor is not None else "",
        hero_title=(anchor.hero_title if anchor is not None and anchor.hero_title
                    else f"{title} Services"),
        hero_description=(anchor.hero_description if anchor is not None and anchor.hero_description
                          else f"Comprehensive {node.type_token} services"),
        category_type=node.type_token,
        is_virtual=True,
        has_subcategories=True,
        items_count=items_count,
    )


def project_node(node: CategoryNode, items_count: int, has_subcategories: bool) -> CategoryInfo:
    if isinstance(node, SyntheticCategory):
        return project_virtual_parent(node, items_count)
    return project_category(node.category, items_count, has_subcategories)


def category_row(category: Category, items_count: int) -> SubcategoryRow:
    return SubcategoryRow(
        kind="category",
        id=category.id,
        slug=category.slug,
        title=category.title,
        description=category.description or "",
        icon_name=category.icon_name or "",
        category_type=category.category_type,
        items_count=items_count,
    )


def service_row(service: Service, items_count: int) -> SubcategoryRow:
    return SubcategoryRow(
        kind="service",
        id=service.id,
        slug=service.slug,
        title=service.title,
        description=service.short_description or "",
        icon_name=service.icon_name or "",
        price=PriceRange(
            min=service.price_min or 0,
            max=service.price_max or 0,
            currency=service.currency or "INR",
        ),
        duration=service.duration or "",
        items_count=items_count,
    )


def subcategory_info(subcategory: Union[Category, Service], items_count: int) -> SubcategoryInfo:
    if isinstance(subcategory, Category):
        return SubcategoryInfo(
            kind="category",
            id=subcategory.id,
            slug=subcategory.slug,
            title=subcategory.title,
            description=subcategory.description or "",
            icon_name=subcategory.icon_name or "",
            category_type=subcategory.category_type,
            items_count=items_count,
        )
    return SubcategoryInfo(
        kind="service",
        id=subcategory.id,
        slug=subcategory.slug,
        title=subcategory.title,
        description=subcategory.short_description or "",
        icon_name=subcategory.icon_name or "",
        items_count=items_count,
    )


def category_record(category: Category) -> CategoryRecord:
    return CategoryRecord(
        id=category.id,
        external_id=category.external_id,
        slug=category.slug,
        title=category.title,
        description=category.description or "",
        icon_name=category.icon_name or "",
        hero_title=category.hero_title or "",
        hero_description=category.hero_description or "",
        category_type=category.category_type,
        sub_services=[SubServiceRef.model_validate(item) for item in category.explicit_sub_items],
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


def category_index(categories: Sequence[Category]) -> CategoryIndexResponse:
    return CategoryIndexResponse(
        categories=[category_record(category) for category in categories],
        total_count=len(categories),
    )


# ══════════════════════════════════════════════════════════════════════════
# Resolution Results
# ══════════════════════════════════════════════════════════════════════════


def category_listing(
    node: Optional[CategoryNode],
    services: Sequence[Service],
    rows: Sequence[SubcategoryRow],
    directory: CategoryDirectory,
) -> CategoryListing:
    """
    Listing for a first-level token.

    A virtual parent always presents its members as rows. A stored category
    presents rows only when it has explicit sub-items.
    """
    has_rows = bool(rows) or isinstance(node, SyntheticCategory)
    items_count = len(rows) if has_rows else len(services)
    return CategoryListing(
        category=project_node(node, items_count, has_rows) if node is not None else None,
        services=project_services(services, directory),
        subcategories=list(rows),
        items_count=items_count,
    )


def subcategory_listing(
    parent: CategoryInfo,
    subcategory: Union[Category, Service],
    services: Sequence[Service],
    directory: CategoryDirectory,
) -> SubcategoryListing:
    return SubcategoryListing(
        category=parent,
        subcategory=subcategory_info(subcategory, len(services)),
        services=project_services(services, directory),
        items_count=len(services),
    )


def service_detail(
    service: Service,
    category: Optional[CategoryInfo],
    subcategory: Optional[SubcategoryInfo],
    nested_count: int,
    directory: CategoryDirectory,
) -> ServiceDetail:
    return ServiceDetail(
        service=project_service(service, directory),
        category_info=category,
        subcategory_info=subcategory,
        items_count=nested_count,
    )


def service_list(
    services: Sequence[Service],
    total_count: int,
    page: int,
    limit: int,
    directory: CategoryDirectory,
) -> ServiceListResponse:
    return ServiceListResponse(
        services=project_services(services, directory),
        total_count=total_count,
        page=page,
        limit=limit,
        total_pages=math.ceil(total_count / limit) if total_count else 0,
    )
