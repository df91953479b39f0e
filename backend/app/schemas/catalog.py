"""
Catalog Backend — Pydantic Response Schemas
============================================

What:  Response models for the catalog API (the three resolution results,
       the service listing and the category index) plus error/health shapes.
How:   Built by app.services.projector from ORM rows; FastAPI serializes them
       and generates the OpenAPI docs from them.

Every listing carries `items_count`, derived from the rows or services in
the same response at read time. No count is stored anywhere.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Service Shapes
# ══════════════════════════════════════════════════════════════════════════


class PriceRange(BaseModel):
    min: float = Field(description="Lowest quoted fee")
    max: float = Field(description="Highest quoted fee")
    currency: str = Field(default="INR", description="ISO currency code")


class ProcessStep(BaseModel):
    step: int
    title: str
    description: str = ""
    duration: str = ""


class FAQ(BaseModel):
    id: str
    question: str
    answer: str


class ServiceSummary(BaseModel):
    """
    What:  Flattened service record.
    Who:   Embedded in every listing and in ServiceDetail.

    `category` / `subcategory` hold the canonical category id when the stored
    reference resolves to a known category, otherwise the raw stored value.
    """
    id: uuid.UUID = Field(description="Service identifier")
    slug: str = Field(description="URL token, unique")
    title: str
    short_description: str = ""
    long_description: str = ""
    icon_name: str = ""
    category: Optional[str] = Field(default=None, description="Canonical category reference")
    subcategory: Optional[str] = Field(default=None, description="Canonical subcategory reference")
    category_name: Optional[str] = Field(default=None, description="Legacy category label")
    price: PriceRange
    duration: str = ""
    features: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    process: List[ProcessStep] = Field(default_factory=list)
    faqs: List[FAQ] = Field(default_factory=list)
    related_services: List[str] = Field(default_factory=list)
    status: str = Field(default="published", description="draft or published")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ══════════════════════════════════════════════════════════════════════════
# Category Shapes
# ══════════════════════════════════════════════════════════════════════════


class CategoryInfo(BaseModel):
    """
    What:  A category as seen from a listing or a service detail page.

    Virtual parents (a type addressed directly) have `id = null` and
    `is_virtual = true`; every other field is synthesized from the type.
    """
    id: Optional[uuid.UUID] = Field(default=None, description="Null for virtual parents")
    external_id: str
    slug: str
    title: str
    description: str = ""
    icon_name: str = ""
    hero_title: str = ""
    hero_description: str = ""
    category_type: str
    is_virtual: bool = False
    has_subcategories: bool = False
    items_count: int = Field(description="Subcategory rows, or matched services when there are none")


class SubcategoryRow(BaseModel):
    """
    What:  One child row in a category listing.

    kind = "category": a sibling category under a virtual parent;
           items_count = services matched to it.
    kind = "service":  an explicit sub-item service;
           items_count = services nested under it.
    """
    kind: Literal["category", "service"]
    id: uuid.UUID
    slug: str
    title: str
    description: str = ""
    icon_name: str = ""
    category_type: Optional[str] = None
    price: Optional[PriceRange] = None
    duration: Optional[str] = None
    items_count: int


class SubcategoryInfo(BaseModel):
    kind: Literal["category", "service"]
    id: uuid.UUID
    slug: str
    title: str
    description: str = ""
    icon_name: str = ""
    category_type: Optional[str] = None
    items_count: int


class SubServiceRef(BaseModel):
    id: uuid.UUID
    slug: str
    title: str

    model_config = {"from_attributes": True}


class CategoryRecord(BaseModel):
    """Stored category as returned by the category index endpoints."""
    id: uuid.UUID
    external_id: str
    slug: str
    title: str
    description: str = ""
    icon_name: str = ""
    hero_title: str = ""
    hero_description: str = ""
    category_type: str
    sub_services: List[SubServiceRef] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryIndexResponse(BaseModel):
    categories: List[CategoryRecord]
    total_count: int


# ══════════════════════════════════════════════════════════════════════════
# Resolution Results
# ══════════════════════════════════════════════════════════════════════════


class CategoryListing(BaseModel):
    """
    What:  Result of GET /api/services/{category}.

    `category` is null when the token matched no category or type and the
    services came from the free-text fallback search.
    """
    kind: Literal["category_listing"] = "category_listing"
    category: Optional[CategoryInfo] = None
    services: List[ServiceSummary] = Field(default_factory=list)
    subcategories: List[SubcategoryRow] = Field(default_factory=list)
    items_count: int


class SubcategoryListing(BaseModel):
    """Result of GET /api/services/{category}/{subcategory}."""
    kind: Literal["subcategory_listing"] = "subcategory_listing"
    category: CategoryInfo
    subcategory: SubcategoryInfo
    services: List[ServiceSummary] = Field(default_factory=list)
    items_count: int


class ServiceDetail(BaseModel):
    """
    What:  Result of GET /api/services/{category}/{subcategory}/{slug}, and of
           the two-segment route when the category is flat.

    `items_count` counts the services nested under this service.
    """
    kind: Literal["service_detail"] = "service_detail"
    service: ServiceSummary
    category_info: Optional[CategoryInfo] = None
    subcategory_info: Optional[SubcategoryInfo] = None
    items_count: int


class ServiceListResponse(BaseModel):
    """Paginated result of GET /api/services."""
    services: List[ServiceSummary]
    total_count: int = Field(description="Services matching the filters, across all pages")
    page: int
    limit: int
    total_pages: int


# ══════════════════════════════════════════════════════════════════════════
# Error & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body.

    Example:
        {
            "error": "not_found",
            "message": "Service 'gst-audit' was not found",
            "details": {"resource": "service", "token": "gst-audit"},
            "request_id": "1f0c2b7a"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
