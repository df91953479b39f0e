"""
Catalog Backend — Category & Service SQLAlchemy Models
=======================================================

What:  ORM models for the `categories`, `services` and `category_sub_services`
       tables.
Who:   Read by CatalogStore / CategoryDirectory / MembershipMatcher; written only
       by catalog administrators (outside this service) and the link command.

Table Design:
    - categories.slug / categories.external_id: UNIQUE, the two public tokens
      a category can be addressed by.
    - categories.category_type: the presentation grouping shared by siblings.
    - services.category_ref / services.subcategory_ref: free-form references.
      Content carries whichever encoding it was authored with: a category UUID,
      the UUID as text, a slug, an external id, or a bare type value.
      Stored as text; the matcher decides what they point at.
    - services.category_name: legacy free-text category label.
    - category_sub_services: ordered explicit children of a category, used by
      categories that model their subcategories as services.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CategoryType(str, enum.Enum):
    """Presentation groupings a category can belong to."""

    SIMPLE = "simple"
    BANKING_FINANCE = "banking-finance"
    IPO = "ipo"
    LEGAL = "legal"


class ServiceStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class CategoryReference(TypeDecorator):
    """
    Text column holding a union-typed category reference.

    Accepts a `uuid.UUID` (a structured link) or any string on the way in and
    always stores text. Rows loaded back therefore carry strings, while
    freshly built objects may still hold the raw UUID.
    """

    impl = String(255)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Optional[str]:
        if isinstance(value, uuid.UUID):
            return str(value)
        return value


class Category(Base):
    """A node in the catalog hierarchy."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Public tokens ─────────────────────────────────────────────────────
    external_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Stable human-chosen identifier, e.g. 'gst'",
    )
    slug: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        comment="Lowercase URL token",
    )

    # ── Presentation ──────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hero_title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    hero_description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    category_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=CategoryType.SIMPLE.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # ── Explicit sub-items ────────────────────────────────────────────────
    # selectin: loaded together with the category snapshot, never lazily
    # inside an async context.
    sub_service_links: Mapped[List["CategorySubService"]] = relationship(
        back_populates="category",
        order_by="CategorySubService.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_categories_category_type", "category_type"),
    )

    @validates("slug")
    def _normalize_slug(self, key: str, value: str) -> str:
        return value.strip().lower()

    @validates("external_id")
    def _normalize_external_id(self, key: str, value: str) -> str:
        return value.strip()

    @validates("category_type")
    def _validate_category_type(self, key: str, value: str) -> str:
        return CategoryType(value.strip().lower()).value

    @property
    def explicit_sub_items(self) -> List["Service"]:
        """Direct child services, in their stored order."""
        return [link.service for link in self.sub_service_links]

    def __repr__(self) -> str:
        return f"<Category(slug='{self.slug}', type='{self.category_type}')>"


class Service(Base):
    """A sellable offering; the leaf content item of the catalog."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    slug: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    short_description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    long_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # ── Category references ───────────────────────────────────────────────
    category_ref: Mapped[Optional[str]] = mapped_column(CategoryReference, nullable=True)
    subcategory_ref: Mapped[Optional[str]] = mapped_column(CategoryReference, nullable=True)
    category_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Legacy free-text category label from pre-migration content",
    )

    # ── Commercial details ────────────────────────────────────────────────
    price_min: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    price_max: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="INR")
    duration: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    features: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    benefits: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    process: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    faqs: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    related_services: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # NULL is legacy content created before drafts existed; treated as published.
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_services_category_ref", "category_ref"),
        Index("idx_services_subcategory_ref", "subcategory_ref"),
        Index("idx_services_category_name", "category_name"),
        Index("idx_services_created_at", "created_at"),
    )

    @validates("slug")
    def _normalize_slug(self, key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def is_draft(self) -> bool:
        return self.status == ServiceStatus.DRAFT.value

    def __repr__(self) -> str:
        return f"<Service(slug='{self.slug}', category_ref='{self.category_ref}')>"


class CategorySubService(Base):
    """Ordered link from a category to one of its explicit child services."""

    __tablename__ = "category_sub_services"

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category: Mapped["Category"] = relationship(back_populates="sub_service_links")
    service: Mapped["Service"] = relationship(lazy="selectin")
