"""Create catalog tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates `categories`, `services` and `category_sub_services`.
How:   UUID primary keys generated by PostgreSQL; category references on
       services are free text so every legacy encoding can be stored as-is.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "external_id",
            sa.String(100),
            nullable=False,
            comment="Stable human-chosen identifier, e.g. 'gst'",
        ),
        sa.Column("slug", sa.String(150), nullable=False, comment="Lowercase URL token"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("icon_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("hero_title", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("hero_description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "category_type",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'simple'"),
            comment="simple, banking-finance, ipo, legal",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id", name="uq_categories_external_id"),
        sa.UniqueConstraint("slug", name="uq_categories_slug"),
        sa.CheckConstraint(
            "category_type IN ('simple', 'banking-finance', 'ipo', 'legal')",
            name="ck_categories_category_type",
        ),
    )
    op.create_index("idx_categories_category_type", "categories", ["category_type"])

    op.create_table(
        "services",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("short_description", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("long_description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("icon_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "category_ref",
            sa.String(255),
            nullable=True,
            comment="Category UUID, slug, external id or bare type value",
        ),
        sa.Column(
            "subcategory_ref",
            sa.String(255),
            nullable=True,
            comment="Category UUID / slug / external id, or the id of a parent service",
        ),
        sa.Column(
            "category_name",
            sa.String(255),
            nullable=True,
            comment="Legacy free-text category label from pre-migration content",
        ),
        sa.Column("price_min", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("price_max", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(10), nullable=False, server_default=sa.text("'INR'")),
        sa.Column("duration", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("features", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("benefits", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("requirements", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("process", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("faqs", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("related_services", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "status",
            sa.String(20),
            nullable=True,
            comment="draft, published; NULL is legacy content and counts as published",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_services_slug"),
    )
    op.create_index("idx_services_category_ref", "services", ["category_ref"])
    op.create_index("idx_services_subcategory_ref", "services", ["subcategory_ref"])
    op.create_index("idx_services_category_name", "services", ["category_name"])
    # Listings are newest first.
    op.create_index("idx_services_created_at", "services", [sa.text("created_at DESC")])

    op.create_table(
        "category_sub_services",
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("category_id", "service_id"),
    )


def downgrade() -> None:
    op.drop_table("category_sub_services")
    op.drop_index("idx_services_created_at", table_name="services")
    op.drop_index("idx_services_category_name", table_name="services")
    op.drop_index("idx_services_subcategory_ref", table_name="services")
    op.drop_index("idx_services_category_ref", table_name="services")
    op.drop_table("services")
    op.drop_index("idx_categories_category_type", table_name="categories")
    op.drop_table("categories")
