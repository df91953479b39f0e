"""
Catalog Backend — Application Package Initializer
==================================================

Architecture Note:

    ┌─────────────────────────────────────┐
    │          Routes (API Layer)         │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  CatalogResolver (orchestration)    │  ← fallback chains, 404 decisions
    ├─────────────────────────────────────┤
    │  Directory · Matcher · Projector    │  ← pure, per-request
    ├─────────────────────────────────────┤
    │  CatalogStore (queries)             │  ← the only SQL
    ├─────────────────────────────────────┤
    │  Models & Schemas · Database        │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

The catalog is read-only at runtime. Content is written by the admin tooling;
`python -m app.link_services` is the one maintenance writer shipped here.
"""

__version__ = "1.0.0"
