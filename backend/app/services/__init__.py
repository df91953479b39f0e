# Services package init
"""
Catalog Backend — Services Layer
=================================

What:  Catalog resolution logic between the routes (HTTP) and the database.

Service Inventory:
    - CatalogStore:       SQL queries over categories and services
    - CategoryDirectory:  per-request in-memory category index, CategoryNode variants
    - MembershipMatcher:  ordered service → category membership rules, fallback tiers
    - projector:          ORM rows → response DTOs, items_count derivation
    - CatalogResolver:    the public resolution operations used by the routes

Only CatalogStore touches the session. The directory, the matcher and the
projector are pure and are unit-tested without a database.
"""
