# Routes package init
"""
Catalog Backend — API Routes Package
=====================================

Route Inventory:
    - services.py: GET /api/services                                   (paginated listing)
                   GET /api/services/categories                        (category index)
                   GET /api/services/categories/{reference}            (one stored category)
                   GET /api/services/{category}                        (category listing)
                   GET /api/services/{category}/{subcategory}          (subcategory listing)
                   GET /api/services/{category}/{subcategory}/{slug}   (service detail)
    - health.py:   GET /health                                          (service health check)

Routes stay thin: read tokens and query parameters, call CatalogResolver,
set cache headers. Resolution logic lives in app.services.
"""
