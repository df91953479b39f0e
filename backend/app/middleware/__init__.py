# Middleware package init
"""
Catalog Backend — Middleware Package
=====================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: sets the correlation id before anything logs.
    2. Logging: one access line per request, tagged with that id.

Responses travel the chain in reverse, so X-Request-ID is present on every
response, error responses included.
"""
