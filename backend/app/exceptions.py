"""
Catalog Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the catalog resolution paths.
Why:   Lets the resolver signal "nothing resolved" and "store broke" as distinct
       types that the HTTP layer maps onto 404 and 500.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.

Exception Hierarchy:
    CatalogError (base)
    ├── NotFoundError            → 404 Not Found
    └── StoreUnavailableError    → 500 Internal Server Error

Directory lookups never raise: a miss is a normal return value (None / []).
Only the top-level resolver operations turn an exhausted fallback chain into
NotFoundError. Ambiguous fuzzy matches are logged, not raised
(see app.services.membership.AmbiguousMatch).
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """
    Base exception for all catalog application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (returned as `details` for 4xx only)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class NotFoundError(CatalogError):
    """
    Raised when a category, subcategory or service cannot be resolved.

    What:    Every fallback strategy came back empty for the requested token.
    HTTP:    404 Not Found

    Attributes:
        resource: "category", "subcategory", "service"
        token:    the path token that failed to resolve
    """

    def __init__(
        self,
        resource: str = "resource",
        token: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if token:
            message = f"{resource.capitalize()} '{token}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if token:
            ctx["token"] = token
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.token = token


class StoreUnavailableError(CatalogError):
    """
    Raised when the catalog store cannot answer a query.

    What:    Connection lost, pool exhausted, malformed SQL, driver failure.
    HTTP:    500 Internal Server Error

    Fatal for the current request and never retried by the resolver.
    The response body is always generic; context is logged server-side only.
    """

    def __init__(
        self,
        message: str = "The catalog store is unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
