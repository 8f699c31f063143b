"""
Centralized Exception Handling for the Storefront catalog core

This module provides:
- The failure taxonomy the catalog gateway keys its fallback decision on
- Standardized error response format
- Exception handler for FastAPI
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# =============================================================================
# Module Exports
# =============================================================================
__all__ = [
    "StorefrontException",
    "TransientFailure",
    "AuthFailure",
    "ValidationFailure",
    "NotFound",
    "ProductNotFound",
    "LocalStorageFailure",
    "CatalogUnavailable",
    "create_error_response",
    "storefront_exception_handler",
    "ERROR_CODE_MAPPINGS",
]


class StorefrontException(Exception):
    """Base exception for the storefront core"""

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR",
                 details: Optional[Dict[str, Any]] = None, status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)


class TransientFailure(StorefrontException):
    """Network error, timeout or 5xx from the remote catalog. Triggers offline fallback."""

    def __init__(self, message: str = "Remote catalog temporarily unavailable",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "REMOTE_UNAVAILABLE", details, 503)


class AuthFailure(StorefrontException):
    """Remote rejected our credentials"""

    def __init__(self, message: str = "Session expired", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AUTH_ERROR", details, 401)


class ValidationFailure(StorefrontException):
    """Remote (or local) rejected the request as invalid"""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details, 400)


class NotFound(StorefrontException):
    """Resource not found error"""

    def __init__(self, message: str = "Not found", error_code: str = "NOT_FOUND",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details, 404)


class ProductNotFound(NotFound):
    """Product does not exist in the catalog that served the lookup"""

    def __init__(self, product_id: str, details: Optional[Dict[str, Any]] = None):
        self.product_id = product_id
        super().__init__(
            f"Product '{product_id}' not found",
            "PRODUCT_NOT_FOUND",
            {**(details or {}), "product_id": product_id},
        )


class LocalStorageFailure(StorefrontException):
    """The durable local store is unavailable or holds corrupt data"""

    def __init__(self, message: str = "Local storage unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "LOCAL_STORAGE_ERROR", details, 500)


class CatalogUnavailable(StorefrontException):
    """Neither the remote, the local replica nor the cache could serve the read"""

    def __init__(self, message: str = "Catalog unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CATALOG_UNAVAILABLE", details, 503)


# Error code mappings for consistent handling
ERROR_CODE_MAPPINGS = {
    "REMOTE_UNAVAILABLE": 503,
    "AUTH_ERROR": 401,
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "PRODUCT_NOT_FOUND": 404,
    "LOCAL_STORAGE_ERROR": 500,
    "CATALOG_UNAVAILABLE": 503,
    "INTERNAL_ERROR": 500,
}


def create_error_response(error: StorefrontException, status_code: Optional[int] = None) -> JSONResponse:
    """Create standardized error response"""

    if status_code is None:
        status_code = error.status_code

    error_response = {
        "success": False,
        "error": {
            "code": error.error_code,
            "message": error.message,
            "details": error.details,
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    logger.error(f"Storefront Error: {error.error_code} - {error.message}", extra={
        "error_code": error.error_code,
        "status_code": status_code,
    })

    return JSONResponse(status_code=status_code, content=error_response)


async def storefront_exception_handler(request, exc: StorefrontException) -> JSONResponse:
    """Global exception handler for storefront exceptions"""
    return create_error_response(exc)
