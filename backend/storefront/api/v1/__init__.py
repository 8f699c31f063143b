"""
API v1 Router Initialization
Exports all routers for the storefront API v1
"""

from fastapi import APIRouter
from .admin_products import router as admin_products_router
from .cart import router as cart_router
from .health import router as health_router
from .products import router as products_router

# Create main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

# Include all routers
api_v1_router.include_router(products_router)
api_v1_router.include_router(admin_products_router)
api_v1_router.include_router(cart_router)
api_v1_router.include_router(health_router)

# Export the main router
__all__ = ["api_v1_router"]
