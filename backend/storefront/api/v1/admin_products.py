"""
Admin Products API Router
Catalog management: listing, create, update, delete, bulk operations and dashboard stats.

Writes go to the remote catalog when it is reachable and to the local
replica while the storefront is Offline.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_gateway
from storefront.models.product import AdminProductQuery, BulkOperationRequest, ProductCreate, ProductUpdate
from storefront.services.catalog_gateway import CatalogGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Products"])


@router.get("/dashboard")
async def get_dashboard(gateway: CatalogGateway = Depends(get_gateway)):
    """Catalog statistics for the admin dashboard"""
    stats = await gateway.get_stats()
    return {"success": True, "stats": stats.model_dump(mode="json", by_alias=True)}


@router.get("/products")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    gateway: CatalogGateway = Depends(get_gateway),
):
    """Paginated admin product table, newest first"""
    query = AdminProductQuery(page=page, limit=limit, search=search, category=category, in_stock=in_stock)
    result = await gateway.list_admin_products(query)
    return {
        "success": True,
        "products": [p.model_dump(mode="json", by_alias=True) for p in result.items],
        "pagination": result.pagination.model_dump(mode="json", by_alias=True),
        "offline": gateway.is_offline(),
    }


@router.post("/products", status_code=201)
async def create_product(data: ProductCreate, gateway: CatalogGateway = Depends(get_gateway)):
    product = await gateway.create_product(data)
    return {
        "success": True,
        "message": "Product created successfully",
        "product": product.to_wire(),
    }


@router.put("/products/{product_id}")
async def update_product(
    product_id: str,
    updates: ProductUpdate,
    gateway: CatalogGateway = Depends(get_gateway),
):
    product = await gateway.update_product(product_id, updates)
    return {
        "success": True,
        "message": "Product updated successfully",
        "product": product.to_wire(),
    }


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, gateway: CatalogGateway = Depends(get_gateway)):
    await gateway.delete_product(product_id)
    return {"success": True, "message": "Product deleted successfully"}


@router.post("/products/bulk")
async def bulk_operation(request: BulkOperationRequest, gateway: CatalogGateway = Depends(get_gateway)):
    """Apply one action to many products; nothing is applied if any id is unknown (Offline)"""
    result = await gateway.bulk_operation(request.action, request.product_ids, request.updates)
    return {
        "success": True,
        "message": f"Bulk {result.action.value} completed",
        **result.model_dump(mode="json", by_alias=True),
    }
