"""
Products API Router
Public catalog reads plus offline-mode status and refresh.

Every read goes through CatalogGateway, so responses are identical in shape
whether they came from the cache, the remote catalog or the local replica.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_gateway, get_services, StorefrontServices
from storefront.core.config import settings
from storefront.models.product import ProductQuery, SortField, SortOrder
from storefront.services.catalog_gateway import CatalogGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


def dump(model):
    return model.model_dump(mode="json", by_alias=True)


@router.get("")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    category: Optional[str] = Query(None, description="Exact category, or 'All'"),
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice"),
    featured: Optional[bool] = Query(None),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    search: Optional[str] = Query(None, description="Substring of name, description or category"),
    sort_by: SortField = Query(SortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    gateway: CatalogGateway = Depends(get_gateway),
):
    """List products with filters, sorting and pagination"""
    query = ProductQuery(
        page=page,
        limit=limit,
        category=category,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        in_stock=in_stock,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await gateway.list_products(query)
    return {
        "success": True,
        "products": [dump(p) for p in result.items],
        "pagination": dump(result.pagination),
        "offline": gateway.is_offline(),
    }


@router.get("/featured")
async def get_featured(gateway: CatalogGateway = Depends(get_gateway)):
    products = await gateway.get_featured()
    return {"success": True, "products": [dump(p) for p in products], "offline": gateway.is_offline()}


@router.get("/search/{text}")
async def search_products(
    text: str,
    limit: int = Query(10, ge=1, le=100),
    gateway: CatalogGateway = Depends(get_gateway),
):
    products = await gateway.search(text, limit)
    return {"success": True, "products": [dump(p) for p in products], "offline": gateway.is_offline()}


@router.get("/meta/categories")
async def get_categories(gateway: CatalogGateway = Depends(get_gateway)):
    return {"success": True, "categories": await gateway.get_categories()}


@router.get("/meta/price-range")
async def get_price_range(gateway: CatalogGateway = Depends(get_gateway)):
    price_range = await gateway.get_price_range()
    return {"success": True, **dump(price_range)}


@router.get("/status")
async def catalog_status(services: StorefrontServices = Depends(get_services)):
    """Current mode and cache statistics"""
    return {
        "success": True,
        "offline": services.gateway.is_offline(),
        "cache": services.cache.stats(),
    }


@router.post("/refresh")
async def refresh_catalog(
    sync_replica: bool = Query(False, alias="syncReplica"),
    gateway: CatalogGateway = Depends(get_gateway),
):
    """
    Clear the cache and retry the remote catalog.

    This is the only way out of Offline mode. A failed attempt is reported
    in the body, not as an HTTP error.
    """
    result = await gateway.refresh(sync_replica=sync_replica)
    return dump(result)


@router.get("/{product_id}")
async def get_product(product_id: str, gateway: CatalogGateway = Depends(get_gateway)):
    product = await gateway.get_by_id(product_id)
    return {"success": True, "product": dump(product)}
