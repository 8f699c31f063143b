"""
Local catalog queries.

Filtering, sorting, pagination, search and meta aggregates evaluated in
memory against the replica, mirroring what the remote ``/products``
endpoints compute server-side.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from storefront.models.product import (
    CatalogStats,
    Pagination,
    PriceRange,
    Product,
    ProductPage,
    ProductQuery,
    SortField,
    SortOrder,
)

ALL_CATEGORIES = "All"


def matches_text(product: Product, text: str) -> bool:
    """Case-insensitive substring match over name, description and category."""
    needle = text.casefold()
    return (
        needle in product.name.casefold()
        or needle in product.description.casefold()
        or needle in product.category.value.casefold()
    )


def filter_products(products: List[Product], query: ProductQuery) -> List[Product]:
    """Apply a ProductQuery's filters and return matching products in input order."""
    result = products

    if query.category and query.category != ALL_CATEGORIES:
        result = [p for p in result if p.category.value == query.category]
    if query.min_price is not None:
        result = [p for p in result if p.price >= query.min_price]
    if query.max_price is not None:
        result = [p for p in result if p.price <= query.max_price]
    if query.featured is not None:
        result = [p for p in result if p.featured == query.featured]
    if query.in_stock is not None:
        result = [p for p in result if p.in_stock == query.in_stock]
    if query.search:
        result = [p for p in result if matches_text(p, query.search)]

    return result


_SORT_KEYS = {
    SortField.PRICE: lambda p: p.price,
    SortField.NAME: lambda p: p.name.casefold(),
    SortField.CREATED_AT: lambda p: p.created_at,
}


def sort_products(products: List[Product], sort_by: SortField, sort_order: SortOrder) -> List[Product]:
    return sorted(products, key=_SORT_KEYS[sort_by], reverse=sort_order == SortOrder.DESC)


def paginate(products: List[Product], page: int, limit: int) -> ProductPage:
    """Slice one fixed-size page; pagination describes the whole input list."""
    start = (page - 1) * limit
    return ProductPage(
        items=products[start:start + limit],
        pagination=Pagination.build(page, limit, len(products)),
    )


def apply_query(products: List[Product], query: ProductQuery) -> ProductPage:
    """Filter, sort and paginate exactly like the remote ``GET /products``."""
    matched = filter_products(products, query)
    ordered = sort_products(matched, query.sort_by, query.sort_order)
    return paginate(ordered, query.page, query.limit)


def featured_products(products: List[Product]) -> List[Product]:
    return [p for p in products if p.featured and p.in_stock]


def search_products(products: List[Product], text: str, limit: int = 10) -> List[Product]:
    return [p for p in products if matches_text(p, text)][:limit]


def find_product(products: List[Product], product_id: str) -> Optional[Product]:
    return next((p for p in products if p.id == product_id), None)


def categories(products: List[Product]) -> List[str]:
    return sorted({p.category.value for p in products})


def price_range(products: List[Product]) -> PriceRange:
    if not products:
        return PriceRange()
    prices = [p.price for p in products]
    return PriceRange(min_price=min(prices), max_price=max(prices))


def catalog_stats(products: List[Product]) -> CatalogStats:
    if not products:
        return CatalogStats()
    average = sum((p.price for p in products), Decimal("0")) / len(products)
    return CatalogStats(
        total_products=len(products),
        featured_products=sum(1 for p in products if p.featured),
        out_of_stock_products=sum(1 for p in products if not p.in_stock),
        categories=len(categories(products)),
        average_price=average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    )
