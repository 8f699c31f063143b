from storefront.models.cart import (
    CartEntry,
    CartItemKey,
    CartItemRequest,
    CartSummary,
    CheckoutReceipt,
    PricedLineItem,
)
from storefront.models.product import (
    AdminProductQuery,
    BulkAction,
    BulkOperationRequest,
    BulkResult,
    CatalogStats,
    Pagination,
    PriceRange,
    Product,
    ProductCategory,
    ProductCreate,
    ProductPage,
    ProductQuery,
    ProductUpdate,
    RefreshResult,
    SortField,
    SortOrder,
)

__all__ = [
    "AdminProductQuery",
    "BulkAction",
    "BulkOperationRequest",
    "BulkResult",
    "CartEntry",
    "CartItemKey",
    "CartItemRequest",
    "CartSummary",
    "CatalogStats",
    "CheckoutReceipt",
    "Pagination",
    "PriceRange",
    "PricedLineItem",
    "Product",
    "ProductCategory",
    "ProductCreate",
    "ProductPage",
    "ProductQuery",
    "ProductUpdate",
    "RefreshResult",
    "SortField",
    "SortOrder",
]
