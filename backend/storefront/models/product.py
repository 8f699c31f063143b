"""
Catalog Pydantic Models

Request/Response models for the product catalog.
Used for:
- Parsing and validating remote catalog payloads
- Serializing the local replica
- API documentation (OpenAPI/Swagger)

Wire format is camelCase (``inStock``, ``createdAt``); Python attributes are snake_case.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Decimal in Python, plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]
NonNegativeMoney = Annotated[Money, Field(ge=0)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


# =============================================================================
# Enums
# =============================================================================

class ProductCategory(str, Enum):
    """Closed set of catalog categories"""
    OUTERWEAR = "Outerwear"
    HOODIES = "Hoodies"
    TOPS = "Tops"
    BOTTOMS = "Bottoms"
    FOOTWEAR = "Footwear"
    ACCESSORIES = "Accessories"


class SortField(str, Enum):
    PRICE = "price"
    NAME = "name"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BulkAction(str, Enum):
    """Admin bulk operations"""
    DELETE = "delete"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    UPDATE = "update"


# =============================================================================
# Product
# =============================================================================

class Product(CamelModel):
    """A catalog product as owned by the remote service"""
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"), serialization_alias="id")
    name: str
    description: str = ""
    price: NonNegativeMoney
    images: List[str] = Field(default_factory=list)
    category: ProductCategory
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    in_stock: bool = True
    featured: bool = False
    model_3d: Optional[str] = Field(None, alias="model3D")
    tags: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        # Mongo ObjectIds may arrive as non-string values
        return str(v) if v is not None else v

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProductCreate(CamelModel):
    """Admin payload for creating a product"""
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: NonNegativeMoney
    images: List[str] = Field(default_factory=list)
    category: ProductCategory
    sizes: List[str] = Field(..., min_length=1)
    colors: List[str] = Field(..., min_length=1)
    in_stock: bool = True
    featured: bool = False
    model_3d: Optional[str] = Field(None, alias="model3D")
    tags: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def build(self, product_id: str, now: Optional[datetime] = None) -> Product:
        """Materialize a Product for the local replica."""
        now = now or utcnow()
        return Product(
            id=product_id,
            created_at=now,
            updated_at=now,
            **self.model_dump(),
        )


class ProductUpdate(CamelModel):
    """Admin payload for a partial product update. Unset fields are left alone."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[NonNegativeMoney] = None
    images: Optional[List[str]] = None
    category: Optional[ProductCategory] = None
    sizes: Optional[List[str]] = Field(None, min_length=1)
    colors: Optional[List[str]] = Field(None, min_length=1)
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    model_3d: Optional[str] = Field(None, alias="model3D")
    tags: Optional[List[str]] = None
    materials: Optional[List[str]] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def apply_to(self, product: Product, now: Optional[datetime] = None) -> Product:
        """Return a revalidated copy of ``product`` with these changes applied."""
        merged = {**product.model_dump(), **self.changes(), "updated_at": now or utcnow()}
        return Product.model_validate(merged)


# =============================================================================
# Queries & pages
# =============================================================================

class ProductQuery(CamelModel):
    """Filter, sort and pagination parameters for a product listing"""
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1, le=100)
    category: Optional[str] = None
    min_price: Optional[NonNegativeMoney] = None
    max_price: Optional[NonNegativeMoney] = None
    featured: Optional[bool] = None
    in_stock: Optional[bool] = None
    search: Optional[str] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    def to_params(self) -> Dict[str, Any]:
        """Query-string parameters for the remote ``GET /products``."""
        params = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for key in ("featured", "inStock"):
            if key in params:
                params[key] = "true" if params[key] else "false"
        return params

    def cache_key(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), sort_keys=True)


class AdminProductQuery(CamelModel):
    """Admin listing: text search plus category and stock filters, newest first"""
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = None
    category: Optional[str] = None
    in_stock: Optional[bool] = None

    def to_params(self) -> Dict[str, Any]:
        """Query-string parameters for the remote ``GET /admin/products``."""
        params = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if "inStock" in params:
            params["inStock"] = "true" if params["inStock"] else "false"
        return params

    def as_product_query(self) -> ProductQuery:
        return ProductQuery(**self.model_dump())

    def cache_key(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), sort_keys=True)


class Pagination(CamelModel):
    current_page: int = 1
    total_pages: int = 1
    total_items: int = 0
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def build(cls, page: int, limit: int, total_items: int) -> "Pagination":
        """Derive consistent pagination metadata from a page request and a filtered total."""
        total_pages = (total_items + limit - 1) // limit if total_items > 0 else 1
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total_items,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class ProductPage(CamelModel):
    items: List[Product] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class PriceRange(CamelModel):
    min_price: Money = Decimal("0")
    max_price: Money = Decimal("0")


class CatalogStats(CamelModel):
    total_products: int = 0
    featured_products: int = 0
    out_of_stock_products: int = 0
    categories: int = 0
    average_price: Money = Decimal("0")


class BulkOperationRequest(CamelModel):
    action: BulkAction
    product_ids: List[str] = Field(..., min_length=1)
    updates: Optional[ProductUpdate] = None


class BulkResult(CamelModel):
    action: BulkAction
    affected_count: int
    product_ids: List[str] = Field(default_factory=list)


class RefreshResult(CamelModel):
    """Outcome of an explicit refresh; ``offline`` reflects the mode after the attempt."""
    success: bool
    offline: bool
    message: str = ""
    pagination: Optional[Pagination] = None
    synced_products: Optional[int] = None
