"""
Cart Pydantic Models

CartEntry is the only persisted shape; line items and summaries are derived
on every read from live product prices.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Tuple

from pydantic import Field

from storefront.models.product import CamelModel, Money, Product, utcnow

CartKey = Tuple[str, str, str]


class CartEntry(CamelModel):
    """One cart row, unique per (product_id, size, color)"""
    product_id: str
    quantity: int = Field(..., ge=1)
    size: str
    color: str

    @property
    def key(self) -> CartKey:
        return (self.product_id, self.size, self.color)


class CartItemRequest(CamelModel):
    """API payload for adding to or updating the cart"""
    product_id: str
    quantity: int = 1
    size: str
    color: str


class CartItemKey(CamelModel):
    product_id: str
    size: str
    color: str


class PricedLineItem(CamelModel):
    product_id: str
    quantity: int
    size: str
    color: str
    product: Product
    subtotal: Money


class CartSummary(CamelModel):
    items: List[PricedLineItem] = Field(default_factory=list)
    total_items: int = 0
    subtotal: Money = Decimal("0.00")
    tax: Money = Decimal("0.00")
    shipping: Money = Decimal("0.00")
    total: Money = Decimal("0.00")


class CheckoutReceipt(CamelModel):
    order_id: str
    summary: CartSummary
    placed_at: datetime = Field(default_factory=utcnow)
