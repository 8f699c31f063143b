"""
Cart API
Server-side cart backed by the CartLedger; totals are priced live on every read.
"""

import logging

from fastapi import APIRouter, Depends

from storefront.api.deps import get_ledger
from storefront.models.cart import CartItemKey, CartItemRequest
from storefront.services.cart_ledger import CartLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


async def cart_payload(ledger: CartLedger) -> dict:
    summary = await ledger.summarize()
    return {"success": True, "cart": summary.model_dump(mode="json", by_alias=True)}


@router.get("")
async def get_cart(ledger: CartLedger = Depends(get_ledger)):
    """Get current cart with live prices"""
    return await cart_payload(ledger)


@router.get("/count")
async def get_cart_count(ledger: CartLedger = Depends(get_ledger)):
    return {"success": True, "count": ledger.count()}


@router.post("/items")
async def add_to_cart(request: CartItemRequest, ledger: CartLedger = Depends(get_ledger)):
    """Add item to cart; an existing (product, size, color) row is incremented"""
    ledger.add(request.product_id, request.quantity, request.size, request.color)
    return await cart_payload(ledger)


@router.put("/items")
async def update_cart_item(request: CartItemRequest, ledger: CartLedger = Depends(get_ledger)):
    """Set a row's quantity (0 to remove)"""
    ledger.set_quantity(request.product_id, request.size, request.color, request.quantity)
    return await cart_payload(ledger)


@router.delete("/items")
async def remove_cart_item(request: CartItemKey, ledger: CartLedger = Depends(get_ledger)):
    ledger.remove(request.product_id, request.size, request.color)
    return await cart_payload(ledger)


@router.delete("")
async def clear_cart(ledger: CartLedger = Depends(get_ledger)):
    ledger.clear()
    return {"success": True, "message": "Cart cleared"}


@router.post("/checkout")
async def checkout(ledger: CartLedger = Depends(get_ledger)):
    receipt = await ledger.checkout()
    return {"success": True, "order": receipt.model_dump(mode="json", by_alias=True)}
