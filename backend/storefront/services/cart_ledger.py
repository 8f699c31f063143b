"""
Cart Ledger

Persistent shopping cart. Only (product_id, size, color, quantity) rows are
stored; prices are resolved fresh from the catalog every time the cart is
summarized, so totals always reflect the current catalog.
"""

import asyncio
import json
import logging
import threading
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from pydantic import ValidationError

from storefront.core.config import Settings
from storefront.core.events import CART_CHANGED, Notifier
from storefront.core.exceptions import LocalStorageFailure, NotFound, ValidationFailure
from storefront.database.kv_store import KeyValueStore
from storefront.models.cart import (
    CartEntry,
    CartSummary,
    CheckoutReceipt,
    PricedLineItem,
)
from storefront.models.product import Product, utcnow
from storefront.services.catalog_gateway import CatalogGateway

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "storefront:cart"

CENTS = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartPricing:
    """Tax and shipping rules applied to a cart subtotal"""
    tax_rate: Decimal = Decimal("0.10")
    free_shipping_threshold: Decimal = Decimal("100")
    shipping_fee: Decimal = Decimal("15")

    @classmethod
    def from_settings(cls, config: Settings) -> "CartPricing":
        return cls(
            tax_rate=config.TAX_RATE,
            free_shipping_threshold=config.FREE_SHIPPING_THRESHOLD,
            shipping_fee=config.SHIPPING_FEE,
        )

    def tax(self, subtotal: Decimal) -> Decimal:
        return to_cents(subtotal * self.tax_rate)

    def shipping(self, subtotal: Decimal) -> Decimal:
        if subtotal > self.free_shipping_threshold:
            return to_cents(Decimal("0"))
        return to_cents(self.shipping_fee)


class CartLedger:
    """
    Args:
        gateway: Resolves live product prices
        store: Durable key/value backend holding the cart rows
        notifier: Receives ``cart_changed`` after every mutation
        pricing: Tax and shipping rules
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        store: KeyValueStore,
        notifier: Optional[Notifier] = None,
        pricing: Optional[CartPricing] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.notifier = notifier or Notifier()
        self.pricing = pricing or CartPricing()
        self._lock = threading.Lock()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> List[CartEntry]:
        raw = self.store.get(CART_STORAGE_KEY)
        if raw is None:
            return []
        try:
            documents = json.loads(raw)
            if not isinstance(documents, list):
                raise ValueError("cart is not a list")
            return [CartEntry.model_validate(doc) for doc in documents]
        except (ValueError, ValidationError) as e:
            logger.error(f"Stored cart is corrupt: {e}")
            raise LocalStorageFailure(
                "Stored cart is corrupt",
                {"key": CART_STORAGE_KEY, "reason": str(e)},
            ) from e

    def _save(self, entries: List[CartEntry]) -> None:
        payload = json.dumps([e.model_dump(mode="json", by_alias=True) for e in entries])
        self.store.set(CART_STORAGE_KEY, payload)

    def _changed(self, entries: List[CartEntry]) -> None:
        self.notifier.publish(CART_CHANGED, sum(e.quantity for e in entries))

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, product_id: str, quantity: int, size: str, color: str) -> CartEntry:
        """Add ``quantity`` units; an existing row with the same key is incremented."""
        if quantity < 1:
            raise ValidationFailure(
                "Quantity must be at least 1",
                {"product_id": product_id, "quantity": quantity},
            )

        key = (product_id, size, color)
        with self._lock:
            entries = self._load()
            for index, entry in enumerate(entries):
                if entry.key == key:
                    updated = entry.model_copy(update={"quantity": entry.quantity + quantity})
                    entries[index] = updated
                    break
            else:
                updated = CartEntry(product_id=product_id, quantity=quantity, size=size, color=color)
                entries.append(updated)
            self._save(entries)

        logger.debug(f"Cart add {product_id} ({size}/{color}) -> {updated.quantity}")
        self._changed(entries)
        return updated

    def set_quantity(self, product_id: str, size: str, color: str, quantity: int) -> Optional[CartEntry]:
        """Overwrite a row's quantity; zero or less removes it. Returns the row or None."""
        if quantity <= 0:
            self.remove(product_id, size, color)
            return None

        key = (product_id, size, color)
        with self._lock:
            entries = self._load()
            for index, entry in enumerate(entries):
                if entry.key == key:
                    updated = entry.model_copy(update={"quantity": quantity})
                    entries[index] = updated
                    break
            else:
                updated = CartEntry(product_id=product_id, quantity=quantity, size=size, color=color)
                entries.append(updated)
            self._save(entries)

        self._changed(entries)
        return updated

    def remove(self, product_id: str, size: str, color: str) -> None:
        key = (product_id, size, color)
        with self._lock:
            entries = self._load()
            remaining = [e for e in entries if e.key != key]
            if len(remaining) == len(entries):
                return
            self._save(remaining)

        self._changed(remaining)

    def clear(self) -> None:
        with self._lock:
            self._save([])
        self._changed([])

    # =========================================================================
    # Reads
    # =========================================================================

    def entries(self) -> List[CartEntry]:
        with self._lock:
            return self._load()

    def count(self) -> int:
        return sum(e.quantity for e in self.entries())

    async def _resolve(self, entry: CartEntry) -> Optional[Product]:
        try:
            return await self.gateway.get_by_id(entry.product_id, use_cache=False)
        except NotFound:
            logger.info(f"Cart product {entry.product_id} no longer in catalog, excluded from totals")
            return None

    async def line_items(self) -> List[PricedLineItem]:
        """Price every row against the live catalog; unresolvable rows are skipped, not removed."""
        entries = self.entries()
        products = await asyncio.gather(*(self._resolve(e) for e in entries), return_exceptions=True)
        for outcome in products:
            if isinstance(outcome, BaseException):
                raise outcome

        items = []
        for entry, product in zip(entries, products):
            if product is None:
                continue
            items.append(PricedLineItem(
                product_id=entry.product_id,
                quantity=entry.quantity,
                size=entry.size,
                color=entry.color,
                product=product,
                subtotal=to_cents(product.price * entry.quantity),
            ))
        return items

    async def summarize(self) -> CartSummary:
        items = await self.line_items()
        subtotal = to_cents(sum((item.subtotal for item in items), Decimal("0")))
        tax = self.pricing.tax(subtotal)
        shipping = self.pricing.shipping(subtotal)

        return CartSummary(
            items=items,
            total_items=sum(item.quantity for item in items),
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            total=to_cents(subtotal + tax + shipping),
        )

    async def checkout(self) -> CheckoutReceipt:
        """Price the cart, issue an order id and empty the cart."""
        summary = await self.summarize()
        if summary.total_items == 0:
            raise ValidationFailure("Cart is empty")

        receipt = CheckoutReceipt(
            order_id=f"ORD-{uuid.uuid4().hex[:12].upper()}",
            summary=summary,
            placed_at=utcnow(),
        )
        self.clear()
        logger.info(f"Checkout {receipt.order_id}: {summary.total_items} items, total {summary.total}")
        return receipt
