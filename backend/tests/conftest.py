"""
Storefront Test Configuration and Fixtures

This module provides:
- A controllable clock for TTL tests
- In-memory storage, replica, gateway and cart ledger wiring
- A fake remote catalog with call counting and failure injection
- Product factories
"""

import os
import sys
from collections import Counter
from decimal import Decimal
from typing import List, Optional

import pytest

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["CATALOG_API_URL"] = "http://catalog.test/api"

from storefront.core.cache import TTLCache
from storefront.core.events import Notifier
from storefront.core.exceptions import ProductNotFound
from storefront.database.kv_store import InMemoryKeyValueStore
from storefront.database.local_replica import LocalReplicaStore
from storefront.database.seed_catalog import SEED_TIMESTAMP, default_catalog
from storefront.models.product import (
    AdminProductQuery,
    BulkAction,
    Product,
    ProductCategory,
    ProductCreate,
    ProductQuery,
    ProductUpdate,
)
from storefront.services import catalog_query
from storefront.services.cart_ledger import CartLedger, CartPricing
from storefront.services.catalog_gateway import CatalogGateway


# =============================================================================
# Factories
# =============================================================================

def make_product(product_id: str, price: str = "100", **overrides) -> Product:
    """Build a valid product; keyword overrides use attribute names."""
    fields = dict(
        id=product_id,
        name=f"Product {product_id}",
        description=f"Description for product {product_id}",
        price=Decimal(price),
        category=ProductCategory.TOPS,
        sizes=["S", "M", "L"],
        colors=["Black"],
        in_stock=True,
        featured=False,
        created_at=SEED_TIMESTAMP,
        updated_at=SEED_TIMESTAMP,
    )
    fields.update(overrides)
    return Product(**fields)


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalogClient:
    """
    In-memory stand-in for RemoteCatalogClient.

    Answers from its own product list using the same query rules as the
    local replica, so online and offline results can be compared directly.
    Set ``failure`` to an exception instance to make every call raise it.
    """

    def __init__(self, products: Optional[List[Product]] = None):
        self.products: List[Product] = list(products if products is not None else default_catalog())
        self.failure: Optional[Exception] = None
        self.calls: Counter = Counter()
        self._next_id = 100

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if self.failure is not None:
            raise self.failure

    def _find(self, product_id: str) -> Product:
        product = catalog_query.find_product(self.products, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    async def list_products(self, query: Optional[ProductQuery] = None):
        self._enter("list_products")
        return catalog_query.apply_query(self.products, query or ProductQuery())

    async def get_featured(self):
        self._enter("get_featured")
        return catalog_query.featured_products(self.products)

    async def get_product(self, product_id: str):
        self._enter("get_product")
        return self._find(product_id)

    async def search_products(self, text: str, limit: int = 10):
        self._enter("search_products")
        return catalog_query.search_products(self.products, text, limit)

    async def get_categories(self):
        self._enter("get_categories")
        return catalog_query.categories(self.products)

    async def get_price_range(self):
        self._enter("get_price_range")
        return catalog_query.price_range(self.products)

    async def get_dashboard_stats(self):
        self._enter("get_dashboard_stats")
        return catalog_query.catalog_stats(self.products)

    async def list_admin_products(self, query=None):
        self._enter("list_admin_products")
        return catalog_query.apply_query(self.products, (query or AdminProductQuery()).as_product_query())

    async def create_product(self, data: ProductCreate):
        self._enter("create_product")
        self._next_id += 1
        product = data.build(f"remote-{self._next_id}")
        self.products.append(product)
        return product

    async def update_product(self, product_id: str, updates: ProductUpdate):
        self._enter("update_product")
        updated = updates.apply_to(self._find(product_id))
        self.products = [updated if p.id == product_id else p for p in self.products]
        return updated

    async def delete_product(self, product_id: str):
        self._enter("delete_product")
        self._find(product_id)
        self.products = [p for p in self.products if p.id != product_id]

    async def bulk_operation(self, action: BulkAction, product_ids, updates=None):
        self._enter("bulk_operation")
        targets = set(product_ids)
        affected = sum(1 for p in self.products if p.id in targets)
        if action == BulkAction.DELETE:
            self.products = [p for p in self.products if p.id not in targets]
        else:
            change = {
                BulkAction.FEATURE: ProductUpdate(featured=True),
                BulkAction.UNFEATURE: ProductUpdate(featured=False),
            }.get(action, updates)
            self.products = [change.apply_to(p) if p.id in targets else p for p in self.products]
        return affected

    async def health_check(self):
        self.calls["health_check"] += 1
        return self.failure is None

    async def aclose(self):
        pass


# =============================================================================
# Wiring Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl_minutes=2, clock=clock)


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def replica(kv_store, notifier):
    return LocalReplicaStore(kv_store, notifier)


@pytest.fixture
def remote():
    return FakeCatalogClient()


@pytest.fixture
def gateway(remote, cache, replica):
    return CatalogGateway(remote, cache, replica, products_ttl_minutes=2, featured_ttl_minutes=5)


@pytest.fixture
def ledger(gateway, kv_store, notifier):
    return CartLedger(gateway, kv_store, notifier, CartPricing())


@pytest.fixture
def catalog_events(notifier):
    """Record every catalog_changed payload."""
    received = []
    notifier.subscribe("catalog_changed", lambda event, payload: received.append(payload))
    return received


@pytest.fixture
def cart_events(notifier):
    received = []
    notifier.subscribe("cart_changed", lambda event, payload: received.append(payload))
    return received


@pytest.fixture
def product_factory():
    return make_product
