"""
Catalog Gateway

Single entry point for catalog reads and admin mutations. Decides per call
whether to answer from the cache, the remote catalog or the local replica.

Modes:
- Online (default): cache -> remote -> cache. A TransientFailure switches
  to Offline and the same call is answered from the replica.
- Offline: replica only. Offline is persisted and sticky; only refresh()
  brings the gateway back Online.

Auth, validation and not-found errors from the remote are surfaced to the
caller unchanged; they never trigger a fallback.
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from storefront.core.cache import TTLCache
from storefront.core.exceptions import (
    CatalogUnavailable,
    LocalStorageFailure,
    NotFound,
    ProductNotFound,
    StorefrontException,
    TransientFailure,
    ValidationFailure,
)
from storefront.core.retry import NO_RETRY_CONFIG, RetryConfig, retry_async
from storefront.database.local_replica import LocalReplicaStore
from storefront.models.product import (
    AdminProductQuery,
    BulkAction,
    BulkResult,
    CatalogStats,
    PriceRange,
    Product,
    ProductCreate,
    ProductPage,
    ProductQuery,
    ProductUpdate,
    RefreshResult,
    utcnow,
)
from storefront.services import catalog_query
from storefront.services.catalog_client import RemoteCatalogClient

logger = logging.getLogger(__name__)

PRODUCTS_PREFIX = "products"
FEATURED_PREFIX = "featured"

FEATURED_CACHE_KEY = "featured:products"
CATEGORIES_CACHE_KEY = "products:meta:categories"
PRICE_RANGE_CACHE_KEY = "products:meta:price-range"
STATS_CACHE_KEY = "products:meta:stats"

SYNC_PAGE_SIZE = 100

LocalRead = Callable[[List[Product]], Any]
Ticket = Tuple[int, int]


def product_cache_key(product_id: str) -> str:
    return f"products:item:{product_id}"


def query_cache_key(query: ProductQuery) -> str:
    return f"products:{query.cache_key()}"


def search_cache_key(text: str, limit: int) -> str:
    return f"products:search:{text}:{limit}"


def admin_query_cache_key(query: AdminProductQuery) -> str:
    return f"products:admin:{query.cache_key()}"


class CatalogGateway:
    """
    Args:
        client: Remote catalog client
        cache: Shared TTL cache for remote responses
        replica: Local replica used while Offline
        retry_config: Retry policy for remote reads before falling back
        products_ttl_minutes: TTL for listings, lookups, search and meta
        featured_ttl_minutes: TTL for the featured list
    """

    def __init__(
        self,
        client: RemoteCatalogClient,
        cache: TTLCache,
        replica: LocalReplicaStore,
        retry_config: Optional[RetryConfig] = None,
        products_ttl_minutes: float = 2,
        featured_ttl_minutes: float = 5,
    ):
        self.client = client
        self.cache = cache
        self.replica = replica
        self.retry_config = retry_config or NO_RETRY_CONFIG
        self.products_ttl_minutes = products_ttl_minutes
        self.featured_ttl_minutes = featured_ttl_minutes

        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._mutation_lock = asyncio.Lock()
        self._offline = self._load_offline_flag()

    # =========================================================================
    # Mode
    # =========================================================================

    def is_offline(self) -> bool:
        return self._offline

    def _load_offline_flag(self) -> bool:
        try:
            offline = self.replica.get_offline_flag()
        except LocalStorageFailure as e:
            logger.error(f"Could not read persisted offline flag, starting Online: {e.message}")
            return False
        if offline:
            logger.warning("Catalog gateway starting in Offline mode (persisted)")
        return offline

    def _set_offline(self, offline: bool) -> None:
        self._offline = offline
        try:
            self.replica.set_offline_flag(offline)
        except LocalStorageFailure as e:
            logger.error(f"Could not persist offline flag: {e.message}")

    def _go_offline(self, error: TransientFailure) -> None:
        if self._offline:
            return
        logger.warning(f"Remote catalog unavailable, switching to Offline mode: {error.message}")
        self._set_offline(True)

    # =========================================================================
    # Cache bookkeeping
    # =========================================================================

    def _begin_request(self, key: str) -> Ticket:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation, self._epoch

    def _cache_if_current(self, key: str, ticket: Ticket, value: Any, ttl_minutes: float) -> None:
        generation, epoch = ticket
        if self._generations.get(key) != generation or self._epoch != epoch:
            logger.debug(f"Discarding stale response for {key}", extra={"cache_key": key})
            return
        self.cache.set(key, value, ttl_minutes)

    def _invalidate_catalog(self) -> None:
        self._epoch += 1
        self.cache.delete_by_prefix(PRODUCTS_PREFIX, FEATURED_PREFIX)

    # =========================================================================
    # Read path
    # =========================================================================

    async def _read(
        self,
        key: str,
        ttl_minutes: float,
        remote_call: Callable[[], Awaitable[Any]],
        local_read: LocalRead,
        use_cache: bool = True,
    ) -> Any:
        if not self._offline:
            if use_cache:
                cached = self.cache.get(key)
                if cached is not None:
                    return cached

            ticket = self._begin_request(key)
            try:
                value = await retry_async(remote_call, self.retry_config)
            except TransientFailure as e:
                self._go_offline(e)
            else:
                self._cache_if_current(key, ticket, value, ttl_minutes)
                return value

        return self._read_local(key, local_read)

    def _read_local(self, key: str, local_read: LocalRead) -> Any:
        try:
            products = self.replica.load_all()
        except LocalStorageFailure as e:
            cached = self.cache.get(key)
            if cached is not None:
                logger.warning(f"Local replica unreadable, serving cached {key}", extra={"cache_key": key})
                return cached
            logger.error(
                f"Local replica unreadable and nothing cached for {key}: {e.message}",
                extra={"cache_key": key, "error_code": e.error_code},
            )
            raise CatalogUnavailable(details={"key": key, "reason": e.message}) from e
        return local_read(products)

    async def list_products(self, query: Optional[ProductQuery] = None) -> ProductPage:
        query = query or ProductQuery()
        return await self._read(
            query_cache_key(query),
            self.products_ttl_minutes,
            lambda: self.client.list_products(query),
            lambda products: catalog_query.apply_query(products, query),
        )

    async def get_featured(self) -> List[Product]:
        return await self._read(
            FEATURED_CACHE_KEY,
            self.featured_ttl_minutes,
            self.client.get_featured,
            catalog_query.featured_products,
        )

    async def get_by_id(self, product_id: str, use_cache: bool = True) -> Product:
        def local_lookup(products: List[Product]) -> Product:
            product = catalog_query.find_product(products, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            return product

        return await self._read(
            product_cache_key(product_id),
            self.products_ttl_minutes,
            lambda: self.client.get_product(product_id),
            local_lookup,
            use_cache=use_cache,
        )

    async def search(self, text: str, limit: int = 10) -> List[Product]:
        return await self._read(
            search_cache_key(text, limit),
            self.products_ttl_minutes,
            lambda: self.client.search_products(text, limit),
            lambda products: catalog_query.search_products(products, text, limit),
        )

    async def get_categories(self) -> List[str]:
        return await self._read(
            CATEGORIES_CACHE_KEY,
            self.products_ttl_minutes,
            self.client.get_categories,
            catalog_query.categories,
        )

    async def get_price_range(self) -> PriceRange:
        return await self._read(
            PRICE_RANGE_CACHE_KEY,
            self.products_ttl_minutes,
            self.client.get_price_range,
            catalog_query.price_range,
        )

    async def get_stats(self) -> CatalogStats:
        return await self._read(
            STATS_CACHE_KEY,
            self.products_ttl_minutes,
            self.client.get_dashboard_stats,
            catalog_query.catalog_stats,
        )

    async def list_admin_products(self, query: Optional[AdminProductQuery] = None) -> ProductPage:
        query = query or AdminProductQuery()
        return await self._read(
            admin_query_cache_key(query),
            self.products_ttl_minutes,
            lambda: self.client.list_admin_products(query),
            lambda products: catalog_query.apply_query(products, query.as_product_query()),
        )

    # =========================================================================
    # Local mutations
    # =========================================================================

    def _commit_local(self, mutate: Callable[[List[Product]], List[Product]]) -> None:
        """Run ``mutate`` on a copy of the replica and persist the result in one write."""
        products = list(self.replica.load_all())
        self.replica.save_all(mutate(products))
        self._invalidate_catalog()

    def _mirror_remote(self, description: str, mutate: Callable[[List[Product]], List[Product]]) -> None:
        try:
            self._commit_local(mutate)
        except (LocalStorageFailure, ValidationFailure) as e:
            logger.error(f"Remote {description} succeeded but local mirror failed: {e.message}")

    @staticmethod
    def _upsert(products: List[Product], product: Product) -> List[Product]:
        replaced = False
        result = []
        for existing in products:
            if existing.id == product.id:
                result.append(product)
                replaced = True
            else:
                result.append(existing)
        if not replaced:
            result.append(product)
        return result

    @staticmethod
    def _apply_update(product: Product, updates: ProductUpdate) -> Product:
        try:
            return updates.apply_to(product)
        except ValidationError as e:
            raise ValidationFailure(
                f"Update would make product {product.id} invalid",
                {"product_id": product.id, "errors": e.error_count()},
            ) from e

    @classmethod
    def _apply_bulk(
        cls,
        products: List[Product],
        action: BulkAction,
        product_ids: List[str],
        updates: Optional[ProductUpdate],
        strict: bool = True,
    ) -> List[Product]:
        targets = set(product_ids)
        if strict:
            known = {p.id for p in products}
            missing = [pid for pid in product_ids if pid not in known]
            if missing:
                raise NotFound(
                    f"Products not found: {', '.join(missing)}",
                    error_code="PRODUCT_NOT_FOUND",
                    details={"product_ids": missing},
                )

        if action == BulkAction.DELETE:
            return [p for p in products if p.id not in targets]

        if action == BulkAction.FEATURE:
            change = ProductUpdate(featured=True)
        elif action == BulkAction.UNFEATURE:
            change = ProductUpdate(featured=False)
        else:
            change = updates

        return [cls._apply_update(p, change) if p.id in targets else p for p in products]

    # =========================================================================
    # Admin mutations
    # =========================================================================

    async def create_product(self, data: ProductCreate) -> Product:
        async with self._mutation_lock:
            if not self._offline:
                try:
                    product = await self.client.create_product(data)
                except TransientFailure as e:
                    self._go_offline(e)
                else:
                    self._invalidate_catalog()
                    self._mirror_remote("create", lambda products: self._upsert(products, product))
                    logger.info(f"Created product {product.id}")
                    return product

            product = data.build(uuid.uuid4().hex, utcnow())
            self._commit_local(lambda products: products + [product])
            logger.info(f"Created product {product.id} locally")
            return product

    async def update_product(self, product_id: str, updates: ProductUpdate) -> Product:
        async with self._mutation_lock:
            if not self._offline:
                try:
                    product = await self.client.update_product(product_id, updates)
                except TransientFailure as e:
                    self._go_offline(e)
                else:
                    self._invalidate_catalog()
                    self._mirror_remote("update", lambda products: self._upsert(products, product))
                    return product

            result: Dict[str, Product] = {}

            def mutate(products: List[Product]) -> List[Product]:
                current = catalog_query.find_product(products, product_id)
                if current is None:
                    raise ProductNotFound(product_id)
                result["product"] = self._apply_update(current, updates)
                return self._upsert(products, result["product"])

            self._commit_local(mutate)
            return result["product"]

    async def delete_product(self, product_id: str) -> None:
        async with self._mutation_lock:
            if not self._offline:
                try:
                    await self.client.delete_product(product_id)
                except TransientFailure as e:
                    self._go_offline(e)
                else:
                    self._invalidate_catalog()
                    self._mirror_remote("delete", lambda products: [p for p in products if p.id != product_id])
                    logger.info(f"Deleted product {product_id}")
                    return

            def mutate(products: List[Product]) -> List[Product]:
                remaining = [p for p in products if p.id != product_id]
                if len(remaining) == len(products):
                    raise ProductNotFound(product_id)
                return remaining

            self._commit_local(mutate)
            logger.info(f"Deleted product {product_id} locally")

    async def bulk_operation(
        self,
        action: BulkAction,
        product_ids: List[str],
        updates: Optional[ProductUpdate] = None,
    ) -> BulkResult:
        if not product_ids:
            raise ValidationFailure("Bulk operation requires at least one product id")
        if action == BulkAction.UPDATE and updates is None:
            raise ValidationFailure("Bulk update requires updates")

        unique_ids = list(dict.fromkeys(product_ids))

        async with self._mutation_lock:
            if not self._offline:
                try:
                    affected = await self.client.bulk_operation(action, unique_ids, updates)
                except TransientFailure as e:
                    self._go_offline(e)
                else:
                    self._invalidate_catalog()
                    self._mirror_remote(
                        f"bulk {action.value}",
                        lambda products: self._apply_bulk(products, action, unique_ids, updates, strict=False),
                    )
                    return BulkResult(action=action, affected_count=affected, product_ids=unique_ids)

            self._commit_local(lambda products: self._apply_bulk(products, action, unique_ids, updates))
            logger.info(f"Bulk {action.value} applied locally to {len(unique_ids)} products")
            return BulkResult(action=action, affected_count=len(unique_ids), product_ids=unique_ids)

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self, sync_replica: bool = False) -> RefreshResult:
        """
        Clear the cache and try the remote again.

        On success the gateway is Online; a TransientFailure puts it back
        Offline and is reported in the result instead of raised. Any other
        remote error restores the previous mode and is raised. With
        ``sync_replica`` every remote page is pulled into the replica.
        """
        async with self._mutation_lock:
            self._epoch += 1
            self.cache.clear()
            was_offline = self._offline
            self._set_offline(False)

            query = ProductQuery()
            key = query_cache_key(query)
            ticket = self._begin_request(key)
            try:
                page = await retry_async(self.client.list_products, self.retry_config, query)
            except TransientFailure as e:
                logger.warning(f"Refresh failed, remaining Offline: {e.message}")
                self._set_offline(True)
                return RefreshResult(success=False, offline=True, message=e.message)
            except StorefrontException as e:
                logger.warning(f"Refresh rejected by remote ({e.error_code}), keeping previous mode")
                self._set_offline(was_offline)
                raise

            self._cache_if_current(key, ticket, page, self.products_ttl_minutes)
            if was_offline:
                logger.warning("Remote catalog reachable again, switched to Online mode")

            result = RefreshResult(
                success=True,
                offline=False,
                message="Catalog refreshed from remote",
                pagination=page.pagination,
            )
            if sync_replica:
                result.synced_products = await self._sync_replica()
                if result.synced_products is None:
                    result.message = "Catalog refreshed; local replica sync failed"
            return result

    async def _sync_replica(self) -> Optional[int]:
        products: List[Product] = []
        page_number = 1
        while True:
            query = ProductQuery(page=page_number, limit=SYNC_PAGE_SIZE)
            try:
                page = await retry_async(self.client.list_products, self.retry_config, query)
            except TransientFailure as e:
                logger.error(f"Replica sync aborted on page {page_number}: {e.message}")
                return None
            products.extend(page.items)
            if not page.pagination.has_next:
                break
            page_number += 1

        try:
            self.replica.save_all(products)
        except LocalStorageFailure as e:
            logger.error(f"Replica sync could not be written: {e.message}")
            return None
        logger.info(f"Synced {len(products)} products into the local replica")
        return len(products)
