"""
Unit tests for CatalogGateway

Covers:
- Online cache/remote behaviour and TTL expiry
- Transient failures switching to Offline mode and local answers
- Sticky, persisted Offline mode and refresh()
- Admin mutations on both paths, all-or-nothing bulk operations
- Stale responses never overwriting newer cache state
- Local storage failures served from cache or reported as unavailable
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.core.exceptions import (
    AuthFailure,
    CatalogUnavailable,
    LocalStorageFailure,
    NotFound,
    ProductNotFound,
    TransientFailure,
    ValidationFailure,
)
from storefront.core.retry import RetryConfig
from storefront.models.product import (
    AdminProductQuery,
    BulkAction,
    ProductCategory,
    ProductCreate,
    ProductQuery,
    ProductUpdate,
)
from storefront.services import catalog_query
from storefront.services.catalog_gateway import (
    FEATURED_CACHE_KEY,
    CatalogGateway,
    query_cache_key,
)


def new_product_payload(name="Neon Scarf"):
    return ProductCreate(
        name=name,
        description="Glows in the dark",
        price=45,
        category=ProductCategory.ACCESSORIES,
        sizes=["One Size"],
        colors=["Pink"],
    )


def go_offline(gateway, remote):
    """Trip the gateway into Offline mode through a failing remote call."""
    remote.failure = TransientFailure("connection refused")
    return gateway.get_featured()


class TestOnlineReads:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_is_served_from_cache_on_second_call(self, gateway, remote):
        first = await gateway.list_products(ProductQuery())
        second = await gateway.list_products(ProductQuery())

        assert first == second
        assert remote.calls["list_products"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_refetched_after_ttl(self, gateway, remote, clock):
        await gateway.list_products()
        clock.advance(2 * 60 + 1)
        await gateway.list_products()

        assert remote.calls["list_products"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_featured_uses_longer_ttl(self, gateway, remote, clock):
        await gateway.get_featured()
        clock.advance(4 * 60)
        await gateway.get_featured()

        assert remote.calls["get_featured"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_by_id_bypassing_cache_always_hits_remote(self, gateway, remote):
        await gateway.get_by_id("1")
        await gateway.get_by_id("1")
        await gateway.get_by_id("1", use_cache=False)

        assert remote.calls["get_product"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_found_surfaces_without_fallback(self, gateway, remote):
        with pytest.raises(ProductNotFound):
            await gateway.get_by_id("missing")

        assert gateway.is_offline() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_auth_failure_surfaces_without_fallback(self, gateway, remote):
        remote.failure = AuthFailure()

        with pytest.raises(AuthFailure):
            await gateway.list_products()

        assert gateway.is_offline() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_meta_reads(self, gateway):
        assert await gateway.get_categories() == ["Accessories", "Bottoms", "Footwear", "Hoodies", "Outerwear", "Tops"]
        assert (await gateway.get_price_range()).max_price == 599
        assert (await gateway.get_stats()).total_products == 6
        assert [p.id for p in await gateway.search("hoodie")] == ["2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transient_failure_retried_before_fallback(self, remote, cache, replica):
        page = catalog_query.apply_query(remote.products, ProductQuery())
        remote.list_products = AsyncMock(side_effect=[TransientFailure("blip"), page])
        gateway = CatalogGateway(
            remote, cache, replica,
            retry_config=RetryConfig(max_attempts=2, base_delay=0, jitter=False),
        )

        result = await gateway.list_products()

        assert result == page
        assert gateway.is_offline() is False
        assert remote.list_products.await_count == 2


class TestAdminListing:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_admin_listing_is_cached(self, gateway, remote):
        query = AdminProductQuery(limit=4)

        first = await gateway.list_admin_products(query)
        second = await gateway.list_admin_products(query)

        assert first == second
        assert len(first.items) == 4
        assert first.pagination.total_items == 6
        assert remote.calls["list_admin_products"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [
        AdminProductQuery(),
        AdminProductQuery(in_stock=False),
        AdminProductQuery(category="Tops"),
        AdminProductQuery(search="neon", page=2, limit=2),
    ])
    async def test_offline_admin_listing_matches_online(self, gateway, remote, query):
        online = await gateway.list_admin_products(query)

        await go_offline(gateway, remote)
        offline = await gateway.list_admin_products(query)

        assert [p.id for p in offline.items] == [p.id for p in online.items]
        assert offline.pagination == online.pagination

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mutation_invalidates_admin_listing(self, gateway, remote):
        await gateway.list_admin_products()
        await gateway.create_product(new_product_payload())

        listing = await gateway.list_admin_products()

        assert remote.calls["list_admin_products"] == 2
        assert listing.pagination.total_items == 7


class TestOfflineFallback:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_switches_to_offline_and_answers_locally(self, gateway, remote, replica):
        remote.failure = TransientFailure("Remote catalog timed out after 5.0s")

        page = await gateway.list_products(ProductQuery(category="Hoodies"))

        assert gateway.is_offline() is True
        assert replica.get_offline_flag() is True
        assert [p.id for p in page.items] == ["2"]
        assert remote.calls["list_products"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_is_sticky_and_skips_remote(self, gateway, remote):
        await go_offline(gateway, remote)
        remote.failure = None

        await gateway.list_products()
        await gateway.get_by_id("1")

        assert gateway.is_offline() is True
        assert remote.calls["list_products"] == 0
        assert remote.calls["get_product"] == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [
        ProductQuery(),
        ProductQuery(category="Tops"),
        ProductQuery(in_stock=True, sort_by="price", sort_order="asc"),
        ProductQuery(page=2, limit=4),
        ProductQuery(search="neon", min_price=100),
    ])
    async def test_online_and_offline_answers_match(self, gateway, remote, query):
        online = await gateway.list_products(query)

        await go_offline(gateway, remote)
        offline = await gateway.list_products(query)

        assert [p.id for p in offline.items] == [p.id for p in online.items]
        assert offline.pagination == online.pagination

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_unknown_id_is_not_found(self, gateway, remote):
        await go_offline(gateway, remote)

        with pytest.raises(ProductNotFound):
            await gateway.get_by_id("missing")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_mode_survives_restart(self, gateway, remote, cache, replica):
        await go_offline(gateway, remote)
        remote.failure = None

        restarted = CatalogGateway(remote, cache, replica)

        assert restarted.is_offline() is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_storage_failure_served_from_valid_cache(self, gateway, remote, replica):
        cached = await gateway.list_products()
        await go_offline(gateway, remote)
        replica.load_all = MagicMock(side_effect=LocalStorageFailure("disk gone"))

        assert await gateway.list_products() == cached

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_storage_failure_without_cache_is_catalog_unavailable(self, gateway, remote, replica):
        await go_offline(gateway, remote)
        replica.load_all = MagicMock(side_effect=LocalStorageFailure("disk gone"))

        with pytest.raises(CatalogUnavailable):
            await gateway.list_products(ProductQuery(category="Tops"))


class TestMutations:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_online_create_invalidates_cache_and_mirrors(self, gateway, remote, replica, cache):
        await gateway.list_products()
        await gateway.get_featured()

        product = await gateway.create_product(new_product_payload())

        assert product.id.startswith("remote-")
        assert not [k for k in cache.keys() if k.startswith(("products", "featured"))]
        assert catalog_query.find_product(replica.load_all(), product.id) is not None

        await gateway.list_products()
        assert remote.calls["list_products"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_online_update_and_delete(self, gateway, remote, replica):
        updated = await gateway.update_product("3", ProductUpdate(price=199))
        await gateway.delete_product("6")

        assert updated.price == 199
        local = replica.load_all()
        assert catalog_query.find_product(local, "3").price == 199
        assert catalog_query.find_product(local, "6") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_validation_error_surfaces(self, gateway, remote):
        remote.update_product = AsyncMock(side_effect=ValidationFailure("price must be positive"))

        with pytest.raises(ValidationFailure) as exc_info:
            await gateway.update_product("1", ProductUpdate(price=1))

        assert exc_info.value.message == "price must be positive"
        assert gateway.is_offline() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transient_failure_applies_mutation_locally(self, gateway, remote, replica):
        remote.failure = TransientFailure("connection reset")

        product = await gateway.create_product(new_product_payload("Offline Scarf"))

        assert gateway.is_offline() is True
        assert catalog_query.find_product(replica.load_all(), product.id).name == "Offline Scarf"
        assert await gateway.get_by_id(product.id) == product

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_update_and_delete(self, gateway, remote):
        await go_offline(gateway, remote)

        updated = await gateway.update_product("1", ProductUpdate(featured=False, price=250))
        await gateway.delete_product("2")

        assert updated.featured is False
        assert updated.price == 250
        assert updated.updated_at > updated.created_at
        with pytest.raises(ProductNotFound):
            await gateway.get_by_id("2")
        with pytest.raises(ProductNotFound):
            await gateway.delete_product("2")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_bulk_delete_is_one_write(self, gateway, remote, replica, catalog_events, product_factory):
        replica.save_all([product_factory(str(n)) for n in range(1, 6)])
        await go_offline(gateway, remote)
        catalog_events.clear()

        result = await gateway.bulk_operation(BulkAction.DELETE, ["2", "4"])

        assert result.affected_count == 2
        assert [p.id for p in replica.load_all()] == ["1", "3", "5"]
        assert catalog_events == [3]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_bulk_with_unknown_id_changes_nothing(self, gateway, remote, replica, catalog_events):
        await go_offline(gateway, remote)
        before = replica.load_all()
        catalog_events.clear()

        with pytest.raises(NotFound) as exc_info:
            await gateway.bulk_operation(BulkAction.FEATURE, ["3", "nope"])

        assert exc_info.value.details["product_ids"] == ["nope"]
        assert replica.load_all() == before
        assert catalog_events == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_bulk_feature_and_update(self, gateway, remote, replica):
        await go_offline(gateway, remote)

        await gateway.bulk_operation(BulkAction.FEATURE, ["3", "6"])
        await gateway.bulk_operation(BulkAction.UPDATE, ["3"], ProductUpdate(in_stock=False))

        local = replica.load_all()
        assert catalog_query.find_product(local, "6").featured is True
        assert catalog_query.find_product(local, "3").featured is True
        assert catalog_query.find_product(local, "3").in_stock is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bulk_update_requires_updates(self, gateway):
        with pytest.raises(ValidationFailure):
            await gateway.bulk_operation(BulkAction.UPDATE, ["1"])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_online_bulk_mirrors_into_replica(self, gateway, remote, replica):
        result = await gateway.bulk_operation(BulkAction.UNFEATURE, ["1", "2", "1"])

        assert result.product_ids == ["1", "2"]
        assert result.affected_count == 2
        local = replica.load_all()
        assert catalog_query.find_product(local, "1").featured is False
        assert catalog_query.find_product(local, "2").featured is False


class TestRefresh:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refresh_returns_online(self, gateway, remote, replica):
        await go_offline(gateway, remote)
        remote.failure = None

        result = await gateway.refresh()

        assert result.success is True
        assert result.offline is False
        assert result.pagination.total_items == 6
        assert gateway.is_offline() is False
        assert replica.get_offline_flag() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_refresh_is_reported_not_raised(self, gateway, remote):
        remote.failure = TransientFailure("still down")

        result = await gateway.refresh()

        assert result.success is False
        assert result.offline is True
        assert gateway.is_offline() is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_auth_failure_during_refresh_stays_offline(self, gateway, remote, replica):
        await go_offline(gateway, remote)
        remote.failure = AuthFailure()

        with pytest.raises(AuthFailure):
            await gateway.refresh()

        assert gateway.is_offline() is True
        assert replica.get_offline_flag() is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejected_refresh_keeps_online_mode(self, gateway, remote, replica):
        remote.failure = ValidationFailure("bad query")

        with pytest.raises(ValidationFailure):
            await gateway.refresh()

        assert gateway.is_offline() is False
        assert replica.get_offline_flag() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refresh_is_idempotent(self, gateway, remote, cache):
        first = await gateway.refresh()
        keys_after_first = sorted(cache.keys())
        second = await gateway.refresh()

        assert first == second
        assert sorted(cache.keys()) == keys_after_first
        assert gateway.is_offline() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refresh_clears_cache(self, gateway, remote, cache):
        await gateway.get_featured()
        await gateway.refresh()

        assert cache.get(FEATURED_CACHE_KEY) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refresh_with_sync_overwrites_replica(self, gateway, remote, replica, product_factory):
        remote.products = [product_factory(f"r{n}") for n in range(150)]

        result = await gateway.refresh(sync_replica=True)

        assert result.synced_products == 150
        assert len(replica.load_all()) == 150


class TestStaleResponses:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_response_started_before_invalidation_is_not_cached(self, gateway, remote, cache):
        release = asyncio.Event()
        original = remote.list_products

        async def slow_list(query=None):
            await release.wait()
            return await original(query)

        remote.list_products = slow_list
        pending = asyncio.create_task(gateway.list_products())
        await asyncio.sleep(0)

        remote.list_products = original
        await gateway.create_product(new_product_payload())
        release.set()
        await pending

        assert cache.get(query_cache_key(ProductQuery())) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_older_response_does_not_overwrite_newer(self, gateway, remote, cache, product_factory):
        release = asyncio.Event()
        original = remote.list_products
        old_page = catalog_query.apply_query([product_factory("old")], ProductQuery())

        async def slow_list(query=None):
            await release.wait()
            return old_page

        remote.list_products = slow_list
        stale = asyncio.create_task(gateway.list_products())
        await asyncio.sleep(0)

        remote.list_products = original
        fresh = await gateway.list_products()
        release.set()

        assert await stale == old_page
        assert cache.get(query_cache_key(ProductQuery())) == fresh
