"""
Service container and FastAPI dependencies.

One StorefrontServices instance is built per process in the app lifespan
and stored on ``app.state``; routers reach it through the dependencies below.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from storefront.core.cache import TTLCache
from storefront.core.config import Settings
from storefront.core.events import Notifier
from storefront.core.retry import RetryConfig
from storefront.database.kv_store import KeyValueStore, create_kv_store
from storefront.database.local_replica import LocalReplicaStore
from storefront.services.cart_ledger import CartLedger, CartPricing
from storefront.services.catalog_client import RemoteCatalogClient
from storefront.services.catalog_gateway import CatalogGateway

logger = logging.getLogger(__name__)


@dataclass
class StorefrontServices:
    config: Settings
    notifier: Notifier
    cache: TTLCache
    store: KeyValueStore
    replica: LocalReplicaStore
    client: RemoteCatalogClient
    gateway: CatalogGateway
    ledger: CartLedger

    @classmethod
    def build(
        cls,
        config: Settings,
        client: Optional[RemoteCatalogClient] = None,
        store: Optional[KeyValueStore] = None,
    ) -> "StorefrontServices":
        notifier = Notifier()
        cache = TTLCache(default_ttl_minutes=config.PRODUCTS_CACHE_TTL_MINUTES)
        store = store or create_kv_store(config)
        replica = LocalReplicaStore(store, notifier)
        client = client or RemoteCatalogClient.from_settings(config)

        gateway = CatalogGateway(
            client=client,
            cache=cache,
            replica=replica,
            retry_config=RetryConfig(
                max_attempts=config.REMOTE_MAX_ATTEMPTS,
                base_delay=config.REMOTE_RETRY_BASE_DELAY,
            ),
            products_ttl_minutes=config.PRODUCTS_CACHE_TTL_MINUTES,
            featured_ttl_minutes=config.FEATURED_CACHE_TTL_MINUTES,
        )
        ledger = CartLedger(gateway, store, notifier, CartPricing.from_settings(config))

        logger.info(f"Storefront services ready (remote={config.CATALOG_API_URL}, offline={gateway.is_offline()})")
        return cls(
            config=config,
            notifier=notifier,
            cache=cache,
            store=store,
            replica=replica,
            client=client,
            gateway=gateway,
            ledger=ledger,
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def get_services(request: Request) -> StorefrontServices:
    return request.app.state.services


def get_gateway(request: Request) -> CatalogGateway:
    return get_services(request).gateway


def get_ledger(request: Request) -> CartLedger:
    return get_services(request).ledger
