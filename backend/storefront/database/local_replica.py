"""
Local Replica Store
Durable copy of the full product collection plus the sticky offline-mode flag.

The replica is the source of truth only while the remote catalog is
unreachable. The collection is always written as a whole, in one store write.
"""

import json
import logging
import threading
from typing import Callable, List, Optional

from pydantic import ValidationError

from storefront.core.events import CATALOG_CHANGED, Notifier
from storefront.core.exceptions import LocalStorageFailure
from storefront.database.kv_store import KeyValueStore
from storefront.database.seed_catalog import default_catalog
from storefront.models.product import Product

logger = logging.getLogger(__name__)

PRODUCTS_STORAGE_KEY = "storefront:products"
OFFLINE_MODE_KEY = "storefront:offline_mode"


class LocalReplicaStore:
    """
    Args:
        store: Durable key/value backend
        notifier: Receives ``catalog_changed`` after every ``save_all``
        seed: Factory for the catalog written on first read
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[Notifier] = None,
        seed: Callable[[], List[Product]] = default_catalog,
    ):
        self.store = store
        self.notifier = notifier or Notifier()
        self._seed = seed
        self._lock = threading.RLock()

    def load_all(self) -> List[Product]:
        """Return every product in the replica, seeding the default catalog on first run."""
        with self._lock:
            raw = self.store.get(PRODUCTS_STORAGE_KEY)
            if raw is None:
                products = self._seed()
                logger.info(f"Local replica empty, seeding {len(products)} default products")
                self.save_all(products)
                return products

            try:
                documents = json.loads(raw)
                if not isinstance(documents, list):
                    raise ValueError("product collection is not a list")
                return [Product.model_validate(doc) for doc in documents]
            except (ValueError, ValidationError) as e:
                logger.error(f"Local replica is corrupt: {e}")
                raise LocalStorageFailure(
                    "Local product replica is corrupt",
                    {"key": PRODUCTS_STORAGE_KEY, "reason": str(e)},
                ) from e

    def save_all(self, products: List[Product]) -> None:
        """Overwrite the whole collection and notify observers once."""
        payload = json.dumps([product.to_wire() for product in products])
        with self._lock:
            self.store.set(PRODUCTS_STORAGE_KEY, payload)
        logger.debug(f"Local replica saved with {len(products)} products")
        self.notifier.publish(CATALOG_CHANGED, len(products))

    def get_offline_flag(self) -> bool:
        raw = self.store.get(OFFLINE_MODE_KEY)
        return raw == "true"

    def set_offline_flag(self, offline: bool) -> None:
        self.store.set(OFFLINE_MODE_KEY, "true" if offline else "false")
