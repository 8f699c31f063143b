"""
Remote Catalog Client

Thin async HTTP client for the remote catalog, admin and meta endpoints.

Responsibilities:
- Request shaping (query params, bearer token for admin calls)
- Response normalization into catalog models
- Error classification into the storefront failure taxonomy

The client never retries and never falls back; CatalogGateway owns both
decisions.
"""

import logging
from urllib.parse import quote
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from storefront.core.config import Settings
from storefront.core.exceptions import (
    AuthFailure,
    NotFound,
    ProductNotFound,
    TransientFailure,
    ValidationFailure,
)
from storefront.models.product import (
    AdminProductQuery,
    BulkAction,
    CatalogStats,
    Pagination,
    PriceRange,
    Product,
    ProductCreate,
    ProductPage,
    ProductQuery,
    ProductUpdate,
)

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    """Percent-encode a single path segment, including "/", "?" and "#"."""
    return quote(str(value), safe="")


class RemoteCatalogClient:
    """
    Args:
        base_url: Remote API root, e.g. ``http://localhost:5000/api``
        timeout_seconds: Per-request timeout; exceeding it is a TransientFailure
        auth_token: Bearer token forwarded on admin calls
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        auth_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.auth_token = auth_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "RemoteCatalogClient":
        return cls(
            base_url=config.CATALOG_API_URL,
            timeout_seconds=config.CATALOG_API_TIMEOUT_SECONDS,
            auth_token=config.CATALOG_API_TOKEN,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Transport & error classification
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        admin: bool = False,
    ) -> Any:
        headers = {}
        if admin and self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        try:
            response = await self._get_client().request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Remote catalog timeout: {method} {path}")
            raise TransientFailure(
                f"Remote catalog timed out after {self.timeout_seconds}s",
                {"method": method, "path": path},
            ) from e
        except httpx.TransportError as e:
            logger.warning(f"Remote catalog unreachable: {method} {path}: {e}")
            raise TransientFailure(
                "Remote catalog unreachable",
                {"method": method, "path": path, "reason": str(e)},
            ) from e

        self._raise_for_status(response, method, path)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransientFailure(
                "Remote catalog returned an unreadable body",
                {"method": method, "path": path},
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or default
        if isinstance(body, dict):
            return body.get("error") or body.get("message") or default
        return default

    def _raise_for_status(self, response: httpx.Response, method: str, path: str) -> None:
        status = response.status_code
        if status < 400:
            return

        details = {"method": method, "path": path, "status_code": status}
        logger.error(f"Remote catalog error: {method} {path} -> {status}")

        if status in (401, 403):
            raise AuthFailure(details=details)
        if status == 404:
            raise NotFound(self._error_message(response, "Not found"), details=details)
        if status < 500:
            raise ValidationFailure(self._error_message(response, "Request rejected"), details)
        raise TransientFailure(self._error_message(response, "Remote catalog error"), details)

    # =========================================================================
    # Normalization
    # =========================================================================

    @staticmethod
    def _parse_products(documents: Any) -> List[Product]:
        if not isinstance(documents, list):
            return []
        products = []
        for doc in documents:
            try:
                products.append(Product.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed product record from remote: {e.error_count()} errors")
        return products

    @classmethod
    def _parse_page(cls, body: Any, query: ProductQuery) -> ProductPage:
        body = body if isinstance(body, dict) else {}
        items = cls._parse_products(body.get("products") or [])
        meta = body.get("pagination") or {}

        page = int(meta.get("currentPage") or query.page)
        total = meta.get("totalItems", meta.get("totalProducts"))
        if total is None:
            total = len(items)

        return ProductPage(items=items, pagination=Pagination.build(page, query.limit, int(total)))

    @staticmethod
    def _parse_product(body: Any, product_id: Optional[str] = None) -> Product:
        if isinstance(body, dict) and "product" in body:
            body = body["product"]
        try:
            return Product.model_validate(body)
        except ValidationError as e:
            raise TransientFailure(
                "Remote catalog returned a malformed product",
                {"product_id": product_id, "errors": e.error_count()},
            ) from e

    # =========================================================================
    # Catalog reads
    # =========================================================================

    async def list_products(self, query: Optional[ProductQuery] = None) -> ProductPage:
        query = query or ProductQuery()
        body = await self._request("GET", "/products", params=query.to_params())
        return self._parse_page(body, query)

    async def get_featured(self) -> List[Product]:
        return self._parse_products(await self._request("GET", "/products/featured"))

    async def get_product(self, product_id: str) -> Product:
        try:
            body = await self._request("GET", f"/products/{_segment(product_id)}")
        except NotFound as e:
            raise ProductNotFound(product_id) from e
        if not body:
            raise ProductNotFound(product_id)
        return self._parse_product(body, product_id)

    async def search_products(self, text: str, limit: int = 10) -> List[Product]:
        body = await self._request("GET", f"/products/search/{_segment(text)}", params={"limit": limit})
        return self._parse_products(body)

    async def get_categories(self) -> List[str]:
        body = await self._request("GET", "/products/meta/categories")
        return [str(c) for c in body] if isinstance(body, list) else []

    async def get_price_range(self) -> PriceRange:
        body = await self._request("GET", "/products/meta/price-range")
        return PriceRange.model_validate(body or {})

    async def get_dashboard_stats(self) -> CatalogStats:
        body = await self._request("GET", "/admin/dashboard", admin=True)
        stats = (body or {}).get("stats") or {}
        return CatalogStats.model_validate(stats)

    async def list_admin_products(self, query: Optional[AdminProductQuery] = None) -> ProductPage:
        query = query or AdminProductQuery()
        body = await self._request("GET", "/admin/products", params=query.to_params(), admin=True)
        return self._parse_page(body, query)

    # =========================================================================
    # Admin mutations
    # =========================================================================

    async def create_product(self, data: ProductCreate) -> Product:
        body = await self._request("POST", "/admin/products", json=data.to_wire(), admin=True)
        return self._parse_product(body)

    async def update_product(self, product_id: str, updates: ProductUpdate) -> Product:
        try:
            body = await self._request(
                "PUT", f"/admin/products/{_segment(product_id)}", json=updates.to_wire(), admin=True
            )
        except NotFound as e:
            raise ProductNotFound(product_id) from e
        return self._parse_product(body, product_id)

    async def delete_product(self, product_id: str) -> None:
        try:
            await self._request("DELETE", f"/admin/products/{_segment(product_id)}", admin=True)
        except NotFound as e:
            raise ProductNotFound(product_id) from e

    async def bulk_operation(
        self,
        action: BulkAction,
        product_ids: List[str],
        updates: Optional[ProductUpdate] = None,
    ) -> int:
        """Returns the remote's modified/deleted count."""
        payload = {
            "action": action.value,
            "productIds": list(product_ids),
            "updates": updates.to_wire() if updates else None,
        }
        body = await self._request("POST", "/admin/products/bulk", json=payload, admin=True)
        return int((body or {}).get("modifiedCount") or 0)

    # =========================================================================
    # Liveness
    # =========================================================================

    async def health_check(self) -> bool:
        """Liveness probe; never raises."""
        try:
            body = await self._request("GET", "/health")
        except (TransientFailure, AuthFailure, NotFound, ValidationFailure) as e:
            logger.warning(f"Remote health check failed: {e.message}")
            return False
        return isinstance(body, dict) and str(body.get("status", "")).upper() in ("OK", "HEALTHY")
