import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from storefront.api.deps import StorefrontServices, get_services
from storefront.core.exceptions import LocalStorageFailure

router = APIRouter()

# Health check timeout (seconds)
HEALTH_CHECK_TIMEOUT = 5


async def run_with_timeout(coro, timeout: float, default: Dict[str, Any]) -> Dict[str, Any]:
    """Run a coroutine with timeout, return default on timeout"""
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        return {**default, "status": "timeout", "message": f"Check timed out after {timeout}s"}


@router.get("/health")
async def health_check(services: StorefrontServices = Depends(get_services)):
    """
    Storefront health

    The service stays "healthy" while the remote catalog is down as long as
    the local replica can be read; that is what Offline mode is for.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": services.config.ENVIRONMENT,
        "service": services.config.PROJECT_NAME,
        "offline": services.gateway.is_offline(),
        "checks": {},
    }

    async def check_remote() -> Dict[str, Any]:
        start = time.monotonic()
        reachable = await services.client.health_check()
        return {
            "status": "healthy" if reachable else "unreachable",
            "latency_ms": round((time.monotonic() - start) * 1000, 2),
        }

    health_status["checks"]["remote_catalog"] = await run_with_timeout(
        check_remote(),
        timeout=HEALTH_CHECK_TIMEOUT,
        default={"url": services.config.CATALOG_API_URL},
    )

    try:
        products = services.replica.load_all()
        health_status["checks"]["local_replica"] = {"status": "healthy", "products": len(products)}
    except LocalStorageFailure as e:
        health_status["checks"]["local_replica"] = {"status": "unhealthy", "message": e.message}
        health_status["status"] = "unhealthy"

    health_status["checks"]["cache"] = services.cache.stats()
    return health_status
