"""
Retro Storefront FastAPI Application
Catalog, admin and cart API in front of the resilient catalog gateway.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.deps import StorefrontServices
from storefront.api.v1 import api_v1_router
from storefront.core.config import Settings, settings
from storefront.core.exceptions import StorefrontException, storefront_exception_handler
from storefront.core.logging_config import bind_catalog_mode, set_request_id, setup_logging
from storefront.database.kv_store import KeyValueStore
from storefront.services.catalog_client import RemoteCatalogClient

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def create_app(
    config: Optional[Settings] = None,
    client: Optional[RemoteCatalogClient] = None,
    store: Optional[KeyValueStore] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the application.

    ``client`` and ``store`` replace the configured remote client and
    key/value backend; tests use them to run without a network or disk.
    """
    config = config or settings
    if configure_logging:
        setup_logging(config.LOG_LEVEL, config.LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting {config.PROJECT_NAME} ({config.ENVIRONMENT})")
        app.state.services = StorefrontServices.build(config, client=client, store=store)
        bind_catalog_mode(app.state.services.gateway.is_offline)
        yield
        # Shutdown
        bind_catalog_mode(None)
        await app.state.services.aclose()
        logger.info(f"{config.PROJECT_NAME} stopped")

    app = FastAPI(
        title=config.PROJECT_NAME,
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Tag every request and its log lines with a request id"""
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:16]}"
        request.state.request_id = request_id
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            set_request_id(None)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Version"] = APP_VERSION
        return response

    app.add_exception_handler(StorefrontException, storefront_exception_handler)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent format"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": {"code": "HTTP_ERROR", "message": exc.detail, "details": None},
                "request_id": getattr(request.state, "request_id", "unknown"),
            },
        )

    app.include_router(api_v1_router)

    @app.get("/")
    async def root():
        return {"service": config.PROJECT_NAME, "version": APP_VERSION, "docs": "/docs"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
