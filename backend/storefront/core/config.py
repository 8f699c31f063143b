from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Retro Storefront"
    ENVIRONMENT: str = "development"

    # Remote catalog service
    CATALOG_API_URL: str = "http://localhost:5000/api"
    CATALOG_API_TOKEN: Optional[str] = None
    CATALOG_API_TIMEOUT_SECONDS: float = 5.0
    REMOTE_MAX_ATTEMPTS: int = 1
    REMOTE_RETRY_BASE_DELAY: float = 0.5

    # Cache TTLs (minutes)
    PRODUCTS_CACHE_TTL_MINUTES: float = 2
    FEATURED_CACHE_TTL_MINUTES: float = 5

    # Local persistence: "file", "redis" or "memory"
    STORAGE_BACKEND: str = "file"
    STORAGE_PATH: str = ".storefront"
    REDIS_URL: Optional[str] = None

    # Cart pricing
    TAX_RATE: Decimal = Decimal("0.10")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("100")
    SHIPPING_FEE: Decimal = Decimal("15")

    DEFAULT_PAGE_SIZE: int = 12

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
