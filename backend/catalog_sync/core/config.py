import os
from typing import Optional
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # ERP (fallbacks when the settings table has no override)
    erp_api_url: Optional[str] = os.getenv("ERP_API_URL")
    erp_api_key: Optional[str] = os.getenv("ERP_API_KEY")
    erp_request_timeout: float = float(os.getenv("ERP_REQUEST_TIMEOUT", "30"))

    # ERP pacing
    erp_max_ids_per_request: int = int(os.getenv("ERP_MAX_IDS_PER_REQUEST", "25"))
    erp_chunk_delay_ms: int = int(os.getenv("ERP_CHUNK_DELAY_MS", "200"))
    erp_bundle_delay_ms: int = int(os.getenv("ERP_BUNDLE_DELAY_MS", "500"))
    erp_component_delay_ms: int = int(os.getenv("ERP_COMPONENT_DELAY_MS", "100"))

    # Concurrent-access rejection backoff
    erp_rate_limit_retries: int = int(os.getenv("ERP_RATE_LIMIT_RETRIES", "3"))
    erp_rate_limit_backoff_seconds: float = float(os.getenv("ERP_RATE_LIMIT_BACKOFF_SECONDS", "1.0"))
    erp_rate_limit_backoff_max_seconds: float = float(os.getenv("ERP_RATE_LIMIT_BACKOFF_MAX_SECONDS", "8.0"))

    # Storefront database (read-only)
    storefront_database_url: Optional[str] = os.getenv("STOREFRONT_DATABASE_URL")
    storefront_table_prefix: str = os.getenv("STOREFRONT_TABLE_PREFIX", "wp_")
    storefront_require_stock: bool = _env_bool("STOREFRONT_REQUIRE_STOCK", "false")

    # Supabase
    supabase_url: str | None = os.getenv("SUPABASE_URL")
    supabase_service_role_key: str | None = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0"))

    # Scheduling
    catalog_sync_enabled: bool = _env_bool("CATALOG_SYNC_ENABLED", "true")
    catalog_sync_interval_minutes: int = int(os.getenv("CATALOG_SYNC_INTERVAL_MINUTES", "60"))
    stock_sync_interval_minutes: int = int(os.getenv("STOCK_SYNC_INTERVAL_MINUTES", "15"))
    whitelist_refresh_hours: int = int(os.getenv("WHITELIST_REFRESH_HOURS", "24"))
    sync_lock_ttl_seconds: int = int(os.getenv("SYNC_LOCK_TTL_SECONDS", "3600"))

    # In-process caches
    config_cache_ttl_seconds: int = int(os.getenv("CONFIG_CACHE_TTL_SECONDS", "600"))
    whitelist_cache_expiry_hours: int = int(os.getenv("WHITELIST_CACHE_EXPIRY_HOURS", "24"))


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = Settings()
