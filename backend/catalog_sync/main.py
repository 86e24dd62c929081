"""
Application entry point — FastAPI app for the catalog sync service.

Mounts the health route at root and the catalog sync routes under
/api/v1. Scheduled runs are driven by Celery Beat (see
catalog_sync.celery_app.celery_config); this app only serves manual
triggers and diagnostics.
Version: 1.0.0
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from catalog_sync.core.config import settings
from catalog_sync.routes import health_router, v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=== Catalog Sync Starting ===")
    if not settings.erp_api_url or not settings.erp_api_key:
        logger.warning("ERP_API_URL / ERP_API_KEY not set in environment; relying on settings_base values")
    logger.info(
        f"Scheduled sync {'enabled' if settings.catalog_sync_enabled else 'disabled'}, "
        f"every {settings.catalog_sync_interval_minutes} min"
    )
    logger.info("=== Catalog Sync Ready ===")

    yield

    logger.info("=== Catalog Sync Shutting Down ===")


app = FastAPI(title="Catalog Sync Backend", lifespan=lifespan)
logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")

app.include_router(health_router)
app.include_router(v1_router)
