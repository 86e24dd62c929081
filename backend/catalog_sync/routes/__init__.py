"""
Route aggregator — mounts the catalog sync router under /api/v1.

Health routes are exported separately for main.py to mount at root.
Version: 1.0.0
"""
from fastapi import APIRouter

from catalog_sync.routes.catalog_sync import router as catalog_sync_router
from catalog_sync.routes.health import router as health_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(catalog_sync_router)

__all__ = ["v1_router", "health_router"]
