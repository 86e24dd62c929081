"""
Catalog sync routes — manual triggers and diagnostics.

Every endpoint delegates to the SyncCoordinator and returns its result
object as JSON. A result flagged rate_limited (the ERP kept rejecting
concurrent access after all backoff retries) is answered with 429 so
callers know to try again later rather than treat it as a data error.
Full and manual runs hold the same Redis "catalog" lock as the Celery
tasks; a run already in progress is answered with 409.
Version: 1.0.0
"""
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from catalog_sync.schemas.catalog import (
    DiagnosticResult,
    ManualSyncRequest,
    StockUpdateResult,
    SyncResult,
)
from catalog_sync.services.sync_coordinator import SyncCoordinator
from catalog_sync.utils.sync_lock import acquire_sync_lock, release_sync_lock

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/catalog-sync", tags=["catalog-sync"])


def get_coordinator() -> SyncCoordinator:
    from catalog_sync.container import get_sync_coordinator
    return get_sync_coordinator()


def _respond(result: BaseModel):
    if getattr(result, "rate_limited", False):
        raise HTTPException(
            status_code=429,
            detail={"message": result.message, "result": result.model_dump(mode="json")},
        )
    return result


def _acquire_catalog_lock() -> None:
    """Take the catalog sync lock shared with the Celery tasks, or answer 409."""
    if not acquire_sync_lock("catalog", f"http-{uuid.uuid4().hex[:8]}"):
        raise HTTPException(
            status_code=409,
            detail={"status": "skipped", "reason": "sync_in_progress"},
        )


# ============================================
# Sync runs
# ============================================

@router.post("/run", response_model=SyncResult)
async def run_full_sync(coordinator: SyncCoordinator = Depends(get_coordinator)):
    """Run a full whitelist-driven sync in the request and return its result."""
    _acquire_catalog_lock()
    try:
        result = await coordinator.run_full_sync()
    finally:
        release_sync_lock("catalog")
    return _respond(result)


@router.post("/run-manual", response_model=SyncResult)
async def run_manual_sync(
    request: ManualSyncRequest,
    coordinator: SyncCoordinator = Depends(get_coordinator),
):
    """Sync only the given SKUs. Does not touch the outdated flags."""
    _acquire_catalog_lock()
    try:
        result = await coordinator.run_manual_sync(request.skus)
    finally:
        release_sync_lock("catalog")
    return _respond(result)


@router.post("/run/queue")
async def queue_full_sync():
    """Queue a full sync on the Celery worker."""
    from catalog_sync.celery_app.tasks.catalog_sync import run_full_catalog_sync

    task = run_full_catalog_sync.delay()
    logger.info(f"Queued full catalog sync task={task.id}")
    return {"status": "queued", "task_id": task.id}


@router.post("/stock", response_model=StockUpdateResult)
async def sync_stock(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return _respond(await coordinator.sync_stock_balances())


# ============================================
# Diagnostics
# ============================================

@router.get("/test-connection", response_model=DiagnosticResult)
async def test_connection(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return _respond(await coordinator.test_connection())


@router.get("/probe-bundles", response_model=DiagnosticResult)
async def probe_bundles(
    skus: Optional[List[str]] = Query(None),
    coordinator: SyncCoordinator = Depends(get_coordinator),
):
    """Resolve bundle composition without writing anything."""
    return _respond(await coordinator.probe_bundles_only(skus))


@router.get("/stats", response_model=DiagnosticResult)
async def sync_stats(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return await coordinator.get_sync_stats()


@router.get("/cache/stats", response_model=DiagnosticResult)
async def cache_stats(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return await coordinator.get_cache_stats()


@router.post("/cache/refresh", response_model=DiagnosticResult)
async def refresh_cache(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return await coordinator.force_refresh_cache()


@router.post("/cache/clear", response_model=DiagnosticResult)
async def clear_cache(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return await coordinator.clear_cache()


@router.post("/config/reload", response_model=DiagnosticResult)
async def reload_config(coordinator: SyncCoordinator = Depends(get_coordinator)):
    return await coordinator.reload_config()


@router.post("/cleanup", response_model=DiagnosticResult)
async def cleanup_old_products(
    days_old: Optional[int] = Query(None, ge=1),
    coordinator: SyncCoordinator = Depends(get_coordinator),
):
    """Delete outdated products not synced for days_old days (setting default if omitted)."""
    return await coordinator.cleanup_old_products(days_old)
