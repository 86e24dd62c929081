"""
Catalog sync tasks — scheduled and on-demand ERP sync runs.

Tasks:
- run_full_catalog_sync: whitelist -> ERP -> local store, then staleness pass
- run_manual_catalog_sync: same pipeline for an explicit SKU list
- run_stock_sync: per-warehouse balances for current products
- refresh_whitelist: force a storefront whitelist refresh
- cleanup_old_products: delete long-outdated products

Full and stock runs hold a per-pipeline Redis lock so an overlapping
beat tick or a manual trigger is skipped instead of racing the running
sync. A run that ends rate limited raises RateLimitedError so Celery
retries it with backoff.
Version: 1.0.0
"""
import logging
from typing import List, Optional

from catalog_sync.celery_app.celery_config import celery_app
from catalog_sync.celery_app.tasks.base import BaseTask, run_async
from catalog_sync.core.exceptions import NonRetryableError, RateLimitedError, RetryableError
from catalog_sync.core.constants.erp import ERP_SERVICE_NAME
from catalog_sync.utils.sync_lock import acquire_sync_lock, release_sync_lock

logger = logging.getLogger(__name__)


def get_sync_coordinator():
    """Lazy import to avoid building clients at worker import time."""
    from catalog_sync.container import get_sync_coordinator as _get
    return _get()


def _raise_if_rate_limited(result: dict) -> dict:
    if result.get("rate_limited"):
        raise RateLimitedError(ERP_SERVICE_NAME)
    return result


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="tasks.catalog_sync.run_full_catalog_sync",
    autoretry_for=(RetryableError,),
    dont_autoretry_for=(NonRetryableError,),
    retry_backoff=True,
    max_retries=3,
)
def run_full_catalog_sync(self):
    """Run a full catalog sync unless one is already in progress."""
    task_id = self.request.id or "unknown"
    if not acquire_sync_lock("catalog", task_id):
        return {"status": "skipped", "reason": "sync_in_progress"}

    try:
        logger.info("=" * 60)
        logger.info(f"Full catalog sync started (task={task_id})")
        logger.info("=" * 60)
        result = run_async(get_sync_coordinator().run_full_sync()).model_dump()
        logger.info(f"Full catalog sync finished: {result['message']}")
    finally:
        release_sync_lock("catalog")

    return _raise_if_rate_limited(result)


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="tasks.catalog_sync.run_manual_catalog_sync",
    autoretry_for=(RetryableError,),
    dont_autoretry_for=(NonRetryableError,),
    retry_backoff=True,
    max_retries=3,
)
def run_manual_catalog_sync(self, skus: List[str]):
    """Sync an explicit SKU list. Shares the catalog lock with the full sync."""
    task_id = self.request.id or "unknown"
    if not acquire_sync_lock("catalog", task_id):
        return {"status": "skipped", "reason": "sync_in_progress"}

    try:
        logger.info(f"Manual catalog sync started for {len(skus)} SKUs (task={task_id})")
        result = run_async(get_sync_coordinator().run_manual_sync(skus)).model_dump()
    finally:
        release_sync_lock("catalog")

    return _raise_if_rate_limited(result)


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="tasks.catalog_sync.run_stock_sync",
    autoretry_for=(RetryableError,),
    dont_autoretry_for=(NonRetryableError,),
    retry_backoff=True,
    max_retries=3,
)
def run_stock_sync(self):
    """Refresh per-warehouse stock balances."""
    task_id = self.request.id or "unknown"
    if not acquire_sync_lock("stock", task_id):
        return {"status": "skipped", "reason": "sync_in_progress"}

    try:
        result = run_async(get_sync_coordinator().sync_stock_balances()).model_dump()
        logger.info(f"Stock sync finished: {result['message']}")
    finally:
        release_sync_lock("stock")

    return _raise_if_rate_limited(result)


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="tasks.catalog_sync.refresh_whitelist",
    max_retries=0,
)
def refresh_whitelist(self):
    result = run_async(get_sync_coordinator().force_refresh_cache()).model_dump()
    if not result["success"]:
        logger.warning(f"Whitelist refresh failed: {result['message']}")
    return result


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="tasks.catalog_sync.cleanup_old_products",
    max_retries=0,
)
def cleanup_old_products(self, days_old: Optional[int] = None):
    """Delete outdated products that no sync has touched for days_old days."""
    result = run_async(get_sync_coordinator().cleanup_old_products(days_old)).model_dump()
    logger.info(f"Cleanup finished: {result['message']}")
    return result
