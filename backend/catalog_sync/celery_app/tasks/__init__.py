"""
Celery task exports — all tasks registered from submodules.

Celery tasks package.
Exports all tasks for convenient imports.
Version: 1.0.0
"""
from catalog_sync.celery_app.tasks.catalog_sync import (
    run_full_catalog_sync,
    run_manual_catalog_sync,
    run_stock_sync,
    refresh_whitelist,
    cleanup_old_products,
)

__all__ = [
    "run_full_catalog_sync",
    "run_manual_catalog_sync",
    "run_stock_sync",
    "refresh_whitelist",
    "cleanup_old_products",
]
