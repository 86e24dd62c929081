"""
Celery configuration — broker, task routes, beat schedule.

Celery application configuration.
Configures Redis broker, the catalog sync queue and the periodic
triggers for full sync, stock sync, whitelist refresh and cleanup.

All sync tasks run on one queue with a single worker process: the ERP
rejects concurrent requests from the same key.

=============================================================================
RUNNING WORKERS
=============================================================================

    Worker (one process, ERP calls must not overlap):
        celery -A catalog_sync.celery_app worker -Q catalog_sync,default --concurrency=1 -l info -n sync@%h

    Beat (scheduler):
        celery -A catalog_sync.celery_app beat -l info

On Windows add --pool=solo to the worker command.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================
    CATALOG_SYNC_ENABLED: "true" or "false" — master on/off for scheduled sync (default: true)
    CATALOG_SYNC_INTERVAL_MINUTES: minutes between full syncs (default: 60)
    STOCK_SYNC_INTERVAL_MINUTES: minutes between stock syncs (default: 15)
    WHITELIST_REFRESH_HOURS: hours between forced whitelist refreshes (default: 24)
Version: 1.0.0
"""
import logging
import platform
from datetime import timedelta

from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from catalog_sync.core.config import settings

logger = logging.getLogger(__name__)

IS_WINDOWS = platform.system() == "Windows"

CATALOG_SYNC_ENABLED = settings.catalog_sync_enabled
CATALOG_SYNC_INTERVAL_MINUTES = settings.catalog_sync_interval_minutes
STOCK_SYNC_INTERVAL_MINUTES = settings.stock_sync_interval_minutes
WHITELIST_REFRESH_HOURS = settings.whitelist_refresh_hours


def _build_beat_schedule() -> dict:
    """Build Celery Beat schedule from the sync settings."""
    if not CATALOG_SYNC_ENABLED:
        logger.info("Scheduled catalog sync disabled (CATALOG_SYNC_ENABLED=false)")
        return {}

    return {
        "catalog-full-sync": {
            "task": "tasks.catalog_sync.run_full_catalog_sync",
            "schedule": timedelta(minutes=CATALOG_SYNC_INTERVAL_MINUTES),
            "options": {"queue": "catalog_sync"},
        },
        "catalog-stock-sync": {
            "task": "tasks.catalog_sync.run_stock_sync",
            "schedule": timedelta(minutes=STOCK_SYNC_INTERVAL_MINUTES),
            "options": {"queue": "catalog_sync"},
        },
        "whitelist-refresh": {
            "task": "tasks.catalog_sync.refresh_whitelist",
            "schedule": timedelta(hours=WHITELIST_REFRESH_HOURS),
            "options": {"queue": "default"},
        },
        "outdated-cleanup": {
            "task": "tasks.catalog_sync.cleanup_old_products",
            "schedule": crontab(minute=0, hour=3),
            "options": {"queue": "default"},
        },
    }


celery_app = Celery(
    "catalog_sync",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "catalog_sync.celery_app.tasks.catalog_sync",
    ]
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    task_queues=(
        Queue("catalog_sync"),
        Queue("default"),
    ),
    task_routes={
        "tasks.catalog_sync.run_full_catalog_sync": {"queue": "catalog_sync"},
        "tasks.catalog_sync.run_manual_catalog_sync": {"queue": "catalog_sync"},
        "tasks.catalog_sync.run_stock_sync": {"queue": "catalog_sync"},
        "tasks.catalog_sync.*": {"queue": "default"},
    },

    beat_schedule=_build_beat_schedule(),

    # Result expiration
    result_expires=3600,  # 1 hour

    # Retry settings
    task_default_retry_delay=30,
    task_max_retries=3,

    worker_pool="solo" if IS_WINDOWS else "prefork",

    broker_transport_options={"visibility_timeout": settings.sync_lock_ttl_seconds},

    # Custom log format
    worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
    worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s] [%(task_name)s] %(message)s",
)
