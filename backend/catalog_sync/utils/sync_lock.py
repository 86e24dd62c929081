"""
Sync lock — Redis "sync in progress" flag per pipeline.

The pipeline does not serialize itself; scheduled triggers acquire
this lock (SET NX EX) before starting a run and release it afterwards.
The TTL bounds how long a crashed worker can block the next run.
Version: 1.0.0
"""
import logging
from typing import Optional

import redis

from catalog_sync.core.config import settings

logger = logging.getLogger(__name__)


def _get_redis() -> redis.Redis:
    """Create a Redis client from the configured URL."""
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


def _lock_key(pipeline: str) -> str:
    return f"catalog_sync:in_progress:{pipeline}"


def acquire_sync_lock(pipeline: str, task_id: str = "unknown", ttl: Optional[int] = None) -> bool:
    """Acquire the per-pipeline sync lock.

    Returns True if lock was acquired (this run should proceed).
    Returns False if lock is already held (another run is in progress).
    """
    r = _get_redis()
    key = _lock_key(pipeline)
    ttl = ttl or settings.sync_lock_ttl_seconds

    acquired = r.set(key, task_id, nx=True, ex=ttl)

    if acquired:
        logger.info(f"Sync lock ACQUIRED: pipeline={pipeline}, task={task_id}, ttl={ttl}s")
    else:
        holder = r.get(key)
        logger.info(f"Sync lock HELD: pipeline={pipeline}, holder={holder}, skipping")

    return bool(acquired)


def release_sync_lock(pipeline: str) -> None:
    """Release the sync lock for a pipeline."""
    r = _get_redis()
    r.delete(_lock_key(pipeline))
    logger.debug(f"Sync lock released: pipeline={pipeline}")


def is_sync_in_progress(pipeline: str) -> bool:
    r = _get_redis()
    return bool(r.exists(_lock_key(pipeline)))
