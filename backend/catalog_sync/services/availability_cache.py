"""
Availability cache — storefront SKU whitelist with stale-on-error fallback.

get_whitelist() serves the stored snapshot whenever it is non-empty;
expiry is only reported by stats(). Freshness comes from the scheduled
force_refresh() task. An empty snapshot triggers a storefront query
whose result (even an empty one) replaces the snapshot. A failed query
never overwrites anything and falls back to the existing snapshot,
however old.
Version: 1.0.0
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from catalog_sync.clients.storefront_client import StorefrontClient
from catalog_sync.core.exceptions import CatalogSyncException, StorefrontUnavailableError
from catalog_sync.db.whitelist_store import WhitelistStore
from catalog_sync.schemas.catalog import CacheRefreshResult, CacheStats, DiagnosticResult, WhitelistSnapshot

logger = logging.getLogger("availability_cache")


class AvailabilityCache:
    def __init__(
        self,
        storefront: StorefrontClient,
        store: WhitelistStore,
        expiry_hours: int = 24,
    ) -> None:
        self._storefront = storefront
        self._store = store
        self._expiry = timedelta(hours=expiry_hours)

    def set_expiry_hours(self, hours: int) -> None:
        self._expiry = timedelta(hours=hours)

    async def _read_snapshot(self) -> Optional[WhitelistSnapshot]:
        try:
            return await self._store.get_snapshot()
        except CatalogSyncException as e:
            logger.warning("whitelist snapshot read failed error=%s", e)
            return None

    async def _fetch_from_storefront(self) -> List[str]:
        # SQLAlchemy is blocking; keep it off the event loop
        return await asyncio.to_thread(self._storefront.fetch_available_skus)

    async def get_whitelist(self) -> List[str]:
        snapshot = await self._read_snapshot()
        if snapshot and snapshot.skus:
            logger.info("whitelist served from cache count=%d", len(snapshot.skus))
            return snapshot.skus

        try:
            skus = await self._fetch_from_storefront()
        except CatalogSyncException as e:
            if snapshot is not None:
                logger.warning("storefront unavailable, serving cached whitelist count=%d error=%s",
                               len(snapshot.skus), e)
                return snapshot.skus
            raise StorefrontUnavailableError(f"whitelist unavailable and no cached copy: {e}") from e

        try:
            await self._store.save_snapshot(skus)
        except CatalogSyncException as e:
            logger.warning("whitelist snapshot save failed error=%s", e)
        logger.info("whitelist refreshed from storefront count=%d", len(skus))
        return skus

    async def force_refresh(self) -> CacheRefreshResult:
        try:
            skus = await self._fetch_from_storefront()
        except CatalogSyncException as e:
            logger.warning("forced whitelist refresh failed, keeping existing snapshot error=%s", e)
            return CacheRefreshResult(success=False, sku_count=0, error=str(e))

        try:
            await self._store.save_snapshot(skus)
        except CatalogSyncException as e:
            logger.warning("whitelist snapshot save failed error=%s", e)
            return CacheRefreshResult(success=False, sku_count=len(skus), error=str(e))

        logger.info("whitelist force-refreshed count=%d", len(skus))
        return CacheRefreshResult(success=True, sku_count=len(skus))

    async def clear(self) -> DiagnosticResult:
        try:
            await self._store.clear()
        except CatalogSyncException as e:
            return DiagnosticResult(success=False, message=f"cache clear failed: {e}")
        logger.info("whitelist cache cleared")
        return DiagnosticResult(success=True, message="whitelist cache cleared")

    async def stats(self) -> CacheStats:
        snapshot = await self._read_snapshot()
        if snapshot is None:
            return CacheStats(has_cache=False)

        is_expired = True
        if snapshot.last_updated is not None:
            last_updated = snapshot.last_updated
            if last_updated.tzinfo is None:
                last_updated = last_updated.replace(tzinfo=timezone.utc)
            is_expired = datetime.now(timezone.utc) - last_updated > self._expiry

        return CacheStats(
            has_cache=bool(snapshot.skus),
            count=len(snapshot.skus),
            last_updated=snapshot.last_updated,
            is_expired=is_expired,
        )
