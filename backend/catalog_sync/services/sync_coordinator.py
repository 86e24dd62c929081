"""
Sync coordinator — the one entry point callers use.

Full sync:
    whitelist -> ERP prices + catalog -> catalog processor
    -> reconciliation -> staleness pass -> SyncResult

Manual sync runs the same pipeline for an explicit SKU list and skips
the staleness pass. Stock sync refreshes per-warehouse balances for
every stored product that is not outdated.

Every operation returns a result object. Pipeline-level failures
(whitelist unavailable, ERP auth failure, sync disabled) come back as
success=False; a persistent concurrent-access rejection also sets
rate_limited=True so the HTTP boundary can answer 429.

The coordinator does not serialize runs; scheduled callers hold the
Redis sync lock (utils/sync_lock.py) around each run.
Version: 1.0.0
"""
import logging
from typing import List, Optional, Sequence

from catalog_sync.clients.erp_client import ErpClient
from catalog_sync.core.exceptions import CatalogSyncException, RateLimitedError
from catalog_sync.services.availability_cache import AvailabilityCache
from catalog_sync.services.catalog_processor import CatalogProcessor
from catalog_sync.services.config_loader import ConfigLoader, validate_config
from catalog_sync.services.reconciliation_manager import ReconciliationManager
from catalog_sync.schemas.catalog import (
    DiagnosticResult,
    ErpConfig,
    StockUpdateResult,
    SyncResult,
)

logger = logging.getLogger("sync_coordinator")


def _failure(message: str, error: Optional[Exception] = None) -> SyncResult:
    return SyncResult(
        success=False,
        message=message,
        errors=[str(error)] if error else [message],
        rate_limited=isinstance(error, RateLimitedError),
    )


class SyncCoordinator:
    def __init__(
        self,
        config_loader: ConfigLoader,
        availability_cache: AvailabilityCache,
        erp_client: ErpClient,
        processor: CatalogProcessor,
        reconciliation: ReconciliationManager,
    ) -> None:
        self._config_loader = config_loader
        self._cache = availability_cache
        self._erp = erp_client
        self._processor = processor
        self._reconciliation = reconciliation

    # ------------------------------------------------------------------
    # Sync runs
    # ------------------------------------------------------------------

    async def run_full_sync(self) -> SyncResult:
        logger.info("=== full catalog sync started ===")
        config = await self._config_loader.get_config()
        if not config.sync_enabled:
            logger.info("catalog sync is disabled in settings, skipping")
            return _failure("catalog sync is disabled")

        self._cache.set_expiry_hours(config.cache_expiry_hours)
        try:
            whitelist = await self._cache.get_whitelist()
        except CatalogSyncException as e:
            logger.error("whitelist unavailable, aborting sync error=%s", e)
            return _failure(f"whitelist unavailable: {e}", e)

        if not whitelist:
            logger.warning("whitelist is empty, aborting sync")
            return _failure("whitelist is empty, nothing to sync")

        result = await self._sync_skus(whitelist, config)
        # staleness depends only on the whitelist
        await self._mark_outdated(whitelist, config, result)

        logger.info("=== full catalog sync finished: %s ===", result.message)
        return result

    async def run_manual_sync(self, skus: Sequence[str]) -> SyncResult:
        cleaned = [s.strip() for s in skus if s and s.strip()]
        logger.info("=== manual catalog sync started skus=%d ===", len(cleaned))
        if not cleaned:
            return _failure("no SKUs given")

        config = await self._config_loader.get_config()
        if not config.sync_enabled:
            return _failure("catalog sync is disabled")

        result = await self._sync_skus(cleaned, config)
        logger.info("=== manual catalog sync finished: %s ===", result.message)
        return result

    async def _sync_skus(self, skus: List[str], config: ErpConfig) -> SyncResult:
        try:
            price_rows = await self._erp.get_prices_for_skus(skus)
            catalog_rows = await self._erp.get_catalog_for_skus(skus)
        except CatalogSyncException as e:
            logger.error("ERP fetch failed, aborting sync error=%s", e)
            return _failure(f"ERP fetch failed: {e}", e)

        if not price_rows:
            logger.warning("ERP returned no price rows for skus=%d", len(skus))
            return _failure(f"ERP returned no products for {len(skus)} SKUs")

        try:
            products = await self._processor.process(price_rows, catalog_rows, config)
            result = await self._reconciliation.sync_to_store(products)
        except CatalogSyncException as e:
            logger.error("catalog processing failed error=%s", e)
            return _failure(f"catalog processing failed: {e}", e)

        result.warnings.extend(self._processor.warnings)
        return result

    async def _mark_outdated(self, whitelist: List[str], config: ErpConfig, result: SyncResult) -> None:
        try:
            outdated = await self._reconciliation.mark_outdated(whitelist, config.outdated_allowlist)
        except CatalogSyncException as e:
            logger.error("staleness pass failed error=%s", e)
            result.warnings.append(f"staleness pass failed: {e}")
            return
        result.warnings.extend(outdated.errors)
        if outdated.marked or outdated.unmarked:
            result.message += f", outdated +{outdated.marked}/-{outdated.unmarked}"

    async def sync_stock_balances(self) -> StockUpdateResult:
        logger.info("=== stock balance sync started ===")
        try:
            skus = await self._reconciliation.current_skus()
            if not skus:
                return StockUpdateResult(success=False, message="no current products to update")
            rows = await self._erp.get_stock_balance(skus)
        except CatalogSyncException as e:
            logger.error("stock sync aborted error=%s", e)
            return StockUpdateResult(
                success=False,
                message=f"stock sync failed: {e}",
                errors=[str(e)],
                rate_limited=isinstance(e, RateLimitedError),
            )

        balances = self._processor.process_stock_balance(rows)
        result = await self._reconciliation.update_stock_balances(balances)
        logger.info("=== stock balance sync finished: %s ===", result.message)
        return result

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def test_connection(self) -> DiagnosticResult:
        config = await self._config_loader.get_config()
        problems = validate_config(config)
        try:
            await self._erp.test_connection()
        except CatalogSyncException as e:
            logger.warning("ERP connection test failed error=%s", e)
            return DiagnosticResult(
                success=False,
                message=f"ERP connection failed: {e}",
                data={"config_warnings": problems},
                rate_limited=isinstance(e, RateLimitedError),
            )
        return DiagnosticResult(
            success=True,
            message="ERP connection OK",
            data={"config_warnings": problems},
        )

    async def probe_bundles_only(self, skus: Optional[Sequence[str]] = None) -> DiagnosticResult:
        """Resolve bundles for the given (or whitelisted) SKUs without writing anything."""
        config = await self._config_loader.get_config()
        try:
            targets = list(skus) if skus else await self._cache.get_whitelist()
            price_rows = await self._erp.get_prices_for_skus(targets)
            catalog_rows = await self._erp.get_catalog_for_skus(targets)
            bundles = await self._processor.probe_bundles(price_rows, catalog_rows, config)
        except CatalogSyncException as e:
            logger.warning("bundle probe failed error=%s", e)
            return DiagnosticResult(
                success=False,
                message=f"bundle probe failed: {e}",
                rate_limited=isinstance(e, RateLimitedError),
            )

        return DiagnosticResult(
            success=True,
            message=f"resolved {len(bundles)} bundles",
            data={
                "bundles": [
                    {"sku": b.sku, "name": b.name, "set": [c.model_dump() for c in b.set]}
                    for b in bundles
                ],
                "warnings": list(self._processor.warnings),
            },
        )

    async def get_cache_stats(self) -> DiagnosticResult:
        stats = await self._cache.stats()
        return DiagnosticResult(success=True, message="whitelist cache stats", data=stats.model_dump(mode="json"))

    async def force_refresh_cache(self) -> DiagnosticResult:
        refreshed = await self._cache.force_refresh()
        if not refreshed.success:
            return DiagnosticResult(success=False, message=f"cache refresh failed: {refreshed.error}")
        return DiagnosticResult(
            success=True,
            message=f"whitelist refreshed with {refreshed.sku_count} SKUs",
            data=refreshed.model_dump(),
        )

    async def clear_cache(self) -> DiagnosticResult:
        return await self._cache.clear()

    async def reload_config(self) -> DiagnosticResult:
        config = await self._erp.reload_config()
        self._cache.set_expiry_hours(config.cache_expiry_hours)
        return DiagnosticResult(
            success=True,
            message="configuration reloaded",
            data={"config_warnings": validate_config(config)},
        )

    async def get_sync_stats(self) -> DiagnosticResult:
        try:
            stats = await self._reconciliation.get_sync_stats()
        except CatalogSyncException as e:
            return DiagnosticResult(success=False, message=f"stats unavailable: {e}")
        return DiagnosticResult(success=True, message="sync stats", data=stats.model_dump(mode="json"))

    async def cleanup_old_products(self, days_old: Optional[int] = None) -> DiagnosticResult:
        if days_old is None:
            days_old = (await self._config_loader.get_config()).cleanup_days_old
        try:
            deleted = await self._reconciliation.cleanup_old_products(days_old)
        except CatalogSyncException as e:
            return DiagnosticResult(success=False, message=f"cleanup failed: {e}")
        return DiagnosticResult(
            success=True,
            message=f"deleted {deleted} outdated products older than {days_old} days",
            data={"deleted_count": deleted},
        )
