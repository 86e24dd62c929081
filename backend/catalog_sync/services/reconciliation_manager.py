"""
Reconciliation manager — diff normalized products against the local store.

Per product (sequential):
- hash the ERP-sourced fields
- existing SKU, same hash    -> skipped, no write
- existing SKU, changed hash -> update ERP-sourced fields only
- new SKU                    -> create, with weight / manual order
                                derived from the category (creation only)

Also writes per-warehouse stock balances, flips the outdated flag in a
full pass over local products, reports statistics and cleans up
long-outdated rows. Per-item failures are collected in the result;
nothing here raises for a single bad SKU.
Version: 1.0.0
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from catalog_sync.core.constants.catalog import CREATION_DEFAULTS
from catalog_sync.core.exceptions import CatalogSyncException, PartialItemError
from catalog_sync.db.product_store import ProductStore
from catalog_sync.schemas.catalog import (
    CategoryCount,
    NormalizedProduct,
    OutdatedResult,
    StockBalance,
    StockUpdateResult,
    SyncResult,
    SyncStats,
)
from catalog_sync.utils.hash_utils import compute_product_hash
from catalog_sync.utils.type_converters import to_float

logger = logging.getLogger("reconciliation_manager")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_sku(sku: Optional[str]) -> str:
    return (sku or "").strip().lower()


def creation_defaults(category_id: int) -> tuple[Optional[int], int]:
    """(weight grams, manual order) for a newly created product."""
    return CREATION_DEFAULTS.get(category_id, (None, 0))


def build_product_payload(product: NormalizedProduct, data_hash: str, now: datetime) -> Dict[str, Any]:
    """ERP-sourced columns written on both create and update."""
    return {
        "name": product.name,
        "cost_per_item": to_float(product.cost_per_item),
        "currency": product.currency,
        "category_id": product.category.id,
        "category_name": product.category.name,
        "set": (
            json.dumps([c.model_dump() for c in product.set], ensure_ascii=False)
            if product.set else None
        ),
        "additional_prices": (
            json.dumps([p.model_dump() for p in product.additional_prices], ensure_ascii=False)
            if product.additional_prices else None
        ),
        "erp_id": product.erp_id,
        "erp_data_hash": data_hash,
        "last_sync_at": now.isoformat(),
    }


def summarize(result: SyncResult) -> str:
    parts = [f"processed {result.total_processed} products"]
    if result.created:
        parts.append(f"created {result.created}")
    if result.updated:
        parts.append(f"updated {result.updated}")
    if result.skipped:
        parts.append(f"skipped {result.skipped}")
    if result.synced_sets:
        parts.append(f"bundles {result.synced_sets}")
    if result.error_count:
        parts.append(f"errors {result.error_count}")
    return ", ".join(parts)


class ReconciliationManager:
    def __init__(
        self,
        product_store: ProductStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = product_store
        self._clock = clock

    async def sync_to_store(self, products: Iterable[NormalizedProduct]) -> SyncResult:
        result = SyncResult(success=True, message="")

        for product in products:
            try:
                await self._sync_one(product, result)
            except CatalogSyncException as e:
                error = PartialItemError(product.sku, f"sync failed: {e}")
                logger.error(str(error))
                result.errors.append(str(error))
                result.error_count += 1

        result.success = result.error_count == 0
        result.message = summarize(result)
        logger.info("reconciliation complete: %s", result.message)
        return result

    async def _sync_one(self, product: NormalizedProduct, result: SyncResult) -> None:
        data_hash = compute_product_hash(product)
        existing = await self._store.get_product_by_sku(product.sku)

        if existing:
            if existing.get("erp_data_hash") == data_hash:
                logger.debug("unchanged sku=%s", product.sku)
                result.skipped += 1
            else:
                await self._store.update_product(
                    product.sku, build_product_payload(product, data_hash, self._clock())
                )
                logger.info("updated sku=%s hash=%s", product.sku, data_hash)
                result.updated += 1
        else:
            weight, manual_order = creation_defaults(product.category.id)
            row = {
                "sku": product.sku,
                **build_product_payload(product, data_hash, self._clock()),
                "weight": weight,
                "manual_order": manual_order,
                "is_outdated": False,
            }
            await self._store.create_product(row)
            logger.info(
                "created sku=%s category=%s weight=%s manual_order=%s",
                product.sku, product.category.id, weight, manual_order,
            )
            result.created += 1

        if product.set:
            result.synced_sets += 1

    async def update_stock_balances(self, balances: Iterable[StockBalance]) -> StockUpdateResult:
        updated = 0
        errors: List[str] = []

        for balance in balances:
            try:
                existing = await self._store.get_product_by_sku(balance.sku)
                if not existing:
                    raise PartialItemError(balance.sku, "product not found in local store")
                await self._store.update_stock_balance(balance.sku, balance.quantities)
                updated += 1
            except CatalogSyncException as e:
                logger.warning("stock update failed sku=%s error=%s", balance.sku, e)
                errors.append(str(e))

        message = f"updated stock for {updated} products"
        if errors:
            message += f", {len(errors)} errors"
        logger.info(message)
        return StockUpdateResult(success=not errors, message=message, updated_count=updated, errors=errors)

    async def mark_outdated(
        self,
        current_skus: Iterable[str],
        allowlist: Iterable[str] = (),
    ) -> OutdatedResult:
        """Full pass over local products: flag the uncovered, clear the covered."""
        covered = {_normalize_sku(s) for s in current_skus} | {_normalize_sku(s) for s in allowlist}
        covered.discard("")
        result = OutdatedResult()

        products = await self._store.list_products("id,sku,name,is_outdated")
        logger.info("staleness pass over products=%d covered_skus=%d", len(products), len(covered))

        for product in products:
            sku = product.get("sku")
            is_covered = _normalize_sku(sku) in covered
            is_outdated = bool(product.get("is_outdated"))
            try:
                if not is_covered and not is_outdated:
                    await self._store.set_outdated(sku, True)
                    logger.info("marked outdated sku=%s name=%s", sku, product.get("name"))
                    result.marked += 1
                elif is_covered and is_outdated:
                    await self._store.set_outdated(sku, False)
                    logger.info("cleared outdated sku=%s", sku)
                    result.unmarked += 1
            except CatalogSyncException as e:
                logger.warning("outdated flag update failed sku=%s error=%s", sku, e)
                result.errors.append(str(PartialItemError(sku, str(e))))

        logger.info("staleness pass marked=%d unmarked=%d", result.marked, result.unmarked)
        return result

    async def get_sync_stats(self) -> SyncStats:
        products = await self._store.list_products("id,sku,set,category_name,last_sync_at,is_outdated")

        last_sync: Optional[datetime] = None
        categories: Dict[Optional[str], int] = {}
        for product in products:
            raw = product.get("last_sync_at")
            if raw:
                synced_at = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
                if synced_at.tzinfo is None:
                    synced_at = synced_at.replace(tzinfo=timezone.utc)
                if last_sync is None or synced_at > last_sync:
                    last_sync = synced_at
            name = product.get("category_name")
            categories[name] = categories.get(name, 0) + 1

        return SyncStats(
            total_products=len(products),
            products_with_sets=sum(1 for p in products if p.get("set")),
            outdated_products=sum(1 for p in products if p.get("is_outdated")),
            last_sync_at=last_sync,
            categories=[
                CategoryCount(category_name=name, count=count)
                for name, count in sorted(categories.items(), key=lambda kv: -kv[1])
            ],
        )

    async def cleanup_old_products(self, days_old: int) -> int:
        """Delete outdated products not written by a sync for days_old days."""
        cutoff = self._clock() - timedelta(days=days_old)
        deleted = await self._store.delete_outdated_synced_before(cutoff)
        logger.info("cleanup days_old=%d deleted=%d", days_old, deleted)
        return deleted

    async def current_skus(self) -> List[str]:
        """SKUs of stored products that are not flagged outdated."""
        return await self._store.list_current_skus()
