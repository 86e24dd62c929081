"""
Product store — persisted catalog rows keyed by SKU.

Product store – products table operations.
Version: 1.0.0
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional


from catalog_sync.db.base_store import SUPABASE_ERRORS, BaseStore

logger = logging.getLogger("product_store")

PRODUCTS_TABLE = "products"


class ProductStore(BaseStore):
    """CRUD for the products table."""

    async def get_product_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        rows = await self._select(PRODUCTS_TABLE, "*", {"sku": sku})
        return rows[0] if rows else None

    async def create_product(self, row: Dict[str, Any]) -> None:
        await self._insert(PRODUCTS_TABLE, [row])

    async def update_product(self, sku: str, payload: Dict[str, Any]) -> None:
        if not payload:
            return
        await self._update(PRODUCTS_TABLE, {"sku": sku}, payload)

    async def list_products(self, columns: str = "*") -> List[Dict[str, Any]]:
        return await self._select_all(PRODUCTS_TABLE, columns)

    async def list_current_skus(self) -> List[str]:
        """SKUs of every product not flagged outdated."""
        rows = await self._select_all(PRODUCTS_TABLE, "id,sku", {"is_outdated": False})
        return [row["sku"] for row in rows if row.get("sku")]

    async def set_outdated(self, sku: str, is_outdated: bool) -> None:
        await self._update(PRODUCTS_TABLE, {"sku": sku}, {"is_outdated": is_outdated})

    async def update_stock_balance(self, sku: str, balances: Dict[str, float]) -> None:
        """Overwrite only the per-warehouse balance column."""
        await self._update(
            PRODUCTS_TABLE,
            {"sku": sku},
            {"stock_balance_by_stock": json.dumps(balances)},
        )

    async def delete_outdated_synced_before(self, cutoff: datetime) -> int:
        """Delete outdated products whose last sync is older than cutoff; returns the count."""
        try:
            response = (
                self._client.table(PRODUCTS_TABLE)
                .delete()
                .eq("is_outdated", True)
                .lt("last_sync_at", cutoff.isoformat())
                .execute()
            )
        except SUPABASE_ERRORS as e:
            raise self._fail("delete from", PRODUCTS_TABLE, e)
        deleted = len(response.data or [])
        logger.info("deleted outdated products synced before=%s count=%d", cutoff.isoformat(), deleted)
        return deleted
