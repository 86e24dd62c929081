"""
Whitelist store — single-row snapshot of storefront SKUs.
Version: 1.0.0
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from catalog_sync.db.base_store import BaseStore
from catalog_sync.schemas.catalog import WhitelistSnapshot

logger = logging.getLogger("whitelist_store")

WHITELIST_TABLE = "storefront_sku_cache"
SNAPSHOT_ID = 1


class WhitelistStore(BaseStore):

    async def get_snapshot(self) -> Optional[WhitelistSnapshot]:
        rows = await self._select(WHITELIST_TABLE, "*", {"id": SNAPSHOT_ID})
        if not rows:
            return None
        row = rows[0]
        try:
            skus = json.loads(row.get("skus") or "[]")
        except (TypeError, ValueError):
            logger.warning("whitelist snapshot has unreadable skus column, treating as empty")
            skus = []
        return WhitelistSnapshot(
            skus=[str(s) for s in skus],
            total_count=row.get("total_count") or len(skus),
            last_updated=row.get("last_updated"),
        )

    async def save_snapshot(self, skus: List[str]) -> WhitelistSnapshot:
        snapshot = WhitelistSnapshot(
            skus=list(skus),
            total_count=len(skus),
            last_updated=datetime.now(timezone.utc),
        )
        await self._upsert(
            WHITELIST_TABLE,
            [{
                "id": SNAPSHOT_ID,
                "skus": json.dumps(snapshot.skus, ensure_ascii=False),
                "total_count": snapshot.total_count,
                "last_updated": snapshot.last_updated.isoformat(),
            }],
            on_conflict="id",
        )
        return snapshot

    async def clear(self) -> None:
        await self._delete(WHITELIST_TABLE, {"id": SNAPSHOT_ID})
