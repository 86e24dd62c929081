"""
Storefront client — read-only SKU lookup against the storefront database.

Returns {sku, stock_quantity} rows for published products that carry
a non-empty SKU attribute. The connection is fully separate from the
local Supabase store.
Version: 1.0.0
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from catalog_sync.core.config import Settings
from catalog_sync.core.exceptions import ConfigurationError, StorefrontUnavailableError
from catalog_sync.utils.type_converters import to_float

logger = logging.getLogger("storefront_client")

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]*$")

_PUBLISHED_SKUS_SQL = """
    SELECT DISTINCT
        pm.meta_value AS sku,
        COALESCE(pm2.meta_value, '1') AS stock_quantity
    FROM {prefix}postmeta pm
    INNER JOIN {prefix}posts p ON pm.post_id = p.ID
    LEFT JOIN {prefix}postmeta pm2 ON pm.post_id = pm2.post_id AND pm2.meta_key = :stock_key
    WHERE pm.meta_key = :sku_key
      AND pm.meta_value IS NOT NULL
      AND pm.meta_value != ''
      AND p.post_type = :post_type
      AND p.post_status = :post_status
    ORDER BY pm.meta_value
"""


class StorefrontClient:
    def __init__(self, settings: Settings, engine: Optional[Engine] = None) -> None:
        self._database_url = settings.storefront_database_url
        self._prefix = settings.storefront_table_prefix
        self._require_stock = settings.storefront_require_stock
        self._engine = engine

        if not _PREFIX_RE.match(self._prefix):
            raise ConfigurationError(f"invalid storefront table prefix: {self._prefix!r}")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if not self._database_url:
                raise ConfigurationError("STOREFRONT_DATABASE_URL must be set for whitelist lookups")
            self._engine = create_engine(self._database_url, pool_pre_ping=True, pool_recycle=300)
        return self._engine

    def fetch_published_products(self) -> List[Dict[str, Any]]:
        """Run the published-products query and return raw {sku, stock_quantity} rows."""
        query = text(_PUBLISHED_SKUS_SQL.format(prefix=self._prefix))
        params = {
            "sku_key": "_sku",
            "stock_key": "_stock",
            "post_type": "product",
            "post_status": "publish",
        }
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query, params).mappings().all()
        except SQLAlchemyError as e:
            logger.warning("storefront query failed error=%s", e)
            raise StorefrontUnavailableError(f"storefront query failed: {e}") from e

        logger.info("storefront query returned rows=%d", len(rows))
        return [
            {"sku": row["sku"], "stock_quantity": to_float(row["stock_quantity"], default=0.0)}
            for row in rows
        ]

    def fetch_available_skus(self) -> List[str]:
        """Published SKUs, validated non-blank, trimmed and de-duplicated in order."""
        skus: List[str] = []
        seen = set()
        for row in self.fetch_published_products():
            sku = str(row["sku"] or "").strip()
            if not sku:
                logger.info("skipping storefront row with blank sku")
                continue
            if self._require_stock and (row["stock_quantity"] or 0) <= 0:
                continue
            if sku in seen:
                continue
            seen.add(sku)
            skus.append(sku)
        return skus
