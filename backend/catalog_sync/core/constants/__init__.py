"""
Constants package — re-exports from domain-specific modules.

Usage:
    from catalog_sync.core.constants.erp import API_VERSION
    # or import everything:
    from catalog_sync.core.constants import erp, catalog, stock
Version: 1.0.0
"""

from catalog_sync.core.constants import erp, catalog, stock
from catalog_sync.core.constants.erp import (
    API_VERSION,
    MAX_IDS_PER_REQUEST,
    CONCURRENT_ACCESS_SIGNATURE,
    DEFAULT_BUNDLE_GROUP_ID,
    DEFAULT_PRIMARY_PRICE_TIER_ID,
)
from catalog_sync.core.constants.catalog import (
    DEFAULT_CURRENCY,
    UNCATEGORIZED_ID,
    DEFAULT_CATEGORIES_MAP,
    CATEGORY_RULES,
)
from catalog_sync.core.constants.stock import (
    SELLABLE_WAREHOUSES,
    EXCLUDED_WAREHOUSES,
)

__all__ = [
    "erp",
    "catalog",
    "stock",
    "API_VERSION",
    "MAX_IDS_PER_REQUEST",
    "CONCURRENT_ACCESS_SIGNATURE",
    "DEFAULT_BUNDLE_GROUP_ID",
    "DEFAULT_PRIMARY_PRICE_TIER_ID",
    "DEFAULT_CURRENCY",
    "UNCATEGORIZED_ID",
    "DEFAULT_CATEGORIES_MAP",
    "CATEGORY_RULES",
    "SELLABLE_WAREHOUSES",
    "EXCLUDED_WAREHOUSES",
]
