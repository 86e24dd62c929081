"""
Hash utilities — deterministic hashing for sync change detection.

Only ERP-sourced fields enter the hash. Locally owned fields
(weight, manual_order, stock balances, outdated flag) never do, so a
local edit can not trigger a resync write.
Version: 1.0.0
"""

import hashlib
import json
from typing import Any, Dict

from catalog_sync.schemas.catalog import NormalizedProduct


def hashable_fields(product: NormalizedProduct) -> Dict[str, Any]:
    """Extract the ERP-sourced fields that define a product's content."""
    return {
        "name": product.name,
        "cost_per_item": product.cost_per_item,
        "currency": product.currency,
        "category_id": product.category.id,
        "category_name": product.category.name,
        # ERP row order carries no meaning
        "set": sorted(
            (c.model_dump() for c in product.set),
            key=lambda c: (str(c["id"]), c["quantity"]),
        ),
        "additional_prices": sorted(
            (p.model_dump() for p in product.additional_prices),
            key=lambda p: (str(p["price_type"]), str(p["price_value"])),
        ),
        "erp_id": product.erp_id,
    }


def compute_product_hash(product: NormalizedProduct) -> str:
    """
    Compute a deterministic hash of a normalized product.

    Used for change detection - if the hash matches the stored one,
    no write is needed.

    Args:
        product: Normalized product from the catalog processor

    Returns:
        SHA-256 hash string (first 16 chars for storage efficiency)
    """
    json_str = json.dumps(hashable_fields(product), sort_keys=True, default=str)
    hash_obj = hashlib.sha256(json_str.encode())

    return hash_obj.hexdigest()[:16]
