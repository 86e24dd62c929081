"""
Category mapping — name normalization, configured map, keyword rules.
Version: 1.0.0
"""
import logging
from typing import Dict, Iterable, Optional, Tuple

from catalog_sync.core.constants.catalog import (
    CATEGORY_RULES,
    DEFAULT_CATEGORIES_MAP,
    UNCATEGORIZED_ID,
)

logger = logging.getLogger("category_mapping")


def normalize_category_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def build_category_lookup(categories_map: Optional[Dict[str, int]] = None) -> Dict[str, int]:
    """Merge the default map with the configured one, keyed by normalized name."""
    merged = {**DEFAULT_CATEGORIES_MAP, **(categories_map or {})}
    lookup: Dict[str, int] = {}
    for key, value in merged.items():
        norm_key = normalize_category_name(key)
        if norm_key:
            lookup[norm_key] = value
    return lookup


def match_category_rule(
    normalized_name: str,
    rules: Iterable[Tuple[Tuple[str, ...], int]] = CATEGORY_RULES,
) -> int:
    """Return the id of the first rule whose keyword occurs in the name."""
    for keywords, category_id in rules:
        if any(keyword in normalized_name for keyword in keywords):
            return category_id
    return UNCATEGORIZED_ID


def resolve_category_id(name: Optional[str], lookup: Dict[str, int]) -> int:
    """Map a category name to its id: exact lookup, then rules, then uncategorized."""
    normalized = normalize_category_name(name)
    category_id = lookup.get(normalized) or match_category_rule(normalized)
    if not category_id:
        logger.warning("unmapped category name=%r normalized=%r", name, normalized)
    return category_id
