"""
Config loader — pipeline configuration from the settings table.

Reads endpoint, credential, bundle group, primary price tier and the
category map from the settings table with a short-TTL in-memory cache.
Values missing from the table fall back to process settings and then
to built-in defaults. A failed read returns defaults and is not cached,
so the next caller tries again.

The loader is a process-wide singleton (see container.py); call
invalidate() after settings are edited externally.
Version: 1.0.0
"""
import json
import logging
import re
import time
from typing import Callable, Dict, List, Optional

from catalog_sync.core.config import Settings
from catalog_sync.core.constants.catalog import DEFAULT_CATEGORIES_MAP, DEFAULT_CLEANUP_DAYS_OLD
from catalog_sync.core.constants.erp import DEFAULT_BUNDLE_GROUP_ID, DEFAULT_PRIMARY_PRICE_TIER_ID
from catalog_sync.core.exceptions import CatalogSyncException
from catalog_sync.db.settings_store import SettingsStore
from catalog_sync.schemas.catalog import ErpConfig
from catalog_sync.utils.type_converters import to_bool, to_int

logger = logging.getLogger("config_loader")

SETTINGS_PREFIX = "erp_"


def validate_config(config: ErpConfig) -> List[str]:
    """Return human-readable problems; an empty list means the config is usable."""
    problems = []
    if not config.api_url:
        problems.append("ERP API URL is not set")
    if not config.api_key:
        problems.append("ERP API key is not set")
    if not config.bundle_group_id:
        problems.append("bundle group id is not set")
    if not config.primary_price_tier_id:
        problems.append("primary price tier id is not set")
    return problems


def mask_key(key: Optional[str]) -> str:
    if not key:
        return "<unset>"
    return f"{key[:6]}..."


def _parse_categories_map(raw: Optional[str]) -> Dict[str, int]:
    if not raw:
        return dict(DEFAULT_CATEGORIES_MAP)
    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("categories map must be a JSON object")
        return {str(k): int(v) for k, v in parsed.items()}
    except (TypeError, ValueError) as e:
        logger.warning("invalid erp_categories_map, using defaults error=%s", e)
        return dict(DEFAULT_CATEGORIES_MAP)


def _parse_sku_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [s for s in (part.strip() for part in re.split(r"[\s,]+", raw)) if s]


class ConfigLoader:
    def __init__(
        self,
        settings_store: SettingsStore,
        settings: Settings,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = settings_store
        self._settings = settings
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.config_cache_ttl_seconds
        self._clock = clock
        self._cached: Optional[ErpConfig] = None
        self._cached_at: float = 0.0

    def defaults(self) -> ErpConfig:
        return ErpConfig(
            api_url=self._settings.erp_api_url,
            api_key=self._settings.erp_api_key,
            bundle_group_id=DEFAULT_BUNDLE_GROUP_ID,
            primary_price_tier_id=DEFAULT_PRIMARY_PRICE_TIER_ID,
            categories_map=dict(DEFAULT_CATEGORIES_MAP),
            sync_enabled=self._settings.catalog_sync_enabled,
            cache_expiry_hours=self._settings.whitelist_cache_expiry_hours,
            cleanup_days_old=DEFAULT_CLEANUP_DAYS_OLD,
        )

    async def get_config(self) -> ErpConfig:
        if self._cached is not None and self._clock() - self._cached_at < self._ttl:
            return self._cached

        try:
            values = await self._store.get_values(SETTINGS_PREFIX)
        except CatalogSyncException as e:
            logger.warning("settings read failed, using defaults error=%s", e)
            return self.defaults()

        config = self._from_values(values)
        problems = validate_config(config)
        if problems:
            logger.warning("ERP configuration incomplete: %s", "; ".join(problems))

        self._cached = config
        self._cached_at = self._clock()
        logger.info(
            "ERP config loaded url=%s key=%s bundle_group=%s primary_tier=%s",
            config.api_url, mask_key(config.api_key),
            config.bundle_group_id, config.primary_price_tier_id,
        )
        return config

    def invalidate(self) -> None:
        self._cached = None
        self._cached_at = 0.0
        logger.info("ERP config cache invalidated")

    def _from_values(self, values: Dict[str, Optional[str]]) -> ErpConfig:
        defaults = self.defaults()
        return ErpConfig(
            api_url=values.get("erp_api_url") or defaults.api_url,
            api_key=values.get("erp_api_key") or defaults.api_key,
            bundle_group_id=values.get("erp_bundle_group_id") or defaults.bundle_group_id,
            primary_price_tier_id=(
                values.get("erp_primary_price_tier_id") or defaults.primary_price_tier_id
            ),
            categories_map=_parse_categories_map(values.get("erp_categories_map")),
            outdated_allowlist=_parse_sku_list(values.get("erp_outdated_allowlist")),
            sync_enabled=to_bool(values.get("erp_sync_enabled"), defaults.sync_enabled),
            cache_expiry_hours=to_int(
                values.get("erp_cache_expiry_hours"), defaults.cache_expiry_hours
            ),
            cleanup_days_old=to_int(values.get("erp_cleanup_days_old"), defaults.cleanup_days_old),
        )
