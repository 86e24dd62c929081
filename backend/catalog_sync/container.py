"""
Lazy DI container — singleton access to clients, stores, and services.

Provides the process-wide instances of the config loader, availability
cache and sync coordinator. Works in both FastAPI (async) and Celery
(sync) contexts. Cached state (config, whitelist) is owned here and
reset only through the owners' invalidate / clear methods.
Version: 1.0.0
"""

from functools import lru_cache

from catalog_sync.core.config import settings
from catalog_sync.clients.supabase_client import SupabaseClient
from catalog_sync.clients.storefront_client import StorefrontClient
from catalog_sync.clients.erp_client import ErpClient
from catalog_sync.db.product_store import ProductStore
from catalog_sync.db.settings_store import SettingsStore
from catalog_sync.db.whitelist_store import WhitelistStore
from catalog_sync.services.availability_cache import AvailabilityCache
from catalog_sync.services.catalog_processor import CatalogProcessor
from catalog_sync.services.config_loader import ConfigLoader
from catalog_sync.services.reconciliation_manager import ReconciliationManager
from catalog_sync.services.sync_coordinator import SyncCoordinator


# -- Clients ---------------------------------------------------------------

@lru_cache(maxsize=1)
def get_supabase_client():
    return SupabaseClient(settings)


@lru_cache(maxsize=1)
def get_storefront_client():
    return StorefrontClient(settings)


@lru_cache(maxsize=1)
def get_erp_client():
    return ErpClient(get_config_loader(), settings)


# -- DB Stores -------------------------------------------------------------

@lru_cache(maxsize=1)
def get_product_store():
    return ProductStore(get_supabase_client())


@lru_cache(maxsize=1)
def get_settings_store():
    return SettingsStore(get_supabase_client())


@lru_cache(maxsize=1)
def get_whitelist_store():
    return WhitelistStore(get_supabase_client())


# -- Pipeline Services -----------------------------------------------------

@lru_cache(maxsize=1)
def get_config_loader():
    return ConfigLoader(get_settings_store(), settings)


@lru_cache(maxsize=1)
def get_availability_cache():
    return AvailabilityCache(
        storefront=get_storefront_client(),
        store=get_whitelist_store(),
        expiry_hours=settings.whitelist_cache_expiry_hours,
    )


@lru_cache(maxsize=1)
def get_catalog_processor():
    return CatalogProcessor(get_erp_client(), settings)


@lru_cache(maxsize=1)
def get_reconciliation_manager():
    return ReconciliationManager(get_product_store())


@lru_cache(maxsize=1)
def get_sync_coordinator():
    return SyncCoordinator(
        config_loader=get_config_loader(),
        availability_cache=get_availability_cache(),
        erp_client=get_erp_client(),
        processor=get_catalog_processor(),
        reconciliation=get_reconciliation_manager(),
    )
