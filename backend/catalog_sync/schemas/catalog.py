"""
Catalog schemas — ERP rows, normalized products, pipeline results.

Pydantic models shared by the ERP client, catalog processor,
reconciliation manager and the diagnostic routes.
Version: 1.0.0
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from catalog_sync.core.constants.catalog import DEFAULT_CATEGORIES_MAP, DEFAULT_CURRENCY
from catalog_sync.core.constants.erp import DEFAULT_BUNDLE_GROUP_ID, DEFAULT_PRIMARY_PRICE_TIER_ID


def _as_str(value: Any) -> Any:
    """ERP ids and prices arrive as numbers or strings; keep them as strings."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ErpConfig(BaseModel):
    """Pipeline configuration resolved by the config loader."""
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    bundle_group_id: str = DEFAULT_BUNDLE_GROUP_ID
    primary_price_tier_id: str = DEFAULT_PRIMARY_PRICE_TIER_ID
    categories_map: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CATEGORIES_MAP))
    outdated_allowlist: List[str] = Field(default_factory=list)
    sync_enabled: bool = True
    cache_expiry_hours: int = 24
    cleanup_days_old: int = 30


class WhitelistSnapshot(BaseModel):
    skus: List[str] = Field(default_factory=list)
    total_count: int = 0
    last_updated: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Raw ERP rows (ephemeral)
# ---------------------------------------------------------------------------

class RawPriceRow(BaseModel):
    """One row of the price slice register: one product under one price tier."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    sku: Optional[str] = None
    parent: Optional[str] = None
    price_tier_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("priceType", "price_tier_id")
    )
    price: Optional[str] = None
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("id__pr", "presentation", "display_name")
    )
    parent_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("parent__pr", "parentName", "parent_name")
    )

    @field_validator("id", "sku", "parent", "price_tier_id", "price", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        return _as_str(v)


class RawCatalogRow(BaseModel):
    """One row of the goods catalog."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    sku: Optional[str] = None
    parent: Optional[str] = None
    name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("name", "id__pr", "presentation")
    )

    @field_validator("id", "sku", "parent", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        return _as_str(v)


# ---------------------------------------------------------------------------
# Normalized products
# ---------------------------------------------------------------------------

class BundleComponent(BaseModel):
    id: str  # component SKU, or its ERP id when the SKU could not be resolved
    quantity: float = 0


class SecondaryPrice(BaseModel):
    price_type: str
    price_value: str


class Category(BaseModel):
    id: int
    name: str


class NormalizedProduct(BaseModel):
    """Unit handed to reconciliation, one per unique SKU."""
    erp_id: str
    sku: str
    name: str
    cost_per_item: Optional[str] = None
    currency: str = DEFAULT_CURRENCY
    category: Category
    set: List[BundleComponent] = Field(default_factory=list)
    additional_prices: List[SecondaryPrice] = Field(default_factory=list)
    parent: Optional[str] = None

    @property
    def is_bundle(self) -> bool:
        return len(self.set) > 0


class StockBalance(BaseModel):
    sku: str
    name: Optional[str] = None
    quantities: Dict[str, float] = Field(default_factory=dict)
    total: float = 0


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class SyncResult(BaseModel):
    success: bool
    message: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    error_count: int = 0
    synced_sets: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    rate_limited: bool = False

    @property
    def total_processed(self) -> int:
        return self.created + self.updated + self.skipped


class StockUpdateResult(BaseModel):
    success: bool
    message: str
    updated_count: int = 0
    errors: List[str] = Field(default_factory=list)
    rate_limited: bool = False


class OutdatedResult(BaseModel):
    marked: int = 0
    unmarked: int = 0
    errors: List[str] = Field(default_factory=list)


class CacheStats(BaseModel):
    has_cache: bool
    count: int = 0
    last_updated: Optional[datetime] = None
    is_expired: bool = True


class CacheRefreshResult(BaseModel):
    success: bool
    sku_count: int = 0
    error: Optional[str] = None


class CategoryCount(BaseModel):
    category_name: Optional[str] = None
    count: int = 0


class SyncStats(BaseModel):
    total_products: int = 0
    products_with_sets: int = 0
    outdated_products: int = 0
    last_sync_at: Optional[datetime] = None
    categories: List[CategoryCount] = Field(default_factory=list)


class DiagnosticResult(BaseModel):
    """Small success/message/data envelope returned by diagnostic operations."""
    success: bool
    message: str
    data: Optional[Any] = None
    rate_limited: bool = False


class ManualSyncRequest(BaseModel):
    skus: List[str] = Field(..., min_length=1)

    @field_validator("skus")
    @classmethod
    def strip_blank_skus(cls, v):
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("at least one non-blank SKU is required")
        return cleaned
