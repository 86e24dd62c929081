"""
Catalog processor — raw ERP rows to normalized products.

Processing steps:
1. De-duplicate price rows by ERP id (first occurrence wins)
2. Build id -> SKU, id -> catalog row, id -> price entries maps
   (price entries come from the original rows: one per price tier)
3. Resolve bundle components sequentially for rows in the bundle group
4. Resolve category names through the parent group
5. Split prices into the primary tier and positive secondary tiers
6. Map category names to ids (map, then keyword rules, then uncategorized)
7. De-duplicate by SKU (last occurrence wins)

Bundle lookups are the most expensive ERP calls in the pipeline, so
they run one at a time with pauses around them. A failed lookup
leaves the product as a non-bundle and is reported in warnings.
Version: 1.0.0
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from catalog_sync.clients.erp_client import ErpClient
from catalog_sync.core.config import Settings
from catalog_sync.core.constants.catalog import DEFAULT_CURRENCY, UNCATEGORIZED_NAME, UNNAMED_PRODUCT
from catalog_sync.core.constants.erp import PRICE_TIER_NAMES, UNKNOWN_PRICE_TIER_NAME
from catalog_sync.core.constants.stock import EXCLUDED_WAREHOUSES, SELLABLE_WAREHOUSES
from catalog_sync.core.exceptions import CatalogSyncException
from catalog_sync.schemas.catalog import (
    BundleComponent,
    Category,
    ErpConfig,
    NormalizedProduct,
    RawCatalogRow,
    RawPriceRow,
    SecondaryPrice,
    StockBalance,
)
from catalog_sync.utils.category_mapping import build_category_lookup, resolve_category_id
from catalog_sync.utils.type_converters import is_positive_amount, to_float

logger = logging.getLogger("catalog_processor")

RowModel = TypeVar("RowModel", bound=BaseModel)


def parse_rows(model: Type[RowModel], rows: Iterable[Any]) -> List[RowModel]:
    """Validate raw rows, skipping (and logging) rows that do not fit the model."""
    parsed: List[RowModel] = []
    for row in rows:
        if isinstance(row, model):
            parsed.append(row)
            continue
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning("skipping malformed %s row=%r errors=%d", model.__name__, row, e.error_count())
    return parsed


def price_tier_name(tier_id: Optional[str]) -> str:
    return PRICE_TIER_NAMES.get(tier_id or "", UNKNOWN_PRICE_TIER_NAME)


def _component_rows(detail: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Extract the goods table part; it may arrive as a list or an index-keyed dict."""
    table_parts = detail.get("tableParts") or {}
    components = table_parts.get("tpGoods") if isinstance(table_parts, dict) else None
    if isinstance(components, list):
        return [c for c in components if isinstance(c, dict)]
    if isinstance(components, dict):
        return [c for c in components.values() if isinstance(c, dict)]
    return []


class CatalogProcessor:
    def __init__(
        self,
        erp_client: ErpClient,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._erp = erp_client
        self._bundle_delay = settings.erp_bundle_delay_ms / 1000
        self._component_delay = settings.erp_component_delay_ms / 1000
        self._sleep = sleep
        self.warnings: List[str] = []

    async def process(
        self,
        price_rows: Iterable[Any],
        catalog_rows: Iterable[Any],
        config: ErpConfig,
    ) -> List[NormalizedProduct]:
        self.warnings = []
        prices = parse_rows(RawPriceRow, price_rows)
        goods = parse_rows(RawCatalogRow, catalog_rows)

        unique_rows = self._dedupe_by_id(prices)
        logger.info("unique products to process=%d (from %d price rows)", len(unique_rows), len(prices))

        id_to_sku = {row.id: row.sku for row in unique_rows if row.sku}
        goods_by_id = {good.id: good for good in goods}
        prices_by_id: Dict[str, List[RawPriceRow]] = {}
        for row in prices:
            prices_by_id.setdefault(row.id, []).append(row)

        lookup = build_category_lookup(config.categories_map)
        products: List[NormalizedProduct] = []

        for row in unique_rows:
            if not row.sku:
                logger.warning("price row without sku id=%s, skipping", row.id)
                continue

            components: List[BundleComponent] = []
            if config.bundle_group_id and row.parent == config.bundle_group_id:
                components = await self._resolve_bundle(row, id_to_sku, goods_by_id)
                await self._sleep(self._bundle_delay)

            products.append(
                self._build_product(row, components, prices_by_id.get(row.id, []), goods_by_id, lookup, config)
            )

        unique = self._dedupe_by_sku(products)
        logger.info(
            "processed products=%d bundles=%d warnings=%d",
            len(unique), sum(1 for p in unique if p.is_bundle), len(self.warnings),
        )
        return unique

    async def probe_bundles(
        self,
        price_rows: Iterable[Any],
        catalog_rows: Iterable[Any],
        config: ErpConfig,
    ) -> List[NormalizedProduct]:
        """Process only rows in the bundle group; used by diagnostics."""
        rows = [r for r in parse_rows(RawPriceRow, price_rows) if r.parent == config.bundle_group_id]
        return await self.process(rows, catalog_rows, config)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _dedupe_by_id(rows: List[RawPriceRow]) -> List[RawPriceRow]:
        seen = set()
        unique = []
        for row in rows:
            if row.id in seen:
                continue
            seen.add(row.id)
            unique.append(row)
        return unique

    @staticmethod
    def _dedupe_by_sku(products: List[NormalizedProduct]) -> List[NormalizedProduct]:
        by_sku: Dict[str, NormalizedProduct] = {}
        for product in products:
            by_sku.pop(product.sku, None)
            by_sku[product.sku] = product
        return list(by_sku.values())

    async def _resolve_bundle(
        self,
        row: RawPriceRow,
        id_to_sku: Dict[str, str],
        goods_by_id: Dict[str, RawCatalogRow],
    ) -> List[BundleComponent]:
        try:
            detail = await self._erp.get_object_detail(row.id)
        except CatalogSyncException as e:
            message = f"bundle resolution failed sku={row.sku} id={row.id}: {e}"
            logger.error(message)
            self.warnings.append(message)
            return []

        components = _component_rows(detail)
        if not components:
            logger.info("bundle has no components sku=%s id=%s", row.sku, row.id)
            return []

        def known_sku(component_id: str) -> Optional[str]:
            good = goods_by_id.get(component_id)
            return id_to_sku.get(component_id) or (good.sku if good else None)

        missing = []
        for component in components:
            component_id = str(component.get("good"))
            if not known_sku(component_id) and component_id not in missing:
                missing.append(component_id)

        resolved: Dict[str, str] = {}
        if missing:
            logger.info("resolving sku for %d bundle components of sku=%s", len(missing), row.sku)
        for component_id in missing:
            try:
                info = await self._erp.get_object_detail(component_id)
                header = info.get("header")
                sku = header.get("productNum") if isinstance(header, dict) else None
                if sku:
                    resolved[component_id] = str(sku)
                else:
                    logger.warning("no sku in component detail id=%s", component_id)
            except CatalogSyncException as e:
                logger.warning("component sku lookup failed id=%s error=%s", component_id, e)
            await self._sleep(self._component_delay)

        result = []
        for component in components:
            component_id = str(component.get("good"))
            sku = known_sku(component_id) or resolved.get(component_id)
            if not sku:
                logger.warning("component sku unresolved, using ERP id=%s", component_id)
                sku = component_id
            result.append(BundleComponent(id=sku, quantity=to_float(component.get("qty"), default=0.0) or 0.0))
        return result

    def _build_product(
        self,
        row: RawPriceRow,
        components: List[BundleComponent],
        price_entries: List[RawPriceRow],
        goods_by_id: Dict[str, RawCatalogRow],
        lookup: Dict[str, int],
        config: ErpConfig,
    ) -> NormalizedProduct:
        cost_per_item: Optional[str] = None
        secondary: List[SecondaryPrice] = []
        for entry in price_entries:
            if entry.price_tier_id == config.primary_price_tier_id:
                cost_per_item = entry.price
            elif is_positive_amount(entry.price):
                secondary.append(
                    SecondaryPrice(price_type=price_tier_name(entry.price_tier_id), price_value=entry.price)
                )

        own = goods_by_id.get(row.id)
        name = (own.name if own else None) or row.display_name or row.sku or UNNAMED_PRODUCT

        parent_group = goods_by_id.get(row.parent) if row.parent else None
        category_name = (
            (parent_group.name if parent_group else None)
            or row.parent_name
            or UNCATEGORIZED_NAME
        ).strip() or UNCATEGORIZED_NAME

        return NormalizedProduct(
            erp_id=row.id,
            sku=row.sku,
            name=name,
            cost_per_item=cost_per_item,
            currency=DEFAULT_CURRENCY,
            category=Category(id=resolve_category_id(category_name, lookup), name=category_name),
            set=components,
            additional_prices=secondary,
            parent=row.parent,
        )

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def process_stock_balance(self, rows: Iterable[Dict[str, Any]]) -> List[StockBalance]:
        """Aggregate per-warehouse balance rows into one StockBalance per SKU.

        Only sellable warehouses count; internal and production
        warehouses are excluded from both the map and the total.
        """
        balances: Dict[str, StockBalance] = {}
        for row in rows:
            sku = str(row.get("sku") or "").strip()
            if not sku:
                continue
            balance = balances.get(sku)
            if balance is None:
                balance = StockBalance(
                    sku=sku,
                    name=row.get("id__pr") or row.get("name"),
                    quantities={label: 0.0 for label in SELLABLE_WAREHOUSES.values()},
                )
                balances[sku] = balance

            storage = str(row.get("storage") or "")
            if storage in EXCLUDED_WAREHOUSES:
                continue
            label = SELLABLE_WAREHOUSES.get(storage)
            if label is None:
                logger.debug("ignoring balance for unknown warehouse=%s sku=%s", storage, sku)
                continue
            balance.quantities[label] += to_float(row.get("qty"), default=0.0) or 0.0

        for balance in balances.values():
            balance.total = sum(balance.quantities.values())
        return list(balances.values())
