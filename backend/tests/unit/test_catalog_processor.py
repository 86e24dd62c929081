"""
Unit tests for CatalogProcessor — raw ERP rows to normalized products.

Tests cover:
- Price tier split: primary price, positive secondary tiers, tier names
- De-duplication by ERP id (first wins) and by SKU (last wins)
- Name and category resolution through the parent group
- Bundle resolution, including the per-component SKU lookup
- Bundle failures degrade to non-bundle products with a warning
- Stock balance aggregation excludes internal/production warehouses

Version: 1.0.0
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, call

from catalog_sync.core.constants.catalog import UNCATEGORIZED_ID, UNCATEGORIZED_NAME
from catalog_sync.core.constants.stock import (
    INTERNAL_WAREHOUSE_ID,
    KYIV_WAREHOUSE_ID,
    MAIN_WAREHOUSE_ID,
    PRODUCTION_WAREHOUSE_ID,
)
from catalog_sync.core.exceptions import NetworkError, RemoteNotFoundError
from catalog_sync.schemas.catalog import ErpConfig
from catalog_sync.services.catalog_processor import CatalogProcessor, price_tier_name


SECONDARY_TIER = "1101300000001003"
ZERO_TIER = "1101300000001004"


@pytest.fixture
def erp():
    client = MagicMock()
    client.get_object_detail = AsyncMock(return_value={})
    return client


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def processor(erp, test_settings, sleep):
    return CatalogProcessor(erp, test_settings, sleep=sleep)


@pytest.fixture
def config():
    return ErpConfig(api_url="https://erp.test/api/", api_key="k")


@pytest.mark.unit
class TestPrices:

    @pytest.mark.asyncio
    async def test_primary_and_secondary(self, processor, config, make_price_row):
        rows = [
            make_price_row("1", "A100", "120.00"),
            make_price_row("1", "A100", "150.00", tier=SECONDARY_TIER),
            make_price_row("1", "A100", "0", tier=ZERO_TIER),
        ]

        products = await processor.process(rows, [], config)

        assert len(products) == 1
        product = products[0]
        assert product.cost_per_item == "120.00"
        assert [p.model_dump() for p in product.additional_prices] == [
            {"price_type": "Дрібний опт", "price_value": "150.00"}
        ]
        assert product.currency == "UAH"

    @pytest.mark.asyncio
    async def test_no_primary_tier(self, processor, config, make_price_row):
        products = await processor.process(
            [make_price_row("1", "A100", "90.00", tier=SECONDARY_TIER)], [], config
        )
        assert products[0].cost_per_item is None
        assert len(products[0].additional_prices) == 1

    def test_tier_names(self):
        assert price_tier_name("1101300000001001") == "Роздріб (Інтернет-магазин)"
        assert price_tier_name("nope") == "Невідомо"
        assert price_tier_name(None) == "Невідомо"


@pytest.mark.unit
class TestIdentity:

    @pytest.mark.asyncio
    async def test_duplicate_ids_processed_once(self, processor, config, make_price_row):
        rows = [make_price_row("1", "A100", "120.00")] * 3
        assert len(await processor.process(rows, [], config)) == 1

    @pytest.mark.asyncio
    async def test_same_sku_last_wins(self, processor, config, make_price_row):
        rows = [make_price_row("1", "A100", "120.00"), make_price_row("2", "A100", "130.00")]

        products = await processor.process(rows, [], config)

        assert len(products) == 1
        assert products[0].erp_id == "2"
        assert products[0].cost_per_item == "130.00"

    @pytest.mark.asyncio
    async def test_rows_without_sku_or_id_skipped(self, processor, config, make_price_row):
        rows = [
            make_price_row("1", None, "10.00"),
            {"sku": "NOID", "price": "5"},
            make_price_row("2", "A200", "80.50"),
        ]
        products = await processor.process(rows, [], config)
        assert [p.sku for p in products] == ["A200"]


@pytest.mark.unit
class TestNamesAndCategories:

    @pytest.mark.asyncio
    async def test_name_from_catalog_row(self, processor, config, make_price_row, make_catalog_row):
        products = await processor.process(
            [make_price_row("1", "A100", "120.00")],
            [make_catalog_row("1", "A100", "Борщ український")],
            config,
        )
        assert products[0].name == "Борщ український"

    @pytest.mark.asyncio
    async def test_name_falls_back_to_sku(self, processor, config, make_price_row):
        products = await processor.process([make_price_row("1", "A100", "120.00")], [], config)
        assert products[0].name == "A100"

    @pytest.mark.asyncio
    async def test_category_from_row_parent_name(self, processor, config, make_price_row):
        products = await processor.process([make_price_row("1", "A100", "120.00")], [], config)
        assert products[0].category.id == 1
        assert products[0].category.name == "Перші страви"

    @pytest.mark.asyncio
    async def test_parent_group_row_preferred(self, processor, config, make_price_row, make_catalog_row):
        group = make_catalog_row("1100300000000200", None, "Другі страви", parent=None)
        row = make_price_row("1", "A100", "120.00", parent="1100300000000200", parent_name="Інше")

        products = await processor.process([row], [group], config)

        assert products[0].category.name == "Другі страви"
        assert products[0].category.id == 2

    @pytest.mark.asyncio
    async def test_configured_map_used(self, processor, make_price_row):
        config = ErpConfig(categories_map={"Десерти": 9})
        row = make_price_row("1", "A100", "50.00", parent_name=" десерти ")
        products = await processor.process([row], [], config)
        assert products[0].category.id == 9

    @pytest.mark.asyncio
    async def test_uncategorized(self, processor, config, make_price_row):
        products = await processor.process(
            [make_price_row("1", "A100", "120.00", parent_name=None)], [], config
        )
        assert products[0].category.id == UNCATEGORIZED_ID
        assert products[0].category.name == UNCATEGORIZED_NAME


@pytest.mark.unit
class TestBundles:

    @pytest.mark.asyncio
    async def test_components_resolved(self, processor, erp, config, sleep, make_price_row, make_catalog_row):
        objects = {
            "B1": {"header": {"id": "B1"}, "tableParts": {"tpGoods": [
                {"good": "X1ID", "qty": "2"},
                {"good": "X2ID", "qty": "1"},
            ]}},
            "X2ID": {"header": {"id": "X2ID", "productNum": "X2"}},
        }
        erp.get_object_detail.side_effect = lambda object_id: objects[object_id]

        rows = [make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id, parent_name="Набори продукції")]
        goods = [make_catalog_row("X1ID", "X1", "Борщ")]

        products = await processor.process(rows, goods, config)

        assert [c.model_dump() for c in products[0].set] == [
            {"id": "X1", "quantity": 2.0},
            {"id": "X2", "quantity": 1.0},
        ]
        assert products[0].is_bundle
        assert erp.get_object_detail.await_args_list == [call("B1"), call("X2ID")]
        assert sleep.await_count == 2  # one component lookup, one bundle pause

    @pytest.mark.asyncio
    async def test_component_known_from_price_rows(self, processor, erp, config, make_price_row):
        erp.get_object_detail.return_value = {"tableParts": {"tpGoods": {"0": {"good": "1", "qty": "3"}}}}
        rows = [
            make_price_row("1", "A100", "120.00"),
            make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id),
        ]

        products = await processor.process(rows, [], config)

        bundle = next(p for p in products if p.sku == "B300")
        assert [c.model_dump() for c in bundle.set] == [{"id": "A100", "quantity": 3.0}]
        erp.get_object_detail.assert_awaited_once_with("B1")

    @pytest.mark.asyncio
    async def test_unresolved_component_uses_erp_id(self, processor, erp, config, make_price_row):
        async def detail(object_id):
            if object_id == "B1":
                return {"tableParts": {"tpGoods": [{"good": "X9ID", "qty": "1"}]}}
            raise RemoteNotFoundError("ERP", "not found", 404)

        erp.get_object_detail.side_effect = detail
        rows = [make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id)]

        products = await processor.process(rows, [], config)

        assert [c.model_dump() for c in products[0].set] == [{"id": "X9ID", "quantity": 1.0}]

    @pytest.mark.asyncio
    async def test_component_header_not_object_uses_erp_id(self, processor, erp, config, make_price_row):
        async def detail(object_id):
            if object_id == "B1":
                return {"tableParts": {"tpGoods": [{"good": "X9ID", "qty": "2"}]}}
            return {"header": ["unexpected"]}

        erp.get_object_detail.side_effect = detail
        rows = [make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id)]

        products = await processor.process(rows, [], config)

        assert [c.model_dump() for c in products[0].set] == [{"id": "X9ID", "quantity": 2.0}]

    @pytest.mark.asyncio
    async def test_bundle_failure_is_per_item(self, processor, erp, config, make_price_row):
        erp.get_object_detail.side_effect = NetworkError("ERP", "timeout")
        rows = [
            make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id),
            make_price_row("2", "A200", "80.50"),
        ]

        products = await processor.process(rows, [], config)

        assert {p.sku for p in products} == {"B300", "A200"}
        assert next(p for p in products if p.sku == "B300").set == []
        assert len(processor.warnings) == 1
        assert "B300" in processor.warnings[0]

    @pytest.mark.asyncio
    async def test_non_bundle_makes_no_detail_call(self, processor, erp, config, make_price_row):
        await processor.process([make_price_row("1", "A100", "120.00")], [], config)
        erp.get_object_detail.assert_not_called()

    @pytest.mark.asyncio
    async def test_probe_only_bundles(self, processor, erp, config, make_price_row):
        erp.get_object_detail.return_value = {"tableParts": {"tpGoods": []}}
        rows = [
            make_price_row("1", "A100", "120.00"),
            make_price_row("B1", "B300", "300.00", parent=config.bundle_group_id),
        ]
        products = await processor.probe_bundles(rows, [], config)
        assert [p.sku for p in products] == ["B300"]


@pytest.mark.unit
class TestStockBalance:

    def test_excluded_warehouses_not_counted(self, processor):
        rows = [
            {"sku": "A100", "storage": MAIN_WAREHOUSE_ID, "qty": "5"},
            {"sku": "A100", "storage": KYIV_WAREHOUSE_ID, "qty": 3},
            {"sku": "A100", "storage": INTERNAL_WAREHOUSE_ID, "qty": "100"},
            {"sku": "A100", "storage": PRODUCTION_WAREHOUSE_ID, "qty": "7"},
            {"sku": "A100", "storage": "1100700000009999", "qty": "9"},
        ]

        balances = processor.process_stock_balance(rows)

        assert len(balances) == 1
        assert balances[0].quantities == {"1": 5.0, "2": 3.0}
        assert balances[0].total == 8.0

    def test_only_excluded_rows_yield_zero(self, processor):
        balances = processor.process_stock_balance([
            {"sku": "A200", "storage": INTERNAL_WAREHOUSE_ID, "qty": "4"},
        ])
        assert balances[0].quantities == {"1": 0.0, "2": 0.0}
        assert balances[0].total == 0.0

    def test_rows_without_sku_ignored(self, processor):
        assert processor.process_stock_balance([{"sku": "", "storage": MAIN_WAREHOUSE_ID, "qty": "1"}]) == []
