"""
Pytest configuration and shared fixtures for catalog sync tests.

Provides test settings, an in-memory product store, fake settings and
whitelist stores, a scripted ERP served through httpx.MockTransport,
and sample ERP rows.
Version: 1.0.0
"""
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from catalog_sync.core.config import Settings
from catalog_sync.core.constants.erp import DEFAULT_BUNDLE_GROUP_ID, DEFAULT_PRIMARY_PRICE_TIER_ID
from catalog_sync.schemas.catalog import WhitelistSnapshot

ERP_URL = "https://erp.test/api/"
ERP_KEY = "test-erp-key-123456"
SECONDARY_TIER_ID = "1101300000001003"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def test_settings():
    """Settings with no pacing delays and no real credentials."""
    return Settings(
        erp_api_url=ERP_URL,
        erp_api_key=ERP_KEY,
        erp_chunk_delay_ms=0,
        erp_bundle_delay_ms=0,
        erp_component_delay_ms=0,
        erp_rate_limit_retries=3,
        erp_rate_limit_backoff_seconds=1.0,
        erp_rate_limit_backoff_max_seconds=8.0,
        supabase_url="https://test.supabase.co",
        supabase_service_role_key="test-supabase-key",
        storefront_database_url="sqlite://",
        catalog_sync_enabled=True,
    )


# ---------------------------------------------------------------------------
# Fake stores
# ---------------------------------------------------------------------------

class FakeProductStore:
    """In-memory stand-in for ProductStore keyed by SKU."""

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.writes: List[tuple] = []
        self._next_id = 1

    async def get_product_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(sku)
        return dict(row) if row else None

    async def create_product(self, row: Dict[str, Any]) -> None:
        self.writes.append(("create", row["sku"]))
        self.rows[row["sku"]] = {"id": self._next_id, **row}
        self._next_id += 1

    async def update_product(self, sku: str, payload: Dict[str, Any]) -> None:
        self.writes.append(("update", sku))
        self.rows[sku].update(payload)

    async def list_products(self, columns: str = "*") -> List[Dict[str, Any]]:
        return [dict(row) for row in self.rows.values()]

    async def list_current_skus(self) -> List[str]:
        return [sku for sku, row in self.rows.items() if not row.get("is_outdated")]

    async def set_outdated(self, sku: str, is_outdated: bool) -> None:
        self.writes.append(("outdated", sku, is_outdated))
        self.rows[sku]["is_outdated"] = is_outdated

    async def update_stock_balance(self, sku: str, balances: Dict[str, float]) -> None:
        self.writes.append(("stock", sku))
        self.rows[sku]["stock_balance_by_stock"] = json.dumps(balances)

    async def delete_outdated_synced_before(self, cutoff: datetime) -> int:
        doomed = [
            sku for sku, row in self.rows.items()
            if row.get("is_outdated")
            and datetime.fromisoformat(row["last_sync_at"]) < cutoff
        ]
        for sku in doomed:
            del self.rows[sku]
        return len(doomed)


class FakeSettingsStore:
    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.values = values if values is not None else {}
        self.reads = 0

    async def get_values(self, prefix: str = "") -> Dict[str, str]:
        self.reads += 1
        return {k: v for k, v in self.values.items() if k.startswith(prefix)}


class FakeWhitelistStore:
    def __init__(self, snapshot: Optional[WhitelistSnapshot] = None) -> None:
        self.snapshot = snapshot
        self.saved: List[List[str]] = []

    async def get_snapshot(self) -> Optional[WhitelistSnapshot]:
        return self.snapshot

    async def save_snapshot(self, skus: List[str]) -> WhitelistSnapshot:
        self.saved.append(list(skus))
        self.snapshot = WhitelistSnapshot(
            skus=list(skus), total_count=len(skus), last_updated=datetime.now(timezone.utc)
        )
        return self.snapshot

    async def clear(self) -> None:
        self.snapshot = None


@pytest.fixture
def product_store():
    return FakeProductStore()


@pytest.fixture
def settings_store():
    return FakeSettingsStore({"erp_api_url": ERP_URL, "erp_api_key": ERP_KEY})


@pytest.fixture
def whitelist_store():
    return FakeWhitelistStore()


@pytest.fixture
def mock_supabase_client():
    """Mocked SupabaseClient with a chainable table builder."""
    client = MagicMock()
    mock_table = MagicMock()
    for method in ("select", "insert", "upsert", "update", "delete", "eq", "lt", "order", "range"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])
    client.client.table.return_value = mock_table
    return client, mock_table


# ---------------------------------------------------------------------------
# Scripted ERP
# ---------------------------------------------------------------------------

class FakeErp:
    """Serves ERP protocol requests from in-memory rows.

    prices / goods / balances are filtered by the "IL" sku filter;
    objects maps ERP id -> getObject response.
    """

    def __init__(self) -> None:
        self.prices: List[Dict[str, Any]] = []
        self.goods: List[Dict[str, Any]] = []
        self.balances: List[Dict[str, Any]] = []
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Dict[str, Any]] = []

    def object_requests(self) -> List[str]:
        return [r["params"]["id"] for r in self.requests if r["action"] == "getObject"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        params = payload["params"]

        if payload["action"] == "getObject":
            found = self.objects.get(params["id"])
            if found is None:
                return httpx.Response(200, json={"error": f"object {params['id']} not found"})
            return httpx.Response(200, json=found)

        source = params["from"]
        if isinstance(source, dict):
            rows = self.prices if source.get("register") == "goodsPrices" else self.balances
        elif source == "catalogs.goods":
            rows = self.goods
        else:
            rows = []

        filters = params.get("filters") or []
        if filters:
            wanted = set(filters[0]["value"])
            rows = [r for r in rows if r.get("sku") in wanted]
        if params.get("limit"):
            rows = rows[:params["limit"]]
        return httpx.Response(200, json=rows)


@pytest.fixture
def fake_erp():
    return FakeErp()


@pytest.fixture
def no_sleep():
    return AsyncMock()


@pytest.fixture
def erp_client(fake_erp, settings_store, test_settings, no_sleep):
    """ErpClient talking to FakeErp through httpx.MockTransport."""
    from catalog_sync.clients.erp_client import ErpClient
    from catalog_sync.services.config_loader import ConfigLoader

    loader = ConfigLoader(settings_store, test_settings)
    return ErpClient(loader, test_settings, transport=httpx.MockTransport(fake_erp.handler), sleep=no_sleep)


# ---------------------------------------------------------------------------
# Sample rows
# ---------------------------------------------------------------------------

def price_row(erp_id, sku, price, tier=DEFAULT_PRIMARY_PRICE_TIER_ID, parent="1100300000000100",
              parent_name="Перші страви"):
    row = {"id": erp_id, "sku": sku, "parent": parent, "priceType": tier, "price": price}
    if parent_name:
        row["parent__pr"] = parent_name
    return row


def catalog_row(erp_id, sku, name, parent="1100300000000100"):
    return {"id": erp_id, "sku": sku, "parent": parent, "name": name}


@pytest.fixture
def soup_group_row():
    """Parent group row: category display name lives on the group."""
    return catalog_row("1100300000000100", None, "Перші страви", parent=None)


@pytest.fixture
def bundle_group_id():
    return DEFAULT_BUNDLE_GROUP_ID


@pytest.fixture
def make_price_row():
    return price_row


@pytest.fixture
def make_catalog_row():
    return catalog_row
