"""
Unit tests for StorefrontClient — published SKU query against SQLite.

Tests cover:
- Only published products with a non-empty SKU are returned
- SKUs trimmed and de-duplicated, blanks skipped
- Optional in-stock filter
- Missing stock meta defaults to available
- Query failures raise StorefrontUnavailableError
- Invalid table prefix / missing URL raise ConfigurationError

Version: 1.0.0
"""
import pytest
from sqlalchemy import create_engine, text

from catalog_sync.clients.storefront_client import StorefrontClient
from catalog_sync.core.exceptions import ConfigurationError, StorefrontUnavailableError


POSTS = [
    # ID, post_type, post_status
    (1, "product", "publish"),
    (2, "product", "publish"),
    (3, "product", "draft"),
    (4, "page", "publish"),
    (5, "product", "publish"),
    (6, "product", "publish"),
    (7, "product", "publish"),
]

META = [
    # post_id, meta_key, meta_value
    (1, "_sku", "A100"),
    (1, "_stock", "5"),
    (2, "_sku", " A200 "),
    (2, "_stock", "0"),
    (3, "_sku", "DRAFT1"),
    (4, "_sku", "PAGE1"),
    (5, "_sku", "   "),
    (6, "_sku", "B300"),
    (7, "_sku", "A100"),
    (7, "_stock", "2"),
]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE wp_posts (ID INTEGER PRIMARY KEY, post_type TEXT, post_status TEXT)"))
        conn.execute(text(
            "CREATE TABLE wp_postmeta (meta_id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "post_id INTEGER, meta_key TEXT, meta_value TEXT)"
        ))
        for post_id, post_type, status in POSTS:
            conn.execute(
                text("INSERT INTO wp_posts (ID, post_type, post_status) VALUES (:id, :t, :s)"),
                {"id": post_id, "t": post_type, "s": status},
            )
        for post_id, key, value in META:
            conn.execute(
                text("INSERT INTO wp_postmeta (post_id, meta_key, meta_value) VALUES (:p, :k, :v)"),
                {"p": post_id, "k": key, "v": value},
            )
    yield engine
    engine.dispose()


@pytest.mark.unit
class TestFetchAvailableSkus:

    def test_published_products_only(self, engine, test_settings):
        skus = StorefrontClient(test_settings, engine=engine).fetch_available_skus()
        assert sorted(skus) == ["A100", "A200", "B300"]

    def test_duplicates_collapsed(self, engine, test_settings):
        skus = StorefrontClient(test_settings, engine=engine).fetch_available_skus()
        assert skus.count("A100") == 1

    def test_require_stock_filters_zero(self, engine, test_settings):
        strict = test_settings.model_copy(update={"storefront_require_stock": True})
        skus = StorefrontClient(strict, engine=engine).fetch_available_skus()
        assert "A200" not in skus
        assert "B300" in skus  # no _stock meta counts as available

    def test_rows_carry_stock_quantity(self, engine, test_settings):
        rows = StorefrontClient(test_settings, engine=engine).fetch_published_products()
        by_sku = {}
        for row in rows:
            by_sku.setdefault(row["sku"], []).append(row["stock_quantity"])
        assert by_sku["B300"] == [1.0]
        assert 0.0 in by_sku[" A200 "]


@pytest.mark.unit
class TestFailures:

    def test_missing_table_raises_unavailable(self, tmp_path, test_settings):
        empty = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        with pytest.raises(StorefrontUnavailableError):
            StorefrontClient(test_settings, engine=empty).fetch_available_skus()

    def test_invalid_prefix(self, test_settings):
        bad = test_settings.model_copy(update={"storefront_table_prefix": "wp_; DROP TABLE x"})
        with pytest.raises(ConfigurationError):
            StorefrontClient(bad)

    def test_missing_url(self, test_settings):
        unset = test_settings.model_copy(update={"storefront_database_url": None})
        with pytest.raises(ConfigurationError):
            StorefrontClient(unset).fetch_available_skus()
