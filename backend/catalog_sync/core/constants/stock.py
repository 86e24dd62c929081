"""
Stock constants — warehouse identifiers and balance labels.

Warehouse constants for stock balance aggregation.
Version: 1.0.0
"""

MAIN_WAREHOUSE_ID: str = "1100700000001005"
KYIV_WAREHOUSE_ID: str = "1100700000001017"
INTERNAL_WAREHOUSE_ID: str = "1100700000000001"
PRODUCTION_WAREHOUSE_ID: str = "1100700000001018"

# Sellable warehouses and the key each one is stored under
SELLABLE_WAREHOUSES: dict[str, str] = {
    MAIN_WAREHOUSE_ID: "1",
    KYIV_WAREHOUSE_ID: "2",
}

EXCLUDED_WAREHOUSES: frozenset[str] = frozenset({
    INTERNAL_WAREHOUSE_ID,
    PRODUCTION_WAREHOUSE_ID,
})
