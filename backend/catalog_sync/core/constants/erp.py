"""
ERP constants — protocol version, batch limits, default identifiers.

ERP wire protocol constants.
Version: 1.0.0
"""

ERP_SERVICE_NAME: str = "ERP"

API_VERSION: str = "0.25"

ACTION_REQUEST: str = "request"
ACTION_GET_OBJECT: str = "getObject"

OPERATOR_EQUALS: str = "="
OPERATOR_IN_LIST: str = "IL"

# Max ids per "IL" filter before a request is split into chunks
MAX_IDS_PER_REQUEST: int = 25

# Timezone used for slice/balance register dates
ERP_TIMEZONE: str = "Europe/Kyiv"

# Remote error text returned when another request from the same key is in flight
CONCURRENT_ACCESS_SIGNATURE: str = "multithreadApiSession multithread api request blocked"

DEFAULT_BUNDLE_GROUP_ID: str = "1100300000001315"
DEFAULT_PRIMARY_PRICE_TIER_ID: str = "1101300000001001"

DOCUMENT_SEARCH_LIMIT: int = 10

PRICE_TIER_NAMES: dict[str, str] = {
    "1101300000001001": "Роздріб (Інтернет-магазин)",
    "1101300000001002": "Дрібний опт (Славутич)",
    "1101300000001003": "Дрібний опт",
    "1101300000001004": "Опт (мережі магазинів)",
    "1101300000001005": "Роздріб (Розетка)",
    "1101300000001006": "Акційна",
    "1101300000001007": "Звичайна",
    "1101300000001008": "Вако трейд",
    "1101300000001012": "Військові",
    "1101300000001013": "Роздріб(Пром)",
}

UNKNOWN_PRICE_TIER_NAME: str = "Невідомо"
