"""
Catalog constants — currency, categories, creation defaults.

Catalog normalization constants.
Version: 1.0.0
"""

DEFAULT_CURRENCY: str = "UAH"

UNCATEGORIZED_ID: int = 0
UNCATEGORIZED_NAME: str = "Без категории"
UNNAMED_PRODUCT: str = "Без названия"

DEFAULT_CATEGORIES_MAP: dict[str, int] = {
    "Перші страви": 1,
    "Другі страви": 2,
    "Набори продукції": 3,
}

# Ordered substring rules applied when a category name is not in the map.
# First matching rule wins.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("перш",), 1),
    (("друг",), 2),
    (("набор", "набори", "комплект"), 3),
    (("салат",), 4),
    (("напій", "напої"), 5),
    (("овоч",), 6),
)

# category_id -> (weight in grams, manual sort order), applied on creation only
CREATION_DEFAULTS: dict[int, tuple[int | None, int]] = {
    1: (400, 1000),
    2: (300, 2000),
    3: (None, 3000),
}

DEFAULT_CLEANUP_DAYS_OLD: int = 30
