"""
Type converters — shared value conversion utilities.
Version: 1.0.0
"""
from typing import Any, Optional


def to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Convert value to float, returning default if invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Convert value to int, returning default if invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def is_positive_amount(value: Any) -> bool:
    """True for prices that represent a real value; zero means 'not set'."""
    amount = to_float(value)
    return amount is not None and amount > 0


def to_bool(value: Any, default: bool = False) -> bool:
    """Parse settings-table booleans stored as text."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return default
