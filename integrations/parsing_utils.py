"""Shared parsing utilities for price provider clients.

Centralises the lenient number parsing that every provider needs: CSV
cells, JSON numbers, and the placeholders providers use for "no data".
"""

from decimal import Decimal, InvalidOperation

# Placeholders providers emit instead of a number
_NO_DATA_MARKERS = {"", "N/D", "N/A", "NAN", "NULL", "NONE", "-"}


def parse_price(value) -> Decimal | None:
    """Parse a provider price value into a positive Decimal.

    Handles the formats produced by each provider:
    - CSV cells (Stooq: "189.84", "N/D")
    - JSON numbers (CoinGecko: 67012.5, 1)
    - JSON strings holding numbers ("0.0821")

    Args:
        value: A string, int, float, Decimal, or None.

    Returns:
        A finite, strictly positive Decimal, or None if the value is
        missing, non-numeric, non-finite, zero or negative.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.upper() in _NO_DATA_MARKERS:
            return None
    elif isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        return None

    try:
        price = Decimal(text)
    except (InvalidOperation, ValueError):
        return None

    if not price.is_finite() or price <= 0:
        return None
    return price
