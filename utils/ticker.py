"""Utility functions for handling ticker symbols."""

import re

# Plain tickers: letters and digits only, after normalization
TICKER_PATTERN = re.compile(r"^[A-Z0-9]+$")


def normalize_symbol(raw: str | None) -> str:
    """Trim and uppercase a raw ticker.

    Returns an empty string for ``None`` or whitespace-only input so
    callers can drop it with a simple truthiness check.
    """
    if raw is None:
        return ""
    return str(raw).strip().upper()


def is_plain_ticker(symbol: str) -> bool:
    """Check if an already-normalized symbol is alphanumeric (e.g. ``AAPL``, ``BRK2``).

    Dotted or dashed forms (``BRK.B``, ``BTC-USD``) are not plain tickers.
    """
    return bool(TICKER_PATTERN.match(symbol))


def strip_market_suffix(provider_symbol: str, separator: str = ".") -> str:
    """Reduce a provider-decorated symbol to the bare ticker.

    ``"AAPL.US"`` -> ``"AAPL"``, ``"msft.us"`` -> ``"MSFT"``.
    """
    return normalize_symbol(provider_symbol.split(separator, 1)[0])
