"""External API integrations.

This package contains:
- Price provider protocol: Common interface for current-price sources
- Stooq client: Equity/ETF closes via keyless CSV quotes
- CoinGecko client: Crypto prices via the simple/price endpoint
- Typed provider exceptions
"""

from integrations.market_data_protocol import AssetClass, PriceProvider, PriceTable

__all__ = [
    "AssetClass",
    "PriceProvider",
    "PriceTable",
]
