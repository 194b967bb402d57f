"""Price provider protocol definitions.

Defines the interface every current-price source implements, along with
the PriceTable alias shared by the aggregator and valuation code.
"""

from decimal import Decimal
from enum import Enum
from typing import Protocol

# Normalized symbol -> positive price in the quote currency.
# A missing key means "price unknown", never "price zero".
PriceTable = dict[str, Decimal]


class AssetClass(str, Enum):
    """Routing category for a symbol."""

    EQUITY = "equity"
    CRYPTO = "crypto"
    UNRECOGNIZED = "unrecognized"


class PriceProvider(Protocol):
    """Protocol for current-price providers.

    Implementations make at most one network call per ``fetch_prices``.
    """

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'stooq')."""
        ...

    @property
    def asset_class(self) -> AssetClass:
        """Return the asset class this provider serves."""
        ...

    def fetch_prices(self, symbols: set[str]) -> PriceTable:
        """Fetch current prices for a batch of normalized symbols.

        Args:
            symbols: Normalized symbols of this provider's asset class.

        Returns:
            PriceTable containing only the symbols the provider priced.
            An empty request returns an empty table without a network call.

        Raises:
            ProviderError: The network call failed or the body was unparseable.
        """
        ...
