"""CoinGecko price provider for cryptocurrency prices."""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Optional

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.market_data_protocol import AssetClass, PriceTable
from integrations.parsing_utils import parse_price

logger = logging.getLogger(__name__)

# Fixed mapping from ticker to CoinGecko coin ID. A symbol is treated as
# crypto if and only if it is a key here.
KNOWN_COIN_IDS: Mapping[str, str] = MappingProxyType({
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "SUI": "sui",
    "DOGE": "dogecoin",
    "ADA": "cardano",
    "XRP": "ripple",
    "DOT": "polkadot",
    "AVAX": "avalanche-2",
    "MATIC": "matic-network",
    "POL": "matic-network",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "ATOM": "cosmos",
    "LTC": "litecoin",
    "BCH": "bitcoin-cash",
    "NEAR": "near",
    "APT": "aptos",
    "ARB": "arbitrum",
    "OP": "optimism",
    "FIL": "filecoin",
    "AAVE": "aave",
    "MKR": "maker",
    "SHIB": "shiba-inu",
    "XLM": "stellar",
    "ALGO": "algorand",
    "FTM": "fantom",
    "PEPE": "pepe",
    "RENDER": "render-token",
    "INJ": "injective-protocol",
    "SEI": "sei-network",
})


class CoinGeckoClient:
    """Price provider using the CoinGecko ``/simple/price`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        vs_currency: Optional[str] = None,
        coin_ids: Optional[Mapping[str, str]] = None,
    ):
        """Initialize with optional API key and overrides.

        Args:
            api_key: CoinGecko demo API key. If provided, uses the
                     x-cg-demo-api-key header for higher rate limits.
                     If None, uses the keyless public API.
            base_url: API root. Defaults to settings.COINGECKO_BASE_URL.
            timeout: Per-request timeout in seconds.
            vs_currency: Quote currency code (e.g. "usd").
            coin_ids: Ticker -> coin ID table. Defaults to KNOWN_COIN_IDS.
        """
        headers: dict[str, str] = {}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self._client = httpx.Client(
            base_url=base_url or settings.COINGECKO_BASE_URL,
            headers=headers,
            timeout=timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS,
        )
        self._vs_currency = (vs_currency or settings.QUOTE_CURRENCY).lower()
        self._coin_ids: Mapping[str, str] = MappingProxyType(
            dict(coin_ids if coin_ids is not None else KNOWN_COIN_IDS)
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "coingecko"

    @property
    def asset_class(self) -> AssetClass:
        return AssetClass.CRYPTO

    @property
    def coin_ids(self) -> Mapping[str, str]:
        """Read-only ticker -> coin ID table used by this client."""
        return self._coin_ids

    def _get(self, path: str, params: dict[str, str]) -> httpx.Response:
        """Issue one GET, translating httpx failures into provider errors."""
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderAPIError(
                f"CoinGecko API error (HTTP {status})",
                provider_name=self.provider_name,
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderConnectionError(
                f"CoinGecko connection failed: {exc}",
                provider_name=self.provider_name,
            ) from exc

    def fetch_prices(self, symbols: set[str]) -> PriceTable:
        """Fetch current crypto prices from CoinGecko in one request.

        Args:
            symbols: Normalized crypto tickers (e.g., {"BTC", "ETH"}).

        Returns:
            PriceTable of the tickers CoinGecko priced. Tickers with no
            known coin ID, absent from the response, or with a null or
            non-numeric price are omitted.

        Raises:
            ProviderAPIError: Non-success HTTP status.
            ProviderConnectionError: Transport failure or timeout.
            ProviderDataError: Body is not a JSON object.
        """
        if not symbols:
            return {}

        # Several tickers may share one coin ID (MATIC / POL)
        tickers_by_id: dict[str, list[str]] = {}
        for symbol in sorted(symbols):
            coin_id = self._coin_ids.get(symbol)
            if coin_id is None:
                logger.debug("CoinGecko: no coin ID for %s, skipping", symbol)
                continue
            tickers_by_id.setdefault(coin_id, []).append(symbol)

        if not tickers_by_id:
            return {}

        logger.info(
            "CoinGecko: fetching prices for %d symbols (%d coin IDs)",
            len(symbols), len(tickers_by_id),
        )

        response = self._get(
            "/simple/price",
            params={
                "ids": ",".join(tickers_by_id),
                "vs_currencies": self._vs_currency,
            },
        )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                "CoinGecko returned a non-JSON body",
                provider_name=self.provider_name,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderDataError(
                f"CoinGecko returned {type(data).__name__}, expected an object",
                provider_name=self.provider_name,
            )

        result: PriceTable = {}
        for coin_id, tickers in tickers_by_id.items():
            quote = data.get(coin_id)
            price = parse_price(quote.get(self._vs_currency)) if isinstance(quote, dict) else None
            if price is None:
                logger.debug("CoinGecko: no %s price for %s", self._vs_currency, coin_id)
                continue
            for ticker in tickers:
                result[ticker] = price

        return result
