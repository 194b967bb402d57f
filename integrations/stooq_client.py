"""Stooq price provider for equities and ETFs."""

import csv
import io
import logging
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
from utils.ticker import strip_market_suffix

logger = logging.getLogger(__name__)

# Symbol, date, time, open, high, low, close, volume
_FIELDS = "sd2t2ohlcv"


class StooqClient:
    """Price provider using Stooq's keyless CSV quote endpoint.

    One request covers the whole batch. Each row carries a market-decorated
    symbol (``AAPL.US``) and its latest close.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        market_suffix: Optional[str] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url or settings.STOOQ_BASE_URL,
            timeout=timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS,
        )
        self._market_suffix = (market_suffix or settings.STOOQ_MARKET_SUFFIX).lower()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "stooq"

    @property
    def asset_class(self) -> AssetClass:
        return AssetClass.EQUITY

    def _query_symbol(self, symbol: str) -> str:
        """``AAPL`` -> ``aapl.us``"""
        return f"{symbol.lower()}.{self._market_suffix}"

    def _get_csv(self, params: dict[str, str]) -> str:
        """Issue the quote request, translating httpx failures into provider errors."""
        try:
            response = self._client.get("/q/l/", params=params)
            response.raise_for_status()
            return response.text
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderAPIError(
                f"Stooq API error (HTTP {status})",
                provider_name=self.provider_name,
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderConnectionError(
                f"Stooq connection failed: {exc}",
                provider_name=self.provider_name,
            ) from exc

    def _parse_csv(self, text: str, requested: set[str]) -> PriceTable:
        """Parse the CSV quote payload leniently.

        Columns are resolved by header name, case-insensitively, ignoring
        a leading byte-order mark. Rows without a positive close are skipped
        rather than failing the batch.
        """
        rows = list(csv.reader(io.StringIO(text.strip())))
        if not rows or not rows[0]:
            raise ProviderDataError(
                "Stooq returned an empty body", provider_name=self.provider_name
            )

        header = [col.strip().lstrip("\ufeff").lower() for col in rows[0]]
        try:
            symbol_idx = header.index("symbol")
            close_idx = header.index("close")
        except ValueError as exc:
            raise ProviderDataError(
                f"Stooq CSV is missing symbol/close columns: {rows[0]!r}",
                provider_name=self.provider_name,
            ) from exc

        result: PriceTable = {}
        for row in rows[1:]:
            if len(row) <= max(symbol_idx, close_idx):
                logger.debug("Stooq: skipping short row %r", row)
                continue
            symbol = strip_market_suffix(row[symbol_idx])
            price = parse_price(row[close_idx])
            if not symbol or price is None:
                logger.debug("Stooq: no usable close in row %r", row)
                continue
            if symbol not in requested:
                continue
            result[symbol] = price
        return result

    def fetch_prices(self, symbols: set[str]) -> PriceTable:
        """Fetch latest closes for a batch of equity tickers.

        Args:
            symbols: Normalized equity tickers (e.g., {"AAPL", "MSFT"}).

        Returns:
            PriceTable of the requested tickers Stooq priced.

        Raises:
            ProviderAPIError: Non-success HTTP status.
            ProviderConnectionError: Transport failure or timeout.
            ProviderDataError: Empty body or missing header columns.
        """
        if not symbols:
            return {}

        logger.info("Stooq: fetching prices for %d symbols", len(symbols))

        text = self._get_csv(
            params={
                "s": ",".join(self._query_symbol(s) for s in sorted(symbols)),
                "f": _FIELDS,
                "h": "",
                "e": "csv",
            }
        )
        result = self._parse_csv(text, set(symbols))

        missing = len(symbols) - len(result)
        if missing:
            logger.info("Stooq: %d of %d symbols had no price", missing, len(symbols))
        return result
