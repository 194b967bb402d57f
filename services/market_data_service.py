"""Market data service: concurrent fan-out to current-price providers."""

import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Optional

from config import settings
from integrations.exceptions import AllProvidersFailed, ProviderError
from integrations.market_data_protocol import AssetClass, PriceProvider, PriceTable
from services.symbol_classifier import SymbolClassification, SymbolClassifier

logger = logging.getLogger(__name__)

# Later entries win when two providers price the same symbol
MERGE_ORDER: tuple[AssetClass, ...] = (AssetClass.EQUITY, AssetClass.CRYPTO)


@dataclass(frozen=True)
class ProviderStatus:
    """Outcome of one provider call within a refresh."""

    provider_name: str
    asset_class: AssetClass
    requested: tuple[str, ...]
    priced: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PriceRefreshResult:
    """Merged prices plus a per-provider status record."""

    prices: PriceTable = field(default_factory=dict)
    statuses: list[ProviderStatus] = field(default_factory=list)
    unrecognized: frozenset[str] = field(default_factory=frozenset)

    @property
    def requested(self) -> set[str]:
        """Every symbol that was routed to a provider."""
        return {s for status in self.statuses for s in status.requested}

    @property
    def missing_symbols(self) -> set[str]:
        """Routed symbols that did not come back with a price."""
        return self.requested - set(self.prices)

    @property
    def degraded(self) -> bool:
        """True if any provider failed or any routed symbol is unpriced."""
        return any(not s.ok for s in self.statuses) or bool(self.missing_symbols)


class MarketDataService:
    """Orchestrates current-price fetching across asset-class providers.

    Equity symbols go to the default provider (Stooq), crypto symbols to
    the crypto provider (CoinGecko). Both run concurrently and every call
    is awaited to completion before results are merged, so one provider's
    failure never cancels or taints another's success.
    """

    def __init__(
        self,
        provider: Optional[PriceProvider] = None,
        crypto_provider: Optional[PriceProvider] = None,
        classifier: Optional[SymbolClassifier] = None,
    ):
        """Initialize with optional providers for dependency injection.

        Args:
            provider: Equity price provider. If None, a StooqClient is
                     created on first use.
            crypto_provider: Crypto price provider. If None, a
                            CoinGeckoClient is created on first use.
            classifier: Symbol classifier. Defaults to one built from
                       the crypto provider's ``coin_ids`` table, or the
                       default coin table if the provider has none.
        """
        self._provider = provider
        self._crypto_provider = crypto_provider
        self._classifier = classifier
        # Clients created here are closed by close(); injected ones belong to the caller
        self._owned: list = []

    @property
    def provider(self) -> PriceProvider:
        """Get the equity price provider, creating if not provided."""
        if self._provider is None:
            from integrations.stooq_client import StooqClient

            self._provider = StooqClient()
            self._owned.append(self._provider)
        return self._provider

    @property
    def crypto_provider(self) -> PriceProvider:
        """Get the crypto price provider, creating if not provided."""
        if self._crypto_provider is None:
            from integrations.coingecko_client import CoinGeckoClient

            self._crypto_provider = CoinGeckoClient(
                api_key=settings.COINGECKO_API_KEY or None
            )
            self._owned.append(self._crypto_provider)
        return self._crypto_provider

    @property
    def classifier(self) -> SymbolClassifier:
        """Get the classifier, building it from the crypto provider's coin table."""
        if self._classifier is None:
            coin_ids = getattr(self.crypto_provider, "coin_ids", None)
            self._classifier = SymbolClassifier(crypto_ids=coin_ids)
        return self._classifier

    def close(self) -> None:
        """Close the HTTP clients this service created."""
        while self._owned:
            self._owned.pop().close()

    def _provider_for(self, asset_class: AssetClass) -> PriceProvider:
        if asset_class is AssetClass.CRYPTO:
            return self.crypto_provider
        return self.provider

    def refresh_prices(self, symbols: Iterable[str]) -> PriceRefreshResult:
        """Fetch current prices for raw symbols from every applicable provider.

        Args:
            symbols: Raw ticker strings (case-insensitive, may be padded).

        Returns:
            PriceRefreshResult with the merged table and one status per
            provider invoked. A provider that failed contributes no prices.

        Raises:
            AllProvidersFailed: At least one provider was invoked and every
                invoked provider failed.
        """
        classification = self.classifier.classify(symbols)
        jobs = [
            (asset_class, classification.bucket(asset_class))
            for asset_class in MERGE_ORDER
            if classification.bucket(asset_class)
        ]
        if not jobs:
            return PriceRefreshResult(unrecognized=classification.unrecognized)

        outcomes = self._run_settled(jobs)
        return self._merge(classification, outcomes)

    def get_current_prices(self, symbols: Iterable[str]) -> PriceTable:
        """Fetch and merge current prices; see ``refresh_prices``."""
        return self.refresh_prices(symbols).prices

    def _run_settled(
        self, jobs: list[tuple[AssetClass, frozenset[str]]]
    ) -> list[tuple[AssetClass, PriceProvider, frozenset[str], Future]]:
        """Submit every job, then wait until all of them have finished."""
        submitted = []
        with ThreadPoolExecutor(
            max_workers=len(jobs), thread_name_prefix="price-provider"
        ) as executor:
            for asset_class, bucket in jobs:
                provider = self._provider_for(asset_class)
                future = executor.submit(provider.fetch_prices, set(bucket))
                submitted.append((asset_class, provider, bucket, future))
            wait([future for *_, future in submitted])
        return submitted

    def _merge(
        self,
        classification: SymbolClassification,
        outcomes: list[tuple[AssetClass, PriceProvider, frozenset[str], Future]],
    ) -> PriceRefreshResult:
        """Merge settled provider outcomes in MERGE_ORDER."""
        prices: PriceTable = {}
        statuses: list[ProviderStatus] = []
        errors: dict[str, Exception] = {}
        failures = 0

        for asset_class, provider, bucket, future in outcomes:
            name = provider.provider_name
            requested = tuple(sorted(bucket))
            exc = future.exception()
            if exc is not None:
                if isinstance(exc, ProviderError):
                    logger.warning("%s: price fetch failed: %s", name, exc)
                else:
                    logger.warning(
                        "%s: unexpected error during price fetch", name,
                        exc_info=exc,
                    )
                errors[name] = exc
                failures += 1
                statuses.append(
                    ProviderStatus(name, asset_class, requested, error=str(exc))
                )
                continue

            table = future.result()
            overlap = set(prices) & set(table)
            if overlap:
                logger.warning(
                    "%s: overriding prices already set for %s",
                    name, sorted(overlap),
                )
            prices.update(table)
            statuses.append(
                ProviderStatus(name, asset_class, requested, priced=len(table))
            )

        if failures == len(outcomes):
            raise AllProvidersFailed(errors, statuses=statuses)

        logger.info(
            "Price refresh: %d of %d symbols priced (%d providers, %d failed)",
            len(prices),
            sum(len(s.requested) for s in statuses),
            len(statuses),
            failures,
        )
        return PriceRefreshResult(
            prices=prices,
            statuses=statuses,
            unrecognized=classification.unrecognized,
        )
