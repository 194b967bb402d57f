"""Service for routing ticker symbols to an asset class."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from integrations.coingecko_client import KNOWN_COIN_IDS
from integrations.market_data_protocol import AssetClass
from utils.ticker import is_plain_ticker, normalize_symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SymbolClassification:
    """Disjoint buckets produced by one classification pass.

    ``unrecognized`` is informational only; those symbols are never fetched.
    """

    crypto: frozenset[str] = field(default_factory=frozenset)
    equity: frozenset[str] = field(default_factory=frozenset)
    unrecognized: frozenset[str] = field(default_factory=frozenset)

    def bucket(self, asset_class: AssetClass) -> frozenset[str]:
        """Return the symbols routed to ``asset_class``."""
        if asset_class is AssetClass.CRYPTO:
            return self.crypto
        if asset_class is AssetClass.EQUITY:
            return self.equity
        return self.unrecognized


class SymbolClassifier:
    """Partitions raw tickers into crypto and equity buckets.

    Crypto membership is static: a symbol is crypto if and only if it is a
    key of ``crypto_ids``. The table is copied into a read-only mapping.
    """

    def __init__(self, crypto_ids: Optional[Mapping[str, str]] = None):
        source = crypto_ids if crypto_ids is not None else KNOWN_COIN_IDS
        self._crypto_ids: Mapping[str, str] = MappingProxyType(
            {normalize_symbol(k): v for k, v in source.items()}
        )

    @property
    def crypto_ids(self) -> Mapping[str, str]:
        return self._crypto_ids

    def classify_symbol(self, symbol: str) -> AssetClass:
        """Classify a single raw symbol."""
        normalized = normalize_symbol(symbol)
        if not normalized:
            return AssetClass.UNRECOGNIZED
        if normalized in self._crypto_ids:
            return AssetClass.CRYPTO
        if is_plain_ticker(normalized):
            return AssetClass.EQUITY
        return AssetClass.UNRECOGNIZED

    def classify(self, symbols: Iterable[str]) -> SymbolClassification:
        """Normalize, dedupe, and partition raw symbols.

        Empty strings are dropped; symbols that are neither known crypto
        nor plain alphanumeric tickers are left out of both fetch buckets.
        No error is raised for them.

        Args:
            symbols: Raw ticker strings in any case, possibly padded.

        Returns:
            SymbolClassification with disjoint crypto/equity sets.
        """
        crypto: set[str] = set()
        equity: set[str] = set()
        unrecognized: set[str] = set()

        for raw in symbols:
            normalized = normalize_symbol(raw)
            if not normalized:
                continue
            asset_class = self.classify_symbol(normalized)
            if asset_class is AssetClass.CRYPTO:
                crypto.add(normalized)
            elif asset_class is AssetClass.EQUITY:
                equity.add(normalized)
            else:
                unrecognized.add(normalized)

        if unrecognized:
            logger.debug("Ignoring unrecognized symbols: %s", sorted(unrecognized))

        return SymbolClassification(
            crypto=frozenset(crypto),
            equity=frozenset(equity),
            unrecognized=frozenset(unrecognized),
        )


_default_classifier = SymbolClassifier()


def classify(symbols: Iterable[str]) -> SymbolClassification:
    """Classify with the default crypto table."""
    return _default_classifier.classify(symbols)
