"""Last-known price table storage and the refresh-with-fallback workflow."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from integrations.exceptions import AllProvidersFailed
from integrations.market_data_protocol import PriceTable
from models import CachedPrice
from services.market_data_service import MarketDataService, ProviderStatus

logger = logging.getLogger(__name__)


@dataclass
class PriceSnapshot:
    """Prices to display, plus where they came from.

    ``stale`` is True when every provider failed and the cached table is
    being shown instead.
    """

    prices: PriceTable = field(default_factory=dict)
    statuses: list[ProviderStatus] = field(default_factory=list)
    missing_symbols: set[str] = field(default_factory=set)
    unrecognized: frozenset[str] = field(default_factory=frozenset)
    stale: bool = False
    fetched_at: Optional[datetime] = None


class PriceCacheService:
    """Reads and writes the ``cached_prices`` table."""

    @staticmethod
    def load_price_table(db: Session) -> PriceTable:
        """Return the cached price table (possibly empty)."""
        return {
            row.symbol: Decimal(row.price)
            for row in db.query(CachedPrice).all()
            if row.price is not None and Decimal(row.price) > 0
        }

    @staticmethod
    def last_fetched_at(db: Session) -> Optional[datetime]:
        """Timestamp of the most recent cache write, if any."""
        return db.query(func.max(CachedPrice.fetched_at)).scalar()

    @staticmethod
    def save_price_table(
        db: Session,
        prices: PriceTable,
        sources: Optional[dict[str, str]] = None,
    ) -> int:
        """Upsert prices into the cache.

        Symbols absent from ``prices`` keep their previous cached value.

        Args:
            db: Database session
            prices: PriceTable to store
            sources: Optional symbol -> provider name map

        Returns:
            Number of rows written (flushed, not committed)
        """
        if not prices:
            return 0

        sources = sources or {}
        now = datetime.now(timezone.utc)
        existing = {
            row.symbol: row
            for row in db.query(CachedPrice)
            .filter(CachedPrice.symbol.in_(list(prices)))
            .all()
        }
        for symbol, price in prices.items():
            row = existing.get(symbol)
            if row is None:
                row = CachedPrice(symbol=symbol)
                db.add(row)
            row.price = price
            row.source = sources.get(symbol)
            row.fetched_at = now

        db.flush()
        logger.debug("Cached %d prices", len(prices))
        return len(prices)

    @staticmethod
    def _sources(statuses: Iterable[ProviderStatus], prices: PriceTable) -> dict[str, str]:
        """Map each priced symbol to the provider that priced it."""
        sources: dict[str, str] = {}
        for status in statuses:
            if not status.ok:
                continue
            for symbol in status.requested:
                if symbol in prices:
                    sources[symbol] = status.provider_name
        return sources

    @classmethod
    def refresh(
        cls,
        db: Session,
        market_data: MarketDataService,
        symbols: Iterable[str],
    ) -> PriceSnapshot:
        """Refresh prices, caching successes and falling back on total failure.

        Partial failures are not patched from the cache: a missing entry in
        the returned table means that symbol could not be priced this time.
        """
        try:
            result = market_data.refresh_prices(symbols)
        except AllProvidersFailed as exc:
            logger.warning("%s; showing cached prices", exc)
            cached = cls.load_price_table(db)
            statuses = list(exc.statuses)
            requested = {s for status in statuses for s in status.requested}
            return PriceSnapshot(
                prices=cached,
                statuses=statuses,
                missing_symbols=requested - set(cached),
                stale=True,
                fetched_at=cls.last_fetched_at(db),
            )

        cls.save_price_table(db, result.prices, cls._sources(result.statuses, result.prices))
        return PriceSnapshot(
            prices=dict(result.prices),
            statuses=list(result.statuses),
            missing_symbols=result.missing_symbols,
            unrecognized=result.unrecognized,
            stale=False,
            fetched_at=datetime.now(timezone.utc),
        )
