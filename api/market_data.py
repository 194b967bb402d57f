"""Market data API endpoints."""

import logging
from collections.abc import Iterator
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import price_snapshot_dict
from database import get_db
from integrations.exceptions import AllProvidersFailed
from schemas.market_data import PriceTableResponse
from services.market_data_service import MarketDataService
from services.price_cache_service import PriceCacheService, PriceSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/market-data", tags=["market-data"])

# Dependency injection for testing
_market_data_service_override: Optional[MarketDataService] = None


def get_market_data_service() -> Iterator[MarketDataService]:
    """Provide a MarketDataService, allowing for test overrides.

    The per-request service's HTTP clients are closed once the response
    is sent. An override is handed out as-is and never closed.
    """
    if _market_data_service_override is not None:
        yield _market_data_service_override
        return
    service = MarketDataService()
    try:
        yield service
    finally:
        service.close()


def set_market_data_service_override(service: Optional[MarketDataService]) -> None:
    """Set a MarketDataService override for testing."""
    global _market_data_service_override
    _market_data_service_override = service


@router.post("/prices", response_model=PriceTableResponse)
def fetch_prices(
    symbols: list[str],
    service: MarketDataService = Depends(get_market_data_service),
):
    """Fetch current prices for the given symbols.

    Symbols are passed in the request body as a JSON array, in any case.
    Unrecognized symbols are ignored and listed in ``unrecognized_symbols``.
    A provider that fails contributes no prices; its symbols appear in
    ``missing_symbols``. Returns 502 only when every provider failed.
    """
    try:
        result = service.refresh_prices(symbols)
    except AllProvidersFailed as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    return price_snapshot_dict(
        PriceSnapshot(
            prices=result.prices,
            statuses=result.statuses,
            missing_symbols=result.missing_symbols,
            unrecognized=result.unrecognized,
        )
    )


@router.get("/prices", response_model=PriceTableResponse)
def get_cached_prices(db: Session = Depends(get_db)):
    """Return the last-known price table from the local cache."""
    return price_snapshot_dict(
        PriceSnapshot(
            prices=PriceCacheService.load_price_table(db),
            stale=True,
            fetched_at=PriceCacheService.last_fetched_at(db),
        )
    )
