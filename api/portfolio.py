"""Portfolio valuation API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import position_valuation_dict, provider_status_dict
from api.market_data import get_market_data_service
from database import get_db
from integrations.market_data_protocol import PriceTable
from models import Position
from schemas.portfolio_valuation import PortfolioValuationResponse
from schemas.position import PositionSort
from services.market_data_service import MarketDataService
from services.portfolio_service import PortfolioService, sort_valuations
from services.price_cache_service import PriceCacheService, PriceSnapshot
from services.valuation_service import allocation_by_symbol, value_portfolio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


def _valuation_response(
    positions: list[Position],
    prices: PriceTable,
    sort: PositionSort,
    snapshot: Optional[PriceSnapshot] = None,
) -> dict:
    """Value positions and shape the response dict."""
    by_id = {p.id: p for p in positions}
    valuation = value_portfolio(positions, prices)

    rows = []
    for v in sort_valuations(valuation.positions, sort):
        position = by_id.get(v.position_id)
        rows.append(
            position_valuation_dict(
                v,
                account_id=position.account_id if position else None,
                notes=position.notes if position else None,
            )
        )

    return {
        "positions": rows,
        "total_value": valuation.total_value,
        "total_cost": valuation.total_cost,
        "total_gain_loss": valuation.total_gain_loss,
        "total_gain_loss_percent": valuation.total_gain_loss_percent,
        "allocation": allocation_by_symbol(valuation),
        "unpriced_symbols": valuation.unpriced_symbols,
        "stale": snapshot.stale if snapshot else True,
        "providers": [provider_status_dict(s) for s in snapshot.statuses] if snapshot else [],
    }


@router.get("", response_model=PortfolioValuationResponse)
def get_portfolio(
    account_id: Optional[str] = Query(None, description="Only this account's positions"),
    search: Optional[str] = Query(None, description="Substring of symbol or notes"),
    sort: PositionSort = Query(PositionSort.symbol),
    db: Session = Depends(get_db),
):
    """Value stored positions against the cached price table.

    Makes no network calls; prices are whatever the last refresh cached.
    """
    positions = PortfolioService.list_positions(db, account_id=account_id, search=search)
    prices = PriceCacheService.load_price_table(db)
    return _valuation_response(positions, prices, sort)


@router.post("/refresh", response_model=PortfolioValuationResponse)
def refresh_portfolio(
    account_id: Optional[str] = Query(None, description="Only this account's positions"),
    search: Optional[str] = Query(None, description="Substring of symbol or notes"),
    sort: PositionSort = Query(PositionSort.symbol),
    db: Session = Depends(get_db),
    service: MarketDataService = Depends(get_market_data_service),
):
    """Refresh prices for every held symbol, then value the portfolio.

    Successful prices are cached. When every provider fails, the cached
    table is used instead and ``stale`` is set.
    """
    snapshot = PriceCacheService.refresh(db, service, PortfolioService.distinct_symbols(db))
    db.commit()

    positions = PortfolioService.list_positions(db, account_id=account_id, search=search)
    return _valuation_response(positions, snapshot.prices, sort, snapshot)
