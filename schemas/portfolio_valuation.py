"""Pydantic schemas for portfolio valuation endpoints."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from schemas.market_data import ProviderStatusResponse


class PositionValuationResponse(BaseModel):
    """Derived metrics for a single position."""

    position_id: Optional[str] = None
    account_id: Optional[str] = None
    symbol: str
    notes: Optional[str] = None
    quantity: Decimal
    cost_basis: Decimal
    price: Decimal
    market_value: Decimal
    average_cost: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal


class PortfolioValuationResponse(BaseModel):
    """Response for the portfolio valuation endpoints."""

    positions: list[PositionValuationResponse]
    total_value: Decimal
    total_cost: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percent: Decimal
    allocation: dict[str, Decimal] = {}
    unpriced_symbols: list[str] = []
    stale: bool = False
    providers: list[ProviderStatusResponse] = []
