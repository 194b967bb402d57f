"""Pydantic schemas for positions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from integrations.market_data_protocol import AssetClass
from services.symbol_classifier import SymbolClassifier
from utils.ticker import normalize_symbol

_classifier = SymbolClassifier()

# Largest values the positions table can hold: Numeric(18, 8) and Numeric(18, 4)
MAX_QUANTITY = Decimal("9999999999.99999999")
MAX_COST_BASIS = Decimal("99999999999999.9999")


def _validate_symbol(v: Optional[str]) -> Optional[str]:
    """Normalize a ticker and reject ones no provider can price."""
    if v is None:
        return v
    symbol = normalize_symbol(v)
    if not symbol:
        raise ValueError("Symbol is required")
    if _classifier.classify_symbol(symbol) is AssetClass.UNRECOGNIZED:
        raise ValueError(
            f"Symbol {symbol!r} must be letters and digits only"
        )
    return symbol


class PositionSort(str, Enum):
    """Sort orders for position listings."""

    symbol = "symbol"
    value = "value"
    gain = "gain"


class PositionCreate(BaseModel):
    """Schema for creating a position.

    ``cost_basis`` is the total amount paid, not the per-unit price.
    """

    account_id: str
    symbol: str
    quantity: Decimal = Field(ge=0, le=MAX_QUANTITY)
    cost_basis: Decimal = Field(ge=0, le=MAX_COST_BASIS)
    notes: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return _validate_symbol(v)


class PositionUpdate(BaseModel):
    """Schema for editing a position. Omitted fields are left unchanged."""

    account_id: Optional[str] = None
    symbol: Optional[str] = None
    quantity: Optional[Decimal] = Field(default=None, ge=0, le=MAX_QUANTITY)
    cost_basis: Optional[Decimal] = Field(default=None, ge=0, le=MAX_COST_BASIS)
    notes: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: Optional[str]) -> Optional[str]:
        return _validate_symbol(v)


class PositionResponse(BaseModel):
    """Schema for position API response."""

    id: str
    account_id: str
    symbol: str
    quantity: Decimal
    cost_basis: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
