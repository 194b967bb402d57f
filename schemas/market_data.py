"""Pydantic schemas for price refresh endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ProviderStatusResponse(BaseModel):
    """Outcome of one provider call."""

    provider_name: str
    asset_class: str
    requested: list[str]
    priced: int
    ok: bool
    error: Optional[str] = None


class PriceTableResponse(BaseModel):
    """A price table and how it was obtained.

    ``stale`` is True when the prices come from the local cache rather
    than a successful refresh.
    """

    prices: dict[str, Decimal]
    providers: list[ProviderStatusResponse] = []
    missing_symbols: list[str] = []
    unrecognized_symbols: list[str] = []
    stale: bool = False
    fetched_at: Optional[datetime] = None
