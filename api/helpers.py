"""Shared API helpers for route handlers.

Common query patterns and response builders used across multiple route files.
"""

from typing import TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from database import Base
from models import Account
from services.market_data_service import ProviderStatus
from services.price_cache_service import PriceSnapshot
from services.valuation_service import PositionValuation

T = TypeVar("T", bound=Base)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def account_response_dict(account: Account, position_count: int = 0) -> dict:
    """Build an AccountResponse-compatible dict from an Account."""
    return {
        "id": account.id,
        "name": account.name,
        "position_count": position_count,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


def provider_status_dict(status: ProviderStatus) -> dict:
    """Build a ProviderStatusResponse-compatible dict."""
    return {
        "provider_name": status.provider_name,
        "asset_class": status.asset_class.value,
        "requested": list(status.requested),
        "priced": status.priced,
        "ok": status.ok,
        "error": status.error,
    }


def price_snapshot_dict(snapshot: PriceSnapshot) -> dict:
    """Build a PriceTableResponse-compatible dict from a PriceSnapshot."""
    return {
        "prices": dict(sorted(snapshot.prices.items())),
        "providers": [provider_status_dict(s) for s in snapshot.statuses],
        "missing_symbols": sorted(snapshot.missing_symbols),
        "unrecognized_symbols": sorted(snapshot.unrecognized),
        "stale": snapshot.stale,
        "fetched_at": snapshot.fetched_at,
    }


def position_valuation_dict(
    valuation: PositionValuation,
    account_id: str | None = None,
    notes: str | None = None,
) -> dict:
    """Build a PositionValuationResponse-compatible dict."""
    return {
        "position_id": valuation.position_id,
        "account_id": account_id,
        "symbol": valuation.symbol,
        "notes": notes,
        "quantity": valuation.quantity,
        "cost_basis": valuation.cost_basis,
        "price": valuation.price,
        "market_value": valuation.market_value,
        "average_cost": valuation.average_cost,
        "gain_loss": valuation.gain_loss,
        "gain_loss_percent": valuation.gain_loss_percent,
    }
