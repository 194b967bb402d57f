"""Positions API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404
from database import get_db
from models import Account, Position
from schemas.position import PositionCreate, PositionResponse, PositionUpdate
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/positions", tags=["positions"])


@router.get("", response_model=list[PositionResponse])
def list_positions(
    account_id: Optional[str] = Query(None, description="Only this account's positions"),
    search: Optional[str] = Query(None, description="Substring of symbol or notes"),
    db: Session = Depends(get_db),
):
    """List positions, optionally filtered by account and search text."""
    return PortfolioService.list_positions(db, account_id=account_id, search=search)


@router.post("", response_model=PositionResponse)
def create_position(data: PositionCreate, db: Session = Depends(get_db)):
    """Create a position in an existing account."""
    get_or_404(db, Account, data.account_id, "Account not found")
    position = PortfolioService.create_position(db, data)
    db.commit()
    db.refresh(position)
    return position


@router.get("/{position_id}", response_model=PositionResponse)
def get_position(position_id: str, db: Session = Depends(get_db)):
    """Get a specific position by ID."""
    return get_or_404(db, Position, position_id, "Position not found")


@router.patch("/{position_id}", response_model=PositionResponse)
def update_position(position_id: str, data: PositionUpdate, db: Session = Depends(get_db)):
    """Edit a position. Omitted fields are left unchanged."""
    position = get_or_404(db, Position, position_id, "Position not found")
    if data.account_id is not None and db.get(Account, data.account_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")
    PortfolioService.update_position(db, position, data)
    db.commit()
    db.refresh(position)
    return position


@router.delete("/{position_id}", status_code=204)
def delete_position(position_id: str, db: Session = Depends(get_db)):
    """Delete a position."""
    position = get_or_404(db, Position, position_id, "Position not found")
    PortfolioService.delete_position(db, position)
    db.commit()
