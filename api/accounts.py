"""Accounts API endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import account_response_dict, get_or_404
from database import get_db
from models import Account
from schemas.account import AccountCreate, AccountResponse, AccountUpdate
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    """List all accounts with their position counts."""
    counts = PortfolioService.position_counts(db)
    return [
        account_response_dict(account, counts.get(account.id, 0))
        for account in PortfolioService.list_accounts(db)
    ]


@router.post("", response_model=AccountResponse)
def create_account(data: AccountCreate, db: Session = Depends(get_db)):
    """Create a new account."""
    account = PortfolioService.create_account(db, data.name)
    db.commit()
    db.refresh(account)
    return account_response_dict(account)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, db: Session = Depends(get_db)):
    """Get a specific account by ID."""
    account = get_or_404(db, Account, account_id, "Account not found")
    counts = PortfolioService.position_counts(db)
    return account_response_dict(account, counts.get(account.id, 0))


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(account_id: str, data: AccountUpdate, db: Session = Depends(get_db)):
    """Rename an account."""
    account = get_or_404(db, Account, account_id, "Account not found")
    if data.name is not None:
        PortfolioService.rename_account(db, account, data.name)
        db.commit()
        db.refresh(account)
    counts = PortfolioService.position_counts(db)
    return account_response_dict(account, counts.get(account.id, 0))


@router.delete("/{account_id}", status_code=204)
def delete_account(account_id: str, db: Session = Depends(get_db)):
    """Delete an account and all of its positions."""
    account = get_or_404(db, Account, account_id, "Account not found")
    PortfolioService.delete_account(db, account)
    db.commit()
