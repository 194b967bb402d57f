"""Test fixtures and sample data."""
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Account, CachedPrice, Position


def create_position(
    db: Session,
    account: Account,
    symbol: str,
    quantity: str | Decimal,
    cost_basis: str | Decimal,
    notes: str | None = None,
) -> Position:
    """Create and flush a Position (helper, not a fixture)."""
    position = Position(
        account_id=account.id,
        symbol=symbol,
        quantity=Decimal(quantity),
        cost_basis=Decimal(cost_basis),
        notes=notes,
    )
    db.add(position)
    db.flush()
    return position


@pytest.fixture
def account(db: Session) -> Account:
    """Create a test account."""
    acc = Account(name="Brokerage")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def second_account(db: Session) -> Account:
    """Create a second test account."""
    acc = Account(name="Roth IRA")
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@pytest.fixture
def position(db: Session, account: Account) -> Position:
    """Create a test position: 10 AAPL for a total of 1000."""
    pos = create_position(db, account, "AAPL", "10", "1000", notes="core holding")
    db.commit()
    db.refresh(pos)
    return pos


@pytest.fixture
def cached_prices(db: Session) -> list[CachedPrice]:
    """Seed the price cache with last-known prices."""
    rows = [
        CachedPrice(symbol="AAPL", price=Decimal("140.00"), source="stooq"),
        CachedPrice(symbol="BTC", price=Decimal("40000.00"), source="coingecko"),
    ]
    db.add_all(rows)
    db.commit()
    return rows
