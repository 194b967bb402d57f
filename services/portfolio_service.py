"""Service for accounts, positions, and the stored portfolio state."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from integrations.market_data_protocol import PriceTable
from models import Account, Position
from schemas.position import PositionCreate, PositionSort, PositionUpdate
from services.price_cache_service import PriceCacheService
from services.valuation_service import PositionValuation

logger = logging.getLogger(__name__)


@dataclass
class PortfolioState:
    """Everything the display layer loads at startup."""

    accounts: list[Account] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    prices: PriceTable = field(default_factory=dict)


class PortfolioService:
    """CRUD operations on accounts and positions.

    Methods ``flush()``; the API layer commits.
    """

    # Accounts

    @staticmethod
    def create_account(db: Session, name: str) -> Account:
        """Create a new account."""
        account = Account(name=name)
        db.add(account)
        db.flush()
        logger.info("Account created: %s (id=%s)", name, account.id)
        return account

    @staticmethod
    def list_accounts(db: Session) -> list[Account]:
        return db.query(Account).order_by(Account.name, Account.created_at).all()

    @staticmethod
    def position_counts(db: Session) -> dict[str, int]:
        """Return account_id -> number of positions."""
        rows = (
            db.query(Position.account_id, func.count(Position.id))
            .group_by(Position.account_id)
            .all()
        )
        return {account_id: count for account_id, count in rows}

    @staticmethod
    def rename_account(db: Session, account: Account, name: str) -> Account:
        account.name = name
        db.flush()
        return account

    @staticmethod
    def delete_account(db: Session, account: Account) -> int:
        """Delete an account and all of its positions.

        Returns:
            Number of positions deleted with it
        """
        deleted = len(account.positions)
        db.delete(account)  # positions go with it via the ORM cascade
        db.flush()
        logger.info(
            "Account deleted: %s (id=%s, %d positions)", account.name, account.id, deleted
        )
        return deleted

    # Positions

    @staticmethod
    def create_position(db: Session, data: PositionCreate) -> Position:
        """Create a position from validated input (symbol already normalized)."""
        position = Position(
            account_id=data.account_id,
            symbol=data.symbol,
            quantity=data.quantity,
            cost_basis=data.cost_basis,
            notes=data.notes,
        )
        db.add(position)
        db.flush()
        logger.info(
            "Position created: %s x %s in account %s",
            data.quantity, data.symbol, data.account_id,
        )
        return position

    @staticmethod
    def update_position(db: Session, position: Position, data: PositionUpdate) -> Position:
        """Apply the fields explicitly set in ``data``."""
        for key, value in data.model_dump(exclude_unset=True).items():
            if key in ("symbol", "account_id", "quantity", "cost_basis") and value is None:
                continue
            setattr(position, key, value)
        db.flush()
        return position

    @staticmethod
    def delete_position(db: Session, position: Position) -> None:
        db.delete(position)
        db.flush()
        logger.info("Position deleted: %s (id=%s)", position.symbol, position.id)

    @staticmethod
    def list_positions(
        db: Session,
        account_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Position]:
        """List positions, optionally scoped to an account and filtered.

        ``search`` matches symbol or notes, case-insensitively.
        """
        query = db.query(Position)
        if account_id is not None:
            query = query.filter(Position.account_id == account_id)
        positions = query.order_by(Position.symbol, Position.created_at).all()
        if search:
            needle = search.strip().lower()
            positions = [
                p for p in positions
                if needle in p.symbol.lower() or needle in (p.notes or "").lower()
            ]
        return positions

    @staticmethod
    def distinct_symbols(db: Session) -> list[str]:
        """Every symbol held in any account, sorted."""
        rows = db.query(Position.symbol).distinct().all()
        return sorted(symbol for (symbol,) in rows)

    # State

    @staticmethod
    def load_state(db: Session) -> PortfolioState:
        """Load accounts, positions, and the last-known price table."""
        return PortfolioState(
            accounts=PortfolioService.list_accounts(db),
            positions=PortfolioService.list_positions(db),
            prices=PriceCacheService.load_price_table(db),
        )


def sort_valuations(
    valuations: list[PositionValuation], sort: PositionSort = PositionSort.symbol
) -> list[PositionValuation]:
    """Order valuations for display.

    ``symbol`` sorts ascending; ``value`` and ``gain`` sort descending
    with symbol as the tie-breaker.
    """
    if sort is PositionSort.value:
        return sorted(valuations, key=lambda v: (-v.market_value, v.symbol))
    if sort is PositionSort.gain:
        return sorted(valuations, key=lambda v: (-v.gain_loss, v.symbol))
    return sorted(valuations, key=lambda v: (v.symbol, -v.quantity))

