"""Position model - a holding of one symbol within an account."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Position(Base):
    """A holding entered by the user.

    ``cost_basis`` is the total amount paid for the whole position, not a
    per-unit price. The average unit cost is always derived from
    ``cost_basis / quantity`` at valuation time and never stored.
    """

    __tablename__ = "positions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    symbol = Column(String, nullable=False, index=True)  # Normalized ticker
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    cost_basis = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    account = relationship("Account", back_populates="positions")
