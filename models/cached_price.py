"""CachedPrice model - last-known price per symbol."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Numeric, String

from database import Base


class CachedPrice(Base):
    """The last successfully fetched price for a symbol.

    Used only as a fallback display value when a refresh cannot reach
    any provider.
    """

    __tablename__ = "cached_prices"

    symbol = Column(String, primary_key=True)  # Normalized ticker
    price = Column(Numeric(24, 10), nullable=False)
    source = Column(String, nullable=True)  # e.g., "stooq", "coingecko"
    fetched_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
