"""API route handlers."""
from . import accounts, market_data, portfolio, positions

__all__ = ["accounts", "market_data", "portfolio", "positions"]
