"""SQLAlchemy ORM models."""

from .account import Account
from .cached_price import CachedPrice
from .position import Position
from .utils import generate_uuid

__all__ = ["Account", "CachedPrice", "Position", "generate_uuid"]
