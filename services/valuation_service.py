"""Valuation of positions against a price table.

Everything here is pure: the same positions and price table always
produce the same numbers. Money is rounded explicitly with
``ROUND_HALF_UP`` (half away from zero), never through display formatting.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from utils.ticker import normalize_symbol

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
UNIT_COST_STEP = Decimal("0.0001")


def _quantize(value: Decimal, step: Decimal) -> Decimal:
    """Quantize half away from zero with enough precision for any magnitude."""
    with localcontext() as ctx:
        # Integer digits plus fraction digits, with headroom for the carry
        ctx.prec = max(ctx.prec, value.adjusted() - step.as_tuple().exponent + 2)
        return value.quantize(step, rounding=ROUND_HALF_UP)


def round_money(value: Decimal) -> Decimal:
    """Round to 2 fraction digits, half away from zero."""
    return _quantize(value, CENTS)


def round_unit_cost(value: Decimal) -> Decimal:
    """Round to 4 fraction digits, half away from zero."""
    return _quantize(value, UNIT_COST_STEP)


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric input to a finite Decimal, or None if impossible."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
    return result if result.is_finite() else None


def _clamp_non_negative(value: Any, field_name: str, symbol: str) -> Decimal:
    """Coerce a quantity or cost input, substituting 0 for malformed values."""
    result = _to_decimal(value)
    if result is None or result < 0:
        logger.warning(
            "Valuation input clamped to 0: %s %s=%r", symbol, field_name, value
        )
        return ZERO
    return result


def resolve_price(prices: Mapping[str, Any], symbol: str) -> Decimal:
    """Look up a price by normalized symbol, defaulting to 0 when unknown.

    A missing entry is expected (price unknown). A present but malformed
    entry (NaN, infinite, non-positive, non-numeric) is logged and also
    treated as 0.
    """
    normalized = normalize_symbol(symbol)
    if normalized not in prices:
        return ZERO
    raw = prices[normalized]
    price = _to_decimal(raw)
    if price is None or price <= 0:
        logger.warning("Valuation price clamped to 0: %s price=%r", normalized, raw)
        return ZERO
    return price


@dataclass(frozen=True)
class PositionValuation:
    """Derived metrics for one position."""

    symbol: str
    quantity: Decimal
    cost_basis: Decimal
    price: Decimal
    market_value: Decimal
    average_cost: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    position_id: Optional[str] = None

    @property
    def has_price(self) -> bool:
        return self.price > 0


@dataclass(frozen=True)
class PortfolioValuation:
    """Portfolio totals plus the per-position breakdown."""

    positions: list[PositionValuation] = field(default_factory=list)
    total_value: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_gain_loss: Decimal = ZERO
    total_gain_loss_percent: Decimal = ZERO

    @property
    def unpriced_symbols(self) -> list[str]:
        """Symbols valued at 0 because no price was known."""
        return sorted({p.symbol for p in self.positions if not p.has_price})


@dataclass(frozen=True)
class _Inputs:
    symbol: str
    quantity: Decimal
    cost_basis: Decimal
    price: Decimal

    @property
    def raw_value(self) -> Decimal:
        return self.quantity * self.price


def _read_inputs(position: Any, prices: Mapping[str, Any]) -> _Inputs:
    symbol = normalize_symbol(getattr(position, "symbol", None))
    return _Inputs(
        symbol=symbol,
        quantity=_clamp_non_negative(getattr(position, "quantity", None), "quantity", symbol),
        cost_basis=_clamp_non_negative(getattr(position, "cost_basis", None), "cost_basis", symbol),
        price=resolve_price(prices, symbol),
    )


def _percent_change(value: Decimal, cost: Decimal) -> Decimal:
    """(value - cost) / cost * 100, or 0 for a zero-cost basis."""
    if cost <= 0:
        return ZERO
    return round_money((value - cost) / cost * HUNDRED)


def value_position(position: Any, prices: Mapping[str, Any]) -> PositionValuation:
    """Value one position against a price table.

    Args:
        position: Any object with ``symbol``, ``quantity`` and ``cost_basis``
                  attributes (ORM Position, schema, or dataclass).
        prices: PriceTable keyed by normalized symbol.

    Returns:
        PositionValuation. The unknown-price case yields price 0, market
        value 0 and a loss equal to the cost basis.
    """
    return _value_inputs(_read_inputs(position, prices), getattr(position, "id", None))


def _value_inputs(inputs: _Inputs, position_id: Optional[str]) -> PositionValuation:
    if inputs.quantity > 0:
        avg_cost = inputs.cost_basis / inputs.quantity
    else:
        avg_cost = ZERO

    return PositionValuation(
        symbol=inputs.symbol,
        quantity=inputs.quantity,
        cost_basis=inputs.cost_basis,
        price=inputs.price,
        market_value=round_money(inputs.raw_value),
        average_cost=round_unit_cost(avg_cost),
        # Computed from the unrounded unit cost, not market_value - cost_basis
        gain_loss=round_money((inputs.price - avg_cost) * inputs.quantity),
        gain_loss_percent=_percent_change(inputs.raw_value, inputs.cost_basis),
        position_id=position_id,
    )


def value_portfolio(
    positions: Iterable[Any], prices: Mapping[str, Any]
) -> PortfolioValuation:
    """Value a set of positions and aggregate the totals.

    Totals are summed from unrounded per-position values and rounded once,
    so many small per-position rounding differences never accumulate.
    """
    valuations: list[PositionValuation] = []
    raw_value = ZERO
    raw_cost = ZERO
    for position in positions:
        inputs = _read_inputs(position, prices)
        valuations.append(_value_inputs(inputs, getattr(position, "id", None)))
        raw_value += inputs.raw_value
        raw_cost += inputs.cost_basis

    return PortfolioValuation(
        positions=valuations,
        total_value=round_money(raw_value),
        total_cost=round_money(raw_cost),
        total_gain_loss=round_money(raw_value - raw_cost),
        total_gain_loss_percent=_percent_change(raw_value, raw_cost),
    )


def allocation_by_symbol(valuation: PortfolioValuation) -> dict[str, Decimal]:
    """Share of total market value held in each symbol, in percent (2dp).

    Positions in the same symbol across accounts are combined. Every
    symbol maps to 0 when the portfolio has no market value.
    """
    by_symbol: dict[str, Decimal] = {}
    for p in valuation.positions:
        by_symbol[p.symbol] = by_symbol.get(p.symbol, ZERO) + p.market_value

    total = sum(by_symbol.values(), ZERO)
    if total <= 0:
        return {symbol: ZERO for symbol in by_symbol}
    return {
        symbol: round_money(value / total * HUNDRED)
        for symbol, value in sorted(by_symbol.items())
    }
