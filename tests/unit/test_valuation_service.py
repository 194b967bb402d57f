"""Unit tests for the valuation functions."""

import logging
from dataclasses import FrozenInstanceError
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.valuation_service import (
    PortfolioValuation,
    allocation_by_symbol,
    resolve_price,
    round_money,
    round_unit_cost,
    value_portfolio,
    value_position,
)


def make_position(symbol, quantity, cost_basis, id=None):
    return SimpleNamespace(
        id=id,
        symbol=symbol,
        quantity=Decimal(str(quantity)),
        cost_basis=Decimal(str(cost_basis)),
    )


class TestRounding:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0.125", "0.13"),
            ("-0.125", "-0.13"),
            ("0.124", "0.12"),
            ("2.675", "2.68"),
            ("1200", "1200.00"),
        ],
    )
    def test_round_money_half_away_from_zero(self, value, expected):
        assert round_money(Decimal(value)) == Decimal(expected)
        assert str(round_money(Decimal(value))) == expected

    def test_round_unit_cost_four_digits(self):
        assert round_unit_cost(Decimal("33.33335")) == Decimal("33.3334")
        assert round_unit_cost(Decimal("-33.33335")) == Decimal("-33.3334")
        assert str(round_unit_cost(Decimal("100"))) == "100.0000"

    def test_rounding_beyond_default_precision(self):
        # 29+ significant digits after quantizing
        assert round_money(Decimal("1E+28")) == Decimal("1E+28")
        assert round_unit_cost(Decimal("1E+25")) == Decimal("1E+25")
        assert round_money(Decimal("-123456789012345678901234567.895")) == Decimal(
            "-123456789012345678901234567.90"
        )


class TestResolvePrice:
    def test_present(self):
        assert resolve_price({"AAPL": Decimal("120")}, "AAPL") == Decimal("120")

    def test_lookup_uses_normalized_symbol(self):
        assert resolve_price({"AAPL": Decimal("120")}, " aapl ") == Decimal("120")

    def test_absent_is_zero_without_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="services.valuation_service"):
            assert resolve_price({}, "AAPL") == Decimal("0")
        assert caplog.records == []

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), Decimal("NaN"), -5, 0, "abc", None])
    def test_malformed_price_clamped_to_zero(self, raw, caplog):
        with caplog.at_level(logging.WARNING, logger="services.valuation_service"):
            assert resolve_price({"AAPL": raw}, "AAPL") == Decimal("0")
        assert "clamped to 0" in caplog.text


class TestValuePosition:
    def test_basic_valuation(self):
        result = value_position(make_position("AAPL", 10, 1000), {"AAPL": Decimal("120")})

        assert result.market_value == Decimal("1200.00")
        assert result.average_cost == Decimal("100.0000")
        assert str(result.average_cost) == "100.0000"
        assert result.gain_loss == Decimal("200.00")
        assert result.gain_loss_percent == Decimal("20.00")
        assert result.has_price

    def test_zero_cost_basis(self):
        result = value_position(make_position("AAPL", 5, 0), {"AAPL": Decimal("10")})

        assert result.gain_loss_percent == Decimal("0")
        assert result.market_value == Decimal("50.00")
        assert result.average_cost == Decimal("0")
        assert result.gain_loss == Decimal("50.00")

    def test_zero_quantity(self):
        result = value_position(make_position("AAPL", 0, 100), {"AAPL": Decimal("10")})

        assert result.average_cost == Decimal("0")
        assert result.market_value == Decimal("0")
        assert result.gain_loss == Decimal("0")
        assert result.gain_loss_percent == Decimal("-100.00")

    def test_unknown_price(self):
        result = value_position(make_position("XYZ", 3, 1000), {"AAPL": Decimal("120")})

        assert result.price == Decimal("0")
        assert result.market_value == Decimal("0.00")
        assert result.gain_loss == Decimal("-1000.00")
        assert result.gain_loss_percent == Decimal("-100.00")
        assert not result.has_price

    def test_gain_loss_uses_unrounded_unit_cost(self):
        # avg cost 0.333333..., rounded would be 0.3333
        result = value_position(make_position("AAPL", 3000, 1000), {"AAPL": Decimal("1")})

        assert result.average_cost == Decimal("0.3333")
        assert result.gain_loss == Decimal("2000.00")

    def test_fractional_quantity(self):
        result = value_position(make_position("BTC", "0.5", 15000), {"BTC": Decimal("42000.00")})

        assert result.market_value == Decimal("21000.00")
        assert result.average_cost == Decimal("30000.0000")
        assert result.gain_loss == Decimal("6000.00")
        assert result.gain_loss_percent == Decimal("40.00")

    def test_loss_rounds_away_from_zero(self):
        # (0.875 - 1) * 1 = -0.125
        result = value_position(make_position("AAPL", 1, 1), {"AAPL": Decimal("0.875")})

        assert result.gain_loss == Decimal("-0.13")

    def test_lowercase_symbol_normalized(self):
        result = value_position(make_position(" aapl", 1, 100), {"AAPL": Decimal("150")})

        assert result.symbol == "AAPL"
        assert result.market_value == Decimal("150.00")

    def test_nan_price_clamped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="services.valuation_service"):
            result = value_position(make_position("AAPL", 2, 100), {"AAPL": float("nan")})

        assert result.price == Decimal("0")
        assert result.market_value == Decimal("0.00")
        assert result.gain_loss == Decimal("-100.00")
        assert "clamped to 0" in caplog.text

    def test_negative_quantity_clamped(self, caplog):
        position = SimpleNamespace(symbol="AAPL", quantity=Decimal("-1"), cost_basis=Decimal("10"))

        with caplog.at_level(logging.WARNING, logger="services.valuation_service"):
            result = value_position(position, {"AAPL": Decimal("5")})

        assert result.quantity == Decimal("0")
        assert result.market_value == Decimal("0")
        assert "quantity" in caplog.text

    def test_position_id_carried(self):
        result = value_position(make_position("AAPL", 1, 1, id="abc"), {})
        assert result.position_id == "abc"

    def test_very_large_quantity(self):
        result = value_position(make_position("AAPL", "1E+25", 0), {"AAPL": Decimal("1000")})

        assert result.market_value == Decimal("1E+28")
        assert result.gain_loss == Decimal("1E+28")
        assert result.gain_loss_percent == Decimal("0")

    def test_very_large_unit_cost(self):
        result = value_position(make_position("AAPL", "1E-8", "1E+17"), {"AAPL": Decimal("1000")})

        assert result.average_cost == Decimal("1E+25")
        assert result.market_value == Decimal("0.00")
        assert result.gain_loss == Decimal("-100000000000000000.00")
        assert result.gain_loss_percent == Decimal("-100.00")

    def test_pure(self):
        position = make_position("AAPL", 10, 1000)
        prices = {"AAPL": Decimal("120")}

        first = value_position(position, prices)
        second = value_position(position, prices)

        assert first == second
        assert prices == {"AAPL": Decimal("120")}
        assert position.quantity == Decimal("10")

    def test_result_is_immutable(self):
        result = value_position(make_position("AAPL", 1, 1), {})
        with pytest.raises(FrozenInstanceError):
            result.price = Decimal("1")


class TestValuePortfolio:
    def test_totals(self):
        positions = [
            make_position("AAPL", 10, 1000),
            make_position("BTC", "0.5", 15000),
        ]
        prices = {"AAPL": Decimal("120"), "BTC": Decimal("42000")}

        result = value_portfolio(positions, prices)

        assert len(result.positions) == 2
        assert result.total_value == Decimal("22200.00")
        assert result.total_cost == Decimal("16000.00")
        assert result.total_gain_loss == Decimal("6200.00")
        assert result.total_gain_loss_percent == Decimal("38.75")

    def test_totals_rounded_once(self):
        """Three values of 1.004 each total 3.01, not 3 x 1.00."""
        positions = [make_position("AAPL", 1, 0) for _ in range(3)]

        result = value_portfolio(positions, {"AAPL": Decimal("1.004")})

        assert [p.market_value for p in result.positions] == [Decimal("1.00")] * 3
        assert result.total_value == Decimal("3.01")
        assert result.total_gain_loss == Decimal("3.01")

    def test_empty_portfolio(self):
        result = value_portfolio([], {"AAPL": Decimal("1")})

        assert result == PortfolioValuation(
            positions=[],
            total_value=Decimal("0.00"),
            total_cost=Decimal("0.00"),
            total_gain_loss=Decimal("0.00"),
            total_gain_loss_percent=Decimal("0"),
        )

    def test_zero_total_cost_percent_is_zero(self):
        result = value_portfolio([make_position("AAPL", 1, 0)], {"AAPL": Decimal("5")})
        assert result.total_gain_loss_percent == Decimal("0")

    def test_unpriced_symbols(self):
        positions = [
            make_position("AAPL", 1, 1),
            make_position("XYZ", 1, 1),
            make_position("XYZ", 2, 2),
        ]

        result = value_portfolio(positions, {"AAPL": Decimal("5")})

        assert result.unpriced_symbols == ["XYZ"]

    def test_accepts_generator(self):
        result = value_portfolio(
            (make_position(s, 1, 1) for s in ["AAPL", "MSFT"]),
            {"AAPL": Decimal("2"), "MSFT": Decimal("3")},
        )
        assert result.total_value == Decimal("5.00")

    def test_very_large_totals(self):
        positions = [make_position("AAPL", "1E+25", 0), make_position("MSFT", "1E+25", 0)]

        result = value_portfolio(positions, {"AAPL": Decimal("1000"), "MSFT": Decimal("1000")})

        assert result.total_value == Decimal("2E+28")
        assert allocation_by_symbol(result) == {
            "AAPL": Decimal("50.00"),
            "MSFT": Decimal("50.00"),
        }


class TestAllocation:
    def test_percentages(self):
        valuation = value_portfolio(
            [make_position("AAPL", 10, 1000), make_position("BTC", "0.00125", 40)],
            {"AAPL": Decimal("120"), "BTC": Decimal("40000")},
        )

        assert allocation_by_symbol(valuation) == {
            "AAPL": Decimal("96.00"),
            "BTC": Decimal("4.00"),
        }

    def test_same_symbol_combined(self):
        valuation = value_portfolio(
            [make_position("AAPL", 1, 1), make_position("AAPL", 1, 1), make_position("MSFT", 2, 1)],
            {"AAPL": Decimal("10"), "MSFT": Decimal("10")},
        )

        assert allocation_by_symbol(valuation) == {
            "AAPL": Decimal("50.00"),
            "MSFT": Decimal("50.00"),
        }

    def test_no_market_value(self):
        valuation = value_portfolio([make_position("XYZ", 1, 1)], {})
        assert allocation_by_symbol(valuation) == {"XYZ": Decimal("0")}
