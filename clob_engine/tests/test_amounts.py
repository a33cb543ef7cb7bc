"""Tests for base-unit amount conversion."""

from decimal import Decimal

import pytest

from ..config import ROUNDING_CONFIG
from ..trading.amounts import (
    compute_order_amounts,
    compute_market_order_amounts,
    fix_amount_rounding,
    implied_price,
)
from ..exceptions import InvalidAmountError, InvalidTickSizeError
from ..models import Side
from ..utils.numeric import decimal_places, from_base_units


class TestLimitAmounts:

    def test_buy_offers_collateral(self):
        assert compute_order_amounts(Side.BUY, Decimal("0.50"), Decimal("10"), "0.01") == (
            5_000_000, 10_000_000
        )

    def test_sell_offers_tokens(self):
        assert compute_order_amounts(Side.SELL, Decimal("0.50"), Decimal("10"), "0.01") == (
            10_000_000, 5_000_000
        )

    def test_size_is_truncated_to_grid(self):
        """10.129 shares becomes 10.12, never 10.13."""
        maker, taker = compute_order_amounts(Side.BUY, Decimal("0.50"), Decimal("10.129"), "0.01")
        assert (maker, taker) == (5_060_000, 10_120_000)

    def test_finest_tick(self):
        assert compute_order_amounts(Side.BUY, Decimal("0.0001"), Decimal("1"), "0.0001") == (
            100, 1_000_000
        )

    def test_three_decimal_price(self):
        maker, taker = compute_order_amounts(Side.BUY, Decimal("0.123"), Decimal("7.77"), "0.001")
        assert (maker, taker) == (955_710, 7_770_000)
        assert implied_price(Side.BUY, maker, taker) == Decimal("0.123")

    def test_zero_after_truncation(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            compute_order_amounts(Side.BUY, Decimal("0.50"), Decimal("0.001"), "0.01")
        assert exc_info.value.taker_amount == 0

    def test_unsupported_tick(self):
        with pytest.raises(InvalidTickSizeError):
            compute_order_amounts(Side.BUY, Decimal("0.50"), Decimal("10"), "0.05")

    def test_implied_price_stays_within_one_tick(self):
        """Across grids, sides and awkward sizes the signed price never drifts a full tick."""
        cases = [
            ("0.1", "0.3", "3.33"),
            ("0.01", "0.37", "123.45"),
            ("0.001", "0.999", "0.01"),
            ("0.0001", "0.4321", "98765.43"),
        ]
        for tick, price, size in cases:
            for side in (Side.BUY, Side.SELL):
                maker, taker = compute_order_amounts(side, Decimal(price), Decimal(size), tick)
                assert maker > 0 and taker > 0
                drift = abs(implied_price(side, maker, taker) - Decimal(price))
                assert drift <= Decimal(tick)


class TestMarketAmounts:

    def test_buy_spends_collateral(self):
        assert compute_market_order_amounts(Side.BUY, Decimal("100"), Decimal("0.5"), "0.01") == (
            100_000_000, 200_000_000
        )

    def test_sell_offers_shares(self):
        assert compute_market_order_amounts(Side.SELL, Decimal("10"), Decimal("0.45"), "0.01") == (
            10_000_000, 4_500_000
        )

    def test_inexact_division_within_tolerance(self):
        maker, taker = compute_market_order_amounts(
            Side.BUY, Decimal("1"), Decimal("0.03"), "0.01"
        )
        assert (maker, taker) == (1_000_000, 33_333_300)

    def test_tight_tolerance_rejects_drift(self):
        with pytest.raises(InvalidAmountError):
            compute_market_order_amounts(
                Side.BUY, Decimal("1"), Decimal("0.03"), "0.01", tolerance=Decimal("1e-12")
            )


def test_implied_price():
    assert implied_price(Side.BUY, 5_000_000, 10_000_000) == Decimal("0.5")
    assert implied_price(Side.SELL, 10_000_000, 4_500_000) == Decimal("0.45")

    with pytest.raises(InvalidAmountError):
        implied_price(Side.BUY, 5_000_000, 0)


class TestAmountPrecision:

    def test_market_buy_shares_held_to_grid(self):
        """10 / 0.33 = 30.3030..., signed as 30.3030 shares."""
        maker, taker = compute_market_order_amounts(Side.BUY, Decimal("10"), Decimal("0.33"), "0.01")
        assert (maker, taker) == (10_000_000, 30_303_000)

    @pytest.mark.parametrize("tick,price", [
        ("0.1", "0.3"),
        ("0.01", "0.33"),
        ("0.001", "0.333"),
        ("0.0001", "0.3333"),
    ])
    def test_derived_leg_within_amount_decimals(self, tick, price):
        places = ROUNDING_CONFIG[Decimal(tick)].amount
        price = Decimal(price)

        _, taker = compute_market_order_amounts(Side.BUY, Decimal("10"), price, tick)
        assert decimal_places(from_base_units(taker)) <= places

        _, taker = compute_market_order_amounts(Side.SELL, Decimal("3.33"), price, tick)
        assert decimal_places(from_base_units(taker)) <= places

        maker, _ = compute_order_amounts(Side.BUY, price, Decimal("7.77"), tick)
        assert decimal_places(from_base_units(maker)) <= places

    def test_fix_amount_rounding(self):
        assert fix_amount_rounding(Decimal("2.5"), 4) == Decimal("2.5")
        assert fix_amount_rounding(Decimal("30.30303030303"), 4) == Decimal("30.3030")
        # Rounded up at places + 4 before truncating
        assert fix_amount_rounding(Decimal("0.4999999999999"), 4) == Decimal("0.5")
        assert fix_amount_rounding(Decimal("1.99999"), 4) == Decimal("1.9999")
