"""
Decimal amount conversion for signed orders.

Turns human prices and sizes into the integer base-unit maker/taker amounts
the exchange contract signs. All arithmetic is Decimal; amounts are scaled
to 6 decimals (USDC and outcome tokens) and rounded half-up.
"""

from decimal import Decimal
from typing import Any, Optional
import logging

from ..config import COLLATERAL_DECIMALS, TOKEN_DECIMALS, ROUNDING_CONFIG
from ..exceptions import InvalidAmountError
from ..models import Side
from ..utils.numeric import (
    to_base_units,
    from_base_units,
    round_down,
    round_up,
    decimal_places,
)
from ..utils.validators import validate_tick_size

logger = logging.getLogger(__name__)


def implied_price(side: Side, maker_amount: int, taker_amount: int) -> Decimal:
    """
    Price reproduced from base-unit amounts (collateral units / token units).

    Examples:
        >>> implied_price(Side.BUY, 5_000_000, 10_000_000)
        Decimal('0.5')
    """
    if Side(side) is Side.BUY:
        collateral, tokens = maker_amount, taker_amount
    else:
        collateral, tokens = taker_amount, maker_amount

    if tokens == 0:
        raise InvalidAmountError(
            "Token amount is zero; price is undefined",
            maker_amount=maker_amount,
            taker_amount=taker_amount
        )
    return (from_base_units(collateral, COLLATERAL_DECIMALS)
            / from_base_units(tokens, TOKEN_DECIMALS))


def _check_amounts(
    side: Side,
    price: Decimal,
    maker_amount: int,
    taker_amount: int,
    tolerance: Decimal
) -> None:
    if maker_amount <= 0 or taker_amount <= 0:
        raise InvalidAmountError(
            f"Order amounts round to zero (maker={maker_amount}, taker={taker_amount})",
            maker_amount=maker_amount,
            taker_amount=taker_amount
        )

    drift = abs(implied_price(side, maker_amount, taker_amount) - price)
    if drift > tolerance:
        raise InvalidAmountError(
            f"Rounded amounts imply a price {drift} away from {price} "
            f"(tolerance {tolerance})",
            maker_amount=maker_amount,
            taker_amount=taker_amount
        )


def fix_amount_rounding(value: Decimal, places: int) -> Decimal:
    """
    Bring a derived amount onto the grid's amount precision.

    Values with more than `places` decimals are rounded up at `places + 4`
    and then, if still too precise, truncated to `places`.

    Examples:
        >>> fix_amount_rounding(Decimal("30.30303030303"), 4)
        Decimal('30.3030')
        >>> fix_amount_rounding(Decimal("2.5"), 4)
        Decimal('2.5')
    """
    if decimal_places(value) > places:
        value = round_up(value, places + 4)
        if decimal_places(value) > places:
            value = round_down(value, places)
    return value


def _split(side: Side, collateral: Decimal, shares: Decimal) -> tuple[int, int]:
    collateral_units = to_base_units(collateral, COLLATERAL_DECIMALS)
    token_units = to_base_units(shares, TOKEN_DECIMALS)

    if Side(side) is Side.BUY:
        # Buyer offers collateral and asks for tokens
        return collateral_units, token_units
    return token_units, collateral_units


def compute_order_amounts(
    side: Side,
    price: Decimal,
    size: Decimal,
    tick_size: Any,
    tolerance: Optional[Decimal] = None
) -> tuple[int, int]:
    """
    Maker and taker amounts for a limit order.

    Size is truncated to the grid's size decimals and the collateral leg is
    held to the grid's amount decimals before both legs are scaled to base
    units.

    Args:
        side: BUY or SELL
        price: Price per share, already on the tick grid
        size: Number of shares
        tick_size: Market tick size
        tolerance: Max allowed |implied price - price| (default: one tick)

    Returns:
        (maker_amount, taker_amount) in base units

    Raises:
        InvalidTickSizeError: If tick size is unsupported
        InvalidAmountError: If an amount is zero or the implied price drifts

    Examples:
        >>> compute_order_amounts(Side.BUY, Decimal("0.50"), Decimal("10"), "0.01")
        (5000000, 10000000)
    """
    tick = validate_tick_size(tick_size)
    config = ROUNDING_CONFIG[tick]

    shares = round_down(size, config.size)
    collateral = fix_amount_rounding(price * shares, config.amount)
    maker_amount, taker_amount = _split(side, collateral, shares)

    _check_amounts(side, price, maker_amount, taker_amount,
                   tick if tolerance is None else tolerance)
    logger.debug(f"{Side(side).value} {shares} @ {price}: maker={maker_amount} taker={taker_amount}")
    return maker_amount, taker_amount


def compute_market_order_amounts(
    side: Side,
    amount: Decimal,
    price: Decimal,
    tick_size: Any,
    tolerance: Optional[Decimal] = None
) -> tuple[int, int]:
    """
    Maker and taker amounts for a market (FOK/FAK) order.

    BUY amount is collateral to spend, SELL amount is shares to sell. The
    amount is truncated to the grid's size decimals first, and the leg derived
    from it is held to the grid's amount decimals.

    Raises:
        InvalidTickSizeError: If tick size is unsupported
        InvalidAmountError: If an amount is zero or the implied price drifts
    """
    tick = validate_tick_size(tick_size)
    config = ROUNDING_CONFIG[tick]

    amount = round_down(amount, config.size)
    if Side(side) is Side.BUY:
        maker_amount, taker_amount = _split(
            side, amount, fix_amount_rounding(amount / price, config.amount)
        )
    else:
        maker_amount, taker_amount = _split(
            side, fix_amount_rounding(amount * price, config.amount), amount
        )

    _check_amounts(side, price, maker_amount, taker_amount,
                   tick if tolerance is None else tolerance)
    return maker_amount, taker_amount
